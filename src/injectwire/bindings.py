from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

from injectwire._internal.type_checks import type_name
from injectwire.dependencies import BundleSpec, ConstructorSignature
from injectwire.exceptions import InjectWireConstructorCallError, InjectWireError
from injectwire.keys import BindingKey
from injectwire.loader import SingletonLoader

if TYPE_CHECKING:
    from injectwire.context import ResolutionContext
    from injectwire.injector import Injector


class BindingKind(Enum):
    """Enumerate the closed set of binding variants."""

    SINGLETON = auto()
    """A pre-built value returned as is."""

    CONSTRUCTOR = auto()
    """A factory called on every request with its parameters resolved."""

    LAZY_SINGLETON = auto()
    """A factory called at most once per injector, its value memoized."""

    TAGGED_CONSTRUCTOR = auto()
    """Like ``CONSTRUCTOR`` but the factory receives one dataclass bundle."""

    TAGGED_LAZY_SINGLETON = auto()
    """Like ``LAZY_SINGLETON`` but the factory receives one dataclass bundle."""

    ALIAS = auto()
    """Redirect to another key's binding within the declaring module."""


_LAZY_KINDS = frozenset({BindingKind.LAZY_SINGLETON, BindingKind.TAGGED_LAZY_SINGLETON})
_TAGGED_KINDS = frozenset({BindingKind.TAGGED_CONSTRUCTOR, BindingKind.TAGGED_LAZY_SINGLETON})


@dataclass(eq=False, kw_only=True)
class BindingSpec:
    """Describe how one or more binding keys produce their value.

    A spec is pure data recorded on a ``Module``. Exactly one source is set,
    selected by ``kind``: ``value`` for singletons, ``factory`` plus
    ``signature`` for constructors, ``factory`` plus ``bundle`` for tagged
    constructors, ``target`` for aliases. Specs compare by identity, so two
    keys bound by one ``bind(A, B)`` call share one spec and, once attached,
    one resolved binding.
    """

    kind: BindingKind

    value: Any = None
    """The pre-built value of a singleton binding."""
    factory: Callable[..., Any] | None = None
    """The constructor of constructor and lazy singleton bindings."""
    signature: ConstructorSignature | None = None
    """Parameter keys of untagged constructors, derived once at bind time."""
    bundle: BundleSpec | None = None
    """Bundle fields of tagged constructors, derived once at bind time."""
    target: BindingKey | None = None
    """The key an alias binding redirects to."""
    factory_name: str = ""
    """Readable constructor identity used in diagnostics."""

    @property
    def dependency_keys(self) -> tuple[BindingKey, ...]:
        if self.kind in _TAGGED_KINDS:
            assert self.bundle is not None
            return self.bundle.keys
        if self.signature is not None:
            return self.signature.keys
        return ()

    def __str__(self) -> str:
        if self.kind is BindingKind.SINGLETON:
            return f"singleton {type_name(type(self.value))}"
        if self.kind is BindingKind.ALIAS:
            return str(self.target)
        return self.factory_name


@dataclass(frozen=True, slots=True)
class EagerBinding:
    """A lazy singleton to build at injector construction, with an optional callback."""

    key: BindingKey
    callback: Callable[[Any], Any] | None = None


class ResolvedBinding:
    """A binding attached to one injector, able to validate and produce its value.

    Constructor bindings call back into the owning injector to fetch their
    dependencies; lazy singletons additionally own a ``SingletonLoader`` that
    is created here, so every injector memoizes its own instance.
    """

    __slots__ = ("_injector", "_loader", "_spec")

    def __init__(self, spec: BindingSpec, injector: Injector) -> None:
        self._spec = spec
        self._injector = injector
        self._loader: SingletonLoader | None = None
        if spec.kind in _LAZY_KINDS:
            self._loader = SingletonLoader(injector.lock_mode)

    @property
    def spec(self) -> BindingSpec:
        return self._spec

    def validate(self, context: ResolutionContext) -> None:
        """Validate the dependencies of this binding, recursively.

        Args:
            context: Validation stack used for cycle detection and the dependency tree.

        """
        spec = self._spec
        if spec.kind is BindingKind.SINGLETON:
            return
        if spec.kind is BindingKind.ALIAS:  # pragma: no cover - aliases never get attached
            msg = f"Unexpected alias binding {spec}"
            raise AssertionError(msg)
        try:
            self._injector.validate_keys(context, spec.dependency_keys)
        except InjectWireError as error:
            error.with_tag("constructor", spec.factory_name)
            raise

    def get(self) -> Any:
        """Produce the value of this binding."""
        spec = self._spec
        if spec.kind is BindingKind.SINGLETON:
            return spec.value
        if self._loader is not None:
            return self._loader.load(self._construct)
        if spec.kind is BindingKind.ALIAS:  # pragma: no cover - aliases never get attached
            msg = f"Unexpected alias binding {spec}"
            raise AssertionError(msg)
        return self._construct()

    def _construct(self) -> Any:
        spec = self._spec
        assert spec.factory is not None
        try:
            values = self._injector.resolve_all(spec.dependency_keys)
        except InjectWireError as error:
            error.with_tag("constructor", spec.factory_name)
            raise

        if spec.kind in _TAGGED_KINDS:
            assert spec.bundle is not None
            args: list[Any] = [spec.bundle.assemble(values)]
            kwargs: dict[str, Any] = {}
        else:
            assert spec.signature is not None
            args, kwargs = spec.signature.arguments(values)

        try:
            return spec.factory(*args, **kwargs)
        except InjectWireError:
            raise
        except Exception as error:
            msg = "Constructor call failed"
            raise (
                InjectWireConstructorCallError(msg)
                .with_tag("err", f"{type(error).__name__}: {error}")
                .with_tag("constructor", spec.factory_name)
            ) from error

    def __str__(self) -> str:
        return str(self._spec)
