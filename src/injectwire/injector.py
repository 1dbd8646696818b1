from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any, TypeVar, overload

from injectwire._internal.type_checks import is_runtime_class
from injectwire.bindings import BindingKind, BindingSpec, EagerBinding, ResolvedBinding
from injectwire.context import DependencyTree, ResolutionContext
from injectwire.dependencies import DependenciesExtractor
from injectwire.exceptions import (
    InjectWireAlreadyBoundError,
    InjectWireBindingErrors,
    InjectWireDependencyNotRegisteredError,
    InjectWireEagerBindingError,
    InjectWireError,
    InjectWireInvalidRegistrationError,
    InjectWireNoFinalBindingError,
)
from injectwire.keys import BindingKey
from injectwire.lock_mode import LockMode
from injectwire.module import Module, override

T = TypeVar("T")

logger = logging.getLogger(__name__)

_ROOT_NAME = "injector"
_CHILD_NAME = "child"


class Injector:
    """Resolve values from the bindings of one or more modules.

    Construction is all-or-nothing. Modules are installed in order, followed
    by a module binding the injector itself under ``BindingKey(Injector)``.
    Then every binding is validated (missing dependencies and cycles raise
    here, not on first use) and eager singletons are built. If any step fails
    the exception propagates and no injector exists.

    After construction the binding map never changes; the only runtime state
    is the memoized value of each lazy singleton.

    Args:
        modules: Modules whose bindings this injector owns.
        name: Label used in ``str(injector)`` and the dependency tree.
        parent: Injector consulted first for every key except ``Injector``.
            Prefer ``new_child_injector`` over passing it directly.
        lock_mode: Locking strategy for lazy singletons. Defaults to the
            parent's mode, or ``LockMode.THREAD`` for root injectors.

    Examples:
        .. code-block:: python

            module = Module()
            module.bind_singleton_constructor(Database)
            module.bind_constructor(UserService)

            injector = Injector(module, name="app")
            service = injector.get(UserService)

    """

    def __init__(
        self,
        *modules: Module,
        name: str | None = None,
        parent: Injector | None = None,
        lock_mode: LockMode | None = None,
    ) -> None:
        if lock_mode is None:
            lock_mode = parent.lock_mode if parent is not None else LockMode.THREAD
        if name is None:
            name = _CHILD_NAME if parent is not None else _ROOT_NAME
        self._name = name
        self._parent = parent
        self._lock_mode = lock_mode
        self._bindings: dict[BindingKey, ResolvedBinding] = {}
        self._extractor = DependenciesExtractor()
        self._init(modules)

    @property
    def name(self) -> str:
        return self._name

    @property
    def parent(self) -> Injector | None:
        return self._parent

    @property
    def lock_mode(self) -> LockMode:
        return self._lock_mode

    @property
    def keys(self) -> tuple[BindingKey, ...]:
        """Keys bound locally, excluding those only visible through the parent."""
        return tuple(self._bindings)

    def _init(self, modules: Sequence[Module]) -> None:
        all_modules = [*modules, self._create_injector_module()]
        eager: list[EagerBinding] = []
        for module in all_modules:
            self._install_module(module)
            eager.extend(module.eager)

        logger.debug("Validating %d bindings of %s", len(self._bindings), self)
        self._validate(ResolutionContext.for_injector(self))
        self._build_eager(eager)
        logger.info(
            "Constructed %s with %d bindings and %d eager singletons",
            self,
            len(self._bindings),
            len(eager),
        )

    def _create_injector_module(self) -> Module:
        module = Module()
        module.bind(Injector).to_singleton(self)
        return module

    def _install_module(self, module: Module) -> None:
        if module.errors:
            raise InjectWireBindingErrors(module.errors)

        logger.debug("Installing %d bindings into %s", len(module.bindings), self)
        attached: dict[BindingSpec, ResolvedBinding] = {
            binding.spec: binding for binding in self._bindings.values()
        }
        for key, spec in module.bindings.items():
            self._check_not_bound(key)
            final_spec = self._final_spec(module, key, spec)
            binding = attached.get(final_spec)
            if binding is None:
                binding = attached[final_spec] = ResolvedBinding(final_spec, self)
            self._bindings[key] = binding

    def _check_not_bound(self, key: BindingKey) -> None:
        found = self._bindings.get(key)
        if found is not None:
            raise (
                InjectWireAlreadyBoundError("Already found a binding for this binding key")
                .with_tag("binding_key", key)
                .with_tag("found_binding", found)
            )
        # every scope re-binds the injector key to itself
        if key.dependency is Injector:
            return
        ancestor = self._parent
        while ancestor is not None:
            found = ancestor._bindings.get(key)
            if found is not None:
                raise (
                    InjectWireAlreadyBoundError("Already found a binding for this binding key")
                    .with_tag("binding_key", key)
                    .with_tag("found_binding", found)
                    .with_tag("scope", ancestor)
                )
            ancestor = ancestor._parent

    def _final_spec(self, module: Module, key: BindingKey, spec: BindingSpec) -> BindingSpec:
        """Follow alias bindings inside ``module`` until a concrete spec is reached."""
        chain = [key]
        while spec.kind is BindingKind.ALIAS:
            assert spec.target is not None
            target = spec.target
            if target in chain:
                raise (
                    InjectWireNoFinalBindingError("Alias chain loops back on itself")
                    .with_tag("binding_key", key)
                    .with_tag("chain", " -> ".join(str(link) for link in [*chain, target]))
                )
            chain.append(target)
            next_spec = module.binding(target)
            if next_spec is None:
                raise (
                    InjectWireNoFinalBindingError("No final binding for alias in the same module")
                    .with_tag("binding_key", key)
                    .with_tag("chain", " -> ".join(str(link) for link in chain))
                )
            spec = next_spec
        return spec

    def _validate(self, context: ResolutionContext) -> None:
        for key, binding in self._bindings.items():
            context.push(key, binding)
            binding.validate(context)
            context.pop()

    def validate_keys(self, context: ResolutionContext, keys: Iterable[BindingKey]) -> None:
        """Validate the bindings of ``keys`` recursively, pushing each onto ``context``.

        Args:
            context: Validation stack shared across the whole pass.
            keys: Dependency keys of the binding being validated.

        """
        for key in keys:
            binding = self._get_binding(key)
            context.push(key, binding)
            binding.validate(context)
            context.pop()

    def _build_eager(self, eager: Sequence[EagerBinding]) -> None:
        for eager_binding in eager:
            logger.debug("Building eager singleton %s in %s", eager_binding.key, self)
            try:
                value = self.resolve(eager_binding.key)
                if eager_binding.callback is not None:
                    eager_binding.callback(value)
            except Exception as error:
                msg = "Eager singleton failed during injector construction"
                raise (
                    InjectWireEagerBindingError(msg)
                    .with_tag("binding_key", eager_binding.key)
                    .with_tag("err", error)
                ) from error

    def _find_binding(self, key: BindingKey) -> ResolvedBinding | None:
        # the parent chain wins, except for the injector key
        if self._parent is not None and key.dependency is not Injector:
            binding = self._parent._find_binding(key)
            if binding is not None:
                return binding
        return self._bindings.get(key)

    def _get_binding(self, key: BindingKey) -> ResolvedBinding:
        binding = self._find_binding(key)
        if binding is None:
            msg = "No binding for binding key"
            raise InjectWireDependencyNotRegisteredError(msg, binding_key=key).with_tag("binding_key", key)
        return binding

    def resolve(self, key: BindingKey) -> Any:
        """Return the value bound to ``key`` in this injector or an ancestor.

        Args:
            key: Binding key to resolve.

        """
        return self._get_binding(key).get()

    def resolve_all(self, keys: Iterable[BindingKey]) -> list[Any]:
        """Resolve ``keys`` in order."""
        return [self.resolve(key) for key in keys]

    @overload
    def get(self, dependency: type[T]) -> T: ...

    @overload
    def get(self, dependency: Any) -> Any: ...

    def get(self, dependency: Any) -> Any:
        """Return the value bound to ``dependency``.

        ``Annotated[T, Tag(name)]`` resolves the tagged binding.

        Args:
            dependency: Type, ``NewType`` or tagged annotation to resolve.

        """
        return self.resolve(BindingKey.from_annotation(dependency))

    @overload
    def get_tagged(self, tag: str, dependency: type[T]) -> T: ...

    @overload
    def get_tagged(self, tag: str, dependency: Any) -> Any: ...

    def get_tagged(self, tag: str, dependency: Any) -> Any:
        """Return the value bound to ``dependency`` under ``tag``."""
        return self.resolve(BindingKey(dependency, tag))

    def get_tagged_bool(self, tag: str) -> bool:
        return self.get_tagged(tag, bool)

    def get_tagged_int(self, tag: str) -> int:
        return self.get_tagged(tag, int)

    def get_tagged_float(self, tag: str) -> float:
        return self.get_tagged(tag, float)

    def get_tagged_complex(self, tag: str) -> complex:
        return self.get_tagged(tag, complex)

    def get_tagged_str(self, tag: str) -> str:
        return self.get_tagged(tag, str)

    def get_tagged_bytes(self, tag: str) -> bytes:
        return self.get_tagged(tag, bytes)

    def call(self, function: Callable[..., T]) -> T:
        """Call ``function`` with every required parameter resolved from its annotation.

        Every parameter key is checked for a binding before any value is
        built, so a missing binding never leaves half-constructed singletons
        behind.

        Args:
            function: Callable whose annotated parameters name binding keys.

        """
        signature = self._extractor.extract_signature(function)
        values = self._resolve_for(function, signature.keys)
        args, kwargs = signature.arguments(values)
        return function(*args, **kwargs)

    def call_tagged(self, function: Callable[[Any], T]) -> T:
        """Call ``function`` with its single dataclass bundle assembled from bindings."""
        bundle = self._extractor.extract_bundle(function)
        values = self._resolve_for(function, bundle.keys)
        return function(bundle.assemble(values))

    def populate(self, instance: Any) -> None:
        """Assign every init field of a dataclass instance from its binding key.

        Args:
            instance: Instance of a non-frozen dataclass.

        """
        instance_type = type(instance)
        if is_runtime_class(instance) or not dataclasses.is_dataclass(instance):
            msg = "Populate target must be a dataclass instance"
            raise InjectWireInvalidRegistrationError(msg).with_tag("type", repr(instance))
        if instance_type.__dataclass_params__.frozen:  # type: ignore[attr-defined]
            msg = "Populate target must not be a frozen dataclass"
            raise InjectWireInvalidRegistrationError(msg).with_tag("type", instance_type)

        bundle = self._extractor.extract_dataclass(instance_type)
        values = self._resolve_for(instance_type, bundle.keys)
        for bundle_field, value in zip(bundle.fields, values, strict=True):
            setattr(instance, bundle_field.name, value)

    def _resolve_for(self, function: Callable[..., Any], keys: Sequence[BindingKey]) -> list[Any]:
        try:
            for key in keys:
                self._get_binding(key)
            return self.resolve_all(keys)
        except InjectWireError as error:
            error.with_tag("function", self._extractor.provider_name(function))
            raise

    def new_child_injector(
        self,
        overrides: Any = None,
        *modules: Module,
        name: str | None = None,
        lock_mode: LockMode | None = None,
    ) -> Injector:
        """Create a child injector whose lookups fall through to this one.

        Args:
            overrides: Dependency, usually a ``NewType`` over ``Module``, that
                may be bound in this injector or an ancestor. When it resolves
                to a ``Module``, its bindings replace same-key bindings of
                ``modules`` instead of raising already-bound. An unbound
                ``overrides`` is ignored.
            modules: Modules owned by the child.
            name: Label of the child.
            lock_mode: Locking strategy; inherited from this injector by default.

        Examples:
            .. code-block:: python

                PaymentOverrides = NewType("PaymentOverrides", Module)

                overrides = Module()
                overrides.bind(PaymentGateway).to_singleton(FakeGateway())
                root_module.bind(PaymentOverrides).to_singleton(overrides)

                root = Injector(root_module)
                payments = root.new_child_injector(PaymentOverrides, payment_module())

        """
        if overrides is not None:
            binding = self._find_binding(BindingKey.from_annotation(overrides))
            if binding is not None:
                override_module = binding.get()
                if isinstance(override_module, Module):
                    logger.debug("Applying override module %s to child of %s", override_module, self)
                    modules = (override(*modules).with_overrides(override_module),)
        return Injector(*modules, name=name, parent=self, lock_mode=lock_mode)

    def dependency_tree(self) -> DependencyTree:
        """Re-run validation and return the tree of bindings it walked."""
        context = ResolutionContext.for_injector(self)
        self._validate(context)
        return context.tree()

    def __str__(self) -> str:
        parent = f", parent {self._parent}" if self._parent is not None else ""
        return f"injector{{{self._name}}}{parent}"


__all__ = ["Injector"]
