from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import Any

from injectwire._internal.type_checks import (
    is_assignable,
    is_bindable_type,
    is_constant_type,
    is_interface_type,
    is_subtype,
    is_supported_key_type,
    type_name,
)
from injectwire.bindings import BindingKind, BindingSpec, EagerBinding
from injectwire.dependencies import DependenciesExtractor
from injectwire.exceptions import (
    InjectWireAlreadyBoundError,
    InjectWireError,
    InjectWireInvalidRegistrationError,
)
from injectwire.keys import BindingKey

logger = logging.getLogger(__name__)


class Module:
    """Accumulate binding declarations for one or more injectors.

    ``bind*`` calls never raise. A call that cannot be honored (unsupported
    type, empty tag, duplicate key, unusable constructor) records an error on
    the module and returns a no-op builder so chained declarations keep
    working. Recorded errors surface together as ``InjectWireBindingErrors``
    when the module is passed to an ``Injector``.

    Modules are not thread-safe: finish declaring bindings from one thread
    before handing the module to an injector.

    Examples:
        .. code-block:: python

            module = Module()
            module.bind(Config).to_singleton(Config(debug=True))
            module.bind_interface(Repository).to(SqlRepository)
            module.bind(SqlRepository).to_singleton_constructor(SqlRepository)
            module.bind_tagged_str("region").to_singleton("eu-west-1")

            injector = Injector(module)

    """

    def __init__(self) -> None:
        self._bindings: dict[BindingKey, BindingSpec] = {}
        self._errors: list[InjectWireError] = []
        self._eager: list[EagerBinding] = []
        self._extractor = DependenciesExtractor()

    @property
    def bindings(self) -> Mapping[BindingKey, BindingSpec]:
        """Read-only view of the declared bindings."""
        return MappingProxyType(self._bindings)

    @property
    def errors(self) -> list[InjectWireError]:
        """Declaration errors recorded so far."""
        return list(self._errors)

    @property
    def eager(self) -> list[EagerBinding]:
        """Lazy singletons marked to be built at injector construction."""
        return list(self._eager)

    def bind(self, *dependencies: Any) -> Builder:
        """Start a binding for one or more classes or ``NewType`` aliases.

        Args:
            dependencies: Types sharing the binding that the returned builder declares.

        """
        if not self._verify_supported_types(dependencies, is_bindable_type):
            return _NoOpBuilder()
        return self._bind(dependencies, tag=None)

    def bind_tagged(self, tag: str, *dependencies: Any) -> Builder:
        """Start a tagged binding for one or more classes or ``NewType`` aliases.

        Args:
            tag: Non-empty tag distinguishing this binding from others of the same type.
            dependencies: Types sharing the binding that the returned builder declares.

        """
        if not self._verify_tag(tag):
            return _NoOpBuilder()
        if not self._verify_supported_types(dependencies, is_bindable_type):
            return _NoOpBuilder()
        return self._bind(dependencies, tag=tag)

    def bind_interface(self, *interfaces: Any) -> InterfaceBuilder:
        """Start a binding for Protocol or ABC types, allowing ``.to(other)`` aliases.

        Args:
            interfaces: Interface types sharing the binding that the returned builder declares.

        """
        if not self._verify_supported_types(interfaces, is_interface_type):
            return _NoOpBuilder()
        return self._bind(interfaces, tag=None)

    def bind_tagged_interface(self, tag: str, *interfaces: Any) -> InterfaceBuilder:
        """Start a tagged binding for Protocol or ABC types.

        Args:
            tag: Non-empty tag distinguishing this binding from others of the same type.
            interfaces: Interface types sharing the binding that the returned builder declares.

        """
        if not self._verify_tag(tag):
            return _NoOpBuilder()
        if not self._verify_supported_types(interfaces, is_interface_type):
            return _NoOpBuilder()
        return self._bind(interfaces, tag=tag)

    def bind_tagged_constant(self, tag: str, constant_type: type[Any]) -> Builder:
        """Start a tagged binding for a primitive kind.

        Args:
            tag: Non-empty tag naming the constant.
            constant_type: One of ``bool``, ``int``, ``float``, ``complex``, ``str``, ``bytes``.

        """
        if not self._verify_tag(tag):
            return _NoOpBuilder()
        if not self._verify_supported_types((constant_type,), is_constant_type):
            return _NoOpBuilder()
        return self._bind((constant_type,), tag=tag)

    def bind_tagged_bool(self, tag: str) -> Builder:
        return self.bind_tagged_constant(tag, bool)

    def bind_tagged_int(self, tag: str) -> Builder:
        return self.bind_tagged_constant(tag, int)

    def bind_tagged_float(self, tag: str) -> Builder:
        return self.bind_tagged_constant(tag, float)

    def bind_tagged_complex(self, tag: str) -> Builder:
        return self.bind_tagged_constant(tag, complex)

    def bind_tagged_str(self, tag: str) -> Builder:
        return self.bind_tagged_constant(tag, str)

    def bind_tagged_bytes(self, tag: str) -> Builder:
        return self.bind_tagged_constant(tag, bytes)

    def bind_constructor(self, *factories: Callable[..., Any]) -> None:
        """Bind each factory as a constructor under the key its return annotation names.

        Args:
            factories: Constructor functions or classes.

        """
        self._bind_auto(factories, singleton=False)

    def bind_singleton_constructor(self, *factories: Callable[..., Any]) -> None:
        """Bind each factory as a lazy singleton under the key its return annotation names.

        Args:
            factories: Constructor functions or classes.

        """
        self._bind_auto(factories, singleton=True)

    def install(self, *others: Module) -> None:
        """Merge the bindings, errors and eager markers of other modules into this one.

        Keys already bound here are recorded as ``InjectWireAlreadyBoundError``.

        Args:
            others: Modules to merge, in order.

        """
        for other in others:
            self._errors.extend(other._errors)
            for key, spec in other._bindings.items():
                self.set_binding(key, spec)
            self._eager.extend(other._eager)

    def binding(self, key: BindingKey) -> BindingSpec | None:
        """Return the spec declared for ``key`` in this module, if any."""
        return self._bindings.get(key)

    def set_binding(self, key: BindingKey, spec: BindingSpec) -> None:
        """Declare ``spec`` for ``key``, recording an error if the key is taken."""
        found = self._bindings.get(key)
        if found is not None:
            error = (
                InjectWireAlreadyBoundError("Already found a binding for this binding key")
                .with_tag("binding_key", key)
                .with_tag("found_binding", found)
            )
            self.add_error(error)
            return
        self._bindings[key] = spec

    def replace_binding(self, key: BindingKey, spec: BindingSpec) -> None:
        self._bindings[key] = spec

    def add_eager(self, eager: EagerBinding) -> None:
        self._eager.append(eager)

    def add_error(self, error: InjectWireError) -> None:
        logger.debug("Recorded binding error: %s", error)
        self._errors.append(error)

    def _bind(self, dependencies: tuple[Any, ...], *, tag: str | None) -> _KeysBuilder:
        return _KeysBuilder(self, [BindingKey(dependency, tag) for dependency in dependencies])

    def _bind_auto(self, factories: Iterable[Callable[..., Any]], *, singleton: bool) -> None:
        for factory in factories:
            try:
                key = self._extractor.extract_return_key(factory)
            except InjectWireError as error:
                self.add_error(error)
                continue
            is_supported = is_bindable_type if key.tag is None else is_supported_key_type
            if not self._verify_supported_types((key.dependency,), is_supported):
                continue
            builder = self._bind((key.dependency,), tag=key.tag)
            if singleton:
                builder.to_singleton_constructor(factory)
            else:
                builder.to_constructor(factory)

    def _verify_tag(self, tag: str) -> bool:
        if not isinstance(tag, str) or tag == "":
            self.add_error(InjectWireInvalidRegistrationError("Tag empty").with_tag("tag", repr(tag)))
            return False
        return True

    def _verify_supported_types(
        self,
        dependencies: tuple[Any, ...],
        is_supported: Callable[[Any], bool],
    ) -> bool:
        if not dependencies:
            self.add_error(InjectWireInvalidRegistrationError("No types to bind"))
            return False
        ok = True
        # keep looping so every unsupported type gets its own error
        for dependency in dependencies:
            if not is_supported(dependency):
                self.add_error(
                    InjectWireInvalidRegistrationError(
                        "Type is not supported for this binding method",
                    ).with_tag("type", dependency),
                )
                ok = False
        return ok

    def __str__(self) -> str:
        items = " ".join(f"{key}:{spec}" for key, spec in self._bindings.items())
        return f"module{{{items}}}"


class SingletonBuilder:
    """Returned by singleton constructor bindings to allow eager construction."""

    def __init__(self, module: Module, keys: list[BindingKey]) -> None:
        self._module = module
        self._keys = keys

    def eager(self, callback: Callable[[Any], Any] | None = None) -> None:
        """Build the singleton when the injector is constructed.

        Args:
            callback: Optional hook called once with the built value.

        """
        self._module.add_eager(EagerBinding(key=self._keys[0], callback=callback))


class Builder(ABC):
    """Terminal operations of a ``Module.bind`` call."""

    @abstractmethod
    def to_singleton(self, value: Any) -> None:
        """Bind the keys to a pre-built value."""

    @abstractmethod
    def to_constructor(self, factory: Callable[..., Any]) -> None:
        """Bind the keys to a factory called on every request."""

    @abstractmethod
    def to_singleton_constructor(self, factory: Callable[..., Any]) -> SingletonBuilder:
        """Bind the keys to a factory called at most once per injector."""

    @abstractmethod
    def to_tagged_constructor(self, factory: Callable[..., Any]) -> None:
        """Bind the keys to a factory taking one dataclass bundle, called on every request."""

    @abstractmethod
    def to_tagged_singleton_constructor(self, factory: Callable[..., Any]) -> SingletonBuilder:
        """Bind the keys to a factory taking one dataclass bundle, called at most once per injector."""


class InterfaceBuilder(Builder):
    """Terminal operations of a ``Module.bind_interface`` call."""

    @abstractmethod
    def to(self, other: Any) -> None:
        """Alias the interface keys to the binding of ``other`` in the same module."""


class _KeysBuilder(InterfaceBuilder):
    def __init__(self, module: Module, keys: list[BindingKey]) -> None:
        self._module = module
        self._keys = keys

    def to_singleton(self, value: Any) -> None:
        if value is None:
            self._module.add_error(InjectWireInvalidRegistrationError("Singleton value is None"))
            return
        for key in self._keys:
            if not is_assignable(key.dependency, value):
                self._module.add_error(
                    InjectWireInvalidRegistrationError("Binding not assignable")
                    .with_tag("binding_key", key)
                    .with_tag("value_type", type_name(type(value))),
                )
                return
        self._set(BindingSpec(kind=BindingKind.SINGLETON, value=value))

    def to_constructor(self, factory: Callable[..., Any]) -> None:
        self._constructor(factory, BindingKind.CONSTRUCTOR)

    def to_singleton_constructor(self, factory: Callable[..., Any]) -> SingletonBuilder:
        if not self._constructor(factory, BindingKind.LAZY_SINGLETON):
            return _NoOpSingletonBuilder()
        return SingletonBuilder(self._module, self._keys)

    def to_tagged_constructor(self, factory: Callable[..., Any]) -> None:
        self._tagged_constructor(factory, BindingKind.TAGGED_CONSTRUCTOR)

    def to_tagged_singleton_constructor(self, factory: Callable[..., Any]) -> SingletonBuilder:
        if not self._tagged_constructor(factory, BindingKind.TAGGED_LAZY_SINGLETON):
            return _NoOpSingletonBuilder()
        return SingletonBuilder(self._module, self._keys)

    def to(self, other: Any) -> None:
        if not is_bindable_type(other):
            self._module.add_error(
                InjectWireInvalidRegistrationError(
                    "Type is not supported for this binding method",
                ).with_tag("type", other),
            )
            return
        for key in self._keys:
            if not is_subtype(other, key.dependency):
                self._module.add_error(
                    InjectWireInvalidRegistrationError("Binding not assignable")
                    .with_tag("binding_key", key)
                    .with_tag("to", type_name(other)),
                )
                return
        self._set(BindingSpec(kind=BindingKind.ALIAS, target=BindingKey(other)))

    def _constructor(self, factory: Callable[..., Any], kind: BindingKind) -> bool:
        if not self._verify_callable(factory):
            return False
        extractor = DependenciesExtractor()
        try:
            signature = extractor.extract_signature(factory)
        except InjectWireError as error:
            self._module.add_error(error)
            return False
        self._set(
            BindingSpec(
                kind=kind,
                factory=factory,
                signature=signature,
                factory_name=extractor.provider_name(factory),
            ),
        )
        return True

    def _tagged_constructor(self, factory: Callable[..., Any], kind: BindingKind) -> bool:
        if not self._verify_callable(factory):
            return False
        extractor = DependenciesExtractor()
        try:
            bundle = extractor.extract_bundle(factory)
        except InjectWireError as error:
            self._module.add_error(error)
            return False
        self._set(
            BindingSpec(
                kind=kind,
                factory=factory,
                bundle=bundle,
                factory_name=extractor.provider_name(factory),
            ),
        )
        return True

    def _verify_callable(self, factory: Any) -> bool:
        if not callable(factory):
            self._module.add_error(
                InjectWireInvalidRegistrationError("Argument is not a function").with_tag(
                    "constructor",
                    repr(factory),
                ),
            )
            return False
        return True

    def _set(self, spec: BindingSpec) -> None:
        for key in self._keys:
            self._module.set_binding(key, spec)


class _NoOpSingletonBuilder(SingletonBuilder):
    def __init__(self) -> None:
        pass

    def eager(self, callback: Callable[[Any], Any] | None = None) -> None:
        pass


class _NoOpBuilder(InterfaceBuilder):
    """Builder returned by a failed ``bind*`` call; the error is already recorded."""

    def to_singleton(self, value: Any) -> None:
        pass

    def to_constructor(self, factory: Callable[..., Any]) -> None:
        pass

    def to_singleton_constructor(self, factory: Callable[..., Any]) -> SingletonBuilder:
        return _NoOpSingletonBuilder()

    def to_tagged_constructor(self, factory: Callable[..., Any]) -> None:
        pass

    def to_tagged_singleton_constructor(self, factory: Callable[..., Any]) -> SingletonBuilder:
        return _NoOpSingletonBuilder()

    def to(self, other: Any) -> None:
        pass


class OverrideBuilder:
    """Returned by ``override`` to pick the modules whose bindings take precedence."""

    def __init__(self, modules: tuple[Module, ...]) -> None:
        self._modules = modules

    def with_overrides(self, *overrides: Module) -> Module:
        """Merge the base modules, then let every override binding replace its key.

        Errors of all modules are kept. Eager markers of overridden keys follow
        whichever binding wins.

        Args:
            overrides: Modules whose bindings replace same-key base bindings.

        """
        merged = Module()
        merged.install(*self._modules)
        overriding = Module()
        overriding.install(*overrides)
        for error in overriding.errors:
            merged.add_error(error)
        for key, spec in overriding.bindings.items():
            merged.replace_binding(key, spec)
        overridden_keys = set(overriding.bindings)
        kept_eager = [eager for eager in merged.eager if eager.key not in overridden_keys]
        merged._eager = [*kept_eager, *overriding.eager]
        return merged


def override(*modules: Module) -> OverrideBuilder:
    """Start overriding the bindings of ``modules``.

    Examples:
        .. code-block:: python

            test_overrides = Module()
            test_overrides.bind(PaymentGateway).to_singleton(FakeGateway())

            injector = Injector(override(production_module()).with_overrides(test_overrides))

    """
    return OverrideBuilder(modules)


__all__ = [
    "Builder",
    "InterfaceBuilder",
    "Module",
    "OverrideBuilder",
    "SingletonBuilder",
    "override",
]
