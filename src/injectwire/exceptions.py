from __future__ import annotations

from typing import Any

from typing_extensions import Self


class InjectWireError(Exception):
    """Represent a base class for all InjectWire-specific failures.

    Catch this type when you want to handle any InjectWire error path without
    matching each concrete exception class individually.

    Every error carries an ordered list of diagnostic tags. Layers that see the
    error on its way up attach context with ``with_tag`` (the binding key that
    was missing, the constructor that asked for it, the stack trail of a
    cycle) and re-raise the same instance.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.tags: list[tuple[str, Any]] = []

    def with_tag(self, key: str, value: Any) -> Self:
        """Append a diagnostic tag and return the same error for re-raising.

        Args:
            key: Tag name rendered before the value.
            value: Tag value, rendered with ``str``.

        """
        self.tags.append((key, value))
        return self

    def copy(self) -> Self:
        """Return a shallow copy whose tag list can grow independently."""
        clone = type(self).__new__(type(self), *self.args)
        clone.__dict__.update(self.__dict__)
        clone.tags = list(self.tags)
        clone.__cause__ = self.__cause__
        return clone

    def get_tag(self, key: str) -> Any | None:
        """Return the first value recorded under ``key``, if any.

        Args:
            key: Tag name to look up.

        """
        for tag_key, value in self.tags:
            if tag_key == key:
                return value
        return None

    def __str__(self) -> str:
        value = f"injectwire: {self.message}"
        if not self.tags:
            return value
        rendered = "\n".join(f"{key}:{tag_value}" for key, tag_value in self.tags)
        return value + "\n\t" + rendered.replace("\n", "\n\t")


class InjectWireInvalidRegistrationError(InjectWireError):
    """Signal an invalid binding declaration.

    Recorded on a ``Module`` (never raised by ``bind*`` calls directly) when a
    type is not supported for the binding method, a tag is empty, a singleton
    value is ``None`` or not an instance of the bound type, an alias target is
    not assignable to the interface, or a constructor signature cannot be
    turned into binding keys.

    The recorded errors surface together as ``InjectWireBindingErrors`` when
    the module is handed to an ``Injector``.
    """


class InjectWireAlreadyBoundError(InjectWireError):
    """Signal that a binding key was declared more than once.

    Recorded on a module when the same key is bound twice in it (or arrives
    twice through ``Module.install``), and raised during injector construction
    when two modules, or a child and one of its ancestors, declare the same key.
    """


class InjectWireBindingErrors(InjectWireError):
    """Signal that a module carried declaration errors.

    Raised by ``Injector`` construction as soon as it reaches a module with
    recorded errors. The individual errors are kept in ``errors`` and rendered
    as numbered tags.
    """

    def __init__(self, errors: list[InjectWireError]) -> None:
        super().__init__("Errors with bindings")
        self.errors = list(errors)
        for index, error in enumerate(self.errors, start=1):
            self.with_tag(str(index), str(error))


class InjectWireNoFinalBindingError(InjectWireError):
    """Signal an alias chain that does not end in a concrete binding.

    Alias bindings created with ``InterfaceBuilder.to`` are resolved inside the
    module that declared them. Typical fix is binding the alias target in the
    same module.
    """


class InjectWireDependencyNotRegisteredError(InjectWireError):
    """Signal that a binding key has no binding in the injector or its ancestors.

    Raised during injector validation for declared dependencies and by
    ``resolve``/``get`` for keys that were never bound.
    """

    def __init__(self, message: str, *, binding_key: Any) -> None:
        super().__init__(message)
        self.binding_key = binding_key


class InjectWireCircularDependencyError(InjectWireError):
    """Signal a dependency cycle between bindings.

    Raised during injector validation with the full stack trail attached, and
    by a lazy singleton that re-enters its own construction on the same thread.
    """


class InjectWireConstructorCallError(InjectWireError):
    """Signal that a constructor raised while producing a value.

    The original exception is available as ``__cause__``. Resolution errors are
    never fatal to the injector: a later ``get`` of the same key retries.
    """


class InjectWireEagerBindingError(InjectWireError):
    """Signal that an eager singleton or its callback failed during construction.

    The injector under construction is discarded. The original exception is
    available as ``__cause__``.
    """
