from __future__ import annotations

import abc
import types
from typing import Any, TypeGuard

CONSTANT_TYPES: tuple[type[Any], ...] = (bool, int, float, complex, str, bytes)
"""Primitive kinds bindable only through the tagged constant binders."""


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations.

    Args:
        candidate: Value being checked for eligibility or runtime type constraints.

    """
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def is_new_type(candidate: object) -> bool:
    """Return true when candidate was created by ``typing.NewType``."""
    return callable(candidate) and hasattr(candidate, "__supertype__")


def is_constant_type(candidate: object) -> bool:
    """Return true for the primitive kinds in ``CONSTANT_TYPES``."""
    return any(candidate is constant_type for constant_type in CONSTANT_TYPES)


def is_interface_type(candidate: object) -> bool:
    """Return true for Protocol classes and classes built on ``abc.ABCMeta``."""
    if not is_runtime_class(candidate):
        return False
    return bool(getattr(candidate, "_is_protocol", False)) or isinstance(candidate, abc.ABCMeta)


def is_bindable_type(candidate: object) -> bool:
    """Return true for types accepted by ``Module.bind``.

    Runtime classes (concrete, abstract or Protocol) and ``NewType`` aliases
    are accepted. Bare primitives are reserved for the tagged constant binders.
    """
    if is_new_type(candidate):
        return True
    return (
        is_runtime_class(candidate)
        and not is_constant_type(candidate)
        and candidate is not object
        and candidate is not type(None)
    )


def is_supported_key_type(candidate: object) -> bool:
    """Return true for types that may appear in a parameter or bundle field key."""
    return is_bindable_type(candidate) or is_constant_type(candidate)


def is_unchecked_protocol(candidate: object) -> bool:
    """Return true for Protocol classes that are not ``runtime_checkable``."""
    return bool(getattr(candidate, "_is_protocol", False)) and not getattr(
        candidate,
        "_is_runtime_protocol",
        False,
    )


def is_assignable(dependency: Any, value: object) -> bool:
    """Return true when ``value`` may be bound as a singleton for ``dependency``.

    Types that cannot answer ``isinstance`` (non runtime-checkable Protocols,
    classes with exotic metaclasses) accept any value.
    """
    while is_new_type(dependency):
        dependency = dependency.__supertype__
    if not is_runtime_class(dependency) or is_unchecked_protocol(dependency):
        return True
    if dependency is int and isinstance(value, bool):
        return False
    try:
        return isinstance(value, dependency)
    except TypeError:
        return True


def is_subtype(candidate: Any, dependency: Any) -> bool:
    """Return true when ``candidate`` may stand in for ``dependency`` in an alias."""
    while is_new_type(candidate):
        candidate = candidate.__supertype__
    if not is_runtime_class(candidate) or not is_runtime_class(dependency):
        return True
    if is_unchecked_protocol(dependency):
        return True
    try:
        return issubclass(candidate, dependency)
    except TypeError:
        return True


def type_name(dependency: Any) -> str:
    """Return a readable name for a dependency type."""
    if is_new_type(dependency) or is_runtime_class(dependency):
        return getattr(dependency, "__qualname__", None) or dependency.__name__
    return repr(dependency)


__all__ = [
    "CONSTANT_TYPES",
    "is_assignable",
    "is_bindable_type",
    "is_constant_type",
    "is_interface_type",
    "is_new_type",
    "is_runtime_class",
    "is_subtype",
    "is_supported_key_type",
    "is_unchecked_protocol",
    "type_name",
]
