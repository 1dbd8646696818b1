from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from injectwire._internal.type_checks import type_name
from injectwire.markers import split_tag_annotation


@dataclass(frozen=True, slots=True)
class BindingKey:
    """Identify one binding: a dependency type plus an optional tag.

    Two keys are equal when both the dependency and the tag match exactly, so
    ``BindingKey(Greeter, "english")`` and ``BindingKey(Greeter, "german")``
    name independent bindings and neither satisfies the untagged
    ``BindingKey(Greeter)``.
    """

    dependency: Any
    tag: str | None = None

    @classmethod
    def from_annotation(cls, annotation: Any) -> BindingKey:
        """Build a key from ``T`` or ``Annotated[T, Tag(name)]``."""
        dependency, tag = split_tag_annotation(annotation)
        return cls(dependency, tag)

    def __str__(self) -> str:
        name = type_name(self.dependency)
        if self.tag is None:
            return name
        return f"{name} tag:{self.tag}"
