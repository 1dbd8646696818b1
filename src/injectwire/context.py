from __future__ import annotations

from typing import TYPE_CHECKING, Any

from injectwire.exceptions import InjectWireCircularDependencyError

if TYPE_CHECKING:
    from injectwire.injector import Injector

_INDENT_REGULAR = "├── "
_INDENT_END = "└── "
_INDENT_SUB_REGULAR = "│   "
_INDENT_SUB_END = "    "


class _RootLabel:
    """Stand-in key and binding for the root frame of a validation pass."""

    __slots__ = ("_label",)

    def __init__(self, label: str) -> None:
        self._label = label

    def __str__(self) -> str:
        return self._label


class StackFrame:
    """One (key, binding) node of the validation stack and dependency tree."""

    __slots__ = ("binding", "children", "key", "parent")

    def __init__(self, parent: StackFrame | None, key: Any, binding: Any) -> None:
        self.parent = parent
        self.children: list[StackFrame] = []
        self.key = key
        self.binding = binding

    def push(self, key: Any, binding: Any) -> StackFrame:
        """Open a child frame, failing if ``binding`` is already on the stack.

        Frames are compared by binding identity, not by key: alias keys share
        the binding of their target.
        """
        frame: StackFrame | None = self
        while frame is not None:
            if frame.binding is binding:
                msg = "Circular dependency"
                raise (
                    InjectWireCircularDependencyError(msg)
                    .with_tag("binding_key", f" {key}")
                    .with_tag("call", f" {binding}")
                    .with_tag("stack", "\n" + self.trail("\t* "))
                )
            frame = frame.parent
        child = StackFrame(self, key, binding)
        self.children.append(child)
        return child

    def pop(self) -> StackFrame:
        return self.parent if self.parent is not None else self

    def trail(self, indent: str = "") -> str:
        """Render the frames from the root down to this one, one per line."""
        lines: list[str] = []
        frame: StackFrame | None = self
        while frame is not None:
            lines.append(f"{indent}{frame.key} : {frame.binding}")
            frame = frame.parent
        return "\n".join(reversed(lines))

    def render(self, lines: list[str], indent: str, sub_indent: str) -> None:
        lines.append(f"{indent}{self.key} : {self.binding}")
        ordered = sorted(self.children, key=lambda child: child.trail())
        last = len(ordered) - 1
        for index, child in enumerate(ordered):
            if index == last:
                child.render(lines, sub_indent + _INDENT_END, sub_indent + _INDENT_SUB_END)
            else:
                child.render(lines, sub_indent + _INDENT_REGULAR, sub_indent + _INDENT_SUB_REGULAR)

    def __str__(self) -> str:
        return self.trail()


class DependencyTree:
    """The tree of (key, binding) pairs walked by a validation pass."""

    __slots__ = ("_root",)

    def __init__(self, root: StackFrame) -> None:
        self._root = root

    @property
    def root(self) -> StackFrame:
        return self._root

    def __str__(self) -> str:
        lines: list[str] = []
        self._root.render(lines, "", "")
        return "\n".join(lines) + "\n"


class ResolutionContext:
    """Validation stack for one injector, detecting cycles as it goes."""

    __slots__ = ("_current", "_root")

    def __init__(self, root: StackFrame) -> None:
        self._root = root
        self._current = root

    @classmethod
    def for_injector(cls, injector: Injector) -> ResolutionContext:
        scope = "child" if injector.parent is not None else "root"
        return cls(StackFrame(None, _RootLabel(scope), _RootLabel(injector.name)))

    def push(self, key: Any, binding: Any) -> None:
        self._current = self._current.push(key, binding)

    def pop(self) -> None:
        self._current = self._current.pop()

    def tree(self) -> DependencyTree:
        return DependencyTree(self._root)
