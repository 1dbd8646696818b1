from typing import Annotated, Any, NamedTuple, TypeVar, get_args, get_origin

T = TypeVar("T")
_ANNOTATED_MARKER_MIN_ARGS = 2


class Tag(NamedTuple):
    """Differentiate multiple bindings for the same base type.

    Attach ``Tag`` metadata to ``typing.Annotated`` on constructor parameters,
    bundle fields, populated dataclass fields or constructor return
    annotations. The annotated dependency is looked up under the tagged
    binding key, the same key ``Module.bind_tagged`` declares.

    Examples:
        .. code-block:: python

            from typing import Annotated, TypeAlias


            class Greeter: ...


            EnglishGreeter: TypeAlias = Annotated[Greeter, Tag("english")]
            GermanGreeter: TypeAlias = Annotated[Greeter, Tag("german")]

    """

    name: str


def tagged(dependency: T, name: str) -> Any:
    """Return ``Annotated[dependency, Tag(name)]``."""
    return _build_annotated((dependency, Tag(name)))


def split_tag_annotation(annotation: Any) -> tuple[Any, str | None]:
    """Return the inner dependency and the tag name of an annotation.

    Plain annotations come back unchanged with ``None``. For ``Annotated``
    annotations the last ``Tag`` in the metadata wins; other metadata is
    dropped from the key.
    """
    if get_origin(annotation) is not Annotated:
        return annotation, None
    annotation_args = get_args(annotation)
    if len(annotation_args) < _ANNOTATED_MARKER_MIN_ARGS:
        return annotation, None  # pragma: no cover - Annotated requires at least 2 args
    tag_name: str | None = None
    for metadata in annotation_args[1:]:
        if isinstance(metadata, Tag):
            tag_name = metadata.name
    return annotation_args[0], tag_name


def _build_annotated(params: tuple[object, ...]) -> Any:
    """Return Annotated[...] with a pre-built params tuple (Py 3.10+ compatible)."""
    try:
        return Annotated.__class_getitem__(params)  # type: ignore[attr-defined]
    except AttributeError:
        return Annotated.__getitem__(params)  # type: ignore[attr-defined]
