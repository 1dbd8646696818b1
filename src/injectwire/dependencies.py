from __future__ import annotations

import dataclasses
import inspect
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from inspect import Parameter
from typing import Any, get_type_hints

from injectwire._internal.type_checks import is_runtime_class, is_supported_key_type
from injectwire.exceptions import InjectWireInvalidRegistrationError
from injectwire.keys import BindingKey

_MISSING_ANNOTATION: Any = object()


@dataclass(frozen=True, slots=True)
class ParameterSlot:
    """A constructor parameter filled from one binding key."""

    name: str
    kind: Any
    key: BindingKey


@dataclass(frozen=True, slots=True)
class ConstructorSignature:
    """Ordered parameter slots of a constructor, derived once at bind time."""

    parameters: tuple[ParameterSlot, ...]

    @property
    def keys(self) -> tuple[BindingKey, ...]:
        return tuple(parameter.key for parameter in self.parameters)

    def arguments(self, values: Sequence[Any]) -> tuple[list[Any], dict[str, Any]]:
        """Split resolved values into positional and keyword arguments."""
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for parameter, value in zip(self.parameters, values, strict=True):
            if parameter.kind is Parameter.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[parameter.name] = value
        return args, kwargs


@dataclass(frozen=True, slots=True)
class BundleField:
    """A dataclass field filled from one binding key."""

    name: str
    key: BindingKey


@dataclass(frozen=True, slots=True)
class BundleSpec:
    """Ordered (field, key) pairs of the dataclass a tagged constructor receives."""

    bundle_type: type[Any]
    fields: tuple[BundleField, ...]

    @property
    def keys(self) -> tuple[BindingKey, ...]:
        return tuple(bundle_field.key for bundle_field in self.fields)

    def assemble(self, values: Sequence[Any]) -> Any:
        """Instantiate the bundle with one resolved value per field."""
        return self.bundle_type(
            **{
                bundle_field.name: value
                for bundle_field, value in zip(self.fields, values, strict=True)
            },
        )


class DependenciesExtractor:
    """Derive binding keys from constructor signatures and dataclass fields.

    Failures raise ``InjectWireInvalidRegistrationError``; ``Module`` records
    them instead of letting them escape the ``bind*`` call.
    """

    def extract_signature(self, factory: Callable[..., Any]) -> ConstructorSignature:
        """Return the parameter slots of ``factory``.

        Parameters with a default value and variadic parameters are left to
        the callable; every other parameter needs an annotation naming a
        supported binding type.

        Args:
            factory: Constructor function or class to inspect.

        """
        factory_name = self.provider_name(factory)
        parameters = self._provider_parameters(factory)
        annotations, annotation_error = self._resolved_type_hints(factory)

        slots: list[ParameterSlot] = []
        for parameter in parameters:
            if not self._is_required_parameter(parameter):
                continue
            annotation = self._resolve_parameter_annotation(
                parameter=parameter,
                annotations=annotations,
                annotation_error=annotation_error,
                provider_name=factory_name,
            )
            key = self._key_for_annotation(annotation, owner=factory_name, name=parameter.name)
            slots.append(ParameterSlot(name=parameter.name, kind=parameter.kind, key=key))
        return ConstructorSignature(parameters=tuple(slots))

    def extract_bundle(self, factory: Callable[..., Any]) -> BundleSpec:
        """Return the bundle spec of a tagged constructor.

        A tagged constructor takes exactly one parameter annotated with a
        dataclass type.

        Args:
            factory: Tagged constructor function to inspect.

        """
        factory_name = self.provider_name(factory)
        parameters = self._provider_parameters(factory)
        if len(parameters) != 1 or parameters[0].kind in (
            Parameter.VAR_POSITIONAL,
            Parameter.VAR_KEYWORD,
        ):
            msg = "Tagged constructor must have exactly one dataclass parameter"
            raise InjectWireInvalidRegistrationError(msg).with_tag("constructor", factory_name)

        annotations, annotation_error = self._resolved_type_hints(factory)
        bundle_type = self._resolve_parameter_annotation(
            parameter=parameters[0],
            annotations=annotations,
            annotation_error=annotation_error,
            provider_name=factory_name,
        )
        if not (is_runtime_class(bundle_type) and dataclasses.is_dataclass(bundle_type)):
            msg = "Tagged constructor must have exactly one dataclass parameter"
            raise (
                InjectWireInvalidRegistrationError(msg)
                .with_tag("constructor", factory_name)
                .with_tag("parameter_type", bundle_type)
            )
        return self.extract_dataclass(bundle_type)

    def extract_dataclass(self, bundle_type: type[Any]) -> BundleSpec:
        """Return the init fields of a dataclass as a bundle spec.

        Args:
            bundle_type: Dataclass type whose fields declare the dependencies.

        """
        bundle_name = self.provider_name(bundle_type)
        try:
            annotations = get_type_hints(bundle_type, include_extras=True)
        except (AttributeError, NameError, TypeError) as error:
            msg = "Unable to resolve dataclass field annotations"
            raise (
                InjectWireInvalidRegistrationError(msg)
                .with_tag("dataclass", bundle_name)
                .with_tag("err", error)
            ) from error

        bundle_fields = tuple(
            BundleField(
                name=dataclass_field.name,
                key=self._key_for_annotation(
                    annotations.get(dataclass_field.name, dataclass_field.type),
                    owner=bundle_name,
                    name=dataclass_field.name,
                ),
            )
            for dataclass_field in dataclasses.fields(bundle_type)
            if dataclass_field.init
        )
        return BundleSpec(bundle_type=bundle_type, fields=bundle_fields)

    def extract_return_key(self, factory: Callable[..., Any]) -> BindingKey:
        """Infer the key a constructor produces from its return annotation.

        Classes produce themselves. Functions must annotate their return type;
        ``Annotated[T, Tag(name)]`` return annotations produce tagged keys.

        Args:
            factory: Constructor function or class to inspect.

        """
        if is_runtime_class(factory):
            return BindingKey(factory)
        factory_name = self.provider_name(factory)
        annotations, annotation_error = self._resolved_type_hints(factory)
        annotation = annotations.get("return", _MISSING_ANNOTATION)
        if annotation is _MISSING_ANNOTATION or annotation is None or annotation is type(None):
            msg = "Unable to infer binding key from constructor return annotation"
            error = InjectWireInvalidRegistrationError(msg).with_tag("constructor", factory_name)
            if annotation_error is not None:
                raise error.with_tag("err", annotation_error) from annotation_error
            raise error
        return self._key_for_annotation(annotation, owner=factory_name, name="return")

    def provider_name(self, provider: Callable[..., Any]) -> str:
        name = getattr(provider, "__qualname__", None) or repr(provider)
        try:
            return f"<{name}{inspect.signature(provider)}>"
        except (TypeError, ValueError):
            return f"<{name}>"

    def _key_for_annotation(self, annotation: Any, *, owner: str, name: str) -> BindingKey:
        key = BindingKey.from_annotation(annotation)
        if not is_supported_key_type(key.dependency):
            msg = "Parameter type is not supported for injection"
            raise (
                InjectWireInvalidRegistrationError(msg)
                .with_tag("owner", owner)
                .with_tag("parameter", name)
                .with_tag("parameter_type", annotation)
            )
        if key.tag == "":
            msg = "Tag empty"
            raise InjectWireInvalidRegistrationError(msg).with_tag("owner", owner).with_tag("parameter", name)
        return key

    def _resolve_parameter_annotation(
        self,
        *,
        parameter: Parameter,
        annotations: dict[str, Any],
        annotation_error: Exception | None,
        provider_name: str,
    ) -> Any:
        annotation = annotations.get(parameter.name, _MISSING_ANNOTATION)
        if annotation is not _MISSING_ANNOTATION:
            return annotation

        raw_annotation = parameter.annotation
        if raw_annotation is not Parameter.empty and not isinstance(raw_annotation, str):
            return raw_annotation

        error = (
            InjectWireInvalidRegistrationError(
                "Unable to infer binding key for required parameter, add a type annotation",
            )
            .with_tag("constructor", provider_name)
            .with_tag("parameter", parameter.name)
        )
        if annotation_error is None:
            raise error
        raise error.with_tag("err", annotation_error) from annotation_error

    def _provider_parameters(self, provider: Callable[..., Any]) -> tuple[Parameter, ...]:
        try:
            return tuple(inspect.signature(provider).parameters.values())
        except (TypeError, ValueError) as error:
            msg = "Constructor signature cannot be inspected"
            raise (
                InjectWireInvalidRegistrationError(msg)
                .with_tag("constructor", repr(provider))
                .with_tag("err", error)
            ) from error

    def _resolved_type_hints(
        self,
        provider: Callable[..., Any],
    ) -> tuple[dict[str, Any], Exception | None]:
        annotations: dict[str, Any] = {}
        annotation_error: Exception | None = None

        # __init__ hints win over class-level attribute hints
        candidates = (provider.__init__, provider) if inspect.isclass(provider) else (provider,)
        for candidate in candidates:
            try:
                candidate_annotations = get_type_hints(candidate, include_extras=True)
            except (AttributeError, NameError, TypeError) as error:
                if annotation_error is None:
                    annotation_error = error
                continue
            for parameter_name, parameter_annotation in candidate_annotations.items():
                annotations.setdefault(parameter_name, parameter_annotation)

        return annotations, annotation_error

    def _is_required_parameter(self, parameter: Parameter) -> bool:
        return (
            parameter.default is Parameter.empty
            and parameter.kind is not Parameter.VAR_POSITIONAL
            and parameter.kind is not Parameter.VAR_KEYWORD
        )
