"""Type descriptors: the runtime view of a record type's declared fields.

Every extractor works against the ``TypeDescriptor`` protocol rather than a
concrete model class.  Pydantic models and dataclasses are adapted
automatically by ``describe()``; anything else can supply an explicit
``TableTypeDescriptor``.
"""

from __future__ import annotations

import dataclasses
import typing
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel
from pydantic.errors import PydanticUndefinedAnnotation

from modelmeta.errors import IntrospectionError
from modelmeta.introspection.kinds import type_name


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One declared field: its type with ``Annotated`` extras split out."""

    name: str
    annotation: Any
    markers: tuple[Any, ...] = ()
    alias: str | None = None
    computed: bool = False

    @property
    def type_name(self) -> str:
        return type_name(self.annotation)

    @property
    def path_segment(self) -> str:
        """Name used in serialized paths (alias when declared)."""
        return self.alias or self.name

    def find_marker(self, marker_type: type[Any]) -> Any | None:
        """Return the first marker of *marker_type*, or ``None``."""
        return next((m for m in self.markers if isinstance(m, marker_type)), None)


@runtime_checkable
class TypeDescriptor(Protocol):
    """Capability to enumerate a record type's declared fields in order."""

    @property
    def name(self) -> str: ...

    def fields(self) -> list[FieldSpec]: ...


def _split_annotated(annotation: Any) -> tuple[Any, tuple[Any, ...]]:
    if typing.get_origin(annotation) is typing.Annotated:
        base, *extras = typing.get_args(annotation)
        inner, more = _split_annotated(base)
        return inner, (*more, *extras)
    return annotation, ()


class PydanticTypeDescriptor:
    """Descriptor over a pydantic model class: declared fields, then computed fields."""

    def __init__(self, model: type[BaseModel]) -> None:
        if not model.__pydantic_complete__:
            try:
                model.model_rebuild()
            except PydanticUndefinedAnnotation as exc:
                raise IntrospectionError(model, str(exc)) from exc
        self.model = model

    @property
    def name(self) -> str:
        return self.model.__name__

    def fields(self) -> list[FieldSpec]:
        specs = [
            FieldSpec(
                name=name,
                annotation=fi.annotation,
                markers=tuple(fi.metadata),
                alias=fi.serialization_alias or fi.alias,
            )
            for name, fi in self.model.model_fields.items()
        ]
        for name, cfi in self.model.model_computed_fields.items():
            annotation, markers = _split_annotated(cfi.return_type)
            specs.append(
                FieldSpec(
                    name=name,
                    annotation=annotation,
                    markers=markers,
                    alias=cfi.alias,
                    computed=True,
                )
            )
        return specs


class DataclassTypeDescriptor:
    """Descriptor over a stdlib dataclass."""

    def __init__(self, model: type[Any]) -> None:
        try:
            self._hints = typing.get_type_hints(model, include_extras=True)
        except NameError as exc:
            raise IntrospectionError(model, str(exc)) from exc
        self.model = model

    @property
    def name(self) -> str:
        return self.model.__name__

    def fields(self) -> list[FieldSpec]:
        specs: list[FieldSpec] = []
        for f in dataclasses.fields(self.model):
            annotation, markers = _split_annotated(self._hints.get(f.name, f.type))
            specs.append(
                FieldSpec(
                    name=f.name,
                    annotation=annotation,
                    markers=markers,
                    alias=f.metadata.get("alias"),
                )
            )
        return specs


@dataclass(frozen=True)
class TableTypeDescriptor:
    """Explicit descriptor table, for types that are not classes."""

    name: str
    specs: tuple[FieldSpec, ...] = ()

    def fields(self) -> list[FieldSpec]:
        return list(self.specs)


def describe(target: Any) -> TypeDescriptor:
    """Return a ``TypeDescriptor`` for a model class, instance, or descriptor.

    Raises:
        IntrospectionError: If *target* is not a composite record type.
    """
    if isinstance(target, BaseModel):
        target = type(target)
    elif dataclasses.is_dataclass(target) and not isinstance(target, type):
        target = type(target)

    if isinstance(target, type):
        if issubclass(target, BaseModel):
            return PydanticTypeDescriptor(target)
        if dataclasses.is_dataclass(target):
            return DataclassTypeDescriptor(target)
        raise IntrospectionError(target)

    if isinstance(target, TypeDescriptor):
        return target
    raise IntrospectionError(target)
