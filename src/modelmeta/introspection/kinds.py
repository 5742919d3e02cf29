"""Structural classification of declared field types."""

from __future__ import annotations

import collections.abc
import dataclasses
import datetime
import decimal
import enum
import types
import typing
from typing import Any

from pydantic import BaseModel

_NONE_TYPE = type(None)

_SEQUENCE_ORIGINS: tuple[type, ...] = (
    list,
    tuple,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Iterable,
)
_MAPPING_ORIGINS: tuple[type, ...] = (
    dict,
    collections.abc.Mapping,
    collections.abc.MutableMapping,
)


class TypeKind(str, enum.Enum):
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    DATETIME = "datetime"
    ENUM = "enum"
    BYTES = "bytes"
    RECORD = "record"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    ANY = "any"
    OTHER = "other"

    @property
    def is_numeric(self) -> bool:
        return self in (TypeKind.INTEGER, TypeKind.FLOAT)


def _is_union(tp: Any) -> bool:
    origin = typing.get_origin(tp)
    return origin is typing.Union or origin is types.UnionType


def strip_annotated(tp: Any) -> Any:
    """Drop ``Annotated`` wrappers, keeping the underlying type."""
    while typing.get_origin(tp) is typing.Annotated:
        tp = typing.get_args(tp)[0]
    return tp


def unwrap_optional(tp: Any) -> tuple[Any, bool]:
    """Return ``(inner, optional)`` for ``X | None``; other unions pass through."""
    tp = strip_annotated(tp)
    if _is_union(tp):
        args = [a for a in typing.get_args(tp) if a is not _NONE_TYPE]
        if len(args) == 1:
            return strip_annotated(args[0]), True
    return tp, False


def is_record(tp: Any) -> bool:
    """True for pydantic models and dataclasses (classes, not instances)."""
    tp, _ = unwrap_optional(tp)
    if not isinstance(tp, type):
        return False
    return issubclass(tp, BaseModel) or dataclasses.is_dataclass(tp)


def _origin(tp: Any) -> Any:
    origin = typing.get_origin(tp)
    return origin if origin is not None else tp


def element_type(tp: Any) -> Any | None:
    """Element type of a sequence annotation, or ``None`` when unknown."""
    tp, _ = unwrap_optional(tp)
    args = typing.get_args(tp)
    if not args:
        return None
    if _origin(tp) is tuple and len(args) == 2 and args[1] is Ellipsis:
        return strip_annotated(args[0])
    if _origin(tp) is tuple:
        return None
    return strip_annotated(args[0])


def mapping_value_type(tp: Any) -> Any | None:
    """Value type of a mapping annotation, or ``None`` when unknown."""
    tp, _ = unwrap_optional(tp)
    origin = _origin(tp)
    if not (isinstance(origin, type) and issubclass(origin, _MAPPING_ORIGINS)):
        return None
    args = typing.get_args(tp)
    if len(args) != 2:
        return None
    return strip_annotated(args[1])


def classify(tp: Any) -> TypeKind:
    """Classify a declared type by its structural kind, unwrapping ``Optional``."""
    tp, _ = unwrap_optional(tp)

    if tp is Any:
        return TypeKind.ANY
    if typing.get_origin(tp) is typing.Literal:
        return TypeKind.ENUM

    origin = _origin(tp)
    if not isinstance(origin, type):
        return TypeKind.OTHER

    # bool before int, enums before str / int
    if issubclass(origin, bool):
        return TypeKind.BOOLEAN
    if issubclass(origin, enum.Enum):
        return TypeKind.ENUM
    if issubclass(origin, int):
        return TypeKind.INTEGER
    if issubclass(origin, (float, decimal.Decimal)):
        return TypeKind.FLOAT
    if issubclass(origin, (datetime.date, datetime.time)):
        return TypeKind.DATETIME
    if issubclass(origin, str):
        return TypeKind.STRING
    if issubclass(origin, (bytes, bytearray)):
        return TypeKind.BYTES
    if is_record(origin):
        return TypeKind.RECORD
    if issubclass(origin, _MAPPING_ORIGINS):
        return TypeKind.MAPPING
    if issubclass(origin, _SEQUENCE_ORIGINS):
        return TypeKind.SEQUENCE
    return TypeKind.OTHER


def type_name(tp: Any) -> str:
    """Render a declared type as a short readable name, e.g. ``list[Tag] | None``."""
    tp = strip_annotated(tp)
    if tp is _NONE_TYPE or tp is None:
        return "None"
    if tp is Any:
        return "Any"
    if _is_union(tp):
        return " | ".join(type_name(a) for a in typing.get_args(tp))
    if typing.get_origin(tp) is typing.Literal:
        return "Literal[" + ", ".join(repr(a) for a in typing.get_args(tp)) + "]"
    args = typing.get_args(tp)
    origin = typing.get_origin(tp)
    if origin is not None and args:
        inner = ", ".join("..." if a is Ellipsis else type_name(a) for a in args)
        return f"{getattr(origin, '__name__', str(origin))}[{inner}]"
    if isinstance(tp, typing.ForwardRef):
        return tp.__forward_arg__
    if isinstance(tp, str):
        return tp
    return getattr(tp, "__name__", str(tp))
