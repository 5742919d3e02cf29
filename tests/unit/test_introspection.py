from __future__ import annotations

import dataclasses
import datetime
import decimal
import enum
from typing import Annotated, Any, Literal

import pytest
from pydantic import BaseModel, Field, computed_field

from modelmeta.errors import IntrospectionError
from modelmeta.introspection import (
    DataclassTypeDescriptor,
    FieldSpec,
    PydanticTypeDescriptor,
    TableTypeDescriptor,
    TypeKind,
    classify,
    describe,
    element_type,
    is_record,
    mapping_value_type,
    unwrap_optional,
)
from modelmeta.introspection.kinds import type_name
from modelmeta.resources.markers import Meta


class Color(enum.Enum):
    RED = "red"


class Tag(BaseModel):
    label: str


@dataclasses.dataclass
class Point:
    x: Annotated[int, Meta("required")]
    y: int = dataclasses.field(default=0, metadata={"alias": "ordinate"})


class Article(BaseModel):
    title: Annotated[str, Meta("required")]
    body: str = Field(default="", alias="content")
    tags: list[Tag] = []

    @computed_field
    @property
    def slug(self) -> str:
        return self.title.lower()


class TestClassify:
    @pytest.mark.parametrize(
        ("tp", "kind"),
        [
            (bool, TypeKind.BOOLEAN),
            (int, TypeKind.INTEGER),
            (float, TypeKind.FLOAT),
            (decimal.Decimal, TypeKind.FLOAT),
            (str, TypeKind.STRING),
            (datetime.datetime, TypeKind.DATETIME),
            (datetime.date, TypeKind.DATETIME),
            (Color, TypeKind.ENUM),
            (Literal["a", "b"], TypeKind.ENUM),
            (bytes, TypeKind.BYTES),
            (Tag, TypeKind.RECORD),
            (Point, TypeKind.RECORD),
            (dict[str, int], TypeKind.MAPPING),
            (list[int], TypeKind.SEQUENCE),
            (tuple[int, ...], TypeKind.SEQUENCE),
            (Any, TypeKind.ANY),
            (int | None, TypeKind.INTEGER),
            (Annotated[str, Meta("x")], TypeKind.STRING),
            (int | str, TypeKind.OTHER),
        ],
    )
    def test_kinds(self, tp: Any, kind: TypeKind) -> None:
        assert classify(tp) is kind

    def test_numeric(self) -> None:
        assert TypeKind.INTEGER.is_numeric
        assert TypeKind.FLOAT.is_numeric
        assert not TypeKind.STRING.is_numeric


class TestHelpers:
    def test_unwrap_optional(self) -> None:
        assert unwrap_optional(int | None) == (int, True)
        assert unwrap_optional(int) == (int, False)

    def test_multi_union_passes_through(self) -> None:
        inner, optional = unwrap_optional(int | str | None)
        assert not optional
        assert inner == (int | str | None)

    def test_element_type(self) -> None:
        assert element_type(list[Tag]) is Tag
        assert element_type(list[Tag] | None) is Tag
        assert element_type(tuple[int, str]) is None
        assert element_type(list) is None

    def test_mapping_value_type(self) -> None:
        assert mapping_value_type(dict[str, Tag]) is Tag
        assert mapping_value_type(dict[str, Annotated[Tag, Meta("x")]] | None) is Tag
        assert mapping_value_type(dict) is None
        assert mapping_value_type(list[Tag]) is None

    def test_is_record(self) -> None:
        assert is_record(Tag)
        assert is_record(Point)
        assert is_record(Tag | None)
        assert not is_record(Tag(label="x"))
        assert not is_record(str)

    def test_type_name(self) -> None:
        assert type_name(list[Tag] | None) == "list[Tag] | None"
        assert type_name(dict[str, int]) == "dict[str, int]"
        assert type_name(Literal["a"]) == "Literal['a']"


class TestDescribe:
    def test_pydantic_model(self) -> None:
        descriptor = describe(Article)
        assert isinstance(descriptor, PydanticTypeDescriptor)
        assert descriptor.name == "Article"
        specs = descriptor.fields()
        assert [s.name for s in specs] == ["title", "body", "tags", "slug"]
        assert specs[0].find_marker(Meta) == Meta("required")
        assert specs[1].alias == "content"
        assert specs[1].path_segment == "content"
        assert specs[3].computed
        assert specs[3].annotation is str

    def test_instance_is_described_by_its_class(self) -> None:
        assert describe(Tag(label="x")).name == "Tag"

    def test_dataclass(self) -> None:
        descriptor = describe(Point)
        assert isinstance(descriptor, DataclassTypeDescriptor)
        x, y = descriptor.fields()
        assert x.annotation is int
        assert x.markers == (Meta("required"),)
        assert y.alias == "ordinate"

    def test_explicit_table(self) -> None:
        table = TableTypeDescriptor("Row", (FieldSpec("a", int), FieldSpec("b", str)))
        assert describe(table) is table
        assert [s.name for s in describe(table).fields()] == ["a", "b"]

    @pytest.mark.parametrize("target", [int, "User", 3, None, [1, 2]])
    def test_non_records_rejected(self, target: Any) -> None:
        with pytest.raises(IntrospectionError, match="Cannot introspect"):
            describe(target)

    def test_unresolvable_forward_reference(self) -> None:
        class Broken(BaseModel):
            other: Missing  # noqa: F821

        with pytest.raises(IntrospectionError):
            describe(Broken)

    def test_type_name_on_spec(self) -> None:
        spec = next(s for s in describe(Article).fields() if s.name == "tags")
        assert spec.type_name == "list[Tag]"
