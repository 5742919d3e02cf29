from __future__ import annotations

import datetime
import json
from typing import Annotated, Any, Literal

import pytest
from pydantic import BaseModel, computed_field

from modelmeta.introspection import FieldSpec
from modelmeta.resources.fields import FieldCategory, extract_field, extract_fields, infer_category
from modelmeta.resources.markers import Meta, Permissions, RelationTag, Rules
from modelmeta.resources.nested import NodeType
from modelmeta.resources.validation import ConditionalRule, ValidatorKind


class Contact(BaseModel):
    name: Annotated[str, Meta("required;min=3;max=50")]
    email: Annotated[str, Meta("required;pattern=^[^@]+@[^@]+$")]


class Address(BaseModel):
    street: str
    zip: Annotated[str, Meta("required;max=10")]


class Customer(BaseModel):
    id: Annotated[int, Meta("readOnly")]
    name: Annotated[str, Meta("required;searchable;label=Full name;width=200")]
    age: Annotated[int | None, Meta("min=0;max=150")] = None
    active: bool = True
    joined: datetime.date | None = None
    tier: Literal["gold", "silver"] = "silver"
    avatar: bytes | None = None
    bio: Annotated[str, Meta("category=richtext")] = ""
    address: Annotated[Address | None, Meta("json")] = None
    extra: dict[str, Any] = {}
    tags: list[str] = []
    secret: Annotated[str, Meta("hidden"), Permissions(read=["admin"])] = ""

    @computed_field
    @property
    def display(self) -> str:
        return self.name


def _by_name(model: Any) -> dict[str, Any]:
    return {f.name: f for f in extract_fields(model)}


class TestScenario:
    def test_name_and_email(self) -> None:
        name, email = extract_fields(Contact)

        assert name.name == "name"
        assert name.required
        assert [v.kind for v in name.validators] == [ValidatorKind.LENGTH]
        assert name.validators[0].min == 3
        assert name.validators[0].max == 50

        assert email.required
        assert [v.kind for v in email.validators] == [ValidatorKind.PATTERN]
        assert email.validators[0].pattern == "^[^@]+@[^@]+$"

    def test_names_unique_and_ordered(self) -> None:
        names = [f.name for f in extract_fields(Customer)]
        assert len(names) == len(set(names))
        assert names[0] == "id"
        assert names[-1] == "display"


class TestFlags:
    def test_defaults(self) -> None:
        active = _by_name(Customer)["active"]
        assert active.filterable
        assert active.sortable
        assert not active.searchable
        assert not active.required
        assert not active.unique
        assert not active.read_only
        assert not active.hidden
        assert active.validation is None
        assert active.validators == ()

    def test_explicit_flags(self) -> None:
        fields = _by_name(Customer)
        assert fields["id"].read_only
        assert fields["name"].searchable
        assert fields["secret"].hidden

    def test_negated_flags(self) -> None:
        spec = FieldSpec("code", str, markers=(Meta("!filterable;!sortable;unique"),))
        field = extract_field(spec)
        assert not field.filterable
        assert not field.sortable
        assert field.unique

    def test_tie_break(self) -> None:
        off = extract_field(FieldSpec("a", str, markers=(Meta("searchable;!searchable"),)))
        on = extract_field(FieldSpec("a", str, markers=(Meta("!searchable;searchable"),)))
        assert not off.searchable
        assert on.searchable

    def test_several_meta_markers_are_joined(self) -> None:
        spec = FieldSpec("a", str, markers=(Meta("required"), Meta("searchable")))
        field = extract_field(spec)
        assert field.required
        assert field.searchable

    def test_computed_field_is_read_only(self) -> None:
        display = _by_name(Customer)["display"]
        assert display.category is FieldCategory.COMPUTED
        assert display.read_only


class TestCategories:
    def test_inferred_from_type(self) -> None:
        fields = _by_name(Customer)
        assert fields["id"].category is FieldCategory.NUMBER
        assert fields["name"].category is FieldCategory.STRING
        assert fields["active"].category is FieldCategory.BOOLEAN
        assert fields["joined"].category is FieldCategory.DATE
        assert fields["tier"].category is FieldCategory.SELECT
        assert fields["avatar"].category is FieldCategory.FILE
        assert fields["extra"].category is FieldCategory.JSON
        assert fields["tags"].category is FieldCategory.JSON

    def test_declared_category_wins(self) -> None:
        assert _by_name(Customer)["bio"].category is FieldCategory.RICHTEXT

    def test_unknown_declared_category_falls_back(self) -> None:
        spec = FieldSpec("a", int)
        assert infer_category(spec, declared="bogus") is FieldCategory.NUMBER

    def test_json_flag_beats_record(self) -> None:
        assert _by_name(Customer)["address"].category is FieldCategory.JSON

    def test_record_and_record_list_are_relations(self) -> None:
        assert infer_category(FieldSpec("a", Address)) is FieldCategory.RELATION
        assert infer_category(FieldSpec("a", list[Address])) is FieldCategory.RELATION

    def test_relation_tag(self) -> None:
        spec = FieldSpec("owner_id", int, markers=(RelationTag("resource=users;type=many-to-one"),))
        assert infer_category(spec) is FieldCategory.RELATION


class TestDetails:
    def test_label_and_hints(self) -> None:
        name = _by_name(Customer)["name"]
        assert name.label == "Full name"
        assert name.hints == {"width": "200"}

    def test_numeric_bounds(self) -> None:
        age = _by_name(Customer)["age"]
        assert age.validation is not None
        assert age.validation.min == 0
        assert age.validation.max == 150
        assert [v.kind for v in age.validators] == [ValidatorKind.RANGE]

    def test_type_name(self) -> None:
        assert _by_name(Customer)["age"].type == "int | None"

    def test_permissions(self) -> None:
        assert _by_name(Customer)["secret"].permissions == {"read": ("admin",)}
        assert _by_name(Customer)["name"].permissions is None

    def test_nested_schema_for_json_record(self) -> None:
        address = _by_name(Customer)["address"]
        assert address.nested is not None
        assert [n.path for n in address.nested.walk()] == [
            "address",
            "address.street",
            "address.zip",
        ]
        assert address.nested.type is NodeType.OBJECT
        assert address.json_schema is not None
        assert "street" in json.dumps(address.json_schema)

    def test_no_nested_schema_for_scalars(self) -> None:
        name = _by_name(Customer)["name"]
        assert name.nested is None
        assert name.json_schema is None

    def test_rules_marker_merges_over_meta(self) -> None:
        cond = ConditionalRule(field="country", operator="eq", value="US")
        spec = FieldSpec(
            "zip",
            str,
            markers=(Meta("min=3"), Rules(max_length=5, conditional=cond, message="bad zip")),
        )
        field = extract_field(spec)
        assert field.validation is not None
        assert field.validation.min_length == 3
        assert field.validation.max_length == 5
        assert field.validation.conditional == cond
        assert field.validation.message == "bad zip"

    def test_ui_rules(self) -> None:
        name, _ = extract_fields(Contact)
        assert [r.type for r in name.ui_rules] == ["required", "min", "max"]

    def test_serializes_camel_case(self) -> None:
        data = _by_name(Customer)["id"].to_dict()
        assert data["readOnly"] is True
        assert "read_only" not in data
        assert data["category"] == "number"


class TestMalformed:
    @pytest.mark.parametrize("annotation", ["min=abc", "max=", "min=1.5x"])
    def test_malformed_bounds_ignored(self, annotation: str) -> None:
        field = extract_field(FieldSpec("a", int, markers=(Meta(annotation),)))
        assert field.validation is None

    def test_bounds_ignored_on_boolean(self) -> None:
        field = extract_field(FieldSpec("a", bool, markers=(Meta("min=1"),)))
        assert field.validation is None
