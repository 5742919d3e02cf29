"""Field extraction: one ``FieldDescriptor`` per declared field of a model.

Behavior flags come from the field's ``Meta`` annotation and default to
filterable, sortable, not searchable, not required.  ``min`` / ``max`` /
``pattern`` compile into the field's ``ValidationRule``; any other
``key=value`` option (``width``, ``fixed``, ...) is kept as an opaque hint.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter
from pydantic.errors import PydanticUserError

from modelmeta.introspection.descriptor import describe
from modelmeta.introspection.kinds import (
    TypeKind,
    classify,
    element_type,
    is_record,
    unwrap_optional,
)
from modelmeta.resources.annotations import options, parse_annotation, resolve_flags
from modelmeta.resources.base import MetadataModel
from modelmeta.resources.markers import Permissions, RelationTag, Rules, annotation_of
from modelmeta.resources.nested import JsonPropertyNode, extract_nested_schema
from modelmeta.resources.permissions import PermissionSet  # noqa: TC001
from modelmeta.resources.validation import (
    FieldValidator,
    UIRule,
    ValidationRule,
    build_rule,
    to_ui_rules,
    validators_for,
)

if TYPE_CHECKING:
    from modelmeta.introspection.descriptor import FieldSpec

logger = logging.getLogger(__name__)


class FieldCategory(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    JSON = "json"
    FILE = "file"
    RICHTEXT = "richtext"
    SELECT = "select"
    COMPUTED = "computed"
    RELATION = "relation"


_FLAG_DEFAULTS: dict[str, bool] = {
    "filterable": True,
    "sortable": True,
    "searchable": False,
    "unique": False,
    "readOnly": False,
    "hidden": False,
    "json": False,
}

# Options consumed by the extractor; every other option is a hint.
_INTERPRETED_OPTIONS = frozenset({"min", "max", "pattern", "message", "category", "label"})

_CATEGORIES: dict[TypeKind, FieldCategory] = {
    TypeKind.BOOLEAN: FieldCategory.BOOLEAN,
    TypeKind.INTEGER: FieldCategory.NUMBER,
    TypeKind.FLOAT: FieldCategory.NUMBER,
    TypeKind.DATETIME: FieldCategory.DATE,
    TypeKind.ENUM: FieldCategory.SELECT,
    TypeKind.BYTES: FieldCategory.FILE,
    TypeKind.MAPPING: FieldCategory.JSON,
    TypeKind.ANY: FieldCategory.JSON,
    TypeKind.RECORD: FieldCategory.RELATION,
}


class FieldDescriptor(MetadataModel):
    name: str
    type: str
    category: FieldCategory
    label: str | None = None
    filterable: bool = True
    sortable: bool = True
    searchable: bool = False
    required: bool = False
    unique: bool = False
    read_only: bool = False
    hidden: bool = False
    validation: ValidationRule | None = None
    validators: tuple[FieldValidator, ...] = ()
    permissions: PermissionSet | None = None
    nested: JsonPropertyNode | None = None
    json_schema: dict[str, Any] | None = None
    hints: dict[str, str] = {}

    @property
    def ui_rules(self) -> list[UIRule]:
        return to_ui_rules(self.validation)


def infer_category(
    spec: FieldSpec, *, declared: str | None = None, json: bool = False
) -> FieldCategory:
    """Semantic category of a field.

    An explicit ``category=`` option wins, then computed fields, then the
    ``json`` flag; otherwise the category follows the declared type.
    """
    if declared:
        try:
            return FieldCategory(declared)
        except ValueError:
            logger.debug("Ignoring unknown category %r on field %s", declared, spec.name)
    if spec.computed:
        return FieldCategory.COMPUTED

    inner, _ = unwrap_optional(spec.annotation)
    kind = classify(inner)
    if json:
        return FieldCategory.JSON
    if spec.find_marker(RelationTag) is not None:
        return FieldCategory.RELATION
    if kind is TypeKind.SEQUENCE:
        return FieldCategory.RELATION if is_record(element_type(inner)) else FieldCategory.JSON
    return _CATEGORIES.get(kind, FieldCategory.STRING)


def _json_schema(annotation: Any) -> dict[str, Any] | None:
    try:
        return TypeAdapter(annotation).json_schema()
    except PydanticUserError as exc:
        logger.debug("No JSON schema for %r: %s", annotation, exc)
        return None


def extract_field(spec: FieldSpec) -> FieldDescriptor:
    """Build the descriptor for one declared field."""
    tokens = parse_annotation(annotation_of(spec))
    flags = resolve_flags(tokens, {**_FLAG_DEFAULTS, "readOnly": spec.computed})
    opts = options(tokens)

    inner, _ = unwrap_optional(spec.annotation)
    kind = classify(inner)
    category = infer_category(spec, declared=opts.get("category"), json=flags["json"])
    rule = build_rule(tokens, kind, spec.find_marker(Rules))
    permissions = spec.find_marker(Permissions)

    nested = None
    schema = None
    if category is FieldCategory.JSON and kind in (TypeKind.RECORD, TypeKind.MAPPING):
        nested = extract_nested_schema(spec.path_segment, spec.annotation)
        schema = _json_schema(spec.annotation)

    return FieldDescriptor(
        name=spec.name,
        type=spec.type_name,
        category=category,
        label=opts.get("label"),
        filterable=flags["filterable"],
        sortable=flags["sortable"],
        searchable=flags["searchable"],
        required=rule.required if rule is not None else False,
        unique=flags["unique"],
        read_only=flags["readOnly"],
        hidden=flags["hidden"],
        validation=rule,
        validators=validators_for(rule),
        permissions=permissions.rules if permissions is not None else None,
        nested=nested,
        json_schema=schema,
        hints={k: v for k, v in opts.items() if k not in _INTERPRETED_OPTIONS},
    )


def extract_fields(model: Any) -> list[FieldDescriptor]:
    """Descriptors for every field of *model*, in declaration order.

    Raises:
        IntrospectionError: If *model* is not a composite record type.
    """
    descriptor = describe(model)
    fields = [extract_field(spec) for spec in descriptor.fields()]
    logger.debug("Extracted %d field(s) from %s", len(fields), descriptor.name)
    return fields
