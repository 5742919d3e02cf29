"""Relation extraction and inference.

A field declares a relation explicitly with a ``RelationTag`` annotation::

    author: Annotated[User | None, RelationTag(
        "resource=users;type=many-to-one;field=author_id;reference=id;include=true"
    )] = None

Fields without one are inferred from their shape: a sequence of records is
one-to-many, a single record is one-to-one.  Fields flagged ``json`` hold
embedded documents and are never relations.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import Field

from modelmeta import policy
from modelmeta.errors import DuplicateRelationError
from modelmeta.introspection.descriptor import describe
from modelmeta.introspection.kinds import TypeKind, classify, element_type, unwrap_optional
from modelmeta.resources.annotations import flag_names, options, parse_annotation
from modelmeta.resources.base import MetadataModel
from modelmeta.resources.markers import RelationTag, annotation_of

if TYPE_CHECKING:
    from modelmeta.introspection.descriptor import FieldSpec

logger = logging.getLogger(__name__)


class RelationKind(str, Enum):
    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_ONE = "many-to-one"
    MANY_TO_MANY = "many-to-many"

    @property
    def is_to_many(self) -> bool:
        return self in (RelationKind.ONE_TO_MANY, RelationKind.MANY_TO_MANY)


class RelationDescriptor(MetadataModel):
    name: str
    kind: RelationKind = Field(alias="type")
    resource: str
    attribute: str | None = None
    field: str | None = None
    reference_field: str | None = None
    include_by_default: bool = False
    required: bool = False
    min_items: int = 0
    max_items: int = 0
    value_field: str | None = None
    display_field: str | None = None
    pivot_table: str | None = None
    pivot_fields: dict[str, str] = {}
    cascade: bool = False
    on_delete: str | None = None
    on_update: str | None = None

    @property
    def is_to_many(self) -> bool:
        return self.kind.is_to_many


def _parse_count(raw: str | None, key: str, attribute: str) -> int:
    if raw is None:
        return 0
    try:
        return max(int(raw), 0)
    except ValueError:
        logger.debug(
            "Ignoring malformed %s=%r on %s (policy: %s)",
            key,
            raw,
            attribute,
            policy.MALFORMED_ANNOTATION_LITERAL.value,
        )
        return 0


def _parse_pivot_fields(raw: str | None) -> dict[str, str]:
    """``"a:b,c:d"`` -> ``{"a": "b", "c": "d"}``; pairs without ``:`` are dropped."""
    if not raw:
        return {}
    pairs: dict[str, str] = {}
    for part in raw.split(","):
        key, sep, value = part.partition(":")
        if sep and key.strip():
            pairs[key.strip()] = value.strip()
    return pairs


def parse_relation_annotation(attribute: str, raw: str) -> RelationDescriptor | None:
    """Parse a relation annotation declared on *attribute*.

    Returns ``None`` when ``resource`` or ``type`` is missing, or when
    ``type`` is not a known cardinality.
    """
    tokens = parse_annotation(raw)
    opts = options(tokens)
    resource = opts.get("resource")
    kind_raw = opts.get("type")
    if not resource or not kind_raw:
        logger.debug(
            "Relation annotation on %s lacks resource/type (policy: %s)",
            attribute,
            policy.MALFORMED_RELATION_ANNOTATION.value,
        )
        return None
    try:
        kind = RelationKind(kind_raw)
    except ValueError:
        logger.debug(
            "Unknown relation type %r on %s (policy: %s)",
            kind_raw,
            attribute,
            policy.MALFORMED_RELATION_ANNOTATION.value,
        )
        return None

    # `include` / `required` / `cascade` may be bare flags or `=true`
    flags = flag_names(tokens)

    def _bool(key: str) -> bool:
        return key in flags or opts.get(key, "").lower() == "true"

    return RelationDescriptor(
        name=opts.get("name") or attribute,
        kind=kind,
        resource=resource,
        attribute=attribute,
        field=opts.get("field") or None,
        reference_field=opts.get("reference") or None,
        include_by_default=_bool("include"),
        required=_bool("required"),
        min_items=_parse_count(opts.get("min_items"), "min_items", attribute),
        max_items=_parse_count(opts.get("max_items"), "max_items", attribute),
        value_field=opts.get("value_field") or None,
        display_field=opts.get("display_field") or None,
        pivot_table=opts.get("pivot_table") or None,
        pivot_fields=_parse_pivot_fields(opts.get("pivot_fields")),
        cascade=_bool("cascade"),
        on_delete=opts.get("on_delete") or None,
        on_update=opts.get("on_update") or None,
    )


def infer_relation(spec: FieldSpec) -> RelationDescriptor | None:
    """Infer a relation from a field's declared shape, or ``None``."""
    inner, _ = unwrap_optional(spec.annotation)
    kind = classify(inner)

    if kind is TypeKind.SEQUENCE:
        elem = element_type(inner)
        if elem is not None and classify(elem) is TypeKind.RECORD:
            target, _ = unwrap_optional(elem)
            return RelationDescriptor(
                name=spec.name,
                kind=RelationKind.ONE_TO_MANY,
                resource=target.__name__,
                attribute=spec.name,
            )
        return None

    if kind is TypeKind.RECORD:
        return RelationDescriptor(
            name=spec.name,
            kind=RelationKind(policy.SHAPE_INFERRED_TO_ONE.value),
            resource=inner.__name__,
            attribute=spec.name,
        )
    return None


def extract_relation(spec: FieldSpec) -> RelationDescriptor | None:
    """Relation declared or inferred on one field.

    An explicit annotation always wins, even when malformed.
    """
    tag = spec.find_marker(RelationTag)
    if tag is not None:
        return parse_relation_annotation(spec.name, tag.annotation)
    tokens = parse_annotation(annotation_of(spec))
    if spec.computed or "json" in flag_names(tokens) or options(tokens).get("category") == "json":
        return None
    return infer_relation(spec)


def extract_relations(model: Any) -> list[RelationDescriptor]:
    """Relations of *model* in declaration order.

    Raises:
        IntrospectionError: If *model* is not a composite record type.
        DuplicateRelationError: If two relations share a name.
    """
    descriptor = describe(model)
    relations: list[RelationDescriptor] = []
    seen: set[str] = set()
    for spec in descriptor.fields():
        relation = extract_relation(spec)
        if relation is None:
            continue
        if relation.name in seen:
            raise DuplicateRelationError(descriptor.name, relation.name)
        seen.add(relation.name)
        relations.append(relation)
    logger.debug("Extracted %d relation(s) from %s", len(relations), descriptor.name)
    return relations
