"""Nested schema extraction for JSON fields.

A field whose declared type is a composite record (or a mapping) and that is
stored as a JSON document gets a tree of ``JsonPropertyNode``: one node per
nested field, addressed by a dot-joined path from the field's root.  A mapping
whose values are records has a single ``*`` child standing for every entry,
so ``hosts.*.port`` is the port of each host.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from modelmeta.errors import IntrospectionError
from modelmeta.introspection.descriptor import describe
from modelmeta.introspection.kinds import (
    TypeKind,
    classify,
    is_record,
    mapping_value_type,
    unwrap_optional,
)
from modelmeta.resources.annotations import parse_annotation, resolve_flags
from modelmeta.resources.base import MetadataModel
from modelmeta.resources.markers import Meta, Rules
from modelmeta.resources.validation import ValidationRule, build_rule

if TYPE_CHECKING:
    from collections.abc import Iterable


ENTRY = "*"


class NodeType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"


_NODE_TYPES: dict[TypeKind, NodeType] = {
    TypeKind.BOOLEAN: NodeType.BOOLEAN,
    TypeKind.INTEGER: NodeType.NUMBER,
    TypeKind.FLOAT: NodeType.NUMBER,
    TypeKind.DATETIME: NodeType.STRING,
    TypeKind.RECORD: NodeType.OBJECT,
    TypeKind.MAPPING: NodeType.OBJECT,
    TypeKind.SEQUENCE: NodeType.ARRAY,
}


class JsonPropertyNode(MetadataModel):
    path: str
    type: NodeType
    label: str | None = None
    read_only: bool = False
    hidden: bool = False
    validation: ValidationRule | None = None
    properties: tuple[JsonPropertyNode, ...] = ()

    def walk(self) -> list[JsonPropertyNode]:
        """This node and every descendant, depth-first in declaration order."""
        nodes = [self]
        for child in self.properties:
            nodes.extend(child.walk())
        return nodes

    def find(self, path: str) -> JsonPropertyNode | None:
        return next((n for n in self.walk() if n.path == path), None)


def extract_nested_schema(
    path: str,
    annotation: Any,
    markers: Iterable[Any] = (),
    *,
    _ancestors: frozenset[type] = frozenset(),
) -> JsonPropertyNode:
    """Build the schema node for *annotation* rooted at *path*.

    Records recurse into their declared fields and mappings into their record
    value type (through an ``ENTRY`` child).  Sequences are ``array`` leaves.
    Other mappings are ``object`` leaves.

    Raises:
        IntrospectionError: If a record type contains itself.
    """
    markers = tuple(markers)
    inner, _ = unwrap_optional(annotation)
    kind = classify(inner)
    tokens = parse_annotation(";".join(m.annotation for m in markers if isinstance(m, Meta)))
    flags = resolve_flags(tokens, {"readOnly": False, "hidden": False})
    label = next((t.value for t in reversed(tokens) if t.name == "label" and t.value), None)
    rules = next((m for m in markers if isinstance(m, Rules)), None)

    children: list[JsonPropertyNode] = []
    if kind is TypeKind.RECORD:
        if inner in _ancestors:
            raise IntrospectionError(inner, f"cyclic nested definition at '{path}'")
        for spec in describe(inner).fields():
            if spec.computed:
                continue
            children.append(
                extract_nested_schema(
                    f"{path}.{spec.path_segment}",
                    spec.annotation,
                    spec.markers,
                    _ancestors=_ancestors | {inner},
                )
            )
    elif kind is TypeKind.MAPPING:
        value_type = mapping_value_type(inner)
        if value_type is not None and is_record(value_type):
            children.append(
                extract_nested_schema(f"{path}.{ENTRY}", value_type, _ancestors=_ancestors)
            )

    return JsonPropertyNode(
        path=path,
        type=_NODE_TYPES.get(kind, NodeType.STRING),
        label=label,
        read_only=flags["readOnly"],
        hidden=flags["hidden"],
        validation=build_rule(tokens, kind, rules),
        properties=tuple(children),
    )


# ── Validating nested values ────────────────────────────────────────


def _as_mapping(value: Any) -> Mapping[str, Any] | None:
    if isinstance(value, Mapping):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    return None


def _segment(node: JsonPropertyNode) -> str:
    return node.path.rsplit(".", 1)[-1]


def _check_property(
    node: JsonPropertyNode, rule: ValidationRule, value: Any, path: str
) -> list[str]:
    errors: list[str] = []

    if node.type is NodeType.NUMBER:
        if isinstance(value, bool):
            return [f"Property '{path}' should be a number but got '{type(value).__name__}'"]
        try:
            num = float(value)
        except (TypeError, ValueError):
            return [f"Property '{path}' should be a number but got '{value}'"]
        if rule.min is not None and num < rule.min:
            errors.append(f"Property '{path}' value {value} is less than minimum {rule.min:g}")
        if rule.max is not None and num > rule.max:
            errors.append(f"Property '{path}' value {value} is greater than maximum {rule.max:g}")

    elif node.type is NodeType.STRING:
        if not isinstance(value, str):
            return [f"Property '{path}' should be a string but got '{type(value).__name__}'"]
        if rule.min_length is not None and len(value) < rule.min_length:
            errors.append(
                f"Property '{path}' length {len(value)} is less than minimum length "
                f"{rule.min_length}"
            )
        if rule.max_length is not None and len(value) > rule.max_length:
            errors.append(
                f"Property '{path}' length {len(value)} is greater than maximum length "
                f"{rule.max_length}"
            )
        if rule.pattern is not None:
            try:
                matched = re.search(rule.pattern, value) is not None
            except re.error as exc:
                errors.append(f"Property '{path}' has invalid pattern: {exc}")
            else:
                if not matched:
                    errors.append(
                        f"Property '{path}' value '{value}' does not match pattern "
                        f"'{rule.pattern}'"
                    )

    elif node.type is NodeType.ARRAY:
        if not isinstance(value, (list, tuple)):
            return [f"Property '{path}' should be an array but got '{type(value).__name__}'"]
        if rule.min_length is not None and len(value) < rule.min_length:
            errors.append(
                f"Property '{path}' has {len(value)} items which is less than minimum "
                f"{rule.min_length}"
            )
        if rule.max_length is not None and len(value) > rule.max_length:
            errors.append(
                f"Property '{path}' has {len(value)} items which is greater than maximum "
                f"{rule.max_length}"
            )
    return errors


def validate_nested(data: Any, node: JsonPropertyNode, *, _path: str | None = None) -> list[str]:
    """Validate a JSON value against the rules declared on *node*'s descendants.

    Mapping entries are checked under their own key, e.g. ``hosts.web.port``.
    Returns a list of error messages; empty when valid.
    """
    path = node.path if _path is None else _path
    mapping = _as_mapping(data)
    if mapping is None:
        return [f"Property '{path}' should be an object but got '{type(data).__name__}'"]

    errors: list[str] = []
    for child in node.properties:
        key = _segment(child)
        if key == ENTRY:
            for entry_key, entry in mapping.items():
                errors.extend(validate_nested(entry, child, _path=f"{path}.{entry_key}"))
            continue

        child_path = f"{path}.{key}"
        present = key in mapping
        value = mapping.get(key)
        rule = child.validation

        if rule is not None:
            if not present or value is None:
                if rule.required:
                    errors.append(f"Property '{child_path}' is required")
                continue
            errors.extend(_check_property(child, rule, value, child_path))

        if child.type is NodeType.OBJECT and child.properties and value is not None:
            errors.extend(validate_nested(value, child, _path=child_path))
    return errors
