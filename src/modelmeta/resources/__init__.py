"""Resource metadata: fields, relations, validation, permissions, forms."""

from modelmeta.resources.annotations import Token, parse_annotation
from modelmeta.resources.consistency import RelationValidator, relation_errors, validate_relations
from modelmeta.resources.fields import (
    FieldCategory,
    FieldDescriptor,
    extract_field,
    extract_fields,
    infer_category,
)
from modelmeta.resources.forms import (
    FormCondition,
    FormFieldLayout,
    FormLayout,
    FormSection,
    check_form_layout,
    default_form_layout,
)
from modelmeta.resources.markers import Meta, Permissions, RelationTag, Rules
from modelmeta.resources.metadata import (
    DEFAULT_OPERATIONS,
    Filter,
    Operation,
    ResourceConfig,
    ResourceMetadataDocument,
    Sort,
    build_metadata,
)
from modelmeta.resources.nested import (
    JsonPropertyNode,
    NodeType,
    extract_nested_schema,
    validate_nested,
)
from modelmeta.resources.permissions import (
    filter_fields,
    filter_read_only,
    filter_record,
    is_allowed,
)
from modelmeta.resources.registry import ResourceEntry, ResourceRegistry, check_relations
from modelmeta.resources.relations import (
    RelationDescriptor,
    RelationKind,
    extract_relation,
    extract_relations,
    infer_relation,
    parse_relation_annotation,
)
from modelmeta.resources.validation import (
    CompiledRule,
    ConditionalRule,
    FieldError,
    FieldValidator,
    UIRule,
    ValidationRule,
    compile_rule,
    ensure_valid,
    to_ui_rules,
    validate_record,
)

__all__ = [
    "DEFAULT_OPERATIONS",
    "CompiledRule",
    "ConditionalRule",
    "FieldCategory",
    "FieldDescriptor",
    "FieldError",
    "FieldValidator",
    "Filter",
    "FormCondition",
    "FormFieldLayout",
    "FormLayout",
    "FormSection",
    "JsonPropertyNode",
    "Meta",
    "NodeType",
    "Operation",
    "Permissions",
    "RelationDescriptor",
    "RelationKind",
    "RelationTag",
    "RelationValidator",
    "ResourceConfig",
    "ResourceEntry",
    "ResourceMetadataDocument",
    "ResourceRegistry",
    "Rules",
    "Sort",
    "Token",
    "UIRule",
    "ValidationRule",
    "build_metadata",
    "check_form_layout",
    "check_relations",
    "compile_rule",
    "default_form_layout",
    "ensure_valid",
    "extract_field",
    "extract_fields",
    "extract_nested_schema",
    "extract_relation",
    "extract_relations",
    "filter_fields",
    "filter_read_only",
    "filter_record",
    "infer_category",
    "infer_relation",
    "is_allowed",
    "parse_annotation",
    "parse_relation_annotation",
    "relation_errors",
    "to_ui_rules",
    "validate_nested",
    "validate_record",
    "validate_relations",
]
