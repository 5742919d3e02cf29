"""Runtime type introspection."""

from modelmeta.introspection.descriptor import (
    DataclassTypeDescriptor,
    FieldSpec,
    PydanticTypeDescriptor,
    TableTypeDescriptor,
    TypeDescriptor,
    describe,
)
from modelmeta.introspection.kinds import (
    TypeKind,
    classify,
    element_type,
    is_record,
    mapping_value_type,
    unwrap_optional,
)

__all__ = [
    "DataclassTypeDescriptor",
    "FieldSpec",
    "PydanticTypeDescriptor",
    "TableTypeDescriptor",
    "TypeDescriptor",
    "TypeKind",
    "classify",
    "describe",
    "element_type",
    "is_record",
    "mapping_value_type",
    "unwrap_optional",
]
