"""Resource metadata assembly.

``build_metadata()`` runs field extraction, relation extraction, nested
schema extraction, and validation compilation for one resource, lays out its
form, and returns an immutable ``ResourceMetadataDocument``.  The document
serializes to plain JSON with ``to_dict()`` and restores with
``model_validate()``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from modelmeta.errors import DuplicateRelationError
from modelmeta.introspection.descriptor import describe
from modelmeta.resources.base import MetadataModel
from modelmeta.resources.fields import FieldDescriptor, extract_fields
from modelmeta.resources.forms import FormLayout, check_form_layout, default_form_layout
from modelmeta.resources.permissions import (  # noqa: TC001
    PermissionSet,
    filter_fields,
    filter_read_only,
    is_allowed,
    normalize,
)
from modelmeta.resources.relations import RelationDescriptor, extract_relations

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    LIST = "list"
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    COUNT = "count"
    CREATE_MANY = "createMany"
    UPDATE_MANY = "updateMany"
    DELETE_MANY = "deleteMany"
    CUSTOM = "custom"


DEFAULT_OPERATIONS: tuple[Operation, ...] = (
    Operation.CREATE,
    Operation.LIST,
    Operation.READ,
    Operation.UPDATE,
    Operation.DELETE,
    Operation.COUNT,
)


class Sort(MetadataModel):
    field: str
    order: Literal["asc", "desc"] = "asc"


class Filter(MetadataModel):
    field: str
    operator: str = "eq"
    value: Any = None


class ResourceConfig(BaseModel):
    """Registration input for one resource.

    ``fields`` / ``relations`` replace what would be extracted from
    ``model``; ``table_fields`` / ``form_fields`` replace the derived lists.
    ``form_layout`` replaces the default single-section layout.
    """

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    model: Any = None
    label: str | None = None
    icon: str | None = None
    operations: list[Operation] = Field(default_factory=lambda: list(DEFAULT_OPERATIONS))
    default_sort: Sort | None = None
    filters: list[Filter] = []
    permissions: dict[str, list[str]] | None = None
    id_field_name: str = "id"
    table: str | None = None
    fields: list[FieldDescriptor] | None = None
    relations: list[RelationDescriptor] | None = None
    table_fields: list[str] | None = None
    form_fields: list[str] | None = None
    form_layout: FormLayout | None = None


class ResourceMetadataDocument(MetadataModel):
    name: str
    label: str
    icon: str | None = None
    operations: tuple[Operation, ...]
    id_field_name: str = "id"
    fields: tuple[FieldDescriptor, ...]
    relations: tuple[RelationDescriptor, ...] = ()
    default_sort: Sort | None = None
    filters: tuple[Filter, ...] = ()
    searchable: tuple[str, ...] = ()
    filterable_fields: tuple[str, ...] = ()
    sortable_fields: tuple[str, ...] = ()
    required_fields: tuple[str, ...] = ()
    table_fields: tuple[str, ...] = ()
    form_fields: tuple[str, ...] = ()
    permissions: PermissionSet | None = None
    form_layout: FormLayout | None = None

    def field(self, name: str) -> FieldDescriptor | None:
        return next((f for f in self.fields if f.name == name), None)

    def relation(self, name: str) -> RelationDescriptor | None:
        return next((r for r in self.relations if r.name == name), None)

    def allows(self, operation: Operation | str, roles: Iterable[str]) -> bool:
        """True if *operation* is enabled and the resource permissions admit *roles*.

        An operation name outside ``Operation`` is never allowed.
        """
        try:
            op = Operation(operation)
        except ValueError:
            return False
        return op in self.operations and is_allowed(self.permissions, op, roles)

    def for_roles(
        self, operation: Operation | str, roles: Iterable[str]
    ) -> ResourceMetadataDocument:
        """Copy restricted to the fields *roles* may see for *operation*."""
        visible = filter_fields(self.fields, Operation(operation), roles)
        names = {f.name for f in visible}

        def keep(values: tuple[str, ...]) -> tuple[str, ...]:
            return tuple(v for v in values if v in names)

        return self.model_copy(
            update={
                "fields": tuple(visible),
                "searchable": keep(self.searchable),
                "filterable_fields": keep(self.filterable_fields),
                "sortable_fields": keep(self.sortable_fields),
                "required_fields": keep(self.required_fields),
                "table_fields": keep(self.table_fields),
                "form_fields": keep(self.form_fields),
                "form_layout": (
                    self.form_layout.restricted_to(names) if self.form_layout is not None else None
                ),
            }
        )

    def writable_payload(self, data: Mapping[str, Any] | None) -> dict[str, Any] | None:
        """Keys of an update payload that name a form field; everything else is dropped."""
        return filter_read_only(data, self.fields, self.form_fields)


def _humanize(name: str) -> str:
    return name.replace("_", " ").replace("-", " ").title()


def _check_unique_relations(resource: str, relations: Iterable[RelationDescriptor]) -> None:
    seen: set[str] = set()
    for rel in relations:
        if rel.name in seen:
            raise DuplicateRelationError(resource, rel.name)
        seen.add(rel.name)


def build_metadata(config: ResourceConfig) -> ResourceMetadataDocument:
    """Assemble the metadata document for *config*.

    Pure with respect to its input: the same config always yields an equal
    document.

    Raises:
        IntrospectionError: If fields or relations must be extracted and the
            model is not a composite record type.
        DuplicateRelationError: If two relations share a name.
        FormLayoutError: If ``form_layout`` references an unknown field or
            section.
    """
    descriptor = None
    if config.fields is None or config.relations is None:
        descriptor = describe(config.model)

    fields = config.fields if config.fields is not None else extract_fields(descriptor)
    if config.relations is not None:
        relations = config.relations
        _check_unique_relations(config.name, relations)
    else:
        relations = extract_relations(descriptor)

    visible = [f for f in fields if not f.hidden]
    table_fields = config.table_fields
    if table_fields is None:
        table_fields = [f.name for f in visible]
    form_fields = config.form_fields
    if form_fields is None:
        form_fields = [
            f.name for f in visible if not f.read_only and f.name != config.id_field_name
        ]

    if config.form_layout is not None:
        check_form_layout(config.name, config.form_layout, [f.name for f in fields])
        form_layout = config.form_layout
    else:
        by_name = {f.name: f for f in fields}
        form_layout = default_form_layout(
            [by_name[name] for name in form_fields if name in by_name],
            id_field_name=config.id_field_name,
        )

    document = ResourceMetadataDocument(
        name=config.name,
        label=config.label or _humanize(config.name),
        icon=config.icon,
        operations=tuple(config.operations),
        id_field_name=config.id_field_name,
        fields=tuple(fields),
        relations=tuple(relations),
        default_sort=config.default_sort,
        filters=tuple(config.filters),
        searchable=tuple(f.name for f in fields if f.searchable),
        filterable_fields=tuple(f.name for f in fields if f.filterable),
        sortable_fields=tuple(f.name for f in fields if f.sortable),
        required_fields=tuple(f.name for f in fields if f.required),
        table_fields=tuple(table_fields),
        form_fields=tuple(form_fields),
        form_layout=form_layout,
        permissions=normalize(config.permissions),
    )
    logger.debug(
        "Built metadata for %s (%d fields, %d relations)",
        config.name,
        len(document.fields),
        len(document.relations),
    )
    return document
