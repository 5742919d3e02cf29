"""Relation consistency: required-ness, item bounds, and referential integrity.

Existence checks go through a ``DataStore``, one count query per to-one
relation and per to-many item.  Without a store only the structural checks
run.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from modelmeta.errors import (
    IntrospectionError,
    ReferenceNotFoundError,
    RelationBoundsError,
    RelationConfigError,
    RelationError,
    RelationLookupError,
    RelationRequiredError,
    RelationShapeError,
)
from modelmeta.resources.relations import extract_relations

if TYPE_CHECKING:
    from collections.abc import Iterable

    from modelmeta.resources.registry import ResourceRegistry
    from modelmeta.resources.relations import RelationDescriptor
    from modelmeta.stores.base import DataStore

logger = logging.getLogger(__name__)

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


def _is_composite(value: Any) -> bool:
    return isinstance(value, (BaseModel, Mapping)) or (
        dataclasses.is_dataclass(value) and not isinstance(value, type)
    )


def _get(value: Any, name: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(name)
    return getattr(value, name, None)


@dataclass(frozen=True)
class RelationValidator:
    """Validates the value held by one relation.

    *table* overrides the table counted in *store* (defaults to the target
    resource name); *message* replaces every error message.
    """

    relation: RelationDescriptor
    store: DataStore | None = None
    table: str | None = None
    message: str | None = None

    def validate(self, value: Any) -> None:
        """Raise a ``RelationError`` subclass on the first failure."""
        if value is None:
            self._require()
            return
        if self.relation.is_to_many:
            self._validate_many(value)
        else:
            self._validate_one(value)

    def _require(self) -> None:
        if self.relation.required:
            raise RelationRequiredError(self.relation.name, self.message)

    def _validate_one(self, value: Any) -> None:
        ref = self._reference_value(value)
        if ref is None:
            self._require()
            return
        self._check_exists(ref)

    def _validate_many(self, value: Any) -> None:
        rel = self.relation
        if not isinstance(value, _SEQUENCE_TYPES):
            raise RelationShapeError(rel.name, type(value).__name__, self.message)

        items = list(value)
        if not items:
            self._require()
        if rel.min_items and len(items) < rel.min_items:
            raise RelationBoundsError(
                rel.name, bound="min", limit=rel.min_items, actual=len(items), message=self.message
            )
        if rel.max_items and len(items) > rel.max_items:
            raise RelationBoundsError(
                rel.name, bound="max", limit=rel.max_items, actual=len(items), message=self.message
            )

        for item in items:
            ref = self._reference_value(item)
            if ref is None:
                continue
            self._check_exists(ref)

    def _reference_value(self, value: Any) -> Any:
        """The value compared against the target's reference field."""
        if value is None or not _is_composite(value):
            return value
        ref_field = self.relation.reference_field
        if not ref_field:
            if self.store is not None:
                self._missing_reference_field()
            return value
        return _get(value, ref_field)

    def _missing_reference_field(self) -> None:
        raise RelationConfigError(
            self.relation.name,
            f"relation {self.relation.name} has no reference field to check existence",
        )

    def _check_exists(self, ref: Any) -> None:
        if self.store is None:
            return
        rel = self.relation
        if not rel.reference_field:
            self._missing_reference_field()
        table = self.table or rel.resource
        try:
            count = self.store.count(table, rel.reference_field, ref)
        except Exception as exc:
            raise RelationLookupError(rel.name, exc) from exc
        if count == 0:
            raise ReferenceNotFoundError(
                rel.name,
                resource=rel.resource,
                field=rel.reference_field,
                value=ref,
                message=self.message,
            )


def _relation_validators(
    record: Any,
    relations: Iterable[RelationDescriptor] | None,
    registry: ResourceRegistry | None,
    store: DataStore | None,
    messages: Mapping[str, str] | None,
) -> list[tuple[RelationValidator, Any]]:
    if not isinstance(record, BaseModel) and not (
        dataclasses.is_dataclass(record) and not isinstance(record, type)
    ):
        raise IntrospectionError(record, "record must be a model or dataclass instance")
    if relations is None:
        relations = extract_relations(type(record))

    pairs: list[tuple[RelationValidator, Any]] = []
    for rel in relations:
        table = None
        if store is not None and registry is not None:
            table = registry.get(rel.resource).table
        validator = RelationValidator(
            rel, store=store, table=table, message=(messages or {}).get(rel.name)
        )
        pairs.append((validator, getattr(record, rel.attribute or rel.name, None)))
    return pairs


def validate_relations(
    record: Any,
    relations: Iterable[RelationDescriptor] | None = None,
    *,
    registry: ResourceRegistry | None = None,
    store: DataStore | None = None,
    messages: Mapping[str, str] | None = None,
) -> None:
    """Validate every relation of *record*, raising on the first failure.

    *relations* default to those extracted from the record's type.  When
    both *registry* and *store* are given, target tables are resolved
    through the registry.

    Raises:
        IntrospectionError: If *record* is not a model or dataclass instance.
        UnknownResourceError: If a target resource is not registered.
        RelationError: On the first relation that fails.
    """
    for validator, value in _relation_validators(record, relations, registry, store, messages):
        validator.validate(value)


def relation_errors(
    record: Any,
    relations: Iterable[RelationDescriptor] | None = None,
    *,
    registry: ResourceRegistry | None = None,
    store: DataStore | None = None,
    messages: Mapping[str, str] | None = None,
) -> list[RelationError]:
    """Like ``validate_relations`` but collects the first error of each relation."""
    errors: list[RelationError] = []
    for validator, value in _relation_validators(record, relations, registry, store, messages):
        try:
            validator.validate(value)
        except RelationError as exc:
            logger.debug("Relation %s failed: %s", validator.relation.name, exc)
            errors.append(exc)
    return errors
