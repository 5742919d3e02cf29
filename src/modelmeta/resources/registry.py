"""Resource registry: resource name -> (model, relations).

The registry is an explicit object passed to whatever needs it.  It is safe
to share between threads: lookups take a shared read lock, registrations an
exclusive write lock.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from modelmeta.errors import UnknownResourceError
from modelmeta.resources.relations import RelationKind, extract_relations

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from modelmeta.resources.relations import RelationDescriptor

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Many concurrent readers or one writer; waiting writers block new readers.

    Not reentrant.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


@dataclass(frozen=True)
class ResourceEntry:
    name: str
    model: Any
    relations: tuple[RelationDescriptor, ...]
    table: str

    def relation(self, name: str) -> RelationDescriptor | None:
        return next((r for r in self.relations if r.name == name), None)


class ResourceRegistry:
    """Registry mapping resource name -> ``ResourceEntry``."""

    def __init__(self) -> None:
        self._entries: dict[str, ResourceEntry] = {}
        self._lock = ReadWriteLock()

    def register(
        self,
        name: str,
        model: Any,
        relations: Iterable[RelationDescriptor] | None = None,
        *,
        table: str | None = None,
    ) -> ResourceEntry:
        """Register (or replace) a resource.

        *relations* default to those extracted from *model*; *table* defaults
        to *name*.  Re-registering a name replaces the entry.
        """
        if not name:
            raise ValueError("Resource name must be non-empty")
        if relations is None:
            relations = extract_relations(model)
        entry = ResourceEntry(
            name=name,
            model=model,
            relations=tuple(relations),
            table=table or name,
        )
        with self._lock.write():
            replaced = name in self._entries
            self._entries[name] = entry
        if replaced:
            logger.debug("Replaced registration for resource %s", name)
        else:
            logger.debug("Registered resource %s (%d relations)", name, len(entry.relations))
        return entry

    def get(self, name: str) -> ResourceEntry:
        with self._lock.read():
            try:
                return self._entries[name]
            except KeyError as e:
                raise UnknownResourceError(name) from e

    def has(self, name: str) -> bool:
        with self._lock.read():
            return name in self._entries

    def names(self) -> list[str]:
        """Registered names, in registration order."""
        with self._lock.read():
            return list(self._entries)

    def entries(self) -> list[ResourceEntry]:
        with self._lock.read():
            return list(self._entries.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)


def check_relations(registry: ResourceRegistry) -> list[str]:
    """Registration-time consistency problems across all registered relations."""
    errors: list[str] = []
    for entry in registry.entries():
        for rel in entry.relations:
            where = f"{entry.name}.{rel.name}"
            if not registry.has(rel.resource):
                errors.append(f"{where}: target resource '{rel.resource}' is not registered")
            if rel.max_items and rel.min_items > rel.max_items:
                errors.append(
                    f"{where}: min_items {rel.min_items} exceeds max_items {rel.max_items}"
                )
            if (rel.min_items or rel.max_items) and not rel.is_to_many:
                errors.append(f"{where}: item bounds on a {rel.kind.value} relation")
            if rel.kind is RelationKind.MANY_TO_MANY and not rel.pivot_table:
                errors.append(f"{where}: many-to-many relation has no pivot_table")
    return errors
