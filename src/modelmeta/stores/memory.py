"""In-memory data store."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


class InMemoryStore:
    """Rows kept as plain dicts, grouped by table name."""

    def __init__(self, rows: Mapping[str, Iterable[Mapping[str, Any]]] | None = None) -> None:
        self._tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for table, table_rows in (rows or {}).items():
            self._tables[table].extend(dict(r) for r in table_rows)

    def add(self, table: str, **row: Any) -> None:
        self._tables[table].append(row)

    def count(self, table: str, column: str, value: Any) -> int:
        return sum(1 for row in self._tables.get(table, ()) if row.get(column) == value)
