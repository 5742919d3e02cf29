"""Data store contract used for reference existence checks."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DataStore(Protocol):
    """Counts rows of *table* whose *column* equals *value*."""

    def count(self, table: str, column: str, value: Any) -> int: ...
