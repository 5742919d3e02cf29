"""SQLAlchemy-backed data store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


class SQLAlchemyStore:
    """Counts rows with ``SELECT count(*) FROM <table> WHERE <column> = :value``.

    Tables are addressed by name; no ORM mapping is required.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @classmethod
    def from_url(cls, url: str, **engine_kwargs: Any) -> SQLAlchemyStore:
        return cls(sa.create_engine(url, **engine_kwargs))

    def count(self, table: str, column: str, value: Any) -> int:
        target = sa.table(table, sa.column(column))
        stmt = sa.select(sa.func.count()).select_from(target).where(target.c[column] == value)
        logger.debug("Counting %s.%s = %r", table, column, value)
        with self.engine.connect() as conn:
            return conn.execute(stmt).scalar_one()
