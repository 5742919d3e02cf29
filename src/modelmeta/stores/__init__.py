"""Data stores for reference existence checks."""

from modelmeta.stores.base import DataStore
from modelmeta.stores.memory import InMemoryStore
from modelmeta.stores.sql import SQLAlchemyStore

__all__ = ["DataStore", "InMemoryStore", "SQLAlchemyStore"]
