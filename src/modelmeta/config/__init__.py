"""YAML configuration loading and convenience registry/compile API."""

from __future__ import annotations

from typing import TYPE_CHECKING

from modelmeta.config.loader import ConfigError, load_config
from modelmeta.config.schema import Config, ResourceSpec, Settings
from modelmeta.resources.metadata import build_metadata
from modelmeta.resources.registry import ResourceRegistry

if TYPE_CHECKING:
    from pathlib import Path

    from modelmeta.resources.metadata import ResourceMetadataDocument
    from modelmeta.stores.base import DataStore

__all__ = [
    "Config",
    "ConfigError",
    "ResourceSpec",
    "Settings",
    "build_registry",
    "compile_all",
    "load",
    "load_config",
    "store_from_config",
]


def load(path: Path | str) -> Config:
    """Load a YAML configuration file."""
    return load_config(path)


def build_registry(config: Config) -> ResourceRegistry:
    """Register every configured resource, in file order."""
    registry = ResourceRegistry()
    for resource in config.resource_configs():
        registry.register(resource.name, resource.model, table=resource.table)
    return registry


def compile_all(config: Config) -> dict[str, ResourceMetadataDocument]:
    """Metadata document for every configured resource, keyed by name."""
    return {resource.name: build_metadata(resource) for resource in config.resource_configs()}


def store_from_config(config: Config) -> DataStore | None:
    """SQL store for ``settings.database_url``, or ``None`` when unset."""
    if not config.settings.database_url:
        return None
    from modelmeta.stores.sql import SQLAlchemyStore

    return SQLAlchemyStore.from_url(config.settings.database_url)
