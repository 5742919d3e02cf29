"""YAML configuration file loader."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import ValidationError
from ruamel.yaml import YAML

from modelmeta.config.imports import ModelImportError, resolve_model
from modelmeta.config.schema import Config, ResourceSpec

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised for configuration loading / validation errors."""


# Field name → environment variable.
_SETTINGS_ENV_MAP: dict[str, str] = {
    "database_url": "MODELMETA_DATABASE_URL",
    "default_operations": "MODELMETA_DEFAULT_OPERATIONS",
}

_SETTINGS_LIST_FIELDS: frozenset[str] = frozenset({"default_operations"})


def _resolve_settings(raw_settings: dict[str, Any], config_dir: Path) -> dict[str, Any]:
    """Resolve settings fields from YAML, env vars, and ``.env`` file.

    Priority (highest wins): YAML value > env var > ``.env`` file.
    """
    env_file = config_dir / ".env"
    dotenv_vals = dotenv_values(env_file, encoding="utf-8-sig") if env_file.is_file() else {}

    resolved: dict[str, Any] = {}
    for field, env_key in _SETTINGS_ENV_MAP.items():
        val = raw_settings.get(field)
        if val is None:
            val = os.environ.get(env_key)
        if val is None:
            val = dotenv_vals.get(env_key)
        if val is not None:
            if field in _SETTINGS_LIST_FIELDS and isinstance(val, str):
                val = [v.strip() for v in val.split(",") if v.strip()]
            resolved[field] = val

    unknown = set(raw_settings) - set(_SETTINGS_ENV_MAP)
    if unknown:
        raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")
    return resolved


def _validate_unique_names(resources: list[ResourceSpec]) -> list[str]:
    """Check that no two resources share the same name."""
    seen: set[str] = set()
    errors: list[str] = []
    for r in resources:
        if r.name in seen:
            errors.append(f"Duplicate resource name '{r.name}'")
        seen.add(r.name)
    return errors


def load_config(path: Path | str) -> Config:
    """Load a YAML configuration file and return a ``Config`` object.

    Every ``model`` reference is imported, either as an installed module
    or as a file relative to the config file.

    Raises:
        ConfigError: On YAML parse errors, validation failures, duplicate
            resource names, or unresolvable model references.
    """
    path = Path(path)

    try:
        raw = YAML(typ="safe").load(path)
    except Exception as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: top level must be a mapping")

    try:
        raw["settings"] = _resolve_settings(raw.get("settings") or {}, path.parent)
        config = Config.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    config.config_dir = path.parent

    errors = _validate_unique_names(config.resources)
    if errors:
        raise ConfigError("\n".join(errors))

    for spec in config.resources:
        try:
            config._models[spec.name] = resolve_model(spec.model, config.config_dir)
        except ModelImportError as exc:
            raise ConfigError(f"Resource '{spec.name}': {exc}") from exc

    logger.info("Loaded config from %s (%d resources)", path, len(config.resources))
    return config
