"""Configuration models for the YAML resources file."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

from modelmeta.resources.forms import FormLayout  # noqa: TC001
from modelmeta.resources.metadata import (
    DEFAULT_OPERATIONS,
    Filter,
    Operation,
    ResourceConfig,
    Sort,
)


class Settings(BaseSettings):
    """Process-wide settings.

    Fields can be set via YAML (the ``settings:`` section) or environment
    variables with the ``MODELMETA_`` prefix.  YAML takes precedence.
    """

    model_config = SettingsConfigDict(env_prefix="MODELMETA_")

    database_url: str | None = None
    default_operations: list[Operation] = Field(default_factory=lambda: list(DEFAULT_OPERATIONS))


def _none_to_list(v: Any) -> Any:
    return v if v is not None else []


class ResourceSpec(BaseModel):
    """One entry of the ``resources:`` list."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    model: str = Field(pattern=r"^[\w.]+:\w+$")
    label: str | None = None
    icon: str | None = None
    operations: list[Operation] | None = None
    default_sort: Sort | None = None
    filters: Annotated[list[Filter], BeforeValidator(_none_to_list)] = []
    permissions: dict[str, list[str]] | None = None
    id_field_name: str = "id"
    table: str | None = None
    table_fields: list[str] | None = None
    form_fields: list[str] | None = None
    form_layout: FormLayout | None = None


class Config(BaseModel):
    """Resources configuration, validated straight from YAML."""

    settings: Settings = Field(default_factory=Settings)
    resources: Annotated[list[ResourceSpec], BeforeValidator(_none_to_list)] = []
    config_dir: Path = Path()

    _models: dict[str, type] = PrivateAttr(default_factory=dict)

    def model_for(self, name: str) -> type:
        """Resolved model class of resource *name* (set by the loader)."""
        return self._models[name]

    def resource_configs(self) -> list[ResourceConfig]:
        """``ResourceConfig`` for every resource, in file order."""
        configs: list[ResourceConfig] = []
        for spec in self.resources:
            data = spec.model_dump(exclude={"model", "operations"}, exclude_none=True)
            configs.append(
                ResourceConfig(
                    **data,
                    model=self._models.get(spec.name),
                    operations=spec.operations or list(self.settings.default_operations),
                )
            )
        return configs
