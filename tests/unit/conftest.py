"""Shared fixtures for unit tests."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import pytest

from modelmeta.config import load

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from modelmeta.config.schema import Config

_MODELMETA_ENV_VARS = (
    "MODELMETA_CONFIG",
    "MODELMETA_DATABASE_URL",
    "MODELMETA_DEFAULT_OPERATIONS",
    "MODELMETA_LOG",
    "NO_COLOR",
)

BLOG_MODELS = '''\
from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel

from modelmeta.resources.markers import Meta, Permissions, RelationTag


class User(BaseModel):
    id: int
    name: Annotated[str, Meta("required;searchable;min=3;max=50")]
    email: Annotated[str, Meta("required;pattern=^[^@]+@[^@]+$")]
    salary: Annotated[int | None, Meta("min=0"), Permissions(read=["hr"])] = None


class Post(BaseModel):
    id: int
    title: Annotated[str, Meta("required;min=1")]
    author_id: int | None = None
    author: Annotated[
        User | None,
        RelationTag("resource=users;type=many-to-one;field=author_id;reference=id"),
    ] = None
'''


@pytest.fixture(autouse=True)
def _clean_modelmeta_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove MODELMETA_* env vars so unit tests don't leak host config."""
    for var in _MODELMETA_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def blog_models(tmp_path: Path) -> Iterator[Path]:
    """Write ``blog_models.py`` next to the config; unload it afterwards."""
    path = tmp_path / "blog_models.py"
    path.write_text(BLOG_MODELS)
    yield path
    sys.modules.pop("blog_models", None)


@pytest.fixture
def make_config(tmp_path: Path, blog_models: Path) -> Callable[..., Config]:
    """Factory fixture: write YAML + optional .env, return loaded Config."""
    _ = blog_models

    def _make(yaml_str: str, *, dotenv: str | None = None) -> Config:
        (tmp_path / "modelmeta.yaml").write_text(yaml_str)
        if dotenv is not None:
            (tmp_path / ".env").write_text(dotenv)
        return load(tmp_path / "modelmeta.yaml")

    return _make
