"""Resolve ``"package.module:Class"`` references to model classes."""

from __future__ import annotations

import importlib
import importlib.util
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from types import ModuleType


class ModelImportError(Exception):
    """Raised when a model reference cannot be resolved."""


def _load_local_module(module_path: str, config_dir: Path) -> ModuleType:
    """Load a Python module from a file relative to *config_dir*."""
    parts = module_path.split(".")
    candidates = [
        config_dir / Path(*parts).with_suffix(".py"),
        config_dir / Path(*parts) / "__init__.py",
    ]
    file_path = next((p for p in candidates if p.exists()), None)
    if file_path is None:
        raise ModelImportError(f"Module '{module_path}' not found relative to {config_dir}")

    spec = importlib.util.spec_from_file_location(module_path, file_path)
    if spec is None or spec.loader is None:
        raise ModelImportError(f"Failed to create module spec for '{file_path}'")
    mod = importlib.util.module_from_spec(spec)
    # Registered before exec so string annotations resolve against the module.
    sys.modules[module_path] = mod
    try:
        spec.loader.exec_module(mod)
    except Exception as exc:
        del sys.modules[module_path]
        raise ModelImportError(
            f"Module '{module_path}' raised {type(exc).__name__}: {exc}"
        ) from exc
    return mod


def resolve_model(ref: str, config_dir: Path) -> Any:
    """Resolve *ref* (``module.path:ClassName``) to a class.

    Resolution order:

    1. ``importlib.import_module`` (installed packages).
    2. A local file relative to *config_dir*.
    """
    module_path, _, attr = ref.rpartition(":")
    if not module_path or not attr:
        raise ModelImportError(f"Invalid model reference '{ref}': expected 'module.path:ClassName'")

    try:
        mod = importlib.import_module(module_path)
    except ModuleNotFoundError:
        mod = _load_local_module(module_path, config_dir)

    obj = getattr(mod, attr, None)
    if obj is None:
        raise ModelImportError(f"Module '{module_path}' has no attribute '{attr}' (from '{ref}')")
    if not isinstance(obj, type):
        raise ModelImportError(f"'{ref}' is not a class")
    return obj
