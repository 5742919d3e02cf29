"""Map exceptions to clean stderr messages and exit codes."""

from __future__ import annotations

import typer


def _err(msg: str, *, fg: str | None) -> None:
    """Print a styled message to stderr."""
    typer.echo(typer.style(msg, fg=fg), err=True)


def handle_error(exc: Exception, *, color: bool = True) -> int:
    """Print a clean error message to stderr and return an exit code.

    All errors map to exit code 1.  No tracebacks are printed.
    """
    from modelmeta.config.loader import ConfigError
    from modelmeta.errors import (
        FormLayoutError,
        IntrospectionError,
        RecordValidationError,
        RelationError,
        UnknownResourceError,
    )

    fg = typer.colors.RED if color else None

    if isinstance(exc, ConfigError):
        _err(f"Configuration error: {exc}", fg=fg)
    elif isinstance(exc, RecordValidationError):
        _err("Validation failed:", fg=fg)
        for e in exc.errors:
            _err(f"  - {e}", fg=fg)
    elif isinstance(exc, RelationError):
        _err(f"Relation check failed: {exc}", fg=fg)
    elif isinstance(exc, UnknownResourceError):
        _err(f"Unknown resource: {exc.name}", fg=fg)
    elif isinstance(exc, FormLayoutError):
        _err(f"Form layout error: {exc}", fg=fg)
    elif isinstance(exc, IntrospectionError):
        _err(f"Introspection failed: {exc}", fg=fg)
    else:
        _err(f"Error: {exc}", fg=fg)

    return 1
