"""Logging setup for the command line.

Library modules only create loggers; handlers are installed here, once per
invocation.  ``MODELMETA_LOG`` names a level and wins over ``-v`` flags.
From ``-vvv`` on, the SQL issued by reference checks is logged too.
"""

from __future__ import annotations

import logging
import os
import sys

import typer

LOG_ENV_VAR = "MODELMETA_LOG"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_VERBOSITY = (logging.INFO, logging.DEBUG)
_SQL_VERBOSITY = 3
_SQL_LOGGER = "sqlalchemy.engine"


def level_for(verbose: int, env_value: str | None = None) -> int | None:
    """Level for the ``modelmeta`` logger; ``None`` leaves logging unconfigured."""
    if env_value:
        name = env_value.strip().upper()
        if name not in _LEVEL_NAMES:
            typer.echo(
                f"WARNING: invalid {LOG_ENV_VAR} level '{name}', "
                f"expected one of {', '.join(sorted(_LEVEL_NAMES))}; defaulting to INFO",
                err=True,
            )
            return logging.INFO
        return logging.getLevelName(name)
    if verbose <= 0:
        return None
    return _VERBOSITY[min(verbose, len(_VERBOSITY)) - 1]


def configure_logging(verbose: int) -> None:
    level = level_for(verbose, os.environ.get(LOG_ENV_VAR))
    if level is None:
        return
    logging.basicConfig(
        level=logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    logging.getLogger("modelmeta").setLevel(level)
    if verbose >= _SQL_VERBOSITY:
        logging.getLogger(_SQL_LOGGER).setLevel(logging.INFO)
