"""Command line interface: ``modelmeta [OPTIONS] COMMAND``.

Options shared by every command (the resources file, color, verbosity) are
taken once by the root callback and handed to commands as a ``Session`` on
``ctx.obj``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer

from modelmeta import __version__
from modelmeta.cli.logs import configure_logging

app = typer.Typer(
    name="modelmeta",
    no_args_is_help=True,
    add_completion=False,
)


@dataclass(frozen=True)
class Session:
    config: Path
    color: bool


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"modelmeta {__version__}")
        raise typer.Exit


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[
        Path,
        typer.Option(
            "--config",
            "-c",
            envvar="MODELMETA_CONFIG",
            help="Path to the resources file.",
        ),
    ] = Path("modelmeta.yaml"),
    no_color: Annotated[
        bool,
        typer.Option("--no-color", help="Disable colored output."),
    ] = False,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase log verbosity (-v info, -vv debug, -vvv also SQL).",
        ),
    ] = 0,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Compile resource metadata from annotated data models."""
    _ = version
    configure_logging(verbose)
    ctx.obj = Session(config=config, color=not (no_color or os.environ.get("NO_COLOR")))


from modelmeta.cli import commands as _commands  # noqa: E402, F401
