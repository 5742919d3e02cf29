"""CLI command implementations."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer

from modelmeta.cli import Session, app
from modelmeta.cli.errors import handle_error

if TYPE_CHECKING:
    from modelmeta.config.schema import Config
    from modelmeta.resources.metadata import ResourceMetadataDocument


def _session(ctx: typer.Context) -> Session:
    """Shared options, or their defaults when a command is invoked on its own."""
    obj = ctx.find_object(Session)
    return obj if obj is not None else Session(config=Path("modelmeta.yaml"), color=True)


def _select(
    documents: dict[str, ResourceMetadataDocument], resource: str | None
) -> dict[str, ResourceMetadataDocument]:
    from modelmeta.errors import UnknownResourceError

    if resource is None:
        return documents
    if resource not in documents:
        raise UnknownResourceError(resource)
    return {resource: documents[resource]}


@app.command(name="resources")
def resources_cmd(ctx: typer.Context) -> None:
    """List the configured resources."""
    from rich.console import Console

    from modelmeta.cli.formatting import resources_table
    from modelmeta.config import compile_all, load

    session = _session(ctx)
    color = session.color
    try:
        cfg = load(session.config)
        documents = compile_all(cfg)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    if not documents:
        typer.echo("No resources configured.")
        return
    Console(no_color=not color).print(resources_table(documents.values()))


@app.command(name="compile")
def compile_cmd(
    ctx: typer.Context,
    resource: Annotated[
        str | None,
        typer.Argument(help="Compile only this resource."),
    ] = None,
    operation: Annotated[
        str | None,
        typer.Option("--operation", help="Keep only fields visible for this operation."),
    ] = None,
    role: Annotated[
        list[str] | None,
        typer.Option("--role", "-r", help="Caller role (repeatable); used with --operation."),
    ] = None,
    out: Annotated[
        Path | None,
        typer.Option("--out", "-o", help="Write metadata to file."),
    ] = None,
) -> None:
    """Compile resource metadata to JSON."""
    from modelmeta.cli.formatting import format_documents
    from modelmeta.config import compile_all, load
    from modelmeta.config.loader import ConfigError
    from modelmeta.resources.metadata import Operation

    session = _session(ctx)
    color = session.color
    try:
        cfg = load(session.config)
        documents = _select(compile_all(cfg), resource)
        if operation is not None:
            try:
                op = Operation(operation)
            except ValueError as e:
                raise ConfigError(f"Unknown operation '{operation}'") from e
            documents = {
                name: doc.for_roles(op, role or []) for name, doc in documents.items()
            }
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    text = format_documents(documents)
    if out is None:
        typer.echo(text)
        return
    out.write_text(text + "\n", encoding="utf-8")
    typer.echo(f"Metadata written to {out}")


@app.command()
def check(ctx: typer.Context) -> None:
    """Compile every resource and check relations between them."""
    from modelmeta.cli.formatting import styler
    from modelmeta.config import build_registry, compile_all, load
    from modelmeta.config.loader import ConfigError
    from modelmeta.resources.registry import check_relations

    session = _session(ctx)
    color = session.color
    try:
        cfg = load(session.config)
        compile_all(cfg)
        errors = check_relations(build_registry(cfg))
        if errors:
            raise ConfigError("\n".join(errors))
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(styler(color)("Configuration is valid.", fg="green"))


def _instantiate(cfg: Config, resource: str, record: dict[str, Any]) -> Any:
    from pydantic import BaseModel

    model = cfg.model_for(resource)
    if isinstance(model, type) and issubclass(model, BaseModel):
        return model.model_validate(record)
    return model(**record)


@app.command()
def validate(
    ctx: typer.Context,
    resource: Annotated[str, typer.Argument(help="Resource the record belongs to.")],
    record_file: Annotated[Path, typer.Argument(help="JSON file holding one record.")],
) -> None:
    """Validate a JSON record against a resource's rules and relations.

    Relations are checked against ``settings.database_url`` when it is set.
    """
    import json

    from modelmeta.cli.formatting import styler
    from modelmeta.config import build_registry, compile_all, load, store_from_config
    from modelmeta.config.loader import ConfigError
    from modelmeta.errors import RecordValidationError
    from modelmeta.resources.consistency import validate_relations
    from modelmeta.resources.nested import validate_nested
    from modelmeta.resources.validation import validate_record

    session = _session(ctx)
    color = session.color
    try:
        cfg = load(session.config)
        (doc,) = _select(compile_all(cfg), resource).values()
        try:
            record = json.loads(record_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigError(f"Failed to read {record_file}: {e}") from e
        if not isinstance(record, dict):
            raise ConfigError(f"{record_file}: record must be a JSON object")

        errors = [str(e) for e in validate_record(doc.fields, record)]
        for field in doc.fields:
            value = record.get(field.name)
            if field.nested is not None and value is not None:
                errors.extend(validate_nested(value, field.nested))
        if errors:
            raise RecordValidationError(errors)

        store = store_from_config(cfg)
        if store is not None and doc.relations:
            validate_relations(
                _instantiate(cfg, resource, record),
                doc.relations,
                registry=build_registry(cfg),
                store=store,
            )
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(styler(color)("Record is valid.", fg="green"))
