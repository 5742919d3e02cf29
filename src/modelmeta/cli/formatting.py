"""Output rendering for metadata documents."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import typer
from rich.table import Table

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from modelmeta.resources.metadata import ResourceMetadataDocument


def styler(color: bool) -> Callable[..., str]:
    """Return ``typer.style`` when *color* is True, otherwise a passthrough."""
    if color:
        return typer.style
    return lambda text, **_kw: text


def resources_table(documents: Iterable[ResourceMetadataDocument]) -> Table:
    """One row per resource: name, label, field and relation counts, operations."""
    table = Table(title="Resources")
    table.add_column("Name", style="bold")
    table.add_column("Label")
    table.add_column("Fields", justify="right")
    table.add_column("Relations", justify="right")
    table.add_column("Operations")
    for doc in documents:
        table.add_row(
            doc.name,
            doc.label,
            str(len(doc.fields)),
            str(len(doc.relations)),
            ", ".join(op.value for op in doc.operations),
        )
    return table


def format_documents(documents: Mapping[str, ResourceMetadataDocument]) -> str:
    """JSON text: one document, or a name-keyed object of documents."""
    if len(documents) == 1:
        (doc,) = documents.values()
        data: object = doc.to_dict()
    else:
        data = {name: doc.to_dict() for name, doc in documents.items()}
    return json.dumps(data, indent=2)
