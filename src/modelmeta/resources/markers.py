"""Declarative field markers for data models.

Markers attach to fields via ``Annotated``:

- ``Meta``        : field annotation string (flags, bounds, presentation hints)
- ``RelationTag`` : relation annotation string
- ``Permissions`` : per-operation roles allowed to see the field
- ``Rules``       : structured validation rule (conditional / async / custom)

Example::

    class User(BaseModel):
        email: Annotated[str, Meta("required;unique;pattern=^.+@.+$")]
        salary: Annotated[int, Meta("min=0"), Permissions(read=["hr"])]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from modelmeta.introspection.descriptor import FieldSpec
    from modelmeta.resources.validation import ConditionalRule


# ── Marker classes ──────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Meta:
    """Field annotation, e.g. ``Meta("required;!sortable;min=3;label=Name")``."""

    annotation: str


@dataclass(frozen=True, slots=True)
class RelationTag:
    """Relation annotation, e.g. ``RelationTag("resource=users;type=many-to-one")``."""

    annotation: str


class Permissions:
    """Roles allowed per operation.

    Accepts a mapping, keyword arguments, or both::

        Permissions({"read": ["admin"]}, update=["admin", "owner"])
    """

    __slots__ = ("rules",)

    def __init__(
        self, rules: Mapping[str, Sequence[str]] | None = None, /, **operations: Sequence[str]
    ) -> None:
        merged = {**(rules or {}), **operations}
        self.rules: dict[str, tuple[str, ...]] = {op: tuple(roles) for op, roles in merged.items()}

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Permissions) and self.rules == other.rules

    def __hash__(self) -> int:
        return hash(tuple(sorted(self.rules.items())))

    def __repr__(self) -> str:
        return f"Permissions({self.rules!r})"


@dataclass(frozen=True, slots=True)
class Rules:
    """Structured validation rule, merged over what ``Meta`` declares."""

    required: bool | None = None
    min: float | None = None
    max: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    message: str | None = None
    conditional: ConditionalRule | None = None
    async_validator: str | None = None
    custom: str | None = None


# ── Helpers ────────────────────────────────────────────────────────


def annotation_of(spec: FieldSpec) -> str:
    """Concatenated ``Meta`` annotations of a field (several markers are joined)."""
    return ";".join(m.annotation for m in spec.markers if isinstance(m, Meta))
