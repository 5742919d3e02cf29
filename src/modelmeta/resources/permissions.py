"""Role-based permission filtering.

A ``PermissionSet`` maps an operation name to the roles allowed to perform
it.  Filtering is fail-open: no permission set, or no (or an empty) entry
for the operation, means allowed (``policy.MISSING_PERMISSIONS``).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias, TypeVar

from modelmeta import policy

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)

PermissionSet: TypeAlias = dict[str, tuple[str, ...]]


class HasPermissions(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def permissions(self) -> PermissionSet | None: ...


class HasReadOnly(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def read_only(self) -> bool: ...


F = TypeVar("F", bound=HasPermissions)


def normalize(permissions: Mapping[str, Iterable[str]] | None) -> PermissionSet | None:
    """Coerce role lists to tuples; ``None`` stays ``None``."""
    if permissions is None:
        return None
    return {str(op): tuple(roles) for op, roles in permissions.items()}


def is_allowed(
    permissions: Mapping[str, Sequence[str]] | None,
    operation: Any,
    roles: Iterable[str],
) -> bool:
    """True if any of *roles* may perform *operation*.

    *operation* may be an ``Operation`` member or its string value.
    """
    if not permissions:
        return policy.MISSING_PERMISSIONS is policy.Tolerance.PERMIT
    op = getattr(operation, "value", operation)
    allowed = permissions.get(op)
    if not allowed:
        return policy.MISSING_PERMISSIONS is policy.Tolerance.PERMIT
    return not set(allowed).isdisjoint(roles)


def filter_fields(fields: Iterable[F], operation: Any, roles: Iterable[str]) -> list[F]:
    """Fields visible to *roles* for *operation*, in their original order."""
    roles = frozenset(roles)
    visible = [f for f in fields if is_allowed(f.permissions, operation, roles)]
    logger.debug("%d field(s) visible for %s to %s", len(visible), operation, sorted(roles))
    return visible


def filter_record(
    data: Mapping[str, Any],
    fields: Iterable[HasPermissions],
    operation: Any,
    roles: Iterable[str],
) -> dict[str, Any]:
    """Drop keys of *data* whose field the roles may not see; unknown keys are kept."""
    roles = frozenset(roles)
    hidden = {f.name for f in fields if not is_allowed(f.permissions, operation, roles)}
    return {k: v for k, v in data.items() if k not in hidden}


def filter_read_only(
    data: Mapping[str, Any] | None,
    fields: Iterable[HasReadOnly],
    editable: Iterable[str] | None = None,
) -> dict[str, Any] | None:
    """Keep only the keys of an update payload that may be written.

    *editable* names the writable fields; when empty, every field not flagged
    read-only is writable.  Keys match field names case-insensitively, and
    keys naming no writable field are dropped.
    """
    if data is None:
        return None
    writable = {name.lower() for name in editable or ()}
    if not writable:
        writable = {f.name.lower() for f in fields if not f.read_only}
    return {k: v for k, v in data.items() if k.lower() in writable}


def roles_from_claims(claims: Mapping[str, Any], claim: str = "roles") -> list[str]:
    """Roles carried by an already-verified token payload.

    The claim may be a list of roles or a single role string.
    """
    value = claims.get(claim)
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(role) for role in value]
    return []
