"""Error types."""

from __future__ import annotations

from typing import Any


class ModelMetaError(Exception):
    """Base exception for modelmeta errors."""


class IntrospectionError(ModelMetaError):
    """Raised when a type cannot be introspected as a composite record."""

    def __init__(self, target: Any, reason: str = "not a composite record type") -> None:
        name = getattr(target, "__name__", None) or type(target).__name__
        super().__init__(f"Cannot introspect {name}: {reason}")
        self.target = target
        self.reason = reason


class UnknownResourceError(ModelMetaError):
    """Raised when a resource name has no registration."""

    def __init__(self, name: str) -> None:
        super().__init__(f"resource '{name}' not found in registry")
        self.name = name


class DuplicateRelationError(ModelMetaError):
    """Raised when two relations of one resource share a name."""

    def __init__(self, resource: str, relation: str) -> None:
        super().__init__(f"Duplicate relation '{relation}' on {resource}")
        self.resource = resource
        self.relation = relation


class ConditionError(ModelMetaError):
    """Raised when a conditional rule cannot be evaluated."""


class FormLayoutError(ModelMetaError):
    """Raised when a form layout references an unknown field or section."""

    def __init__(self, resource: str, message: str) -> None:
        super().__init__(f"{resource}: {message}")
        self.resource = resource


# ── Relation consistency ────────────────────────────────────────────


class RelationError(ModelMetaError):
    """Base class for relation consistency failures."""

    def __init__(self, relation: str, message: str) -> None:
        super().__init__(message)
        self.relation = relation


class RelationRequiredError(RelationError):
    """A required relation has no value."""

    def __init__(self, relation: str, message: str | None = None) -> None:
        super().__init__(relation, message or f"relation {relation} is required")


class RelationBoundsError(RelationError):
    """A to-many relation violates its item-count bounds."""

    def __init__(
        self,
        relation: str,
        *,
        bound: str,
        limit: int,
        actual: int,
        message: str | None = None,
    ) -> None:
        if message is None:
            if bound == "min":
                message = f"relation {relation} requires at least {limit} items, got {actual}"
            else:
                message = f"relation {relation} allows at most {limit} items, got {actual}"
        super().__init__(relation, message)
        self.bound = bound
        self.limit = limit
        self.actual = actual


class RelationShapeError(RelationError):
    """A to-many relation value is not a sequence."""

    def __init__(self, relation: str, got: str, message: str | None = None) -> None:
        super().__init__(
            relation,
            message or f"expected sequence for to-many relation {relation}, got {got}",
        )
        self.got = got


class ReferenceNotFoundError(RelationError):
    """A referenced record does not exist in the data store."""

    def __init__(
        self,
        relation: str,
        *,
        resource: str,
        field: str,
        value: Any,
        message: str | None = None,
    ) -> None:
        super().__init__(
            relation,
            message or f"referenced {resource} with {field} = {value} does not exist",
        )
        self.resource = resource
        self.field = field
        self.value = value


class RelationConfigError(RelationError):
    """A relation descriptor cannot support the requested check."""


class RelationLookupError(RelationError):
    """The data store failed while checking a reference.

    The original exception is chained via ``__cause__``.
    """

    def __init__(self, relation: str, cause: Exception) -> None:
        super().__init__(relation, f"error validating relation {relation}: {cause}")


# ── Record validation ───────────────────────────────────────────────


class RecordValidationError(ModelMetaError):
    """One or more fields of a record failed validation."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        msg = "Validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        super().__init__(msg)
