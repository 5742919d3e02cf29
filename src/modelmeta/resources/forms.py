"""Form layout metadata.

A ``FormLayout`` places a resource's form fields on a grid, grouped into
sections.  A section may carry a visibility condition on another field, using
the same operators as conditional validation rules.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import Field, field_validator, model_validator

from modelmeta.errors import ConditionError, FormLayoutError
from modelmeta.resources.base import MetadataModel
from modelmeta.resources.validation import (
    MISSING,
    OPERATORS,
    evaluate_condition,
    field_value,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from modelmeta.resources.fields import FieldDescriptor

logger = logging.getLogger(__name__)

DEFAULT_SECTION = "default"


class FormCondition(MetadataModel):
    field: str = Field(min_length=1)
    operator: str
    value: Any = None

    @field_validator("operator")
    @classmethod
    def _known_operator(cls, v: str) -> str:
        if v not in OPERATORS:
            raise ValueError(f"unsupported operator '{v}' (expected one of {sorted(OPERATORS)})")
        return v

    def holds(self, record: Any) -> bool:
        """True when the condition holds for *record*.

        A missing field or operands that cannot be compared never hold.
        """
        actual = field_value(record, self.field)
        if actual is MISSING:
            return False
        try:
            return evaluate_condition(actual, self.operator, self.value)
        except ConditionError as exc:
            logger.debug("Condition on %r does not hold: %s", self.field, exc)
            return False


class FormSection(MetadataModel):
    id: str = Field(min_length=1)
    title: str | None = None
    icon: str | None = None
    collapsible: bool = False
    default_collapsed: bool = False
    class_name: str | None = None
    condition: FormCondition | None = None

    def is_visible(self, record: Any) -> bool:
        return self.condition is None or self.condition.holds(record)


class FormFieldLayout(MetadataModel):
    field: str = Field(min_length=1)
    section_id: str | None = None
    column: int = Field(0, ge=0)
    row: int = Field(0, ge=0)
    col_span: int = Field(1, ge=1)
    row_span: int = Field(1, ge=1)
    class_name: str | None = None


class FormLayout(MetadataModel):
    columns: int = Field(1, ge=1)
    gutter: int = Field(16, ge=0)
    sections: tuple[FormSection, ...] = ()
    field_layouts: tuple[FormFieldLayout, ...] = ()

    @model_validator(mode="after")
    def _unique_sections(self) -> FormLayout:
        seen: set[str] = set()
        for section in self.sections:
            if section.id in seen:
                raise ValueError(f"duplicate section id '{section.id}'")
            seen.add(section.id)
        return self

    def section(self, section_id: str) -> FormSection | None:
        return next((s for s in self.sections if s.id == section_id), None)

    def visible_sections(self, record: Any) -> list[FormSection]:
        """Sections shown for *record*, in layout order."""
        return [s for s in self.sections if s.is_visible(record)]

    def restricted_to(self, fields: Iterable[str]) -> FormLayout:
        """Copy placing only *fields*; sections are kept."""
        names = set(fields)
        return self.model_copy(
            update={"field_layouts": tuple(f for f in self.field_layouts if f.field in names)}
        )


def default_form_layout(
    fields: Iterable[FieldDescriptor], *, id_field_name: str = "id"
) -> FormLayout:
    """One-column layout with a single section, one field per row.

    The id field and hidden fields are left out.
    """
    placed = [f.name for f in fields if f.name != id_field_name and not f.hidden]
    return FormLayout(
        sections=(FormSection(id=DEFAULT_SECTION, title="General Information"),),
        field_layouts=tuple(
            FormFieldLayout(field=name, section_id=DEFAULT_SECTION, row=row)
            for row, name in enumerate(placed)
        ),
    )


def check_form_layout(resource: str, layout: FormLayout, fields: Iterable[str]) -> None:
    """Check that *layout* only references known fields and sections.

    Raises:
        FormLayoutError: On the first unknown field or section reference.
    """
    known = set(fields)
    section_ids = {s.id for s in layout.sections}
    for placement in layout.field_layouts:
        if placement.field not in known:
            raise FormLayoutError(
                resource, f"field '{placement.field}' referenced in layout does not exist"
            )
        if placement.section_id and placement.section_id not in section_ids:
            raise FormLayoutError(
                resource,
                f"section '{placement.section_id}' referenced in field layout does not exist",
            )
    for section in layout.sections:
        if section.condition is not None and section.condition.field not in known:
            raise FormLayoutError(
                resource,
                f"field '{section.condition.field}' referenced in section condition "
                "does not exist",
            )
