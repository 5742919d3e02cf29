"""Validation rule compiler.

A ``ValidationRule`` is pure data: it is built from field annotations and
``Rules`` markers, serialized into metadata, and projected into generic UI
rules by ``to_ui_rules()``.  ``compile_rule()`` turns it into a
``CompiledRule`` that validates values locally, including rules
conditioned on a sibling field of the record.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from modelmeta import policy
from modelmeta.errors import ConditionError, RecordValidationError
from modelmeta.introspection.kinds import TypeKind
from modelmeta.resources.annotations import flag_names, options
from modelmeta.resources.base import MetadataModel

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from modelmeta.resources.annotations import Token
    from modelmeta.resources.fields import FieldDescriptor
    from modelmeta.resources.markers import Rules

logger = logging.getLogger(__name__)

ConditionalCheck = Callable[[Any], "str | None"]

MISSING = object()


# ── Rule data ───────────────────────────────────────────────────────


class ConditionalRule(MetadataModel):
    """Apply a check only when ``record.<field> <operator> <value>`` holds."""

    field: str
    operator: str
    value: Any = None
    message: str | None = None


class ValidationRule(MetadataModel):
    """Declarative validation for one field.

    Unset bounds are ``None``; a bound of ``0`` is a real bound.
    """

    required: bool = False
    min: float | None = None
    max: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    message: str | None = None
    conditional: ConditionalRule | None = None
    async_validator: str | None = None
    custom: str | None = None

    @property
    def is_empty(self) -> bool:
        return self == ValidationRule()


class UIRule(MetadataModel):
    """Framework-neutral form rule."""

    type: str
    value: Any = None
    pattern: str | None = None
    message: str | None = None
    trigger: str = "onBlur"


class ValidatorKind(str, Enum):
    LENGTH = "length"
    RANGE = "range"
    PATTERN = "pattern"


def _fmt_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class FieldValidator(MetadataModel):
    """Single length, range, or pattern check attached to a field."""

    kind: ValidatorKind
    min: float | None = None
    max: float | None = None
    pattern: str | None = None
    message: str | None = None

    def check(self, value: Any) -> str | None:
        """Return an error message, or ``None`` when *value* passes."""
        if self.kind is ValidatorKind.RANGE:
            number = _as_float(value)
            if number is None:
                return "value must be a number"
            if self.min is not None and number < self.min:
                return f"Minimum value is {_fmt_number(self.min)}"
            if self.max is not None and number > self.max:
                return f"Maximum value is {_fmt_number(self.max)}"
            return None

        if not isinstance(value, str):
            return "value must be a string"

        if self.kind is ValidatorKind.LENGTH:
            if self.min is not None and len(value) < self.min:
                return f"Minimum length is {_fmt_number(self.min)} characters"
            if self.max is not None and len(value) > self.max:
                return f"Maximum length is {_fmt_number(self.max)} characters"
            return None

        try:
            matched = re.search(self.pattern or "", value) is not None
        except re.error as exc:
            return f"invalid pattern: {exc}"
        if not matched:
            return self.message or f"value does not match pattern {self.pattern}"
        return None


def validators_for(rule: ValidationRule | None) -> tuple[FieldValidator, ...]:
    """Project a rule into its length, range, and pattern validators."""
    if rule is None:
        return ()
    validators: list[FieldValidator] = []
    if rule.min_length is not None or rule.max_length is not None:
        validators.append(
            FieldValidator(kind=ValidatorKind.LENGTH, min=rule.min_length, max=rule.max_length)
        )
    if rule.min is not None or rule.max is not None:
        validators.append(FieldValidator(kind=ValidatorKind.RANGE, min=rule.min, max=rule.max))
    if rule.pattern is not None:
        validators.append(
            FieldValidator(kind=ValidatorKind.PATTERN, pattern=rule.pattern, message=rule.message)
        )
    return tuple(validators)


# ── Building rules from annotations ─────────────────────────────────


def _parse_bound(raw: str, *, integer: bool) -> float | int | None:
    try:
        value = int(raw) if integer else float(raw)
    except ValueError:
        logger.debug(
            "Ignoring malformed literal %r (policy: %s)",
            raw,
            policy.MALFORMED_ANNOTATION_LITERAL.value,
        )
        return None
    if integer and value < 0:
        return None
    return value


def build_rule(
    tokens: Iterable[Token],
    kind: TypeKind,
    rules: Rules | None = None,
) -> ValidationRule | None:
    """Build a field's ``ValidationRule`` from its annotation tokens and ``Rules`` marker.

    ``min`` / ``max`` bound the length of string fields and the value of
    numeric fields; on other kinds they are ignored.  Returns ``None`` when
    nothing is declared.
    """
    tokens = list(tokens)
    opts = options(tokens)
    data: dict[str, Any] = {"required": "required" in flag_names(tokens)}

    for key in ("min", "max"):
        raw = opts.get(key)
        if raw is None:
            continue
        if kind.is_numeric:
            data[key] = _parse_bound(raw, integer=False)
        elif kind is TypeKind.STRING:
            data[f"{key}_length"] = _parse_bound(raw, integer=True)
        else:
            logger.debug("Ignoring %s=%s on %s field", key, raw, kind.value)

    if opts.get("pattern"):
        data["pattern"] = opts["pattern"]
    if opts.get("message"):
        data["message"] = opts["message"]

    if rules is not None:
        for name in ValidationRule.model_fields:
            value = getattr(rules, name)
            if value is not None:
                data[name] = value

    rule = ValidationRule.model_validate({k: v for k, v in data.items() if v is not None})
    return None if rule.is_empty else rule


# ── UI projection ───────────────────────────────────────────────────


def to_ui_rules(rule: ValidationRule | None) -> list[UIRule]:
    """Project a rule into ordered UI rules.

    Order: required, min length, max length, pattern, min, max, custom,
    conditional, async.
    """
    if rule is None:
        return []

    rules: list[UIRule] = []
    if rule.required:
        rules.append(UIRule(type="required", message=rule.message))
    if rule.min_length is not None:
        rules.append(
            UIRule(
                type="min",
                value=rule.min_length,
                message=f"Minimum length is {rule.min_length} characters",
            )
        )
    if rule.max_length is not None:
        rules.append(
            UIRule(
                type="max",
                value=rule.max_length,
                message=f"Maximum length is {rule.max_length} characters",
            )
        )
    if rule.pattern is not None:
        rules.append(UIRule(type="pattern", pattern=rule.pattern, message=rule.message))
    if rule.min is not None:
        rules.append(
            UIRule(type="min", value=rule.min, message=f"Minimum value is {_fmt_number(rule.min)}")
        )
    if rule.max is not None:
        rules.append(
            UIRule(type="max", value=rule.max, message=f"Maximum value is {_fmt_number(rule.max)}")
        )
    if rule.custom is not None:
        rules.append(UIRule(type="custom", value=rule.custom, message=rule.message))
    if rule.conditional is not None:
        cond = rule.conditional
        rules.append(
            UIRule(
                type="conditional",
                value={"field": cond.field, "operator": cond.operator, "value": cond.value},
                message=cond.message,
                trigger="onChange",
            )
        )
    if rule.async_validator is not None:
        rules.append(UIRule(type="async", value=rule.async_validator, message=rule.message))
    return rules


# ── Conditions ──────────────────────────────────────────────────────


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _as_number(value: Any) -> float:
    number = _as_float(value)
    if number is None:
        raise ConditionError(f"cannot compare {value!r} as a number")
    return number


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, (list, tuple, set, frozenset)):
        return any(_as_text(item) == _as_text(expected) for item in actual)
    return _as_text(expected) in _as_text(actual)


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "eq": lambda a, b: _as_text(a) == _as_text(b),
    "neq": lambda a, b: _as_text(a) != _as_text(b),
    "gt": lambda a, b: _as_number(a) > _as_number(b),
    "lt": lambda a, b: _as_number(a) < _as_number(b),
    "gte": lambda a, b: _as_number(a) >= _as_number(b),
    "lte": lambda a, b: _as_number(a) <= _as_number(b),
    "contains": _contains,
    "startsWith": lambda a, b: _as_text(a).startswith(_as_text(b)),
    "endsWith": lambda a, b: _as_text(a).endswith(_as_text(b)),
}

OPERATORS: frozenset[str] = frozenset(_OPERATORS)


def evaluate_condition(actual: Any, operator: str, expected: Any) -> bool:
    """Evaluate ``actual <operator> expected``.

    ``eq`` / ``neq`` and the string operators compare string renderings;
    ``gt`` / ``lt`` / ``gte`` / ``lte`` coerce both sides to numbers.

    Raises:
        ConditionError: Unknown operator, or operands that cannot be coerced.
    """
    try:
        op = _OPERATORS[operator]
    except KeyError as e:
        raise ConditionError(f"unsupported operator: {operator}") from e
    return op(actual, expected)


def field_value(record: Any, name: str) -> Any:
    """Read *name* from a mapping or object record; ``MISSING`` when absent."""
    if record is None:
        return MISSING
    if isinstance(record, Mapping):
        return record.get(name, MISSING)
    return getattr(record, name, MISSING)


@dataclass(frozen=True)
class ConditionalValidator:
    """Run *check* only when the condition on a sibling field holds."""

    condition: ConditionalRule
    check: ConditionalCheck

    def validate(self, value: Any, record: Any) -> str | None:
        dependent = field_value(record, self.condition.field)
        if dependent is MISSING:
            logger.debug(
                "Skipping condition on unknown field %r (policy: %s)",
                self.condition.field,
                policy.UNRESOLVABLE_CONDITION.value,
            )
            return None
        try:
            holds = evaluate_condition(dependent, self.condition.operator, self.condition.value)
        except ConditionError as exc:
            logger.debug(
                "Skipping condition (%s; policy: %s)", exc, policy.UNRESOLVABLE_CONDITION.value
            )
            return None
        if not holds:
            return None
        error = self.check(value)
        if error is None:
            return None
        return self.condition.message or error


# ── Compiled rules ──────────────────────────────────────────────────


class RuleEvaluator(Protocol):
    """Evaluates the advisory async and custom rules."""

    def check_async(self, url: str, value: Any, record: Any) -> str | None: ...

    def check_custom(self, expression: str, value: Any, record: Any) -> str | None: ...


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


@dataclass(frozen=True)
class CompiledRule:
    rule: ValidationRule
    conditional: ConditionalValidator | None = None
    evaluator: RuleEvaluator | None = None

    def validate(self, value: Any, record: Any = None) -> list[str]:
        """Return every error for *value*; *record* supplies sibling fields."""
        errors: list[str] = []
        if _is_blank(value):
            if self.rule.required:
                errors.append(self.rule.message or "field is required")
        else:
            for validator in validators_for(self.rule):
                error = validator.check(value)
                if error is not None:
                    errors.append(error)

        if self.conditional is not None:
            error = self.conditional.validate(value, record)
            if error is not None:
                errors.append(error)

        errors.extend(self._hooks(value, record))
        return errors

    def _hooks(self, value: Any, record: Any) -> list[str]:
        rule = self.rule
        if rule.async_validator is None and rule.custom is None:
            return []
        if self.evaluator is None:
            logger.debug(
                "No evaluator for async/custom rules (policy: %s)", policy.UNEVALUATED_HOOKS.value
            )
            return []
        errors: list[str] = []
        if rule.custom is not None:
            error = self.evaluator.check_custom(rule.custom, value, record)
            if error is not None:
                errors.append(rule.message or error)
        if rule.async_validator is not None:
            error = self.evaluator.check_async(rule.async_validator, value, record)
            if error is not None:
                errors.append(rule.message or error)
        return errors


def compile_rule(
    rule: ValidationRule,
    *,
    conditional_check: ConditionalCheck | None = None,
    evaluator: RuleEvaluator | None = None,
) -> CompiledRule:
    """Compile *rule* for local validation.

    The conditional part only runs when *conditional_check* is supplied; the
    async and custom parts only run when *evaluator* is supplied.
    """
    conditional = None
    if rule.conditional is not None and conditional_check is not None:
        conditional = ConditionalValidator(rule.conditional, conditional_check)
    return CompiledRule(rule=rule, conditional=conditional, evaluator=evaluator)


# ── Record validation ───────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class FieldError:
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


def validate_record(
    fields: Sequence[FieldDescriptor],
    record: Any,
    *,
    evaluator: RuleEvaluator | None = None,
    conditional_checks: Mapping[str, ConditionalCheck] | None = None,
) -> list[FieldError]:
    """Validate every field of *record* that declares a rule."""
    checks = conditional_checks or {}
    errors: list[FieldError] = []
    for descriptor in fields:
        if descriptor.validation is None or descriptor.category.value == "computed":
            continue
        compiled = compile_rule(
            descriptor.validation,
            conditional_check=checks.get(descriptor.name),
            evaluator=evaluator,
        )
        value = field_value(record, descriptor.name)
        if value is MISSING:
            value = None
        errors.extend(
            FieldError(descriptor.name, message) for message in compiled.validate(value, record)
        )
    return errors


def ensure_valid(
    fields: Sequence[FieldDescriptor],
    record: Any,
    *,
    evaluator: RuleEvaluator | None = None,
    conditional_checks: Mapping[str, ConditionalCheck] | None = None,
) -> None:
    """Raise ``RecordValidationError`` listing every failing field."""
    errors = validate_record(
        fields, record, evaluator=evaluator, conditional_checks=conditional_checks
    )
    if errors:
        raise RecordValidationError([str(e) for e in errors])
