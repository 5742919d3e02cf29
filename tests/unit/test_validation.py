from __future__ import annotations

from typing import Any

import pytest

from modelmeta import policy
from modelmeta.errors import ConditionError, RecordValidationError
from modelmeta.introspection import FieldSpec, TypeKind
from modelmeta.resources.annotations import parse_annotation
from modelmeta.resources.fields import extract_field
from modelmeta.resources.markers import Meta, Rules
from modelmeta.resources.validation import (
    ConditionalRule,
    FieldValidator,
    ValidationRule,
    ValidatorKind,
    build_rule,
    compile_rule,
    ensure_valid,
    evaluate_condition,
    to_ui_rules,
    validate_record,
    validators_for,
)


class RecordingEvaluator:
    def __init__(
        self, *, async_error: str | None = None, custom_error: str | None = None
    ) -> None:
        self.async_error = async_error
        self.custom_error = custom_error
        self.calls: list[tuple[str, Any]] = []

    def check_async(self, url: str, value: Any, record: Any) -> str | None:
        self.calls.append(("async", url))
        return self.async_error

    def check_custom(self, expression: str, value: Any, record: Any) -> str | None:
        self.calls.append(("custom", expression))
        return self.custom_error


def _rule(annotation: str, kind: TypeKind = TypeKind.STRING) -> ValidationRule | None:
    return build_rule(parse_annotation(annotation), kind)


class TestBuildRule:
    def test_string_bounds_are_lengths(self) -> None:
        rule = _rule("required;min=3;max=50")
        assert rule == ValidationRule(required=True, min_length=3, max_length=50)

    def test_numeric_bounds_are_values(self) -> None:
        rule = _rule("min=0.5;max=10", TypeKind.FLOAT)
        assert rule == ValidationRule(min=0.5, max=10)

    def test_zero_is_a_real_bound(self) -> None:
        rule = _rule("min=0", TypeKind.INTEGER)
        assert rule is not None
        assert rule.min == 0

    def test_negative_length_ignored(self) -> None:
        assert _rule("min=-1") is None

    def test_nothing_declared(self) -> None:
        assert _rule("searchable;label=Name") is None

    def test_pattern_and_message(self) -> None:
        rule = _rule("pattern=^a;message=must start with a")
        assert rule == ValidationRule(pattern="^a", message="must start with a")

    def test_malformed_literal_policy(self) -> None:
        assert policy.MALFORMED_ANNOTATION_LITERAL is policy.Tolerance.IGNORE
        assert _rule("min=three", TypeKind.INTEGER) is None

    def test_rules_marker_overrides(self) -> None:
        rule = build_rule(
            parse_annotation("min=3"),
            TypeKind.STRING,
            Rules(min_length=5, async_validator="/api/check", custom="len(v) > 0"),
        )
        assert rule is not None
        assert rule.min_length == 5
        assert rule.async_validator == "/api/check"
        assert rule.custom == "len(v) > 0"


class TestFieldValidator:
    def test_length(self) -> None:
        v = FieldValidator(kind=ValidatorKind.LENGTH, min=3, max=5)
        assert v.check("abcd") is None
        assert v.check("ab") == "Minimum length is 3 characters"
        assert v.check("abcdef") == "Maximum length is 5 characters"
        assert v.check(12) == "value must be a string"

    def test_range(self) -> None:
        v = FieldValidator(kind=ValidatorKind.RANGE, min=0, max=1.5)
        assert v.check(1) is None
        assert v.check("1.0") is None
        assert v.check(-1) == "Minimum value is 0"
        assert v.check(2) == "Maximum value is 1.5"
        assert v.check(True) == "value must be a number"
        assert v.check("x") == "value must be a number"

    def test_pattern(self) -> None:
        v = FieldValidator(kind=ValidatorKind.PATTERN, pattern=r"^\d+$")
        assert v.check("123") is None
        assert v.check("12a") == r"value does not match pattern ^\d+$"

    def test_pattern_custom_message(self) -> None:
        v = FieldValidator(kind=ValidatorKind.PATTERN, pattern="^a", message="starts with a")
        assert v.check("b") == "starts with a"

    def test_invalid_pattern(self) -> None:
        v = FieldValidator(kind=ValidatorKind.PATTERN, pattern="(")
        error = v.check("x")
        assert error is not None
        assert error.startswith("invalid pattern")

    def test_validators_for_order(self) -> None:
        rule = ValidationRule(min=1, max=2, min_length=1, pattern="x")
        kinds = [v.kind for v in validators_for(rule)]
        assert kinds == [ValidatorKind.LENGTH, ValidatorKind.RANGE, ValidatorKind.PATTERN]
        assert validators_for(None) == ()


class TestUIRules:
    def test_order(self) -> None:
        rule = ValidationRule(
            required=True,
            min=1,
            max=9,
            min_length=2,
            max_length=8,
            pattern="^x",
            custom="expr",
            conditional=ConditionalRule(field="kind", operator="eq", value="a", message="m"),
            async_validator="/check",
        )
        assert [r.type for r in to_ui_rules(rule)] == [
            "required",
            "min",
            "max",
            "pattern",
            "min",
            "max",
            "custom",
            "conditional",
            "async",
        ]

    def test_messages_and_triggers(self) -> None:
        rule = ValidationRule(
            min_length=2,
            min=3,
            conditional=ConditionalRule(field="kind", operator="eq", value="a", message="m"),
        )
        length, value, cond = to_ui_rules(rule)
        assert length.message == "Minimum length is 2 characters"
        assert length.trigger == "onBlur"
        assert value.message == "Minimum value is 3"
        assert cond.value == {"field": "kind", "operator": "eq", "value": "a"}
        assert cond.trigger == "onChange"
        assert cond.message == "m"

    def test_none(self) -> None:
        assert to_ui_rules(None) == []


class TestConditions:
    @pytest.mark.parametrize(
        ("actual", "operator", "expected", "result"),
        [
            ("US", "eq", "US", True),
            (True, "eq", "true", True),
            (3.0, "eq", 3, True),
            ("US", "neq", "CA", True),
            (5, "gt", "3", True),
            (2, "lt", 3, True),
            (3, "gte", 3, True),
            (3, "lte", 2, False),
            ("hello world", "contains", "world", True),
            (["a", "b"], "contains", "b", True),
            ("prefix-x", "startsWith", "prefix", True),
            ("file.txt", "endsWith", ".txt", True),
        ],
    )
    def test_operators(self, actual: Any, operator: str, expected: Any, result: bool) -> None:
        assert evaluate_condition(actual, operator, expected) is result

    def test_unknown_operator(self) -> None:
        with pytest.raises(ConditionError, match="unsupported operator"):
            evaluate_condition(1, "between", 2)

    def test_uncoercible_numbers(self) -> None:
        with pytest.raises(ConditionError):
            evaluate_condition("abc", "gt", 1)


class TestCompiledRule:
    def test_required(self) -> None:
        compiled = compile_rule(ValidationRule(required=True))
        assert compiled.validate(None) == ["field is required"]
        assert compiled.validate("") == ["field is required"]
        assert compiled.validate("x") == []

    def test_required_custom_message(self) -> None:
        compiled = compile_rule(ValidationRule(required=True, message="give a name"))
        assert compiled.validate(None) == ["give a name"]

    def test_blank_optional_skips_validators(self) -> None:
        assert compile_rule(ValidationRule(min_length=3)).validate(None) == []

    def test_collects_every_error(self) -> None:
        compiled = compile_rule(ValidationRule(min_length=5, pattern=r"^\d+$"))
        assert compiled.validate("ab") == [
            "Minimum length is 5 characters",
            r"value does not match pattern ^\d+$",
        ]

    def test_conditional_applies_when_condition_holds(self) -> None:
        rule = ValidationRule(
            conditional=ConditionalRule(
                field="country", operator="eq", value="US", message="US zip is 5 digits"
            )
        )

        def five_digits(value: Any) -> str | None:
            return None if isinstance(value, str) and len(value) == 5 else "bad"

        compiled = compile_rule(rule, conditional_check=five_digits)
        assert compiled.validate("123", {"country": "US"}) == ["US zip is 5 digits"]
        assert compiled.validate("123", {"country": "FR"}) == []
        assert compiled.validate("12345", {"country": "US"}) == []

    def test_conditional_on_missing_field_is_skipped(self) -> None:
        assert policy.UNRESOLVABLE_CONDITION is policy.Tolerance.SKIP
        rule = ValidationRule(conditional=ConditionalRule(field="country", operator="eq"))
        compiled = compile_rule(rule, conditional_check=lambda v: "always")
        assert compiled.validate("x", {"other": 1}) == []

    def test_conditional_uncoercible_is_skipped(self) -> None:
        rule = ValidationRule(conditional=ConditionalRule(field="n", operator="gt", value=3))
        compiled = compile_rule(rule, conditional_check=lambda v: "always")
        assert compiled.validate("x", {"n": "many"}) == []

    def test_conditional_without_check_is_inert(self) -> None:
        rule = ValidationRule(conditional=ConditionalRule(field="n", operator="eq", value=1))
        assert compile_rule(rule).conditional is None

    def test_hooks_pass_without_evaluator(self) -> None:
        assert policy.UNEVALUATED_HOOKS is policy.Tolerance.SKIP
        compiled = compile_rule(ValidationRule(async_validator="/check", custom="expr"))
        assert compiled.validate("x") == []

    def test_hooks_use_evaluator(self) -> None:
        evaluator = RecordingEvaluator(async_error="taken", custom_error="bad expr")
        compiled = compile_rule(
            ValidationRule(async_validator="/check", custom="expr"), evaluator=evaluator
        )
        assert compiled.validate("x") == ["bad expr", "taken"]
        assert evaluator.calls == [("custom", "expr"), ("async", "/check")]

    def test_rule_message_overrides_hook_errors(self) -> None:
        evaluator = RecordingEvaluator(async_error="taken")
        compiled = compile_rule(
            ValidationRule(async_validator="/check", message="username unavailable"),
            evaluator=evaluator,
        )
        assert compiled.validate("x") == ["username unavailable"]


class TestValidateRecord:
    @pytest.fixture
    def fields(self) -> list[Any]:
        return [
            extract_field(FieldSpec("name", str, markers=(Meta("required;min=3"),))),
            extract_field(FieldSpec("age", int, markers=(Meta("min=0"),))),
            extract_field(FieldSpec("nick", str)),
            extract_field(FieldSpec("score", int, markers=(Meta("required"),), computed=True)),
        ]

    def test_valid(self, fields: list[Any]) -> None:
        assert validate_record(fields, {"name": "Ada", "age": 36}) == []

    def test_errors_name_the_field(self, fields: list[Any]) -> None:
        errors = validate_record(fields, {"name": "Al", "age": -1})
        assert [str(e) for e in errors] == [
            "name: Minimum length is 3 characters",
            "age: Minimum value is 0",
        ]

    def test_missing_required(self, fields: list[Any]) -> None:
        errors = validate_record(fields, {})
        assert [(e.field, e.message) for e in errors] == [("name", "field is required")]

    def test_object_records(self, fields: list[Any]) -> None:
        class Person:
            name = "Grace"
            age = 85

        assert validate_record(fields, Person()) == []

    def test_ensure_valid_raises(self, fields: list[Any]) -> None:
        with pytest.raises(RecordValidationError) as exc_info:
            ensure_valid(fields, {"name": "Al"})
        assert exc_info.value.errors == ["name: Minimum length is 3 characters"]
        assert "Validation failed" in str(exc_info.value)
