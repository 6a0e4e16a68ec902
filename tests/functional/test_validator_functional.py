"""Functional tests for rule-based value validation.

Covers rule evaluation (`get_errors`), rule derivation from control and
concept properties (`get_validations`) and the severity helpers the abnormal
group relies on.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from form_engine.logic.validator import (
    ValidationContext,
    blocking_errors,
    get_errors,
    get_validations,
    has_blocking_errors,
    has_range_warning,
)
from form_engine.models.concept import Concept
from form_engine.models.constants import ErrorSeverity, Validations
from form_engine.models.control import Control


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

PULSE = Concept.model_validate(
    {
        "uuid": "c-pulse",
        "name": "Pulse",
        "datatype": "Numeric",
        "lowNormal": 60,
        "hiNormal": 100,
        "lowAbsolute": 0,
        "hiAbsolute": 250,
    }
)


def _messages(issues):
    return [i.message for i in issues]


def test_no_rules_yields_empty_list():
    assert get_errors("anything", []) == []
    assert get_errors("anything", None) == []


def test_mandatory_rejects_missing_and_whitespace():
    for blank in (None, "", "   ", []):
        issues = get_errors(blank, [Validations.MANDATORY])
        assert _messages(issues) == [Validations.MANDATORY]
        assert issues[0].severity == ErrorSeverity.ERROR
    assert get_errors("72", [Validations.MANDATORY]) == []
    assert get_errors(0, [Validations.MANDATORY]) == []
    assert get_errors(False, [Validations.MANDATORY]) == []


def test_allow_decimal_rejects_fractional_numbers_only():
    assert _messages(get_errors(7.5, [Validations.ALLOW_DECIMAL])) == [Validations.ALLOW_DECIMAL]
    assert _messages(get_errors("7.5", [Validations.ALLOW_DECIMAL])) == [Validations.ALLOW_DECIMAL]
    assert get_errors(7, [Validations.ALLOW_DECIMAL]) == []
    assert get_errors(7.0, [Validations.ALLOW_DECIMAL]) == []
    # not a number: nothing for this rule to judge
    assert get_errors("abc", [Validations.ALLOW_DECIMAL]) == []


def test_future_dates_compared_against_context_now():
    ctx = ValidationContext(now=NOW)
    rule = [Validations.ALLOW_FUTURE_DATES]
    assert _messages(get_errors("2024-06-02", rule, ctx)) == [Validations.ALLOW_FUTURE_DATES]
    assert _messages(get_errors(date(2030, 1, 1), rule, ctx)) == [Validations.ALLOW_FUTURE_DATES]
    assert get_errors("2024-05-31T08:00:00", rule, ctx) == []
    assert get_errors(date(2024, 6, 1), rule, ctx) == []
    assert get_errors("not a date", rule, ctx) == []


def test_range_outside_normal_is_non_blocking_warning():
    ctx = ValidationContext(concept=PULSE)
    issues = get_errors(150, [Validations.ALLOW_RANGE], ctx)
    assert _messages(issues) == [Validations.ALLOW_RANGE]
    assert issues[0].severity == ErrorSeverity.WARNING
    assert not has_blocking_errors(issues)
    assert has_range_warning(issues)

    assert get_errors(80, [Validations.ALLOW_RANGE], ctx) == []
    assert get_errors(60, [Validations.ALLOW_RANGE], ctx) == []
    assert _messages(get_errors(59.9, [Validations.ALLOW_RANGE], ctx)) == [Validations.ALLOW_RANGE]


def test_min_max_range_outside_absolute_blocks():
    ctx = ValidationContext(concept=PULSE)
    issues = get_errors(300, [Validations.ALLOW_RANGE, Validations.MIN_MAX_RANGE], ctx)
    assert _messages(issues) == [Validations.ALLOW_RANGE, Validations.MIN_MAX_RANGE]
    assert _messages(blocking_errors(issues)) == [Validations.MIN_MAX_RANGE]


def test_range_rules_pass_without_concept_or_number():
    assert get_errors(150, [Validations.ALLOW_RANGE]) == []
    assert get_errors(None, [Validations.ALLOW_RANGE], ValidationContext(concept=PULSE)) == []
    assert get_errors(float("nan"), [Validations.ALLOW_RANGE], ValidationContext(concept=PULSE)) == []
    assert get_errors(True, [Validations.ALLOW_RANGE], ValidationContext(concept=PULSE)) == []


def test_unknown_rule_ids_are_ignored():
    issues = get_errors("", ["noSuchRule", Validations.MANDATORY])
    assert _messages(issues) == [Validations.MANDATORY]


def test_get_validations_from_control_and_concept():
    control = Control.model_validate(
        {
            "id": 1,
            "type": "obsControl",
            "properties": {"mandatory": True, "allowFutureDates": False},
            "concept": {
                "uuid": "c-pulse",
                "name": "Pulse",
                "datatype": "Numeric",
                "lowNormal": 60,
                "hiNormal": 100,
                "hiAbsolute": 250,
                "properties": {"allowDecimal": False},
            },
        }
    )
    rules = get_validations(control.properties, control.concept_properties, control.concept)
    assert rules == [
        Validations.MANDATORY,
        Validations.ALLOW_DECIMAL,
        Validations.ALLOW_FUTURE_DATES,
        Validations.ALLOW_RANGE,
        Validations.MIN_MAX_RANGE,
    ]


def test_get_validations_accepts_raw_dicts_and_defaults():
    assert get_validations({"mandatory": True}, {"allowDecimal": True}) == [Validations.MANDATORY]
    assert get_validations({}, None) == []
    # allowFutureDates left unset means future dates are fine
    assert get_validations({"allowFutureDates": None}, {}) == []


def test_range_rules_only_for_numeric_concepts():
    text = Concept.model_validate({"uuid": "c-t", "name": "Notes", "datatype": "Text", "hiNormal": 3})
    assert get_validations({}, None, text) == []


def test_validation_context_is_immutable_and_defaults_to_utc_now():
    ctx = ValidationContext(concept=PULSE)
    assert ctx.now.tzinfo is not None
    with pytest.raises(ValidationError):
        ctx.now = NOW
    assert ctx.evolve(now=NOW).now == NOW
    assert ctx.evolve(now=NOW).concept is PULSE
