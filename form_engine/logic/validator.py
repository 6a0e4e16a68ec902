"""Rule-based validation for control values.

Each rule id maps to a pure predicate. Failures become `ValidationIssue`
objects carrying the rule id as message; `allowRange` is the only
warning-severity rule. The validator never raises for odd values: anything it
cannot interpret for a rule simply passes that rule.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Iterable, List, Optional
import logging
import math

from pydantic import Field

from form_engine.models.base import FrozenModel
from form_engine.models.concept import Concept
from form_engine.models.constants import Validations
from form_engine.models.validation_issue import ValidationIssue

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ValidationContext(FrozenModel):
    """What a rule may consult besides the value: the concept and the clock."""

    concept: Optional[Concept] = None
    now: datetime = Field(default_factory=_utc_now)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) else number


def _to_datetime(value: Any) -> Optional[datetime | date]:
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def _check_mandatory(value: Any, context: ValidationContext) -> Optional[ValidationIssue]:
    if _is_blank(value):
        return ValidationIssue.error(Validations.MANDATORY)
    return None


def _check_allow_decimal(value: Any, context: ValidationContext) -> Optional[ValidationIssue]:
    number = _to_number(value)
    if number is not None and not float(number).is_integer():
        return ValidationIssue.error(Validations.ALLOW_DECIMAL)
    return None


def _check_future_dates(value: Any, context: ValidationContext) -> Optional[ValidationIssue]:
    moment = _to_datetime(value)
    if moment is None:
        return None
    now = context.now
    if isinstance(moment, datetime):
        if moment.tzinfo is None:
            now = now.replace(tzinfo=None)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        is_future = moment > now
    else:
        is_future = moment > now.date()
    if is_future:
        return ValidationIssue.error(Validations.ALLOW_FUTURE_DATES)
    return None


def _outside(number: float, low: Optional[float], high: Optional[float]) -> bool:
    if low is not None and number < low:
        return True
    if high is not None and number > high:
        return True
    return False


def _check_range(value: Any, context: ValidationContext) -> Optional[ValidationIssue]:
    number = _to_number(value)
    concept = context.concept
    if number is None or concept is None:
        return None
    if _outside(number, concept.low_normal, concept.hi_normal):
        return ValidationIssue.warning(Validations.ALLOW_RANGE)
    return None


def _check_min_max_range(value: Any, context: ValidationContext) -> Optional[ValidationIssue]:
    number = _to_number(value)
    concept = context.concept
    if number is None or concept is None:
        return None
    if _outside(number, concept.low_absolute, concept.hi_absolute):
        return ValidationIssue.error(Validations.MIN_MAX_RANGE)
    return None


RULES = {
    Validations.MANDATORY: _check_mandatory,
    Validations.ALLOW_DECIMAL: _check_allow_decimal,
    Validations.ALLOW_FUTURE_DATES: _check_future_dates,
    Validations.ALLOW_RANGE: _check_range,
    Validations.MIN_MAX_RANGE: _check_min_max_range,
}


def get_errors(
    value: Any,
    validations: Iterable[str] | None,
    context: ValidationContext | None = None,
) -> List[ValidationIssue]:
    """Evaluate `validations` against `value` and return every failure.

    Unknown rule ids are ignored. The result is always a list.
    """
    ctx = context or ValidationContext()
    errors: List[ValidationIssue] = []
    for rule_id in validations or ():
        check = RULES.get(rule_id)
        if check is None:
            logger.debug("validator_unknown_rule rule=%s", rule_id)
            continue
        issue = check(value, ctx)
        if issue is not None:
            errors.append(issue)
    return errors


def _prop(source: Any, snake: str, camel: str) -> Any:
    if source is None:
        return None
    if isinstance(source, dict):
        return source.get(camel, source.get(snake))
    return getattr(source, snake, None)


def get_validations(properties: Any, concept_properties: Any, concept: Optional[Concept] = None) -> List[str]:
    """Derive the rule ids that apply to a control.

    - `mandatory` when the control is mandatory
    - `allowDecimal` when the concept explicitly disallows decimals
    - `allowFutureDates` when the control explicitly disallows future dates
    - `allowRange` / `minMaxRange` when the concept declares normal / absolute bounds
    """
    rules: List[str] = []
    if _prop(properties, "mandatory", "mandatory"):
        rules.append(Validations.MANDATORY)
    if _prop(concept_properties, "allow_decimal", "allowDecimal") is False:
        rules.append(Validations.ALLOW_DECIMAL)
    if _prop(properties, "allow_future_dates", "allowFutureDates") is False:
        rules.append(Validations.ALLOW_FUTURE_DATES)
    if concept is not None and concept.is_numeric():
        if concept.low_normal is not None or concept.hi_normal is not None:
            rules.append(Validations.ALLOW_RANGE)
        if concept.low_absolute is not None or concept.hi_absolute is not None:
            rules.append(Validations.MIN_MAX_RANGE)
    return rules


def blocking_errors(issues: Iterable[ValidationIssue] | None) -> List[ValidationIssue]:
    return [i for i in (issues or ()) if i.is_blocking]


def has_blocking_errors(issues: Iterable[ValidationIssue] | None) -> bool:
    return bool(blocking_errors(issues))


def has_range_warning(issues: Iterable[ValidationIssue] | None) -> bool:
    return any(
        i.message == Validations.ALLOW_RANGE and not i.is_blocking for i in (issues or ())
    )


__all__ = [
    "ValidationContext",
    "get_errors",
    "get_validations",
    "blocking_errors",
    "has_blocking_errors",
    "has_range_warning",
]
