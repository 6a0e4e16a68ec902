"""Validation failure value object attached to Obs and ControlRecords."""

from __future__ import annotations

from form_engine.models.base import FrozenModel
from form_engine.models.constants import ErrorSeverity


class ValidationIssue(FrozenModel):
    message: str
    severity: str = ErrorSeverity.ERROR

    @property
    def is_blocking(self) -> bool:
        return self.severity == ErrorSeverity.ERROR

    @classmethod
    def error(cls, rule_id: str) -> "ValidationIssue":
        return cls(message=rule_id, severity=ErrorSeverity.ERROR)

    @classmethod
    def warning(cls, rule_id: str) -> "ValidationIssue":
        return cls(message=rule_id, severity=ErrorSeverity.WARNING)


__all__ = ["ValidationIssue"]
