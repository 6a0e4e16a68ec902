"""Constant containers for control types, datatypes and validation rule ids.

Plain classes instead of Enums where the values travel through JSON metadata
unchanged; keeps comparisons against raw payload strings trivial.
"""

from __future__ import annotations

from enum import Enum


class ControlType:
    OBS = "obsControl"
    OBS_GROUP = "obsGroupControl"
    SECTION = "section"
    TABLE = "table"
    LABEL = "label"
    UNSUPPORTED = "unsupported"
    # root record of a built tree; never appears in metadata
    FORM = "form"


class Datatype:
    BOOLEAN = "Boolean"
    CODED = "Coded"
    NUMERIC = "Numeric"
    TEXT = "Text"
    DATE = "Date"
    DATETIME = "Datetime"
    COMPLEX = "Complex"
    NA = "N/A"


class Validations:
    MANDATORY = "mandatory"
    ALLOW_DECIMAL = "allowDecimal"
    ALLOW_FUTURE_DATES = "allowFutureDates"
    ALLOW_RANGE = "allowRange"
    MIN_MAX_RANGE = "minMaxRange"


class ErrorSeverity:
    ERROR = "error"
    WARNING = "warning"


class ControlKind(str, Enum):
    """Closed set of shapes a control takes once its metadata is resolved.

    Never serialized; mapper dispatch is keyed on it.
    """

    LEAF = "leaf"
    OBS_GROUP = "obsGroup"
    ABNORMAL_OBS_GROUP = "abnormalObsGroup"
    OBS_LIST = "obsList"
    SECTION = "section"
    TABLE = "table"


__all__ = ["ControlType", "Datatype", "Validations", "ErrorSeverity", "ControlKind"]
