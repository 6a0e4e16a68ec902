"""Central error taxonomy for the mapping engine.

Single source of truth for the one raised exception type and for the codes
attached to non-fatal conditions. Modules log these codes instead of
hardcoding strings.
"""

from __future__ import annotations


class MalformedMetadataError(ValueError):
    """Raised only for structurally malformed programmer-supplied input.

    Value-related problems never raise; they degrade to ``None`` or to a
    fallback record.
    """


# No strategy registered for a control type / datatype combination
MAPPING_NO_STRATEGY = {
    "code": "MAPPING_NO_STRATEGY",
    "fatal": False,
}

# Persisted observations do not fit the current form metadata
RECONCILIATION_FAILED = {
    "code": "RECONCILIATION_FAILED",
    "fatal": False,
}

# Control type has no renderer registered
UNSUPPORTED_CONTROL = {
    "code": "UNSUPPORTED_CONTROL",
    "fatal": False,
}

ERROR_CODES = {
    "mapping": MAPPING_NO_STRATEGY,
    "reconciliation": RECONCILIATION_FAILED,
    "unsupported": UNSUPPORTED_CONTROL,
}

__all__ = [
    "MalformedMetadataError",
    "MAPPING_NO_STRATEGY",
    "RECONCILIATION_FAILED",
    "UNSUPPORTED_CONTROL",
    "ERROR_CODES",
]
