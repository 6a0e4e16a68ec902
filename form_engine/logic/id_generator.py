"""Control id generation for newly added controls."""

from __future__ import annotations

from typing import Any, Iterable, Optional
import logging
import math

logger = logging.getLogger(__name__)


def _numeric_id(raw: Any) -> Optional[int]:
    """Integer value of a control id; None for anything that is not one."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, float):
        if math.isnan(raw) or not raw.is_integer():
            return None
        return int(raw)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if text.lstrip("-").isdigit():
            return int(text)
    return None


def _children(control: Any) -> Iterable[Any]:
    if isinstance(control, dict):
        return control.get("controls") or ()
    return getattr(control, "controls", None) or ()


def _raw_id(control: Any) -> Any:
    if isinstance(control, dict):
        return control.get("id")
    return getattr(control, "id", None)


def max_control_id(controls: Iterable[Any] | None) -> int:
    highest = 0
    stack = list(controls or ())
    while stack:
        control = stack.pop()
        value = _numeric_id(_raw_id(control))
        if value is None:
            if _raw_id(control) is not None:
                logger.debug("id_generator_skip id=%r", _raw_id(control))
        elif value > highest:
            highest = value
        stack.extend(_children(control))
    return highest


class IDGenerator:
    """Hands out ids above the largest one found in an existing control tree.

    Ids that are not integers (NaN, free text, booleans) are ignored.
    """

    def __init__(self, controls: Iterable[Any] | None = None) -> None:
        self._current = max_control_id(controls)

    def get_id(self) -> int:
        self._current += 1
        return self._current


__all__ = ["IDGenerator", "max_control_id"]
