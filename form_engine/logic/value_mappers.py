"""Translate between what a widget shows and the value stored on an Obs.

Each strategy exposes `get_value(control, domain_value)` and
`set_value(control, ui_value)`. Neither ever raises: input that matches no
option maps to None.
"""

from __future__ import annotations

from typing import Any, List, Optional
import logging

from form_engine.models.concept import ConceptAnswer
from form_engine.models.control import Control

logger = logging.getLogger(__name__)

DEFAULT_BOOLEAN_OPTIONS = (
    {"name": "Yes", "value": True},
    {"name": "No", "value": False},
)


def _option_field(option: Any, key: str) -> Any:
    if isinstance(option, dict):
        return option.get(key)
    return getattr(option, key, None)


class BooleanValueMapper:
    """Maps `True`/`False` to the control's declared `{name, value}` options."""

    def _options(self, control: Control):
        return control.options or DEFAULT_BOOLEAN_OPTIONS

    def get_value(self, control: Control, domain_value: Any) -> Optional[str]:
        if not isinstance(domain_value, bool):
            return None
        for option in self._options(control):
            if _option_field(option, "value") is domain_value:
                return _option_field(option, "name")
        return None

    def set_value(self, control: Control, ui_value: Any) -> Optional[bool]:
        if ui_value is None:
            return None
        for option in self._options(control):
            if isinstance(ui_value, bool) and _option_field(option, "value") is ui_value:
                return ui_value
            if _option_field(option, "name") == ui_value:
                value = _option_field(option, "value")
                return value if isinstance(value, bool) else None
        return None


def _answer_for(control: Control, selection: Any) -> Optional[ConceptAnswer]:
    concept = control.concept
    if concept is None or selection is None:
        return None
    if isinstance(selection, dict):
        selection = selection.get("uuid") or selection.get("displayString") or selection.get("name")
    return concept.find_answer(selection)


def _label_of(control: Control, domain_value: Any) -> Optional[str]:
    if isinstance(domain_value, dict):
        label = domain_value.get("displayString") or domain_value.get("name")
        if label is not None:
            return label
        answer = _answer_for(control, domain_value)
        return answer.label if answer is not None else None
    if isinstance(domain_value, str):
        answer = _answer_for(control, domain_value)
        return answer.label if answer is not None else None
    return None


class CodedValueMapper:
    """Resolves a selected answer label to/from its concept-answer reference."""

    def get_value(self, control: Control, domain_value: Any) -> Optional[str]:
        return _label_of(control, domain_value)

    def set_value(self, control: Control, ui_value: Any) -> Optional[dict]:
        answer = _answer_for(control, ui_value)
        if answer is None:
            logger.debug("coded_value_unmatched concept=%s", control.concept.name if control.concept else None)
            return None
        return answer.to_value()


class CodedMultiSelectValueMapper:
    """Coded mapping over a sequence of selections.

    Duplicates collapse to their first occurrence; labels that match no answer
    are skipped. Nothing matched maps to None.
    """

    def get_value(self, control: Control, domain_value: Any) -> Optional[List[str]]:
        if not isinstance(domain_value, (list, tuple)):
            return None
        labels: List[str] = []
        for item in domain_value:
            label = _label_of(control, item)
            if label is not None and label not in labels:
                labels.append(label)
        return labels or None

    def set_value(self, control: Control, ui_value: Any) -> Optional[List[dict]]:
        if not isinstance(ui_value, (list, tuple)):
            return None
        selected: List[dict] = []
        seen = set()
        for item in ui_value:
            answer = _answer_for(control, item)
            if answer is None:
                logger.debug("coded_multiselect_skip label=%s", item)
                continue
            key = answer.uuid or answer.label
            if key in seen:
                continue
            seen.add(key)
            selected.append(answer.to_value())
        return selected or None


__all__ = [
    "BooleanValueMapper",
    "CodedValueMapper",
    "CodedMultiSelectValueMapper",
    "DEFAULT_BOOLEAN_OPTIONS",
]
