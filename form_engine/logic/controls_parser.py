"""Layout helpers for sibling controls and repeat families."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence
import logging

logger = logging.getLogger(__name__)


def _location_of(control: Any, prop: str) -> int:
    if isinstance(control, dict):
        location = (control.get("properties") or {}).get("location") or {}
        return int(location.get(prop, 0) or 0)
    return int(getattr(control.properties.location, prop, 0) or 0)


def group_controls_by_location(controls: Sequence[Any], prop: str) -> Dict[int, List[Any]]:
    """Group controls by their `row` or `column`, keeping input order in each group."""
    grouped: Dict[int, List[Any]] = {}
    for control in controls or ():
        grouped.setdefault(_location_of(control, prop), []).append(control)
    return grouped


def sort_grouped_controls(grouped: Dict[int, List[Any]]) -> List[List[Any]]:
    return [grouped[key] for key in sorted(grouped)]


def get_grouped_controls(controls: Sequence[Any], prop: str) -> List[List[Any]]:
    return sort_grouped_controls(group_controls_by_location(controls, prop))


def setup_add_remove_buttons_for_add_more(records: Sequence[Any]) -> List[Any]:
    """Only the last instance offers "add"; every instance but the first offers "remove"."""
    last = len(records) - 1
    updated = []
    for i, record in enumerate(records):
        show_add_more = i == last
        show_remove = i > 0
        if record.show_add_more == show_add_more and record.show_remove == show_remove:
            updated.append(record)
        else:
            updated.append(record.evolve(show_add_more=show_add_more, show_remove=show_remove))
    return updated


__all__ = [
    "group_controls_by_location",
    "sort_grouped_controls",
    "get_grouped_controls",
    "setup_add_remove_buttons_for_add_more",
]
