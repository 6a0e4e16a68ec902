"""formFieldPath addressing helpers.

A formFieldPath names one node of one form render:

    {formName}.{formVersion}/{controlId}-{index}
    {parentPath}/{controlId}-{index}

`index` is the repeat index of an add-more instance (0 for the first one).
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Tuple
import logging
import re

from form_engine.config import get_config

logger = logging.getLogger(__name__)

_SEGMENT = re.compile(r"^(?P<control_id>.+)-(?P<index>\d+)$")


def form_root(form_name: str, form_version: Any) -> str:
    return f"{form_name}.{form_version}"


def get_key_prefix_for_control(
    form_name: str,
    form_version: Any,
    control_id: Any,
    parent_form_field_path: Optional[str] = None,
) -> str:
    """Return the path prefix shared by every repeat instance of a control.

    >>> get_key_prefix_for_control("Vitals", 1, 3)
    'Vitals.1/3-'
    >>> get_key_prefix_for_control("Vitals", 1, 4, "Vitals.1/3-0")
    'Vitals.1/3-0/4-'
    """
    parent = parent_form_field_path or form_root(form_name, form_version)
    return f"{parent}/{control_id}-"


def create_form_namespace_and_path(
    form_name: str,
    form_version: Any,
    control_id: Any,
    parent_form_field_path: Optional[str] = None,
    index: int = 0,
) -> Tuple[str, str]:
    """Return `(formNamespace, formFieldPath)` for a new node."""
    prefix = get_key_prefix_for_control(form_name, form_version, control_id, parent_form_field_path)
    return get_config().form_namespace, f"{prefix}{index}"


def split_form_field_path(path: Optional[str]) -> Tuple[str, int]:
    """Split a path into its repeat-family base and index.

    'F.1/1-0/2-3' -> ('F.1/1-0/2', 3). A path without an index suffix is
    returned whole with index 0.
    """
    if not path:
        return "", 0
    head, sep, last = path.rpartition("/")
    match = _SEGMENT.match(last)
    if not match:
        return path, 0
    base = f"{head}{sep}{match.group('control_id')}"
    return base, int(match.group("index"))


def last_segment(path: Optional[str]) -> str:
    return (path or "").rpartition("/")[2]


def control_id_of(path: Optional[str]) -> Optional[str]:
    match = _SEGMENT.match(last_segment(path))
    return match.group("control_id") if match else None


def parent_path_of(path: Optional[str]) -> str:
    return (path or "").rpartition("/")[0]


def get_updated_form_field_path(path: str, parent_form_field_path: str, index: Optional[int] = None) -> str:
    """Re-address `path` under a new parent, optionally resetting its index."""
    segment = last_segment(path)
    if index is not None:
        match = _SEGMENT.match(segment)
        if match:
            segment = f"{match.group('control_id')}-{index}"
    return f"{parent_form_field_path}/{segment}"


def next_form_field_path(path: str, sibling_paths: Iterable[Optional[str]] = ()) -> str:
    """Return the path of the next repeat instance.

    The new index is one above the highest index among `path` and every
    sibling sharing its base, so indexes never get reused after a removal.
    """
    base, index = split_form_field_path(path)
    highest = index
    for other in sibling_paths:
        other_base, other_index = split_form_field_path(other)
        if other_base == base and other_index > highest:
            highest = other_index
    return f"{base}-{highest + 1}"


def matches_prefix(path: Optional[str], prefix: str) -> bool:
    """True when `path` is `prefix` followed by a repeat index only."""
    if not path or not path.startswith(prefix):
        return False
    return path[len(prefix):].isdigit()


def find_observations_for_control(observations: Iterable[Any], prefix: str) -> List[Any]:
    """Return the observations addressed to the control owning `prefix`.

    Matching is on the exact prefix, so 'F.1/1-' never picks up 'F.1/11-0'
    and a nested control only sees observations under its own parent path.
    Results are ordered by repeat index.
    """
    found = [o for o in observations or () if matches_prefix(getattr(o, "form_field_path", None), prefix)]
    found.sort(key=lambda o: split_form_field_path(o.form_field_path)[1])
    return found


__all__ = [
    "form_root",
    "get_key_prefix_for_control",
    "create_form_namespace_and_path",
    "split_form_field_path",
    "last_segment",
    "control_id_of",
    "parent_path_of",
    "get_updated_form_field_path",
    "next_form_field_path",
    "matches_prefix",
    "find_observations_for_control",
]
