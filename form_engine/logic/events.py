"""Form session events.

A session publishes one event per edit, add-more and remove. Events are
logged and kept in a process-wide buffer that the host (autosave, dirty
tracking) drains with `get_buffered_events()` after each interaction. The
buffer holds at most `EVENT_BUFFER_LIMIT` events; when a host never drains
it, the oldest events are discarded.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Deque, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

CONTROL_VALUE_CHANGED = "control.value_changed"
CONTROL_ADDED = "control.added"
CONTROL_REMOVED = "control.removed"
CONTROL_COMMENT_CHANGED = "control.comment_changed"

EVENT_TYPES = (CONTROL_VALUE_CHANGED, CONTROL_ADDED, CONTROL_REMOVED, CONTROL_COMMENT_CHANGED)

EVENT_BUFFER_LIMIT = 1000

EVENT_BUFFER: Deque[Dict[str, Any]] = deque(maxlen=EVENT_BUFFER_LIMIT)


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    if event_type not in EVENT_TYPES:
        logger.warning("event_unknown_type type=%s", event_type)
    if len(EVENT_BUFFER) == EVENT_BUFFER.maxlen:
        logger.debug("event_buffer_full dropped=%s", EVENT_BUFFER[0]["type"])
    logger.info("event_publish type=%s path=%s", event_type, payload.get("formFieldPath"))
    EVENT_BUFFER.append({"type": event_type, "payload": payload})


def get_buffered_events(clear: bool = True, event_type: Optional[str] = None) -> List[Dict[str, Any]]:
    """Return buffered events, oldest first.

    With `event_type`, only events of that type are returned (and, when
    clearing, only those are removed).
    """
    if event_type is None:
        events = list(EVENT_BUFFER)
        if clear:
            EVENT_BUFFER.clear()
        return events
    events = [e for e in EVENT_BUFFER if e["type"] == event_type]
    if clear:
        kept = [e for e in EVENT_BUFFER if e["type"] != event_type]
        EVENT_BUFFER.clear()
        EVENT_BUFFER.extend(kept)
    return events


__all__ = [
    "CONTROL_VALUE_CHANGED",
    "CONTROL_ADDED",
    "CONTROL_REMOVED",
    "CONTROL_COMMENT_CHANGED",
    "EVENT_TYPES",
    "EVENT_BUFFER",
    "EVENT_BUFFER_LIMIT",
    "publish",
    "get_buffered_events",
]
