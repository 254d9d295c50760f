"""
Read-only conveniences over progression events. None of these modify the
events or compute anything the backend did not already decide.
"""

from __future__ import annotations
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple, Union

from growth_engine.contracts.events import (
    ProgressionEvent, ProgressionEventType, decode_list
)


def is_task_completed(event: ProgressionEvent) -> bool:
    return event.kind == ProgressionEventType.TASK_COMPLETED


def is_reflection_logged(event: ProgressionEvent) -> bool:
    return event.kind == ProgressionEventType.REFLECTION_LOGGED


def is_return_after_absence(event: ProgressionEvent) -> bool:
    return event.kind == ProgressionEventType.RETURN_AFTER_ABSENCE


def is_session_interpreted(event: ProgressionEvent) -> bool:
    return event.kind == ProgressionEventType.SESSION_INTERPRETED


def is_time_tick(event: ProgressionEvent) -> bool:
    return event.kind == ProgressionEventType.TIME_TICK


def order_chronologically(events: Iterable[ProgressionEvent]) -> List[ProgressionEvent]:
    """Oldest first; ties keep their input order."""
    return sorted((e for e in events if e is not None), key=lambda e: e.occurred_at.value)


def filter_by_type(
    events: Iterable[ProgressionEvent],
    event_type: Union[ProgressionEventType, str]
) -> List[ProgressionEvent]:
    wanted = event_type.value if isinstance(event_type, ProgressionEventType) else event_type
    return [e for e in events if e is not None and e.event_type == wanted]


def group_by_utc_day(events: Iterable[ProgressionEvent]) -> Dict[date, List[ProgressionEvent]]:
    """Bucket events by the UTC calendar day of occurred_at, each bucket ordered."""
    groups: Dict[date, List[ProgressionEvent]] = {}
    for event in order_chronologically(events):
        groups.setdefault(event.occurred_at.value.date(), []).append(event)
    return groups


def get_metadata(
    event: ProgressionEvent,
    key: str,
    default: Optional[str] = None
) -> Optional[str]:
    if event is None:
        return default
    value = event.get_metadata(key)
    return default if value is None else value


def get_related_task_ids(event: ProgressionEvent) -> Tuple[str, ...]:
    return decode_list(get_metadata(event, "relatedTaskIds"))


def get_tags(event: ProgressionEvent) -> Tuple[str, ...]:
    return decode_list(get_metadata(event, "tags"))
