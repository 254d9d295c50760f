"""
Shared Test Fixtures

Fixed timestamps, record builders and scripted collaborators.
All fixtures are explicit - no random generation.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple
import threading

from growth_engine.contracts.base import Timestamp
from growth_engine.contracts.events import (
    ProgressionEvent, ProgressionEventType, TaskRecord, TaskWrite, ReflectionRecord
)
from growth_client.dispatcher import EventConsumer
from growth_client.sources import EventSource


# =============================================================================
# FIXED TIMESTAMPS (deterministic)
# =============================================================================

T0 = Timestamp(datetime(2026, 1, 1, 9, 0, 0, tzinfo=timezone.utc))
T1 = Timestamp(datetime(2026, 1, 1, 10, 0, 0, tzinfo=timezone.utc))
T2 = Timestamp(datetime(2026, 1, 1, 10, 5, 0, tzinfo=timezone.utc))
T3 = Timestamp(datetime(2026, 1, 1, 10, 10, 0, tzinfo=timezone.utc))
NEXT_DAY = Timestamp(datetime(2026, 1, 2, 8, 0, 0, tzinfo=timezone.utc))

USER = "user_1"


# =============================================================================
# RECORD BUILDERS
# =============================================================================

def task(
    status: str,
    user_id: Optional[str] = USER,
    depth: Optional[str] = None,
    completed_at: Optional[Timestamp] = None,
    project_id: Optional[str] = None,
    task_id: str = "task_1"
) -> TaskRecord:
    return TaskRecord(
        task_id=task_id,
        user_id=user_id,
        status=status,
        estimated_depth=depth,
        completed_at=completed_at,
        project_id=project_id
    )


def completion(
    depth: Optional[str] = None,
    completed_at: Optional[Timestamp] = T1,
    user_id: Optional[str] = USER,
    project_id: Optional[str] = None
) -> TaskWrite:
    """A pending -> completed write."""
    return TaskWrite(
        before=task("pending", user_id=user_id, depth=depth, project_id=project_id),
        after=task(
            "completed", user_id=user_id, depth=depth,
            completed_at=completed_at, project_id=project_id
        )
    )


def reflection(
    created_at: Optional[Timestamp] = T2,
    user_id: Optional[str] = USER,
    related: Sequence[str] = (),
    tags: Sequence[str] = (),
    reflection_id: str = "refl_1"
) -> ReflectionRecord:
    return ReflectionRecord(
        reflection_id=reflection_id,
        user_id=user_id,
        text="Felt steady today",
        created_at=created_at,
        related_task_ids=tuple(related),
        tags=tuple(tags)
    )


def event(
    event_id: str,
    occurred_at: Timestamp,
    event_type: str = ProgressionEventType.TASK_COMPLETED.value,
    user_id: str = USER,
    metadata: Tuple[Tuple[str, str], ...] = ()
) -> ProgressionEvent:
    return ProgressionEvent(
        event_id=event_id,
        user_id=user_id,
        event_type=event_type,
        occurred_at=occurred_at,
        metadata=metadata
    )


# =============================================================================
# SCRIPTED COLLABORATORS
# =============================================================================

class ScriptedSource(EventSource):
    """
    Returns pre-scripted batches in order, ignoring `since`; the last batch
    repeats once the script is exhausted. A batch that is an Exception
    instance is raised instead of returned.
    """

    def __init__(self, *batches):
        self._batches = list(batches) or [[]]
        self.calls: List[Optional[Timestamp]] = []

    def query(self, since: Optional[Timestamp] = None) -> List[ProgressionEvent]:
        self.calls.append(since)
        index = min(len(self.calls) - 1, len(self._batches) - 1)
        batch = self._batches[index]
        if isinstance(batch, Exception):
            raise batch
        return list(batch)


class BlockingSource(EventSource):
    """Blocks inside query() until released; used to hold a fetch in flight."""

    def __init__(self, batch: List[ProgressionEvent]):
        self._batch = batch
        self.entered = threading.Event()
        self.release = threading.Event()

    def query(self, since: Optional[Timestamp] = None) -> List[ProgressionEvent]:
        self.entered.set()
        self.release.wait(5)
        return list(self._batch)


class RecordingConsumer(EventConsumer):
    """Records (hook, event_id) for every hook invocation."""

    def __init__(self):
        self.calls: List[Tuple[str, str]] = []
        self._lock = threading.Lock()

    def _record(self, hook: str, evt: ProgressionEvent) -> None:
        with self._lock:
            self.calls.append((hook, evt.event_id))

    @property
    def event_ids(self) -> List[str]:
        with self._lock:
            return [event_id for _, event_id in self.calls]

    def on_task_completed(self, evt):
        self._record("task_completed", evt)

    def on_reflection_logged(self, evt):
        self._record("reflection_logged", evt)

    def on_return_after_absence(self, evt):
        self._record("return_after_absence", evt)

    def on_session_interpreted(self, evt):
        self._record("session_interpreted", evt)

    def on_time_tick(self, evt):
        self._record("time_tick", evt)

    def on_unknown(self, evt):
        self._record("unknown", evt)
