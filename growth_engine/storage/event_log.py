"""
Progression Event Log

Append-only, per-user store of ProgressionEvents.

INVARIANTS:
===========
- An event is never mutated or removed once appended
- event_id is unique across the whole log
- Queries return events ordered by occurred_at; events with the same
  occurred_at keep their append order
"""

from __future__ import annotations
from typing import Dict, List, Optional
import json
import logging
import os
import threading

from ..contracts.base import Error, ErrorCode, Result, Timestamp
from ..contracts.events import ProgressionEvent

logger = logging.getLogger(__name__)


class EventLog:
    """
    Abstract event log interface.
    """

    def append(self, event: ProgressionEvent) -> Result:
        """Append an event. Result.value is the stored event."""
        raise NotImplementedError

    def get(self, event_id: str) -> Optional[ProgressionEvent]:
        raise NotImplementedError

    def list_events(
        self,
        user_id: str,
        since: Optional[Timestamp] = None
    ) -> List[ProgressionEvent]:
        """User's events with occurred_at >= since (inclusive)."""
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError


class InMemoryEventLog(EventLog):
    """
    In-memory event log. Appends are serialized by a single lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._by_id: Dict[str, ProgressionEvent] = {}
        self._by_user: Dict[str, List[ProgressionEvent]] = {}

    def append(self, event: ProgressionEvent) -> Result:
        if not event.event_id:
            return Result.failure(Error.create(
                ErrorCode.MALFORMED_PAYLOAD,
                "Event has no event_id"
            ))

        with self._lock:
            if event.event_id in self._by_id:
                return Result.failure(Error.create(
                    ErrorCode.DUPLICATE_EVENT_ID,
                    "Event id already present in log",
                    event_id=event.event_id
                ))

            try:
                self._persist(event)
            except OSError as e:
                logger.error(f"Event append failed for {event.event_id}: {e}")
                return Result.failure(Error.create(
                    ErrorCode.STORAGE_WRITE_FAILED,
                    f"Failed to append event: {e}",
                    event_id=event.event_id
                ))

            self._index(event)
        return Result.success(event)

    def get(self, event_id: str) -> Optional[ProgressionEvent]:
        with self._lock:
            return self._by_id.get(event_id)

    def list_events(
        self,
        user_id: str,
        since: Optional[Timestamp] = None
    ) -> List[ProgressionEvent]:
        with self._lock:
            events = list(self._by_user.get(user_id, ()))
        if since is not None:
            events = [e for e in events if e.occurred_at >= since]
        # sorted() is stable, so ties keep append order
        return sorted(events, key=lambda e: e.occurred_at.value)

    def count(self) -> int:
        with self._lock:
            return len(self._by_id)

    def _index(self, event: ProgressionEvent) -> None:
        self._by_id[event.event_id] = event
        self._by_user.setdefault(event.user_id, []).append(event)

    def _persist(self, event: ProgressionEvent) -> None:
        """Hook for durable subclasses; called under the log lock."""


class FileEventLog(InMemoryEventLog):
    """
    File-backed event log using an append-only events.jsonl.
    """

    def __init__(self, storage_dir: str):
        super().__init__()
        self._storage_dir = storage_dir
        self._events_file = os.path.join(storage_dir, "events.jsonl")

        os.makedirs(storage_dir, exist_ok=True)
        self._rebuild_indices()

    def _rebuild_indices(self):
        if not os.path.exists(self._events_file):
            return

        with open(self._events_file, 'r') as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    event = ProgressionEvent.from_dict(json.loads(line))
                except (ValueError, KeyError, TypeError) as e:
                    logger.warning(f"Skipping corrupt event record at line {line_no}: {e}")
                    continue
                if event.event_id in self._by_id:
                    continue
                self._index(event)

        logger.info(f"Loaded {len(self._by_id)} progression events")

    def _persist(self, event: ProgressionEvent) -> None:
        with open(self._events_file, 'a') as f:
            f.write(json.dumps(event.to_dict()) + '\n')
