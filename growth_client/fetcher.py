"""
Event Fetcher

Turns a possibly-duplicated, possibly-reordered event feed into a clean,
once-only, chronologically ordered sequence.

GUARANTEES:
===========
1. Absent reset(), each event_id is surfaced at most once
2. Each returned batch is ordered by occurred_at (stable for ties)
3. A failed or cancelled fetch returns [] and leaves all state untouched
4. At most one fetch is in flight; a concurrent caller gets [] immediately

The high-water mark is an inclusive lower bound, so the newest events of
the previous batch are returned again by the next query. The processed-id
set absorbs them.
"""

from __future__ import annotations
from datetime import timedelta
from typing import Dict, List, Optional
import logging
import threading

from growth_engine.contracts.base import Timestamp
from growth_engine.contracts.events import ProgressionEvent

from .cancellation import CancellationToken, is_cancelled
from .sources import EventSource

logger = logging.getLogger(__name__)


class EventFetcher:

    def __init__(self, source: EventSource, dedup_retention: Optional[timedelta] = None):
        self._source = source
        self._dedup_retention = dedup_retention

        self._in_flight = threading.Lock()
        self._state_lock = threading.Lock()
        self._last_fetched_at: Optional[Timestamp] = None
        self._processed: Dict[str, Timestamp] = {}

    @property
    def last_fetched_at(self) -> Optional[Timestamp]:
        return self._last_fetched_at

    @property
    def processed_count(self) -> int:
        with self._state_lock:
            return len(self._processed)

    def has_processed(self, event_id: str) -> bool:
        with self._state_lock:
            return event_id in self._processed

    def fetch_new_events(
        self,
        cancellation: Optional[CancellationToken] = None
    ) -> List[ProgressionEvent]:
        """Query the source once and return only events not seen before."""
        if is_cancelled(cancellation):
            return []

        if not self._in_flight.acquire(blocking=False):
            logger.debug("Fetch already in flight; skipping")
            return []

        try:
            since = self._last_fetched_at
            try:
                received = self._source.query(since)
            except Exception as e:
                logger.warning(f"Progression event fetch failed: {e}")
                return []

            if is_cancelled(cancellation):
                logger.debug("Fetch cancelled; discarding received events")
                return []

            if not received:
                return []

            return self._absorb(received)
        finally:
            self._in_flight.release()

    def reset(self) -> None:
        """Forget every processed id and the high-water mark."""
        with self._state_lock:
            self._processed.clear()
            self._last_fetched_at = None
        logger.info("Event fetcher reset")

    def _absorb(self, received: List[ProgressionEvent]) -> List[ProgressionEvent]:
        fresh: List[ProgressionEvent] = []
        with self._state_lock:
            high_water = self._last_fetched_at
            for event in received:
                if event is None or not event.event_id:
                    continue
                if event.event_id in self._processed:
                    continue

                self._processed[event.event_id] = event.occurred_at
                fresh.append(event)
                if high_water is None or event.occurred_at > high_water:
                    high_water = event.occurred_at

            self._last_fetched_at = high_water
            self._prune()

        fresh.sort(key=lambda e: e.occurred_at.value)
        if fresh:
            logger.debug(f"Fetched {len(fresh)} new events (high-water {high_water.to_iso()})")
        return fresh

    def _prune(self) -> None:
        if self._dedup_retention is None or self._last_fetched_at is None:
            return
        cutoff = self._last_fetched_at.value - self._dedup_retention
        stale = [eid for eid, at in self._processed.items() if at.value < cutoff]
        for eid in stale:
            del self._processed[eid]
