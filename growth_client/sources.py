"""
Event sources consumed by the EventFetcher.

A source answers one question for one user: "which events occurred at or
after `since`?". Sources may return duplicates and may return events in
any order; the fetcher handles both.
"""

from __future__ import annotations
from typing import List, Optional
import logging

from growth_engine.contracts.base import Timestamp
from growth_engine.contracts.events import ProgressionEvent

from .api_client import ApiClient, ApiError

logger = logging.getLogger(__name__)


class EventSource:

    def query(self, since: Optional[Timestamp] = None) -> List[ProgressionEvent]:
        raise NotImplementedError


class HttpEventSource(EventSource):
    """Reads GET /progression/events for one user."""

    def __init__(self, api: ApiClient, user_id: str):
        self._api = api
        self._user_id = user_id

    def query(self, since: Optional[Timestamp] = None) -> List[ProgressionEvent]:
        payload = self._api.get_json(
            "/progression/events",
            {"userId": self._user_id, "sinceUtc": since.to_iso() if since else None}
        )
        if not isinstance(payload, list):
            raise ApiError("Event listing is not a JSON array", path="/progression/events")

        events = []
        for item in payload:
            try:
                events.append(ProgressionEvent.from_dict(item))
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Dropping malformed progression event: {e}")
        return events


class LocalEventSource(EventSource):
    """
    In-process source over anything exposing list_events(user_id, since),
    such as an EventLog or a GrowthBackend.
    """

    def __init__(self, log, user_id: str):
        self._log = log
        self._user_id = user_id

    def query(self, since: Optional[Timestamp] = None) -> List[ProgressionEvent]:
        return list(self._log.list_events(self._user_id, since))
