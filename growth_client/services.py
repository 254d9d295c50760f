"""
Client services for the authoritative growth state, reflection submission
and weekly insights. Failures are logged and reported as None/False;
nothing here raises to the caller.
"""

from __future__ import annotations
from typing import Dict, Iterable, Optional, Tuple
import logging
import threading

from growth_engine.contracts.base import Timestamp
from growth_engine.contracts.insight import WeeklyInsight
from growth_engine.contracts.state import GrowthState

from .api_client import ApiClient, ApiError
from .cancellation import CancellationToken, is_cancelled

logger = logging.getLogger(__name__)


class GrowthStateService:

    def __init__(self, api: ApiClient, user_id: str):
        self._api = api
        self._user_id = user_id

    def get_growth_state(
        self,
        cancellation: Optional[CancellationToken] = None
    ) -> Optional[GrowthState]:
        """The backend's current GrowthState for this user, or None."""
        if is_cancelled(cancellation):
            return None

        try:
            payload = self._api.get_json("/growth/state", {"userId": self._user_id})
        except ApiError as e:
            if e.is_not_found:
                logger.warning(f"Backend has no growth state for {self._user_id}")
            else:
                logger.error(f"Failed to fetch growth state: {e}")
            return None

        if is_cancelled(cancellation):
            logger.debug("Growth state fetch cancelled")
            return None

        try:
            return GrowthState.from_dict(payload)
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Backend returned malformed growth state: {e}")
            return None


class ReflectionService:

    def __init__(self, api: ApiClient, user_id: str):
        self._api = api
        self._user_id = user_id

    def submit_reflection(
        self,
        text: str,
        related_task_ids: Optional[Iterable[str]] = None,
        tags: Optional[Iterable[str]] = None,
        cancellation: Optional[CancellationToken] = None
    ) -> bool:
        """
        Submit a reflection. The backend records it and emits the
        REFLECTION_LOGGED event; this call does not touch local state.
        """
        if not text or not text.strip():
            logger.warning("Refusing to submit an empty reflection")
            return False

        if is_cancelled(cancellation):
            return False

        body = {
            "userId": self._user_id,
            "text": text,
            "relatedTaskIds": list(related_task_ids or ()),
            "tags": list(tags or ()),
            "createdAt": Timestamp.now().to_iso(),
        }
        try:
            self._api.post_json("/reflections", body)
        except ApiError as e:
            logger.error(f"Failed to submit reflection: {e}")
            return False

        if is_cancelled(cancellation):
            logger.debug("Reflection submission cancelled after send")
            return False
        return True


class InsightService:
    """
    Weekly insights, cached per window for the lifetime of the session.

    Insights are read-only: requesting one never changes growth or emits
    events. Call reset() on logout.
    """

    def __init__(self, api: ApiClient, user_id: str):
        self._api = api
        self._user_id = user_id
        self._lock = threading.Lock()
        self._cache: Dict[Tuple[str, str], WeeklyInsight] = {}

    def get_weekly_insight(
        self,
        from_at: Timestamp,
        to_at: Timestamp,
        cancellation: Optional[CancellationToken] = None
    ) -> Optional[WeeklyInsight]:
        key = (from_at.to_iso(), to_at.to_iso())
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        if is_cancelled(cancellation):
            return None

        body = {"userId": self._user_id, "fromUtc": key[0], "toUtc": key[1]}
        try:
            payload = self._api.post_json("/insights/weekly", body)
        except ApiError as e:
            logger.warning(f"Failed to retrieve insight: {e}")
            return None

        if is_cancelled(cancellation):
            logger.debug("Insight request cancelled")
            return None

        if not isinstance(payload, dict) or not payload.get("text"):
            return None

        try:
            insight = WeeklyInsight.from_dict({"fromUtc": key[0], "toUtc": key[1], **payload})
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Backend returned malformed insight: {e}")
            return None

        with self._lock:
            self._cache[key] = insight
        return insight

    def reset(self) -> None:
        with self._lock:
            self._cache.clear()
