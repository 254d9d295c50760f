"""
Session Manager

Owns the client-side session lifecycle: the first fetch at launch,
re-fetch on resume, periodic background polling, and the reset on logout
(event fetcher and, when given, the insight cache).

FAILURE POLICY:
===============
- Individual fetch failures degrade silently (the fetcher returns [])
- Only failing to ever reach the backend at start() is escalated,
  as SessionUnavailable, after max_start_attempts health checks
"""

from __future__ import annotations
from typing import Callable, Optional
import logging
import threading

from .api_client import ApiError
from .cancellation import CancellationToken
from .config import ClientConfig
from .dispatcher import EventDispatcher
from .fetcher import EventFetcher
from .services import InsightService

logger = logging.getLogger(__name__)


class SessionUnavailable(Exception):
    """The backend could not be reached while establishing a session."""


class SessionManager:
    """
    Usage:
        session = SessionManager(fetcher, dispatcher, health_check=api.ping)
        session.start()
        session.start_polling()
        ...
        session.logout()
    """

    def __init__(
        self,
        fetcher: EventFetcher,
        dispatcher: EventDispatcher,
        config: Optional[ClientConfig] = None,
        health_check: Optional[Callable[[], None]] = None,
        insights: Optional[InsightService] = None
    ):
        self._fetcher = fetcher
        self._dispatcher = dispatcher
        self._config = config or ClientConfig()
        self._health_check = health_check
        self._insights = insights

        self._lock = threading.Lock()
        self._token = CancellationToken()
        self._started = False
        self._paused = False
        self._poller: Optional[threading.Thread] = None

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def is_polling(self) -> bool:
        return self._poller is not None and self._poller.is_alive()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> int:
        """
        Establish the session and deliver everything not yet seen.

        Runs once per launch; later calls return 0. Returns the number of
        events dispatched.
        """
        with self._lock:
            if self._started:
                return 0
            self._check_backend()
            self._started = True
            self._paused = False
        logger.info("Session started")
        return self.poll_once()

    def resume(self) -> int:
        """Catch up after the app regains focus."""
        if not self._started:
            return 0
        self._paused = False
        return self.poll_once()

    def pause(self) -> None:
        """Background ticks are skipped while paused; nothing is torn down."""
        self._paused = True

    def poll_once(self) -> int:
        events = self._fetcher.fetch_new_events(self._token)
        if not events:
            return 0
        return self._dispatcher.dispatch_all(events)

    def start_polling(self) -> None:
        with self._lock:
            if self.is_polling:
                return
            token = self._token
            self._poller = threading.Thread(
                target=self._poll_loop,
                args=(token,),
                name="growth-event-poller",
                daemon=True
            )
            self._poller.start()
        logger.debug(f"Polling every {self._config.poll_interval_seconds}s")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel in-flight work (including a start-up health check) and stop the poller."""
        self._token.cancel()
        with self._lock:
            poller, self._poller = self._poller, None
            self._token = CancellationToken()
        if poller is not None and poller is not threading.current_thread():
            poller.join(timeout)

    def logout(self) -> None:
        """End the session; the next start() re-delivers every event."""
        self.stop()
        self._fetcher.reset()
        if self._insights is not None:
            self._insights.reset()
        self._started = False
        self._paused = False
        logger.info("Session ended")

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _check_backend(self) -> None:
        if self._health_check is None:
            return

        attempts = self._config.max_start_attempts
        for attempt in range(1, attempts + 1):
            try:
                self._health_check()
                return
            except ApiError as e:
                logger.warning(f"Backend unreachable (attempt {attempt}/{attempts}): {e}")
                if attempt < attempts and self._token.wait(self._config.start_retry_delay_seconds):
                    raise SessionUnavailable("Session start cancelled while backend was unreachable")
        raise SessionUnavailable(f"Backend unreachable after {attempts} attempts")

    def _poll_loop(self, token: CancellationToken) -> None:
        while not token.wait(self._config.poll_interval_seconds):
            if self._paused:
                continue
            # Anything returned is already marked processed; it must be delivered.
            events = self._fetcher.fetch_new_events(token)
            if events:
                self._dispatcher.dispatch_all(events)
