"""
Event Dispatcher

Synchronous fan-out of progression events to a fixed list of consumers.

Routing is closed over the known event types. Consumers override only the
hooks they care about; every hook is a no-op by default, including
on_unknown, so types added to the engine later never break a consumer.

A consumer that raises is logged and skipped; the remaining consumers still
receive the event.
"""

from __future__ import annotations
from typing import Iterable, List, Sequence
import logging

from growth_engine.contracts.events import ProgressionEvent, ProgressionEventType

logger = logging.getLogger(__name__)


class EventConsumer:
    """Base class for anything that reacts to progression events."""

    def on_event(self, event: ProgressionEvent) -> None:
        route(self, event)

    def on_task_completed(self, event: ProgressionEvent) -> None:
        pass

    def on_reflection_logged(self, event: ProgressionEvent) -> None:
        pass

    def on_return_after_absence(self, event: ProgressionEvent) -> None:
        pass

    def on_session_interpreted(self, event: ProgressionEvent) -> None:
        pass

    def on_time_tick(self, event: ProgressionEvent) -> None:
        pass

    def on_unknown(self, event: ProgressionEvent) -> None:
        pass


def route(consumer: EventConsumer, event: ProgressionEvent) -> None:
    kind = event.kind
    if kind == ProgressionEventType.TASK_COMPLETED:
        consumer.on_task_completed(event)
    elif kind == ProgressionEventType.REFLECTION_LOGGED:
        consumer.on_reflection_logged(event)
    elif kind == ProgressionEventType.RETURN_AFTER_ABSENCE:
        consumer.on_return_after_absence(event)
    elif kind == ProgressionEventType.SESSION_INTERPRETED:
        consumer.on_session_interpreted(event)
    elif kind == ProgressionEventType.TIME_TICK:
        consumer.on_time_tick(event)
    else:
        consumer.on_unknown(event)


class EventDispatcher:

    def __init__(self, consumers: Sequence[EventConsumer] = ()):
        self._consumers: List[EventConsumer] = list(consumers)

    @property
    def consumers(self) -> List[EventConsumer]:
        return list(self._consumers)

    def dispatch(self, event: ProgressionEvent) -> None:
        if event is None:
            return
        for consumer in self._consumers:
            try:
                consumer.on_event(event)
            except Exception:
                logger.exception(
                    f"Consumer {type(consumer).__name__} failed on event "
                    f"{event.event_id} ({event.event_type})"
                )

    def dispatch_all(self, events: Iterable[ProgressionEvent]) -> int:
        """Dispatch in the given order; returns the number of events dispatched."""
        count = 0
        for event in events:
            if event is None:
                continue
            self.dispatch(event)
            count += 1
        return count
