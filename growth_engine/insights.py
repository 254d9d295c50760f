"""
Weekly Insight Composer

RESPONSIBILITY: Summarize a window of a user's recorded progression
ALLOWED INPUTS: user id, [from_at, to_at] window
OUTPUTS: WeeklyInsight

WHAT THIS LAYER MUST NOT DO:
============================
- Write to any store
- Emit progression events
- Change GrowthState

The summary only restates what the event log already holds. Tone is calm
and non-directive; an empty window is not treated as a failure.
"""

from __future__ import annotations
from typing import List
import logging

from .contracts.base import Timestamp
from .contracts.events import ProgressionEvent, ProgressionEventType, TaskDepth
from .contracts.insight import WeeklyInsight
from .storage import EventLog

logger = logging.getLogger(__name__)

# Distinct active days from which a window counts as consistent
CONSISTENT_DAYS = 3


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


class InsightComposer:

    def __init__(self, events: EventLog):
        self._events = events

    def weekly_insight(
        self,
        user_id: str,
        from_at: Timestamp,
        to_at: Timestamp
    ) -> WeeklyInsight:
        """Insight over events with from_at <= occurred_at <= to_at."""
        window = [
            e for e in self._events.list_events(user_id, from_at)
            if e.occurred_at <= to_at
        ]
        insight = self._compose(window, from_at, to_at)
        logger.debug(f"Composed insight for {user_id} over {len(window)} events")
        return insight

    def _compose(
        self,
        window: List[ProgressionEvent],
        from_at: Timestamp,
        to_at: Timestamp
    ) -> WeeklyInsight:
        tasks = [e for e in window if e.kind == ProgressionEventType.TASK_COMPLETED]
        reflections = [e for e in window if e.kind == ProgressionEventType.REFLECTION_LOGGED]

        if not tasks and not reflections:
            return WeeklyInsight(
                text=(
                    "A quiet stretch. Nothing was recorded in this window, "
                    "and the tree holds what it has already grown."
                ),
                from_at=from_at,
                to_at=to_at,
                title="A quiet week",
                tags=("gentleness",)
            )

        active_days = {e.occurred_at.value.date() for e in tasks + reflections}
        deep = sum(1 for e in tasks if e.get_metadata("taskDepth") == TaskDepth.DEEP.value)

        parts = []
        if tasks:
            line = f"completed {_plural(len(tasks), 'task')}"
            if deep:
                line += f", {deep} of them deep"
            parts.append(line)
        if reflections:
            parts.append(f"logged {_plural(len(reflections), 'reflection')}")
        text = f"You {' and '.join(parts)} across {_plural(len(active_days), 'day')}."

        tags = []
        if tasks:
            tags.append("momentum")
        if reflections:
            tags.append("reflection")
        if len(active_days) >= CONSISTENT_DAYS:
            tags.append("consistency")

        return WeeklyInsight(
            text=text,
            from_at=from_at,
            to_at=to_at,
            title="Your week",
            tags=tuple(tags)
        )
