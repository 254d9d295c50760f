"""
Reconciliation

Repairs the gap left when a trigger appended an event but the growth write
never happened (process crash, persistent version conflicts, storage
failure). The event log is the source of truth: every growth-bearing event
whose id is missing from the user's applied ledger is re-applied, in
occurred_at order.

Running it twice is harmless; the second pass finds nothing to replay.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Tuple
import logging

from .contracts.base import ErrorCode
from .contracts.events import ProgressionEvent, ProgressionEventType, TaskDepth
from .interpreter import GrowthInterpreter, GrowthOutcome
from .storage import EventLog, StateStore

logger = logging.getLogger(__name__)


GROWTH_BEARING_TYPES = frozenset({
    ProgressionEventType.TASK_COMPLETED,
    ProgressionEventType.REFLECTION_LOGGED,
})


@dataclass(frozen=True)
class ReconciliationReport:
    user_id: str
    examined: int = 0
    replayed: int = 0
    skipped: int = 0
    failed: int = 0
    failures: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)  # (event_id, reason)

    def to_dict(self):
        return {
            "userId": self.user_id,
            "examined": self.examined,
            "replayed": self.replayed,
            "skipped": self.skipped,
            "failed": self.failed,
            "failures": [{"eventId": e, "reason": r} for e, r in self.failures],
        }


class Reconciler:

    def __init__(self, events: EventLog, states: StateStore, interpreter: GrowthInterpreter):
        self._events = events
        self._states = states
        self._interpreter = interpreter

    def reconcile_user(self, user_id: str) -> ReconciliationReport:
        examined = replayed = skipped = 0
        failures: List[Tuple[str, str]] = []

        for event in self._events.list_events(user_id):
            examined += 1
            if event.kind not in GROWTH_BEARING_TYPES:
                skipped += 1
                continue
            if self._states.has_applied(user_id, event.event_id):
                skipped += 1
                continue

            outcome = self._replay(event)
            if outcome.applied:
                replayed += 1
            elif outcome.error_code == ErrorCode.ALREADY_APPLIED:
                skipped += 1
            else:
                reason = outcome.error.message if outcome.error else "not applied"
                failures.append((event.event_id, reason))

        report = ReconciliationReport(
            user_id=user_id,
            examined=examined,
            replayed=replayed,
            skipped=skipped,
            failed=len(failures),
            failures=tuple(failures)
        )
        if replayed or failures:
            logger.info(
                f"Reconciled {user_id}: replayed={replayed} failed={len(failures)} "
                f"of {examined} events"
            )
        return report

    def _replay(self, event: ProgressionEvent) -> GrowthOutcome:
        if event.kind == ProgressionEventType.TASK_COMPLETED:
            depth = TaskDepth.parse(event.get_metadata("taskDepth"))
            return self._interpreter.apply_task_completion(
                event.user_id, depth, event.occurred_at, event_id=event.event_id
            )
        return self._interpreter.apply_reflection(
            event.user_id, event.occurred_at, event_id=event.event_id
        )
