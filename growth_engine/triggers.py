"""
Trigger Handlers

RESPONSIBILITY: Observe domain writes and turn qualifying ones into
progression events plus growth
ALLOWED INPUTS: TaskWrite, ReflectionRecord, new account ids
OUTPUTS: TriggerOutcome

FLOW PER QUALIFYING ACTION:
===========================
1. append one ProgressionEvent to the log
2. call the Interpreter with that event's id

Event ids are derived from the action (reflection id; task id plus
completion time), so a redelivered notification is refused by the log in
step 1 and never reaches step 2.

These are two individually atomic steps, not one transaction. If step 2
never happens the event is still the source of truth and
reconciliation.Reconciler re-applies its growth later.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import logging

from .contracts.base import Error, ErrorCode, Timestamp, derive_event_id
from .contracts.events import (
    ProgressionEvent, ProgressionEventType, ProgressionEventSubtype,
    TaskDepth, TaskWrite, ReflectionRecord, encode_list
)
from .contracts.state import UserProfile
from .interpreter import GrowthInterpreter, GrowthOutcome
from .storage import EventLog, ProfileStore, StateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TriggerOutcome:
    """What a trigger handler did with one notification."""
    fired: bool
    reason: str
    event: Optional[ProgressionEvent] = None
    growth: Optional[GrowthOutcome] = None
    error: Optional[Error] = None

    @staticmethod
    def skipped(reason: str, error: Optional[Error] = None) -> TriggerOutcome:
        return TriggerOutcome(fired=False, reason=reason, error=error)


class TriggerHandlers:
    """
    Entry points invoked by the domain store's write notifications.

    Handlers may run concurrently; the event log and the state store carry
    their own locking.
    """

    def __init__(
        self,
        events: EventLog,
        states: StateStore,
        profiles: ProfileStore,
        interpreter: GrowthInterpreter
    ):
        self._events = events
        self._states = states
        self._profiles = profiles
        self._interpreter = interpreter

    # =========================================================================
    # TASKS
    # =========================================================================

    def on_task_written(self, task_id: str, write: TaskWrite) -> TriggerOutcome:
        """
        Fire exactly once per not-completed -> completed transition.

        Writes that leave the status completed, revert it, or arrive
        without both snapshots are ignored.
        """
        before, after = write.before, write.after
        if before is None or after is None:
            return self._guarded(task_id, "task write without before/after snapshot")

        if before.is_completed or not after.is_completed:
            return self._guarded(task_id, "not a completion transition")

        user_id = after.user_id
        if not user_id:
            logger.warning(f"Completed task {task_id} has no userId; ignoring")
            return TriggerOutcome.skipped(
                "task has no user",
                Error.create(ErrorCode.MISSING_USER, "Task record has no userId", task_id=task_id)
            )

        occurred_at = after.completed_at or Timestamp.now()
        depth = TaskDepth.parse(after.estimated_depth)
        event_id = None
        if after.completed_at is not None:
            event_id = derive_event_id("task", task_id, after.completed_at.to_iso())

        event = ProgressionEvent.create(
            user_id=user_id,
            event_type=ProgressionEventType.TASK_COMPLETED,
            occurred_at=occurred_at,
            subtype=depth.subtype,
            metadata={
                "taskId": task_id,
                "projectId": after.project_id or "",
                "taskDepth": depth.value,
            },
            summary=f"Completed a {depth.value} task",
            event_id=event_id
        )

        refused = self._record(event, f"completion of task {task_id}")
        if refused is not None:
            return refused

        growth = self._interpreter.apply_task_completion(
            user_id, depth, occurred_at, event_id=event.event_id
        )
        logger.info(
            f"TASK_COMPLETED {event.event_id} for {user_id} "
            f"(task={task_id}, depth={depth.value}, applied={growth.applied})"
        )
        return TriggerOutcome(fired=True, reason="task completed", event=event, growth=growth)

    # =========================================================================
    # REFLECTIONS
    # =========================================================================

    def on_reflection_created(
        self,
        reflection_id: str,
        reflection: ReflectionRecord
    ) -> TriggerOutcome:
        """Every new reflection produces one REFLECTION_LOGGED event."""
        user_id = reflection.user_id
        if not user_id:
            logger.warning(f"Reflection {reflection_id} has no userId; ignoring")
            return TriggerOutcome.skipped(
                "reflection has no user",
                Error.create(
                    ErrorCode.MISSING_USER,
                    "Reflection has no userId",
                    reflection_id=reflection_id
                )
            )

        occurred_at = reflection.created_at or Timestamp.now()
        event = ProgressionEvent.create(
            user_id=user_id,
            event_type=ProgressionEventType.REFLECTION_LOGGED,
            occurred_at=occurred_at,
            subtype=ProgressionEventSubtype.USER_REFLECTION,
            metadata={
                "reflectionId": reflection_id,
                "relatedTaskIds": encode_list(reflection.related_task_ids),
                "tags": encode_list(reflection.tags),
            },
            summary="Logged a reflection",
            event_id=derive_event_id("reflection", reflection_id)
        )

        refused = self._record(event, f"reflection {reflection_id}")
        if refused is not None:
            return refused

        growth = self._interpreter.apply_reflection(
            user_id, occurred_at, event_id=event.event_id
        )
        logger.info(
            f"REFLECTION_LOGGED {event.event_id} for {user_id} "
            f"(reflection={reflection_id}, applied={growth.applied})"
        )
        return TriggerOutcome(fired=True, reason="reflection logged", event=event, growth=growth)

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def on_account_created(
        self,
        user_id: str,
        created_at: Optional[Timestamp] = None
    ) -> TriggerOutcome:
        """
        Bootstrap profile and seed growth state, each only if absent.

        Safe to call repeatedly.
        """
        if not user_id:
            return TriggerOutcome.skipped(
                "account has no user",
                Error.create(ErrorCode.MISSING_USER, "Account creation without userId")
            )

        now = created_at or Timestamp.now()
        profile = self._profiles.create_if_absent(
            UserProfile(user_id=user_id, created_at=now, last_active_at=now)
        )
        if profile.is_failure:
            logger.error(f"Could not bootstrap profile for {user_id}: {profile.error.message}")
            return TriggerOutcome.skipped("bootstrap write failed", profile.error)

        state = self._states.create_if_absent(self._interpreter.seed_state(user_id, now))
        if state.is_failure:
            logger.error(f"Could not seed growth state for {user_id}: {state.error.message}")
            return TriggerOutcome.skipped("bootstrap write failed", state.error)

        if not (profile.value or state.value):
            return self._guarded(user_id, "account already bootstrapped")

        logger.info(
            f"Bootstrapped account {user_id} "
            f"(profile={profile.value}, growth_state={state.value})"
        )
        return TriggerOutcome(fired=True, reason="account bootstrapped")

    def _record(self, event: ProgressionEvent, subject: str) -> Optional[TriggerOutcome]:
        """
        Append the event. Returns None on success, otherwise the not-fired
        outcome to hand back.

        A duplicate id means this action was already recorded; its growth
        was applied then (or is left to reconciliation), never again here.
        """
        appended = self._events.append(event)
        if appended.is_success:
            return None

        if appended.error.code == ErrorCode.DUPLICATE_EVENT_ID:
            logger.info(f"Ignoring redelivered {subject} ({event.event_id})")
            return TriggerOutcome.skipped("already recorded")

        logger.error(f"Could not record {subject}: {appended.error.message}")
        return TriggerOutcome.skipped("event append failed", appended.error)

    def _guarded(self, subject: str, reason: str) -> TriggerOutcome:
        logger.debug(f"Trigger for {subject} guarded out: {reason}")
        return TriggerOutcome.skipped(reason)
