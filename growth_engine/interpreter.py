"""
Growth Interpreter

RESPONSIBILITY: Turn one domain action into one bounded growth delta
ALLOWED INPUTS: user id, task depth, occurred_at, optional event id
OUTPUTS: GrowthOutcome

WHAT THIS LAYER MUST NOT DO:
============================
- Read or write anything except one user's GrowthState
- Call external services or use randomness
- Raise on expected failures (missing state, conflicts); errors are data

WRITE PROTOCOL:
===============
fresh read -> compute -> compare_and_set(expected version)

On VERSION_CONFLICT the delta is recomputed from the fresh snapshot, up to
GrowthLimits.max_write_attempts times. The whole loop additionally runs
under the store's per-user lock, so same-user calls inside one process are
serialized while other users proceed in parallel.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import logging

from .config import GrowthLimits
from .contracts.base import Error, ErrorCode, Timestamp
from .contracts.events import TaskDepth
from .contracts.state import GrowthState
from .storage.state_store import StateStore

logger = logging.getLogger(__name__)


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


@dataclass(frozen=True)
class GrowthOutcome:
    """Result of a single Interpreter call."""
    applied: bool
    user_id: str
    before: Optional[GrowthState] = None
    after: Optional[GrowthState] = None
    error: Optional[Error] = None

    @property
    def error_code(self) -> Optional[ErrorCode]:
        return self.error.code if self.error else None


class GrowthInterpreter:
    """
    The single place where growth numbers change.

    Usage:
        interpreter = GrowthInterpreter(state_store)
        outcome = interpreter.apply_task_completion("u1", TaskDepth.DEEP, Timestamp.now())
    """

    def __init__(self, states: StateStore, limits: Optional[GrowthLimits] = None):
        self._states = states
        self._limits = limits or GrowthLimits()

    @property
    def limits(self) -> GrowthLimits:
        return self._limits

    # =========================================================================
    # DOMAIN ACTIONS
    # =========================================================================

    def apply_task_completion(
        self,
        user_id: str,
        depth: Optional[TaskDepth],
        occurred_at: Timestamp,
        event_id: Optional[str] = None
    ) -> GrowthOutcome:
        """
        Grow mass and structure by the depth's deltas and nudge vitality.

        Unknown depth falls back to SMALL.
        """
        limits = self._limits
        depth = depth or TaskDepth.SMALL
        mass_delta, structure_delta = limits.depth_table.get(
            depth, limits.depth_table[TaskDepth.SMALL]
        )
        mass_delta = clamp(mass_delta, limits.mass_delta_min, limits.mass_delta_max)
        structure_delta = clamp(
            structure_delta, limits.structure_delta_min, limits.structure_delta_max
        )

        def compute(state: GrowthState) -> GrowthState:
            return state.evolve(
                mass=state.mass + mass_delta,
                structure=state.structure + structure_delta,
                vitality=self._bounded_vitality(state.vitality + limits.task_vitality_gain),
                updated_at=occurred_at
            )

        return self._apply(user_id, compute, event_id, action=f"task:{depth.value}")

    def apply_reflection(
        self,
        user_id: str,
        occurred_at: Timestamp,
        event_id: Optional[str] = None
    ) -> GrowthOutcome:
        """Raise vitality only; mass and structure are untouched."""
        gain = self._limits.reflection_vitality_gain

        def compute(state: GrowthState) -> GrowthState:
            return state.evolve(
                vitality=self._bounded_vitality(state.vitality + gain),
                updated_at=occurred_at
            )

        return self._apply(user_id, compute, event_id, action="reflection")

    def seed_state(self, user_id: str, created_at: Timestamp) -> GrowthState:
        """Initial state for a new account."""
        return GrowthState(
            user_id=user_id,
            mass=self._limits.seed_mass,
            structure=self._limits.seed_structure,
            vitality=self._limits.seed_vitality,
            last_updated_at=created_at,
            version=1
        )

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _bounded_vitality(self, value: float) -> float:
        return clamp(value, self._limits.vitality_min, self._limits.vitality_max)

    def _apply(self, user_id, compute, event_id, action) -> GrowthOutcome:
        with self._states.lock_for(user_id):
            last_error = None
            for attempt in range(1, self._limits.max_write_attempts + 1):
                current = self._states.get(user_id)
                if current is None:
                    logger.warning(f"No growth state for {user_id}; skipping {action}")
                    return GrowthOutcome(
                        applied=False,
                        user_id=user_id,
                        error=Error.create(
                            ErrorCode.STATE_NOT_FOUND,
                            "Growth state missing",
                            user_id=user_id
                        )
                    )

                if event_id and self._states.has_applied(user_id, event_id):
                    logger.debug(f"Event {event_id} already applied for {user_id}")
                    return GrowthOutcome(
                        applied=False,
                        user_id=user_id,
                        before=current,
                        error=Error.create(
                            ErrorCode.ALREADY_APPLIED,
                            "Event growth already applied",
                            user_id=user_id,
                            event_id=event_id
                        )
                    )

                proposed = compute(current)
                result = self._states.compare_and_set(current.version, proposed, event_id)
                if result.success:
                    logger.debug(
                        f"Applied {action} for {user_id}: "
                        f"v{current.version} -> v{proposed.version}"
                    )
                    return GrowthOutcome(
                        applied=True,
                        user_id=user_id,
                        before=current,
                        after=result.state
                    )

                last_error = result.error
                if last_error is None or last_error.code != ErrorCode.VERSION_CONFLICT:
                    return GrowthOutcome(
                        applied=False,
                        user_id=user_id,
                        before=current,
                        error=last_error
                    )
                logger.debug(f"Version conflict for {user_id} on attempt {attempt}; retrying")

        logger.warning(f"Gave up applying {action} for {user_id} after repeated conflicts")
        return GrowthOutcome(applied=False, user_id=user_id, error=last_error)
