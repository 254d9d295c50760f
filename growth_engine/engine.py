"""
Engine Orchestration Module

This module provides the unified interface for coordinating the engine
layers while maintaining strict boundary separation.

DESIGN PRINCIPLES:
==================
1. Layers communicate ONLY through contracts
2. Every dependency is constructed here and passed explicitly
3. There is no global instance; callers own the backend they build
"""

from __future__ import annotations
from typing import List, Optional
import logging

from .config import EngineConfig
from .contracts.base import Timestamp
from .contracts.events import ProgressionEvent, TaskWrite, ReflectionRecord
from .contracts.insight import WeeklyInsight
from .contracts.state import GrowthState, UserProfile
from .interpreter import GrowthInterpreter
from .insights import InsightComposer
from .reconciliation import Reconciler, ReconciliationReport
from .storage import GrowthStorage, create_storage
from .triggers import TriggerHandlers, TriggerOutcome

logger = logging.getLogger(__name__)


class GrowthBackend:
    """
    Authoritative growth engine.

    LAYER FLOW:
    ===========
    1. Triggers: domain write -> guard -> ProgressionEvent appended
    2. Interpreter: event -> bounded delta -> conditional state write
    3. Storage: event log, state store, profile store
    4. Reconciliation: event log -> replay of unapplied growth
    5. Insights: event log -> read-only weekly summary

    Reads (events, state) go straight to storage and never mutate.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        storage: Optional[GrowthStorage] = None
    ):
        self._config = config or EngineConfig()
        self._storage = storage or create_storage(self._config.storage)

        self._interpreter = GrowthInterpreter(self._storage.states, self._config.limits)
        self._triggers = TriggerHandlers(
            events=self._storage.events,
            states=self._storage.states,
            profiles=self._storage.profiles,
            interpreter=self._interpreter
        )
        self._reconciler = Reconciler(
            self._storage.events, self._storage.states, self._interpreter
        )
        self._insights = InsightComposer(self._storage.events)
        logger.info(f"Growth backend ready ({self._config.storage.backend_type} storage)")

    # =========================================================================
    # TRIGGER INTERFACE
    # =========================================================================

    def on_task_written(self, task_id: str, write: TaskWrite) -> TriggerOutcome:
        return self._triggers.on_task_written(task_id, write)

    def on_reflection_created(
        self,
        reflection_id: str,
        reflection: ReflectionRecord
    ) -> TriggerOutcome:
        return self._triggers.on_reflection_created(reflection_id, reflection)

    def on_account_created(
        self,
        user_id: str,
        created_at: Optional[Timestamp] = None
    ) -> TriggerOutcome:
        return self._triggers.on_account_created(user_id, created_at)

    # =========================================================================
    # QUERY INTERFACE (read-only)
    # =========================================================================

    def list_events(
        self,
        user_id: str,
        since: Optional[Timestamp] = None
    ) -> List[ProgressionEvent]:
        return self._storage.events.list_events(user_id, since)

    def get_growth_state(self, user_id: str) -> Optional[GrowthState]:
        return self._storage.states.get(user_id)

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self._storage.profiles.get(user_id)

    def weekly_insight(
        self,
        user_id: str,
        from_at: Timestamp,
        to_at: Timestamp
    ) -> WeeklyInsight:
        return self._insights.weekly_insight(user_id, from_at, to_at)

    # =========================================================================
    # MAINTENANCE
    # =========================================================================

    def reconcile_user(self, user_id: str) -> ReconciliationReport:
        return self._reconciler.reconcile_user(user_id)

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def storage(self) -> GrowthStorage:
        return self._storage

    @property
    def interpreter(self) -> GrowthInterpreter:
        return self._interpreter

    @property
    def triggers(self) -> TriggerHandlers:
        return self._triggers
