"""
Growth State Store

RESPONSIBILITY: Persist one GrowthState per user behind a conditional write
ALLOWED INPUTS: GrowthState snapshots, expected versions, applied event ids
OUTPUTS: GrowthState snapshots, StateWriteResult

WHAT THIS LAYER MUST NOT DO:
============================
- Compute growth deltas
- Decide whether a domain action should count
- Delete a user's state

CONSISTENCY MODEL:
==================
Every mutation goes through compare_and_set(expected_version, ...). The
write succeeds only if the stored version still equals expected_version;
otherwise the caller re-reads and recomputes. The applied-event ledger is
updated inside the same conditional write, so "state advanced" and "event
marked applied" can never be observed separately.

Writes for one user are serialized by a per-user re-entrant lock. There is
no global lock across users.
"""

from __future__ import annotations
from typing import Dict, Optional, Set
import json
import logging
import os
import threading

from ..contracts.base import Error, ErrorCode, Result
from ..contracts.state import GrowthState, StateWriteResult

logger = logging.getLogger(__name__)


class StateStore:
    """
    Abstract growth state store.
    """

    def __init__(self):
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def lock_for(self, user_id: str) -> threading.RLock:
        """Per-user lock; callers may hold it across read-compute-write."""
        with self._locks_guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[user_id] = lock
            return lock

    def get(self, user_id: str) -> Optional[GrowthState]:
        raise NotImplementedError

    def create_if_absent(self, state: GrowthState) -> Result:
        """
        Store a seed state. Result.value is False if the user already has one;
        a failed write is reported as STORAGE_WRITE_FAILED.
        """
        raise NotImplementedError

    def compare_and_set(
        self,
        expected_version: int,
        new_state: GrowthState,
        applied_event_id: Optional[str] = None
    ) -> StateWriteResult:
        raise NotImplementedError

    def has_applied(self, user_id: str, event_id: str) -> bool:
        raise NotImplementedError


class InMemoryStateStore(StateStore):
    """
    In-memory implementation of the state store.

    Suitable for testing and single-process deployment.
    """

    def __init__(self):
        super().__init__()
        self._states: Dict[str, GrowthState] = {}
        self._applied: Dict[str, Set[str]] = {}

    def get(self, user_id: str) -> Optional[GrowthState]:
        with self.lock_for(user_id):
            return self._states.get(user_id)

    def has_applied(self, user_id: str, event_id: str) -> bool:
        with self.lock_for(user_id):
            return event_id in self._applied.get(user_id, ())

    def create_if_absent(self, state: GrowthState) -> Result:
        with self.lock_for(state.user_id):
            if state.user_id in self._states:
                return Result.success(False)
            try:
                self._persist(state, None)
            except OSError as e:
                logger.error(f"Seed state write failed for {state.user_id}: {e}")
                return Result.failure(Error.create(
                    ErrorCode.STORAGE_WRITE_FAILED,
                    f"Failed to write seed state: {e}",
                    user_id=state.user_id
                ))
            self._states[state.user_id] = state
            return Result.success(True)

    def compare_and_set(
        self,
        expected_version: int,
        new_state: GrowthState,
        applied_event_id: Optional[str] = None
    ) -> StateWriteResult:
        user_id = new_state.user_id
        with self.lock_for(user_id):
            current = self._states.get(user_id)
            if current is None:
                return StateWriteResult(
                    success=False,
                    error=Error.create(
                        ErrorCode.STATE_NOT_FOUND,
                        "No growth state to update",
                        user_id=user_id
                    )
                )

            if current.version != expected_version:
                return StateWriteResult(
                    success=False,
                    state=current,
                    error=Error.create(
                        ErrorCode.VERSION_CONFLICT,
                        f"Expected version {expected_version}, found {current.version}",
                        user_id=user_id
                    )
                )

            if applied_event_id and applied_event_id in self._applied.get(user_id, ()):
                return StateWriteResult(
                    success=False,
                    state=current,
                    error=Error.create(
                        ErrorCode.ALREADY_APPLIED,
                        "Event growth already applied",
                        user_id=user_id,
                        event_id=applied_event_id
                    )
                )

            if new_state.version != expected_version + 1:
                return StateWriteResult(
                    success=False,
                    state=current,
                    error=Error.create(
                        ErrorCode.VERSION_CONFLICT,
                        f"New version must be {expected_version + 1}",
                        user_id=user_id
                    )
                )

            try:
                self._persist(new_state, applied_event_id)
            except OSError as e:
                logger.error(f"State write failed for {user_id}: {e}")
                return StateWriteResult(
                    success=False,
                    state=current,
                    error=Error.create(
                        ErrorCode.STORAGE_WRITE_FAILED,
                        f"Failed to write state: {e}",
                        user_id=user_id
                    )
                )

            self._states[user_id] = new_state
            if applied_event_id:
                self._applied.setdefault(user_id, set()).add(applied_event_id)
            return StateWriteResult(success=True, state=new_state)

    def _persist(self, state: GrowthState, applied_event_id: Optional[str]) -> None:
        """Hook for durable subclasses; called under the user's lock."""


class FileStateStore(InMemoryStateStore):
    """
    File-backed state store.

    Every revision is appended to states.jsonl together with the event id it
    applied. The latest revision per user and the applied ledger are rebuilt
    from the file on load.
    """

    def __init__(self, storage_dir: str):
        super().__init__()
        self._storage_dir = storage_dir
        self._states_file = os.path.join(storage_dir, "states.jsonl")

        os.makedirs(storage_dir, exist_ok=True)
        self._rebuild_indices()

    def _rebuild_indices(self):
        """Replay the revision file into memory."""
        if not os.path.exists(self._states_file):
            return

        with open(self._states_file, 'r') as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    record = json.loads(line)
                    state = GrowthState.from_dict(record["state"])
                except (ValueError, KeyError, TypeError) as e:
                    logger.warning(f"Skipping corrupt state record at line {line_no}: {e}")
                    continue

                current = self._states.get(state.user_id)
                if current is None or state.version > current.version:
                    self._states[state.user_id] = state
                applied = record.get("appliedEventId")
                if applied:
                    self._applied.setdefault(state.user_id, set()).add(applied)

        logger.info(f"Loaded growth state for {len(self._states)} users")

    def _persist(self, state: GrowthState, applied_event_id: Optional[str]) -> None:
        with open(self._states_file, 'a') as f:
            f.write(json.dumps({
                "state": state.to_dict(),
                "appliedEventId": applied_event_id,
            }) + '\n')
