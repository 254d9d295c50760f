"""
Storage Layer

RESPONSIBILITY: Durable state, profile and event persistence
ALLOWED INPUTS: Contract types only
OUTPUTS: Contract types and write results

Two interchangeable backends are provided for every store:
in-memory (tests, single process) and append-only JSONL files.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging

from ..config import StorageConfig
from .state_store import StateStore, InMemoryStateStore, FileStateStore
from .event_log import EventLog, InMemoryEventLog, FileEventLog
from .profile_store import ProfileStore, InMemoryProfileStore, FileProfileStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GrowthStorage:
    """The three stores one engine instance works against."""
    states: StateStore
    events: EventLog
    profiles: ProfileStore


def create_storage(config: StorageConfig) -> GrowthStorage:
    """Create storage backends based on configuration."""
    if config.backend_type == "file" and config.storage_dir:
        logger.info(f"Using file storage at {config.storage_dir}")
        return GrowthStorage(
            states=FileStateStore(config.storage_dir),
            events=FileEventLog(config.storage_dir),
            profiles=FileProfileStore(config.storage_dir),
        )
    return GrowthStorage(
        states=InMemoryStateStore(),
        events=InMemoryEventLog(),
        profiles=InMemoryProfileStore(),
    )


__all__ = [
    'StateStore',
    'InMemoryStateStore',
    'FileStateStore',
    'EventLog',
    'InMemoryEventLog',
    'FileEventLog',
    'ProfileStore',
    'InMemoryProfileStore',
    'FileProfileStore',
    'GrowthStorage',
    'create_storage',
]
