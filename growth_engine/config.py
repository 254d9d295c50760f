"""
Engine Configuration

Dataclass configuration for every engine layer, composed into a single
EngineConfig the same way the layers themselves are composed in
GrowthBackend. Sub-configs default themselves in __post_init__.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
import os

from .contracts.events import TaskDepth


ENV_STORAGE_BACKEND = "GROWTH_STORAGE_BACKEND"
ENV_STORAGE_DIR = "GROWTH_STORAGE_DIR"


def _default_depth_table() -> Dict[TaskDepth, Tuple[float, float]]:
    # depth -> (mass_delta, structure_delta)
    return {
        TaskDepth.SMALL: (0.02, 0.02),
        TaskDepth.MEDIUM: (0.02, 0.04),
        TaskDepth.DEEP: (0.05, 0.08),
    }


@dataclass
class GrowthLimits:
    """Numeric bounds and increments used by the Interpreter."""
    vitality_min: float = 0.6
    vitality_max: float = 1.0

    mass_delta_min: float = 0.01
    mass_delta_max: float = 0.08
    structure_delta_min: float = 0.01
    structure_delta_max: float = 0.10

    task_vitality_gain: float = 0.01
    reflection_vitality_gain: float = 0.03

    seed_mass: float = 1.0
    seed_structure: float = 0.5
    seed_vitality: float = 0.8

    depth_table: Dict[TaskDepth, Tuple[float, float]] = field(
        default_factory=_default_depth_table
    )

    # Compare-and-set attempts before giving up with VERSION_CONFLICT
    max_write_attempts: int = 5

    def __post_init__(self):
        if self.vitality_min > self.vitality_max:
            raise ValueError("vitality_min must not exceed vitality_max")
        if self.max_write_attempts < 1:
            raise ValueError("max_write_attempts must be at least 1")


@dataclass
class StorageConfig:
    """Configuration for state, profile and event persistence."""
    backend_type: str = "memory"  # "memory" or "file"
    storage_dir: Optional[str] = None


@dataclass
class EngineConfig:
    """Unified configuration for the whole engine."""
    limits: GrowthLimits = None
    storage: StorageConfig = None

    def __post_init__(self):
        self.limits = self.limits or GrowthLimits()
        self.storage = self.storage or StorageConfig()

    @staticmethod
    def from_env() -> EngineConfig:
        """
        Build a config from environment variables.

        GROWTH_STORAGE_DIR alone implies the file backend.
        """
        storage_dir = os.environ.get(ENV_STORAGE_DIR)
        backend_type = os.environ.get(
            ENV_STORAGE_BACKEND, "file" if storage_dir else "memory"
        )
        return EngineConfig(
            storage=StorageConfig(backend_type=backend_type, storage_dir=storage_dir)
        )
