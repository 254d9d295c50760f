"""
Growth Engine

Authoritative backend for per-user growth state and the progression event
stream derived from it.

Layers:
- contracts: immutable types shared with the client
- storage: state store, event log, profile store
- interpreter: bounded growth math
- triggers: domain write -> event -> growth
- reconciliation: replay of events whose growth was never applied
- api: FastAPI surface
"""

from .config import EngineConfig, GrowthLimits, StorageConfig
from .engine import GrowthBackend

__all__ = [
    'EngineConfig',
    'GrowthLimits',
    'StorageConfig',
    'GrowthBackend',
]
