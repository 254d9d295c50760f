"""
Contracts Module

This module defines the explicit interfaces and data transfer objects
shared by the engine layers and the client. No layer may import
implementation details from another layer; everything crosses a boundary
as one of these types.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. All contracts include explicit error states
3. All timestamps use UTC and are never mutated
4. Wire representations are camelCase JSON with ISO-8601 timestamps
"""

from .base import (
    ErrorCode, Error, Result, Timestamp,
    generate_event_id, generate_reflection_id, derive_event_id,
)
from .events import (
    ProgressionEvent, ProgressionEventType, ProgressionEventSubtype,
    TaskDepth, TaskRecord, TaskWrite, ReflectionRecord,
    TASK_STATUS_COMPLETED, encode_list, decode_list,
)
from .state import GrowthState, UserProfile, StateWriteResult
from .insight import WeeklyInsight

__all__ = [
    'ErrorCode',
    'Error',
    'Result',
    'Timestamp',
    'generate_event_id',
    'derive_event_id',
    'generate_reflection_id',
    'ProgressionEvent',
    'ProgressionEventType',
    'ProgressionEventSubtype',
    'TaskDepth',
    'TaskRecord',
    'TaskWrite',
    'ReflectionRecord',
    'TASK_STATUS_COMPLETED',
    'encode_list',
    'decode_list',
    'GrowthState',
    'UserProfile',
    'StateWriteResult',
    'WeeklyInsight',
]
