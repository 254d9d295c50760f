"""
Progression Event Contracts

The ProgressionEvent is the primary shared language between the authoritative
engine and every downstream consumer (renderers, UI, analytics).

ARCHITECTURAL RULES:
====================
- Events are AUTHORITATIVE and engine-generated.
- Consumers must never infer, calculate, or alter progression.
- Once appended to the log an event is never mutated or removed.
- Metadata enriches context but is never re-scored downstream.

This module also carries the domain-action records (tasks, reflections) the
trigger handlers observe. Those records are owned by an external subsystem;
only the fields the engine reads are modelled.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple
from enum import Enum

from .base import Timestamp, generate_event_id


# =============================================================================
# EVENT CLASSIFICATION
# =============================================================================

class ProgressionEventType(Enum):
    """
    Broad classification of progression events.
    These are stable and should evolve VERY slowly.
    """
    UNKNOWN = "UNKNOWN"
    TASK_COMPLETED = "TASK_COMPLETED"
    REFLECTION_LOGGED = "REFLECTION_LOGGED"
    RETURN_AFTER_ABSENCE = "RETURN_AFTER_ABSENCE"
    SESSION_INTERPRETED = "SESSION_INTERPRETED"
    TIME_TICK = "TIME_TICK"

    @staticmethod
    def classify(raw: Optional[str]) -> 'ProgressionEventType':
        """Map a wire value to a known type; anything else is UNKNOWN."""
        if not raw:
            return ProgressionEventType.UNKNOWN
        try:
            return ProgressionEventType(raw)
        except ValueError:
            return ProgressionEventType.UNKNOWN


class ProgressionEventSubtype(Enum):
    """Optional finer-grained descriptor within a type."""
    # Task-related
    SMALL_TASK = "SMALL_TASK"
    MEDIUM_TASK = "MEDIUM_TASK"
    DEEP_TASK = "DEEP_TASK"

    # Reflection-related
    USER_REFLECTION = "USER_REFLECTION"
    REFLECTION_WITH_TASKS = "REFLECTION_WITH_TASKS"
    REFLECTION_ONLY = "REFLECTION_ONLY"

    # Return-related
    GENTLE_RETURN = "GENTLE_RETURN"
    LONG_ABSENCE_RETURN = "LONG_ABSENCE_RETURN"

    # Session tone
    CALM_SESSION = "CALM_SESSION"
    FOCUSED_SESSION = "FOCUSED_SESSION"
    HEAVY_SESSION = "HEAVY_SESSION"


class TaskDepth(Enum):
    """Estimated depth of a task, as recorded by the task subsystem."""
    SMALL = "small"
    MEDIUM = "medium"
    DEEP = "deep"

    @staticmethod
    def parse(raw: Optional[str]) -> 'TaskDepth':
        """Missing or unrecognised depth counts as SMALL."""
        if not raw:
            return TaskDepth.SMALL
        try:
            return TaskDepth(str(raw).lower())
        except ValueError:
            return TaskDepth.SMALL

    @property
    def subtype(self) -> ProgressionEventSubtype:
        return ProgressionEventSubtype(f"{self.value.upper()}_TASK")


def encode_list(values) -> str:
    """Metadata values are strings; lists travel comma-joined."""
    return ",".join(str(v) for v in (values or ()))


def decode_list(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return ()
    return tuple(part for part in raw.split(",") if part)


# =============================================================================
# PROGRESSION EVENT
# =============================================================================

@dataclass(frozen=True)
class ProgressionEvent:
    """
    Immutable record of an engine-recognised user action.

    event_type is kept as the raw wire string so that types introduced
    after this client was built survive a round trip; use `kind` for the
    classified enum.
    """
    event_id: str
    user_id: str
    event_type: str
    occurred_at: Timestamp
    subtype: Optional[str] = None
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
    summary: Optional[str] = None

    @staticmethod
    def create(
        user_id: str,
        event_type: ProgressionEventType,
        occurred_at: Timestamp,
        subtype: Optional[ProgressionEventSubtype] = None,
        metadata: Optional[Mapping[str, str]] = None,
        summary: Optional[str] = None,
        event_id: Optional[str] = None
    ) -> ProgressionEvent:
        """Factory used by trigger handlers; assigns a fresh event id unless given one."""
        return ProgressionEvent(
            event_id=event_id or generate_event_id(),
            user_id=user_id,
            event_type=event_type.value,
            occurred_at=occurred_at,
            subtype=subtype.value if subtype else None,
            metadata=tuple(sorted((str(k), str(v)) for k, v in (metadata or {}).items())),
            summary=summary
        )

    @property
    def kind(self) -> ProgressionEventType:
        return ProgressionEventType.classify(self.event_type)

    @property
    def metadata_dict(self) -> Dict[str, str]:
        return dict(self.metadata)

    def get_metadata(self, key: str) -> Optional[str]:
        for k, v in self.metadata:
            if k == key:
                return v
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation (camelCase, ISO timestamps)."""
        return {
            "eventId": self.event_id,
            "userId": self.user_id,
            "type": self.event_type,
            "subtype": self.subtype,
            "occurredAt": self.occurred_at.to_iso(),
            "metadata": self.metadata_dict,
            "summary": self.summary,
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> ProgressionEvent:
        """
        Parse the wire representation.

        Raises ValueError / KeyError on a payload that has no usable
        occurredAt; callers decide whether to skip or fail.
        """
        metadata = data.get("metadata") or {}
        return ProgressionEvent(
            event_id=str(data.get("eventId") or ""),
            user_id=str(data.get("userId") or ""),
            event_type=str(data.get("type") or ProgressionEventType.UNKNOWN.value),
            occurred_at=Timestamp.from_iso(data["occurredAt"]),
            subtype=data.get("subtype"),
            metadata=tuple(sorted(
                (str(k), "" if v is None else str(v)) for k, v in metadata.items()
            )),
            summary=data.get("summary")
        )


# =============================================================================
# DOMAIN-ACTION RECORDS (observed, never owned)
# =============================================================================

TASK_STATUS_COMPLETED = "completed"


@dataclass(frozen=True)
class TaskRecord:
    """Snapshot of a task record as delivered with a write notification."""
    task_id: str
    user_id: Optional[str]
    status: str
    estimated_depth: Optional[str] = None
    completed_at: Optional[Timestamp] = None
    project_id: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == TASK_STATUS_COMPLETED

    @staticmethod
    def from_dict(task_id: str, data: Mapping[str, Any]) -> TaskRecord:
        return TaskRecord(
            task_id=task_id,
            user_id=data.get("userId"),
            status=str(data.get("status") or ""),
            estimated_depth=data.get("estimatedDepth"),
            completed_at=Timestamp.parse_optional(data.get("completedAt")),
            project_id=data.get("projectId")
        )


@dataclass(frozen=True)
class TaskWrite:
    """Before/after pair for a single write to a task record."""
    before: Optional[TaskRecord]
    after: Optional[TaskRecord]


@dataclass(frozen=True)
class ReflectionRecord:
    """A newly created reflection."""
    reflection_id: str
    user_id: Optional[str]
    text: str = ""
    created_at: Optional[Timestamp] = None
    related_task_ids: Tuple[str, ...] = field(default_factory=tuple)
    tags: Tuple[str, ...] = field(default_factory=tuple)

    @staticmethod
    def from_dict(reflection_id: str, data: Mapping[str, Any]) -> ReflectionRecord:
        return ReflectionRecord(
            reflection_id=reflection_id,
            user_id=data.get("userId"),
            text=str(data.get("text") or ""),
            created_at=Timestamp.parse_optional(data.get("createdAt")),
            related_task_ids=tuple(data.get("relatedTaskIds") or ()),
            tags=tuple(data.get("tags") or ())
        )
