"""
API Mapper
==========

Request models for the trigger ingress and the translation between wire
DTOs (camelCase JSON) and engine contracts.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..contracts.base import Error, Timestamp
from ..contracts.events import TaskRecord, TaskWrite, ReflectionRecord
from ..interpreter import GrowthOutcome
from ..reconciliation import ReconciliationReport
from ..triggers import TriggerOutcome


# =============================================================================
# REQUEST MODELS
# =============================================================================

class TaskSnapshotModel(BaseModel):
    userId: Optional[str] = None
    status: str = ""
    estimatedDepth: Optional[str] = None
    completedAt: Optional[str] = None
    projectId: Optional[str] = None


class TaskWriteRequest(BaseModel):
    before: Optional[TaskSnapshotModel] = None
    after: Optional[TaskSnapshotModel] = None


class ReflectionModel(BaseModel):
    userId: Optional[str] = None
    text: str = ""
    createdAt: Optional[str] = None
    relatedTaskIds: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


class SubmitReflectionRequest(BaseModel):
    userId: str = Field(min_length=1)
    text: str = Field(min_length=1)
    relatedTaskIds: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    createdAt: Optional[str] = None


class WeeklyInsightRequest(BaseModel):
    userId: str = Field(min_length=1)
    fromUtc: str
    toUtc: str


# =============================================================================
# REQUEST -> CONTRACT
# =============================================================================

def map_task_snapshot(task_id: str, model: Optional[TaskSnapshotModel]) -> Optional[TaskRecord]:
    if model is None:
        return None
    return TaskRecord(
        task_id=task_id,
        user_id=model.userId,
        status=model.status,
        estimated_depth=model.estimatedDepth,
        completed_at=Timestamp.parse_optional(model.completedAt),
        project_id=model.projectId
    )


def map_task_write(task_id: str, request: TaskWriteRequest) -> TaskWrite:
    return TaskWrite(
        before=map_task_snapshot(task_id, request.before),
        after=map_task_snapshot(task_id, request.after)
    )


def map_reflection(reflection_id: str, model) -> ReflectionRecord:
    """Accepts either ReflectionModel or SubmitReflectionRequest."""
    return ReflectionRecord(
        reflection_id=reflection_id,
        user_id=model.userId,
        text=model.text,
        created_at=Timestamp.parse_optional(model.createdAt),
        related_task_ids=tuple(model.relatedTaskIds),
        tags=tuple(model.tags)
    )


# =============================================================================
# CONTRACT -> DTO
# =============================================================================

def map_error_to_dto(error: Optional[Error]) -> Optional[Dict[str, Any]]:
    if error is None:
        return None
    return {
        "code": error.code.name,
        "message": error.message,
        "context": dict(error.context),
    }


def map_growth_to_dto(growth: Optional[GrowthOutcome]) -> Optional[Dict[str, Any]]:
    if growth is None:
        return None
    return {
        "applied": growth.applied,
        "state": growth.after.to_dict() if growth.after else None,
        "error": map_error_to_dto(growth.error),
    }


def map_outcome_to_dto(outcome: TriggerOutcome) -> Dict[str, Any]:
    return {
        "fired": outcome.fired,
        "reason": outcome.reason,
        "event": outcome.event.to_dict() if outcome.event else None,
        "growth": map_growth_to_dto(outcome.growth),
        "error": map_error_to_dto(outcome.error),
    }


def map_report_to_dto(report: ReconciliationReport) -> Dict[str, Any]:
    return report.to_dict()
