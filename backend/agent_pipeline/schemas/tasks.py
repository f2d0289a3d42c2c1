"""
Processing Tasks — Pydantic output schema of the task creation tier

Tasks are handed to an external executor as JSON
(`task.model_dump(mode="json")`). The executor owns timeouts, dependency
resolution and the status machine:

  pending → assigned → in_progress → completed | failed | cancelled

Inside this repository a task is immutable after creation except for
`status`, which changes only through ProcessingTask.set_status().
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class TaskType(str, Enum):
    EXTRACTION     = "extraction"
    TRANSFORMATION = "transformation"
    VALIDATION     = "validation"
    SYNTHESIS      = "synthesis"
    SUMMARIZATION  = "summarization"
    CLASSIFICATION = "classification"
    ANALYSIS       = "analysis"
    ENRICHMENT     = "enrichment"


class TaskStatus(str, Enum):
    PENDING     = "pending"
    ASSIGNED    = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED   = "completed"
    FAILED      = "failed"
    CANCELLED   = "cancelled"


class TaskSource(str, Enum):
    ANALYSIS       = "analysis"
    CLASSIFICATION = "classification"
    MANUAL         = "manual"
    SYSTEM         = "system"


MIN_PRIORITY = 1
MAX_PRIORITY = 5


def new_task_id() -> str:
    return f"task_{uuid.uuid4().hex[:12]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskParameters(BaseModel):
    input:             dict[str, Any]        = Field(default_factory=dict)
    expected_output:   dict[str, Any] | None = None
    options:           dict[str, Any]        = Field(default_factory=dict)
    quality_threshold: float                 = Field(..., ge=0.0, le=1.0)
    timeout_ms:        int                   = Field(..., gt=0)


class TaskMetadata(BaseModel):
    source:                TaskSource = TaskSource.ANALYSIS
    confidence:            float      = Field(..., ge=0.0, le=1.0)
    complexity:            float      = Field(..., ge=0.0, description="Relative ordering heuristic")
    estimated_duration_ms: int        = Field(..., ge=0)
    required_capabilities: list[str]  = Field(default_factory=list)
    tags:                  list[str]  = Field(default_factory=list)


class ProcessingTask(BaseModel):
    id:             str            = Field(default_factory=new_task_id)
    type:           TaskType
    priority:       int            = Field(..., ge=MIN_PRIORITY, le=MAX_PRIORITY)
    status:         TaskStatus     = TaskStatus.PENDING
    content_id:     str
    parameters:     TaskParameters
    dependencies:   list[str]      = Field(default_factory=list)
    assigned_agent: str | None     = None
    metadata:       TaskMetadata
    created_at:     datetime       = Field(default_factory=_utcnow)
    updated_at:     datetime       = Field(default_factory=_utcnow)

    def set_status(self, status: TaskStatus) -> None:
        """The only sanctioned mutation after creation."""
        self.status     = TaskStatus(status)
        self.updated_at = _utcnow()
