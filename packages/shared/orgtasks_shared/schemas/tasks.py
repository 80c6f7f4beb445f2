"""Task-related Pydantic schemas for shared use across server and frontend codegen."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic import UUID4

from .common import TaskStatus


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

class TaskCreate(BaseModel):
    title: str = Field(..., max_length=200)
    description: Optional[str] = None
    due_at: datetime
    assigned_to: Optional[UUID4] = None


class TaskFieldsPatch(BaseModel):
    """Partial task update. Absent fields are left unchanged; only
    ``description`` may be explicitly nulled."""
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    due_at: Optional[datetime] = None


class TaskAssign(BaseModel):
    """Request body for PUT /tasks/{taskId}/assignee. ``null`` unassigns."""
    assigned_to: Optional[UUID4] = None


class TaskStatusUpdate(BaseModel):
    """Request body for PUT /tasks/{taskId}/status.

    Kept as a plain string so unknown values surface as InvalidInput from
    the task store rather than a schema error.
    """
    status: str


class TaskRead(BaseModel):
    id: UUID4
    org_id: UUID4
    title: str
    description: Optional[str] = None
    status: TaskStatus
    due_at: datetime
    created_by: UUID4
    assigned_to: Optional[UUID4] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TaskListResponse(BaseModel):
    data: List[TaskRead]


class TaskActivity(BaseModel):
    id: UUID4
    title: str
    status: TaskStatus
    created_at: datetime

    model_config = {"from_attributes": True}
