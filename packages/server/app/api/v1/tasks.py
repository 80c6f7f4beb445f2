"""
Task endpoints: CRUD, assignment, status.

Org-scoped collection routes live under /orgs/{org_id}/tasks; single-task
routes under /tasks/{task_id}. Every route resolves the caller and passes
their id to the task service, which applies the access policy.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user_id
from app.core.database import get_session
from app.services import tasks as task_service
from orgtasks_shared.schemas.tasks import (
    TaskAssign,
    TaskCreate,
    TaskFieldsPatch,
    TaskListResponse,
    TaskRead,
    TaskStatusUpdate,
)

org_tasks_router = APIRouter()
router = APIRouter()


# ---------------------------------------------------------------------------
# Org-scoped collection
# ---------------------------------------------------------------------------


@org_tasks_router.get("", response_model=TaskListResponse)
async def list_tasks_endpoint(
    org_id: uuid.UUID,
    status: Optional[str] = None,
    assigned_to: Optional[str] = Query(
        None, description="'me', 'unassigned', or a user id"
    ),
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """List tasks in an org, earliest due date first."""
    tasks = await task_service.list_tasks(
        session, org_id, user_id, status=status, assigned_to=assigned_to
    )
    return TaskListResponse(data=[TaskRead.model_validate(t) for t in tasks])


@org_tasks_router.post("", response_model=TaskRead, status_code=201)
async def create_task_endpoint(
    org_id: uuid.UUID,
    task_in: TaskCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """Create a task. New tasks always start as pending."""
    task = await task_service.create_task(session, task_in, org_id, user_id)
    await session.commit()
    await session.refresh(task)
    return task


# ---------------------------------------------------------------------------
# Single task
# ---------------------------------------------------------------------------


@router.get("/{task_id}", response_model=TaskRead)
async def get_task_endpoint(
    task_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    return await task_service.get_task(session, task_id, user_id)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task_endpoint(
    task_id: uuid.UUID,
    patch: TaskFieldsPatch,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """Update title, description, or due date. Absent fields are left alone."""
    task = await task_service.update_task_fields(session, task_id, patch, user_id)
    await session.commit()
    await session.refresh(task)
    return task


@router.put("/{task_id}/assignee", response_model=TaskRead)
async def assign_task_endpoint(
    task_id: uuid.UUID,
    body: TaskAssign,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """Assign to a participant of the task's org, or unassign with null."""
    task = await task_service.assign_task(session, task_id, body.assigned_to, user_id)
    await session.commit()
    await session.refresh(task)
    return task


@router.put("/{task_id}/status", response_model=TaskRead)
async def set_status_endpoint(
    task_id: uuid.UUID,
    body: TaskStatusUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    task = await task_service.set_task_status(session, task_id, body.status, user_id)
    await session.commit()
    await session.refresh(task)
    return task


@router.delete("/{task_id}", status_code=204)
async def delete_task_endpoint(
    task_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    await task_service.delete_task(session, task_id, user_id)
    await session.commit()
    return Response(status_code=204)
