"""
Task service layer: business logic for tasks.

Handles:
- Task CRUD gated by the access policy
- Assignment, restricted to participants of the task's organization
- Status changes by owner, creator, or current assignee
- Filtered listing ordered by due date
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import InvalidInput, NotFound
from app.core.policy import Action
from app.models.base import utcnow
from app.models.organization import Organization
from app.models.task import Task
from app.services import memberships
from orgtasks_shared.schemas.common import ASSIGNED_TO_ME, ASSIGNED_TO_NOBODY, TaskStatus
from orgtasks_shared.schemas.tasks import TaskCreate, TaskFieldsPatch

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_task_or_404(session: AsyncSession, task_id: uuid.UUID) -> Task:
    task = await session.get(Task, task_id)
    if not task:
        raise NotFound("Task not found")
    return task


async def _task_and_org(
    session: AsyncSession, task_id: uuid.UUID
) -> tuple[Task, Organization]:
    task = await get_task_or_404(session, task_id)
    org = await memberships.get_org_or_404(task.org_id, session)
    return task, org


def _clean_title(title: Optional[str]) -> str:
    if title is None or not title.strip():
        raise InvalidInput("Task title is required")
    return title.strip()


def _clean_description(description: Optional[str]) -> Optional[str]:
    if description is None or not description.strip():
        return None
    return description.strip()


def parse_status(value: str) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in TaskStatus)
        raise InvalidInput(f"Invalid status '{value}'. Allowed: {allowed}")


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def create_task(
    session: AsyncSession,
    task_in: TaskCreate,
    org_id: uuid.UUID,
    actor_id: uuid.UUID,
) -> Task:
    title = _clean_title(task_in.title)
    org = await memberships.get_org_or_404(org_id, session)
    await memberships.authorize(Action.CREATE_TASK, actor_id, org, session)
    if task_in.assigned_to is not None:
        await memberships.ensure_assignable(task_in.assigned_to, org, session)

    task = Task(
        org_id=org.id,
        title=title,
        description=_clean_description(task_in.description),
        status=TaskStatus.PENDING.value,
        due_at=task_in.due_at,
        created_by=actor_id,
        assigned_to=task_in.assigned_to,
    )
    session.add(task)
    await session.flush()

    log.info("task.created", task_id=str(task.id), org_id=str(org.id), actor=str(actor_id))
    return task


async def list_tasks(
    session: AsyncSession,
    org_id: uuid.UUID,
    actor_id: uuid.UUID,
    *,
    status: Optional[str] = None,
    assigned_to: Optional[str] = None,
) -> list[Task]:
    """List an org's tasks, earliest due first.

    ``assigned_to`` is ``"me"``, ``"unassigned"``, or a user id.
    """
    org = await memberships.get_org_or_404(org_id, session)
    await memberships.authorize(Action.VIEW_ORG, actor_id, org, session)

    stmt = select(Task).where(Task.org_id == org.id)

    if status:
        stmt = stmt.where(Task.status == parse_status(status).value)

    if assigned_to == ASSIGNED_TO_ME:
        stmt = stmt.where(Task.assigned_to == actor_id)
    elif assigned_to == ASSIGNED_TO_NOBODY:
        stmt = stmt.where(Task.assigned_to.is_(None))
    elif assigned_to:
        try:
            assignee_id = uuid.UUID(assigned_to)
        except ValueError:
            raise InvalidInput(
                f"assigned_to must be '{ASSIGNED_TO_ME}', '{ASSIGNED_TO_NOBODY}' or a user id"
            )
        stmt = stmt.where(Task.assigned_to == assignee_id)

    stmt = stmt.order_by(Task.due_at.asc(), Task.created_at.asc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_task(
    session: AsyncSession, task_id: uuid.UUID, actor_id: uuid.UUID
) -> Task:
    task, org = await _task_and_org(session, task_id)
    await memberships.authorize(Action.VIEW_TASK, actor_id, org, session, task)
    return task


async def update_task_fields(
    session: AsyncSession,
    task_id: uuid.UUID,
    patch: TaskFieldsPatch,
    actor_id: uuid.UUID,
) -> Task:
    """Apply the fields present in ``patch``; an empty patch changes nothing."""
    task, org = await _task_and_org(session, task_id)
    await memberships.authorize(Action.MODIFY_TASK, actor_id, org, session, task)

    provided = patch.model_fields_set
    if not provided:
        return task

    if "title" in provided:
        task.title = _clean_title(patch.title)
    if "description" in provided:
        task.description = _clean_description(patch.description)
    if "due_at" in provided:
        if patch.due_at is None:
            raise InvalidInput("Task due date cannot be cleared")
        task.due_at = patch.due_at

    task.updated_at = utcnow()
    session.add(task)
    await session.flush()

    log.info("task.updated", task_id=str(task.id), fields=sorted(provided), actor=str(actor_id))
    return task


async def assign_task(
    session: AsyncSession,
    task_id: uuid.UUID,
    assigned_to: Optional[uuid.UUID],
    actor_id: uuid.UUID,
) -> Task:
    """Set or clear the assignee. ``None`` unassigns."""
    task, org = await _task_and_org(session, task_id)
    await memberships.authorize(Action.MODIFY_TASK, actor_id, org, session, task)
    if assigned_to is not None:
        await memberships.ensure_assignable(assigned_to, org, session)

    task.assigned_to = assigned_to
    task.updated_at = utcnow()
    session.add(task)
    await session.flush()

    log.info(
        "task.assigned",
        task_id=str(task.id),
        assigned_to=str(assigned_to) if assigned_to else None,
        actor=str(actor_id),
    )
    return task


async def set_task_status(
    session: AsyncSession,
    task_id: uuid.UUID,
    status: str,
    actor_id: uuid.UUID,
) -> Task:
    task, org = await _task_and_org(session, task_id)
    await memberships.authorize(Action.CHANGE_TASK_STATUS, actor_id, org, session, task)
    new_status = parse_status(status)

    old_status = task.status
    task.status = new_status.value
    task.updated_at = utcnow()
    session.add(task)
    await session.flush()

    log.info(
        "task.status_changed",
        task_id=str(task.id),
        from_status=old_status,
        to_status=new_status.value,
        actor=str(actor_id),
    )
    return task


async def delete_task(
    session: AsyncSession, task_id: uuid.UUID, actor_id: uuid.UUID
) -> None:
    task, org = await _task_and_org(session, task_id)
    await memberships.authorize(Action.MODIFY_TASK, actor_id, org, session, task)

    await session.delete(task)
    await session.flush()
    log.info("task.deleted", task_id=str(task_id), org_id=str(org.id), actor=str(actor_id))
