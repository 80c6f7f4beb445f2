"""
User service: registration, credential issuance, profile, and stats.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import (
    check_password_policy,
    create_credential,
    hash_password,
    verify_password,
)
from app.core.errors import Conflict, InvalidCredentials, InvalidInput, NotFound
from app.models.base import utcnow
from app.models.membership import Membership
from app.models.organization import Organization
from app.models.task import Task
from app.models.user import User
from orgtasks_shared.schemas.common import TaskStatus
from orgtasks_shared.schemas.tasks import TaskActivity
from orgtasks_shared.schemas.users import ProfilePatch, UserStats, UserStatsResponse

log = structlog.get_logger()

RECENT_ACTIVITY_LIMIT = 5


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def _get_by_email(email: str, session: AsyncSession) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def _insert_user(user: User, session: AsyncSession) -> None:
    """Insert a new user, turning a lost race on the email index into Conflict."""
    try:
        async with session.begin_nested():
            session.add(user)
    except IntegrityError:
        log.warning("user.email_conflict_on_flush")
        raise Conflict("Email already registered")


async def get_user(user_id: uuid.UUID, session: AsyncSession) -> User:
    user = await session.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


async def register(
    full_name: str,
    email: str,
    password: str,
    session: AsyncSession,
) -> User:
    """Create an account. Only a bcrypt hash of the password is stored."""
    if not full_name or not full_name.strip():
        raise InvalidInput("Full name is required")
    check_password_policy(password)

    email = normalize_email(email)
    if await _get_by_email(email, session):
        raise Conflict("Email already registered")

    user = User(
        full_name=full_name.strip(),
        email=email,
        password_hash=hash_password(password),
    )
    await _insert_user(user, session)

    log.info("user.registered", user_id=str(user.id))
    return user


async def authenticate(
    email: str, password: str, session: AsyncSession
) -> tuple[User, str, datetime]:
    """Check email/password and issue a credential.

    Returns (user, token, expires_at). Unknown email and wrong password
    fail identically.
    """
    user = await _get_by_email(normalize_email(email), session)
    if not user or not verify_password(password, user.password_hash):
        log.warning("auth.login_failure", reason="unknown_email" if not user else "bad_password")
        raise InvalidCredentials()

    token, expires_at = create_credential(user.id)
    log.info("auth.login_success", user_id=str(user.id))
    return user, token, expires_at


async def update_profile(
    user_id: uuid.UUID, patch: ProfilePatch, session: AsyncSession
) -> User:
    """Change the caller's name, email, and/or password."""
    user = await get_user(user_id, session)
    provided = patch.model_fields_set

    if "full_name" in provided:
        if patch.full_name is None or not patch.full_name.strip():
            raise InvalidInput("Full name cannot be empty")
        user.full_name = patch.full_name.strip()

    if "email" in provided:
        if patch.email is None:
            raise InvalidInput("Email cannot be empty")
        email = normalize_email(patch.email)
        if email != user.email:
            existing = await _get_by_email(email, session)
            if existing:
                raise Conflict("Email already in use")
            user.email = email

    if patch.new_password is not None:
        if not patch.current_password or not verify_password(patch.current_password, user.password_hash):
            raise InvalidInput("Current password is incorrect")
        check_password_policy(patch.new_password)
        user.password_hash = hash_password(patch.new_password)

    user.updated_at = utcnow()
    session.add(user)
    try:
        await session.flush()
    except IntegrityError:
        log.warning("user.email_conflict_on_flush", user_id=str(user_id))
        raise Conflict("Email already in use")

    log.info("user.updated", user_id=str(user_id), fields=sorted(provided - {"current_password", "new_password"}))
    return user


async def get_user_stats(user_id: uuid.UUID, session: AsyncSession) -> UserStatsResponse:
    """Organization count, assigned-task counts by status, and recent tasks."""
    owned = await session.execute(
        select(func.count()).select_from(Organization).where(Organization.owner_id == user_id)
    )
    joined = await session.execute(
        select(func.count()).select_from(Membership).where(Membership.user_id == user_id)
    )

    by_status = await session.execute(
        select(Task.status, func.count())
        .where(Task.assigned_to == user_id)
        .group_by(Task.status)
    )
    counts = {status: count for status, count in by_status.all()}

    recent = await session.execute(
        select(Task)
        .where(or_(Task.assigned_to == user_id, Task.created_by == user_id))
        .order_by(Task.created_at.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
    )

    return UserStatsResponse(
        stats=UserStats(
            total_organizations=owned.scalar_one() + joined.scalar_one(),
            total_tasks=sum(counts.values()),
            pending_tasks=counts.get(TaskStatus.PENDING.value, 0),
            in_progress_tasks=counts.get(TaskStatus.IN_PROGRESS.value, 0),
            completed_tasks=counts.get(TaskStatus.COMPLETED.value, 0),
        ),
        recent_activity=[TaskActivity.model_validate(t) for t in recent.scalars().all()],
    )
