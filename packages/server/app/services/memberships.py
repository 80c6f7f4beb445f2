"""
Membership ledger: the single source of truth for who participates in
which organization.

A participant is the organization's owner or a user with a membership row.
The owner is never stored as a membership row. Removing a member (or a
member leaving) also clears them as assignee on the organization's tasks,
in the same transaction.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import AlreadyMember, InvalidAssignee, InvalidInput, NotFound
from app.core.policy import Action, Participation, require
from app.models.base import utcnow
from app.models.membership import Membership
from app.models.organization import Organization
from app.models.task import Task
from app.models.user import User
from orgtasks_shared.schemas.common import UserSummary
from orgtasks_shared.schemas.organizations import MemberView

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Facts
# ---------------------------------------------------------------------------


async def get_org_or_404(org_id: uuid.UUID, session: AsyncSession) -> Organization:
    org = await session.get(Organization, org_id)
    if not org:
        raise NotFound("Organization not found")
    return org


async def _get_membership(
    user_id: uuid.UUID,
    org_id: uuid.UUID,
    session: AsyncSession,
    *,
    for_update: bool = False,
) -> Optional[Membership]:
    stmt = select(Membership).where(
        Membership.user_id == user_id, Membership.org_id == org_id
    )
    if for_update:
        # Assignment and removal both lock the row, so a removal cannot slip
        # between an assignee check and the assignment it guards.
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def load_participation(
    user_id: uuid.UUID, org: Organization, session: AsyncSession
) -> Participation:
    is_owner = org.owner_id == user_id
    # Owners have no row, so skip the lookup.
    is_member = False if is_owner else await _get_membership(user_id, org.id, session) is not None
    return Participation(user_id=user_id, org_id=org.id, is_owner=is_owner, is_member=is_member)


async def is_participant(
    user_id: uuid.UUID, org: Organization, session: AsyncSession
) -> bool:
    """True iff the user owns the organization or holds a membership row for it."""
    participation = await load_participation(user_id, org, session)
    return participation.is_participant


async def authorize(
    action: Action,
    actor_id: uuid.UUID,
    org: Organization,
    session: AsyncSession,
    task: Optional[Task] = None,
) -> Participation:
    """Load the actor's facts for ``org`` and enforce the access policy."""
    participation = await load_participation(actor_id, org, session)
    require(action, participation, task)
    return participation


async def ensure_assignable(
    user_id: uuid.UUID, org: Organization, session: AsyncSession
) -> None:
    """Tasks may only be assigned to participants of their organization.

    The membership row stays locked until the caller commits.
    """
    if org.owner_id == user_id:
        return
    if not await _get_membership(user_id, org.id, session, for_update=True):
        raise InvalidAssignee()


async def member_count(org_id: uuid.UUID, session: AsyncSession) -> int:
    """Number of participants, owner included."""
    result = await session.execute(
        select(func.count()).select_from(Membership).where(Membership.org_id == org_id)
    )
    return result.scalar_one() + 1


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def add_member(
    org: Organization, user_id: uuid.UUID, session: AsyncSession
) -> Membership:
    """Record a new non-owner participant."""
    if org.owner_id == user_id:
        raise AlreadyMember("You are already the owner of this organization")
    if await _get_membership(user_id, org.id, session):
        raise AlreadyMember("You are already a member of this organization")

    org_id = org.id
    membership = Membership(user_id=user_id, org_id=org_id, joined_at=utcnow())
    try:
        async with session.begin_nested():
            session.add(membership)
    except IntegrityError:
        # A concurrent join by the same user won the primary key.
        log.warning("membership.join_conflict", org_id=str(org_id), user_id=str(user_id))
        raise AlreadyMember("You are already a member of this organization")

    log.info("membership.joined", org_id=str(org_id), user_id=str(user_id))
    return membership


async def _detach(
    org: Organization, membership: Membership, session: AsyncSession
) -> int:
    """Delete a membership row and unassign the user's tasks in that org.

    Returns the number of tasks that lost their assignee.
    """
    await session.delete(membership)
    result = await session.execute(
        update(Task)
        .where(Task.org_id == org.id, Task.assigned_to == membership.user_id)
        .values(assigned_to=None, updated_at=utcnow())
    )
    await session.flush()
    return result.rowcount or 0


async def remove_member(
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    actor_id: uuid.UUID,
    session: AsyncSession,
) -> None:
    """Owner removes a member. The owner has no row, so cannot be removed here."""
    org = await get_org_or_404(org_id, session)
    await authorize(Action.MANAGE_ORG, actor_id, org, session)

    membership = await _get_membership(user_id, org.id, session, for_update=True)
    if not membership:
        raise NotFound("Member not found in this organization")

    unassigned = await _detach(org, membership, session)
    log.info(
        "membership.removed",
        org_id=str(org.id),
        user_id=str(user_id),
        removed_by=str(actor_id),
        tasks_unassigned=unassigned,
    )


async def leave_org(
    org_id: uuid.UUID, actor_id: uuid.UUID, session: AsyncSession
) -> None:
    """A member leaves an organization of their own accord."""
    org = await get_org_or_404(org_id, session)
    if org.owner_id == actor_id:
        raise InvalidInput("The owner cannot leave; delete the organization instead")

    membership = await _get_membership(actor_id, org.id, session, for_update=True)
    if not membership:
        raise NotFound("Not a member of this organization")

    unassigned = await _detach(org, membership, session)
    log.info(
        "membership.left",
        org_id=str(org.id),
        user_id=str(actor_id),
        tasks_unassigned=unassigned,
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def list_members(
    org_id: uuid.UUID, actor_id: uuid.UUID, session: AsyncSession
) -> list[MemberView]:
    """Owner first, then members in the order they joined."""
    org = await get_org_or_404(org_id, session)
    await authorize(Action.VIEW_ORG, actor_id, org, session)

    owner = await session.get(User, org.owner_id)
    result = await session.execute(
        select(User, Membership)
        .join(Membership, Membership.user_id == User.id)
        .where(Membership.org_id == org.id)
        .order_by(Membership.joined_at.asc(), Membership.user_id)
    )
    rows = result.all()

    members = [
        MemberView(
            user=UserSummary.model_validate(owner),
            joined_at=org.created_at,
            is_owner=True,
        )
    ]
    members.extend(
        MemberView(
            user=UserSummary.model_validate(user),
            joined_at=membership.joined_at,
            is_owner=False,
        )
        for user, membership in rows
    )
    return members
