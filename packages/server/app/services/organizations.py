"""
Organization service: registry of organizations, invite codes, and ownership.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import and_, delete, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.errors import InvalidInput, NotFound, ResourceExhausted
from app.core.invite_codes import generate_invite_code, is_well_formed, normalize_invite_code
from app.core.policy import Action
from app.models.base import utcnow
from app.models.membership import Membership
from app.models.organization import Organization
from app.models.task import Task
from app.services import memberships
from orgtasks_shared.schemas.organizations import OrganizationPatch, OrganizationView

log = structlog.get_logger()
settings = get_settings()


def _clean_name(name: Optional[str]) -> str:
    if name is None or not name.strip():
        raise InvalidInput("Organization name is required")
    return name.strip()


def _clean_description(description: Optional[str]) -> Optional[str]:
    """Blank descriptions are stored as NULL so "" and null mean the same."""
    if description is None or not description.strip():
        return None
    return description.strip()


# ---------------------------------------------------------------------------
# Invite codes
# ---------------------------------------------------------------------------


async def _invite_code_taken(code: str, session: AsyncSession) -> bool:
    result = await session.execute(
        select(Organization.id).where(Organization.invite_code == code)
    )
    return result.first() is not None


async def _save_with_fresh_invite_code(org: Organization, session: AsyncSession) -> str:
    """Assign a new unique invite code to ``org`` and flush it.

    Each candidate is checked against the codes already stored, then written
    under a SAVEPOINT; the unique index on ``invite_code`` decides any race
    with a concurrent transaction, and losing it just means drawing again.
    """
    # Read before the loop: a rolled-back savepoint expires ``org``.
    org_id = org.id
    previous_code = org.invite_code
    max_attempts = settings.invite_code_max_attempts

    for attempt in range(1, max_attempts + 1):
        code = generate_invite_code()
        if code == previous_code or await _invite_code_taken(code, session):
            log.debug("org.invite_code_collision", org_id=str(org_id), attempt=attempt)
            continue

        try:
            async with session.begin_nested():
                # Assigned inside the savepoint: begin_nested flushes pending
                # changes before it opens.
                org.invite_code = code
                session.add(org)
        except IntegrityError:
            if not await _invite_code_taken(code, session):
                raise
            log.warning("org.invite_code_race_lost", org_id=str(org_id), attempt=attempt)
            continue
        return code

    log.error("org.invite_code_exhausted", org_id=str(org_id), attempts=max_attempts)
    raise ResourceExhausted("Could not generate a unique invite code")


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


async def build_view(
    org: Organization, actor_id: uuid.UUID, session: AsyncSession
) -> OrganizationView:
    """Owner-aware view; the invite code is left unset for non-owners."""
    is_owner = org.owner_id == actor_id
    fields = {
        "id": org.id,
        "name": org.name,
        "description": org.description,
        "owner_id": org.owner_id,
        "is_owner": is_owner,
        "member_count": await memberships.member_count(org.id, session),
        "created_at": org.created_at,
        "updated_at": org.updated_at,
    }
    if is_owner:
        fields["invite_code"] = org.invite_code
    return OrganizationView(**fields)


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def list_user_orgs(
    user_id: uuid.UUID, session: AsyncSession
) -> list[dict]:
    """Organizations the user owns or belongs to, oldest first.

    Owners never hold a membership row, so each org matches at most once.
    """
    result = await session.execute(
        select(Organization)
        .outerjoin(
            Membership,
            and_(Membership.org_id == Organization.id, Membership.user_id == user_id),
        )
        .where(or_(Organization.owner_id == user_id, Membership.user_id == user_id))
        .order_by(Organization.created_at.asc(), Organization.id)
    )

    return [
        {
            "id": org.id,
            "name": org.name,
            "description": org.description,
            "is_owner": org.owner_id == user_id,
        }
        for org in result.scalars().all()
    ]


async def create_org(
    owner_id: uuid.UUID,
    name: Optional[str],
    description: Optional[str],
    session: AsyncSession,
) -> Organization:
    """Create an org owned by ``owner_id`` with a fresh invite code.

    The owner is recorded on the organization only, never as a member row.
    """
    org = Organization(
        name=_clean_name(name),
        description=_clean_description(description),
        owner_id=owner_id,
        invite_code="",
    )
    await _save_with_fresh_invite_code(org, session)
    await session.flush()

    log.info("org.created", org_id=str(org.id), owner=str(owner_id))
    return org


async def get_org(
    org_id: uuid.UUID, actor_id: uuid.UUID, session: AsyncSession
) -> OrganizationView:
    """Get an org for a participant; raises NotFound or Forbidden."""
    org = await memberships.get_org_or_404(org_id, session)
    await memberships.authorize(Action.VIEW_ORG, actor_id, org, session)
    return await build_view(org, actor_id, session)


async def update_org(
    org_id: uuid.UUID,
    patch: OrganizationPatch,
    actor_id: uuid.UUID,
    session: AsyncSession,
) -> Organization:
    """Apply the fields present in ``patch`` (owner only)."""
    org = await memberships.get_org_or_404(org_id, session)
    await memberships.authorize(Action.MANAGE_ORG, actor_id, org, session)

    provided = patch.model_fields_set
    if "name" in provided:
        org.name = _clean_name(patch.name)
    if "description" in provided:
        org.description = _clean_description(patch.description)

    if provided & {"name", "description"}:
        org.updated_at = utcnow()
        session.add(org)
        await session.flush()

    if patch.refresh_invite_code:
        await _save_with_fresh_invite_code(org, session)
        await session.flush()
        await session.refresh(org)
        log.info("org.invite_code_refreshed", org_id=str(org_id))

    log.info("org.updated", org_id=str(org_id), fields=sorted(provided))
    return org


async def delete_org(
    org_id: uuid.UUID, actor_id: uuid.UUID, session: AsyncSession
) -> None:
    """Delete an org with all its tasks and memberships (owner only)."""
    org = await memberships.get_org_or_404(org_id, session)
    await memberships.authorize(Action.MANAGE_ORG, actor_id, org, session)

    tasks = await session.execute(delete(Task).where(Task.org_id == org.id))
    members = await session.execute(delete(Membership).where(Membership.org_id == org.id))
    await session.delete(org)
    await session.flush()

    log.info(
        "org.deleted",
        org_id=str(org_id),
        tasks_deleted=tasks.rowcount,
        memberships_deleted=members.rowcount,
    )


async def join_org(
    invite_code: str, actor_id: uuid.UUID, session: AsyncSession
) -> Organization:
    """Join the org whose invite code matches."""
    code = normalize_invite_code(invite_code)
    org = None
    if is_well_formed(code):
        result = await session.execute(
            select(Organization).where(Organization.invite_code == code)
        )
        org = result.scalar_one_or_none()
    if not org:
        log.info("org.join_rejected", actor=str(actor_id))
        raise NotFound("Invalid invite code")

    await memberships.add_member(org, actor_id, session)
    return org
