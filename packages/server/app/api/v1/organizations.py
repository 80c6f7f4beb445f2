"""
Organization API endpoints.

GET    /api/v1/orgs           - List orgs the caller owns or belongs to
POST   /api/v1/orgs           - Create a new org (caller becomes owner)
POST   /api/v1/orgs/join      - Join an org by invite code
GET    /api/v1/orgs/{org_id}  - Get org details (participants)
PATCH  /api/v1/orgs/{org_id}  - Update name/description, refresh invite code (owner)
DELETE /api/v1/orgs/{org_id}  - Delete org with its tasks and memberships (owner)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user_id
from app.core.database import get_session
from app.services import organizations as org_service
from orgtasks_shared.schemas.organizations import (
    JoinRequest,
    JoinResponse,
    OrgCreateRequest,
    OrganizationPatch,
    OrganizationView,
    OrgListResponse,
)

router = APIRouter()


@router.get("", response_model=OrgListResponse)
async def list_orgs(
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """List orgs the authenticated user owns or has joined."""
    items = await org_service.list_user_orgs(user_id, session)
    return OrgListResponse(data=items)


@router.post(
    "",
    response_model=OrganizationView,
    response_model_exclude_unset=True,
    status_code=201,
)
async def create_org(
    body: OrgCreateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """Create a new organization. The creator becomes its owner."""
    org = await org_service.create_org(user_id, body.name, body.description, session)
    await session.commit()
    return await org_service.build_view(org, user_id, session)


@router.post("/join", response_model=JoinResponse)
async def join_org(
    body: JoinRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """Join an organization using its invite code."""
    org = await org_service.join_org(body.invite_code, user_id, session)
    await session.commit()
    return JoinResponse(id=org.id, name=org.name, description=org.description)


@router.get(
    "/{org_id}",
    response_model=OrganizationView,
    response_model_exclude_unset=True,
)
async def get_org(
    org_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """Get org details. The invite code is only shown to the owner."""
    return await org_service.get_org(org_id, user_id, session)


@router.patch(
    "/{org_id}",
    response_model=OrganizationView,
    response_model_exclude_unset=True,
)
async def update_org(
    org_id: uuid.UUID,
    body: OrganizationPatch,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """Update org name/description or mint a new invite code (owner only)."""
    org = await org_service.update_org(org_id, body, user_id, session)
    await session.commit()
    return await org_service.build_view(org, user_id, session)


@router.delete("/{org_id}", status_code=204)
async def delete_org(
    org_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """Delete the org, its tasks, and its memberships (owner only)."""
    await org_service.delete_org(org_id, user_id, session)
    await session.commit()
    return Response(status_code=204)
