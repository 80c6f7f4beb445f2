"""
Membership endpoints.

GET    /api/v1/orgs/{org_id}/members            - List participants (owner first)
DELETE /api/v1/orgs/{org_id}/members/{user_id}  - Remove a member (owner only)
POST   /api/v1/orgs/{org_id}/leave              - Leave an org (members only)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user_id
from app.core.database import get_session
from app.services import memberships as membership_service
from orgtasks_shared.schemas.organizations import MemberListResponse

router = APIRouter()


@router.get("/members", response_model=MemberListResponse)
async def list_members(
    org_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    members = await membership_service.list_members(org_id, user_id, session)
    return MemberListResponse(data=members)


@router.delete("/members/{member_id}", status_code=204)
async def remove_member(
    org_id: uuid.UUID,
    member_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """Remove a member. Their tasks in this org become unassigned."""
    await membership_service.remove_member(org_id, member_id, user_id, session)
    await session.commit()
    return Response(status_code=204)


@router.post("/leave", status_code=204)
async def leave_org(
    org_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    await membership_service.leave_org(org_id, user_id, session)
    await session.commit()
    return Response(status_code=204)
