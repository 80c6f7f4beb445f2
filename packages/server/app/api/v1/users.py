"""
User profile endpoints.

GET    /api/v1/users/me        - Current user's profile
PATCH  /api/v1/users/me        - Update name, email, or password
GET    /api/v1/users/me/stats  - Org/task counts and recent activity
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user_id
from app.core.database import get_session
from app.services import users as user_service
from orgtasks_shared.schemas.users import ProfilePatch, UserResponse, UserStatsResponse

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    return await user_service.get_user(user_id, session)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    body: ProfilePatch,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """Update the caller's profile. Changing the password needs the current one."""
    user = await user_service.update_profile(user_id, body, session)
    await session.commit()
    return user


@router.get("/me/stats", response_model=UserStatsResponse)
async def get_my_stats(
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    return await user_service.get_user_stats(user_id, session)
