"""User, authentication, and profile schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, UUID4

from .tasks import TaskActivity


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    full_name: str = Field(max_length=200)
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfilePatch(BaseModel):
    """Update the caller's own profile. A new password needs the current one."""
    full_name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[EmailStr] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class UserResponse(BaseModel):
    id: UUID4
    full_name: str
    email: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Returned by register and login. ``token`` is the bearer credential."""
    user: UserResponse
    token: str
    expires_at: datetime


class UserStats(BaseModel):
    total_organizations: int
    total_tasks: int
    pending_tasks: int
    in_progress_tasks: int
    completed_tasks: int


class UserStatsResponse(BaseModel):
    stats: UserStats
    recent_activity: List[TaskActivity]
