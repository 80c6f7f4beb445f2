"""
Organization and membership schemas shared between server and clients.

Covers: org create/update requests (explicit patch semantics), the
owner-aware organization view, join-by-code, and member listings.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .common import UserSummary


# Invite codes are a fixed contract: 8 characters drawn from A-Z and 0-9.
INVITE_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
INVITE_CODE_LENGTH = 8


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class OrgCreateRequest(BaseModel):
    name: str = Field(..., max_length=100, description="Organization display name")
    description: Optional[str] = Field(None, max_length=1000)


class OrganizationPatch(BaseModel):
    """Partial organization update.

    Fields left out of the payload are not touched. ``description: null``
    clears the description; ``name`` may be omitted but never nulled.
    """

    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    refresh_invite_code: bool = False


class JoinRequest(BaseModel):
    invite_code: str = Field(..., min_length=1, max_length=32)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class OrganizationView(BaseModel):
    """Organization as seen by a participant.

    ``invite_code`` is only ever set for the owner; routes serialize with
    ``exclude_unset`` so the key is absent for everyone else.
    """

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    owner_id: uuid.UUID
    is_owner: bool
    member_count: int = 0
    invite_code: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class OrgListItem(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    is_owner: bool

    model_config = {"from_attributes": True}


class OrgListResponse(BaseModel):
    data: list[OrgListItem]


class JoinResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None


class MemberView(BaseModel):
    user: UserSummary
    joined_at: datetime
    is_owner: bool


class MemberListResponse(BaseModel):
    data: list[MemberView]
