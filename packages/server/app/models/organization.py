"""Organization model."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Organization(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "organizations"

    name: str = Field(nullable=False, index=True)
    description: Optional[str] = None
    # Globally unique; the index is the final arbiter when two mints race.
    invite_code: str = Field(unique=True, nullable=False, index=True, max_length=8)
    # The owner is never also a Membership row.
    owner_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
