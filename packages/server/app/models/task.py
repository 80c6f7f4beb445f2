"""Task model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Task(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tasks"
    __table_args__ = (
        sa.CheckConstraint(
            "status IN ('pending', 'in_progress', 'completed')",
            name="ck_tasks_status",
        ),
    )

    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    title: str = Field(nullable=False)
    description: Optional[str] = None
    status: str = Field(nullable=False, default="pending")
    due_at: datetime = Field(nullable=False, index=True, sa_type=sa.DateTime(timezone=True))
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    # Cleared when the assignee leaves or is removed from the org.
    assigned_to: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", index=True)
