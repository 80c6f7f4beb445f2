import uuid
from enum import Enum

from pydantic import BaseModel


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# Special values accepted by the task list ``assigned_to`` filter
ASSIGNED_TO_ME = "me"
ASSIGNED_TO_NOBODY = "unassigned"


class UserSummary(BaseModel):
    id: uuid.UUID
    full_name: str
    email: str

    model_config = {"from_attributes": True}
