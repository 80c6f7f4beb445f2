"""
Access policy: who may do what to which organization or task.

Decisions are pure functions of the actor's participation facts and the
task being acted on; loading those facts is the membership ledger's job.
Owner and creator rights are additive. Creator and assignee rights only
count while the actor is still a participant, so they lapse when the
user leaves or is removed from the organization.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.core.errors import Forbidden
from app.models.task import Task


class Action(str, Enum):
    VIEW_ORG = "view_org"
    MANAGE_ORG = "manage_org"  # update, delete, invite code, remove members
    CREATE_TASK = "create_task"
    VIEW_TASK = "view_task"
    MODIFY_TASK = "modify_task"  # update fields, assign, delete
    CHANGE_TASK_STATUS = "change_task_status"


DENIAL_MESSAGES: dict[Action, str] = {
    Action.VIEW_ORG: "Not a participant of this organization",
    Action.MANAGE_ORG: "Only the organization owner can perform this action",
    Action.CREATE_TASK: "Not a participant of this organization",
    Action.VIEW_TASK: "Not authorized to view this task",
    Action.MODIFY_TASK: "Only the organization owner or the task creator can modify this task",
    Action.CHANGE_TASK_STATUS: "Not authorized to update this task status",
}

TASK_ACTIONS = {Action.VIEW_TASK, Action.MODIFY_TASK, Action.CHANGE_TASK_STATUS}


@dataclass(frozen=True)
class Participation:
    """What the store says about one user's relation to one organization."""

    user_id: uuid.UUID
    org_id: uuid.UUID
    is_owner: bool
    is_member: bool

    @property
    def is_participant(self) -> bool:
        return self.is_owner or self.is_member


def permits(action: Action, actor: Participation, task: Optional[Task] = None) -> bool:
    """Decide whether ``actor`` may perform ``action``.

    Task actions need the task; its org must be the one the facts describe.
    """
    if action in TASK_ACTIONS:
        if task is None:
            raise ValueError(f"{action.value} requires a task")
        if task.org_id != actor.org_id:
            return False

    if action == Action.MANAGE_ORG:
        return actor.is_owner
    if action in (Action.VIEW_ORG, Action.CREATE_TASK, Action.VIEW_TASK):
        return actor.is_participant

    is_creator = actor.is_participant and task.created_by == actor.user_id
    if action == Action.MODIFY_TASK:
        return actor.is_owner or is_creator
    if action == Action.CHANGE_TASK_STATUS:
        is_assignee = actor.is_participant and task.assigned_to == actor.user_id
        return actor.is_owner or is_creator or is_assignee

    raise ValueError(f"Unknown action: {action!r}")


def require(action: Action, actor: Participation, task: Optional[Task] = None) -> None:
    """Raise Forbidden unless ``permits`` allows the action."""
    if not permits(action, actor, task):
        raise Forbidden(DENIAL_MESSAGES[action])
