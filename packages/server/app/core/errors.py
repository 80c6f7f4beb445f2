"""
Error kinds raised by the core.

Every core operation fails with exactly one of these. The HTTP layer maps
them onto status codes via ``http_status``; nothing here carries store
details, which are logged where they are caught instead.
"""

from __future__ import annotations

from typing import Any, Optional


class OrgTasksError(Exception):
    """Base exception for all core failures."""

    code = "INTERNAL_ERROR"
    http_status = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, *, details: Optional[list[dict[str, Any]]] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_response(self) -> dict:
        """Convert to the REST error envelope."""
        body: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "status": self.http_status,
        }
        if self.details:
            body["details"] = self.details
        return {"error": body}


class InvalidInput(OrgTasksError):
    """A required field is missing or malformed."""
    code = "INVALID_INPUT"
    http_status = 400
    default_message = "Invalid input"


class Unauthenticated(OrgTasksError):
    """Credential missing, invalid, expired, or for a user that is gone."""
    code = "UNAUTHENTICATED"
    http_status = 401
    default_message = "Authentication required"


class InvalidCredentials(Unauthenticated):
    # One message for unknown email and wrong password alike.
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class Forbidden(OrgTasksError):
    code = "FORBIDDEN"
    http_status = 403
    default_message = "Not allowed to perform this action"


class NotFound(OrgTasksError):
    code = "NOT_FOUND"
    http_status = 404
    default_message = "Not found"


class Conflict(OrgTasksError):
    code = "CONFLICT"
    http_status = 409
    default_message = "Conflicts with an existing record"


class AlreadyMember(OrgTasksError):
    code = "ALREADY_MEMBER"
    http_status = 400
    default_message = "Already a participant of this organization"


class InvalidAssignee(OrgTasksError):
    code = "INVALID_ASSIGNEE"
    http_status = 400
    default_message = "Assigned user is not a participant of this organization"


class ResourceExhausted(OrgTasksError):
    code = "RESOURCE_EXHAUSTED"
    http_status = 503
    default_message = "Could not allocate a unique value, try again"


class InternalError(OrgTasksError):
    """Unrecognized store or runtime failure."""
