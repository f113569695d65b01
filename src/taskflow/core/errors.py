# src/taskflow/core/errors.py

"""
Error taxonomy.

Validation problems (empty text, no identity) are not errors: the operation
returns None without touching the remote store. Everything below is raised
and reaches the user as a short message via friendly_error_message().
"""

from __future__ import annotations

from typing import Any

UNIQUE_VIOLATION_CODE = "23505"


class TaskflowError(Exception):
    """Base class for every error the sync module raises on purpose."""


class RemoteError(TaskflowError):
    """A remote command failed. Local caches are left as they were."""

    def __init__(self, message: str, *, code: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status


class UniqueViolationError(RemoteError):
    """The remote store rejected a write because of a unique constraint."""


class IncompleteGroupError(RemoteError):
    """
    The group row was written but the creator's admin membership was not.

    No rollback happens; GroupManager.repair_membership() re-attempts the
    second write on request.
    """

    def __init__(self, group: Any, cause: RemoteError) -> None:
        super().__init__(
            f"Group '{getattr(group, 'name', '?')}' was created but the admin membership "
            f"could not be saved: {cause.message}",
            code=cause.code,
            status=cause.status,
        )
        self.group = group


class NotFoundError(TaskflowError):
    """The referenced record is not in the local cache."""


class MemberNotFoundError(NotFoundError):
    def __init__(self, email: str) -> None:
        super().__init__(f"No user found with email {email}")
        self.email = email


class AlreadyMemberError(TaskflowError):
    def __init__(self, email: str) -> None:
        super().__init__(f"{email} is already a member of this group")
        self.email = email


class AuthError(TaskflowError):
    """The auth collaborator rejected a request."""


def remote_error_from_payload(payload: Any, *, status: int | None = None) -> RemoteError:
    """Build the matching RemoteError subclass from a JSON error body."""
    if isinstance(payload, dict):
        code = payload.get("code")
        code = str(code) if code is not None else None
        message = str(
            payload.get("message")
            or payload.get("msg")
            or payload.get("error_description")
            or payload.get("error")
            or "Remote request failed"
        )
    else:
        code = None
        message = str(payload or "Remote request failed")

    if code == UNIQUE_VIOLATION_CODE:
        return UniqueViolationError(message, code=code, status=status)
    return RemoteError(message, code=code, status=status)


def friendly_error_message(err: Exception) -> str:
    if isinstance(err, IncompleteGroupError):
        group_id = getattr(err.group, "id", "?")
        return (
            f"{err.message} Run /group repair {group_id} to add yourself as admin."
        )
    if isinstance(err, (AlreadyMemberError, MemberNotFoundError, NotFoundError, AuthError)):
        return str(err)
    if isinstance(err, RemoteError):
        if err.status in (401, 403):
            return "Not allowed. Your session may have expired, sign in again."
        if err.status is None and err.code is None and "network" in err.message.lower():
            return "Network error. Check your connection and try again."
        return f"Request failed: {err.message}"
    msg = str(err).strip()
    return msg or "Unexpected error."
