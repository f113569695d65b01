# src/taskflow/core/models.py

"""
Data model for the task sync module.

Every record coming from the remote store passes through one of the
``*_from_row`` functions below exactly once. Defaults are filled in there
(priority -> medium, status -> derived from the completion flag) so the rest of
the code never has to branch on a missing field.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any

Row = dict[str, Any]


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_db(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.MEDIUM


class TaskStatus(StrEnum):
    """
    Workflow status.

    Kept in lockstep with ``Task.completed``: COMPLETED <=> completed is True.
    """

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus | None:
        if not raw:
            return None
        value = str(raw).strip().lower().replace("_", "-")
        try:
            return cls(value)
        except ValueError:
            return None


class Role(StrEnum):
    ADMIN = "admin"
    MEMBER = "member"

    @classmethod
    def from_db(cls, raw: str | None) -> Role:
        try:
            return cls(str(raw or "").strip().lower())
        except ValueError:
            return cls.MEMBER


class ActivityAction(StrEnum):
    CREATED = "created"
    COMPLETED = "completed"
    DELETED = "deleted"
    COMMENTED = "commented"

    @staticmethod
    def for_status(status: TaskStatus) -> str:
        return f"status_{status.value}"


@dataclass(frozen=True, slots=True)
class Identity:
    id: str
    email: str | None = None


@dataclass(frozen=True, slots=True)
class Profile:
    id: str
    email: str | None
    full_name: str | None = None
    avatar_url: str | None = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or self.id


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    user_id: str
    text: str
    completed: bool = False
    priority: Priority = Priority.MEDIUM
    due_date: date | None = None
    status: TaskStatus = TaskStatus.PENDING
    group_id: str | None = None
    assigned_to: tuple[str, ...] = ()
    created_at: datetime | None = None

    @property
    def is_personal(self) -> bool:
        return self.group_id is None

    def is_overdue(self, today: date) -> bool:
        return self.due_date is not None and self.due_date < today and not self.completed


@dataclass(frozen=True, slots=True)
class Group:
    id: str
    name: str
    created_by: str
    description: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class Membership:
    group_id: str
    user_id: str
    role: Role = Role.MEMBER
    joined_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class Member:
    """A membership joined with the member's profile, for display."""

    membership: Membership
    profile: Profile | None = None

    @property
    def user_id(self) -> str:
        return self.membership.user_id

    @property
    def role(self) -> Role:
        return self.membership.role

    @property
    def display_name(self) -> str:
        return self.profile.display_name if self.profile else self.membership.user_id


@dataclass(frozen=True, slots=True)
class Comment:
    id: str
    task_id: str
    user_id: str
    content: str
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class ActivityRecord:
    id: str
    group_id: str
    task_id: str | None
    user_id: str
    action: str
    details: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class Notification:
    id: str
    user_id: str
    type: str
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    read: bool = False
    created_at: datetime | None = None


# ---- parsing helpers ----


def parse_timestamp(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw
    try:
        return datetime.fromisoformat(str(raw))
    except ValueError:
        return None


def parse_date(raw: Any) -> date | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    try:
        # Some backends return a full timestamp for date columns.
        return date.fromisoformat(str(raw)[:10])
    except ValueError:
        return None


def _dict_or_empty(raw: Any) -> dict[str, Any]:
    return dict(raw) if isinstance(raw, dict) else {}


def _str_or_none(raw: Any) -> str | None:
    return None if raw is None else str(raw)


# ---- ingestion boundary ----


def normalize_completion(status: TaskStatus | None, completed: Any) -> tuple[TaskStatus, bool]:
    """
    Reconcile status and completion flag.

    A present status wins; otherwise status is derived from the flag.
    """
    if status is None:
        done = bool(completed)
        return (TaskStatus.COMPLETED if done else TaskStatus.PENDING), done
    return status, status is TaskStatus.COMPLETED


def task_from_row(row: Row) -> Task:
    status, completed = normalize_completion(
        TaskStatus.from_db(row.get("status")), row.get("completed")
    )
    assigned = row.get("assigned_to") or ()
    return Task(
        id=str(row["id"]),
        user_id=str(row.get("user_id") or ""),
        text=str(row.get("text") or ""),
        completed=completed,
        priority=Priority.from_db(row.get("priority")),
        due_date=parse_date(row.get("due_date")),
        status=status,
        group_id=_str_or_none(row.get("group_id")),
        assigned_to=tuple(str(a) for a in assigned),
        created_at=parse_timestamp(row.get("created_at")),
    )


def group_from_row(row: Row) -> Group:
    return Group(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        created_by=str(row.get("created_by") or ""),
        description=row.get("description") or None,
        created_at=parse_timestamp(row.get("created_at")),
    )


def membership_from_row(row: Row) -> Membership:
    return Membership(
        group_id=str(row["group_id"]),
        user_id=str(row["user_id"]),
        role=Role.from_db(row.get("role")),
        joined_at=parse_timestamp(row.get("joined_at") or row.get("created_at")),
    )


def profile_from_row(row: Row) -> Profile:
    return Profile(
        id=str(row["id"]),
        email=row.get("email"),
        full_name=row.get("full_name") or None,
        avatar_url=row.get("avatar_url") or None,
    )


def comment_from_row(row: Row) -> Comment:
    return Comment(
        id=str(row["id"]),
        task_id=str(row["task_id"]),
        user_id=str(row.get("user_id") or ""),
        content=str(row.get("content") or ""),
        created_at=parse_timestamp(row.get("created_at")),
    )


def activity_from_row(row: Row) -> ActivityRecord:
    return ActivityRecord(
        id=str(row["id"]),
        group_id=str(row["group_id"]),
        task_id=_str_or_none(row.get("task_id")),
        user_id=str(row.get("user_id") or ""),
        action=str(row.get("action") or ""),
        details=_dict_or_empty(row.get("details")),
        created_at=parse_timestamp(row.get("created_at")),
    )


def notification_from_row(row: Row) -> Notification:
    return Notification(
        id=str(row["id"]),
        user_id=str(row.get("user_id") or ""),
        type=str(row.get("type") or ""),
        title=str(row.get("title") or ""),
        message=str(row.get("message") or ""),
        data=_dict_or_empty(row.get("data")),
        read=bool(row.get("read")),
        created_at=parse_timestamp(row.get("created_at")),
    )
