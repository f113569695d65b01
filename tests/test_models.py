# tests/test_models.py

from __future__ import annotations

from datetime import date

from taskflow.core.errors import (
    AlreadyMemberError,
    RemoteError,
    UniqueViolationError,
    friendly_error_message,
    remote_error_from_payload,
)
from taskflow.core.models import Priority, Role, TaskStatus, notification_from_row, task_from_row


def test_task_row_defaults_are_normalized() -> None:
    t = task_from_row({"id": 7, "user_id": "u1", "text": "legacy"})
    assert t.id == "7"
    assert t.priority is Priority.MEDIUM
    assert t.status is TaskStatus.PENDING
    assert t.completed is False
    assert t.group_id is None and t.is_personal
    assert t.assigned_to == ()


def test_completed_flag_without_status_derives_status() -> None:
    t = task_from_row({"id": "a", "text": "x", "completed": True})
    assert t.status is TaskStatus.COMPLETED and t.completed


def test_status_wins_over_flag() -> None:
    t = task_from_row({"id": "a", "text": "x", "completed": False, "status": "completed"})
    assert t.completed is True

    t2 = task_from_row({"id": "b", "text": "x", "completed": True, "status": "in_progress"})
    assert t2.status is TaskStatus.IN_PROGRESS
    assert t2.completed is False


def test_unknown_values_fall_back() -> None:
    t = task_from_row({"id": "a", "text": "x", "priority": "urgent", "status": "blocked"})
    assert t.priority is Priority.MEDIUM
    assert t.status is TaskStatus.PENDING
    assert Role.from_db("owner") is Role.MEMBER


def test_dates_and_timestamps() -> None:
    t = task_from_row(
        {
            "id": "a",
            "text": "x",
            "due_date": "2026-11-02T00:00:00+00:00",
            "created_at": "2026-10-19T08:30:00.123456+00:00",
            "group_id": "g1",
            "assigned_to": ["u2", "u3"],
        }
    )
    assert t.due_date == date(2026, 11, 2)
    assert t.created_at is not None and t.created_at.year == 2026
    assert t.group_id == "g1"
    assert t.assigned_to == ("u2", "u3")


def test_notification_row() -> None:
    n = notification_from_row({"id": "n1", "user_id": "u1", "type": "group_invite", "data": None})
    assert n.read is False
    assert n.data == {}


def test_remote_error_mapping() -> None:
    err = remote_error_from_payload({"code": "23505", "message": "duplicate key"}, status=409)
    assert isinstance(err, UniqueViolationError)
    assert err.status == 409

    other = remote_error_from_payload({"code": "42501", "message": "permission denied"}, status=403)
    assert type(other) is RemoteError
    assert "Not allowed" in friendly_error_message(other)


def test_friendly_messages() -> None:
    assert "already a member" in friendly_error_message(AlreadyMemberError("bob@example.com"))
    assert friendly_error_message(RemoteError("boom", status=500)) == "Request failed: boom"
