# src/taskflow/sync/task_store.py

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Any

from ..core.errors import NotFoundError
from ..core.models import ActivityAction, Priority, Row, Task, TaskStatus, task_from_row
from ..core.ports import TASKS, RemoteStore, eq, is_null
from .activity import ActivityTracker
from .session import SessionManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Scope:
    """Personal tasks (group_id None) or the tasks of one group."""

    group_id: str | None = None

    @classmethod
    def personal(cls) -> Scope:
        return cls(None)

    @classmethod
    def for_group(cls, group_id: str) -> Scope:
        return cls(group_id)

    @property
    def is_personal(self) -> bool:
        return self.group_id is None


@dataclass(frozen=True, slots=True)
class TaskDraft:
    text: str
    priority: Priority = Priority.MEDIUM
    due_date: date | None = None
    status: TaskStatus = TaskStatus.PENDING
    assigned_to: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class TaskPatch:
    """
    Edits applied as one remote update. ``None`` means "leave as is";
    ``clear_due_date`` removes the due date.
    """

    text: str | None = None
    priority: Priority | None = None
    due_date: date | None = None
    clear_due_date: bool = False
    status: TaskStatus | None = None
    assigned_to: tuple[str, ...] | None = None

    def apply(self, task: Task) -> Task:
        status = self.status if self.status is not None else task.status
        return replace(
            task,
            text=self.text.strip() if self.text is not None else task.text,
            priority=self.priority if self.priority is not None else task.priority,
            due_date=None if self.clear_due_date else (self.due_date or task.due_date),
            status=status,
            completed=status is TaskStatus.COMPLETED,
            assigned_to=self.assigned_to if self.assigned_to is not None else task.assigned_to,
        )


def task_values(task: Task) -> Row:
    """Mutable columns of a task, serialized for the remote store."""
    return {
        "text": task.text,
        "completed": task.completed,
        "priority": task.priority.value,
        "due_date": task.due_date.isoformat() if task.due_date else None,
        "status": task.status.value,
        "assigned_to": list(task.assigned_to),
    }


class TaskStore:
    """
    Task cache for the active scope.

    Local state changes only after the remote store acknowledged the write;
    a raised RemoteError means the cache is exactly as it was before the call.
    """

    def __init__(self, remote: RemoteStore, session: SessionManager, activity: ActivityTracker) -> None:
        self._remote = remote
        self._session = session
        self._activity = activity
        self.tasks: list[Task] = []
        self.scope = Scope.personal()
        # Status a completion toggle replaced, restored when toggled back.
        self._reopen_status: dict[str, TaskStatus] = {}

    def clear(self) -> None:
        self.tasks = []
        self.scope = Scope.personal()
        self._reopen_status = {}

    def get(self, task_id: str) -> Task:
        for t in self.tasks:
            if t.id == task_id:
                return t
        raise NotFoundError(f"Task {task_id} is not loaded")

    def find(self, prefix: str) -> Task:
        """Resolve a full id or an unambiguous id prefix."""
        prefix = prefix.strip()
        hits = [t for t in self.tasks if t.id == prefix]
        if not hits and prefix:
            hits = [t for t in self.tasks if t.id.startswith(prefix)]
        if len(hits) != 1:
            raise NotFoundError(
                f"No task matches '{prefix}'" if not hits else f"'{prefix}' matches several tasks"
            )
        return hits[0]

    def _replace_local(self, updated: Task) -> None:
        self.tasks = [updated if t.id == updated.id else t for t in self.tasks]

    async def load_scope(self, scope: Scope) -> list[Task]:
        user_id = self._session.user_id
        if scope.is_personal:
            if not user_id:
                return self.tasks
            filters = (eq("user_id", user_id), is_null("group_id"))
        else:
            filters = (eq("group_id", scope.group_id),)

        rows = await self._remote.select(TASKS, *filters, order_by="created_at", descending=True)
        self.tasks = [task_from_row(r) for r in rows]
        self.scope = scope
        logger.debug("Loaded %d task(s) scope=%s", len(self.tasks), scope.group_id or "personal")
        return self.tasks

    async def create(self, draft: TaskDraft) -> Task | None:
        text = draft.text.strip()
        user_id = self._session.user_id
        if not text or not user_id:
            return None

        completed = draft.status is TaskStatus.COMPLETED
        rows = await self._remote.insert(
            TASKS,
            {
                "user_id": user_id,
                "text": text,
                "completed": completed,
                "priority": draft.priority.value,
                "due_date": draft.due_date.isoformat() if draft.due_date else None,
                "status": draft.status.value,
                "group_id": self.scope.group_id,
                "assigned_to": list(draft.assigned_to),
            },
        )
        task = task_from_row(rows[0])
        self.tasks = [task, *self.tasks]
        logger.info("Task created id=%s scope=%s", task.id, self.scope.group_id or "personal")

        if task.group_id:
            await self._activity.log_activity(
                task.group_id, task.id, ActivityAction.CREATED, {"text": task.text}
            )
        return task

    async def _write(self, before: Task, after: Task) -> Task:
        rows = await self._remote.update(TASKS, task_values(after), eq("id", before.id))
        # Prefer the server's copy when it sends one back.
        result = task_from_row(rows[0]) if rows else after
        self._replace_local(result)
        return result

    async def toggle_completion(self, task_id: str) -> Task:
        """
        Flip completion. Completing sets status "completed"; reopening sets
        the status the completion replaced (e.g. "in-progress"), or "pending"
        when nothing was recorded in this session.
        """
        task = self.get(task_id)
        completed = not task.completed
        if completed:
            status = TaskStatus.COMPLETED
        else:
            status = self._reopen_status.get(task.id, TaskStatus.PENDING)
        updated = await self._write(task, replace(task, completed=completed, status=status))

        if updated.completed:
            if task.status is not TaskStatus.COMPLETED:
                self._reopen_status[updated.id] = task.status
        else:
            self._reopen_status.pop(updated.id, None)

        if updated.completed and updated.group_id:
            await self._activity.log_activity(
                updated.group_id, updated.id, ActivityAction.COMPLETED, {"text": updated.text}
            )
            await self._activity.notify_members(
                updated.group_id,
                "task_completed",
                "Task completed",
                f'"{updated.text}" was marked as completed',
                {"task_id": updated.id},
            )
        return updated

    async def set_status(self, task_id: str, status: TaskStatus) -> Task:
        task = self.get(task_id)
        updated = await self._write(
            task, replace(task, status=status, completed=status is TaskStatus.COMPLETED)
        )
        self._reopen_status.pop(task.id, None)
        if updated.group_id:
            await self._activity.log_activity(
                updated.group_id,
                updated.id,
                ActivityAction.for_status(status),
                {"text": updated.text, "from": task.status.value, "to": status.value},
            )
        return updated

    async def update(self, task_id: str, patch: TaskPatch) -> Task | None:
        task = self.get(task_id)
        if patch.text is not None and not patch.text.strip():
            return None
        updated = await self._write(task, patch.apply(task))
        if patch.status is not None:
            self._reopen_status.pop(task.id, None)
        return updated

    async def remove(self, task_id: str) -> None:
        task = self.get(task_id)
        await self._remote.delete(TASKS, eq("id", task.id))
        self.tasks = [t for t in self.tasks if t.id != task.id]
        self._reopen_status.pop(task.id, None)
        logger.info("Task deleted id=%s", task.id)

        if task.group_id:
            details: dict[str, Any] = {"text": task.text}
            await self._activity.log_activity(task.group_id, task.id, ActivityAction.DELETED, details)
