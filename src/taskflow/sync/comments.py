# src/taskflow/sync/comments.py

from __future__ import annotations

import logging

from ..core.models import ActivityAction, Comment, Task, comment_from_row
from ..core.ports import COMMENTS, RemoteStore, eq
from .activity import ActivityTracker
from .session import SessionManager

logger = logging.getLogger(__name__)


class CommentStore:
    """Comments of one task at a time, oldest first."""

    def __init__(self, remote: RemoteStore, session: SessionManager, activity: ActivityTracker) -> None:
        self._remote = remote
        self._session = session
        self._activity = activity
        self.task_id: str | None = None
        self.comments: list[Comment] = []

    def clear(self) -> None:
        self.task_id = None
        self.comments = []

    async def load(self, task_id: str) -> list[Comment]:
        rows = await self._remote.select(COMMENTS, eq("task_id", task_id), order_by="created_at")
        self.comments = [comment_from_row(r) for r in rows]
        self.task_id = task_id
        return self.comments

    async def add(self, task: Task, content: str) -> Comment | None:
        content = content.strip()
        user_id = self._session.user_id
        if not content or not user_id:
            return None

        rows = await self._remote.insert(
            COMMENTS, {"task_id": task.id, "user_id": user_id, "content": content}
        )
        comment = comment_from_row(rows[0])
        if self.task_id == task.id:
            self.comments = [*self.comments, comment]
        logger.debug("Comment added task=%s", task.id)

        if task.group_id:
            await self._activity.log_activity(
                task.group_id, task.id, ActivityAction.COMMENTED, {"text": task.text, "comment": content}
            )
            await self._activity.notify_members(
                task.group_id,
                "task_comment",
                "New comment",
                f'New comment on "{task.text}"',
                {"task_id": task.id, "comment_id": comment.id},
            )
        return comment
