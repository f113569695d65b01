# src/taskflow/sync/activity.py

"""
Activity & notification tracking.

Activity records and notifications are side effects of group mutations. The
primary write has already succeeded when they run, so a failure here is logged
and swallowed instead of being reported as a failed task operation.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from ..core.errors import RemoteError
from ..core.models import ActivityRecord, Notification, activity_from_row, notification_from_row
from ..core.ports import ACTIVITY_LOGS, GROUP_MEMBERS, NOTIFICATIONS, RemoteStore, eq
from .session import SessionManager

logger = logging.getLogger(__name__)

ACTIVITY_LIMIT = 50
NOTIFICATION_LIMIT = 20


class ActivityTracker:
    def __init__(
        self,
        remote: RemoteStore,
        session: SessionManager,
        *,
        feed_limit: int = ACTIVITY_LIMIT,
    ) -> None:
        self._remote = remote
        self._session = session
        self.feed_limit = feed_limit
        self.feed: list[ActivityRecord] = []
        self.feed_group_id: str | None = None

    def clear(self) -> None:
        self.feed = []
        self.feed_group_id = None

    async def fetch_feed(self, group_id: str) -> list[ActivityRecord]:
        """Newest records of a group without touching the cached feed."""
        rows = await self._remote.select(
            ACTIVITY_LOGS,
            eq("group_id", group_id),
            order_by="created_at",
            descending=True,
            limit=self.feed_limit,
        )
        return [activity_from_row(r) for r in rows]

    def show_feed(self, group_id: str, records: list[ActivityRecord]) -> None:
        self.feed = list(records)
        self.feed_group_id = group_id

    async def load_feed(self, group_id: str) -> list[ActivityRecord]:
        self.show_feed(group_id, await self.fetch_feed(group_id))
        return self.feed

    async def log_activity(
        self,
        group_id: str,
        task_id: str | None,
        action: str,
        details: dict[str, Any] | None = None,
    ) -> ActivityRecord | None:
        actor = self._session.user_id
        if not actor:
            return None
        try:
            rows = await self._remote.insert(
                ACTIVITY_LOGS,
                {
                    "group_id": group_id,
                    "task_id": task_id,
                    "user_id": actor,
                    "action": action,
                    "details": dict(details or {}),
                },
            )
        except RemoteError:
            logger.warning(
                "log_activity failed group=%s task=%s action=%s", group_id, task_id, action, exc_info=True
            )
            return None
        if not rows:
            return None

        record = activity_from_row(rows[0])
        if self.feed_group_id == group_id:
            self.feed = [record, *self.feed][: self.feed_limit]
        logger.debug("Activity %s group=%s task=%s", action, group_id, task_id)
        return record

    async def notify_members(
        self,
        group_id: str,
        type: str,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> int:
        """
        One notification per group member except the acting user.

        Returns the number of notifications written (0 on no-op or failure).
        """
        actor = self._session.user_id
        try:
            members = await self._remote.select(GROUP_MEMBERS, eq("group_id", group_id))
            recipients = sorted({str(m["user_id"]) for m in members if str(m["user_id"]) != actor})
            if not recipients:
                return 0
            payload = dict(data or {})
            payload.setdefault("group_id", group_id)
            rows = [
                {
                    "user_id": uid,
                    "type": type,
                    "title": title,
                    "message": message,
                    "data": payload,
                    "read": False,
                }
                for uid in recipients
            ]
            await self._remote.insert(NOTIFICATIONS, rows)
        except RemoteError:
            logger.warning("notify_members failed group=%s type=%s", group_id, type, exc_info=True)
            return 0
        logger.debug("Notified %d member(s) group=%s type=%s", len(rows), group_id, type)
        return len(rows)


class NotificationTracker:
    """
    Notifications addressed to the signed-in user.

    The unread counter is adjusted locally after mark_read/mark_all_read and
    never re-counted remotely; only load() counts.
    """

    def __init__(
        self,
        remote: RemoteStore,
        session: SessionManager,
        *,
        limit: int = NOTIFICATION_LIMIT,
    ) -> None:
        self._remote = remote
        self._session = session
        self.limit = limit
        self.notifications: list[Notification] = []
        self.unread_count = 0

    def clear(self) -> None:
        self.notifications = []
        self.unread_count = 0

    async def load(self) -> list[Notification]:
        user_id = self._session.user_id
        if not user_id:
            self.clear()
            return []
        rows = await self._remote.select(
            NOTIFICATIONS,
            eq("user_id", user_id),
            order_by="created_at",
            descending=True,
            limit=self.limit,
        )
        unread = await self._remote.select(NOTIFICATIONS, eq("user_id", user_id), eq("read", False))
        self.notifications = [notification_from_row(r) for r in rows]
        self.unread_count = len(unread)
        return self.notifications

    async def notify(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> bool:
        """Write a single notification for another user. Failures are logged only."""
        try:
            await self._remote.insert(
                NOTIFICATIONS,
                {
                    "user_id": user_id,
                    "type": type,
                    "title": title,
                    "message": message,
                    "data": dict(data or {}),
                    "read": False,
                },
            )
        except RemoteError:
            logger.warning("notify failed user=%s type=%s", user_id, type, exc_info=True)
            return False
        return True

    async def mark_read(self, notification_id: str) -> None:
        user_id = self._session.user_id
        if not user_id:
            return
        await self._remote.update(
            NOTIFICATIONS,
            {"read": True},
            eq("id", notification_id),
            eq("user_id", user_id),
        )

        was_unread = True
        updated: list[Notification] = []
        for n in self.notifications:
            if n.id == notification_id:
                was_unread = not n.read
                n = replace(n, read=True)
            updated.append(n)
        self.notifications = updated
        if was_unread:
            self.unread_count = max(0, self.unread_count - 1)

    async def mark_all_read(self) -> None:
        user_id = self._session.user_id
        if not user_id:
            return
        await self._remote.update(
            NOTIFICATIONS,
            {"read": True},
            eq("user_id", user_id),
            eq("read", False),
        )
        self.notifications = [replace(n, read=True) for n in self.notifications]
        self.unread_count = 0
