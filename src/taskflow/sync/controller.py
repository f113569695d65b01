# src/taskflow/sync/controller.py

"""
Application controller.

Wires the session to the stores and exposes one coroutine per user action.
Actions run inside _action(): the loading flag is set for the duration, a
TaskflowError becomes ``ui.error`` and loading is always cleared afterwards.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable
from datetime import date
from typing import Any, TypeVar

from ..core.errors import TaskflowError, friendly_error_message
from ..core.models import Identity, Profile, TaskStatus, profile_from_row
from ..core.ports import PROFILES, AuthProvider, RemoteStore, eq
from ..core.state import GroupDetailView, GroupListView, PersonalView, UiState
from .activity import ACTIVITY_LIMIT, NOTIFICATION_LIMIT, ActivityTracker, NotificationTracker
from .comments import CommentStore
from .groups import GroupManager
from .projector import TaskFilter, TaskView, project
from .session import SessionManager
from .task_store import Scope, TaskDraft, TaskPatch, TaskStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskflowApp:
    def __init__(
        self,
        remote: RemoteStore,
        auth: AuthProvider,
        *,
        activity_limit: int = ACTIVITY_LIMIT,
        notification_limit: int = NOTIFICATION_LIMIT,
    ) -> None:
        self.remote = remote
        self.auth = auth
        self.session = SessionManager(auth)
        self.activity = ActivityTracker(remote, self.session, feed_limit=activity_limit)
        self.notifications = NotificationTracker(remote, self.session, limit=notification_limit)
        self.tasks = TaskStore(remote, self.session, self.activity)
        self.groups = GroupManager(remote, self.session, self.tasks, self.activity, self.notifications)
        self.comments = CommentStore(remote, self.session, self.activity)
        self.profile: Profile | None = None
        self.ui = UiState()

        self.session.add_listener(self._on_identity_changed)

    async def start(self) -> None:
        await self.session.start()

    def stop(self) -> None:
        self.session.stop()

    # ---- session wiring ----

    def _clear_caches(self) -> None:
        self.tasks.clear()
        self.groups.clear()
        self.activity.clear()
        self.comments.clear()
        self.notifications.clear()
        self.profile = None

    async def _on_identity_changed(self, identity: Identity | None) -> None:
        self._clear_caches()
        self.ui.reset()
        if identity is None:
            return
        async with self._action():
            await self._load_profile(identity)
            await self.tasks.load_scope(Scope.personal())
            await self.groups.list_groups()
            await self.notifications.load()

    async def _load_profile(self, identity: Identity) -> None:
        rows = await self.remote.select(PROFILES, eq("id", identity.id), limit=1)
        self.profile = profile_from_row(rows[0]) if rows else Profile(id=identity.id, email=identity.email)

    @contextlib.asynccontextmanager
    async def _action(self) -> AsyncIterator[None]:
        self.ui.loading = True
        self.ui.error = None
        try:
            yield
        except TaskflowError as e:
            self.ui.error = friendly_error_message(e)
            logger.info("Action failed: %s", e)
        finally:
            self.ui.loading = False

    async def _run(self, coro: Awaitable[T]) -> T | None:
        result: T | None = None
        async with self._action():
            result = await coro
        return result

    # ---- auth ----

    async def sign_in(self, email: str, password: str) -> bool:
        return await self.session.sign_in(email, password)

    async def sign_up(self, email: str, password: str) -> bool:
        return await self.session.sign_up(email, password)

    def oauth_url(self, provider: str, redirect_to: str) -> str | None:
        return self.session.sign_in_with_provider(provider, redirect_to)

    async def complete_oauth(self, callback_url: str) -> bool:
        return await self.session.complete_oauth(callback_url)

    async def sign_out(self) -> None:
        await self.session.sign_out()

    # ---- views ----

    def _switch_to_personal(self) -> None:
        self.ui.view = PersonalView()
        self.ui.criteria = TaskFilter()

    async def show_personal(self) -> None:
        async with self._action():
            await self.tasks.load_scope(Scope.personal())
            self.groups.deselect()
            self._switch_to_personal()

    async def show_groups(self) -> None:
        self.ui.view = GroupListView()
        await self._run(self.groups.list_groups())

    async def open_group(self, group_ref: str) -> bool:
        async with self._action():
            group = self.groups.find(group_ref)
            await self.groups.select_group(group)
            self.ui.view = GroupDetailView(group.id)
            self.ui.criteria = TaskFilter()
            return True
        return False

    def view(self, today: date | None = None) -> TaskView:
        return project(self.tasks.tasks, self.ui.criteria, today)

    def set_criteria(self, criteria: TaskFilter) -> None:
        self.ui.criteria = criteria

    # ---- tasks ----

    async def add_task(self, draft: TaskDraft) -> Any:
        return await self._run(self.tasks.create(draft))

    async def toggle_task(self, task_ref: str) -> Any:
        async with self._action():
            task = self.tasks.find(task_ref)
            return await self.tasks.toggle_completion(task.id)
        return None

    async def set_task_status(self, task_ref: str, status: TaskStatus) -> Any:
        async with self._action():
            task = self.tasks.find(task_ref)
            return await self.tasks.set_status(task.id, status)
        return None

    async def edit_task(self, task_ref: str, patch: TaskPatch) -> Any:
        async with self._action():
            task = self.tasks.find(task_ref)
            self.ui.editing_task_id = task.id
            try:
                return await self.tasks.update(task.id, patch)
            finally:
                self.ui.editing_task_id = None
        return None

    async def delete_task(self, task_ref: str) -> bool:
        async with self._action():
            task = self.tasks.find(task_ref)
            await self.tasks.remove(task.id)
            return True
        return False

    # ---- groups ----

    async def create_group(self, name: str, description: str | None = None) -> Any:
        return await self._run(self.groups.create_group(name, description))

    async def repair_group(self, group_id: str) -> Any:
        return await self._run(self.groups.repair_membership(group_id))

    async def leave_group(self) -> bool:
        async with self._action():
            try:
                await self.groups.leave_group()
            finally:
                # Membership delete went through: the group view is gone even
                # if the personal reload failed.
                if isinstance(self.ui.view, GroupDetailView) and self.groups.selected is None:
                    self._switch_to_personal()
            return True
        return False

    async def add_member(self, email: str) -> Any:
        return await self._run(self.groups.add_member(email))

    async def remove_member(self, user_ref: str) -> bool:
        async with self._action():
            hits = [m for m in self.groups.members if m.user_id.startswith(user_ref.strip())]
            user_id = hits[0].user_id if len(hits) == 1 else user_ref.strip()
            await self.groups.remove_member(user_id)
            return True
        return False

    # ---- comments / notifications ----

    async def load_comments(self, task_ref: str) -> Any:
        async with self._action():
            task = self.tasks.find(task_ref)
            return await self.comments.load(task.id)
        return None

    async def add_comment(self, task_ref: str, content: str) -> Any:
        async with self._action():
            task = self.tasks.find(task_ref)
            return await self.comments.add(task, content)
        return None

    async def refresh_notifications(self) -> Any:
        return await self._run(self.notifications.load())

    async def mark_notification_read(self, notification_ref: str) -> bool:
        async with self._action():
            hits = [n for n in self.notifications.notifications if n.id.startswith(notification_ref.strip())]
            target = hits[0].id if len(hits) == 1 else notification_ref.strip()
            await self.notifications.mark_read(target)
            return True
        return False

    async def mark_all_notifications_read(self) -> bool:
        async with self._action():
            await self.notifications.mark_all_read()
            return True
        return False
