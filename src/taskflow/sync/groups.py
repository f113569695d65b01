# src/taskflow/sync/groups.py

from __future__ import annotations

import logging

from ..core.errors import (
    AlreadyMemberError,
    IncompleteGroupError,
    MemberNotFoundError,
    NotFoundError,
    RemoteError,
    UniqueViolationError,
)
from ..core.models import (
    Group,
    Member,
    Membership,
    Role,
    group_from_row,
    membership_from_row,
    profile_from_row,
)
from ..core.ports import GROUP_MEMBERS, GROUPS, PROFILES, RemoteStore, eq, escape_like, ilike, in_
from .activity import ActivityTracker, NotificationTracker
from .session import SessionManager
from .task_store import Scope, TaskStore

logger = logging.getLogger(__name__)


class GroupManager:
    """
    Groups of the signed-in user, the selected group and its members.

    Membership rules are thin: any member may add or remove any
    other member, admins included.
    """

    def __init__(
        self,
        remote: RemoteStore,
        session: SessionManager,
        tasks: TaskStore,
        activity: ActivityTracker,
        notifications: NotificationTracker,
    ) -> None:
        self._remote = remote
        self._session = session
        self._tasks = tasks
        self._activity = activity
        self._notifications = notifications
        self.groups: list[Group] = []
        self.selected: Group | None = None
        self.members: list[Member] = []

    def clear(self) -> None:
        self.groups = []
        self.selected = None
        self.members = []

    def get(self, group_id: str) -> Group:
        for g in self.groups:
            if g.id == group_id:
                return g
        raise NotFoundError(f"Group {group_id} is not loaded")

    def find(self, prefix: str) -> Group:
        prefix = prefix.strip()
        hits = [g for g in self.groups if g.id == prefix]
        if not hits and prefix:
            hits = [g for g in self.groups if g.id.startswith(prefix)]
        if len(hits) != 1:
            raise NotFoundError(
                f"No group matches '{prefix}'" if not hits else f"'{prefix}' matches several groups"
            )
        return hits[0]

    def _require_selected(self) -> Group:
        if self.selected is None:
            raise NotFoundError("No group selected")
        return self.selected

    async def list_groups(self) -> list[Group]:
        user_id = self._session.user_id
        if not user_id:
            self.groups = []
            return self.groups

        own = await self._remote.select(GROUP_MEMBERS, eq("user_id", user_id))
        group_ids = sorted({str(m["group_id"]) for m in own})
        if not group_ids:
            self.groups = []
            return self.groups

        rows = await self._remote.select(
            GROUPS, in_("id", group_ids), order_by="created_at", descending=True
        )
        self.groups = [group_from_row(r) for r in rows]
        return self.groups

    async def create_group(self, name: str, description: str | None = None) -> Group | None:
        name = name.strip()
        user_id = self._session.user_id
        if not name or not user_id:
            return None

        rows = await self._remote.insert(
            GROUPS,
            {
                "name": name,
                "description": (description or "").strip() or None,
                "created_by": user_id,
            },
        )
        group = group_from_row(rows[0])

        try:
            await self._add_admin(group.id, user_id)
        except RemoteError as e:
            logger.warning("Group %s created without admin membership: %s", group.id, e)
            raise IncompleteGroupError(group, e) from e

        self.groups = [group, *self.groups]
        logger.info("Group created id=%s name=%s", group.id, group.name)
        return group

    async def _add_admin(self, group_id: str, user_id: str) -> None:
        await self._remote.insert(
            GROUP_MEMBERS,
            {"group_id": group_id, "user_id": user_id, "role": Role.ADMIN.value},
        )

    async def repair_membership(self, group_id: str) -> Group:
        """
        Second half of create_group, run again on request.

        Used after IncompleteGroupError; an existing membership counts as repaired.
        """
        user_id = self._session.user_id
        if not user_id:
            raise NotFoundError("Not signed in")
        rows = await self._remote.select(GROUPS, eq("id", group_id))
        if not rows:
            raise NotFoundError(f"Group {group_id} does not exist")
        group = group_from_row(rows[0])

        try:
            await self._add_admin(group.id, user_id)
        except UniqueViolationError:
            logger.info("Membership for group %s already present", group.id)

        if all(g.id != group.id for g in self.groups):
            self.groups = [group, *self.groups]
        return group

    async def select_group(self, group: Group) -> None:
        """
        Open a group: members, tasks and activity feed.

        Everything is fetched before anything is switched; the task scope is
        loaded last since load_scope commits on success. A failed load leaves
        the previous selection, scope and feed in place.
        """
        members = await self._fetch_members(group.id)
        feed = await self._activity.fetch_feed(group.id)
        await self._tasks.load_scope(Scope.for_group(group.id))

        self.selected = group
        self.members = members
        self._activity.show_feed(group.id, feed)

    def deselect(self) -> None:
        self.selected = None
        self.members = []
        self._activity.clear()

    async def _fetch_members(self, group_id: str) -> list[Member]:
        rows = await self._remote.select(GROUP_MEMBERS, eq("group_id", group_id))
        memberships = [membership_from_row(r) for r in rows]

        profiles = {}
        if memberships:
            prow = await self._remote.select(PROFILES, in_("id", [m.user_id for m in memberships]))
            profiles = {p.id: p for p in (profile_from_row(r) for r in prow)}

        return [Member(m, profiles.get(m.user_id)) for m in memberships]

    async def load_members(self) -> list[Member]:
        group = self._require_selected()
        self.members = await self._fetch_members(group.id)
        return self.members

    async def leave_group(self) -> None:
        group = self._require_selected()
        user_id = self._session.user_id
        if not user_id:
            return
        await self._remote.delete(GROUP_MEMBERS, eq("group_id", group.id), eq("user_id", user_id))
        logger.info("Left group id=%s", group.id)

        self.groups = [g for g in self.groups if g.id != group.id]
        self.deselect()
        # The group is gone for this user: switch scope before reloading.
        self._tasks.clear()
        await self._tasks.load_scope(Scope.personal())

    async def add_member(self, email: str) -> Membership | None:
        group = self._require_selected()
        email = email.strip()
        if not email:
            return None

        found = await self._remote.select(PROFILES, ilike("email", escape_like(email)), limit=1)
        if not found:
            raise MemberNotFoundError(email)
        profile = profile_from_row(found[0])

        try:
            rows = await self._remote.insert(
                GROUP_MEMBERS,
                {"group_id": group.id, "user_id": profile.id, "role": Role.MEMBER.value},
            )
        except UniqueViolationError as e:
            raise AlreadyMemberError(email) from e

        membership = membership_from_row(rows[0])
        await self.load_members()
        await self._notifications.notify(
            profile.id,
            "group_invite",
            "Added to group",
            f"You were added to {group.name}",
            {"group_id": group.id},
        )
        logger.info("Member added group=%s user=%s", group.id, profile.id)
        return membership

    async def remove_member(self, user_id: str) -> None:
        # TODO: decide whether admins can be removed by plain members and whether
        # the last admin may leave; today any member can remove anyone.
        group = self._require_selected()
        await self._remote.delete(GROUP_MEMBERS, eq("group_id", group.id), eq("user_id", user_id))
        logger.info("Member removed group=%s user=%s", group.id, user_id)
        await self.load_members()
