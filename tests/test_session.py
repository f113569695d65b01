# tests/test_session.py

from __future__ import annotations

import pytest

from taskflow.core.state import GroupDetailView, PersonalView
from taskflow.remote.local import LocalAuth, LocalBackend, LocalRemoteStore
from taskflow.sync.controller import TaskflowApp
from taskflow.sync.session import SessionManager
from taskflow.sync.task_store import TaskDraft

from .conftest import PASSWORD
from .fakes import IdentityLog


@pytest.mark.asyncio
async def test_bad_password_surfaces_error(backend: LocalBackend) -> None:
    backend.create_account("carol@example.com", PASSWORD)
    session = SessionManager(LocalAuth(backend))
    await session.start()

    assert await session.sign_in("carol@example.com", "wrong") is False
    assert session.error == "Invalid login credentials"
    assert not session.authenticated


@pytest.mark.asyncio
async def test_oauth_unavailable_locally(backend: LocalBackend) -> None:
    session = SessionManager(LocalAuth(backend))
    assert session.sign_in_with_provider("google", "http://localhost") is None
    assert session.error and "hosted auth service" in session.error
    assert session.sign_in_with_provider("myspace", "http://localhost") is None
    assert "Unknown sign-in provider" in (session.error or "")


@pytest.mark.asyncio
async def test_listeners_fire_on_identity_change_only(backend: LocalBackend) -> None:
    auth = LocalAuth(backend)
    session = SessionManager(auth)
    log = IdentityLog()
    session.add_listener(log)
    await session.start()

    assert await session.sign_up("dave@example.com", PASSWORD)
    user_id = session.user_id
    await auth.refresh_session()
    await session.sign_out()

    assert log.seen == [user_id, None]


@pytest.mark.asyncio
async def test_sign_in_loads_and_sign_out_clears(backend: LocalBackend) -> None:
    backend.create_account("erin@example.com", PASSWORD)
    app = TaskflowApp(LocalRemoteStore(backend), LocalAuth(backend))
    await app.start()
    assert await app.sign_in("erin@example.com", PASSWORD)
    await app.add_task(TaskDraft(text="persisted"))
    group = await app.create_group("Erin's")
    assert group is not None

    await app.sign_out()
    assert app.tasks.tasks == []
    assert app.groups.groups == []
    assert app.profile is None
    assert app.notifications.unread_count == 0

    assert await app.sign_in("erin@example.com", PASSWORD)
    assert [t.text for t in app.tasks.tasks] == ["persisted"]
    assert [g.name for g in app.groups.groups] == ["Erin's"]
    assert app.profile is not None and app.profile.email == "erin@example.com"


@pytest.mark.asyncio
async def test_sign_out_resets_view(make_user) -> None:
    app = await make_user("frank@example.com")
    group = await app.create_group("View")
    assert group is not None
    assert await app.open_group(group.id)
    assert isinstance(app.ui.view, GroupDetailView)

    await app.sign_out()
    assert isinstance(app.ui.view, PersonalView)
    assert app.groups.selected is None
