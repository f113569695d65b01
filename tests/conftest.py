# tests/conftest.py

from __future__ import annotations

from collections.abc import Awaitable, Callable

import pytest
import pytest_asyncio

from taskflow.remote.local import LocalAuth, LocalBackend, LocalRemoteStore
from taskflow.sync.controller import TaskflowApp

from .fakes import FlakyRemoteStore

PASSWORD = "secret-pass"

AppFactory = Callable[[str], Awaitable[TaskflowApp]]


@pytest.fixture()
def backend() -> LocalBackend:
    """
    Shared in-process backend.

    We keep the real local backend here (not a mock) because its filter and
    constraint semantics are what the stores are written against.
    """
    return LocalBackend()


@pytest.fixture()
def flaky(backend: LocalBackend) -> FlakyRemoteStore:
    return FlakyRemoteStore(LocalRemoteStore(backend))


@pytest.fixture()
def make_user(backend: LocalBackend) -> AppFactory:
    """
    Build a signed-in TaskflowApp for a (new) account on the shared backend.

    Every app gets its own auth client, so several users can act on the
    same data in one test.
    """

    async def _make(email: str, remote=None) -> TaskflowApp:
        auth = LocalAuth(backend)
        app = TaskflowApp(remote or LocalRemoteStore(backend), auth)
        await app.start()
        if email.lower() in backend.accounts:
            assert await app.sign_in(email, PASSWORD)
        else:
            assert await app.sign_up(email, PASSWORD)
        return app

    return _make


@pytest_asyncio.fixture()
async def alice(make_user: AppFactory, flaky: FlakyRemoteStore) -> TaskflowApp:
    """Alice talks to the backend through the flaky wrapper."""
    return await make_user("alice@example.com", flaky)


@pytest_asyncio.fixture()
async def bob(make_user: AppFactory) -> TaskflowApp:
    return await make_user("bob@example.com")
