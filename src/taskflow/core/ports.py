# src/taskflow/core/ports.py

"""
Ports (interfaces) used by the sync module.

The sync module depends on Protocols instead of concrete implementations.
This keeps the hosted backend swappable (HTTP, local) and makes testing easier.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Awaitable, Callable, Iterable, Protocol

from .models import Identity, Row

# Collections on the remote store.
PROFILES = "profiles"
TASKS = "tasks"
GROUPS = "groups"
GROUP_MEMBERS = "group_members"
COMMENTS = "comments"
ACTIVITY_LOGS = "activity_logs"
NOTIFICATIONS = "notifications"


@dataclass(frozen=True, slots=True)
class Filter:
    """
    One row predicate.

    ops:
    - eq / neq: equality
    - is: only ``None`` (SQL IS NULL)
    - ilike: case-insensitive pattern, ``%`` and ``_`` are wildcards
    - in: membership in a tuple of values
    """

    column: str
    op: str
    value: Any = None


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


def neq(column: str, value: Any) -> Filter:
    return Filter(column, "neq", value)


def is_null(column: str) -> Filter:
    return Filter(column, "is", None)


def ilike(column: str, pattern: str) -> Filter:
    return Filter(column, "ilike", pattern)


def in_(column: str, values: Iterable[Any]) -> Filter:
    return Filter(column, "in", tuple(values))


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so ilike() matches ``value`` literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class RemoteStore(Protocol):
    """Query/command interface over named collections."""

    async def select(
        self,
        table: str,
        *filters: Filter,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]: ...

    async def insert(self, table: str, rows: Row | list[Row]) -> list[Row]: ...

    async def update(self, table: str, values: Row, *filters: Filter) -> list[Row]: ...

    async def delete(self, table: str, *filters: Filter) -> None: ...


class AuthEvent(StrEnum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


class OAuthProvider(StrEnum):
    GOOGLE = "google"
    FACEBOOK = "facebook"
    GITHUB = "github"


@dataclass(frozen=True, slots=True)
class AuthSession:
    access_token: str
    user: Identity
    refresh_token: str | None = None
    expires_at: float | None = None


AuthListener = Callable[[AuthEvent, AuthSession | None], Awaitable[None]]


class AuthProvider(Protocol):
    async def get_session(self) -> AuthSession | None: ...

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]: ...

    async def sign_up(self, email: str, password: str) -> AuthSession | None: ...

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession: ...

    def sign_in_with_oauth(self, provider: OAuthProvider, redirect_to: str) -> str: ...

    async def exchange_oauth_redirect(self, callback_url: str) -> AuthSession: ...

    async def refresh_session(self) -> AuthSession | None: ...

    async def sign_out(self) -> None: ...
