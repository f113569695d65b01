# src/taskflow/remote/local.py

"""
In-process backend.

Used when no hosted backend is configured (local-only mode) and by the tests.
It follows the hosted store's contract: server-assigned ids and timestamps,
the same filter semantics and a unique constraint on group membership. There
is no row-level security; callers filter by user themselves.

Persistence is optional: with a path, tables and accounts are written to a
JSON file after every mutation (tmp file + os.replace).
"""

from __future__ import annotations

import contextlib
import copy
import hashlib
import json
import logging
import os
import re
import secrets
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Callable

from ..core.errors import UNIQUE_VIOLATION_CODE, AuthError, UniqueViolationError
from ..core.models import Identity, Row
from ..core.ports import (
    ACTIVITY_LOGS,
    COMMENTS,
    GROUP_MEMBERS,
    GROUPS,
    NOTIFICATIONS,
    PROFILES,
    TASKS,
    AuthEvent,
    AuthListener,
    AuthSession,
    Filter,
    OAuthProvider,
)

logger = logging.getLogger(__name__)

TABLES = (PROFILES, TASKS, GROUPS, GROUP_MEMBERS, COMMENTS, ACTIVITY_LOGS, NOTIFICATIONS)

UNIQUE_KEYS: dict[str, tuple[str, ...]] = {
    PROFILES: ("id",),
    GROUP_MEMBERS: ("group_id", "user_id"),
}

# Column defaults the hosted schema applies on insert.
DEFAULTS: dict[str, dict[str, Any]] = {
    TASKS: {"completed": False, "priority": "medium", "status": "pending", "group_id": None, "assigned_to": []},
    GROUP_MEMBERS: {"role": "member"},
    ACTIVITY_LOGS: {"details": {}},
    NOTIFICATIONS: {"read": False, "data": {}},
}


def _like_to_regex(pattern: str) -> re.Pattern[str]:
    out = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if ch == "%":
            out.append(".*")
        elif ch == "_":
            out.append(".")
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("".join(out), re.IGNORECASE | re.DOTALL)


def _matches(row: Row, f: Filter) -> bool:
    value = row.get(f.column)
    if f.op == "eq":
        return value == f.value
    if f.op == "neq":
        return value != f.value
    if f.op == "is":
        return value is None
    if f.op == "ilike":
        return value is not None and _like_to_regex(str(f.value)).fullmatch(str(value)) is not None
    if f.op == "in":
        return value in f.value
    raise ValueError(f"Unsupported filter op: {f.op}")


def _hash_password(password: str, salt: str) -> str:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), 100_000).hex()


class LocalBackend:
    """Tables + accounts shared by LocalRemoteStore and any number of LocalAuth clients."""

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path else None
        self.tables: dict[str, list[Row]] = {t: [] for t in TABLES}
        self.accounts: dict[str, dict[str, str]] = {}
        self._last_ts: datetime | None = None
        if self._path is not None:
            self._load()

    # ---- persistence ----

    def _load(self) -> None:
        assert self._path is not None
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError):
            logger.exception("Failed to read local store %s; starting empty", self._path)
            return
        for name, rows in (data.get("tables") or {}).items():
            if name in self.tables and isinstance(rows, list):
                self.tables[name] = [r for r in rows if isinstance(r, dict)]
        accounts = data.get("accounts") or {}
        if isinstance(accounts, dict):
            self.accounts = accounts
        logger.info(
            "Local store loaded path=%s tasks=%d accounts=%d",
            self._path,
            len(self.tables[TASKS]),
            len(self.accounts),
        )

    def save(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(
            json.dumps({"tables": self.tables, "accounts": self.accounts}, ensure_ascii=False, indent=2),
            "utf-8",
        )
        os.replace(tmp, self._path)
        with contextlib.suppress(Exception):
            # Holds password hashes; keep the file private.
            os.chmod(self._path, 0o600)

    # ---- rows ----

    def now(self) -> str:
        """Strictly increasing UTC timestamps, so created_at ordering is total."""
        ts = datetime.now(UTC)
        if self._last_ts is not None and ts <= self._last_ts:
            ts = self._last_ts + timedelta(microseconds=1)
        self._last_ts = ts
        return ts.isoformat()

    def _check_unique(self, table: str, row: Row) -> None:
        keys = UNIQUE_KEYS.get(table)
        if not keys:
            return
        for existing in self.tables[table]:
            if all(existing.get(k) == row.get(k) for k in keys):
                raise UniqueViolationError(
                    f'duplicate key value violates unique constraint "{table}_{"_".join(keys)}_key"',
                    code=UNIQUE_VIOLATION_CODE,
                    status=409,
                )

    def insert(self, table: str, rows: list[Row]) -> list[Row]:
        prepared: list[Row] = []
        for raw in rows:
            row = {**copy.deepcopy(DEFAULTS.get(table, {})), **copy.deepcopy(raw)}
            row.setdefault("id", str(uuid.uuid4()))
            row.setdefault("created_at", self.now())
            if table == GROUP_MEMBERS:
                row.setdefault("joined_at", row["created_at"])
            self._check_unique(table, row)
            for other in prepared:
                # Reject duplicates inside one bulk insert as well.
                if UNIQUE_KEYS.get(table) and all(other.get(k) == row.get(k) for k in UNIQUE_KEYS[table]):
                    raise UniqueViolationError("duplicate key in batch", code=UNIQUE_VIOLATION_CODE, status=409)
            prepared.append(row)

        self.tables[table].extend(prepared)
        self.save()
        return copy.deepcopy(prepared)

    def select(
        self,
        table: str,
        filters: tuple[Filter, ...],
        order_by: str | None,
        descending: bool,
        limit: int | None,
    ) -> list[Row]:
        rows = [r for r in self.tables[table] if all(_matches(r, f) for f in filters)]
        if order_by:
            rows.sort(key=lambda r: (r.get(order_by) is None, str(r.get(order_by) or "")), reverse=descending)
        if limit is not None:
            rows = rows[: max(0, int(limit))]
        return copy.deepcopy(rows)

    def update(self, table: str, values: Row, filters: tuple[Filter, ...]) -> list[Row]:
        changed: list[Row] = []
        for row in self.tables[table]:
            if all(_matches(row, f) for f in filters):
                row.update(copy.deepcopy(values))
                changed.append(row)
        if changed:
            self.save()
        return copy.deepcopy(changed)

    def delete(self, table: str, filters: tuple[Filter, ...]) -> int:
        before = len(self.tables[table])
        self.tables[table] = [r for r in self.tables[table] if not all(_matches(r, f) for f in filters)]
        removed = before - len(self.tables[table])
        if removed:
            self.save()
        return removed

    # ---- accounts ----

    def create_account(self, email: str, password: str, full_name: str | None = None) -> Identity:
        key = email.strip().lower()
        if key in self.accounts:
            raise AuthError("User already registered")
        if len(password) < 6:
            raise AuthError("Password should be at least 6 characters")
        user_id = str(uuid.uuid4())
        salt = secrets.token_hex(8)
        self.accounts[key] = {
            "id": user_id,
            "email": email.strip(),
            "salt": salt,
            "password_hash": _hash_password(password, salt),
        }
        # The hosted backend creates the profile row with a trigger.
        self.insert(PROFILES, [{"id": user_id, "email": email.strip(), "full_name": full_name}])
        return Identity(id=user_id, email=email.strip())

    def verify(self, email: str, password: str) -> Identity:
        account = self.accounts.get(email.strip().lower())
        if account is None or _hash_password(password, account["salt"]) != account["password_hash"]:
            raise AuthError("Invalid login credentials")
        return Identity(id=account["id"], email=account["email"])


class LocalRemoteStore:
    """RemoteStore over a LocalBackend."""

    def __init__(self, backend: LocalBackend) -> None:
        self.backend = backend

    async def select(
        self,
        table: str,
        *filters: Filter,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        return self.backend.select(table, filters, order_by, descending, limit)

    async def insert(self, table: str, rows: Row | list[Row]) -> list[Row]:
        return self.backend.insert(table, [rows] if isinstance(rows, dict) else list(rows))

    async def update(self, table: str, values: Row, *filters: Filter) -> list[Row]:
        return self.backend.update(table, values, filters)

    async def delete(self, table: str, *filters: Filter) -> None:
        self.backend.delete(table, filters)


class LocalAuth:
    """AuthProvider over a LocalBackend: password accounts only."""

    def __init__(self, backend: LocalBackend) -> None:
        self.backend = backend
        self._session: AuthSession | None = None
        self._listeners: list[AuthListener] = []

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _emit(self, event: AuthEvent) -> None:
        for listener in list(self._listeners):
            await listener(event, self._session)

    def _new_session(self, identity: Identity) -> AuthSession:
        return AuthSession(
            access_token=secrets.token_urlsafe(24),
            refresh_token=secrets.token_urlsafe(24),
            user=identity,
        )

    async def get_session(self) -> AuthSession | None:
        return self._session

    async def sign_up(self, email: str, password: str) -> AuthSession | None:
        identity = self.backend.create_account(email, password)
        self._session = self._new_session(identity)
        await self._emit(AuthEvent.SIGNED_IN)
        return self._session

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        identity = self.backend.verify(email, password)
        self._session = self._new_session(identity)
        await self._emit(AuthEvent.SIGNED_IN)
        return self._session

    def sign_in_with_oauth(self, provider: OAuthProvider, redirect_to: str) -> str:
        raise AuthError(
            f"{provider.value.title()} sign-in needs the hosted auth service (set TASKFLOW_REMOTE_URL)."
        )

    async def exchange_oauth_redirect(self, callback_url: str) -> AuthSession:
        raise AuthError("OAuth sign-in needs the hosted auth service (set TASKFLOW_REMOTE_URL).")

    async def refresh_session(self) -> AuthSession | None:
        if self._session is None:
            return None
        self._session = self._new_session(self._session.user)
        await self._emit(AuthEvent.TOKEN_REFRESHED)
        return self._session

    async def sign_out(self) -> None:
        self._session = None
        await self._emit(AuthEvent.SIGNED_OUT)
