# tests/test_local.py

from __future__ import annotations

import pytest

from taskflow.core.errors import AuthError, UniqueViolationError
from taskflow.core.ports import GROUP_MEMBERS, PROFILES, TASKS, eq, escape_like, ilike, in_, is_null
from taskflow.remote.local import LocalBackend


def test_insert_applies_defaults_and_ids(backend: LocalBackend) -> None:
    [row] = backend.insert(TASKS, [{"user_id": "u1", "text": "x"}])
    assert row["id"] and row["created_at"]
    assert row["priority"] == "medium"
    assert row["status"] == "pending"
    assert row["completed"] is False
    assert row["group_id"] is None


def test_timestamps_strictly_increase(backend: LocalBackend) -> None:
    rows = backend.insert(TASKS, [{"text": str(i)} for i in range(20)])
    stamps = [r["created_at"] for r in rows]
    assert stamps == sorted(stamps)
    assert len(set(stamps)) == len(stamps)


def test_filters(backend: LocalBackend) -> None:
    backend.insert(
        TASKS,
        [
            {"user_id": "u1", "text": "a"},
            {"user_id": "u1", "text": "b", "group_id": "g1"},
            {"user_id": "u2", "text": "c"},
        ],
    )
    personal = backend.select(TASKS, (eq("user_id", "u1"), is_null("group_id")), None, False, None)
    assert [r["text"] for r in personal] == ["a"]

    newest = backend.select(TASKS, (in_("user_id", ["u1", "u2"]),), "created_at", True, 2)
    assert [r["text"] for r in newest] == ["c", "b"]


def test_ilike_is_case_insensitive_and_escapes(backend: LocalBackend) -> None:
    backend.insert(PROFILES, [{"id": "p1", "email": "Ann_Lee@Example.com"}, {"id": "p2", "email": "annxlee@example.com"}])

    hits = backend.select(PROFILES, (ilike("email", escape_like("ann_lee@example.com")),), None, False, None)
    assert [r["id"] for r in hits] == ["p1"]

    wild = backend.select(PROFILES, (ilike("email", "ann_lee@example.com"),), None, False, None)
    assert {r["id"] for r in wild} == {"p1", "p2"}


def test_unique_membership(backend: LocalBackend) -> None:
    backend.insert(GROUP_MEMBERS, [{"group_id": "g", "user_id": "u"}])
    with pytest.raises(UniqueViolationError) as exc:
        backend.insert(GROUP_MEMBERS, [{"group_id": "g", "user_id": "u", "role": "admin"}])
    assert exc.value.code == "23505"

    with pytest.raises(UniqueViolationError):
        backend.insert(GROUP_MEMBERS, [{"group_id": "h", "user_id": "u"}, {"group_id": "h", "user_id": "u"}])
    assert len(backend.tables[GROUP_MEMBERS]) == 1


def test_update_and_delete_return_counts(backend: LocalBackend) -> None:
    backend.insert(TASKS, [{"user_id": "u1", "text": "a"}, {"user_id": "u1", "text": "b"}])
    changed = backend.update(TASKS, {"completed": True}, (eq("text", "a"),))
    assert len(changed) == 1 and changed[0]["completed"] is True
    assert backend.delete(TASKS, (eq("user_id", "u1"),)) == 2
    assert backend.delete(TASKS, (eq("user_id", "u1"),)) == 0


def test_accounts(backend: LocalBackend) -> None:
    ident = backend.create_account("Zoe@Example.com", "long-enough")
    assert backend.verify("zoe@example.com", "long-enough") == ident
    assert backend.select(PROFILES, (eq("id", ident.id),), None, False, None)[0]["email"] == "Zoe@Example.com"

    with pytest.raises(AuthError, match="already registered"):
        backend.create_account("zoe@example.com", "long-enough")
    with pytest.raises(AuthError, match="at least 6"):
        backend.create_account("short@example.com", "123")
    with pytest.raises(AuthError, match="Invalid login credentials"):
        backend.verify("zoe@example.com", "wrong-password")


def test_persistence_round_trip(tmp_path) -> None:
    path = tmp_path / "store.json"
    first = LocalBackend(path)
    ident = first.create_account("kim@example.com", "secret-pass")
    first.insert(TASKS, [{"user_id": ident.id, "text": "survives restart"}])
    assert not path.with_suffix(".tmp").exists()

    second = LocalBackend(path)
    assert second.verify("kim@example.com", "secret-pass").id == ident.id
    assert [r["text"] for r in second.tables[TASKS]] == ["survives restart"]


def test_corrupt_store_starts_empty(tmp_path) -> None:
    path = tmp_path / "store.json"
    path.write_text("{not json", "utf-8")
    backend = LocalBackend(path)
    assert backend.tables[TASKS] == []
    assert backend.accounts == {}


def test_ports_module_is_documented() -> None:
    from taskflow.core import ports

    assert ports.__doc__ is not None
    assert ports.__doc__.strip().startswith("Ports")
