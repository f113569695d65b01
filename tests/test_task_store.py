# tests/test_task_store.py

from __future__ import annotations

from datetime import date

import pytest

from taskflow.core.errors import NotFoundError, RemoteError
from taskflow.core.models import Priority, TaskStatus
from taskflow.core.ports import ACTIVITY_LOGS, NOTIFICATIONS, TASKS
from taskflow.sync.task_store import Scope, TaskDraft, TaskPatch

from .fakes import FlakyRemoteStore


@pytest.mark.asyncio
async def test_create_defaults_and_prepends(alice) -> None:
    first = await alice.tasks.create(TaskDraft(text="first"))
    second = await alice.tasks.create(TaskDraft(text="  second  "))

    assert second is not None and first is not None
    assert second.priority is Priority.MEDIUM
    assert second.completed is False
    assert second.status is TaskStatus.PENDING
    assert second.text == "second"
    assert second.user_id == alice.session.user_id
    assert second.group_id is None
    assert [t.id for t in alice.tasks.tasks] == [second.id, first.id]


@pytest.mark.asyncio
async def test_create_empty_text_is_silent_noop(alice, flaky: FlakyRemoteStore) -> None:
    before = flaky.count("insert", TASKS)
    assert await alice.tasks.create(TaskDraft(text="   ")) is None
    assert flaky.count("insert", TASKS) == before
    assert alice.tasks.tasks == []


@pytest.mark.asyncio
async def test_create_failure_leaves_cache(alice, flaky: FlakyRemoteStore) -> None:
    await alice.tasks.create(TaskDraft(text="keep me"))
    snapshot = list(alice.tasks.tasks)
    flaky.fail_on.add(("insert", TASKS))

    with pytest.raises(RemoteError):
        await alice.tasks.create(TaskDraft(text="lost"))
    assert alice.tasks.tasks == snapshot


@pytest.mark.asyncio
async def test_toggle_twice_round_trips(alice) -> None:
    task = await alice.tasks.create(TaskDraft(text="toggle me", status=TaskStatus.PENDING))
    assert task is not None

    done = await alice.tasks.toggle_completion(task.id)
    assert done.completed and done.status is TaskStatus.COMPLETED

    back = await alice.tasks.toggle_completion(task.id)
    assert back.completed == task.completed
    assert back.status is task.status


@pytest.mark.asyncio
async def test_toggle_twice_restores_in_progress(alice) -> None:
    task = await alice.tasks.create(TaskDraft(text="half done", status=TaskStatus.IN_PROGRESS))
    assert task is not None and task.status is TaskStatus.IN_PROGRESS

    done = await alice.tasks.toggle_completion(task.id)
    assert done.completed and done.status is TaskStatus.COMPLETED

    back = await alice.tasks.toggle_completion(task.id)
    assert back.completed is False
    assert back.status is TaskStatus.IN_PROGRESS
    assert back == task


@pytest.mark.asyncio
async def test_reopen_after_explicit_status_is_pending(alice) -> None:
    task = await alice.tasks.create(TaskDraft(text="work", status=TaskStatus.IN_PROGRESS))
    assert task is not None
    await alice.tasks.set_status(task.id, TaskStatus.COMPLETED)

    back = await alice.tasks.toggle_completion(task.id)
    assert back.status is TaskStatus.PENDING and not back.completed


@pytest.mark.asyncio
async def test_failed_reopen_keeps_remembered_status(alice, flaky: FlakyRemoteStore) -> None:
    task = await alice.tasks.create(TaskDraft(text="retry", status=TaskStatus.IN_PROGRESS))
    assert task is not None
    await alice.tasks.toggle_completion(task.id)

    flaky.fail_on.add(("update", TASKS))
    with pytest.raises(RemoteError):
        await alice.tasks.toggle_completion(task.id)

    flaky.fail_on.clear()
    back = await alice.tasks.toggle_completion(task.id)
    assert back.status is TaskStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_set_status_derives_completion(alice) -> None:
    task = await alice.tasks.create(TaskDraft(text="work"))
    assert task is not None

    t1 = await alice.tasks.set_status(task.id, TaskStatus.IN_PROGRESS)
    assert t1.status is TaskStatus.IN_PROGRESS and not t1.completed

    t2 = await alice.tasks.set_status(task.id, TaskStatus.COMPLETED)
    assert t2.completed

    # Reload from the store: the remote copy agrees with the cache.
    await alice.tasks.load_scope(Scope.personal())
    assert alice.tasks.get(task.id) == t2


@pytest.mark.asyncio
async def test_update_replaces_record(alice) -> None:
    task = await alice.tasks.create(TaskDraft(text="draft", due_date=date(2026, 11, 1)))
    assert task is not None

    updated = await alice.tasks.update(
        task.id, TaskPatch(text="final", priority=Priority.HIGH, status=TaskStatus.COMPLETED)
    )
    assert updated is not None
    assert (updated.text, updated.priority, updated.completed) == ("final", Priority.HIGH, True)
    assert updated.due_date == date(2026, 11, 1)
    assert alice.tasks.get(task.id) == updated

    cleared = await alice.tasks.update(task.id, TaskPatch(clear_due_date=True))
    assert cleared is not None and cleared.due_date is None


@pytest.mark.asyncio
async def test_update_with_blank_text_is_noop(alice, flaky: FlakyRemoteStore) -> None:
    task = await alice.tasks.create(TaskDraft(text="name"))
    assert task is not None
    before = flaky.count("update", TASKS)
    assert await alice.tasks.update(task.id, TaskPatch(text="  ")) is None
    assert flaky.count("update", TASKS) == before


@pytest.mark.asyncio
async def test_failed_update_leaves_task_identical(alice, flaky: FlakyRemoteStore) -> None:
    task = await alice.tasks.create(TaskDraft(text="stable", priority=Priority.LOW))
    assert task is not None
    snapshot = alice.tasks.get(task.id)
    flaky.fail_on.add(("update", TASKS))

    with pytest.raises(RemoteError):
        await alice.tasks.update(task.id, TaskPatch(text="changed", priority=Priority.HIGH))
    with pytest.raises(RemoteError):
        await alice.tasks.toggle_completion(task.id)
    with pytest.raises(RemoteError):
        await alice.tasks.set_status(task.id, TaskStatus.IN_PROGRESS)

    assert alice.tasks.get(task.id) == snapshot


@pytest.mark.asyncio
async def test_remove(alice, flaky: FlakyRemoteStore) -> None:
    a = await alice.tasks.create(TaskDraft(text="a"))
    b = await alice.tasks.create(TaskDraft(text="b"))
    assert a is not None and b is not None

    flaky.fail_on.add(("delete", TASKS))
    with pytest.raises(RemoteError):
        await alice.tasks.remove(a.id)
    assert len(alice.tasks.tasks) == 2

    flaky.fail_on.clear()
    await alice.tasks.remove(a.id)
    assert [t.id for t in alice.tasks.tasks] == [b.id]
    with pytest.raises(NotFoundError):
        alice.tasks.get(a.id)


@pytest.mark.asyncio
async def test_load_scope_failure_keeps_previous_cache(alice, flaky: FlakyRemoteStore) -> None:
    await alice.tasks.create(TaskDraft(text="mine"))
    snapshot = list(alice.tasks.tasks)
    flaky.fail_on.add(("select", TASKS))

    with pytest.raises(RemoteError):
        await alice.tasks.load_scope(Scope.for_group("nope"))
    assert alice.tasks.tasks == snapshot
    assert alice.tasks.scope.is_personal


@pytest.mark.asyncio
async def test_personal_scope_only_shows_own_tasks(alice, bob) -> None:
    await alice.tasks.create(TaskDraft(text="alice task"))
    await bob.tasks.create(TaskDraft(text="bob task"))

    await alice.tasks.load_scope(Scope.personal())
    assert [t.text for t in alice.tasks.tasks] == ["alice task"]


@pytest.mark.asyncio
async def test_find_by_prefix(alice) -> None:
    task = await alice.tasks.create(TaskDraft(text="prefix"))
    assert task is not None
    assert alice.tasks.find(task.id[:6]) == task
    with pytest.raises(NotFoundError):
        alice.tasks.find("zzzz-not-there")


@pytest.mark.asyncio
async def test_personal_mutations_log_no_activity(alice, flaky: FlakyRemoteStore) -> None:
    task = await alice.tasks.create(TaskDraft(text="solo"))
    assert task is not None
    await alice.tasks.toggle_completion(task.id)
    await alice.tasks.remove(task.id)
    assert flaky.count("insert", ACTIVITY_LOGS) == 0
    assert flaky.count("insert", NOTIFICATIONS) == 0
