# src/taskflow/sync/projector.py

"""
Filter/View projector.

Pure functions over the task cache. Nothing here is incremental: every call
recomputes the visible slice and the summary numbers from scratch.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum

from ..core.models import Priority, Task, TaskStatus

PRIORITY_ALL = "all"


class StatusFilter(StrEnum):
    """
    Status/completion filter.

    Personal scope uses the tri-state ALL/ACTIVE/COMPLETED mode; group scope
    uses the four-state ALL/PENDING/IN_PROGRESS/COMPLETED mode.
    """

    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"
    PENDING = "pending"
    IN_PROGRESS = "in-progress"

    @classmethod
    def parse(cls, raw: str | None) -> StatusFilter:
        value = (raw or "all").strip().lower().replace("_", "-")
        return cls(value)


def parse_priority_filter(raw: str | None) -> Priority | None:
    """Return None for "all"; raise ValueError for anything unknown."""
    value = (raw or PRIORITY_ALL).strip().lower()
    if value == PRIORITY_ALL:
        return None
    return Priority(value)


@dataclass(frozen=True, slots=True)
class TaskFilter:
    search: str = ""
    priority: Priority | None = None
    status: StatusFilter = StatusFilter.ALL


@dataclass(frozen=True, slots=True)
class TaskStats:
    total: int
    completed: int
    active: int
    completion_percent: int
    by_priority: dict[Priority, int] = field(default_factory=dict)
    completed_by_priority: dict[Priority, int] = field(default_factory=dict)
    overdue: tuple[Task, ...] = ()


@dataclass(frozen=True, slots=True)
class TaskView:
    tasks: tuple[Task, ...]
    stats: TaskStats


def _matches_status(task: Task, mode: StatusFilter) -> bool:
    if mode is StatusFilter.ALL:
        return True
    if mode is StatusFilter.ACTIVE:
        return not task.completed
    if mode is StatusFilter.COMPLETED:
        return task.completed
    if mode is StatusFilter.PENDING:
        return task.status is TaskStatus.PENDING
    return task.status is TaskStatus.IN_PROGRESS


def matches(task: Task, criteria: TaskFilter) -> bool:
    needle = criteria.search.strip().casefold()
    if needle and needle not in task.text.casefold():
        return False
    if criteria.priority is not None and task.priority is not criteria.priority:
        return False
    return _matches_status(task, criteria.status)


def filter_tasks(tasks: Iterable[Task], criteria: TaskFilter) -> list[Task]:
    """Matching tasks, in cache order."""
    return [t for t in tasks if matches(t, criteria)]


def overdue_tasks(tasks: Iterable[Task], today: date) -> list[Task]:
    return [t for t in tasks if t.is_overdue(today)]


def completion_percent(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    # Half-up, not banker's rounding.
    return int(math.floor(completed * 100 / total + 0.5))


def compute_stats(tasks: Sequence[Task], today: date | None = None) -> TaskStats:
    today = today or date.today()
    total = len(tasks)
    done = sum(1 for t in tasks if t.completed)

    by_priority = {p: 0 for p in Priority}
    completed_by_priority = {p: 0 for p in Priority}
    for t in tasks:
        by_priority[t.priority] += 1
        if t.completed:
            completed_by_priority[t.priority] += 1

    return TaskStats(
        total=total,
        completed=done,
        active=total - done,
        completion_percent=completion_percent(done, total),
        by_priority=by_priority,
        completed_by_priority=completed_by_priority,
        overdue=tuple(overdue_tasks(tasks, today)),
    )


def project(tasks: Sequence[Task], criteria: TaskFilter, today: date | None = None) -> TaskView:
    """Visible slice plus stats. Stats describe the whole scope, not the slice."""
    return TaskView(
        tasks=tuple(filter_tasks(tasks, criteria)),
        stats=compute_stats(tasks, today),
    )
