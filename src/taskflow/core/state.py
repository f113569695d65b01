# src/taskflow/core/state.py

"""
Explicit UI state.

One structure instead of a handful of independent flags: the current view is
a tagged value, so "group detail without a group" cannot be represented.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..sync.projector import TaskFilter


@dataclass(frozen=True, slots=True)
class PersonalView:
    pass


@dataclass(frozen=True, slots=True)
class GroupListView:
    pass


@dataclass(frozen=True, slots=True)
class GroupDetailView:
    group_id: str


ViewMode = PersonalView | GroupListView | GroupDetailView


@dataclass
class UiState:
    view: ViewMode = field(default_factory=PersonalView)
    criteria: TaskFilter = field(default_factory=TaskFilter)
    editing_task_id: str | None = None
    loading: bool = False
    error: str | None = None
    notice: str | None = None

    def reset(self) -> None:
        self.view = PersonalView()
        self.criteria = TaskFilter()
        self.editing_task_id = None
        self.error = None
        self.notice = None
