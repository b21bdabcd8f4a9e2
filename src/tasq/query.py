"""Filtering and ordering of task collections for presentation."""

from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
from typing import Iterable

from .models import (
    PRIORITY_WEIGHT,
    VALID_CATEGORIES,
    VALID_PRIORITIES,
    VALID_STATUSES,
    Task,
    TaskValidationError,
)
from .reminders import due_datetime

ALL = "ALL"
SORT_KEYS = ("PRIORITY", "DUE_DATE", "CREATED")
SORT_ORDERS = ("ASC", "DESC")


@dataclass(frozen=True, slots=True)
class TaskFilters:
    search: str = ""
    status: str = ALL
    category: str = ALL
    priority: str = ALL
    project_id: str | None = None
    assignee: str | None = None

    def __post_init__(self) -> None:
        if self.status != ALL and self.status not in VALID_STATUSES:
            raise TaskValidationError(f"Invalid status filter: {self.status}")
        if self.category != ALL and self.category not in VALID_CATEGORIES:
            raise TaskValidationError(f"Invalid category filter: {self.category}")
        if self.priority != ALL and self.priority not in VALID_PRIORITIES:
            raise TaskValidationError(f"Invalid priority filter: {self.priority}")

    def matches(self, task: Task) -> bool:
        needle = self.search.strip().lower()
        if needle and needle not in task.title.lower() and needle not in (task.description or "").lower():
            return False
        if self.status != ALL and task.status != self.status:
            return False
        if self.category != ALL and task.category != self.category:
            return False
        if self.priority != ALL and task.priority != self.priority:
            return False
        if self.project_id is not None and task.project_id != self.project_id:
            return False
        if self.assignee is not None and (task.assignee or "").lower() != self.assignee.strip().lower():
            return False
        return True


@dataclass(frozen=True, slots=True)
class TaskSort:
    key: str = "CREATED"
    order: str = "DESC"

    def __post_init__(self) -> None:
        if self.key not in SORT_KEYS:
            raise TaskValidationError(f"Invalid sort key: {self.key}. Expected one of: {', '.join(SORT_KEYS)}")
        if self.order not in SORT_ORDERS:
            raise TaskValidationError(f"Invalid sort order: {self.order}. Expected ASC or DESC")


def _priority_key(task: Task) -> int:
    return PRIORITY_WEIGHT.get(task.priority, 0)


def _due_key(task: Task) -> dt.datetime:
    # Sort keys treat a missing due time as midnight; reminders use their own default.
    return due_datetime(task, default_time="00:00") or dt.datetime.max


def _created_key(task: Task) -> int:
    try:
        return int(task.task_id)
    except ValueError:
        return -1


SORT_FUNCTIONS = {
    "PRIORITY": _priority_key,
    "DUE_DATE": _due_key,
    "CREATED": _created_key,
}


def filter_tasks(tasks: Iterable[Task], filters: TaskFilters) -> list[Task]:
    return [task for task in tasks if filters.matches(task)]


def sort_tasks(tasks: Iterable[Task], sort: TaskSort) -> list[Task]:
    # sorted() is stable in both directions, so equal keys keep input order.
    return sorted(tasks, key=SORT_FUNCTIONS[sort.key], reverse=sort.order == "DESC")


def process_tasks(
    tasks: Iterable[Task],
    filters: TaskFilters | None = None,
    sort: TaskSort | None = None,
) -> list[Task]:
    return sort_tasks(filter_tasks(tasks, filters or TaskFilters()), sort or TaskSort())
