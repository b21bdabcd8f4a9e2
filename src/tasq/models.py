"""Core task, project, and time-entry models and constants."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import datetime as dt
from typing import Any, Callable

VALID_STATUSES = ("todo", "in_progress", "review", "done")
VALID_PRIORITIES = ("low", "medium", "high")
VALID_CATEGORIES = ("personal", "company")

INITIAL_STATUS = "todo"
DONE_STATUS = "done"

STATUS_LABELS = {
    "todo": "To Do",
    "in_progress": "In Progress",
    "review": "Review",
    "done": "Done",
}
PRIORITY_LABELS = {"low": "Low", "medium": "Medium", "high": "High"}
CATEGORY_LABELS = {"personal": "Personal", "company": "Company"}

# Sort-only weights; never persisted.
PRIORITY_WEIGHT = {"low": 1, "medium": 2, "high": 3}

Clock = Callable[[], dt.datetime]


def system_clock() -> dt.datetime:
    return dt.datetime.now()


def timestamp(when: dt.datetime) -> str:
    return when.replace(microsecond=0).isoformat()


@dataclass(slots=True)
class ProgressUpdate:
    status: str
    updated_by: str
    updated_at: str
    notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class Task:
    task_id: str
    title: str
    status: str = INITIAL_STATUS
    priority: str = "medium"
    category: str = "company"
    due_date: str = ""
    due_time: str | None = None
    description: str = ""
    dependencies: list[str] = field(default_factory=list)
    reminder_minutes: int | None = None
    reminder_sent: bool = False
    project_id: str | None = None
    assignee: str | None = None
    created_at: str = ""
    updated_at: str = ""
    updated_by: str | None = None
    progress_updates: list[ProgressUpdate] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        payload = dict(data)
        payload["progress_updates"] = [
            item if isinstance(item, ProgressUpdate) else ProgressUpdate(**item)
            for item in payload.get("progress_updates") or []
        ]
        payload["dependencies"] = [str(dep) for dep in payload.get("dependencies") or []]
        payload["task_id"] = str(payload["task_id"])
        return cls(**payload)


@dataclass(slots=True)
class Milestone:
    milestone_id: str
    text: str
    due_date: str
    completed: bool = False


@dataclass(slots=True)
class CompletionCriterion:
    criterion_id: str
    text: str
    completed: bool = False


@dataclass(slots=True)
class Project:
    project_id: str
    name: str
    description: str = ""
    category: str = "company"
    priority: str = "medium"
    due_date: str = ""
    progress: int = 0
    milestones: list[Milestone] = field(default_factory=list)
    completion_criteria: list[CompletionCriterion] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        payload = dict(data)
        payload["project_id"] = str(payload["project_id"])
        payload["milestones"] = [
            item if isinstance(item, Milestone) else Milestone(**item)
            for item in payload.get("milestones") or []
        ]
        payload["completion_criteria"] = [
            item if isinstance(item, CompletionCriterion) else CompletionCriterion(**item)
            for item in payload.get("completion_criteria") or []
        ]
        return cls(**payload)


@dataclass(slots=True)
class TimeEntry:
    entry_id: str
    description: str
    start_time: str
    end_time: str
    duration: int
    date: str
    task_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimeEntry:
        payload = dict(data)
        payload["entry_id"] = str(payload["entry_id"])
        return cls(**payload)


class TaskError(Exception):
    """Base error for task operations."""


class TaskValidationError(TaskError):
    """Raised when task fields or the dependency graph are invalid."""


class TaskNotFoundError(TaskError):
    """Raised when a task, project, or entry cannot be located."""


class TaskConflictError(TaskError):
    """Raised for collisions and ambiguous actions."""
