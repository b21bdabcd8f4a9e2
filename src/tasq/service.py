"""Business logic for task lifecycle, dependency integrity, and reminders."""

from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
import logging
from typing import Iterable

from .config import Settings
from .dependencies import (
    DependencyStatus,
    build_graph,
    dependency_status,
    dependents_of,
    find_cycle,
    index_tasks,
    validate_dependencies,
)
from .models import (
    DONE_STATUS,
    VALID_CATEGORIES,
    VALID_PRIORITIES,
    Clock,
    ProgressUpdate,
    Task,
    TaskConflictError,
    TaskNotFoundError,
    TaskValidationError,
    system_clock,
    timestamp,
)
from .query import TaskFilters, TaskSort, process_tasks
from .reminders import is_overdue, next_reminder_minutes, parse_due_date
from .storage import TaskStore, next_numeric_id
from . import workflow

logger = logging.getLogger(__name__)

DEFAULT_ACTOR = "unknown"


@dataclass(frozen=True, slots=True)
class TaskStats:
    total: int
    completed: int
    overdue: int
    high_priority: int
    efficiency: int


def percent(part: int, whole: int) -> int:
    """Half-up rounded percentage; 100 for an empty whole."""
    if not whole:
        return 100
    return int(part * 100 / whole + 0.5)


def _validate_choice(value: str, valid: tuple[str, ...], label: str) -> str:
    if value not in valid:
        raise TaskValidationError(f"Invalid {label}: {value}. Expected one of: {', '.join(valid)}")
    return value


def _validate_due(due_date: str, due_time: str | None) -> None:
    if due_date and parse_due_date(due_date) is None:
        raise TaskValidationError(f"Invalid due date: {due_date}. Expected YYYY-MM-DD")
    if due_time:
        try:
            dt.time.fromisoformat(due_time)
        except ValueError as exc:
            raise TaskValidationError(f"Invalid due time: {due_time}. Expected HH:MM") from exc


def _validate_reminder(minutes: int | None) -> int | None:
    if minutes is None or minutes == 0:
        return None
    if minutes < 0:
        raise TaskValidationError("reminder_minutes must be a positive number of minutes")
    return minutes


class TaskService:
    def __init__(
        self,
        store: TaskStore,
        *,
        clock: Clock = system_clock,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.settings = settings or Settings()

    def _now(self) -> str:
        return timestamp(self.clock())

    def all_tasks(self) -> list[Task]:
        return self.store.list_tasks()

    def get_task(self, task_id: str) -> Task:
        task = self.store.get_task(str(task_id).strip())
        if task is None:
            raise TaskNotFoundError(f"Task not found: {task_id}")
        return task

    def list_tasks(self, filters: TaskFilters | None = None, sort: TaskSort | None = None) -> list[Task]:
        if sort is None:
            sort = TaskSort(self.settings.list_sort, self.settings.list_order)
        return process_tasks(self.all_tasks(), filters, sort)

    def dependency_status(self, task: Task, all_tasks: Iterable[Task] | None = None) -> DependencyStatus:
        return dependency_status(task, index_tasks(all_tasks if all_tasks is not None else self.all_tasks()))

    def dependency_statuses(self, tasks: Iterable[Task]) -> dict[str, DependencyStatus]:
        by_id = index_tasks(self.all_tasks())
        return {task.task_id: dependency_status(task, by_id) for task in tasks}

    def dependents(self, task: Task) -> list[Task]:
        return dependents_of(task.task_id, self.all_tasks())

    def create_task(
        self,
        title: str,
        *,
        description: str = "",
        priority: str = "medium",
        category: str = "company",
        due_date: str | None = None,
        due_time: str | None = None,
        dependencies: Iterable[str] | None = None,
        reminder_minutes: int | None = None,
        project_id: str | None = None,
        assignee: str | None = None,
        actor: str = DEFAULT_ACTOR,
    ) -> Task:
        title = title.strip()
        if not title:
            raise TaskValidationError("title is required")
        _validate_choice(priority, VALID_PRIORITIES, "priority")
        _validate_choice(category, VALID_CATEGORIES, "category")
        due = due_date or self.clock().date().isoformat()
        _validate_due(due, due_time)
        if project_id is not None and self.store.get_project(project_id) is None:
            raise TaskNotFoundError(f"Project not found: {project_id}")

        existing = self.all_tasks()
        task_id = next_numeric_id((task.task_id for task in existing), self.clock)
        deps = validate_dependencies(task_id, dependencies or [], existing)
        now = self._now()
        task = Task(
            task_id=task_id,
            title=title,
            description=description.strip(),
            priority=priority,
            category=category,
            due_date=due,
            due_time=due_time or None,
            dependencies=deps,
            reminder_minutes=_validate_reminder(reminder_minutes),
            reminder_sent=False,
            project_id=project_id,
            assignee=assignee,
            created_at=now,
            updated_at=now,
            updated_by=actor,
        )
        self.store.save_task(task)
        logger.info("Created task %s (%s)", task_id, title)
        return task

    def update_task(
        self,
        task_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        priority: str | None = None,
        category: str | None = None,
        due_date: str | None = None,
        due_time: str | None = None,
        clear_due_time: bool = False,
        project_id: str | None = None,
        clear_project: bool = False,
        assignee: str | None = None,
        dependencies: Iterable[str] | None = None,
        actor: str = DEFAULT_ACTOR,
    ) -> Task:
        task = self.get_task(task_id)

        if title is not None:
            if not title.strip():
                raise TaskValidationError("title is required")
            task.title = title.strip()
        if description is not None:
            task.description = description.strip()
        if priority is not None:
            task.priority = _validate_choice(priority, VALID_PRIORITIES, "priority")
        if category is not None:
            task.category = _validate_choice(category, VALID_CATEGORIES, "category")

        rearm = False
        if due_date is not None or due_time is not None or clear_due_time:
            new_date = due_date if due_date is not None else task.due_date
            new_time = None if clear_due_time else (due_time if due_time is not None else task.due_time)
            _validate_due(new_date, new_time)
            rearm = (new_date, new_time) != (task.due_date, task.due_time)
            task.due_date = new_date
            task.due_time = new_time
        if rearm:
            # A moved deadline gets a fresh reminder.
            task.reminder_sent = False

        if clear_project:
            task.project_id = None
        elif project_id is not None:
            if self.store.get_project(project_id) is None:
                raise TaskNotFoundError(f"Project not found: {project_id}")
            task.project_id = project_id
        if assignee is not None:
            task.assignee = assignee or None
        if dependencies is not None:
            task.dependencies = validate_dependencies(task.task_id, dependencies, self.all_tasks())

        task.updated_at = self._now()
        task.updated_by = actor
        self.store.save_task(task)
        return task

    def _check_gate(self, task: Task, target: str, force: bool) -> None:
        if not self.settings.enforce_dependencies or force or not workflow.is_gated(target):
            return
        status = self.dependency_status(task)
        if status.is_blocked:
            names = ", ".join(f"{dep.title} ({dep.task_id})" for dep in status.blocking_tasks)
            raise TaskValidationError(f"Unmet dependencies: {names}. Use --force to override.")

    def set_status(
        self,
        task_id: str,
        status: str,
        *,
        actor: str = DEFAULT_ACTOR,
        notes: str | None = None,
        force: bool = False,
    ) -> Task:
        task = self.get_task(task_id)
        workflow.validate_status(status)
        self._check_gate(task, status, force)
        previous = task.status
        workflow.apply_status(task, status, actor=actor, clock=self.clock, notes=notes)
        self.store.save_task(task)
        logger.info("Task %s moved %s -> %s by %s", task.task_id, previous, status, actor)
        return task

    def toggle_task(self, task_id: str, *, actor: str = DEFAULT_ACTOR, force: bool = False) -> Task:
        task = self.get_task(task_id)
        return self.set_status(task.task_id, workflow.toggle_status(task.status), actor=actor, force=force)

    def advance_task(self, task_id: str, *, actor: str = DEFAULT_ACTOR, force: bool = False) -> Task:
        task = self.get_task(task_id)
        return self.set_status(task.task_id, workflow.next_status(task.status), actor=actor, force=force)

    def add_dependency(self, task_id: str, depends_on: str, *, actor: str = DEFAULT_ACTOR) -> Task:
        task = self.get_task(task_id)
        return self.update_task(task.task_id, dependencies=[*task.dependencies, depends_on], actor=actor)

    def remove_dependency(self, task_id: str, depends_on: str, *, actor: str = DEFAULT_ACTOR) -> Task:
        task = self.get_task(task_id)
        if depends_on not in task.dependencies:
            raise TaskNotFoundError(f"Task {task.task_id} does not depend on {depends_on}")
        remaining = [dep for dep in task.dependencies if dep != depends_on]
        return self.update_task(task.task_id, dependencies=remaining, actor=actor)

    def set_reminder(self, task_id: str, minutes: int | None) -> Task:
        task = self.get_task(task_id)
        task.reminder_minutes = _validate_reminder(minutes)
        task.reminder_sent = False
        task.updated_at = self._now()
        self.store.save_task(task)
        return task

    def cycle_reminder(self, task_id: str) -> Task:
        task = self.get_task(task_id)
        return self.set_reminder(task.task_id, next_reminder_minutes(task.reminder_minutes))

    def mark_reminder_sent(self, task_id: str) -> Task:
        task = self.get_task(task_id)
        task.reminder_sent = True
        self.store.save_task(task)
        return task

    def notified_deadlines(self, day: dt.date) -> set[str]:
        return self.store.get_notified(day.isoformat())

    def record_notified_deadlines(self, day: dt.date, task_ids: Iterable[str]) -> None:
        self.store.save_notified(day.isoformat(), task_ids)

    def add_note(self, task_id: str, notes: str, *, actor: str = DEFAULT_ACTOR) -> Task:
        """Append a progress note without moving the task."""
        task = self.get_task(task_id)
        text = (notes or "").strip()
        if not text:
            raise TaskValidationError("notes are required")
        now = self._now()
        task.progress_updates.append(
            ProgressUpdate(status=task.status, updated_by=actor, updated_at=now, notes=text)
        )
        task.updated_at = now
        task.updated_by = actor
        self.store.save_task(task)
        logger.info("Note added to task %s by %s", task.task_id, actor)
        return task

    def delete_task(self, task_id: str, *, actor: str = DEFAULT_ACTOR) -> Task:
        task = self.get_task(task_id)
        for dependent in dependents_of(task.task_id, self.all_tasks()):
            dependent.dependencies = [dep for dep in dependent.dependencies if dep != task.task_id]
            dependent.updated_at = self._now()
            dependent.updated_by = actor
            self.store.save_task(dependent)
            logger.info("Removed deleted task %s from dependencies of %s", task.task_id, dependent.task_id)
        self.store.delete_task(task.task_id)
        logger.info("Deleted task %s", task.task_id)
        return task

    def overdue_tasks(self) -> list[Task]:
        today = self.clock().date()
        return [task for task in self.all_tasks() if is_overdue(task, today)]

    def stats(self, tasks: Iterable[Task] | None = None) -> TaskStats:
        task_list = list(tasks) if tasks is not None else self.all_tasks()
        today = self.clock().date()
        total = len(task_list)
        completed = sum(1 for task in task_list if task.status == DONE_STATUS)
        overdue = sum(1 for task in task_list if is_overdue(task, today))
        high_priority = sum(
            1 for task in task_list if task.status != DONE_STATUS and task.priority == "high"
        )
        efficiency = percent(completed, total)
        return TaskStats(
            total=total,
            completed=completed,
            overdue=overdue,
            high_priority=high_priority,
            efficiency=efficiency,
        )

    def import_tasks(self, tasks: Iterable[Task], *, replace: bool = False) -> list[Task]:
        """Store already-mapped tasks, keeping the dependency graph valid.

        Dependencies on ids that exist nowhere are dropped; a cycle rejects the
        whole batch.
        """
        incoming = list(tasks)
        existing = index_tasks(self.all_tasks())
        if not replace:
            clashes = sorted(task.task_id for task in incoming if task.task_id in existing)
            if clashes:
                raise TaskConflictError(f"Task ids already exist: {', '.join(clashes)}")

        combined = {**existing, **index_tasks(incoming)}
        now = self._now()
        for task in incoming:
            if not task.title:
                raise TaskValidationError(f"Task {task.task_id} has no title")
            kept = [dep for dep in task.dependencies if dep in combined and dep != task.task_id]
            dropped = sorted(set(task.dependencies) - set(kept))
            if dropped:
                logger.warning("Dropping unknown dependencies %s from task %s", dropped, task.task_id)
            task.dependencies = kept
            task.created_at = task.created_at or now
            task.updated_at = task.updated_at or now

        cycle = find_cycle(build_graph(combined.values()))
        if cycle is not None:
            raise TaskValidationError(f"Dependency cycle detected: {' -> '.join(cycle)}")

        for task in incoming:
            self.store.save_task(task)
        logger.info("Imported %d tasks", len(incoming))
        return incoming
