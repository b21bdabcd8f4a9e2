"""Projects, their milestones and completion criteria, and derived progress."""

from __future__ import annotations

import logging
from typing import Callable

from .models import (
    DONE_STATUS,
    VALID_CATEGORIES,
    VALID_PRIORITIES,
    Clock,
    CompletionCriterion,
    Milestone,
    Project,
    Task,
    TaskNotFoundError,
    TaskValidationError,
    system_clock,
    timestamp,
)
from .reminders import parse_due_date
from .service import percent
from .storage import TaskStore, next_numeric_id

logger = logging.getLogger(__name__)


def _check_choice(value: str, valid: tuple[str, ...], label: str) -> str:
    if value not in valid:
        raise TaskValidationError(f"Invalid {label}: {value}. Expected one of: {', '.join(valid)}")
    return value


def _check_date(value: str, label: str) -> str:
    if value and parse_due_date(value) is None:
        raise TaskValidationError(f"Invalid {label}: {value}. Expected YYYY-MM-DD")
    return value


CHILD_KINDS = {
    "milestones": ("milestone_id", "Milestone"),
    "completion_criteria": ("criterion_id", "Criterion"),
}


def _milestone_key(milestone: Milestone) -> str:
    return milestone.due_date


class ProjectService:
    def __init__(self, store: TaskStore, *, clock: Clock = system_clock) -> None:
        self.store = store
        self.clock = clock

    def list_projects(self, search: str = "") -> list[Project]:
        needle = search.strip().lower()
        projects = self.store.list_projects()
        if not needle:
            return projects
        return [
            project
            for project in projects
            if needle in project.name.lower() or needle in project.description.lower()
        ]

    def get_project(self, project_id: str) -> Project:
        project = self.store.get_project(str(project_id).strip())
        if project is None:
            raise TaskNotFoundError(f"Project not found: {project_id}")
        return project

    def create_project(
        self,
        name: str,
        *,
        description: str = "",
        category: str = "company",
        priority: str = "medium",
        due_date: str = "",
    ) -> Project:
        name = name.strip()
        if not name:
            raise TaskValidationError("project name is required")
        project = Project(
            project_id=next_numeric_id((p.project_id for p in self.store.list_projects()), self.clock),
            name=name,
            description=description.strip(),
            category=_check_choice(category, VALID_CATEGORIES, "category"),
            priority=_check_choice(priority, VALID_PRIORITIES, "priority"),
            due_date=_check_date(due_date, "due date"),
        )
        self.store.save_project(project)
        logger.info("Created project %s (%s)", project.project_id, name)
        return project

    def update_project(
        self,
        project_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        category: str | None = None,
        priority: str | None = None,
        due_date: str | None = None,
    ) -> Project:
        project = self.get_project(project_id)
        if name is not None:
            if not name.strip():
                raise TaskValidationError("project name is required")
            project.name = name.strip()
        if description is not None:
            project.description = description.strip()
        if category is not None:
            project.category = _check_choice(category, VALID_CATEGORIES, "category")
        if priority is not None:
            project.priority = _check_choice(priority, VALID_PRIORITIES, "priority")
        if due_date is not None:
            project.due_date = _check_date(due_date, "due date")
        self.store.save_project(project)
        return project

    def delete_project(self, project_id: str) -> Project:
        project = self.get_project(project_id)
        for task in self.project_tasks(project.project_id):
            task.project_id = None
            task.updated_at = timestamp(self.clock())
            self.store.save_task(task)
        self.store.delete_project(project.project_id)
        logger.info("Deleted project %s and unlinked its tasks", project.project_id)
        return project

    def project_tasks(self, project_id: str) -> list[Task]:
        return [task for task in self.store.list_tasks() if task.project_id == project_id]

    def project_progress(self, project: Project) -> int:
        tasks = self.project_tasks(project.project_id)
        if not tasks:
            return project.progress
        done = sum(1 for task in tasks if task.status == DONE_STATUS)
        return percent(done, len(tasks))

    def _next_child_id(self, existing: list[str]) -> str:
        return next_numeric_id(existing, self.clock)

    def add_milestone(self, project_id: str, text: str, due_date: str) -> Milestone:
        project = self.get_project(project_id)
        if not text.strip() or not due_date:
            raise TaskValidationError("milestone text and due date are required")
        milestone = Milestone(
            milestone_id=self._next_child_id([m.milestone_id for m in project.milestones]),
            text=text.strip(),
            due_date=_check_date(due_date, "milestone date"),
        )
        project.milestones = sorted([*project.milestones, milestone], key=_milestone_key)
        self.store.save_project(project)
        return milestone

    def _update_child(self, project_id: str, child_id: str, attr: str, change: Callable[[list], list]) -> Project:
        project = self.get_project(project_id)
        items = getattr(project, attr)
        id_attr, label = CHILD_KINDS[attr]
        if not any(getattr(item, id_attr) == child_id for item in items):
            raise TaskNotFoundError(f"{label} not found: {child_id}")
        setattr(project, attr, change(items))
        self.store.save_project(project)
        return project

    def toggle_milestone(self, project_id: str, milestone_id: str) -> Project:
        def flip(items: list[Milestone]) -> list[Milestone]:
            for item in items:
                if item.milestone_id == milestone_id:
                    item.completed = not item.completed
            return items

        return self._update_child(project_id, milestone_id, "milestones", flip)

    def delete_milestone(self, project_id: str, milestone_id: str) -> Project:
        return self._update_child(
            project_id,
            milestone_id,
            "milestones",
            lambda items: [item for item in items if item.milestone_id != milestone_id],
        )

    def add_criterion(self, project_id: str, text: str) -> CompletionCriterion:
        project = self.get_project(project_id)
        if not text.strip():
            raise TaskValidationError("criterion text is required")
        criterion = CompletionCriterion(
            criterion_id=self._next_child_id([c.criterion_id for c in project.completion_criteria]),
            text=text.strip(),
        )
        project.completion_criteria.append(criterion)
        self.store.save_project(project)
        return criterion

    def toggle_criterion(self, project_id: str, criterion_id: str) -> Project:
        def flip(items: list[CompletionCriterion]) -> list[CompletionCriterion]:
            for item in items:
                if item.criterion_id == criterion_id:
                    item.completed = not item.completed
            return items

        return self._update_child(project_id, criterion_id, "completion_criteria", flip)

    def delete_criterion(self, project_id: str, criterion_id: str) -> Project:
        return self._update_child(
            project_id,
            criterion_id,
            "completion_criteria",
            lambda items: [item for item in items if item.criterion_id != criterion_id],
        )
