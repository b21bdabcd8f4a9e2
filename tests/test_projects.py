from __future__ import annotations

import datetime as dt

import pytest

from tasq.models import TaskNotFoundError, TaskValidationError
from tasq.projects import ProjectService
from tasq.service import TaskService
from tasq.storage import MemoryStore

NOW = dt.datetime(2025, 3, 1, 10, 0, 0)


def _clock() -> dt.datetime:
    return NOW


def _services() -> tuple[ProjectService, TaskService]:
    store = MemoryStore()
    return ProjectService(store, clock=_clock), TaskService(store, clock=_clock)


def test_create_and_search_projects() -> None:
    projects, _ = _services()
    projects.create_project("Website relaunch", description="new landing page")
    projects.create_project("Tax return", category="personal")

    assert [p.name for p in projects.list_projects("LANDING")] == ["Website relaunch"]
    assert len(projects.list_projects()) == 2


def test_create_project_validation() -> None:
    projects, _ = _services()
    with pytest.raises(TaskValidationError):
        projects.create_project(" ")
    with pytest.raises(TaskValidationError):
        projects.create_project("x", priority="urgent")
    with pytest.raises(TaskValidationError):
        projects.create_project("x", due_date="tomorrow")


def test_progress_from_tasks_with_stored_fallback() -> None:
    projects, tasks = _services()
    project = projects.create_project("Launch")
    project.progress = 40
    projects.store.save_project(project)

    assert projects.project_progress(project) == 40

    first = tasks.create_task("a", project_id=project.project_id)
    tasks.create_task("b", project_id=project.project_id)
    tasks.create_task("c", project_id=project.project_id)
    tasks.set_status(first.task_id, "done")
    assert projects.project_progress(project) == 33


def test_delete_project_unlinks_tasks() -> None:
    projects, tasks = _services()
    project = projects.create_project("Launch")
    task = tasks.create_task("a", project_id=project.project_id)

    projects.delete_project(project.project_id)
    assert tasks.get_task(task.task_id).project_id is None
    with pytest.raises(TaskNotFoundError):
        projects.get_project(project.project_id)


def test_milestones_stay_sorted_and_toggle() -> None:
    projects, _ = _services()
    project = projects.create_project("Launch")
    late = projects.add_milestone(project.project_id, "Ship", "2025-06-01")
    early = projects.add_milestone(project.project_id, "Beta", "2025-04-01")

    stored = projects.get_project(project.project_id)
    assert [m.text for m in stored.milestones] == ["Beta", "Ship"]

    toggled = projects.toggle_milestone(project.project_id, early.milestone_id)
    assert [m.completed for m in toggled.milestones] == [True, False]

    trimmed = projects.delete_milestone(project.project_id, late.milestone_id)
    assert [m.text for m in trimmed.milestones] == ["Beta"]


def test_unknown_milestone_raises() -> None:
    projects, _ = _services()
    project = projects.create_project("Launch")
    with pytest.raises(TaskNotFoundError, match="Milestone not found"):
        projects.toggle_milestone(project.project_id, "404")


def test_completion_criteria() -> None:
    projects, _ = _services()
    project = projects.create_project("Launch")
    criterion = projects.add_criterion(project.project_id, "All tests green")

    toggled = projects.toggle_criterion(project.project_id, criterion.criterion_id)
    assert toggled.completion_criteria[0].completed is True

    emptied = projects.delete_criterion(project.project_id, criterion.criterion_id)
    assert emptied.completion_criteria == []
    with pytest.raises(TaskNotFoundError, match="Criterion not found"):
        projects.delete_criterion(project.project_id, criterion.criterion_id)
