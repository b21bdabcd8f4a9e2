from __future__ import annotations

import pytest

from tasq.dependencies import dependency_status
from tasq.models import Task, TaskValidationError
from tasq.query import TaskFilters, TaskSort, filter_tasks, process_tasks, sort_tasks


def _task(task_id: str, **kwargs) -> Task:
    kwargs.setdefault("title", f"task {task_id}")
    return Task(task_id=task_id, **kwargs)


def _ids(tasks: list[Task]) -> list[str]:
    return [task.task_id for task in tasks]


def test_priority_desc_orders_high_medium_low() -> None:
    tasks = [_task("1", priority="low"), _task("2", priority="high"), _task("3", priority="medium")]
    ordered = sort_tasks(tasks, TaskSort("PRIORITY", "DESC"))
    assert [task.priority for task in ordered] == ["high", "medium", "low"]


def test_due_date_asc_puts_earlier_first() -> None:
    tasks = [_task("1", due_date="2025-03-01"), _task("2", due_date="2025-01-15")]
    assert _ids(sort_tasks(tasks, TaskSort("DUE_DATE", "ASC"))) == ["2", "1"]


def test_due_date_uses_time_and_midnight_default() -> None:
    tasks = [
        _task("1", due_date="2025-03-01", due_time="10:00"),
        _task("2", due_date="2025-03-01"),
        _task("3", due_date="2025-03-01", due_time="08:00"),
    ]
    assert _ids(sort_tasks(tasks, TaskSort("DUE_DATE", "ASC"))) == ["2", "3", "1"]


def test_malformed_due_dates_sort_last_ascending() -> None:
    tasks = [_task("1", due_date="next week"), _task("2", due_date="2025-01-15")]
    assert _ids(sort_tasks(tasks, TaskSort("DUE_DATE", "ASC"))) == ["2", "1"]


def test_created_uses_numeric_id() -> None:
    tasks = [_task("9"), _task("100"), _task("20")]
    assert _ids(sort_tasks(tasks, TaskSort("CREATED", "ASC"))) == ["9", "20", "100"]
    assert _ids(sort_tasks(tasks, TaskSort("CREATED", "DESC"))) == ["100", "20", "9"]


def test_ties_keep_input_order_in_both_directions() -> None:
    tasks = [_task("1", priority="high"), _task("2", priority="high"), _task("3", priority="low")]
    assert _ids(sort_tasks(tasks, TaskSort("PRIORITY", "DESC"))) == ["1", "2", "3"]
    assert _ids(sort_tasks(tasks, TaskSort("PRIORITY", "ASC"))) == ["3", "1", "2"]


def test_filters_combine_with_and() -> None:
    tasks = [
        _task("1", title="Write report", status="todo", category="company", priority="high"),
        _task("2", title="Report taxes", status="todo", category="personal", priority="high"),
        _task("3", title="Groceries", description="weekly report shopping", status="done", category="personal"),
    ]
    assert _ids(filter_tasks(tasks, TaskFilters(search="REPORT"))) == ["1", "2", "3"]
    assert _ids(filter_tasks(tasks, TaskFilters(search="report", category="personal"))) == ["2", "3"]
    assert _ids(filter_tasks(tasks, TaskFilters(search="report", status="todo", priority="high"))) == ["1", "2"]


def test_filter_by_project() -> None:
    tasks = [_task("1", project_id="p1"), _task("2"), _task("3", project_id="p1")]
    assert _ids(filter_tasks(tasks, TaskFilters(project_id="p1"))) == ["1", "3"]


def test_filter_by_assignee_ignores_case() -> None:
    tasks = [_task("1", assignee="Ana"), _task("2"), _task("3", assignee="bo")]
    assert _ids(filter_tasks(tasks, TaskFilters(assignee="ana"))) == ["1"]
    assert _ids(filter_tasks(tasks, TaskFilters(assignee="nobody"))) == []


def test_invalid_filter_values_raise() -> None:
    with pytest.raises(TaskValidationError):
        TaskFilters(status="completed")
    with pytest.raises(TaskValidationError):
        TaskSort("NAME", "ASC")


def test_blocked_task_still_listed_first_when_newest() -> None:
    base = _task("1000", status="todo")
    main = _task("2000", dependencies=["1000"])
    ordered = process_tasks([base, main], TaskFilters(), TaskSort("CREATED", "DESC"))

    assert _ids(ordered) == ["2000", "1000"]
    assert dependency_status(ordered[0], ordered).is_blocked is True


def test_process_tasks_defaults_to_newest_first() -> None:
    assert _ids(process_tasks([_task("1"), _task("2")])) == ["2", "1"]
