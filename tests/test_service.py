from __future__ import annotations

import datetime as dt

import pytest

from tasq.config import Settings
from tasq.models import Project, Task, TaskConflictError, TaskNotFoundError, TaskValidationError
from tasq.query import TaskFilters, TaskSort
from tasq.service import TaskService, percent
from tasq.storage import MemoryStore

NOW = dt.datetime(2025, 3, 1, 10, 0, 0)


def _clock() -> dt.datetime:
    return NOW


def _service(**settings) -> TaskService:
    return TaskService(MemoryStore(), clock=_clock, settings=Settings(**settings))


def test_create_task_defaults() -> None:
    svc = _service()
    task = svc.create_task("  Write report ", actor="sam")

    assert task.title == "Write report"
    assert task.status == "todo"
    assert task.priority == "medium"
    assert task.category == "company"
    assert task.due_date == "2025-03-01"
    assert task.created_at == task.updated_at == "2025-03-01T10:00:00"
    assert task.updated_by == "sam"
    assert task.task_id == str(int(NOW.timestamp() * 1000))


def test_ids_increase_even_with_a_frozen_clock() -> None:
    svc = _service()
    first = svc.create_task("a")
    second = svc.create_task("b")
    assert int(second.task_id) == int(first.task_id) + 1


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"title": "  "}, "title is required"),
        ({"title": "x", "priority": "urgent"}, "Invalid priority"),
        ({"title": "x", "category": "school"}, "Invalid category"),
        ({"title": "x", "due_date": "03/01/2025"}, "Invalid due date"),
        ({"title": "x", "due_time": "9am"}, "Invalid due time"),
        ({"title": "x", "dependencies": ["404"]}, "unknown dependency"),
    ],
)
def test_create_task_validation(kwargs: dict, message: str) -> None:
    svc = _service()
    title = kwargs.pop("title")
    with pytest.raises(TaskValidationError, match=message):
        svc.create_task(title, **kwargs)


def test_create_task_unknown_project() -> None:
    with pytest.raises(TaskNotFoundError):
        _service().create_task("x", project_id="77")


def test_get_task_missing() -> None:
    with pytest.raises(TaskNotFoundError):
        _service().get_task("nope")


def test_update_due_rearms_reminder() -> None:
    svc = _service()
    task = svc.create_task("x", due_date="2025-03-02", due_time="09:00", reminder_minutes=15)
    svc.mark_reminder_sent(task.task_id)

    unchanged = svc.update_task(task.task_id, title="y")
    assert unchanged.reminder_sent is True

    moved = svc.update_task(task.task_id, due_time="11:00")
    assert moved.reminder_sent is False
    assert moved.due_time == "11:00"

    cleared = svc.update_task(task.task_id, clear_due_time=True)
    assert cleared.due_time is None


def test_update_project_link_and_clear() -> None:
    store = MemoryStore()
    store.save_project(Project(project_id="5", name="Launch"))
    svc = TaskService(store, clock=_clock)
    task = svc.create_task("x")

    assert svc.update_task(task.task_id, project_id="5").project_id == "5"
    assert svc.update_task(task.task_id, clear_project=True).project_id is None


def test_blocking_is_advisory_by_default() -> None:
    svc = _service()
    dep = svc.create_task("dep")
    main = svc.create_task("main", dependencies=[dep.task_id])

    moved = svc.set_status(main.task_id, "done", actor="sam")
    assert moved.status == "done"
    assert svc.dependency_status(moved).is_blocked is True


def test_enforced_dependencies_gate_and_force() -> None:
    svc = _service(enforce_dependencies=True)
    dep = svc.create_task("dep")
    main = svc.create_task("main", dependencies=[dep.task_id])

    with pytest.raises(TaskValidationError, match="Unmet dependencies"):
        svc.set_status(main.task_id, "in_progress")
    assert svc.set_status(main.task_id, "todo").status == "todo"
    assert svc.set_status(main.task_id, "in_progress", force=True).status == "in_progress"

    svc.set_status(dep.task_id, "done")
    assert svc.set_status(main.task_id, "review").status == "review"


def test_set_status_appends_history() -> None:
    svc = _service()
    task = svc.create_task("x")
    svc.set_status(task.task_id, "in_progress", actor="ana", notes="on it")
    task = svc.set_status(task.task_id, "review", actor="bo")

    assert [(u.status, u.updated_by) for u in task.progress_updates] == [("in_progress", "ana"), ("review", "bo")]
    assert task.progress_updates[0].notes == "on it"


def test_add_note_keeps_status() -> None:
    svc = _service()
    task = svc.create_task("x")
    svc.set_status(task.task_id, "in_progress", actor="ana")
    noted = svc.add_note(task.task_id, "  halfway  ", actor="bo")

    assert noted.status == "in_progress"
    assert noted.updated_by == "bo"
    last = noted.progress_updates[-1]
    assert (last.status, last.updated_by, last.notes) == ("in_progress", "bo", "halfway")
    assert svc.get_task(task.task_id).progress_updates == noted.progress_updates


def test_add_note_rejects_blank() -> None:
    svc = _service()
    task = svc.create_task("x")
    with pytest.raises(TaskValidationError, match="notes are required"):
        svc.add_note(task.task_id, "   ")
    with pytest.raises(TaskNotFoundError):
        svc.add_note("404", "hello")


def test_toggle_round_trip_keeps_fields() -> None:
    svc = _service()
    dep = svc.create_task("dep")
    task = svc.create_task("x", priority="high", dependencies=[dep.task_id])

    svc.toggle_task(task.task_id)
    back = svc.toggle_task(task.task_id)
    assert back.status == "todo"
    assert back.priority == "high"
    assert back.dependencies == [dep.task_id]


def test_advance_task_walks_lanes() -> None:
    svc = _service()
    task = svc.create_task("x")
    assert svc.advance_task(task.task_id).status == "in_progress"
    assert svc.advance_task(task.task_id).status == "review"


def test_add_dependency_rejects_cycle_and_self() -> None:
    svc = _service()
    a = svc.create_task("a")
    b = svc.create_task("b", dependencies=[a.task_id])

    with pytest.raises(TaskValidationError, match="cycle"):
        svc.add_dependency(a.task_id, b.task_id)
    with pytest.raises(TaskValidationError, match="itself"):
        svc.add_dependency(a.task_id, a.task_id)
    assert svc.get_task(a.task_id).dependencies == []


def test_remove_dependency() -> None:
    svc = _service()
    a = svc.create_task("a")
    b = svc.create_task("b", dependencies=[a.task_id])

    assert svc.remove_dependency(b.task_id, a.task_id).dependencies == []
    with pytest.raises(TaskNotFoundError):
        svc.remove_dependency(b.task_id, a.task_id)


def test_delete_cascades_into_dependents() -> None:
    svc = _service()
    a = svc.create_task("a")
    b = svc.create_task("b", dependencies=[a.task_id])

    svc.delete_task(a.task_id, actor="sam")
    remaining = svc.get_task(b.task_id)
    assert remaining.dependencies == []
    assert remaining.updated_by == "sam"
    with pytest.raises(TaskNotFoundError):
        svc.get_task(a.task_id)


def test_cycle_reminder_resets_sent_flag() -> None:
    svc = _service()
    task = svc.create_task("x")
    svc.mark_reminder_sent(task.task_id)

    cycled = svc.cycle_reminder(task.task_id)
    assert cycled.reminder_minutes == 15
    assert cycled.reminder_sent is False
    assert svc.cycle_reminder(task.task_id).reminder_minutes == 60


def test_set_reminder_zero_clears() -> None:
    svc = _service()
    task = svc.create_task("x", reminder_minutes=60)
    assert svc.set_reminder(task.task_id, 0).reminder_minutes is None
    with pytest.raises(TaskValidationError):
        svc.set_reminder(task.task_id, -5)


def test_list_tasks_uses_settings_sort() -> None:
    svc = _service(list_sort="PRIORITY", list_order="DESC")
    svc.create_task("low", priority="low")
    svc.create_task("high", priority="high")
    assert [t.title for t in svc.list_tasks()] == ["high", "low"]
    assert [t.title for t in svc.list_tasks(sort=TaskSort("CREATED", "ASC"))] == ["low", "high"]
    assert [t.title for t in svc.list_tasks(TaskFilters(priority="low"))] == ["low"]


def test_stats_and_overdue() -> None:
    svc = _service()
    svc.create_task("late", due_date="2025-02-20", priority="high")
    done = svc.create_task("finished", due_date="2025-02-20")
    svc.set_status(done.task_id, "done")
    svc.create_task("future", due_date="2025-03-09")

    stats = svc.stats()
    assert (stats.total, stats.completed, stats.overdue, stats.high_priority) == (3, 1, 1, 1)
    assert stats.efficiency == 33
    assert [task.title for task in svc.overdue_tasks()] == ["late"]


def test_percent_rounds_half_up() -> None:
    assert percent(1, 8) == 13
    assert percent(1, 2) == 50
    assert percent(0, 0) == 100


def test_import_drops_unknown_dependencies() -> None:
    svc = _service()
    imported = svc.import_tasks(
        [
            Task(task_id="1", title="a"),
            Task(task_id="2", title="b", dependencies=["1", "99"]),
        ]
    )
    assert imported[1].dependencies == ["1"]
    assert svc.get_task("2").created_at == "2025-03-01T10:00:00"


def test_import_rejects_clash_and_cycle() -> None:
    svc = _service()
    svc.import_tasks([Task(task_id="1", title="a")])

    with pytest.raises(TaskConflictError):
        svc.import_tasks([Task(task_id="1", title="again")])
    with pytest.raises(TaskValidationError, match="cycle"):
        svc.import_tasks(
            [Task(task_id="2", title="b", dependencies=["3"]), Task(task_id="3", title="c", dependencies=["2"])]
        )
    assert [task.task_id for task in svc.all_tasks()] == ["1"]

    replaced = svc.import_tasks([Task(task_id="1", title="again")], replace=True)
    assert replaced[0].title == "again"
