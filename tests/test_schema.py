from __future__ import annotations

import logging

import pytest

from tasq import schema
from tasq.models import Task, TaskValidationError


def test_sql_row_maps_legacy_statuses_and_timestamp() -> None:
    task = schema.from_sql_row(
        {
            "id": 17,
            "title": " Audit ",
            "status": "completed",
            "priority": "high",
            "due_date": "2025-03-01T14:30:00",
            "project_id": 3,
            "assigned_to_name": "Ana",
            "dependencies": [12],
        }
    )
    assert task.task_id == "17"
    assert task.title == "Audit"
    assert task.status == "done"
    assert (task.due_date, task.due_time) == ("2025-03-01", "14:30")
    assert task.project_id == "3"
    assert task.assignee == "Ana"
    assert task.dependencies == ["12"]


def test_cancelled_imports_as_done_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="tasq.schema"):
        task = schema.from_sql_row({"id": 1, "title": "x", "status": "cancelled"})
    assert task.status == "done"
    assert "cancelled" in caplog.text


def test_midnight_sql_timestamp_has_no_time() -> None:
    task = schema.from_sql_row({"id": 1, "title": "x", "due_date": "2025-03-01 00:00:00"})
    assert (task.due_date, task.due_time) == ("2025-03-01", None)


def test_to_sql_row_folds_review_into_in_progress() -> None:
    row = schema.to_sql_row(Task(task_id="1", title="x", status="review", due_date="2025-03-01", due_time="09:15"))
    assert row["status"] == "in_progress"
    assert row["due_date"] == "2025-03-01T09:15:00"


def test_document_uses_display_labels() -> None:
    task = schema.from_document(
        {
            "id": "5",
            "title": "Plan",
            "status": "In Progress",
            "priority": "Low",
            "category": "Personal",
            "dueDate": "2025-03-02",
            "dueTime": "08:00",
            "reminderMinutes": 15,
            "reminderSent": True,
            "projectId": "9",
        }
    )
    assert (task.status, task.priority, task.category) == ("in_progress", "low", "personal")
    assert task.reminder_minutes == 15
    assert task.reminder_sent is True

    doc = schema.to_document(task)
    assert doc["status"] == "In Progress"
    assert doc["priority"] == "Low"
    assert doc["dueTime"] == "08:00"
    assert doc["projectId"] == "9"


def test_from_record_detects_shape() -> None:
    assert schema.from_record({"id": 1, "title": "row", "status": "todo"}).title == "row"
    assert schema.from_record({"id": 2, "title": "doc", "dueDate": "2025-03-01", "status": "Done"}).status == "done"
    with pytest.raises(TaskValidationError, match="missing an id"):
        schema.from_record({"title": "anonymous"})


def test_unknown_values_raise() -> None:
    with pytest.raises(TaskValidationError, match="Unknown status"):
        schema.canonical_status("blocked")
    with pytest.raises(TaskValidationError, match="Unknown priority"):
        schema.from_sql_row({"id": 1, "title": "x", "priority": "urgent"})


def test_scalar_dependency_is_one_id() -> None:
    assert schema.from_document({"id": "5", "title": "x", "dueDate": "", "dependencies": "12"}).dependencies == ["12"]
    assert schema.from_sql_row({"id": 5, "title": "x", "depends_on": 12}).dependencies == ["12"]
    assert schema.from_sql_row({"id": 5, "title": "x"}).dependencies == []
    with pytest.raises(TaskValidationError, match="Invalid dependencies"):
        schema.from_document({"id": "5", "title": "x", "dueDate": "", "dependencies": {"id": 12}})


@pytest.mark.parametrize("value", ["soon", -15, [15]])
def test_bad_reminder_minutes_raise(value) -> None:
    with pytest.raises(TaskValidationError, match="Invalid reminderMinutes"):
        schema.from_document({"id": "1", "title": "x", "reminderMinutes": value})


def test_export_rejects_hand_edited_status() -> None:
    task = Task(task_id="1", title="x", status="blocked")
    with pytest.raises(TaskValidationError, match="Unknown status: blocked"):
        schema.to_document(task)
    with pytest.raises(TaskValidationError, match="Unknown status: blocked"):
        schema.to_sql_row(task)
