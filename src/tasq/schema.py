"""Mapping between canonical task records and legacy persisted shapes.

Two legacy shapes exist: ``snake_case`` SQL rows (statuses ``todo``,
``in_progress``, ``completed``, ``cancelled``) and ``camelCase`` documents that
use display labels (``To Do``, ``In Progress``, ``Review``, ``Done``). Nothing
outside this module should see either vocabulary.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any

from .models import (
    CATEGORY_LABELS,
    PRIORITY_LABELS,
    STATUS_LABELS,
    VALID_CATEGORIES,
    VALID_PRIORITIES,
    VALID_STATUSES,
    Task,
    TaskValidationError,
)

logger = logging.getLogger(__name__)

SQL_STATUS_TO_CANONICAL = {
    "todo": "todo",
    "in_progress": "in_progress",
    "completed": "done",
    "cancelled": "done",
}
# SQL rows have no review lane; review work is still in progress.
CANONICAL_TO_SQL_STATUS = {
    "todo": "todo",
    "in_progress": "in_progress",
    "review": "in_progress",
    "done": "completed",
}
LABEL_TO_STATUS = {label.lower(): status for status, label in STATUS_LABELS.items()}
DOCUMENT_KEYS = {"dueDate", "dueTime", "projectId", "reminderMinutes", "reminderSent"}


def canonical_status(raw: Any) -> str:
    token = str(raw or "").strip()
    lowered = token.lower()
    if lowered in VALID_STATUSES:
        return lowered
    if lowered in LABEL_TO_STATUS:
        return LABEL_TO_STATUS[lowered]
    if lowered in SQL_STATUS_TO_CANONICAL:
        if lowered == "cancelled":
            logger.warning("Legacy status 'cancelled' has no lane; importing as done")
        return SQL_STATUS_TO_CANONICAL[lowered]
    raise TaskValidationError(f"Unknown status: {raw}")


def _canonical_choice(raw: Any, valid: tuple[str, ...], default: str, label: str) -> str:
    if raw in (None, ""):
        return default
    token = str(raw).strip().lower()
    if token not in valid:
        raise TaskValidationError(f"Unknown {label}: {raw}")
    return token


def _split_timestamp(raw: Any) -> tuple[str, str | None]:
    """Split an ISO date or datetime into (YYYY-MM-DD, HH:MM or None)."""
    if raw in (None, ""):
        return "", None
    if isinstance(raw, dt.datetime):
        return raw.date().isoformat(), raw.strftime("%H:%M")
    if isinstance(raw, dt.date):
        return raw.isoformat(), None
    text = str(raw).strip().replace(" ", "T", 1)
    if "T" not in text:
        return text, None
    try:
        parsed = dt.datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        # Keep the raw value; display code falls back to showing it as-is.
        return text, None
    clock = parsed.strftime("%H:%M")
    return parsed.date().isoformat(), None if clock == "00:00" else clock


def _id_list(raw: Any) -> list[str]:
    if raw in (None, "", []):
        return []
    if isinstance(raw, bool):
        raise TaskValidationError(f"Invalid dependencies: {raw!r}")
    if isinstance(raw, (str, int)):
        return [str(raw).strip()]
    if not isinstance(raw, (list, tuple)):
        raise TaskValidationError(f"Invalid dependencies: {raw!r}")
    return [str(item).strip() for item in raw]


def _reminder_minutes(raw: Any) -> int | None:
    if raw in (None, "", 0):
        return None
    if isinstance(raw, bool):
        raise TaskValidationError(f"Invalid reminderMinutes: {raw}")
    try:
        minutes = int(raw)
    except (TypeError, ValueError) as exc:
        raise TaskValidationError(f"Invalid reminderMinutes: {raw}") from exc
    if minutes < 0:
        raise TaskValidationError(f"Invalid reminderMinutes: {raw}")
    return minutes


def _lookup(mapping: dict[str, str], value: str, label: str) -> str:
    try:
        return mapping[value]
    except KeyError:
        raise TaskValidationError(f"Unknown {label}: {value}") from None


def is_document(record: dict[str, Any]) -> bool:
    return bool(DOCUMENT_KEYS.intersection(record))


def from_sql_row(row: dict[str, Any]) -> Task:
    due_date, due_time = _split_timestamp(row.get("due_date"))
    project_id = row.get("project_id")
    assignee = row.get("assigned_to_name") or row.get("assigned_to")
    return Task(
        task_id=str(row["id"]),
        title=str(row.get("title") or "").strip(),
        description=str(row.get("description") or ""),
        status=canonical_status(row.get("status") or "todo"),
        priority=_canonical_choice(row.get("priority"), VALID_PRIORITIES, "medium", "priority"),
        category=_canonical_choice(row.get("category"), VALID_CATEGORIES, "company", "category"),
        due_date=due_date,
        due_time=due_time,
        dependencies=_id_list(row.get("dependencies") or row.get("depends_on")),
        project_id=str(project_id) if project_id not in (None, "") else None,
        assignee=str(assignee) if assignee not in (None, "") else None,
        created_at=str(row.get("created_at") or ""),
        updated_at=str(row.get("updated_at") or ""),
    )


def to_sql_row(task: Task) -> dict[str, Any]:
    due = task.due_date
    if due and task.due_time:
        due = f"{task.due_date}T{task.due_time}:00"
    return {
        "id": task.task_id,
        "title": task.title,
        "description": task.description,
        "status": _lookup(CANONICAL_TO_SQL_STATUS, task.status, "status"),
        "priority": task.priority,
        "due_date": due or None,
        "project_id": task.project_id,
        "assigned_to": task.assignee,
        "dependencies": list(task.dependencies),
        "created_at": task.created_at,
        "updated_at": task.updated_at,
    }


def from_document(doc: dict[str, Any]) -> Task:
    due_date, parsed_time = _split_timestamp(doc.get("dueDate"))
    project_id = doc.get("projectId")
    return Task(
        task_id=str(doc["id"]),
        title=str(doc.get("title") or "").strip(),
        description=str(doc.get("description") or ""),
        status=canonical_status(doc.get("status") or "todo"),
        priority=_canonical_choice(doc.get("priority"), VALID_PRIORITIES, "medium", "priority"),
        category=_canonical_choice(doc.get("category"), VALID_CATEGORIES, "company", "category"),
        due_date=due_date,
        due_time=doc.get("dueTime") or parsed_time,
        dependencies=_id_list(doc.get("dependencies")),
        reminder_minutes=_reminder_minutes(doc.get("reminderMinutes")),
        reminder_sent=bool(doc.get("reminderSent", False)),
        project_id=str(project_id) if project_id not in (None, "") else None,
        assignee=doc.get("assignee") or None,
    )


def to_document(task: Task) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "id": task.task_id,
        "title": task.title,
        "description": task.description,
        "status": _lookup(STATUS_LABELS, task.status, "status"),
        "priority": _lookup(PRIORITY_LABELS, task.priority, "priority"),
        "category": _lookup(CATEGORY_LABELS, task.category, "category"),
        "dueDate": task.due_date,
        "dependencies": list(task.dependencies),
        "reminderSent": task.reminder_sent,
    }
    if task.due_time:
        doc["dueTime"] = task.due_time
    if task.reminder_minutes:
        doc["reminderMinutes"] = task.reminder_minutes
    if task.project_id:
        doc["projectId"] = task.project_id
    if task.assignee:
        doc["assignee"] = task.assignee
    return doc


def from_record(record: dict[str, Any]) -> Task:
    if "id" not in record:
        raise TaskValidationError("Record is missing an id")
    if is_document(record):
        return from_document(record)
    return from_sql_row(record)
