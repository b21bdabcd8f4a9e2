"""Status lanes, transitions, and the status-change audit trail."""

from __future__ import annotations

from .models import (
    DONE_STATUS,
    INITIAL_STATUS,
    VALID_STATUSES,
    Clock,
    ProgressUpdate,
    Task,
    TaskValidationError,
    timestamp,
)

# Board lane order; also the forward direction of the workflow.
STATUS_ORDER = VALID_STATUSES
GATED_STATUSES = frozenset({"in_progress", "review", "done"})


def validate_status(status: str) -> str:
    if status not in VALID_STATUSES:
        raise TaskValidationError(
            f"Invalid status: {status}. Expected one of: {', '.join(VALID_STATUSES)}"
        )
    return status


def can_transition(current: str, target: str) -> bool:
    # Any lane can be dropped onto any other lane.
    return current in VALID_STATUSES and target in VALID_STATUSES


def next_status(status: str) -> str:
    validate_status(status)
    index = STATUS_ORDER.index(status)
    return STATUS_ORDER[min(index + 1, len(STATUS_ORDER) - 1)]


def toggle_status(status: str) -> str:
    """Quick-complete toggle: done flips back to todo, anything else to done."""
    validate_status(status)
    return INITIAL_STATUS if status == DONE_STATUS else DONE_STATUS


def is_gated(target: str) -> bool:
    return target in GATED_STATUSES


def apply_status(
    task: Task,
    target: str,
    *,
    actor: str,
    clock: Clock,
    notes: str | None = None,
) -> Task:
    """Set ``task.status`` and record who changed it and when.

    Only status, updated_at, updated_by, and progress_updates are touched.
    """
    validate_status(target)
    if not can_transition(task.status, target):
        raise TaskValidationError(f"Cannot move task from {task.status} to {target}")
    stamp = timestamp(clock())
    task.status = target
    task.updated_at = stamp
    task.updated_by = actor
    task.progress_updates.append(
        ProgressUpdate(status=target, updated_by=actor, updated_at=stamp, notes=notes)
    )
    return task
