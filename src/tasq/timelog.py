"""Time entries, the single running timer, and duration totals."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Iterable

from .models import (
    Clock,
    TaskConflictError,
    TaskNotFoundError,
    TaskValidationError,
    TimeEntry,
    system_clock,
    timestamp,
)
from .storage import TaskStore, next_numeric_id

logger = logging.getLogger(__name__)


def format_duration(seconds: int) -> str:
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_hours(seconds: int) -> str:
    return f"{seconds / 3600:.1f}h"


def week_bounds(day: dt.date) -> tuple[dt.date, dt.date]:
    """Sunday-to-Saturday week containing ``day``."""
    start = day - dt.timedelta(days=(day.weekday() + 1) % 7)
    return start, start + dt.timedelta(days=6)


def month_bounds(day: dt.date) -> tuple[dt.date, dt.date]:
    start = day.replace(day=1)
    next_month = (start + dt.timedelta(days=32)).replace(day=1)
    return start, next_month - dt.timedelta(days=1)


def total_seconds(entries: Iterable[TimeEntry], start: dt.date, end: dt.date) -> int:
    total = 0
    for entry in entries:
        try:
            day = dt.date.fromisoformat(entry.date)
        except ValueError:
            logger.debug("Skipping time entry %s with bad date %r", entry.entry_id, entry.date)
            continue
        if start <= day <= end:
            total += entry.duration
    return total


class TimeLog:
    def __init__(self, store: TaskStore, *, clock: Clock = system_clock) -> None:
        self.store = store
        self.clock = clock

    def entries(self) -> list[TimeEntry]:
        return self.store.list_time_entries()

    def entries_for_task(self, task_id: str) -> list[TimeEntry]:
        return [entry for entry in self.store.list_time_entries() if entry.task_id == task_id]

    def _check_task(self, task_id: str | None) -> None:
        if task_id is not None and self.store.get_task(task_id) is None:
            raise TaskNotFoundError(f"Task not found: {task_id}")

    def _new_entry(
        self,
        description: str,
        start: dt.datetime,
        seconds: int,
        task_id: str | None,
    ) -> TimeEntry:
        end = start + dt.timedelta(seconds=seconds)
        entry = TimeEntry(
            entry_id=next_numeric_id((e.entry_id for e in self.store.list_time_entries()), self.clock),
            description=description.strip() or "Untitled session",
            start_time=timestamp(start),
            end_time=timestamp(end),
            duration=seconds,
            date=start.date().isoformat(),
            task_id=task_id,
        )
        self.store.save_time_entry(entry)
        return entry

    def log_entry(
        self,
        description: str,
        *,
        hours: int = 0,
        minutes: int = 0,
        start: dt.datetime | None = None,
        task_id: str | None = None,
    ) -> TimeEntry:
        if hours < 0 or minutes < 0:
            raise TaskValidationError("duration must not be negative")
        seconds = hours * 3600 + minutes * 60
        if seconds <= 0:
            raise TaskValidationError("duration must be greater than zero")
        self._check_task(task_id)
        return self._new_entry(description, start or self.clock(), seconds, task_id)

    def start_timer(self, description: str = "", *, task_id: str | None = None) -> dict[str, str | None]:
        if self.store.get_active_timer() is not None:
            raise TaskConflictError("A timer is already running. Stop it first.")
        self._check_task(task_id)
        timer = {
            "description": description.strip(),
            "task_id": task_id,
            "start_time": timestamp(self.clock()),
        }
        self.store.set_active_timer(timer)
        return timer

    def active_timer(self) -> dict[str, str | None] | None:
        return self.store.get_active_timer()

    def elapsed_seconds(self) -> int:
        timer = self.store.get_active_timer()
        if timer is None:
            return 0
        started = dt.datetime.fromisoformat(str(timer["start_time"]))
        return max(0, int((self.clock() - started).total_seconds()))

    def stop_timer(self) -> TimeEntry:
        timer = self.store.get_active_timer()
        if timer is None:
            raise TaskConflictError("No timer is running.")
        started = dt.datetime.fromisoformat(str(timer["start_time"]))
        seconds = max(0, int((self.clock() - started).total_seconds()))
        entry = self._new_entry(str(timer.get("description") or ""), started, seconds, timer.get("task_id"))
        self.store.set_active_timer(None)
        return entry

    def delete_entry(self, entry_id: str) -> None:
        if not self.store.delete_time_entry(entry_id):
            raise TaskNotFoundError(f"Time entry not found: {entry_id}")

    def week_total(self) -> int:
        start, end = week_bounds(self.clock().date())
        return total_seconds(self.store.list_time_entries(), start, end)

    def month_total(self) -> int:
        start, end = month_bounds(self.clock().date())
        return total_seconds(self.store.list_time_entries(), start, end)

    def task_total(self, task_id: str) -> int:
        return sum(entry.duration for entry in self.entries_for_task(task_id))
