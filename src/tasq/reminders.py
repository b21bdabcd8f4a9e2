"""Reminder windows, the bell cycle, and the polling reminder checker."""

from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
import logging
import time
from typing import TYPE_CHECKING, Callable, Iterable

from .models import DONE_STATUS, Clock, Task, TaskError, system_clock

if TYPE_CHECKING:
    from .service import TaskService

logger = logging.getLogger(__name__)

DEFAULT_DUE_TIME = "09:00"
DEFAULT_DEADLINE_WINDOW_DAYS = 4
REMINDER_CYCLE = (None, 15, 60, 1440)


def parse_due_date(value: str) -> dt.date | None:
    try:
        return dt.date.fromisoformat(value.split("T", 1)[0])
    except (AttributeError, ValueError):
        logger.debug("Unparseable due date %r", value)
        return None


def due_datetime(task: Task, default_time: str = DEFAULT_DUE_TIME) -> dt.datetime | None:
    """Combine due_date and due_time, or return None when either is malformed."""
    day = parse_due_date(task.due_date)
    if day is None:
        return None
    try:
        clock_time = dt.time.fromisoformat(task.due_time or default_time)
    except ValueError:
        logger.debug("Unparseable due time %r on task %s", task.due_time, task.task_id)
        return None
    return dt.datetime.combine(day, clock_time)


def should_fire_reminder(task: Task, now: dt.datetime, default_time: str = DEFAULT_DUE_TIME) -> bool:
    minutes = task.reminder_minutes
    if not minutes or minutes < 0 or task.reminder_sent or task.status == DONE_STATUS:
        return False
    due = due_datetime(task, default_time)
    if due is None:
        return False
    return due - dt.timedelta(minutes=minutes) <= now < due


def next_reminder_minutes(current: int | None) -> int | None:
    """Advance the bell: none -> 15 -> 60 -> 1440 -> none. Custom offsets reset to none."""
    if not current:
        return REMINDER_CYCLE[1]
    if current in REMINDER_CYCLE:
        index = REMINDER_CYCLE.index(current)
        return REMINDER_CYCLE[(index + 1) % len(REMINDER_CYCLE)]
    return None


def reminder_label(minutes: int | None) -> str:
    if not minutes:
        return "No reminder"
    return {15: "15m before", 60: "1h before", 1440: "1d before"}.get(minutes, f"{minutes}m before")


def is_overdue(task: Task, today: dt.date) -> bool:
    if task.status == DONE_STATUS:
        return False
    day = parse_due_date(task.due_date)
    return day is not None and day < today


def upcoming_deadlines(
    tasks: Iterable[Task],
    now: dt.datetime,
    window_days: int = DEFAULT_DEADLINE_WINDOW_DAYS,
) -> list[tuple[Task, int]]:
    """Not-done tasks due within ``window_days`` calendar days, with days remaining."""
    rows: list[tuple[Task, int]] = []
    today = now.date()
    for task in tasks:
        if task.status == DONE_STATUS:
            continue
        day = parse_due_date(task.due_date)
        if day is None:
            continue
        days_until = (day - today).days
        if 0 <= days_until <= window_days:
            rows.append((task, days_until))
    return rows


def deadline_message(task: Task, days_until: int) -> str:
    if days_until == 0:
        when = "today"
    else:
        when = f"in {days_until} day{'' if days_until == 1 else 's'}"
    day = parse_due_date(task.due_date)
    shown = f"{day:%b} {day.day}" if day is not None else task.due_date
    return f'Upcoming Deadline: "{task.title}" is due on {shown} ({when}).'


def reminder_message(task: Task, default_time: str = DEFAULT_DUE_TIME) -> str:
    return f"Reminder: {task.title} (due {task.due_date} at {task.due_time or default_time})"


@dataclass(frozen=True, slots=True)
class Alert:
    kind: str
    task: Task
    message: str


Notifier = Callable[[Alert], None]


class ReminderChecker:
    """Poll a task service and emit one-shot reminders and daily deadline alerts."""

    def __init__(
        self,
        service: TaskService,
        notify: Notifier,
        *,
        clock: Clock = system_clock,
        default_time: str = DEFAULT_DUE_TIME,
        window_days: int = DEFAULT_DEADLINE_WINDOW_DAYS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.service = service
        self.notify = notify
        self.clock = clock
        self.default_time = default_time
        self.window_days = window_days
        self._sleep = sleep

    def _emit(self, alert: Alert) -> None:
        try:
            self.notify(alert)
        except Exception:
            # Fire-and-forget: the reminder stays marked as sent.
            logger.exception("Notifier failed for task %s", alert.task.task_id)

    def check_reminders(self) -> list[Alert]:
        now = self.clock()
        fired: list[Alert] = []
        for task in self.service.all_tasks():
            if not should_fire_reminder(task, now, self.default_time):
                continue
            try:
                marked = self.service.mark_reminder_sent(task.task_id)
            except TaskError:
                logger.warning("Task %s vanished before its reminder was marked", task.task_id)
                continue
            alert = Alert(kind="reminder", task=marked, message=reminder_message(marked, self.default_time))
            logger.info("Reminder fired for task %s", task.task_id)
            self._emit(alert)
            fired.append(alert)
        return fired

    def check_deadlines(self) -> list[Alert]:
        """Alert each upcoming deadline at most once per calendar day.

        The notified ids live in the store, so separate ``remind check`` runs
        on the same day stay quiet after the first.
        """
        now = self.clock()
        today = now.date()
        seen = self.service.notified_deadlines(today)
        fresh = [
            (task, days_until)
            for task, days_until in upcoming_deadlines(self.service.all_tasks(), now, self.window_days)
            if task.task_id not in seen
        ]
        if not fresh:
            return []
        self.service.record_notified_deadlines(today, seen | {task.task_id for task, _ in fresh})

        alerts: list[Alert] = []
        for task, days_until in fresh:
            alert = Alert(kind="deadline", task=task, message=deadline_message(task, days_until))
            self._emit(alert)
            alerts.append(alert)
        return alerts

    def check_once(self) -> list[Alert]:
        return self.check_reminders() + self.check_deadlines()

    def run(self, interval_seconds: float, iterations: int | None = None) -> None:
        count = 0
        while iterations is None or count < iterations:
            self.check_once()
            count += 1
            if iterations is not None and count >= iterations:
                break
            self._sleep(interval_seconds)
