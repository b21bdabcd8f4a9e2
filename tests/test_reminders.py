from __future__ import annotations

import datetime as dt

from tasq import reminders
from tasq.models import Task
from tasq.reminders import Alert, ReminderChecker
from tasq.service import TaskService
from tasq.storage import MemoryStore

DUE = dt.datetime(2025, 3, 1, 9, 0)


class _Clock:
    def __init__(self, now: dt.datetime) -> None:
        self.now = now

    def __call__(self) -> dt.datetime:
        return self.now


def _task(**kwargs) -> Task:
    kwargs.setdefault("task_id", "1")
    kwargs.setdefault("title", "standup")
    kwargs.setdefault("due_date", "2025-03-01")
    kwargs.setdefault("due_time", "09:00")
    return Task(**kwargs)


def test_fires_inside_window_only() -> None:
    task = _task(reminder_minutes=15)
    assert reminders.should_fire_reminder(task, DUE - dt.timedelta(minutes=10)) is True
    assert reminders.should_fire_reminder(task, DUE - dt.timedelta(minutes=20)) is False


def test_window_bounds_are_half_open() -> None:
    task = _task(reminder_minutes=15)
    assert reminders.should_fire_reminder(task, DUE - dt.timedelta(minutes=15)) is True
    assert reminders.should_fire_reminder(task, DUE) is False


def test_does_not_fire_when_sent_done_or_unset() -> None:
    now = DUE - dt.timedelta(minutes=5)
    assert reminders.should_fire_reminder(_task(reminder_minutes=15, reminder_sent=True), now) is False
    assert reminders.should_fire_reminder(_task(reminder_minutes=15, status="done"), now) is False
    assert reminders.should_fire_reminder(_task(reminder_minutes=None), now) is False


def test_missing_due_time_uses_default() -> None:
    task = _task(reminder_minutes=60, due_time=None)
    assert reminders.should_fire_reminder(task, dt.datetime(2025, 3, 1, 8, 30)) is True
    assert reminders.should_fire_reminder(task, dt.datetime(2025, 3, 1, 8, 30), default_time="18:00") is False


def test_malformed_due_never_fires() -> None:
    task = _task(reminder_minutes=15, due_date="soon")
    assert reminders.due_datetime(task) is None
    assert reminders.should_fire_reminder(task, DUE) is False


def test_bell_cycle() -> None:
    assert reminders.next_reminder_minutes(None) == 15
    assert reminders.next_reminder_minutes(15) == 60
    assert reminders.next_reminder_minutes(60) == 1440
    assert reminders.next_reminder_minutes(1440) is None
    assert reminders.next_reminder_minutes(45) is None


def test_reminder_labels() -> None:
    assert reminders.reminder_label(None) == "No reminder"
    assert reminders.reminder_label(60) == "1h before"
    assert reminders.reminder_label(30) == "30m before"


def test_upcoming_deadlines_window() -> None:
    tasks = [
        _task(task_id="1", due_date="2025-03-01"),
        _task(task_id="2", due_date="2025-03-05"),
        _task(task_id="3", due_date="2025-03-06"),
        _task(task_id="4", due_date="2025-02-28"),
        _task(task_id="5", due_date="2025-03-02", status="done"),
    ]
    rows = reminders.upcoming_deadlines(tasks, DUE)
    assert [(task.task_id, days) for task, days in rows] == [("1", 0), ("2", 4)]


def test_deadline_message_wording() -> None:
    task = _task(title="Report", due_date="2025-03-03")
    assert reminders.deadline_message(task, 2) == 'Upcoming Deadline: "Report" is due on Mar 3 (in 2 days).'
    assert reminders.deadline_message(task, 0).endswith("(today).")


def test_is_overdue() -> None:
    today = dt.date(2025, 3, 2)
    assert reminders.is_overdue(_task(due_date="2025-03-01"), today) is True
    assert reminders.is_overdue(_task(due_date="2025-03-01", status="done"), today) is False
    assert reminders.is_overdue(_task(due_date="2025-03-02"), today) is False


def _service_with(task: Task, clock: _Clock) -> TaskService:
    store = MemoryStore()
    store.save_task(task)
    return TaskService(store, clock=clock)


def test_checker_fires_once_and_persists_flag() -> None:
    clock = _Clock(dt.datetime(2025, 3, 10, 8, 50))
    service = _service_with(_task(reminder_minutes=15, due_date="2025-03-10"), clock)
    seen: list[Alert] = []
    checker = ReminderChecker(service, seen.append, clock=clock)

    first = checker.check_reminders()
    second = checker.check_reminders()

    assert [alert.kind for alert in first] == ["reminder"]
    assert second == []
    assert service.get_task("1").reminder_sent is True
    assert len(seen) == 1


def test_checker_keeps_flag_when_notifier_fails() -> None:
    clock = _Clock(DUE - dt.timedelta(minutes=5))
    service = _service_with(_task(reminder_minutes=15), clock)

    def _boom(alert: Alert) -> None:
        raise RuntimeError("no display")

    fired = ReminderChecker(service, _boom, clock=clock).check_reminders()
    assert len(fired) == 1
    assert service.get_task("1").reminder_sent is True


def test_deadline_alerts_once_per_day() -> None:
    clock = _Clock(dt.datetime(2025, 3, 1, 8, 0))
    service = _service_with(_task(due_date="2025-03-03"), clock)
    seen: list[Alert] = []
    checker = ReminderChecker(service, seen.append, clock=clock)

    assert len(checker.check_deadlines()) == 1
    assert checker.check_deadlines() == []
    clock.now = dt.datetime(2025, 3, 2, 8, 0)
    assert len(checker.check_deadlines()) == 1
    assert [alert.kind for alert in seen] == ["deadline", "deadline"]


def test_run_sleeps_between_iterations() -> None:
    clock = _Clock(dt.datetime(2025, 3, 1, 8, 0))
    service = _service_with(_task(due_date="2030-01-01"), clock)
    sleeps: list[float] = []
    checker = ReminderChecker(service, lambda alert: None, clock=clock, sleep=sleeps.append)

    checker.run(30, iterations=3)
    assert sleeps == [30, 30]


def test_deadline_dedupe_survives_a_new_checker() -> None:
    clock = _Clock(dt.datetime(2025, 3, 1, 8, 0))
    service = _service_with(_task(due_date="2025-03-03"), clock)

    assert len(ReminderChecker(service, lambda alert: None, clock=clock).check_deadlines()) == 1
    assert ReminderChecker(service, lambda alert: None, clock=clock).check_deadlines() == []
    assert service.notified_deadlines(dt.date(2025, 3, 1)) == {"1"}
