"""Renderers for list, detail, board, project, and time output."""

from __future__ import annotations

from dataclasses import asdict
import datetime as dt
import json
from typing import Iterable

from .dependencies import DependencyStatus
from .models import (
    CATEGORY_LABELS,
    PRIORITY_LABELS,
    STATUS_LABELS,
    VALID_STATUSES,
    Project,
    Task,
    TimeEntry,
)
from .reminders import is_overdue, parse_due_date, reminder_label
from .service import TaskStats
from .timelog import format_duration

LIST_COLUMNS = (
    ("id", 14),
    ("title", 32),
    ("status", 11),
    ("priority", 8),
    ("due", 14),
    ("deps", 12),
    ("reminder", 11),
)


def format_due(task: Task, today: dt.date) -> str:
    """Short due label; malformed dates are shown as stored."""
    day = parse_due_date(task.due_date)
    if day is None:
        return task.due_date or "-"
    base = "Today" if day == today else f"{day:%b} {day.day}"
    return f"{base}, {task.due_time}" if task.due_time else base


def _blocked_count(statuses: dict[str, DependencyStatus], task: Task) -> int:
    status = statuses.get(task.task_id)
    return len(status.blocking_tasks) if status is not None else 0


def _health_label(blocked: int) -> str:
    if blocked <= 0:
        return "ready"
    return f"blocked({blocked})"


def _priority_style(priority: str) -> str:
    return {"high": "bold red", "medium": "yellow", "low": "green"}.get(priority, "white")


def _status_style(status: str) -> str:
    return {
        "todo": "magenta",
        "in_progress": "cyan",
        "review": "blue",
        "done": "green",
    }.get(status, "white")


def _task_list_row(task: Task, blocked: int, today: dt.date) -> dict[str, str]:
    return {
        "id": task.task_id,
        "title": task.title,
        "status": task.status,
        "priority": task.priority,
        "due": format_due(task, today),
        "deps": _health_label(blocked),
        "reminder": reminder_label(task.reminder_minutes) if task.reminder_minutes else "-",
    }


def _truncate(value: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(value) <= width:
        return value
    if width == 1:
        return "…"
    return f"{value[: width - 1]}…"


def render_task_list_plain(
    tasks: Iterable[Task],
    statuses: dict[str, DependencyStatus],
    today: dt.date,
) -> str:
    rows = [_task_list_row(task, _blocked_count(statuses, task), today) for task in tasks]
    if not rows:
        return "No tasks found."

    lines = []
    lines.append("  ".join(name.ljust(width) for name, width in LIST_COLUMNS))
    lines.append("  ".join("-" * width for _, width in LIST_COLUMNS))
    for row in rows:
        lines.append("  ".join(_truncate(row[name], width).ljust(width) for name, width in LIST_COLUMNS))
    return "\n".join(lines)


def render_task_list_rich(
    tasks: Iterable[Task],
    statuses: dict[str, DependencyStatus],
    today: dt.date,
    *,
    group_by_status: bool = False,
):
    from rich import box
    from rich.console import Group
    from rich.table import Table
    from rich.text import Text

    task_list = list(tasks)
    if not task_list:
        return "No tasks found."

    def _table(bucket: list[Task]) -> Table:
        table = Table(box=box.SIMPLE_HEAVY, show_header=True, header_style="bold white", pad_edge=False)
        for name, width in LIST_COLUMNS:
            table.add_column(
                name,
                style="dim" if name == "id" else ("bold" if name == "title" else ""),
                min_width=min(width, 8),
                max_width=width,
                overflow="ellipsis",
                no_wrap=True,
            )
        for task in bucket:
            blocked = _blocked_count(statuses, task)
            row = _task_list_row(task, blocked, today)
            due_style = "red" if is_overdue(task, today) else ""
            table.add_row(
                row["id"],
                Text(row["title"], style="strike dim" if task.status == "done" else "bold"),
                Text(STATUS_LABELS.get(task.status, task.status), style=_status_style(task.status)),
                Text(PRIORITY_LABELS.get(task.priority, task.priority), style=_priority_style(task.priority)),
                Text(row["due"], style=due_style),
                Text("✓ ready", style="green") if blocked <= 0 else Text(f"⚠ blocked({blocked})", style="yellow"),
                row["reminder"],
            )
        return table

    if not group_by_status:
        return _table(task_list)

    renderables = []
    for status in VALID_STATUSES:
        bucket = [task for task in task_list if task.status == status]
        if not bucket:
            continue
        renderables.append(
            Text(f"{STATUS_LABELS[status].upper()} ({len(bucket)})", style=f"bold {_status_style(status)}")
        )
        renderables.append(_table(bucket))
    return Group(*renderables)


def task_payload(task: Task, status: DependencyStatus | None = None) -> dict:
    item = asdict(task)
    if status is not None:
        item["is_blocked"] = status.is_blocked
        item["blocking_tasks"] = [dep.task_id for dep in status.blocking_tasks]
    return item


def render_task_list_json(tasks: Iterable[Task], statuses: dict[str, DependencyStatus]) -> str:
    payload = [task_payload(task, statuses.get(task.task_id)) for task in tasks]
    return json.dumps(payload, indent=2)


def _inline_task_refs(tasks: Iterable[Task]) -> str:
    refs = [f"{task.title} ({task.task_id}) [{task.status}]" for task in tasks]
    return ", ".join(refs) if refs else "-"


def _detail_lines(
    task: Task,
    status: DependencyStatus,
    dependents: list[Task],
    today: dt.date,
) -> list[str]:
    blocked = len(status.blocking_tasks)
    overdue = "    OVERDUE" if is_overdue(task, today) else ""
    return [
        f"{task.title} ({task.task_id})",
        (
            f"[{task.status}] [{task.priority}] [{CATEGORY_LABELS.get(task.category, task.category)}] "
            f"[deps: {_health_label(blocked)}]"
        ),
        f"due: {format_due(task, today)}{overdue}    reminder: {reminder_label(task.reminder_minutes)}"
        + ("  (sent)" if task.reminder_sent else ""),
        f"project: {task.project_id or '-'}    assignee: {task.assignee or '-'}",
        f"created: {task.created_at or '-'}    updated: {task.updated_at or '-'} by {task.updated_by or '-'}",
        f"dependencies: {', '.join(task.dependencies) if task.dependencies else '-'}",
        f"blocked_by: {_inline_task_refs(status.blocking_tasks)}",
        f"blocks: {_inline_task_refs(dependents)}",
    ]


def render_task_detail_plain(
    task: Task,
    status: DependencyStatus,
    dependents: list[Task],
    today: dt.date,
) -> str:
    lines = _detail_lines(task, status, dependents, today)
    if task.progress_updates:
        lines.append("history:")
        for update in task.progress_updates:
            note = f" - {update.notes}" if update.notes else ""
            lines.append(f"  {update.updated_at} | {update.updated_by} | {update.status}{note}")
    lines.extend(["", task.description.strip() or "(no description)"])
    return "\n".join(lines)


def render_task_detail_rich(
    task: Task,
    status: DependencyStatus,
    dependents: list[Task],
    today: dt.date,
):
    from rich.console import Group
    from rich.text import Text

    title = Text()
    title.append(task.title, style="bold")
    title.append(f" ({task.task_id})", style="dim")

    chips = Text()
    chips.append(f"[{STATUS_LABELS.get(task.status, task.status)}]", style=_status_style(task.status))
    chips.append(" ")
    chips.append(f"[{PRIORITY_LABELS.get(task.priority, task.priority)}]", style=_priority_style(task.priority))
    chips.append(f" [{CATEGORY_LABELS.get(task.category, task.category)}] ")
    if status.is_blocked:
        chips.append(f"⚠ blocked({len(status.blocking_tasks)})", style="yellow")
    else:
        chips.append("✓ ready", style="green")

    rest = [Text(line) for line in _detail_lines(task, status, dependents, today)[2:]]
    history = [
        Text(f"  {u.updated_at} | {u.updated_by} | {u.status}" + (f" - {u.notes}" if u.notes else ""), style="dim")
        for u in task.progress_updates
    ]
    if history:
        history.insert(0, Text("history:"))
    body = Text(task.description.strip() or "(no description)")
    return Group(title, chips, *rest, *history, Text(""), body)


def render_task_detail_json(
    task: Task,
    status: DependencyStatus,
    dependents: list[Task],
) -> str:
    payload = task_payload(task, status)
    payload["blocks"] = [dep.task_id for dep in dependents]
    return json.dumps(payload, indent=2)


def render_board_rich(tasks: Iterable[Task], statuses: dict[str, DependencyStatus]):
    from rich.columns import Columns
    from rich.panel import Panel
    from rich.text import Text

    task_list = list(tasks)
    panels = []
    for status in VALID_STATUSES:
        lane = [task for task in task_list if task.status == status]
        text = Text()
        for task in lane:
            text.append(f"{task.title}", style="bold")
            text.append(f" ({task.task_id})\n", style="dim")
            if _blocked_count(statuses, task):
                text.append("  ⚠ blocked\n", style="yellow")
        if not lane:
            text.append("(empty)", style="dim")
        panels.append(
            Panel(text, title=f"{STATUS_LABELS[status]} ({len(lane)})", border_style=_status_style(status))
        )
    return Columns(panels, equal=True, expand=True)


def render_board_plain(tasks: Iterable[Task], statuses: dict[str, DependencyStatus]) -> str:
    task_list = list(tasks)
    lines: list[str] = []
    for status in VALID_STATUSES:
        lane = [task for task in task_list if task.status == status]
        lines.append(f"{STATUS_LABELS[status]} ({len(lane)})")
        for task in lane:
            flag = " [blocked]" if _blocked_count(statuses, task) else ""
            lines.append(f"  - {task.title} ({task.task_id}){flag}")
    return "\n".join(lines)


def render_stats_plain(stats: TaskStats) -> str:
    return "\n".join(
        [
            f"total: {stats.total}",
            f"completed: {stats.completed}",
            f"overdue: {stats.overdue}",
            f"high_priority: {stats.high_priority}",
            f"efficiency: {stats.efficiency}%",
        ]
    )


def render_stats_json(stats: TaskStats) -> str:
    return json.dumps(asdict(stats), indent=2)


def render_project_list_plain(projects: Iterable[Project], progress: dict[str, int]) -> str:
    rows = list(projects)
    if not rows:
        return "No projects found."
    lines = []
    for project in rows:
        lines.append(
            f"{project.project_id}  {project.name}  [{project.priority}] "
            f"due {project.due_date or '-'}  {progress.get(project.project_id, project.progress)}%"
        )
    return "\n".join(lines)


def render_project_detail_plain(project: Project, progress: int, tasks: list[Task]) -> str:
    lines = [
        f"{project.name} ({project.project_id})",
        f"[{project.category}] [{project.priority}] due {project.due_date or '-'}    progress: {progress}%",
    ]
    if project.description:
        lines.append(project.description)
    lines.append("milestones:")
    for milestone in project.milestones or []:
        mark = "x" if milestone.completed else " "
        lines.append(f"  [{mark}] {milestone.due_date}  {milestone.text} ({milestone.milestone_id})")
    if not project.milestones:
        lines.append("  -")
    lines.append("completion criteria:")
    for criterion in project.completion_criteria or []:
        mark = "x" if criterion.completed else " "
        lines.append(f"  [{mark}] {criterion.text} ({criterion.criterion_id})")
    if not project.completion_criteria:
        lines.append("  -")
    lines.append("tasks:")
    for task in tasks:
        lines.append(f"  [{task.status}] {task.title} ({task.task_id})")
    if not tasks:
        lines.append("  -")
    return "\n".join(lines)


def render_project_json(project: Project, progress: int, tasks: list[Task]) -> str:
    payload = asdict(project)
    payload["computed_progress"] = progress
    payload["tasks"] = [task.task_id for task in tasks]
    return json.dumps(payload, indent=2)


def render_time_entries_plain(entries: Iterable[TimeEntry]) -> str:
    rows = list(entries)
    if not rows:
        return "No time entries found."
    lines = []
    for entry in rows:
        task = f"  task {entry.task_id}" if entry.task_id else ""
        lines.append(
            f"{entry.entry_id}  {entry.date}  {format_duration(entry.duration)}  {entry.description}{task}"
        )
    return "\n".join(lines)


def render_time_entries_json(entries: Iterable[TimeEntry]) -> str:
    return json.dumps([asdict(entry) for entry in entries], indent=2)
