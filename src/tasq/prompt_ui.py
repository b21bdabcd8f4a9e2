"""Prompt-based interactive helpers."""

from __future__ import annotations

from typing import Any

import typer

from .models import VALID_CATEGORIES, VALID_PRIORITIES, VALID_STATUSES, STATUS_LABELS, Task
from .selector_ui import SelectorUnavailableError, select_fuzzy, select_one


def _warn_selector_fallback(exc: Exception) -> None:
    message = str(exc)
    if not message:
        return
    typer.echo(f"Warning: {message}; falling back to numeric prompts.", err=True)


def _safe_prompt(message: str, *, default: str = "") -> str | None:
    try:
        return typer.prompt(message, default=default, show_default=bool(default))
    except (typer.Abort, KeyboardInterrupt, EOFError):
        return None


def _prompt_single_choice(title: str, options: list[tuple[str, str]], default_value: str) -> str | None:
    try:
        selected = select_one(title, options, default_value=default_value)
    except SelectorUnavailableError as exc:
        _warn_selector_fallback(exc)
    else:
        return selected

    typer.echo(title)
    default_index = 1
    for idx, (value, label) in enumerate(options, start=1):
        typer.echo(f"{idx}. {label}")
        if value == default_value:
            default_index = idx

    while True:
        raw = _safe_prompt("Enter number", default=str(default_index))
        if raw is None:
            return None
        try:
            index = int(raw)
        except ValueError:
            typer.echo("Invalid selection. Enter a number.")
            continue
        if 1 <= index <= len(options):
            return options[index - 1][0]
        typer.echo("Selection out of range.")


def _task_label(task: Task) -> str:
    return f"{task.title} ({task.task_id}) [{task.status}]"


def choose_task(tasks: list[Task], title: str = "Select task") -> str | None:
    """Return the chosen task id, or None on cancel."""
    if not tasks:
        return None

    options = [(task.task_id, _task_label(task)) for task in tasks]
    try:
        selected = select_fuzzy(title, options)
    except SelectorUnavailableError as exc:
        _warn_selector_fallback(exc)
    else:
        return selected

    typer.echo(title)
    for idx, task in enumerate(tasks, start=1):
        typer.echo(f"{idx}. {_task_label(task)}")
    typer.echo("0. cancel")

    raw = _safe_prompt("Enter number", default="1")
    if raw is None:
        return None
    try:
        index = int(raw)
    except ValueError:
        return None
    if 1 <= index <= len(tasks):
        return tasks[index - 1].task_id
    return None


def choose_status(current: str, title: str = "Move to") -> str | None:
    options = [(status, STATUS_LABELS[status]) for status in VALID_STATUSES]
    return _prompt_single_choice(title, options, default_value=current)


def choose_command(
    commands: list[tuple[str, str]],
    title: str = "Select command",
) -> str | None:
    if not commands:
        return None

    selector_options = [(name, f"{name:<8}  {summary}".rstrip()) for name, summary in commands]
    try:
        selected = select_one(title, selector_options, default_value=commands[0][0])
    except SelectorUnavailableError as exc:
        _warn_selector_fallback(exc)
    else:
        return selected

    typer.echo("")
    typer.echo("tasq command palette")
    typer.echo("=" * 72)
    typer.echo(title)
    typer.echo("-" * 72)
    for idx, (name, summary) in enumerate(commands, start=1):
        typer.echo(f"{idx:>2}. {name:<8}  {summary}")
    typer.echo(" 0. cancel")

    raw = _safe_prompt("Enter number", default="1")
    if raw is None:
        return None
    try:
        index = int(raw)
    except ValueError:
        return None
    if 1 <= index <= len(commands):
        return commands[index - 1][0]
    return None


def create_form(
    default_title: str | None = None,
    default_due_date: str = "",
) -> dict[str, Any] | None:
    title = _safe_prompt("title", default=default_title or "")
    if title is None:
        return None
    priority = _prompt_single_choice(
        "priority",
        [(value, value) for value in VALID_PRIORITIES],
        default_value="medium",
    )
    if priority is None:
        return None
    category = _prompt_single_choice(
        "category",
        [(value, value) for value in VALID_CATEGORIES],
        default_value="company",
    )
    if category is None:
        return None
    due_date = _safe_prompt("due date (YYYY-MM-DD)", default=default_due_date)
    if due_date is None:
        return None
    due_time = _safe_prompt("due time (HH:MM, blank for none)", default="")
    if due_time is None:
        return None
    description = _safe_prompt("description", default="")
    if description is None:
        return None
    dependencies = _safe_prompt("depends on (comma separated task ids)", default="")
    if dependencies is None:
        return None
    return {
        "title": title.strip(),
        "priority": priority,
        "category": category,
        "due_date": due_date.strip() or None,
        "due_time": due_time.strip() or None,
        "description": description.strip(),
        "dependencies": [dep.strip() for dep in dependencies.split(",") if dep.strip()],
    }
