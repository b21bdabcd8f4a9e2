"""CLI entrypoint for tasq."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import inspect
import json
import logging
from pathlib import Path
import sys
from typing import Annotated

import typer

from . import render, schema, storage
from .config import Settings, resolve_settings, write_default_config_if_missing
from .logging_setup import setup_logging
from .models import Clock, Task, TaskError, TaskValidationError, system_clock
from .projects import ProjectService
from .prompt_ui import choose_command, choose_status, choose_task, create_form
from .query import ALL, TaskFilters, TaskSort
from .reminders import Alert, ReminderChecker, deadline_message, reminder_label, upcoming_deadlines
from .service import DEFAULT_ACTOR, TaskService
from .timelog import TimeLog, format_duration, format_hours

logger = logging.getLogger(__name__)

CLOCK: Clock = system_clock

NoInteractiveOption = Annotated[
    bool,
    typer.Option("--nointeractive", help="Disable interactive prompts for this command"),
]
TasksRootOption = Annotated[Path | None, typer.Option("--tasks-root", help="Explicit .tasq path")]
JsonOption = Annotated[bool, typer.Option("--json", help="Emit JSON")]
ActorOption = Annotated[str, typer.Option("--actor", help="Name recorded on status changes")]
ForceOption = Annotated[bool, typer.Option("--force", help="Ignore unmet dependencies")]
TaskIdArgument = Annotated[str | None, typer.Argument(help="Task id")]


def _can_interact() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


def _can_prompt(interactive_enabled: bool) -> bool:
    return interactive_enabled and _can_interact()


def _can_render_rich_output() -> bool:
    return sys.stdout.isatty()


app = typer.Typer(
    help="Task manager with dependencies, reminders, projects, and time tracking",
)
depend_app = typer.Typer(help="Add or remove task dependencies")
remind_app = typer.Typer(help="Configure and evaluate task reminders")
project_app = typer.Typer(help="Manage projects, milestones, and completion criteria")
time_app = typer.Typer(help="Log time and run the session timer")
app.add_typer(depend_app, name="depend")
app.add_typer(remind_app, name="remind")
app.add_typer(project_app, name="project")
app.add_typer(time_app, name="time")


def _print_rich(renderable) -> None:
    from rich.console import Console

    Console().print(renderable)


def _echo_root_notice(root: Path, multiple_found: bool) -> None:
    typer.echo(f"Using tasks root: {root}", err=True)
    if multiple_found:
        typer.echo("Warning: multiple .tasq roots found; using nearest ancestor.", err=True)


def _warn_config(message: str) -> None:
    typer.echo(f"Warning: {message}", err=True)


def _resolve_existing_root(tasks_root: Path | None) -> Path:
    if tasks_root is not None:
        root = tasks_root.resolve()
        if not root.exists():
            raise typer.BadParameter(f"tasks root not found: {root}")
        return root

    root, multiple = storage.choose_tasks_root(Path.cwd())
    if root is None:
        raise TaskValidationError("No .tasq root found from current directory upward. Run 'tasq init' first.")
    _echo_root_notice(root, multiple)
    return root


def _resolve_init_root(tasks_root: Path | None) -> Path:
    if tasks_root is not None:
        return tasks_root.resolve()

    root, multiple = storage.choose_tasks_root(Path.cwd())
    if root is not None:
        _echo_root_notice(root, multiple)
        return root

    default_root = storage.default_init_root(Path.cwd())
    typer.echo(f"No .tasq found. Initializing at: {default_root}", err=True)
    return default_root


@dataclass(slots=True)
class _Session:
    root: Path
    settings: Settings
    tasks: TaskService
    projects: ProjectService
    timelog: TimeLog

    def interactive_enabled(self, nointeractive: bool) -> bool:
        return not nointeractive and self.settings.interactive_enabled


def _session(tasks_root: Path | None = None, *, init: bool = False) -> _Session:
    root = _resolve_init_root(tasks_root) if init else _resolve_existing_root(tasks_root)
    store = storage.FileStore(root)
    store.ensure_layout()
    settings = resolve_settings(root, warn=_warn_config)
    clock = CLOCK
    return _Session(
        root=root,
        settings=settings,
        tasks=TaskService(store, clock=clock, settings=settings),
        projects=ProjectService(store, clock=clock),
        timelog=TimeLog(store, clock=clock),
    )


def _run_and_handle(fn) -> None:
    try:
        fn()
    except TaskError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _exit_canceled(code: int) -> None:
    typer.echo("Canceled.")
    raise typer.Exit(code=code)


def _select_task_if_missing(
    session: _Session,
    task_id: str | None,
    prompt: str,
    *,
    interactive_enabled: bool,
) -> str:
    if task_id:
        return task_id
    tasks = session.tasks.list_tasks()
    if not tasks:
        raise TaskValidationError("No tasks available.")
    if not _can_prompt(interactive_enabled):
        raise TaskValidationError("task_id is required in non-interactive mode")
    selected = choose_task(tasks, title=prompt)
    if not selected:
        _exit_canceled(1)
    return selected


def _echo_task_line(verb: str, task: Task) -> None:
    typer.echo(f"{verb}: {task.title} ({task.task_id}) [{task.status}]")


def _command_choices() -> list[tuple[str, str]]:
    choices: list[tuple[str, str]] = []
    for command in app.registered_commands:
        if not command.name or command.callback is None:
            continue
        params = inspect.signature(command.callback).parameters.values()
        if any(param.default is inspect.Parameter.empty for param in params):
            # Needs positional input; not runnable from the palette.
            continue
        doc = (command.callback.__doc__ or "").strip()
        summary = doc.splitlines()[0] if doc else ""
        choices.append((command.name, summary))
    return choices


def _find_command(name: str):
    for command in app.registered_commands:
        if command.name == name and command.callback is not None:
            return command
    return None


def _run_command_picker(ctx: typer.Context, *, tasks_root: Path | None) -> None:
    selected = choose_command(_command_choices(), title="Select a tasq command")
    if not selected:
        _exit_canceled(0)
    command = _find_command(selected)
    if command is None:
        return
    kwargs: dict[str, object] = {}
    if tasks_root is not None:
        kwargs["tasks_root"] = tasks_root
    ctx.invoke(command.callback, **kwargs)


@app.callback(invoke_without_command=True)
def root_callback(
    ctx: typer.Context,
    nointeractive: NoInteractiveOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Open an interactive command picker when no command is provided."""
    if ctx.invoked_subcommand is not None:
        return

    if nointeractive:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=0)

    if not _can_interact():
        typer.echo(ctx.get_help())
        typer.echo("Error: command selection requires an interactive terminal.", err=True)
        raise typer.Exit(code=2)

    _run_command_picker(ctx, tasks_root=tasks_root)


@app.command("init")
def init_cmd(
    nointeractive: NoInteractiveOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Initialize .tasq directory layout and config."""

    def _inner() -> None:
        session = _session(tasks_root, init=True)
        created = write_default_config_if_missing(session.root, interactive_enabled=not nointeractive)
        typer.echo(f"Initialized tasks root: {session.root}")
        if created:
            typer.echo("Created config.yaml")

    _run_and_handle(_inner)


@app.command("create")
def create_cmd(
    title: Annotated[str | None, typer.Argument(help="Task title")] = None,
    description: Annotated[str, typer.Option("--description")] = "",
    priority: Annotated[str, typer.Option("--priority")] = "medium",
    category: Annotated[str, typer.Option("--category")] = "company",
    due: Annotated[str | None, typer.Option("--due", help="YYYY-MM-DD (default today)")] = None,
    due_time: Annotated[str | None, typer.Option("--time", help="HH:MM")] = None,
    depends_on: Annotated[list[str], typer.Option("--depends-on", help="Can be repeated")] = [],
    remind: Annotated[int | None, typer.Option("--remind", help="Minutes before due")] = None,
    project: Annotated[str | None, typer.Option("--project")] = None,
    assignee: Annotated[str | None, typer.Option("--assignee")] = None,
    actor: ActorOption = DEFAULT_ACTOR,
    nointeractive: NoInteractiveOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Create a task in todo."""

    def _inner() -> None:
        session = _session(tasks_root)
        open_form = title is None and _can_prompt(session.interactive_enabled(nointeractive))
        if title is None and not open_form:
            raise TaskValidationError("title is required in non-interactive mode")

        fields = {
            "description": description,
            "priority": priority,
            "category": category,
            "due_date": due,
            "due_time": due_time,
            "dependencies": list(depends_on),
        }
        name = title
        if open_form:
            form = create_form(default_due_date=CLOCK().date().isoformat())
            if form is None:
                _exit_canceled(1)
            name = form.pop("title")
            fields.update(form)

        task = session.tasks.create_task(
            name or "",
            reminder_minutes=remind,
            project_id=project,
            assignee=assignee,
            actor=actor,
            **fields,
        )
        typer.echo(f"Created: {task.title} ({task.task_id})")

    _run_and_handle(_inner)


def _filter_value(value: str) -> str:
    token = value.strip()
    return ALL if token.upper() == ALL else token.lower()


@app.command("list")
def list_cmd(
    status: Annotated[str, typer.Option("--status", help="todo, in_progress, review, done")] = ALL,
    category: Annotated[str, typer.Option("--category")] = ALL,
    priority: Annotated[str, typer.Option("--priority")] = ALL,
    project: Annotated[str | None, typer.Option("--project")] = None,
    assignee: Annotated[str | None, typer.Option("--assignee", help="Only tasks assigned to this name")] = None,
    search: Annotated[str, typer.Option("--search", help="Match title or description")] = "",
    sort: Annotated[str | None, typer.Option("--sort", help="PRIORITY, DUE_DATE, CREATED")] = None,
    order: Annotated[str | None, typer.Option("--order", help="ASC or DESC")] = None,
    board: Annotated[bool, typer.Option("--board", help="Show status lanes side by side")] = False,
    as_json: JsonOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """List tasks filtered and sorted."""

    def _inner() -> None:
        session = _session(tasks_root)
        filters = TaskFilters(
            search=search,
            status=_filter_value(status),
            category=_filter_value(category),
            priority=_filter_value(priority),
            project_id=project,
            assignee=assignee,
        )
        task_sort = TaskSort(
            (sort or session.settings.list_sort).upper(),
            (order or session.settings.list_order).upper(),
        )
        tasks = session.tasks.list_tasks(filters, task_sort)
        statuses = session.tasks.dependency_statuses(tasks)
        today = CLOCK().date()
        if as_json:
            typer.echo(render.render_task_list_json(tasks, statuses))
        elif board:
            if _can_render_rich_output():
                _print_rich(render.render_board_rich(tasks, statuses))
            else:
                typer.echo(render.render_board_plain(tasks, statuses))
        elif _can_render_rich_output():
            _print_rich(render.render_task_list_rich(tasks, statuses, today, group_by_status=status == ALL))
        else:
            typer.echo(render.render_task_list_plain(tasks, statuses, today))

    _run_and_handle(_inner)


@app.command("view")
def view_cmd(
    task_id: TaskIdArgument = None,
    as_json: JsonOption = False,
    nointeractive: NoInteractiveOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Show a detailed view of one task."""

    def _inner() -> None:
        session = _session(tasks_root)
        selected = _select_task_if_missing(
            session,
            task_id,
            "Select a task to view",
            interactive_enabled=session.interactive_enabled(nointeractive),
        )
        task = session.tasks.get_task(selected)
        status = session.tasks.dependency_status(task)
        dependents = session.tasks.dependents(task)
        if as_json:
            typer.echo(render.render_task_detail_json(task, status, dependents))
        elif _can_render_rich_output():
            _print_rich(render.render_task_detail_rich(task, status, dependents, CLOCK().date()))
        else:
            typer.echo(render.render_task_detail_plain(task, status, dependents, CLOCK().date()))

    _run_and_handle(_inner)


@app.command("update")
def update_cmd(
    task_id: Annotated[str, typer.Argument(help="Task id")],
    title: Annotated[str | None, typer.Option("--title")] = None,
    description: Annotated[str | None, typer.Option("--description")] = None,
    priority: Annotated[str | None, typer.Option("--priority")] = None,
    category: Annotated[str | None, typer.Option("--category")] = None,
    due: Annotated[str | None, typer.Option("--due")] = None,
    due_time: Annotated[str | None, typer.Option("--time")] = None,
    clear_time: Annotated[bool, typer.Option("--clear-time")] = False,
    project: Annotated[str | None, typer.Option("--project")] = None,
    clear_project: Annotated[bool, typer.Option("--clear-project")] = False,
    assignee: Annotated[str | None, typer.Option("--assignee")] = None,
    depends_on: Annotated[list[str], typer.Option("--depends-on", help="Replaces current dependencies")] = [],
    clear_depends_on: Annotated[bool, typer.Option("--clear-depends-on")] = False,
    actor: ActorOption = DEFAULT_ACTOR,
    tasks_root: TasksRootOption = None,
) -> None:
    """Edit task fields."""

    def _inner() -> None:
        session = _session(tasks_root)
        dependencies: list[str] | None = None
        if clear_depends_on:
            dependencies = []
        elif depends_on:
            dependencies = list(depends_on)
        task = session.tasks.update_task(
            task_id,
            title=title,
            description=description,
            priority=priority,
            category=category,
            due_date=due,
            due_time=due_time,
            clear_due_time=clear_time,
            project_id=project,
            clear_project=clear_project,
            assignee=assignee,
            dependencies=dependencies,
            actor=actor,
        )
        _echo_task_line("Updated", task)

    _run_and_handle(_inner)


@app.command("status")
def status_cmd(
    task_id: TaskIdArgument = None,
    status: Annotated[str | None, typer.Argument(help="todo, in_progress, review, done")] = None,
    note: Annotated[str | None, typer.Option("--note", help="Recorded with the status change")] = None,
    force: ForceOption = False,
    actor: ActorOption = DEFAULT_ACTOR,
    nointeractive: NoInteractiveOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Move a task to another status lane."""

    def _inner() -> None:
        session = _session(tasks_root)
        interactive_enabled = session.interactive_enabled(nointeractive)
        selected = _select_task_if_missing(
            session,
            task_id,
            "Select a task to move",
            interactive_enabled=interactive_enabled,
        )
        target = status
        if target is None:
            if not _can_prompt(interactive_enabled):
                raise TaskValidationError("status is required in non-interactive mode")
            target = choose_status(session.tasks.get_task(selected).status)
            if target is None:
                _exit_canceled(1)
        task = session.tasks.set_status(selected, target, actor=actor, notes=note, force=force)
        _echo_task_line("Moved", task)

    _run_and_handle(_inner)


@app.command("note")
def note_cmd(
    task_id: Annotated[str, typer.Argument(help="Task id")],
    notes: Annotated[str, typer.Argument(help="Progress note")],
    actor: ActorOption = DEFAULT_ACTOR,
    tasks_root: TasksRootOption = None,
) -> None:
    """Add a progress note without changing status."""

    def _inner() -> None:
        session = _session(tasks_root)
        task = session.tasks.add_note(task_id, notes, actor=actor)
        _echo_task_line("Noted", task)

    _run_and_handle(_inner)


@app.command("toggle")
def toggle_cmd(
    task_id: TaskIdArgument = None,
    force: ForceOption = False,
    actor: ActorOption = DEFAULT_ACTOR,
    nointeractive: NoInteractiveOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Mark a task done, or reopen a done task."""

    def _inner() -> None:
        session = _session(tasks_root)
        selected = _select_task_if_missing(
            session,
            task_id,
            "Select a task to toggle",
            interactive_enabled=session.interactive_enabled(nointeractive),
        )
        task = session.tasks.toggle_task(selected, actor=actor, force=force)
        _echo_task_line("Toggled", task)

    _run_and_handle(_inner)


@app.command("advance")
def advance_cmd(
    task_id: TaskIdArgument = None,
    force: ForceOption = False,
    actor: ActorOption = DEFAULT_ACTOR,
    nointeractive: NoInteractiveOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Move a task one lane forward."""

    def _inner() -> None:
        session = _session(tasks_root)
        selected = _select_task_if_missing(
            session,
            task_id,
            "Select a task to advance",
            interactive_enabled=session.interactive_enabled(nointeractive),
        )
        task = session.tasks.advance_task(selected, actor=actor, force=force)
        _echo_task_line("Moved", task)

    _run_and_handle(_inner)


@app.command("delete")
def delete_cmd(
    task_id: TaskIdArgument = None,
    actor: ActorOption = DEFAULT_ACTOR,
    nointeractive: NoInteractiveOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Delete a task and drop it from other tasks' dependencies."""

    def _inner() -> None:
        session = _session(tasks_root)
        selected = _select_task_if_missing(
            session,
            task_id,
            "Select a task to delete",
            interactive_enabled=session.interactive_enabled(nointeractive),
        )
        task = session.tasks.delete_task(selected, actor=actor)
        typer.echo(f"Deleted: {task.title} ({task.task_id})")

    _run_and_handle(_inner)


@app.command("upcoming")
def upcoming_cmd(
    days: Annotated[int | None, typer.Option("--days", min=0, help="Look-ahead window in days")] = None,
    as_json: JsonOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """List open tasks due within the deadline window."""

    def _inner() -> None:
        session = _session(tasks_root)
        window = days if days is not None else session.settings.deadline_window_days
        rows = upcoming_deadlines(session.tasks.all_tasks(), CLOCK(), window)
        rows.sort(key=lambda row: row[1])
        if as_json:
            payload = [{"task_id": task.task_id, "title": task.title, "days_until": n} for task, n in rows]
            typer.echo(json.dumps(payload, indent=2))
            return
        if not rows:
            typer.echo("No upcoming deadlines.")
            return
        for task, days_until in rows:
            typer.echo(deadline_message(task, days_until))

    _run_and_handle(_inner)


@app.command("overdue")
def overdue_cmd(
    as_json: JsonOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """List open tasks whose due date has passed."""

    def _inner() -> None:
        session = _session(tasks_root)
        tasks = session.tasks.overdue_tasks()
        statuses = session.tasks.dependency_statuses(tasks)
        if as_json:
            typer.echo(render.render_task_list_json(tasks, statuses))
        else:
            typer.echo(render.render_task_list_plain(tasks, statuses, CLOCK().date()))

    _run_and_handle(_inner)


@app.command("stats")
def stats_cmd(
    project: Annotated[str | None, typer.Option("--project", help="Only count this project's tasks")] = None,
    as_json: JsonOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Show task totals and completion efficiency."""

    def _inner() -> None:
        session = _session(tasks_root)
        tasks = None
        if project is not None:
            tasks = session.tasks.list_tasks(TaskFilters(project_id=project))
        stats = session.tasks.stats(tasks)
        if as_json:
            typer.echo(render.render_stats_json(stats))
        else:
            typer.echo(render.render_stats_plain(stats))

    _run_and_handle(_inner)


@app.command("import")
def import_cmd(
    source: Annotated[Path, typer.Argument(help="JSON array of SQL rows or documents")],
    replace: Annotated[bool, typer.Option("--replace", help="Overwrite tasks with the same id")] = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Import tasks from a legacy JSON export."""

    def _inner() -> None:
        session = _session(tasks_root)
        try:
            payload = json.loads(source.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise TaskValidationError(f"Unable to read {source}: {exc}") from exc
        if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
            raise TaskValidationError(f"{source} must contain a JSON array of objects")
        tasks = [schema.from_record(record) for record in payload]
        imported = session.tasks.import_tasks(tasks, replace=replace)
        typer.echo(f"Imported {len(imported)} task(s)")

    _run_and_handle(_inner)


class ExportFormat(str, Enum):
    sql = "sql"
    document = "document"


@app.command("export")
def export_cmd(
    fmt: Annotated[
        ExportFormat,
        typer.Option("--format", case_sensitive=False, help="Legacy record shape"),
    ] = ExportFormat.document,
    output: Annotated[Path | None, typer.Option("--output", help="Write to a file instead of stdout")] = None,
    tasks_root: TasksRootOption = None,
) -> None:
    """Export tasks as legacy SQL rows or documents."""

    def _inner() -> None:
        session = _session(tasks_root)
        convert = schema.to_sql_row if fmt is ExportFormat.sql else schema.to_document
        text = json.dumps([convert(task) for task in session.tasks.all_tasks()], indent=2)
        if output is None:
            typer.echo(text)
        else:
            output.write_text(text + "\n", encoding="utf-8")
            typer.echo(f"Wrote {output}")

    _run_and_handle(_inner)


@depend_app.command("add")
def depend_add_cmd(
    task_id: Annotated[str, typer.Argument(help="Task that waits")],
    depends_on: Annotated[str, typer.Argument(help="Task it waits on")],
    actor: ActorOption = DEFAULT_ACTOR,
    tasks_root: TasksRootOption = None,
) -> None:
    """Make a task depend on another."""

    def _inner() -> None:
        session = _session(tasks_root)
        task = session.tasks.add_dependency(task_id, depends_on, actor=actor)
        typer.echo(f"{task.task_id} now depends on: {', '.join(task.dependencies)}")

    _run_and_handle(_inner)


@depend_app.command("remove")
def depend_remove_cmd(
    task_id: Annotated[str, typer.Argument(help="Task that waits")],
    depends_on: Annotated[str, typer.Argument(help="Dependency to drop")],
    actor: ActorOption = DEFAULT_ACTOR,
    tasks_root: TasksRootOption = None,
) -> None:
    """Remove a dependency edge."""

    def _inner() -> None:
        session = _session(tasks_root)
        task = session.tasks.remove_dependency(task_id, depends_on, actor=actor)
        remaining = ", ".join(task.dependencies) if task.dependencies else "-"
        typer.echo(f"{task.task_id} now depends on: {remaining}")

    _run_and_handle(_inner)


@remind_app.command("cycle")
def remind_cycle_cmd(
    task_id: Annotated[str, typer.Argument(help="Task id")],
    tasks_root: TasksRootOption = None,
) -> None:
    """Step the reminder through none, 15m, 1h, 1d."""

    def _inner() -> None:
        session = _session(tasks_root)
        task = session.tasks.cycle_reminder(task_id)
        typer.echo(f"{task.task_id}: {reminder_label(task.reminder_minutes)}")

    _run_and_handle(_inner)


@remind_app.command("set")
def remind_set_cmd(
    task_id: Annotated[str, typer.Argument(help="Task id")],
    minutes: Annotated[int, typer.Argument(min=0, help="Minutes before due; 0 clears")],
    tasks_root: TasksRootOption = None,
) -> None:
    """Set a custom reminder offset."""

    def _inner() -> None:
        session = _session(tasks_root)
        task = session.tasks.set_reminder(task_id, minutes)
        typer.echo(f"{task.task_id}: {reminder_label(task.reminder_minutes)}")

    _run_and_handle(_inner)


def _echo_alert(alert: Alert) -> None:
    typer.echo(alert.message)


def _checker(session: _Session) -> ReminderChecker:
    return ReminderChecker(
        session.tasks,
        _echo_alert,
        clock=CLOCK,
        default_time=session.settings.default_due_time,
        window_days=session.settings.deadline_window_days,
    )


@remind_app.command("check")
def remind_check_cmd(tasks_root: TasksRootOption = None) -> None:
    """Fire due reminders and deadline alerts once."""

    def _inner() -> None:
        session = _session(tasks_root)
        alerts = _checker(session).check_once()
        if not alerts:
            typer.echo("Nothing due.")

    _run_and_handle(_inner)


@remind_app.command("watch")
def remind_watch_cmd(
    interval: Annotated[int | None, typer.Option("--interval", min=1, help="Seconds between checks")] = None,
    iterations: Annotated[int | None, typer.Option("--iterations", min=1, help="Stop after N checks")] = None,
    tasks_root: TasksRootOption = None,
) -> None:
    """Poll for reminders until interrupted."""

    def _inner() -> None:
        session = _session(tasks_root)
        seconds = interval or session.settings.poll_interval_seconds
        logger.info("Watching reminders every %ss in %s", seconds, session.root)
        try:
            _checker(session).run(seconds, iterations=iterations)
        except KeyboardInterrupt:
            typer.echo("Stopped.")

    _run_and_handle(_inner)


@project_app.command("list")
def project_list_cmd(
    search: Annotated[str, typer.Option("--search")] = "",
    as_json: JsonOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """List projects with progress."""

    def _inner() -> None:
        session = _session(tasks_root)
        projects = session.projects.list_projects(search)
        progress = {p.project_id: session.projects.project_progress(p) for p in projects}
        if as_json:
            payload = [{**p.to_dict(), "computed_progress": progress[p.project_id]} for p in projects]
            typer.echo(json.dumps(payload, indent=2))
        else:
            typer.echo(render.render_project_list_plain(projects, progress))

    _run_and_handle(_inner)


@project_app.command("create")
def project_create_cmd(
    name: Annotated[str, typer.Argument(help="Project name")],
    description: Annotated[str, typer.Option("--description")] = "",
    category: Annotated[str, typer.Option("--category")] = "company",
    priority: Annotated[str, typer.Option("--priority")] = "medium",
    due: Annotated[str, typer.Option("--due", help="YYYY-MM-DD")] = "",
    tasks_root: TasksRootOption = None,
) -> None:
    """Create a project."""

    def _inner() -> None:
        session = _session(tasks_root)
        project = session.projects.create_project(
            name,
            description=description,
            category=category,
            priority=priority,
            due_date=due,
        )
        typer.echo(f"Created project: {project.name} ({project.project_id})")

    _run_and_handle(_inner)


@project_app.command("view")
def project_view_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id")],
    as_json: JsonOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Show a project with milestones, criteria, and tasks."""

    def _inner() -> None:
        session = _session(tasks_root)
        project = session.projects.get_project(project_id)
        progress = session.projects.project_progress(project)
        tasks = session.projects.project_tasks(project.project_id)
        if as_json:
            typer.echo(render.render_project_json(project, progress, tasks))
        else:
            typer.echo(render.render_project_detail_plain(project, progress, tasks))

    _run_and_handle(_inner)


@project_app.command("update")
def project_update_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id")],
    name: Annotated[str | None, typer.Option("--name")] = None,
    description: Annotated[str | None, typer.Option("--description")] = None,
    category: Annotated[str | None, typer.Option("--category")] = None,
    priority: Annotated[str | None, typer.Option("--priority")] = None,
    due: Annotated[str | None, typer.Option("--due")] = None,
    tasks_root: TasksRootOption = None,
) -> None:
    """Edit project fields."""

    def _inner() -> None:
        session = _session(tasks_root)
        project = session.projects.update_project(
            project_id,
            name=name,
            description=description,
            category=category,
            priority=priority,
            due_date=due,
        )
        typer.echo(f"Updated project: {project.name} ({project.project_id})")

    _run_and_handle(_inner)


@project_app.command("delete")
def project_delete_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id")],
    tasks_root: TasksRootOption = None,
) -> None:
    """Delete a project and unlink its tasks."""

    def _inner() -> None:
        session = _session(tasks_root)
        project = session.projects.delete_project(project_id)
        typer.echo(f"Deleted project: {project.name} ({project.project_id})")

    _run_and_handle(_inner)


@project_app.command("milestone-add")
def milestone_add_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id")],
    text: Annotated[str, typer.Argument(help="Milestone text")],
    due: Annotated[str, typer.Argument(help="YYYY-MM-DD")],
    tasks_root: TasksRootOption = None,
) -> None:
    """Add a milestone to a project."""

    def _inner() -> None:
        session = _session(tasks_root)
        milestone = session.projects.add_milestone(project_id, text, due)
        typer.echo(f"Added milestone: {milestone.text} ({milestone.milestone_id})")

    _run_and_handle(_inner)


@project_app.command("milestone-toggle")
def milestone_toggle_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id")],
    milestone_id: Annotated[str, typer.Argument(help="Milestone id")],
    tasks_root: TasksRootOption = None,
) -> None:
    """Flip a milestone between open and completed."""

    def _inner() -> None:
        session = _session(tasks_root)
        session.projects.toggle_milestone(project_id, milestone_id)
        typer.echo(f"Toggled milestone: {milestone_id}")

    _run_and_handle(_inner)


@project_app.command("milestone-delete")
def milestone_delete_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id")],
    milestone_id: Annotated[str, typer.Argument(help="Milestone id")],
    tasks_root: TasksRootOption = None,
) -> None:
    """Remove a milestone."""

    def _inner() -> None:
        session = _session(tasks_root)
        session.projects.delete_milestone(project_id, milestone_id)
        typer.echo(f"Deleted milestone: {milestone_id}")

    _run_and_handle(_inner)


@project_app.command("criterion-add")
def criterion_add_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id")],
    text: Annotated[str, typer.Argument(help="Criterion text")],
    tasks_root: TasksRootOption = None,
) -> None:
    """Add a completion criterion to a project."""

    def _inner() -> None:
        session = _session(tasks_root)
        criterion = session.projects.add_criterion(project_id, text)
        typer.echo(f"Added criterion: {criterion.text} ({criterion.criterion_id})")

    _run_and_handle(_inner)


@project_app.command("criterion-toggle")
def criterion_toggle_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id")],
    criterion_id: Annotated[str, typer.Argument(help="Criterion id")],
    tasks_root: TasksRootOption = None,
) -> None:
    """Flip a completion criterion."""

    def _inner() -> None:
        session = _session(tasks_root)
        session.projects.toggle_criterion(project_id, criterion_id)
        typer.echo(f"Toggled criterion: {criterion_id}")

    _run_and_handle(_inner)


@project_app.command("criterion-delete")
def criterion_delete_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id")],
    criterion_id: Annotated[str, typer.Argument(help="Criterion id")],
    tasks_root: TasksRootOption = None,
) -> None:
    """Remove a completion criterion."""

    def _inner() -> None:
        session = _session(tasks_root)
        session.projects.delete_criterion(project_id, criterion_id)
        typer.echo(f"Deleted criterion: {criterion_id}")

    _run_and_handle(_inner)


@time_app.command("log")
def time_log_cmd(
    description: Annotated[str, typer.Argument(help="What the time was spent on")],
    hours: Annotated[int, typer.Option("--hours", min=0)] = 0,
    minutes: Annotated[int, typer.Option("--minutes", min=0)] = 0,
    task: Annotated[str | None, typer.Option("--task", help="Attribute the entry to a task")] = None,
    tasks_root: TasksRootOption = None,
) -> None:
    """Record a finished work session."""

    def _inner() -> None:
        session = _session(tasks_root)
        entry = session.timelog.log_entry(description, hours=hours, minutes=minutes, task_id=task)
        typer.echo(f"Logged {format_duration(entry.duration)}: {entry.description} ({entry.entry_id})")

    _run_and_handle(_inner)


@time_app.command("start")
def time_start_cmd(
    description: Annotated[str, typer.Argument(help="What you are working on")] = "",
    task: Annotated[str | None, typer.Option("--task")] = None,
    tasks_root: TasksRootOption = None,
) -> None:
    """Start the session timer."""

    def _inner() -> None:
        session = _session(tasks_root)
        timer = session.timelog.start_timer(description, task_id=task)
        typer.echo(f"Timer started at {timer['start_time']}")

    _run_and_handle(_inner)


@time_app.command("stop")
def time_stop_cmd(tasks_root: TasksRootOption = None) -> None:
    """Stop the timer and save the session."""

    def _inner() -> None:
        session = _session(tasks_root)
        entry = session.timelog.stop_timer()
        typer.echo(f"Logged {format_duration(entry.duration)}: {entry.description} ({entry.entry_id})")

    _run_and_handle(_inner)


@time_app.command("status")
def time_status_cmd(tasks_root: TasksRootOption = None) -> None:
    """Show the running timer and period totals."""

    def _inner() -> None:
        session = _session(tasks_root)
        timer = session.timelog.active_timer()
        if timer is None:
            typer.echo("No timer running.")
        else:
            elapsed = format_duration(session.timelog.elapsed_seconds())
            typer.echo(f"Running: {timer.get('description') or 'Untitled session'} {elapsed}")
        typer.echo(f"This week: {format_hours(session.timelog.week_total())}")
        typer.echo(f"This month: {format_hours(session.timelog.month_total())}")

    _run_and_handle(_inner)


@time_app.command("list")
def time_list_cmd(
    task: Annotated[str | None, typer.Option("--task")] = None,
    as_json: JsonOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """List time entries."""

    def _inner() -> None:
        session = _session(tasks_root)
        entries = session.timelog.entries_for_task(task) if task else session.timelog.entries()
        if as_json:
            typer.echo(render.render_time_entries_json(entries))
        else:
            typer.echo(render.render_time_entries_plain(entries))
            if task:
                typer.echo(f"Total: {format_duration(session.timelog.task_total(task))}")

    _run_and_handle(_inner)


@time_app.command("delete")
def time_delete_cmd(
    entry_id: Annotated[str, typer.Argument(help="Time entry id")],
    tasks_root: TasksRootOption = None,
) -> None:
    """Delete a time entry."""

    def _inner() -> None:
        session = _session(tasks_root)
        session.timelog.delete_entry(entry_id)
        typer.echo(f"Deleted time entry: {entry_id}")

    _run_and_handle(_inner)


def _root_from_argv(argv: list[str]) -> Path | None:
    for index, arg in enumerate(argv):
        if arg == "--tasks-root" and index + 1 < len(argv):
            return Path(argv[index + 1]).resolve()
        if arg.startswith("--tasks-root="):
            return Path(arg.split("=", 1)[1]).resolve()
    return None


def _logging_root(argv: list[str]) -> Path | None:
    """Tasks root that gets the log file, read before Typer parses argv."""
    explicit = _root_from_argv(argv)
    if explicit is not None:
        return explicit if explicit.is_dir() else None
    root, _ = storage.choose_tasks_root(Path.cwd())
    return root


def main() -> None:
    root = _logging_root(sys.argv[1:])
    notices: list[str] = []
    settings = resolve_settings(root, warn=notices.append)
    setup_logging(log_dir=root, console_level=settings.log_level)
    # Commands echo config problems themselves; the startup read only logs them.
    for message in notices:
        logger.info("Config: %s", message)
    app()


if __name__ == "__main__":
    main()
