"""Task storage: one interface, an in-memory map and a frontmatter file tree."""

from __future__ import annotations

import copy
from dataclasses import fields
import datetime as dt
from pathlib import Path
from typing import Any, Iterable, Protocol

import yaml

from .models import Clock, Project, Task, TimeEntry

ROOT_DIR_NAME = ".tasq"
TASK_META_KEYS = [f.name for f in fields(Task) if f.name != "description"]
TASK_REQUIRED_KEYS = ("task_id", "title")


class TaskStore(Protocol):
    """Persistence port used by the services; writes are last-write-wins."""

    def list_tasks(self) -> list[Task]: ...
    def get_task(self, task_id: str) -> Task | None: ...
    def save_task(self, task: Task) -> None: ...
    def delete_task(self, task_id: str) -> bool: ...

    def list_projects(self) -> list[Project]: ...
    def get_project(self, project_id: str) -> Project | None: ...
    def save_project(self, project: Project) -> None: ...
    def delete_project(self, project_id: str) -> bool: ...

    def list_time_entries(self) -> list[TimeEntry]: ...
    def save_time_entry(self, entry: TimeEntry) -> None: ...
    def delete_time_entry(self, entry_id: str) -> bool: ...

    def get_active_timer(self) -> dict[str, Any] | None: ...
    def set_active_timer(self, timer: dict[str, Any] | None) -> None: ...

    def get_notified(self, day: str) -> set[str]: ...
    def save_notified(self, day: str, task_ids: Iterable[str]) -> None: ...


def numeric_id_key(value: str) -> tuple[int, str]:
    try:
        return int(value), value
    except ValueError:
        return -1, value


def next_numeric_id(existing: Iterable[str], clock: Clock) -> str:
    """Millisecond-timestamp id, bumped past every existing numeric id."""
    candidate = int(clock().timestamp() * 1000)
    highest = max((numeric_id_key(value)[0] for value in existing), default=-1)
    return str(max(candidate, highest + 1))


class MemoryStore:
    """Map-backed store. Records are copied on the way in and out."""

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}
        self._projects: dict[str, Project] = {}
        self._entries: dict[str, TimeEntry] = {}
        self._timer: dict[str, Any] | None = None
        self._notified: dict[str, set[str]] = {}

    def list_tasks(self) -> list[Task]:
        return [copy.deepcopy(self._tasks[key]) for key in sorted(self._tasks, key=numeric_id_key)]

    def get_task(self, task_id: str) -> Task | None:
        task = self._tasks.get(task_id)
        return copy.deepcopy(task) if task is not None else None

    def save_task(self, task: Task) -> None:
        self._tasks[task.task_id] = copy.deepcopy(task)

    def delete_task(self, task_id: str) -> bool:
        return self._tasks.pop(task_id, None) is not None

    def list_projects(self) -> list[Project]:
        return [copy.deepcopy(self._projects[key]) for key in sorted(self._projects, key=numeric_id_key)]

    def get_project(self, project_id: str) -> Project | None:
        project = self._projects.get(project_id)
        return copy.deepcopy(project) if project is not None else None

    def save_project(self, project: Project) -> None:
        self._projects[project.project_id] = copy.deepcopy(project)

    def delete_project(self, project_id: str) -> bool:
        return self._projects.pop(project_id, None) is not None

    def list_time_entries(self) -> list[TimeEntry]:
        return [copy.deepcopy(self._entries[key]) for key in sorted(self._entries, key=numeric_id_key)]

    def save_time_entry(self, entry: TimeEntry) -> None:
        self._entries[entry.entry_id] = copy.deepcopy(entry)

    def delete_time_entry(self, entry_id: str) -> bool:
        return self._entries.pop(entry_id, None) is not None

    def get_active_timer(self) -> dict[str, Any] | None:
        return dict(self._timer) if self._timer is not None else None

    def set_active_timer(self, timer: dict[str, Any] | None) -> None:
        self._timer = dict(timer) if timer is not None else None

    def get_notified(self, day: str) -> set[str]:
        return set(self._notified.get(day, ()))

    def save_notified(self, day: str, task_ids: Iterable[str]) -> None:
        # Only the current day matters; older days are dropped.
        self._notified = {day: set(task_ids)}


def find_repo_root(start: Path) -> Path | None:
    start = start.resolve()
    for candidate in [start, *start.parents]:
        if (candidate / ".git").exists():
            return candidate
    return None


def discover_tasks_roots(start: Path) -> list[Path]:
    start = start.resolve()
    roots: list[Path] = []
    for candidate in [start, *start.parents]:
        tasks_dir = candidate / ROOT_DIR_NAME
        if tasks_dir.is_dir():
            roots.append(tasks_dir)
    return roots


def choose_tasks_root(start: Path) -> tuple[Path | None, bool]:
    roots = discover_tasks_roots(start)
    if not roots:
        return None, False
    return roots[0], len(roots) > 1


def default_init_root(start: Path) -> Path:
    repo_root = find_repo_root(start)
    base = repo_root if repo_root is not None else start.resolve()
    return base / ROOT_DIR_NAME


def ensure_layout(tasks_root: Path) -> None:
    for name in ("tasks", "projects", "time"):
        (tasks_root / name).mkdir(parents=True, exist_ok=True)


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    if not text.startswith("---\n"):
        return {}, text
    marker = "\n---\n"
    end = text.find(marker, 4)
    if end < 0:
        return {}, text
    raw = text[4:end]
    body = text[end + len(marker) :]
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        data = {}
    return data, body


def render_frontmatter(data: dict[str, Any], body: str) -> str:
    ordered: dict[str, Any] = {}
    for key in TASK_META_KEYS:
        if key in data:
            ordered[key] = data[key]
    dumped = yaml.safe_dump(ordered, sort_keys=False, default_flow_style=False).strip()
    body = body.strip()
    if not body:
        return f"---\n{dumped}\n---\n"
    return f"---\n{dumped}\n---\n\n{body}\n"


def sexagesimal_clock(value: int) -> str:
    """Undo YAML 1.1 reading an unquoted HH:MM as a base-60 integer."""
    return f"{value // 60:02d}:{value % 60:02d}"


def parse_task_file(path: Path) -> Task:
    data, body = split_frontmatter(path.read_text(encoding="utf-8"))
    missing = [key for key in TASK_REQUIRED_KEYS if key not in data]
    if missing:
        raise ValueError(f"Task metadata missing keys {missing} in {path}")
    known = {key: data[key] for key in TASK_META_KEYS if key in data}
    # YAML turns unquoted dates into date objects.
    for key in ("due_date", "created_at", "updated_at"):
        if isinstance(known.get(key), (dt.date, dt.datetime)):
            known[key] = known[key].isoformat()
    if isinstance(known.get("due_time"), int):
        known["due_time"] = sexagesimal_clock(known["due_time"])
    known["description"] = body.strip()
    return Task.from_dict(known)


def _dump_yaml(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(payload, sort_keys=False, default_flow_style=False), encoding="utf-8")


def _load_yaml(path: Path) -> Any:
    return yaml.safe_load(path.read_text(encoding="utf-8"))


class FileStore:
    """One file per record under a tasks root.

    tasks/<id>.md carries YAML frontmatter with the description as body;
    projects/<id>.yaml and time/<id>.yaml hold plain YAML mappings;
    notified/<YYYY-MM-DD>.yaml lists the tasks already given a deadline alert
    that day.
    """

    def __init__(self, tasks_root: Path) -> None:
        self.tasks_root = tasks_root.resolve()

    @property
    def tasks_dir(self) -> Path:
        return self.tasks_root / "tasks"

    @property
    def projects_dir(self) -> Path:
        return self.tasks_root / "projects"

    @property
    def time_dir(self) -> Path:
        return self.tasks_root / "time"

    @property
    def timer_path(self) -> Path:
        return self.tasks_root / "timer.yaml"

    @property
    def notified_dir(self) -> Path:
        return self.tasks_root / "notified"

    def ensure_layout(self) -> None:
        ensure_layout(self.tasks_root)

    def task_path(self, task_id: str) -> Path:
        return self.tasks_dir / f"{task_id}.md"

    def _record_files(self, directory: Path, suffix: str) -> list[Path]:
        if not directory.exists():
            return []
        files = [path for path in directory.iterdir() if path.is_file() and path.suffix == suffix]
        return sorted(files, key=lambda path: numeric_id_key(path.stem))

    def list_tasks(self) -> list[Task]:
        return [parse_task_file(path) for path in self._record_files(self.tasks_dir, ".md")]

    def get_task(self, task_id: str) -> Task | None:
        path = self.task_path(task_id)
        if not path.exists():
            return None
        return parse_task_file(path)

    def save_task(self, task: Task) -> None:
        self.tasks_dir.mkdir(parents=True, exist_ok=True)
        text = render_frontmatter(task.to_dict(), task.description)
        self.task_path(task.task_id).write_text(text, encoding="utf-8")

    def delete_task(self, task_id: str) -> bool:
        path = self.task_path(task_id)
        if not path.exists():
            return False
        path.unlink()
        return True

    def list_projects(self) -> list[Project]:
        return [Project.from_dict(_load_yaml(path)) for path in self._record_files(self.projects_dir, ".yaml")]

    def get_project(self, project_id: str) -> Project | None:
        path = self.projects_dir / f"{project_id}.yaml"
        if not path.exists():
            return None
        return Project.from_dict(_load_yaml(path))

    def save_project(self, project: Project) -> None:
        _dump_yaml(self.projects_dir / f"{project.project_id}.yaml", project.to_dict())

    def delete_project(self, project_id: str) -> bool:
        path = self.projects_dir / f"{project_id}.yaml"
        if not path.exists():
            return False
        path.unlink()
        return True

    def list_time_entries(self) -> list[TimeEntry]:
        return [TimeEntry.from_dict(_load_yaml(path)) for path in self._record_files(self.time_dir, ".yaml")]

    def save_time_entry(self, entry: TimeEntry) -> None:
        _dump_yaml(self.time_dir / f"{entry.entry_id}.yaml", entry.to_dict())

    def delete_time_entry(self, entry_id: str) -> bool:
        path = self.time_dir / f"{entry_id}.yaml"
        if not path.exists():
            return False
        path.unlink()
        return True

    def get_active_timer(self) -> dict[str, Any] | None:
        if not self.timer_path.exists():
            return None
        payload = _load_yaml(self.timer_path)
        return payload if isinstance(payload, dict) else None

    def set_active_timer(self, timer: dict[str, Any] | None) -> None:
        if timer is None:
            if self.timer_path.exists():
                self.timer_path.unlink()
            return
        _dump_yaml(self.timer_path, timer)

    def get_notified(self, day: str) -> set[str]:
        path = self.notified_dir / f"{day}.yaml"
        if not path.exists():
            return set()
        payload = _load_yaml(path)
        return {str(item) for item in payload} if isinstance(payload, list) else set()

    def save_notified(self, day: str, task_ids: Iterable[str]) -> None:
        for stale in self._record_files(self.notified_dir, ".yaml"):
            if stale.stem != day:
                stale.unlink()
        _dump_yaml(self.notified_dir / f"{day}.yaml", sorted(task_ids, key=numeric_id_key))
