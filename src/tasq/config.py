"""Loading and validating the tasks-root config.yaml."""

from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
from pathlib import Path
from typing import Any, Callable

import yaml

from .query import SORT_KEYS, SORT_ORDERS
from .reminders import DEFAULT_DEADLINE_WINDOW_DAYS, DEFAULT_DUE_TIME
from .storage import sexagesimal_clock

Warn = Callable[[str], None]

DEFAULT_INTERACTIVE_ENABLED = True
DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_POLL_INTERVAL_SECONDS = 60
DEFAULT_LIST_SORT = "CREATED"
DEFAULT_LIST_ORDER = "DESC"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

SUPPORTED_SETTINGS_KEYS = {"interactive_enabled", "log_level", "workflow", "reminders", "list"}


@dataclass(slots=True)
class Settings:
    interactive_enabled: bool = DEFAULT_INTERACTIVE_ENABLED
    log_level: str = DEFAULT_LOG_LEVEL
    enforce_dependencies: bool = False
    default_due_time: str = DEFAULT_DUE_TIME
    deadline_window_days: int = DEFAULT_DEADLINE_WINDOW_DAYS
    poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS
    list_sort: str = DEFAULT_LIST_SORT
    list_order: str = DEFAULT_LIST_ORDER


def config_path(tasks_root: Path) -> Path:
    return tasks_root / "config.yaml"


def default_config(interactive_enabled: bool = DEFAULT_INTERACTIVE_ENABLED) -> dict[str, Any]:
    return {
        "settings": {
            "interactive_enabled": interactive_enabled,
            "log_level": DEFAULT_LOG_LEVEL,
            "workflow": {"enforce_dependencies": False},
            "reminders": {
                "default_due_time": DEFAULT_DUE_TIME,
                "deadline_window_days": DEFAULT_DEADLINE_WINDOW_DAYS,
                "poll_interval_seconds": DEFAULT_POLL_INTERVAL_SECONDS,
            },
            "list": {"sort": DEFAULT_LIST_SORT, "order": DEFAULT_LIST_ORDER},
        }
    }


def write_default_config_if_missing(
    tasks_root: Path,
    interactive_enabled: bool = DEFAULT_INTERACTIVE_ENABLED,
) -> bool:
    path = config_path(tasks_root)
    if path.exists():
        return False
    payload = yaml.safe_dump(
        default_config(interactive_enabled),
        sort_keys=False,
        default_flow_style=False,
    )
    path.write_text(payload, encoding="utf-8")
    return True


def read_config(tasks_root: Path, warn: Warn | None = None) -> dict[str, Any]:
    path = config_path(tasks_root)
    if not path.exists():
        return {}
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError):
        if warn is not None:
            warn(f"Unable to parse config at {path}. Falling back to defaults.")
        return {}
    if not isinstance(payload, dict):
        if warn is not None:
            warn(f"Invalid config format at {path}. Falling back to defaults.")
        return {}
    return payload


def _section(settings: dict[str, Any], name: str, path: Path, warn: Warn | None) -> dict[str, Any]:
    section = settings.get(name, {})
    if section is None:
        return {}
    if not isinstance(section, dict):
        if warn is not None:
            warn(f"Invalid settings.{name} section in {path}. Using defaults.")
        return {}
    return section


def _bool(value: Any, key: str, default: bool, path: Path, warn: Warn | None) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        if warn is not None:
            warn(f"Invalid settings.{key} in {path}. Using default '{default}'.")
        return default
    return value


def _positive_int(value: Any, key: str, default: int, path: Path, warn: Warn | None) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        if warn is not None:
            warn(f"Invalid settings.{key} in {path}. Using default '{default}'.")
        return default
    return value


def _choice(value: Any, key: str, choices: tuple[str, ...], default: str, path: Path, warn: Warn | None) -> str:
    if value is None:
        return default
    normalized = str(value).upper()
    if normalized not in choices:
        if warn is not None:
            warn(f"Invalid settings.{key} in {path}. Using default '{default}'.")
        return default
    return normalized


def _clock_time(value: Any, key: str, default: str, path: Path, warn: Warn | None) -> str:
    if value is None:
        return default
    if isinstance(value, int) and not isinstance(value, bool):
        value = sexagesimal_clock(value)
    try:
        dt.time.fromisoformat(str(value))
    except ValueError:
        if warn is not None:
            warn(f"Invalid settings.{key} in {path}. Using default '{default}'.")
        return default
    return str(value)


def resolve_settings(tasks_root: Path | None, warn: Warn | None = None) -> Settings:
    if tasks_root is None:
        return Settings()
    path = config_path(tasks_root)
    data = read_config(tasks_root, warn=warn)
    for key in data.keys():
        if key != "settings" and warn is not None:
            warn(f"Unsupported config key '{key}' in {path}. Ignoring.")

    settings = data.get("settings", {})
    if not isinstance(settings, dict):
        if warn is not None:
            warn(f"Invalid settings section in {path}. Using defaults.")
        return Settings()

    for key in settings.keys():
        if key not in SUPPORTED_SETTINGS_KEYS and warn is not None:
            warn(f"Unsupported settings key '{key}' in {path}. Ignoring.")

    workflow = _section(settings, "workflow", path, warn)
    reminders = _section(settings, "reminders", path, warn)
    listing = _section(settings, "list", path, warn)

    return Settings(
        interactive_enabled=_bool(
            settings.get("interactive_enabled"), "interactive_enabled", DEFAULT_INTERACTIVE_ENABLED, path, warn
        ),
        log_level=_choice(settings.get("log_level"), "log_level", LOG_LEVELS, DEFAULT_LOG_LEVEL, path, warn),
        enforce_dependencies=_bool(
            workflow.get("enforce_dependencies"), "workflow.enforce_dependencies", False, path, warn
        ),
        default_due_time=_clock_time(
            reminders.get("default_due_time"), "reminders.default_due_time", DEFAULT_DUE_TIME, path, warn
        ),
        deadline_window_days=_positive_int(
            reminders.get("deadline_window_days"),
            "reminders.deadline_window_days",
            DEFAULT_DEADLINE_WINDOW_DAYS,
            path,
            warn,
        ),
        poll_interval_seconds=_positive_int(
            reminders.get("poll_interval_seconds"),
            "reminders.poll_interval_seconds",
            DEFAULT_POLL_INTERVAL_SECONDS,
            path,
            warn,
        ),
        list_sort=_choice(listing.get("sort"), "list.sort", SORT_KEYS, DEFAULT_LIST_SORT, path, warn),
        list_order=_choice(listing.get("order"), "list.order", SORT_ORDERS, DEFAULT_LIST_ORDER, path, warn),
    )
