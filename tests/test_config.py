from __future__ import annotations

from pathlib import Path

import yaml

from tasq import config


def _write_config(tasks_root: Path, content: str) -> None:
    tasks_root.mkdir(parents=True, exist_ok=True)
    (tasks_root / "config.yaml").write_text(content, encoding="utf-8")


def test_defaults_when_missing(tmp_path: Path) -> None:
    warnings: list[str] = []
    settings = config.resolve_settings(tmp_path / ".tasq", warn=warnings.append)
    assert settings == config.Settings()
    assert settings.default_due_time == "09:00"
    assert settings.deadline_window_days == 4
    assert warnings == []


def test_default_config_round_trips(tmp_path: Path) -> None:
    root = tmp_path / ".tasq"
    root.mkdir()
    assert config.write_default_config_if_missing(root, interactive_enabled=False) is True
    assert config.write_default_config_if_missing(root) is False

    data = yaml.safe_load((root / "config.yaml").read_text(encoding="utf-8"))
    assert data["settings"]["interactive_enabled"] is False

    warnings: list[str] = []
    settings = config.resolve_settings(root, warn=warnings.append)
    assert settings.interactive_enabled is False
    assert settings.default_due_time == "09:00"
    assert warnings == []


def test_reads_valid_custom_settings(tmp_path: Path) -> None:
    root = tmp_path / ".tasq"
    _write_config(
        root,
        (
            "settings:\n"
            "  log_level: debug\n"
            "  workflow:\n"
            "    enforce_dependencies: true\n"
            "  reminders:\n"
            "    default_due_time: 17:30\n"
            "    deadline_window_days: 7\n"
            "  list:\n"
            "    sort: due_date\n"
            "    order: asc\n"
        ),
    )
    warnings: list[str] = []
    settings = config.resolve_settings(root, warn=warnings.append)

    assert settings.log_level == "DEBUG"
    assert settings.enforce_dependencies is True
    assert settings.default_due_time == "17:30"
    assert settings.deadline_window_days == 7
    assert settings.list_sort == "DUE_DATE"
    assert settings.list_order == "ASC"
    assert warnings == []


def test_invalid_values_warn_and_fall_back(tmp_path: Path) -> None:
    root = tmp_path / ".tasq"
    _write_config(
        root,
        (
            "theme: dark\n"
            "settings:\n"
            "  interactive_enabled: maybe\n"
            "  colors: true\n"
            "  workflow: strict\n"
            "  reminders:\n"
            "    default_due_time: noon\n"
            "    poll_interval_seconds: 0\n"
            "  list:\n"
            "    sort: name\n"
        ),
    )
    warnings: list[str] = []
    settings = config.resolve_settings(root, warn=warnings.append)

    assert settings == config.Settings()
    joined = "\n".join(warnings)
    assert "Unsupported config key 'theme'" in joined
    assert "Unsupported settings key 'colors'" in joined
    assert "settings.interactive_enabled" in joined
    assert "settings.workflow section" in joined
    assert "settings.reminders.default_due_time" in joined
    assert "settings.reminders.poll_interval_seconds" in joined
    assert "settings.list.sort" in joined


def test_unparseable_yaml_warns(tmp_path: Path) -> None:
    root = tmp_path / ".tasq"
    _write_config(root, "settings: [unclosed\n")
    warnings: list[str] = []
    assert config.resolve_settings(root, warn=warnings.append) == config.Settings()
    assert any("Unable to parse config" in message for message in warnings)
