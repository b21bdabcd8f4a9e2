"""Arrow-key selector helpers backed by InquirerPy."""

from __future__ import annotations

import sys


class SelectorUnavailableError(RuntimeError):
    """Raised when arrow-key selector UI cannot be used."""


def _ensure_tty() -> None:
    if not (sys.stdin.isatty() and sys.stdout.isatty()):
        raise SelectorUnavailableError("interactive selector requires a TTY")


def _inquirer():
    try:
        from InquirerPy import inquirer
    except ImportError as exc:  # pragma: no cover - environment dependent
        raise SelectorUnavailableError("InquirerPy unavailable") from exc
    return inquirer


def _choices(options: list[tuple[str, str]]) -> list[dict[str, str]]:
    return [{"name": label, "value": value} for value, label in options]


def select_one(
    title: str,
    options: list[tuple[str, str]],
    *,
    default_value: str | None = None,
) -> str | None:
    """Return selected value, None on cancel, or raise SelectorUnavailableError for fallback."""
    _ensure_tty()
    if not options:
        return None

    inquirer = _inquirer()
    try:
        result = inquirer.select(
            message=title,
            choices=_choices(options),
            default=default_value,
            pointer=">",
            vi_mode=False,
            mandatory=False,
            raise_keyboard_interrupt=True,
        ).execute()
    except (KeyboardInterrupt, EOFError):
        return None
    except Exception as exc:
        raise SelectorUnavailableError("selector runtime failed") from exc

    if result is None:
        return None
    return str(result)


def select_fuzzy(
    title: str,
    options: list[tuple[str, str]],
    *,
    default_value: str | None = None,
) -> str | None:
    """Return selected value from fuzzy prompt, None on cancel, or raise SelectorUnavailableError."""
    _ensure_tty()
    if not options:
        return None

    inquirer = _inquirer()
    try:
        result = inquirer.fuzzy(
            message=title,
            choices=_choices(options),
            default=default_value or "",
            vi_mode=False,
            mandatory=False,
            raise_keyboard_interrupt=True,
        ).execute()
    except (KeyboardInterrupt, EOFError):
        return None
    except Exception as exc:
        raise SelectorUnavailableError("selector runtime failed") from exc

    if result is None:
        return None
    return str(result)
