"""Interactive prompt helpers built on InquirerPy."""

from __future__ import annotations

import sys
from typing import Sequence

from InquirerPy import inquirer
from InquirerPy.base.control import Choice

from .exceptions import UserAbort, ValidationError


def is_interactive() -> bool:
    return sys.stdin.isatty()


def _ensure_tty() -> None:
    if not is_interactive():
        raise ValidationError(
            "Interactive mode requires a TTY. Provide the missing arguments to run non-interactively."
        )


def _ensure_options(options: Sequence[str]) -> None:
    if not options:
        raise UserAbort("No options available for selection.")


def select_one(message: str, options: Sequence[str]) -> int:
    """Return the index of the chosen option."""

    _ensure_tty()
    _ensure_options(options)
    choices = [Choice(value=index, name=option) for index, option in enumerate(options)]
    try:
        return int(inquirer.select(message=message, choices=choices).execute())
    except KeyboardInterrupt as exc:
        raise UserAbort("User cancelled the prompt.") from exc


def select_many(message: str, options: Sequence[str]) -> list[int]:
    """Return the sorted, de-duplicated indices of the chosen options."""

    _ensure_tty()
    _ensure_options(options)
    choices = [Choice(value=index, name=option) for index, option in enumerate(options)]
    try:
        selected = inquirer.checkbox(
            message=message,
            choices=choices,
            instruction="(space to toggle, enter to confirm)",
        ).execute()
    except KeyboardInterrupt as exc:
        raise UserAbort("User cancelled the prompt.") from exc
    return sorted({int(index) for index in selected or []})


def confirm(message: str, default: bool = False) -> bool:
    _ensure_tty()
    try:
        return bool(inquirer.confirm(message=message, default=default).execute())
    except KeyboardInterrupt as exc:
        raise UserAbort("User cancelled the prompt.") from exc


def text_input(message: str, default: str | None = None) -> str:
    _ensure_tty()
    try:
        return inquirer.text(message=message, default=default or "").execute().strip()
    except KeyboardInterrupt as exc:
        raise UserAbort("User cancelled the prompt.") from exc
