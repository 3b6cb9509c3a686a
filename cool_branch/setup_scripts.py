"""Discover and run the script that prepares a freshly created worktree."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Callable, Iterable, Sequence

from .constants import LEGACY_SETUP_NAME
from .exceptions import SetupScriptFailed
from .fs import ensure_directory
from .models import SetupScriptCandidate

logger = logging.getLogger(__name__)

SETUP_TEMPLATE = """#!/bin/bash
# cool-branch setup script
# Runs inside the new worktree right after it is created.
# The original repository root is passed as the first argument: $1

REPO_ROOT="$1"

# Example: Install dependencies
# npm install

# Example: Copy local environment files
# cp "$REPO_ROOT/.env" .env

echo "Setup complete for $(pwd)"
"""


def is_local_setup_name(name: str) -> bool:
    return name == "setup.local" or name.startswith("setup.local.")


def is_regular_setup_name(name: str) -> bool:
    if name.startswith("setup.local"):
        return False
    return name == "setup" or (name.startswith("setup.") and name != "setup.")


def is_legacy_setup_name(name: str) -> bool:
    return name == LEGACY_SETUP_NAME or name.startswith(f"{LEGACY_SETUP_NAME}.")


# Evaluated in order; the first rule with any match wins, so a local script
# fully shadows the regular one.
_SETUP_RULES: Sequence[tuple[Callable[[str], bool], bool]] = (
    (is_local_setup_name, True),
    (is_regular_setup_name, False),
)


def select_setup_script(
    names: Iterable[str],
    rules: Sequence[tuple[Callable[[str], bool], bool]] = _SETUP_RULES,
) -> tuple[str, bool] | None:
    """Pick the script name to run from a directory listing.

    Returns ``(name, is_local)`` for the first rule that matches any name, or
    ``None``. Names are considered in sorted order so the choice is stable.
    """

    ordered = sorted(names)
    for predicate, is_local in rules:
        for name in ordered:
            if predicate(name):
                return name, is_local
    return None


def locate_setup_script(settings_dir: Path, legacy_root: Path | None = None) -> SetupScriptCandidate | None:
    """Find the setup script in ``settings_dir``, falling back to a legacy root-level script."""

    selected = select_setup_script(_file_names(settings_dir))
    if selected:
        name, is_local = selected
        return SetupScriptCandidate(path=settings_dir / name, is_local=is_local)
    if legacy_root is not None:
        legacy = select_setup_script(_file_names(legacy_root), rules=((is_legacy_setup_name, False),))
        if legacy:
            return SetupScriptCandidate(path=legacy_root / legacy[0], is_local=False)
    return None


def find_local_setup_script(settings_dir: Path) -> Path | None:
    selected = select_setup_script(_file_names(settings_dir), rules=((is_local_setup_name, True),))
    return settings_dir / selected[0] if selected else None


def find_regular_setup_script(settings_dir: Path) -> Path | None:
    selected = select_setup_script(_file_names(settings_dir), rules=((is_regular_setup_name, False),))
    return settings_dir / selected[0] if selected else None


def create_setup_script(settings_dir: Path, *, local: bool) -> Path:
    ensure_directory(settings_dir)
    path = settings_dir / ("setup.local" if local else "setup")
    path.write_text(SETUP_TEMPLATE, encoding="utf-8")
    path.chmod(0o755)
    return path


def setup_command(script: Path) -> list[str]:
    if os.access(script, os.X_OK):
        return [str(script)]
    if script.suffix == ".py":
        return [sys.executable, str(script)]
    return ["sh", str(script)]


def run_setup_script(script: Path, worktree: Path, repo_root: Path) -> int:
    """Run ``script`` inside ``worktree``; output streams straight to the terminal."""

    command = [*setup_command(script), str(repo_root)]
    logger.info("Running setup script %s", script)
    try:
        proc = subprocess.run(command, cwd=str(worktree), check=False)
    except OSError as exc:
        raise SetupScriptFailed(
            f"Could not run setup script {script}: {exc} (worktree kept at {worktree})",
            worktree=worktree,
        ) from exc
    logger.debug("Setup script exited with status %d", proc.returncode)
    return proc.returncode


def _file_names(directory: Path) -> list[str]:
    if not directory.is_dir():
        return []
    return [child.name for child in directory.iterdir() if child.is_file()]
