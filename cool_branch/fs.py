"""Filesystem helpers for cool-branch."""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path
from typing import Iterable

from .models import CopyMode

logger = logging.getLogger(__name__)

# Matches ``X.local`` and ``X.local.<ext>`` for any non-empty base name X.
_LOCAL_VARIANT = re.compile(r"^.+\.local(\..+)?$")


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def is_non_empty_directory(path: Path) -> bool:
    if not path.is_dir():
        return False
    return any(path.iterdir())


def remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


def is_local_variant(name: str) -> bool:
    return bool(_LOCAL_VARIANT.match(name))


def select_copy_entries(names: Iterable[str], mode: CopyMode) -> list[str]:
    """Return the settings-directory entries that ``mode`` materializes, sorted."""

    if mode is CopyMode.NONE:
        return []
    if mode is CopyMode.ALL:
        return sorted(names)
    return sorted(name for name in names if is_local_variant(name))


def copy_settings(source_dir: Path, dest_dir: Path, mode: CopyMode) -> list[Path]:
    """Copy settings entries into a new worktree, preserving permission bits."""

    if mode is CopyMode.NONE or not source_dir.is_dir():
        return []
    entries = select_copy_entries((child.name for child in source_dir.iterdir()), mode)
    if not entries:
        return []
    ensure_directory(dest_dir)
    copied: list[Path] = []
    for name in entries:
        source = source_dir / name
        target = dest_dir / name
        if source.is_dir():
            shutil.copytree(source, target, dirs_exist_ok=True)
        else:
            shutil.copy2(source, target)
        copied.append(target)
    logger.debug("Copied %d settings entries (%s) into %s", len(copied), mode.value, dest_dir)
    return copied


def cleanup_empty_dirs(path: Path, stop: Path) -> None:
    """Remove empty directories from ``path`` upwards, stopping before ``stop``."""

    resolved_stop = stop.resolve()
    current = path.resolve()
    if current == resolved_stop or resolved_stop not in current.parents:
        return
    while current != resolved_stop:
        try:
            current.rmdir()
        except FileNotFoundError:
            pass
        except OSError:
            break
        current = current.parent
