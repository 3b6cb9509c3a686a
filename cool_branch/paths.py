"""Resolve where a repository's worktrees live on disk."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from .exceptions import ValidationError
from .mapping import FolderMappingStore
from .models import EffectiveConfig, RepositoryIdentity

logger = logging.getLogger(__name__)

_INVALID_FOLDER_CHARS = set('<>:"|?*')
_RESERVED_NAMES = re.compile(r"^(con|prn|aux|nul|com[1-9]|lpt[1-9])$", re.IGNORECASE)


def folder_name(
    store: FolderMappingStore,
    identity: RepositoryIdentity,
    local_dirname: str | None = None,
) -> str:
    """Return the folder grouping this repository's worktrees.

    A ``local_dirname`` from per-repo config wins and is never written to the
    shared mapping. Otherwise the mapped name is used, or the repository root's
    base name is derived and persisted.
    """

    if local_dirname:
        return local_dirname
    mapped = store.get(identity.id)
    if mapped:
        return mapped
    derived = identity.default_folder_name
    store.set(identity.id, derived)
    logger.debug("Derived folder name %s for %s", derived, identity.id)
    return derived


def worktree_root(
    config: EffectiveConfig,
    identity: RepositoryIdentity,
    store: FolderMappingStore | None = None,
) -> Path:
    store = store or FolderMappingStore.for_base(config.base)
    return config.base / folder_name(store, identity, config.dirname)


def worktree_path(
    config: EffectiveConfig,
    identity: RepositoryIdentity,
    branch: str,
    store: FolderMappingStore | None = None,
) -> Path:
    return worktree_root(config, identity, store) / branch


def validate_folder_name(name: str) -> None:
    """Reject names that are unsafe as a single directory component."""

    problem = None
    if not name:
        problem = "must not be empty"
    elif "/" in name or "\\" in name:
        problem = "must not contain path separators"
    elif any(char in _INVALID_FOLDER_CHARS for char in name) or any(ord(char) <= 0x1F for char in name):
        problem = "must not contain special or control characters"
    elif _RESERVED_NAMES.match(name):
        problem = "is a reserved name"
    elif name[0] in " ." or name[-1] in " .":
        problem = "must not start or end with a space or period"
    if problem:
        raise ValidationError(f"Invalid folder name '{name}': {problem}")
