"""Dataclasses shared across modules."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .constants import SETTINGS_DIRNAME


class CopyMode(str, Enum):
    """Which settings-directory entries are materialized in a new worktree."""

    ALL = "all"
    NONE = "none"
    LOCAL = "local"


class BranchSource(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
    NEW = "new"


@dataclass(frozen=True)
class RepositoryIdentity:
    """Stable identifier and main checkout root of the user's repository."""

    id: str
    root: Path

    @property
    def settings_dir(self) -> Path:
        return self.root / SETTINGS_DIRNAME

    @property
    def default_folder_name(self) -> str:
        return self.root.name


@dataclass(frozen=True)
class CliOverrides:
    """Settings given explicitly on the command line (highest precedence)."""

    base: Path | None = None
    remote: str | None = None
    copy_mode: CopyMode | None = None
    setup: Path | None = None


@dataclass(frozen=True)
class EffectiveConfig:
    """Settings after every configuration layer has been folded together."""

    base: Path
    remote: str
    copy_mode: CopyMode
    dirname: str | None = None
    setup_override: Path | None = None


@dataclass(frozen=True)
class WorktreeRecord:
    """A single worktree as reported by git."""

    path: Path
    branch: str | None
    is_main: bool

    @property
    def display_branch(self) -> str:
        return self.branch or "(detached)"


@dataclass(frozen=True)
class SetupScriptCandidate:
    path: Path
    is_local: bool


@dataclass(frozen=True)
class BranchStatus:
    """A local branch together with the worktree it is checked out in, if any."""

    name: str
    is_current: bool
    worktree: WorktreeRecord | None = None


@dataclass(frozen=True)
class AddResult:
    path: Path
    branch: str
    source: BranchSource
    copied: tuple[Path, ...] = ()
    setup_script: SetupScriptCandidate | None = None


@dataclass(frozen=True)
class RemoveResult:
    path: Path
    branch: str
    branch_deleted: bool


@dataclass(frozen=True)
class RenameTarget:
    """The worktree a rename applies to and how it was chosen."""

    branch: str
    path: Path
    new_name: str | None
    from_worktree: bool


@dataclass(frozen=True)
class RenameResult:
    old_branch: str
    new_branch: str
    old_path: Path
    new_path: Path
    from_worktree: bool
