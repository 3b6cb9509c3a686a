"""High-level orchestration for worktree operations."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from . import git
from .constants import SETTINGS_DIRNAME
from .exceptions import (
    BranchDeleteFailed,
    BranchExists,
    BranchRenameFailed,
    CannotRenameMain,
    DirtyWorktree,
    GitCommandError,
    NotARepository,
    SetupScriptFailed,
    TargetExists,
    UnmanagedWorktree,
    ValidationError,
    WorktreeCreateFailed,
    WorktreeMoveFailed,
    WorktreeNotFound,
    WorktreeRemoveFailed,
)
from .fs import cleanup_empty_dirs, copy_settings, ensure_directory, is_non_empty_directory, remove_path
from .mapping import FolderMappingStore
from .models import (
    AddResult,
    BranchSource,
    BranchStatus,
    CopyMode,
    EffectiveConfig,
    RemoveResult,
    RenameResult,
    RenameTarget,
    RepositoryIdentity,
    SetupScriptCandidate,
    WorktreeRecord,
)
from .paths import folder_name
from .setup_scripts import locate_setup_script, run_setup_script

logger = logging.getLogger(__name__)

_NUMBERED_SUFFIX = re.compile(r"^(?P<stem>.+)-(?P<number>\d+)$")
_DIRTY_MARKERS = ("contains modified or untracked files", "use --force to delete it")


@dataclass
class WorktreeService:
    identity: RepositoryIdentity
    config: EffectiveConfig
    store: FolderMappingStore | None = field(default=None)

    def __post_init__(self) -> None:
        if self.store is None:
            self.store = FolderMappingStore.for_base(self.config.base)

    @property
    def repo_root(self) -> Path:
        return self.identity.root

    @property
    def folder_name(self) -> str:
        return folder_name(self.store, self.identity, self.config.dirname)

    @property
    def worktree_root(self) -> Path:
        return self.config.base / self.folder_name

    def path_for(self, branch: str) -> Path:
        return self.worktree_root / branch

    # add

    def add(
        self,
        branch: str,
        *,
        force: bool = False,
        copy_mode: CopyMode | None = None,
        setup: Path | None = None,
        no_setup: bool = False,
    ) -> AddResult:
        self.validate_branch_name(branch)
        target = self.path_for(branch)
        self._check_target(target, force=force)
        source = self.branch_source(branch)
        ensure_directory(target.parent)
        try:
            if source is BranchSource.LOCAL:
                git.worktree_add(self.repo_root, target, branch)
            elif source is BranchSource.REMOTE:
                git.worktree_add(
                    self.repo_root,
                    target,
                    branch,
                    create_branch=True,
                    start_point=f"{self.config.remote}/{branch}",
                )
            else:
                git.worktree_add(self.repo_root, target, branch, create_branch=True)
        except GitCommandError as exc:
            raise WorktreeCreateFailed(f"Failed to create worktree: {exc.details or exc}") from exc
        logger.debug("Created worktree for %s (%s) at %s", branch, source.value, target)

        mode = copy_mode or self.config.copy_mode
        copied = copy_settings(self.identity.settings_dir, target / SETTINGS_DIRNAME, mode)
        if copied:
            logger.info("Copied %d settings file(s) into %s", len(copied), target / SETTINGS_DIRNAME)

        script = None
        if not no_setup:
            script = self._setup_script_for(target, setup or self.config.setup_override)
        if script is not None:
            returncode = run_setup_script(script.path, target, self.repo_root)
            if returncode != 0:
                raise SetupScriptFailed(
                    f"Setup script {script.path} exited with status {returncode} (worktree kept at {target})",
                    worktree=target,
                    returncode=returncode,
                )
        return AddResult(path=target, branch=branch, source=source, copied=tuple(copied), setup_script=script)

    def validate_branch_name(self, branch: str) -> None:
        if not branch or not git.is_valid_branch_name(self.repo_root, branch):
            raise ValidationError(f"Invalid branch name: '{branch}'")

    def branch_source(self, branch: str) -> BranchSource:
        if git.branch_exists(self.repo_root, branch):
            return BranchSource.LOCAL
        remote = self.config.remote
        if git.remote_url(self.repo_root, remote) is not None:
            git.fetch(self.repo_root, remote)
            if git.remote_branch_exists(self.repo_root, branch, remote):
                return BranchSource.REMOTE
        return BranchSource.NEW

    def _check_target(self, target: Path, *, force: bool) -> None:
        occupied = is_non_empty_directory(target) or (target.exists() and not target.is_dir())
        if not occupied:
            return
        if not force:
            raise TargetExists(target)
        logger.info("Removing existing path %s", target)
        remove_path(target)
        git.worktree_prune(self.repo_root)

    def _setup_script_for(self, worktree: Path, override: Path | None) -> SetupScriptCandidate | None:
        if override is not None:
            if not override.is_file():
                raise SetupScriptFailed(
                    f"Setup script not found: {override} (worktree kept at {worktree})",
                    worktree=worktree,
                )
            return SetupScriptCandidate(path=override, is_local=False)
        return locate_setup_script(worktree / SETTINGS_DIRNAME, legacy_root=worktree)

    # remove

    def remove(self, branch: str, *, force: bool = False, path: Path | None = None) -> RemoveResult:
        target = path or self.path_for(branch)
        if not target.exists():
            raise WorktreeNotFound(f"Worktree does not exist at: {target}")
        try:
            git.worktree_remove(self.repo_root, target, force=force)
        except GitCommandError as exc:
            if not force and any(marker in exc.details for marker in _DIRTY_MARKERS):
                raise DirtyWorktree(target) from exc
            raise WorktreeRemoveFailed(f"Failed to remove worktree: {exc.details or exc}") from exc
        cleanup_empty_dirs(target.parent, stop=self.worktree_root)

        deleted = True
        try:
            self._delete_branch(branch)
        except BranchDeleteFailed as exc:
            logger.warning("%s", exc)
            deleted = False
        return RemoveResult(path=target, branch=branch, branch_deleted=deleted)

    def _delete_branch(self, branch: str) -> None:
        try:
            git.branch_delete(self.repo_root, branch)
        except GitCommandError as exc:
            raise BranchDeleteFailed(f"Could not delete branch '{branch}': {exc.details or exc}") from exc

    # rename

    def rename_target(self, cwd: Path, first: str | None = None, second: str | None = None) -> RenameTarget:
        """Work out which worktree a rename applies to.

        From inside a linked worktree ``first`` is the optional new name; from
        the main checkout ``first`` names the branch and ``second`` the new name.
        """

        worktrees = self.worktrees()
        try:
            here = git.rev_parse_toplevel(cwd).resolve()
        except GitCommandError as exc:
            raise NotARepository(cwd) from exc
        current = next((record for record in worktrees if record.path.resolve() == here), None)
        if current is not None and not current.is_main:
            branch = git.current_branch(current.path)
            if branch is None:
                raise ValidationError("Not currently on a branch")
            return RenameTarget(branch=branch, path=current.path, new_name=first, from_worktree=True)

        if not first:
            raise ValidationError("Branch name is required when running from the main repository")
        record = next((record for record in worktrees if record.branch == first), None)
        if record is None:
            raise WorktreeNotFound(f"Branch '{first}' does not exist or has no worktree")
        if record.is_main:
            raise CannotRenameMain()
        return RenameTarget(branch=first, path=record.path, new_name=second, from_worktree=False)

    def rename(self, target: RenameTarget) -> RenameResult:
        if target.path.resolve() == self.repo_root.resolve():
            raise CannotRenameMain()
        existing = git.list_branches(self.repo_root)
        new_name = target.new_name or generate_incremented_name(target.branch, existing)
        if new_name in existing:
            raise BranchExists(new_name)
        self.validate_branch_name(new_name)

        root = self.worktree_root.resolve()
        old_path = target.path
        if root not in old_path.resolve().parents:
            raise UnmanagedWorktree(old_path, root)
        new_path = self.path_for(new_name)

        try:
            git.branch_rename(self.repo_root, target.branch, new_name)
        except GitCommandError as exc:
            raise BranchRenameFailed(f"Failed to rename branch: {exc.details or exc}") from exc

        ensure_directory(new_path.parent)
        try:
            git.worktree_move(self.repo_root, old_path, new_path)
        except GitCommandError as exc:
            rolled_back = self._revert_branch_rename(new_name, target.branch)
            raise WorktreeMoveFailed(f"Failed to move worktree: {exc.details or exc}", rolled_back=rolled_back) from exc
        cleanup_empty_dirs(old_path.parent, stop=self.worktree_root)

        return RenameResult(
            old_branch=target.branch,
            new_branch=new_name,
            old_path=old_path,
            new_path=new_path,
            from_worktree=target.from_worktree,
        )

    def _revert_branch_rename(self, current: str, original: str) -> bool:
        try:
            git.branch_rename(self.repo_root, current, original)
        except GitCommandError as exc:
            logger.error(
                "Could not revert branch rename '%s' -> '%s'; branch state may be inconsistent: %s",
                original,
                current,
                exc.details or exc,
            )
            return False
        return True

    # queries

    def worktrees(self) -> list[WorktreeRecord]:
        return git.worktree_list(self.repo_root)

    def managed_worktrees(self) -> list[WorktreeRecord]:
        root = self.worktree_root.resolve()
        return [
            record
            for record in self.worktrees()
            if not record.is_main and record.branch and root in record.path.resolve().parents
        ]

    def branch_overview(self, cwd: Path) -> list[BranchStatus]:
        current = git.current_branch(cwd)
        by_branch = {record.branch: record for record in self.worktrees() if record.branch}
        return [
            BranchStatus(name=name, is_current=name == current, worktree=by_branch.get(name))
            for name in sorted(git.list_branches(self.repo_root))
        ]

    def available_branches(self) -> list[str]:
        """Local branches not checked out in any worktree."""

        in_use = {record.branch for record in self.worktrees() if record.branch}
        return [name for name in sorted(git.list_branches(self.repo_root)) if name not in in_use]

    def where(self, branch: str) -> Path:
        record = next((record for record in self.worktrees() if record.branch == branch), None)
        if record is None:
            raise WorktreeNotFound(f"Branch '{branch}' does not exist or has no worktree")
        if record.is_main:
            raise ValidationError(f"Branch '{branch}' is the main repository, not a worktree")
        return record.path

    def last(self) -> Path:
        linked = [record for record in self.worktrees() if not record.is_main and record.path.exists()]
        if not linked:
            raise WorktreeNotFound("No worktrees exist")
        return max(linked, key=lambda record: _created_at(record.path)).path


def generate_incremented_name(name: str, existing: list[str] | set[str]) -> str:
    """Return ``name`` with its trailing ``-<n>`` bumped (or ``-1`` appended), skipping taken names."""

    match = _NUMBERED_SUFFIX.match(name)
    if match:
        stem, number = match.group("stem"), int(match.group("number")) + 1
    else:
        stem, number = name, 1
    taken = set(existing)
    candidate = f"{stem}-{number}"
    while candidate in taken:
        number += 1
        candidate = f"{stem}-{number}"
    return candidate


def _created_at(path: Path) -> float:
    stat = path.stat()
    return getattr(stat, "st_birthtime", stat.st_ctime)
