"""Custom exception hierarchy for cool-branch."""

from __future__ import annotations

from pathlib import Path


class CoolBranchError(Exception):
    """Base error for all custom exceptions."""


class NotARepository(CoolBranchError):
    """Raised when invoked outside a git repository."""

    def __init__(self, path: Path | None = None):
        message = "Not in a git repository"
        if path is not None:
            message = f"Not in a git repository: {path}"
        super().__init__(message)
        self.path = path


class ConfigError(CoolBranchError):
    """Raised when a user-specified config file is missing or a value is invalid."""


class ValidationError(CoolBranchError):
    """Raised when user input is invalid."""


class UserAbort(CoolBranchError):
    """Raised when the user cancels an interactive flow."""


class GitCommandError(CoolBranchError):
    """Raised when a git invocation fails."""

    def __init__(
        self,
        command: list[str],
        returncode: int,
        stderr: str | None = None,
        *,
        stdout: str | None = None,
    ):
        self.command = command
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        message = f"git command failed (exit {returncode}): {' '.join(command)}"
        details = (self.stderr or self.stdout).strip()
        if details:
            message = f"{message}\n{details}"
        super().__init__(message)

    @property
    def details(self) -> str:
        return (self.stderr or self.stdout).strip()


class TargetExists(CoolBranchError):
    """Raised when the worktree path is already occupied."""

    def __init__(self, path: Path):
        super().__init__(f"Directory already exists and is non-empty: {path}. Use --force to overwrite.")
        self.path = path


class WorktreeCreateFailed(CoolBranchError):
    """Raised when git refuses to create the worktree."""


class WorktreeNotFound(CoolBranchError):
    """Raised when no worktree exists where one is expected."""


class WorktreeRemoveFailed(CoolBranchError):
    """Raised when git refuses to remove a worktree for a reason other than local changes."""


class DirtyWorktree(CoolBranchError):
    """Raised when a worktree with uncommitted or untracked content is removed without force."""

    def __init__(self, path: Path):
        super().__init__(f"Worktree has uncommitted changes: {path}. Use --force to remove it anyway.")
        self.path = path


class BranchExists(CoolBranchError):
    """Raised when a rename would collide with an existing branch."""

    def __init__(self, branch: str):
        super().__init__(f"Branch '{branch}' already exists")
        self.branch = branch


class CannotRenameMain(CoolBranchError):
    """Raised when asked to rename the main checkout."""

    def __init__(self) -> None:
        super().__init__("Cannot rename the main repository worktree")


class UnmanagedWorktree(CoolBranchError):
    """Raised when a worktree lives outside the managed worktree root."""

    def __init__(self, path: Path, root: Path):
        super().__init__(
            f"Worktree is not in the managed worktree directory: {path} (expected worktrees under {root})"
        )
        self.path = path
        self.root = root


class BranchRenameFailed(CoolBranchError):
    """Raised when git refuses to rename a branch."""


class WorktreeMoveFailed(CoolBranchError):
    """Raised when moving a worktree fails after its branch was renamed."""

    def __init__(self, message: str, *, rolled_back: bool):
        if rolled_back:
            message = f"{message}\nBranch rename has been reverted."
        else:
            message = f"{message}\nCould not revert branch rename. Branch state may be inconsistent."
        super().__init__(message)
        self.rolled_back = rolled_back


class BranchDeleteFailed(CoolBranchError):
    """Raised when a branch cannot be deleted after its worktree was removed."""


class SetupScriptFailed(CoolBranchError):
    """Raised when the post-creation setup script cannot run or exits nonzero."""

    def __init__(self, message: str, *, worktree: Path, returncode: int | None = None):
        super().__init__(message)
        self.worktree = worktree
        self.returncode = returncode
