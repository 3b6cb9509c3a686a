"""Thin wrappers around git CLI commands."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Iterable

from .exceptions import GitCommandError
from .models import WorktreeRecord

logger = logging.getLogger(__name__)


def run_git(
    args: Iterable[str],
    *,
    cwd: Path,
    raise_on_error: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Execute a git command and optionally raise on failure."""

    cmd = ["git", *args]
    logger.debug("Running %s (cwd=%s)", " ".join(cmd), cwd)
    proc = subprocess.run(
        cmd,
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=False,
    )
    if raise_on_error and proc.returncode != 0:
        raise GitCommandError(cmd, proc.returncode, proc.stderr, stdout=proc.stdout)
    return proc


def rev_parse_toplevel(path: Path) -> Path:
    proc = run_git(["rev-parse", "--show-toplevel"], cwd=path)
    return Path(proc.stdout.strip())


def remote_url(path: Path, remote: str = "origin") -> str | None:
    proc = run_git(["remote", "get-url", remote], cwd=path, raise_on_error=False)
    if proc.returncode != 0:
        return None
    return proc.stdout.strip() or None


def list_branches(path: Path) -> list[str]:
    proc = run_git(["branch", "--list", "--format=%(refname:short)"], cwd=path)
    return [line.strip() for line in proc.stdout.splitlines() if line.strip()]


def current_branch(path: Path) -> str | None:
    proc = run_git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=path, raise_on_error=False)
    if proc.returncode != 0:
        return None
    branch = proc.stdout.strip()
    # Detached HEAD reports the literal "HEAD".
    if not branch or branch == "HEAD":
        return None
    return branch


def branch_exists(path: Path, branch: str) -> bool:
    proc = run_git(
        ["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"],
        cwd=path,
        raise_on_error=False,
    )
    return proc.returncode == 0


def remote_branch_exists(path: Path, branch: str, remote: str = "origin") -> bool:
    proc = run_git(
        ["show-ref", "--verify", "--quiet", f"refs/remotes/{remote}/{branch}"],
        cwd=path,
        raise_on_error=False,
    )
    return proc.returncode == 0


def is_valid_branch_name(path: Path, branch: str) -> bool:
    proc = run_git(["check-ref-format", "--branch", branch], cwd=path, raise_on_error=False)
    return proc.returncode == 0


def fetch(path: Path, remote: str = "origin") -> bool:
    proc = run_git(["fetch", remote], cwd=path, raise_on_error=False)
    if proc.returncode != 0:
        logger.debug("Fetching %s failed: %s", remote, proc.stderr.strip())
    return proc.returncode == 0


def worktree_list(path: Path) -> list[WorktreeRecord]:
    proc = run_git(["worktree", "list", "--porcelain"], cwd=path)
    return parse_worktree_porcelain(proc.stdout)


def parse_worktree_porcelain(text: str) -> list[WorktreeRecord]:
    """Parse ``git worktree list --porcelain``; the first entry is the main checkout."""

    records: list[WorktreeRecord] = []
    current: dict | None = None
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        key, _, value = line.partition(" ")
        if key == "worktree":
            if current:
                records.append(_to_record(current))
            current = {"path": Path(value.strip()), "is_main": current is None}
        elif current is None:
            continue
        elif key == "branch":
            branch = value.strip()
            if branch.startswith("refs/heads/"):
                branch = branch[len("refs/heads/") :]
            current["branch"] = branch
        elif key in {"bare", "detached"}:
            current["branch"] = None
    if current:
        records.append(_to_record(current))
    return records


def _to_record(raw: dict) -> WorktreeRecord:
    return WorktreeRecord(path=raw["path"], branch=raw.get("branch"), is_main=raw["is_main"])


def worktree_add(
    path: Path,
    target: Path,
    branch: str,
    *,
    create_branch: bool = False,
    start_point: str | None = None,
) -> None:
    args = ["worktree", "add"]
    if create_branch:
        if start_point:
            args.extend(["--track", "-b", branch, str(target), start_point])
        else:
            args.extend(["-b", branch, str(target)])
    else:
        args.extend([str(target), branch])
    run_git(args, cwd=path)


def worktree_remove(path: Path, target: Path, force: bool = False) -> None:
    args = ["worktree", "remove"]
    if force:
        args.append("--force")
    args.append(str(target))
    run_git(args, cwd=path)


def worktree_prune(path: Path) -> None:
    run_git(["worktree", "prune"], cwd=path)


def worktree_move(path: Path, old: Path, new: Path) -> None:
    run_git(["worktree", "move", str(old), str(new)], cwd=path)


def branch_delete(path: Path, branch: str) -> None:
    run_git(["branch", "-D", branch], cwd=path)


def branch_rename(path: Path, old: str, new: str) -> None:
    run_git(["branch", "-m", old, new], cwd=path)
