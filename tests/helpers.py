"""Shared helpers for tests that drive a real git repository."""

from __future__ import annotations

import json
import os
import shutil
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from cool_branch.config import resolve_config, resolve_repository
from cool_branch.models import CliOverrides
from cool_branch.worktrees import WorktreeService

GIT_AVAILABLE = shutil.which("git") is not None


def git(cwd: Path, *args: str) -> str:
    proc = subprocess.run(["git", *args], cwd=str(cwd), capture_output=True, text=True, check=True)
    return proc.stdout.strip()


def init_git_repo(path: Path) -> Path:
    """Initialize a repository on ``main`` with one commit."""

    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "-q")
    git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    git(path, "config", "user.name", "Test User")
    git(path, "config", "user.email", "test@example.com")
    git(path, "config", "commit.gpgsign", "false")
    (path / "README.md").write_text("# Test Repository\n")
    git(path, "add", ".")
    git(path, "commit", "-q", "-m", "Initial commit")
    return path


def write_json(path: Path, data: object) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def write_script(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
    path.chmod(0o755)
    return path


@unittest.skipUnless(GIT_AVAILABLE, "git is required")
class GitRepoTestCase(unittest.TestCase):
    """Provides ``self.repo`` (a committed repository) and ``self.base`` (worktree base)."""

    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.tmp = Path(tmp.name).resolve()
        home = self.tmp / "home"
        home.mkdir()
        env = mock.patch.dict(
            os.environ,
            {"HOME": str(home), "GIT_CONFIG_NOSYSTEM": "1", "GIT_CEILING_DIRECTORIES": str(self.tmp)},
        )
        env.start()
        self.addCleanup(env.stop)
        os.environ.pop("COOL_BRANCH_BASE", None)
        self.repo = init_git_repo(self.tmp / "repo")
        self.base = self.tmp / "worktrees"

    def service(self, **overrides: object) -> WorktreeService:
        identity = resolve_repository(self.repo)
        options = {"base": self.base, **overrides}
        config = resolve_config(identity, CliOverrides(**options), cwd=self.repo)
        return WorktreeService(identity, config)

    def branches(self) -> list[str]:
        return git(self.repo, "branch", "--format=%(refname:short)").splitlines()

    def commit_file(self, relative: str, content: str, *, executable: bool = False) -> Path:
        path = self.repo / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        if executable:
            path.chmod(0o755)
        git(self.repo, "add", relative)
        git(self.repo, "commit", "-q", "-m", f"Add {relative}")
        return path
