"""Typer-based CLI for cool-branch."""

from __future__ import annotations

import json
import logging
import os
import shlex
import subprocess
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterator

import typer
from rich.console import Console
from rich.table import Table

from . import __version__, git
from .config import (
    load_runtime,
    merged_repo_config,
    read_config_file,
    repo_config_path,
    resolve_repository,
    validate_config_value,
    write_config_file,
)
from .constants import CONFIG_TEMPLATE, SETTINGS_DIRNAME
from .exceptions import (
    CoolBranchError,
    DirtyWorktree,
    GitCommandError,
    NotARepository,
    ValidationError,
    WorktreeRemoveFailed,
)
from .interactive import confirm, select_many, select_one, text_input
from .mapping import FolderMappingStore
from .models import AddResult, CliOverrides, CopyMode, RemoveResult
from .paths import validate_folder_name
from .setup_scripts import (
    create_setup_script,
    find_local_setup_script,
    find_regular_setup_script,
    locate_setup_script,
)
from .worktrees import WorktreeService

app = typer.Typer(
    help="Manage git worktrees, one per branch, under a shared base directory",
    no_args_is_help=True,
    add_completion=False,
)
console = Console()
logger = logging.getLogger(__name__)

NEW_BRANCH_LABEL = "Create new branch…"


@dataclass
class AppState:
    cwd: Path
    base: Path | None = None
    config_path: Path | None = None
    verbose: bool = False


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", force=True)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"cool-branch {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    repo: Path | None = typer.Option(
        None,
        "--repo",
        "-C",
        help="Run as if started in this directory instead of the current one.",
        file_okay=False,
        dir_okay=True,
    ),
    base: Path | None = typer.Option(
        None,
        "--base",
        envvar="COOL_BRANCH_BASE",
        help="Base directory for worktrees (default: ~/.worktrees).",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Path to a config file, or a directory containing config.json.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show additional debug information."),
    show_version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the cool-branch version and exit.",
    ),
) -> None:
    _ = show_version  # handled via callback
    configure_logging(verbose)
    cwd = repo.expanduser().resolve() if repo else Path.cwd()
    ctx.obj = AppState(cwd=cwd, base=base, config_path=config, verbose=verbose)


@app.command("list", help="List branches and their worktrees")
def list_(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Output JSON for scripting."),
) -> None:
    state = _state(ctx)
    with _handle_errors():
        service = _build_service(ctx)
        root = service.worktree_root
        overview = service.branch_overview(state.cwd)
    if as_json:
        data = [
            {
                "branch": status.name,
                "current": status.is_current,
                "path": str(status.worktree.path) if status.worktree else None,
                "main": bool(status.worktree and status.worktree.is_main),
            }
            for status in overview
        ]
        typer.echo(json.dumps(data, indent=2))
        return
    if not overview:
        console.print("No branches found.")
        return
    table = Table(show_header=True, header_style="bold", title=f"Worktrees under {_shorten_path(root)}")
    table.add_column("", no_wrap=True)
    table.add_column("Branch", no_wrap=True)
    table.add_column("Worktree")
    for status in overview:
        if status.worktree is None:
            location = "(no worktree)"
        elif status.worktree.is_main:
            location = f"{_shorten_path(status.worktree.path)} (main worktree)"
        else:
            location = _shorten_path(status.worktree.path)
        table.add_row("*" if status.is_current else "", status.name, location)
    console.print(table)


@app.command(help="Add a new worktree for a branch")
def add(
    ctx: typer.Context,
    branch: str | None = typer.Argument(None, help="Branch to check out or create. Prompts when omitted."),
    force: bool = typer.Option(False, "--force", "-f", help="Replace a non-empty directory at the target path."),
    remote: str | None = typer.Option(None, "--remote", help="Remote to look for the branch on (default: origin)."),
    setup: Path | None = typer.Option(None, "--setup", help="Setup script to run instead of the discovered one."),
    no_setup: bool = typer.Option(False, "--no-setup", help="Skip running the setup script."),
    copy_config: CopyMode | None = typer.Option(
        None,
        "--copy-config",
        case_sensitive=False,
        help="Which .cool-branch files to copy into the new worktree (default: local).",
    ),
) -> None:
    with _handle_errors():
        service = _build_service(ctx, CliOverrides(remote=remote, copy_mode=copy_config, setup=setup))
        branch = branch or _prompt_branch(service)
        result = service.add(branch, force=force, no_setup=no_setup)
    _report_added(result)


@app.command(help="Remove a worktree and delete its branch")
def rm(
    ctx: typer.Context,
    branch: str | None = typer.Argument(None, help="Branch whose worktree to remove. Prompts when omitted."),
    force: bool = typer.Option(False, "--force", "-f", help="Remove even if the worktree has changes."),
) -> None:
    with _handle_errors():
        service = _build_service(ctx)
        if branch is None:
            _interactive_remove(service)
            return
        result = service.remove(branch, force=force)
    _report_removed(result)


@app.command(help="Rename a worktree and its branch (alias: mv)")
def rename(
    ctx: typer.Context,
    first: str | None = typer.Argument(
        None,
        metavar="[BRANCH|NEW_NAME]",
        help="From a worktree: the new name. From the main repository: the branch to rename.",
    ),
    second: str | None = typer.Argument(None, metavar="[NEW_NAME]", help="New name when run from the main repository."),
) -> None:
    state = _state(ctx)
    with _handle_errors():
        service = _build_service(ctx)
        target = service.rename_target(state.cwd, first, second)
        result = service.rename(target)
    console.print(f"Renamed '{result.old_branch}' → '{result.new_branch}'")
    console.print(f"Worktree moved to: {result.new_path}")
    if result.from_worktree:
        console.print("")
        console.print("Note: You are still in the old directory. To continue working:")
        console.print(f"  cd {result.new_path}")


app.command("mv", hidden=True, help="Alias for rename")(rename)


@app.command(help="Print the worktree path for a branch")
def where(
    ctx: typer.Context,
    branch: str = typer.Argument(..., help="Branch to look up."),
) -> None:
    with _handle_errors():
        path = _build_service(ctx).where(branch)
    typer.echo(str(path))


@app.command(help="Print the most recently created worktree path")
def last(ctx: typer.Context) -> None:
    with _handle_errors():
        path = _build_service(ctx).last()
    typer.echo(str(path))


@app.command(help="Get or set this repository's worktree folder name (deprecated: use 'config dirname')")
def dirname(
    ctx: typer.Context,
    folder_name: str | None = typer.Argument(None, help="New folder name. Prints the current one when omitted."),
) -> None:
    typer.secho('Warning: "dirname" is deprecated. Use "cool-branch config dirname" instead.', err=True, fg=typer.colors.YELLOW)
    state = _state(ctx)
    with _handle_errors():
        identity, config = load_runtime(state.cwd, CliOverrides(base=state.base), state.config_path)
        store = FolderMappingStore.for_base(config.base)
        mapped = store.get(identity.id)
        if folder_name is None:
            if mapped:
                console.print(f"Folder name: {mapped}")
                console.print(f"Worktrees at: {config.base / mapped}/")
            else:
                console.print(f"No custom mapping. Using default: {identity.default_folder_name}")
                console.print(f"Worktrees at: {config.base / identity.default_folder_name}/")
            if config.dirname:
                console.print(f"Per-repository config overrides this with: {config.dirname}")
            return
        validate_folder_name(folder_name)
        if mapped and mapped != folder_name:
            logger.warning("Changing folder name from '%s' to '%s'. Existing worktrees will not be moved.", mapped, folder_name)
        store.set(identity.id, folder_name)
    console.print(f"Folder name set to: {folder_name}")
    console.print(f"Worktrees will be created at: {config.base / folder_name}/")


@app.command("config", help="View or modify per-repository configuration")
def config_(
    ctx: typer.Context,
    key: str | None = typer.Argument(None, help="Config key (base, dirname, remote, copyConfig, setup)."),
    value: str | None = typer.Argument(None, help="Value to set."),
    local: bool = typer.Option(False, "--local", help="Target config.local.json instead of config.json."),
    unset: bool = typer.Option(False, "--unset", help="Remove the key."),
) -> None:
    state = _state(ctx)
    with _handle_errors():
        identity = resolve_repository(state.cwd)
        path = repo_config_path(identity, local=local)
        if unset:
            if not key:
                raise ValidationError("Key is required with --unset")
            data = read_config_file(path)
            if key not in data:
                console.print(f'Key "{key}" not found in config')
                return
            del data[key]
            write_config_file(path, data)
            console.print(f'Removed "{key}" from config')
            return
        if key is None:
            merged = merged_repo_config(identity)
            if not merged:
                console.print("No config values set.")
            for name, current in merged.items():
                typer.echo(f"{name}={current}")
            return
        if value is None:
            merged = merged_repo_config(identity)
            if key not in merged:
                _fail(f'Key "{key}" not found')
            typer.echo(str(merged[key]))
            return
        validate_config_value(key, value)
        data = read_config_file(path)
        data[key] = value
        write_config_file(path, data)
    console.print(f"Set {key}={value}")


@app.command(help="Create a .cool-branch config file in this repository")
def init(
    ctx: typer.Context,
    local: bool = typer.Option(False, "--local", help="Create config.local.json instead of config.json."),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config file."),
    edit: bool = typer.Option(False, "--edit", help="Open the config file in your editor afterwards."),
) -> None:
    state = _state(ctx)
    with _handle_errors():
        identity = resolve_repository(state.cwd)
        path = repo_config_path(identity, local=local)
        if path.exists() and not force:
            console.print(f"Config file already exists: {path}")
            return
        write_config_file(path, dict(CONFIG_TEMPLATE))
        console.print(f"Created: {path}")
        if edit:
            _open_in_editor(path)


@app.command(help="Show or edit the setup script that runs after 'add'")
def setup(
    ctx: typer.Context,
    local: bool = typer.Option(False, "--local", help="Target the local setup script."),
    edit: bool = typer.Option(False, "--edit", help="Create the script if needed and open it in your editor."),
    path_only: bool = typer.Option(False, "--path", help="Print only the script path; exit 1 if there is none."),
) -> None:
    state = _state(ctx)
    with _handle_errors():
        checkout = _checkout_root(state.cwd)
        settings_dir = checkout / SETTINGS_DIRNAME
        if edit:
            script = find_local_setup_script(settings_dir) if local else find_regular_setup_script(settings_dir)
            if script is None:
                script = create_setup_script(settings_dir, local=local)
                console.print(f"Created: {script}")
            _open_in_editor(script)
            return
        if local:
            script = find_local_setup_script(settings_dir)
            is_local = True
        else:
            candidate = locate_setup_script(settings_dir, legacy_root=checkout)
            script = candidate.path if candidate else None
            is_local = bool(candidate and candidate.is_local)
    if path_only:
        if script is None:
            raise typer.Exit(1)
        typer.echo(str(script))
        return
    if script is None:
        console.print("No local setup script found." if local else "No setup script found.")
        console.print("Create one with: cool-branch setup --edit" + (" --local" if local else ""))
        return
    label = "Local setup script" if is_local else "Setup script"
    console.print(f"{label}: {script}")
    if is_local and not local:
        shadowed = find_regular_setup_script(settings_dir)
        if shadowed:
            console.print(f"  Shadowing: {shadowed}")


@app.command(help="Show the installed version")
def version() -> None:
    typer.echo(__version__)


def _state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if not isinstance(state, AppState):  # pragma: no cover
        state = AppState(cwd=Path.cwd())
        ctx.obj = state
    return state


def _build_service(ctx: typer.Context, overrides: CliOverrides | None = None) -> WorktreeService:
    state = _state(ctx)
    overrides = replace(overrides or CliOverrides(), base=state.base)
    identity, config = load_runtime(state.cwd, overrides, state.config_path)
    return WorktreeService(identity, config)


@contextmanager
def _handle_errors() -> Iterator[None]:
    try:
        yield
    except CoolBranchError as exc:
        _fail(f"Error: {exc}")


def _checkout_root(cwd: Path) -> Path:
    try:
        return git.rev_parse_toplevel(cwd)
    except (GitCommandError, FileNotFoundError) as exc:
        raise NotARepository(cwd) from exc


def _prompt_branch(service: WorktreeService) -> str:
    available = service.available_branches()
    index = select_one("Select branch", [*available, NEW_BRANCH_LABEL])
    if index < len(available):
        return available[index]
    name = text_input("Branch name")
    if not name:
        raise ValidationError("Branch name cannot be empty.")
    return name


def _interactive_remove(service: WorktreeService) -> None:
    managed = service.managed_worktrees()
    if not managed:
        console.print("No worktrees to remove.")
        return
    indices = select_many("Select branch(es) to remove", [record.display_branch for record in managed])
    if not indices:
        raise ValidationError("No branches selected.")
    for index in indices:
        record = managed[index]
        branch = record.display_branch
        console.print(f"\nRemoving {branch}...")
        try:
            result = service.remove(branch, path=record.path)
        except (DirtyWorktree, WorktreeRemoveFailed) as exc:
            console.print(f"[yellow]{exc}[/yellow]")
            if not confirm(f"Remove '{branch}' with --force?", default=True):
                console.print(f"Skipping {branch}")
                continue
            try:
                result = service.remove(branch, force=True, path=record.path)
            except CoolBranchError as force_exc:
                typer.secho(f"Error: Failed to force remove worktree: {force_exc}", err=True, fg=typer.colors.RED)
                continue
        _report_removed(result)


def _report_added(result: AddResult) -> None:
    console.print(f"Worktree created at: {result.path}")


def _report_removed(result: RemoveResult) -> None:
    if result.branch_deleted:
        console.print(f"Worktree and branch '{result.branch}' removed")
    else:
        console.print(f"Worktree for '{result.branch}' removed (branch kept)")


def _open_in_editor(path: Path) -> None:
    editor = os.environ.get("VISUAL") or os.environ.get("EDITOR") or "vi"
    try:
        subprocess.run([*shlex.split(editor), str(path)], check=False)
    except OSError as exc:
        raise CoolBranchError(f"Could not open editor '{editor}': {exc}") from exc


def _shorten_path(path: Path) -> str:
    home = str(Path.home())
    text = str(path)
    if text.startswith(home):
        return "~" + text[len(home) :]
    return text


def _fail(message: str, code: int = 1) -> None:
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(code)


if __name__ == "__main__":
    app()
