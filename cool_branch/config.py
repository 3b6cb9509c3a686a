"""Resolve the repository and fold configuration layers into one effective config."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from . import git
from .constants import (
    CONFIG_KEYS,
    DEFAULT_REMOTE,
    LOCAL_CONFIG_FILENAME,
    SETTINGS_DIRNAME,
    TRACKED_CONFIG_FILENAME,
    default_base,
)
from .exceptions import ConfigError, GitCommandError, NotARepository, ValidationError
from .fs import ensure_directory
from .models import CliOverrides, CopyMode, EffectiveConfig, RepositoryIdentity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfigLayer:
    """Partial settings from one source; relative paths are anchored at ``anchor``."""

    name: str
    values: dict[str, Any] = field(default_factory=dict)
    anchor: Path | None = None

    def get(self, key: str) -> Any:
        value = self.values.get(key)
        if value is None or value == "":
            return None
        return value


def resolve_repository(cwd: Path) -> RepositoryIdentity:
    """Return the identity and main checkout root of the repository containing ``cwd``."""

    try:
        toplevel = git.rev_parse_toplevel(cwd)
    except (GitCommandError, FileNotFoundError, NotADirectoryError) as exc:
        raise NotARepository(cwd) from exc
    root = toplevel
    try:
        records = git.worktree_list(toplevel)
    except GitCommandError:
        records = []
    if records and records[0].is_main:
        root = records[0].path
    remote = git.remote_url(root, DEFAULT_REMOTE)
    return RepositoryIdentity(id=remote or str(root.resolve()), root=root)


def load_runtime(
    cwd: Path,
    overrides: CliOverrides | None = None,
    explicit_config: Path | None = None,
) -> tuple[RepositoryIdentity, EffectiveConfig]:
    identity = resolve_repository(cwd)
    config = resolve_config(identity, overrides, explicit_config, cwd=cwd)
    return identity, config


def resolve_config(
    identity: RepositoryIdentity,
    overrides: CliOverrides | None = None,
    explicit_config: Path | None = None,
    *,
    cwd: Path | None = None,
) -> EffectiveConfig:
    cwd = cwd or Path.cwd()
    layers = [_cli_layer(overrides or CliOverrides(), cwd)]
    if explicit_config is not None:
        layers.append(load_explicit_layer(explicit_config, cwd))
    layers.append(load_repo_layer(identity))
    return fold_layers(layers)


def fold_layers(layers: list[ConfigLayer]) -> EffectiveConfig:
    """Take, key by key, the first layer that defines a value, then apply defaults."""

    resolved: dict[str, tuple[Any, ConfigLayer]] = {}
    for key in CONFIG_KEYS:
        for layer in layers:
            value = layer.get(key)
            if value is not None:
                resolved[key] = (value, layer)
                break
    base = _resolve_path(*resolved["base"]) if "base" in resolved else default_base()
    setup = _resolve_path(*resolved["setup"]) if "setup" in resolved else None
    copy_mode = CopyMode.LOCAL
    if "copyConfig" in resolved:
        value, layer = resolved["copyConfig"]
        copy_mode = parse_copy_mode(value, source=layer.name)
    remote = resolved["remote"][0] if "remote" in resolved else DEFAULT_REMOTE
    dirname = resolved["dirname"][0] if "dirname" in resolved else None
    return EffectiveConfig(
        base=base,
        remote=str(remote),
        copy_mode=copy_mode,
        dirname=dirname,
        setup_override=setup,
    )


def parse_copy_mode(value: Any, *, source: str = "copyConfig") -> CopyMode:
    if isinstance(value, CopyMode):
        return value
    try:
        return CopyMode(value)
    except ValueError as exc:
        choices = ", ".join(mode.value for mode in CopyMode)
        raise ConfigError(
            f'Invalid value for copyConfig in {source}: "{value}". Must be one of: {choices}'
        ) from exc


def load_explicit_layer(path: Path, cwd: Path) -> ConfigLayer:
    """Load a user-specified config file or directory; every problem is fatal."""

    candidate = path.expanduser()
    if not candidate.is_absolute():
        candidate = cwd / candidate
    if candidate.is_dir():
        candidate = candidate / TRACKED_CONFIG_FILENAME
        if not candidate.is_file():
            raise ConfigError(f"No {TRACKED_CONFIG_FILENAME} found in config directory: {candidate.parent}")
    elif not candidate.exists():
        raise ConfigError(f"Config file does not exist: {candidate}")
    try:
        data = json.loads(candidate.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Failed to parse config file at {candidate}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file at {candidate} must contain a JSON object")
    return ConfigLayer(name=str(candidate), values=_known_values(data), anchor=candidate.parent)


def load_repo_layer(identity: RepositoryIdentity) -> ConfigLayer:
    """Merge the tracked and local-override config files; local wins per key."""

    tracked = read_config_file(repo_config_path(identity, local=False))
    local = read_config_file(repo_config_path(identity, local=True))
    merged = {**_known_values(tracked), **_known_values(local)}
    return ConfigLayer(name=str(identity.settings_dir), values=merged, anchor=identity.root)


def read_config_file(path: Path) -> dict[str, Any]:
    """Read an optional JSON config file; missing or malformed files read as empty."""

    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.debug("Ignoring unreadable config file %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.debug("Ignoring config file %s: not a JSON object", path)
        return {}
    return data


def write_config_file(path: Path, data: dict[str, Any]) -> None:
    ensure_directory(path.parent)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def repo_config_path(identity: RepositoryIdentity, *, local: bool) -> Path:
    filename = LOCAL_CONFIG_FILENAME if local else TRACKED_CONFIG_FILENAME
    return identity.root / SETTINGS_DIRNAME / filename


def merged_repo_config(identity: RepositoryIdentity) -> dict[str, Any]:
    tracked = read_config_file(repo_config_path(identity, local=False))
    local = read_config_file(repo_config_path(identity, local=True))
    return {**tracked, **local}


def validate_config_value(key: str, value: str) -> None:
    if key not in CONFIG_KEYS:
        raise ValidationError(f"Unknown config key: {key}. Supported keys: {', '.join(CONFIG_KEYS)}")
    if key == "copyConfig":
        parse_copy_mode(value)


def _cli_layer(overrides: CliOverrides, cwd: Path) -> ConfigLayer:
    values: dict[str, Any] = {
        "base": str(overrides.base) if overrides.base else None,
        "remote": overrides.remote,
        "copyConfig": overrides.copy_mode,
        "setup": str(overrides.setup) if overrides.setup else None,
    }
    return ConfigLayer(name="command line", values=values, anchor=cwd)


def _known_values(data: dict[str, Any]) -> dict[str, str]:
    return {key: value for key, value in data.items() if key in CONFIG_KEYS and isinstance(value, str)}


def _resolve_path(value: Any, layer: ConfigLayer) -> Path:
    path = Path(str(value)).expanduser()
    if not path.is_absolute() and layer.anchor is not None:
        path = layer.anchor / path
    return path
