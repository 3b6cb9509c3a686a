"""File names and defaults shared across cool-branch."""

from __future__ import annotations

from pathlib import Path

SETTINGS_DIRNAME = ".cool-branch"
TRACKED_CONFIG_FILENAME = "config.json"
LOCAL_CONFIG_FILENAME = "config.local.json"
MAPPING_FILENAME = "cool-branch.json"

# Root-level setup script name used before the settings directory existed.
LEGACY_SETUP_NAME = "cool-branch"

DEFAULT_REMOTE = "origin"
DEFAULT_BASE_DIRNAME = ".worktrees"

CONFIG_KEYS = ("base", "dirname", "remote", "copyConfig", "setup")

CONFIG_TEMPLATE = {
    "dirname": "",
    "base": "",
    "copyConfig": "local",
}


def default_base() -> Path:
    return Path.home() / DEFAULT_BASE_DIRNAME
