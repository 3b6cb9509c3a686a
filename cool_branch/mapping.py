"""Persistent repository-to-folder-name mapping shared by every repository under a base."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from .constants import MAPPING_FILENAME
from .exceptions import ConfigError
from .fs import ensure_directory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FolderMappingStore:
    """Key-value store backed by ``<base>/cool-branch.json``.

    Writes are read-modify-write with no locking; concurrent writers can lose
    each other's entries (last writer wins).
    """

    path: Path

    @classmethod
    def for_base(cls, base: Path) -> "FolderMappingStore":
        return cls(base / MAPPING_FILENAME)

    def load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ConfigError(f"Failed to parse config file at {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Config file at {self.path} must contain a JSON object")
        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def get(self, repo_id: str) -> str | None:
        return self.load().get(repo_id) or None

    def set(self, repo_id: str, folder_name: str) -> None:
        data = self.load()
        data[repo_id] = folder_name
        ensure_directory(self.path.parent)
        self.path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        logger.debug("Mapped %s -> %s in %s", repo_id, folder_name, self.path)
