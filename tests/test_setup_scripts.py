"""Tests for setup script discovery."""

from __future__ import annotations

import sys
import tempfile
import unittest
from pathlib import Path

from cool_branch.setup_scripts import (
    create_setup_script,
    find_local_setup_script,
    find_regular_setup_script,
    is_regular_setup_name,
    locate_setup_script,
    select_setup_script,
    setup_command,
)


class SelectSetupScriptTests(unittest.TestCase):
    def test_local_variant_shadows_regular(self) -> None:
        self.assertEqual(select_setup_script(["setup.sh", "setup.local.sh"]), ("setup.local.sh", True))

    def test_bare_local_name_matches(self) -> None:
        self.assertEqual(select_setup_script(["setup", "setup.local"]), ("setup.local", True))

    def test_regular_script_with_any_extension(self) -> None:
        self.assertEqual(select_setup_script(["README.md", "setup.py"]), ("setup.py", False))

    def test_unrelated_names_do_not_match(self) -> None:
        self.assertIsNone(select_setup_script(["setup.", "setupfoo", "my-setup.sh", "config.json"]))

    def test_local_prefixed_names_are_not_regular(self) -> None:
        self.assertIsNone(select_setup_script(["setup.localized"], rules=((is_regular_setup_name, False),)))


class LocateSetupScriptTests(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.root = Path(tmp.name)
        self.settings = self.root / ".cool-branch"
        self.settings.mkdir()

    def test_returns_none_when_nothing_matches(self) -> None:
        (self.settings / "config.json").write_text("{}")

        self.assertIsNone(locate_setup_script(self.settings, legacy_root=self.root))

    def test_missing_settings_directory_is_not_an_error(self) -> None:
        self.assertIsNone(locate_setup_script(self.root / "missing"))

    def test_local_candidate_is_flagged(self) -> None:
        (self.settings / "setup").write_text("")
        (self.settings / "setup.local").write_text("")

        candidate = locate_setup_script(self.settings)

        self.assertEqual(candidate.path, self.settings / "setup.local")
        self.assertTrue(candidate.is_local)

    def test_directories_are_not_candidates(self) -> None:
        (self.settings / "setup.d").mkdir()

        self.assertIsNone(locate_setup_script(self.settings))

    def test_legacy_script_used_only_as_fallback(self) -> None:
        (self.root / "cool-branch.sh").write_text("")

        legacy = locate_setup_script(self.settings, legacy_root=self.root)
        self.assertEqual(legacy.path, self.root / "cool-branch.sh")
        self.assertFalse(legacy.is_local)

        (self.settings / "setup.sh").write_text("")
        preferred = locate_setup_script(self.settings, legacy_root=self.root)
        self.assertEqual(preferred.path, self.settings / "setup.sh")

    def test_find_helpers_split_local_and_regular(self) -> None:
        (self.settings / "setup.sh").write_text("")
        (self.settings / "setup.local.sh").write_text("")

        self.assertEqual(find_local_setup_script(self.settings), self.settings / "setup.local.sh")
        self.assertEqual(find_regular_setup_script(self.settings), self.settings / "setup.sh")

    def test_create_setup_script_is_executable(self) -> None:
        path = create_setup_script(self.root / "fresh", local=True)

        self.assertEqual(path.name, "setup.local")
        self.assertTrue(path.stat().st_mode & 0o100)
        self.assertTrue(path.read_text().startswith("#!/bin/bash"))


class SetupCommandTests(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.root = Path(tmp.name)

    def test_executable_runs_directly(self) -> None:
        script = self.root / "setup"
        script.write_text("#!/bin/sh\n")
        script.chmod(0o755)

        self.assertEqual(setup_command(script), [str(script)])

    def test_python_script_uses_interpreter(self) -> None:
        script = self.root / "setup.py"
        script.write_text("print('hi')\n")
        script.chmod(0o644)

        self.assertEqual(setup_command(script), [sys.executable, str(script)])

    def test_other_scripts_use_sh(self) -> None:
        script = self.root / "setup.sh"
        script.write_text("echo hi\n")
        script.chmod(0o644)

        self.assertEqual(setup_command(script), ["sh", str(script)])


if __name__ == "__main__":
    unittest.main()
