#!/usr/bin/env python3
"""
Tests for safety-checked repository removal against real Git clones.
"""

import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent))

from basecamp.config import Config
from basecamp.errors import FileSystemError
from basecamp.lifecycle import RemovalAction, RemovalSafetyEngine, UnsafeReason, Verdict
from basecamp.workspace import ConfigurationStore
from git_test_utils import clone_into, commit_file, create_remote_repository, run_git


class RemovalTestCase(unittest.TestCase):
    """Workspace with codebase 'frontend' holding clones of 'app' and 'web'."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp()).resolve()
        self.workspace = self.temp_dir / "workspace"
        self.workspace.mkdir()

        self.config = Config(workspace_root=self.workspace, parallelism=2, lock_timeout=2.0)
        self.store = ConfigurationStore(self.config)
        self.configuration = self.store.initialize("acme", "https")
        self.store.add_repositories(self.configuration, "frontend", ["app", "web"])

        for name in ["app", "web"]:
            remote = create_remote_repository(self.temp_dir, name)
            clone_into(remote, self.workspace / "frontend" / name)

        self.engine = RemovalSafetyEngine(self.store)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def path(self, name):
        return self.workspace / "frontend" / name

    def repository(self, name):
        return self.store.repository(self.configuration, "frontend", name)


class TestSafetyVerdicts(RemovalTestCase):

    def test_clean_synced_is_safe(self):
        verdict = self.engine.inspect(self.repository("app"))

        self.assertEqual(verdict.verdict, Verdict.SAFE)
        self.assertTrue(verdict.has_upstream)
        self.assertEqual(verdict.reasons, [])

    def test_dirty_is_unsafe(self):
        (self.path("app") / "scratch.txt").write_text("wip")

        verdict = self.engine.inspect(self.repository("app"))

        self.assertEqual(verdict.verdict, Verdict.UNSAFE)
        self.assertEqual(verdict.reasons, [UnsafeReason.WORKING_TREE_DIRTY])

    def test_unpushed_is_unsafe(self):
        commit_file(self.path("app"), "feature.txt", "local only")

        verdict = self.engine.inspect(self.repository("app"))

        self.assertEqual(verdict.reasons, [UnsafeReason.UNPUSHED_COMMITS])

    def test_missing_upstream_is_unsafe(self):
        run_git(["checkout", "-b", "experiment"], self.path("app"))

        verdict = self.engine.inspect(self.repository("app"))

        self.assertEqual(verdict.reasons, [UnsafeReason.MISSING_UPSTREAM])

    def test_reasons_accumulate(self):
        run_git(["checkout", "-b", "experiment"], self.path("app"))
        (self.path("app") / "scratch.txt").write_text("wip")

        verdict = self.engine.inspect(self.repository("app"))

        self.assertEqual(
            verdict.reasons,
            [UnsafeReason.WORKING_TREE_DIRTY, UnsafeReason.MISSING_UPSTREAM]
        )
        self.assertIn("no upstream", verdict.describe())

    def test_missing_directory_is_safe(self):
        shutil.rmtree(self.path("app"))

        verdict = self.engine.inspect(self.repository("app"))

        self.assertEqual(verdict.verdict, Verdict.SAFE)
        self.assertFalse(verdict.local_path_exists)

    def test_non_repository_is_unknown(self):
        shutil.rmtree(self.path("app"))
        self.path("app").mkdir()
        (self.path("app") / "notes.txt").write_text("plain directory")

        verdict = self.engine.inspect(self.repository("app"))

        self.assertEqual(verdict.verdict, Verdict.UNKNOWN)
        self.assertEqual(verdict.reasons, [UnsafeReason.INSPECTION_ERROR])
        self.assertEqual(verdict.error.error_code, "SAFETY_NOT_REPOSITORY")


class TestRemoval(RemovalTestCase):

    def test_remove_clean_repository(self):
        report = self.engine.remove(self.configuration, "frontend", ["app"])

        self.assertEqual(len(report.removed), 1)
        self.assertEqual(report.outcomes[0].action, RemovalAction.DELETE)
        self.assertTrue(report.outcomes[0].directory_deleted)
        self.assertFalse(self.path("app").exists())
        self.assertEqual(self.store.load().codebases, {"frontend": ["web"]})

    def test_dirty_repository_is_skipped(self):
        (self.path("app") / "scratch.txt").write_text("wip")

        report = self.engine.remove(self.configuration, "frontend", ["app"])

        outcome = report.outcomes[0]
        self.assertEqual(outcome.action, RemovalAction.SKIP)
        self.assertEqual(outcome.reasons, [UnsafeReason.WORKING_TREE_DIRTY])
        self.assertFalse(outcome.succeeded)
        self.assertTrue((self.path("app") / "scratch.txt").exists())
        self.assertEqual(self.store.load().codebases["frontend"], ["app", "web"])

    def test_force_removes_unsafe_and_reports_reasons(self):
        commit_file(self.path("app"), "feature.txt", "local only")

        report = self.engine.remove(self.configuration, "frontend", ["app"], force=True)

        outcome = report.outcomes[0]
        self.assertEqual(outcome.action, RemovalAction.FORCE_DELETE)
        self.assertEqual(outcome.reasons, [UnsafeReason.UNPUSHED_COMMITS])
        self.assertTrue(outcome.succeeded)
        self.assertFalse(self.path("app").exists())
        self.assertEqual(outcome.to_dict()["reasons"], ["unpushed_commits"])

    def test_unsafe_sibling_does_not_block_safe_one(self):
        (self.path("app") / "scratch.txt").write_text("wip")

        report = self.engine.remove(self.configuration, "frontend", ["app", "web"])

        actions = {o.repository.name: o.action for o in report.outcomes}
        self.assertEqual(actions, {"app": RemovalAction.SKIP, "web": RemovalAction.DELETE})
        self.assertTrue(self.path("app").exists())
        self.assertFalse(self.path("web").exists())
        self.assertEqual(self.store.load().codebases, {"frontend": ["app"]})

    def test_unregistered_name_is_a_warning(self):
        report = self.engine.remove(self.configuration, "frontend", ["ghost"])

        self.assertEqual(report.outcomes, [])
        self.assertEqual(len(report.warnings), 1)
        self.assertIn("ghost", report.warnings[0])

    def test_unknown_codebase_is_a_warning(self):
        report = self.engine.remove(self.configuration, "backend")

        self.assertEqual(report.outcomes, [])
        self.assertEqual(len(report.warnings), 1)

    def test_missing_directory_still_clears_configuration(self):
        shutil.rmtree(self.path("app"))

        report = self.engine.remove(self.configuration, "frontend", ["app"])

        self.assertEqual(len(report.removed), 1)
        self.assertEqual(self.store.load().codebases, {"frontend": ["web"]})

    def test_undeletable_directory_is_orphaned(self):
        with patch("basecamp.lifecycle.removal.shutil.rmtree", side_effect=OSError("device busy")):
            report = self.engine.remove(self.configuration, "frontend", ["app"])

        outcome = report.outcomes[0]
        self.assertTrue(outcome.succeeded)
        self.assertFalse(outcome.directory_deleted)
        self.assertIsNotNone(outcome.orphaned)
        self.assertEqual(outcome.orphaned.path, self.path("app"))
        self.assertEqual(len(report.orphaned), 1)
        self.assertTrue(any("Orphaned directory" in w for w in report.warnings))
        self.assertEqual(self.store.load().codebases, {"frontend": ["web"]})

    def test_save_failure_aborts_remaining_entries(self):
        with patch.object(self.store, "_persist", side_effect=FileSystemError("read-only filesystem")):
            report = self.engine.remove(self.configuration, "frontend", ["app", "web"])

        self.assertTrue(report.aborted)
        self.assertEqual(len(report.outcomes), 2)
        self.assertTrue(all(o.error is not None for o in report.outcomes))
        self.assertTrue(self.path("app").exists())
        self.assertTrue(self.path("web").exists())
        self.assertEqual(self.store.load().codebases["frontend"], ["app", "web"])

    def test_symlink_outside_workspace_is_not_followed(self):
        outside = self.temp_dir / "outside"
        outside.mkdir()
        (outside / "precious.txt").write_text("keep me")
        shutil.rmtree(self.path("web"))
        self.path("web").symlink_to(outside, target_is_directory=True)

        orphan = self.engine._delete_directory(self.path("web"))

        self.assertIsNone(orphan)
        self.assertFalse(self.path("web").is_symlink())
        self.assertTrue((outside / "precious.txt").exists())


class TestCodebaseRemoval(RemovalTestCase):

    def test_remove_whole_codebase(self):
        report = self.engine.remove(self.configuration, "frontend")

        self.assertTrue(report.codebase_removed)
        self.assertEqual(len(report.removed), 2)
        self.assertFalse((self.workspace / "frontend").exists())
        self.assertEqual(self.store.load().codebases, {})

    def test_skipped_repository_keeps_codebase(self):
        commit_file(self.path("web"), "feature.txt", "local only")

        report = self.engine.remove(self.configuration, "frontend")

        self.assertFalse(report.codebase_removed)
        self.assertEqual(len(report.skipped), 1)
        self.assertEqual(self.store.load().codebases, {"frontend": ["web"]})
        self.assertTrue(self.path("web").exists())

    def test_stray_files_keep_codebase_directory(self):
        (self.workspace / "frontend" / "notes.txt").write_text("stray")

        report = self.engine.remove(self.configuration, "frontend")

        self.assertTrue(report.codebase_removed)
        self.assertTrue((self.workspace / "frontend" / "notes.txt").exists())
        self.assertTrue(any("left in place" in w for w in report.warnings))


if __name__ == "__main__":
    unittest.main()
