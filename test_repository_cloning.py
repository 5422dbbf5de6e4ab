#!/usr/bin/env python3
"""
Tests for cloning, failure classification and repository inspection
against real local Git repositories.
"""

import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent))

from basecamp.errors import ErrorCategory, SafetyCheckError
from basecamp.git_ops import (
    FailureCategory, FailureClassifier, PerformanceLogger, clone_repository,
    inspect_repository, is_repository_root
)
from git_test_utils import clone_into, commit_file, create_remote_repository, run_git


class TestFailureClassifier(unittest.TestCase):

    def setUp(self):
        self.classifier = FailureClassifier()

    def test_categorize_git_messages(self):
        cases = {
            "fatal: could not resolve host: github.com": FailureCategory.NETWORK,
            "fatal: Authentication failed for 'https://github.com/acme/app/'": FailureCategory.AUTHENTICATION,
            "git@github.com: Permission denied (publickey).": FailureCategory.AUTHENTICATION,
            "remote: Repository not found.": FailureCategory.REPOSITORY_ACCESS,
            "fatal: could not create work tree dir 'app': Permission denied": FailureCategory.PERMISSION,
            "fatal: write error: No space left on device": FailureCategory.DISK_SPACE,
            "ssh: connect to host github.com port 22: Connection timed out": FailureCategory.TIMEOUT,
            'Timeout: the command "git clone -- http://127.0.0.1:9/x.git x" did not complete in 2 secs.': FailureCategory.TIMEOUT,
            "something nobody has seen before": FailureCategory.UNKNOWN,
        }
        for message, expected in cases.items():
            with self.subTest(message=message):
                self.assertEqual(self.classifier.categorize(message), expected)

    def test_reason_carries_resolution_steps(self):
        reason = self.classifier.reason("remote: Repository not found.")

        self.assertEqual(reason.category, FailureCategory.REPOSITORY_ACCESS)
        self.assertEqual(reason.code, "CLONE_REPOSITORY_ACCESS")
        self.assertTrue(reason.resolution_steps)
        self.assertEqual(reason.to_dict()["category"], "repository_access")

    def test_explicit_category_wins(self):
        reason = self.classifier.reason("remote: Repository not found.", category=FailureCategory.TIMEOUT)
        self.assertEqual(reason.category, FailureCategory.TIMEOUT)

    def test_top_level_taxonomy(self):
        self.assertEqual(FailureCategory.DISK_SPACE.error_category, ErrorCategory.FILE_SYSTEM)
        self.assertEqual(FailureCategory.PATH_COLLISION.error_category, ErrorCategory.FILE_SYSTEM)
        self.assertEqual(FailureCategory.NETWORK.error_category, ErrorCategory.REMOTE)


class GitWorkspaceTestCase(unittest.TestCase):
    """Base class providing a temp directory with one remote repository."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp()).resolve()
        self.remote = create_remote_repository(self.temp_dir, "app")
        self.workspace = self.temp_dir / "workspace"
        self.workspace.mkdir()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)


class TestCloneRepository(GitWorkspaceTestCase):

    def test_clone_success(self):
        target = self.workspace / "frontend" / "app"
        perf_logger = PerformanceLogger()

        result = clone_repository(str(self.remote), target, timeout=60, perf_logger=perf_logger)

        self.assertTrue(result.success, result.message)
        self.assertTrue(is_repository_root(target))
        self.assertTrue((target / "README.md").exists())
        summary = perf_logger.get_performance_summary()
        self.assertEqual(summary["clones"], 1)
        self.assertEqual(summary["succeeded"], 1)
        self.assertEqual(summary["slowest"]["label"], "app")

    def test_clone_into_empty_directory(self):
        target = self.workspace / "app"
        target.mkdir()

        result = clone_repository(str(self.remote), target, timeout=60)

        self.assertTrue(result.success, result.message)

    def test_path_collision(self):
        target = self.workspace / "app"
        target.mkdir()
        (target / "notes.txt").write_text("mine")

        result = clone_repository(str(self.remote), target, timeout=60)

        self.assertFalse(result.success)
        self.assertEqual(result.reason.category, FailureCategory.PATH_COLLISION)
        self.assertEqual((target / "notes.txt").read_text(), "mine")

    def test_missing_remote_leaves_nothing_behind(self):
        target = self.workspace / "ghost"

        result = clone_repository(str(self.temp_dir / "remotes" / "ghost.git"), target, timeout=60)

        self.assertFalse(result.success)
        self.assertEqual(result.reason.category, FailureCategory.REPOSITORY_ACCESS)
        self.assertEqual(result.error_code, "CLONE_REPOSITORY_ACCESS")
        self.assertFalse(target.exists())

    def test_insufficient_disk_space(self):
        target = self.workspace / "app"

        with patch("basecamp.git_ops.clone.get_free_disk_space", return_value=10 * 1024 * 1024):
            result = clone_repository(str(self.remote), target, timeout=60, min_free_bytes=100 * 1024 * 1024)

        self.assertFalse(result.success)
        self.assertEqual(result.reason.category, FailureCategory.DISK_SPACE)
        self.assertFalse(target.exists())


class TestInspectRepository(GitWorkspaceTestCase):

    def setUp(self):
        super().setUp()
        self.clone = clone_into(self.remote, self.workspace / "app")

    def test_clean_synced_clone(self):
        status = inspect_repository(self.clone)

        self.assertFalse(status.working_tree_dirty)
        self.assertTrue(status.has_upstream)
        self.assertFalse(status.has_unpushed_commits)
        self.assertEqual(status.branch, "main")
        self.assertEqual(status.upstream, "origin/main")

    def test_untracked_file_is_dirty(self):
        (self.clone / "scratch.txt").write_text("wip")

        self.assertTrue(inspect_repository(self.clone).working_tree_dirty)

    def test_modified_file_is_dirty(self):
        (self.clone / "README.md").write_text("changed\n")

        self.assertTrue(inspect_repository(self.clone).working_tree_dirty)

    def test_unpushed_commits(self):
        commit_file(self.clone, "feature.txt", "new", "Add feature")
        commit_file(self.clone, "feature.txt", "newer", "Refine feature")

        status = inspect_repository(self.clone)

        self.assertFalse(status.working_tree_dirty)
        self.assertTrue(status.has_unpushed_commits)
        self.assertEqual(status.unpushed_count, 2)

    def test_branch_without_upstream(self):
        run_git(["checkout", "-b", "experiment"], self.clone)

        status = inspect_repository(self.clone)

        self.assertFalse(status.has_upstream)
        self.assertEqual(status.branch, "experiment")

    def test_detached_head(self):
        run_git(["checkout", "--detach"], self.clone)

        self.assertFalse(inspect_repository(self.clone).has_upstream)

    def test_not_a_repository(self):
        plain = self.workspace / "plain"
        plain.mkdir()

        with self.assertRaises(SafetyCheckError):
            inspect_repository(plain)

    def test_is_repository_root(self):
        self.assertTrue(is_repository_root(self.clone))
        self.assertFalse(is_repository_root(self.clone / "subdir"))
        self.assertFalse(is_repository_root(self.remote))
        self.assertFalse(is_repository_root(self.workspace))


if __name__ == "__main__":
    unittest.main()
