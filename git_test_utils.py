"""Helpers shared by the test suite for building real Git repositories."""

import os
import subprocess
from pathlib import Path
from typing import List

from basecamp.platform import get_git_executable


GIT_ENV = {
    **os.environ,
    "GIT_AUTHOR_NAME": "Test User",
    "GIT_AUTHOR_EMAIL": "test@example.com",
    "GIT_COMMITTER_NAME": "Test User",
    "GIT_COMMITTER_EMAIL": "test@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
    "GIT_TERMINAL_PROMPT": "0",
}


def run_git(args: List[str], cwd: Path) -> str:
    """Run a git command and return its stdout."""
    result = subprocess.run(
        [get_git_executable(), *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
        env=GIT_ENV
    )
    return result.stdout


def create_remote_repository(base_dir: Path, name: str) -> Path:
    """
    Create a bare repository with one commit on ``main``.

    Returns:
        Path to the bare repository, usable as a clone address
    """
    remote_dir = base_dir / "remotes" / f"{name}.git"
    remote_dir.mkdir(parents=True)
    run_git(["init", "--bare"], remote_dir)
    run_git(["symbolic-ref", "HEAD", "refs/heads/main"], remote_dir)

    seed_dir = base_dir / "seeds" / name
    seed_dir.mkdir(parents=True)
    run_git(["init"], seed_dir)
    run_git(["checkout", "-b", "main"], seed_dir)
    (seed_dir / "README.md").write_text(f"# {name}\n")
    run_git(["add", "README.md"], seed_dir)
    run_git(["commit", "-m", "Initial commit"], seed_dir)
    run_git(["remote", "add", "origin", str(remote_dir)], seed_dir)
    run_git(["push", "origin", "main"], seed_dir)

    return remote_dir


def clone_into(remote_dir: Path, target: Path) -> Path:
    """Clone ``remote_dir`` into ``target`` with the plain git executable."""
    target.parent.mkdir(parents=True, exist_ok=True)
    run_git(["clone", str(remote_dir), str(target)], target.parent)
    return target


def commit_file(repo_dir: Path, filename: str, content: str, message: str = "Update") -> None:
    """Write a file and commit it locally without pushing."""
    (repo_dir / filename).write_text(content)
    run_git(["add", filename], repo_dir)
    run_git(["commit", "-m", message], repo_dir)
