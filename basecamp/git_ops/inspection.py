"""Working tree and upstream inspection using GitPython."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from git import Repo, InvalidGitRepositoryError, NoSuchPathError
from git.exc import GitError, ODBError

from ..errors import SafetyCheckError


@dataclass
class RepositoryStatus:
    """What a local repository would lose if it were deleted now."""
    working_tree_dirty: bool
    has_upstream: bool
    has_unpushed_commits: bool
    branch: Optional[str] = None
    upstream: Optional[str] = None
    unpushed_count: int = 0


def inspect_repository(path: Path) -> RepositoryStatus:
    """
    Inspect the working tree and current branch of the repository at ``path``.

    Untracked files count as a dirty working tree. No fetch is performed:
    the upstream tip is whatever the remote-tracking ref last recorded.

    Raises:
        SafetyCheckError: if the repository state cannot be determined
    """
    logger = logging.getLogger('basecamp.git_ops.inspection')

    try:
        repo = Repo(path)
    except (InvalidGitRepositoryError, NoSuchPathError) as e:
        raise SafetyCheckError(f"{path} is not a git repository: {e}") from e

    try:
        if repo.bare:
            raise SafetyCheckError(f"{path} is a bare repository")

        dirty = repo.is_dirty(index=True, working_tree=True, untracked_files=True)

        if repo.head.is_detached:
            logger.debug(f"{path}: detached HEAD, no upstream to compare against")
            return RepositoryStatus(working_tree_dirty=dirty, has_upstream=False, has_unpushed_commits=False)

        branch = repo.active_branch
        tracking = branch.tracking_branch()
        if tracking is None or not tracking.is_valid():
            logger.debug(f"{path}: branch '{branch.name}' has no upstream")
            return RepositoryStatus(
                working_tree_dirty=dirty,
                has_upstream=False,
                has_unpushed_commits=False,
                branch=branch.name
            )

        if not branch.is_valid():
            # Unborn branch: nothing committed, nothing to push
            unpushed = 0
        else:
            unpushed = sum(1 for _ in repo.iter_commits(f"{tracking.path}..{branch.path}"))

        logger.debug(
            f"{path}: branch '{branch.name}' tracks '{tracking.name}', "
            f"dirty={dirty}, unpushed={unpushed}"
        )
        return RepositoryStatus(
            working_tree_dirty=dirty,
            has_upstream=True,
            has_unpushed_commits=unpushed > 0,
            branch=branch.name,
            upstream=tracking.name,
            unpushed_count=unpushed
        )

    except SafetyCheckError:
        raise
    except (GitError, ODBError, ValueError, TypeError, OSError) as e:
        raise SafetyCheckError(f"Could not inspect {path}: {e}") from e
    finally:
        repo.close()
