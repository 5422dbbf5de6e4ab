"""Repository validation utilities."""

import logging
from pathlib import Path

from git import Repo, InvalidGitRepositoryError, NoSuchPathError


def is_repository_root(path: Path) -> bool:
    """
    Check whether ``path`` is the root of a usable Git working tree.

    A directory nested inside some other repository does not count; the
    working tree root must be ``path`` itself.
    """
    logger = logging.getLogger('basecamp.git_ops.validation')

    if not path.is_dir() or not (path / ".git").exists():
        return False

    try:
        repo = Repo(path)
        try:
            if repo.bare or repo.working_tree_dir is None:
                return False
            return Path(repo.working_tree_dir).resolve() == path.resolve()
        finally:
            repo.close()
    except (InvalidGitRepositoryError, NoSuchPathError) as e:
        logger.debug(f"{path} is not a valid repository: {e}")
        return False


def is_empty_directory(path: Path) -> bool:
    return path.is_dir() and not any(path.iterdir())
