"""Repository cloning using GitPython."""

import errno
import logging
import shutil
import time
from pathlib import Path
from typing import Optional

from git import Git, GitCommandError

from ..platform import get_free_disk_space
from .error_strategies import FailureClassifier
from .error_types import FailureCategory
from .performance_logger import PerformanceLogger
from .utils import GitOperationResult, create_failure_result
from .validation import is_empty_directory, is_repository_root


# Never let git block a worker on an interactive credential prompt
CLONE_ENVIRONMENT = {"GIT_TERMINAL_PROMPT": "0"}


def clone_repository(
    remote_address: str,
    local_path: Path,
    timeout: float,
    min_free_bytes: int = 0,
    classifier: Optional[FailureClassifier] = None,
    perf_logger: Optional[PerformanceLogger] = None
) -> GitOperationResult:
    """
    Clone ``remote_address`` into ``local_path``.

    This function performs the following operations:
    1. Rejects a target path occupied by anything but an empty directory
    2. Checks free disk space on the target volume
    3. Runs ``git clone`` with a hard timeout
    4. Removes whatever a failed clone left behind
    5. Validates the cloned working tree

    Args:
        remote_address: Clone address of the repository
        local_path: Directory to clone into
        timeout: Seconds after which the clone is killed
        min_free_bytes: Minimum free space required before cloning
        classifier: Categorises git error output
        perf_logger: Records clone timings

    Returns:
        GitOperationResult; failures are reported, never raised
    """
    logger = logging.getLogger('basecamp.git_ops.clone')
    classifier = classifier or FailureClassifier()
    operation = "clone_repository"

    if local_path.exists() and not is_empty_directory(local_path):
        reason = classifier.reason(
            f"Target path {local_path} exists and is not an empty directory or a repository",
            category=FailureCategory.PATH_COLLISION
        )
        logger.error(reason.message)
        return create_failure_result(operation, reason)

    try:
        free_bytes = get_free_disk_space(local_path)
    except OSError as e:
        logger.warning(f"Could not determine free disk space for {local_path}: {e}")
        free_bytes = None

    if free_bytes is not None and free_bytes < min_free_bytes:
        reason = classifier.reason(
            f"Only {free_bytes // (1024 * 1024)} MB free under {local_path.parent}, "
            f"{min_free_bytes // (1024 * 1024)} MB required",
            category=FailureCategory.DISK_SPACE
        )
        logger.error(reason.message)
        return create_failure_result(operation, reason)

    existed_before = local_path.exists()
    start_time = time.time()

    try:
        local_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Cloning {remote_address} into {local_path}")
        if perf_logger:
            with perf_logger.time_operation(local_path.name, remote_address):
                _run_clone(remote_address, local_path, timeout)
        else:
            _run_clone(remote_address, local_path, timeout)

    except GitCommandError as e:
        duration = time.time() - start_time
        _discard_partial_clone(local_path, existed_before, logger)

        message = _git_error_text(e)
        category = None
        if duration >= timeout:
            category = FailureCategory.TIMEOUT
            message = f"Clone did not complete within {timeout:.0f}s: {message}"

        reason = classifier.reason(message, category=category)
        logger.error(f"Git clone of {remote_address} failed ({reason.category.value}): {reason.message}")
        return create_failure_result(operation, reason, duration)

    except OSError as e:
        duration = time.time() - start_time
        _discard_partial_clone(local_path, existed_before, logger)

        reason = classifier.reason(str(e), category=_os_error_category(e))
        logger.error(f"File system error cloning {remote_address}: {e}")
        return create_failure_result(operation, reason, duration)

    duration = time.time() - start_time

    if not is_repository_root(local_path):
        _discard_partial_clone(local_path, existed_before, logger)
        reason = classifier.reason(f"Clone finished but {local_path} is not a valid repository")
        logger.error(reason.message)
        return create_failure_result(operation, reason, duration)

    logger.info(f"Repository cloned successfully to {local_path} in {duration:.1f}s")
    return GitOperationResult(
        success=True,
        message=f"Cloned {remote_address}",
        operation=operation,
        duration=duration
    )


def _run_clone(remote_address: str, local_path: Path, timeout: float) -> None:
    Git().clone(
        "--",
        remote_address,
        str(local_path),
        kill_after_timeout=timeout,
        env=CLONE_ENVIRONMENT
    )


def _git_error_text(error: GitCommandError) -> str:
    stderr = error.stderr.strip() if isinstance(error.stderr, str) else ""
    # GitPython wraps stderr as "\n  stderr: '...'"
    if stderr.startswith("stderr:"):
        stderr = stderr[len("stderr:"):].strip().strip("'")
    return stderr or str(error)


def _os_error_category(error: OSError) -> FailureCategory:
    if isinstance(error, PermissionError):
        return FailureCategory.PERMISSION
    if isinstance(error, FileExistsError):
        return FailureCategory.PATH_COLLISION
    if error.errno in (errno.ENOSPC, getattr(errno, "EDQUOT", None)):
        return FailureCategory.DISK_SPACE
    return FailureCategory.UNKNOWN


def _discard_partial_clone(local_path: Path, existed_before: bool, logger: logging.Logger) -> None:
    """Remove what a failed clone wrote, leaving a pre-existing empty directory in place."""
    if not local_path.exists():
        return

    try:
        if existed_before:
            for child in local_path.iterdir():
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
        else:
            shutil.rmtree(local_path)
        logger.debug(f"Removed partial clone at {local_path}")
    except OSError as e:
        logger.warning(f"Could not remove partial clone at {local_path}: {e}")
