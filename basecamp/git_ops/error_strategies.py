"""Categorisation and resolution guidance for failed clone operations."""

import logging
from typing import Dict, List, Optional

from .error_types import FailureCategory, FailureReason


def build_error_patterns() -> Dict[str, FailureCategory]:
    """
    Build mapping of git error text to categories.

    Checked in insertion order; filesystem patterns come first because git
    reports local permission problems with the same wording as SSH ones.
    """
    return {
        # Local filesystem
        "could not create work tree dir": FailureCategory.PERMISSION,
        "could not create leading directories": FailureCategory.PERMISSION,
        "no space left on device": FailureCategory.DISK_SPACE,
        "disk quota exceeded": FailureCategory.DISK_SPACE,
        "already exists and is not an empty directory": FailureCategory.PATH_COLLISION,

        # Stalls
        "timeout:": FailureCategory.TIMEOUT,
        "timed out": FailureCategory.TIMEOUT,
        "operation too slow": FailureCategory.TIMEOUT,

        # Authentication
        "authentication failed": FailureCategory.AUTHENTICATION,
        "permission denied (publickey": FailureCategory.AUTHENTICATION,
        "host key verification failed": FailureCategory.AUTHENTICATION,
        "could not read username": FailureCategory.AUTHENTICATION,
        "invalid credentials": FailureCategory.AUTHENTICATION,
        "returned error: 403": FailureCategory.AUTHENTICATION,
        "returned error: 401": FailureCategory.AUTHENTICATION,

        # Repository access
        "repository not found": FailureCategory.REPOSITORY_ACCESS,
        "does not appear to be a git repository": FailureCategory.REPOSITORY_ACCESS,
        "does not exist": FailureCategory.REPOSITORY_ACCESS,
        "could not read from remote repository": FailureCategory.REPOSITORY_ACCESS,

        # Network
        "could not resolve host": FailureCategory.NETWORK,
        "temporary failure in name resolution": FailureCategory.NETWORK,
        "connection refused": FailureCategory.NETWORK,
        "network is unreachable": FailureCategory.NETWORK,
        "no route to host": FailureCategory.NETWORK,
        "early eof": FailureCategory.NETWORK,
        "the remote end hung up": FailureCategory.NETWORK,
    }


def build_resolution_steps() -> Dict[FailureCategory, List[str]]:
    """Build user-facing resolution steps for each category."""
    return {
        FailureCategory.NETWORK: [
            "Check your internet connection",
            "Verify the host in your BaseCamp configuration is reachable",
            "Run the install again; repositories already cloned are skipped",
        ],
        FailureCategory.AUTHENTICATION: [
            "For SSH: check your key with 'ssh -T git@github.com'",
            "For SSH: add your key to the agent with 'ssh-add'",
            "For HTTPS: ensure a credential helper or token is configured",
        ],
        FailureCategory.REPOSITORY_ACCESS: [
            "Verify the repository name and owner are spelled correctly",
            "Check that you have access to the repository",
        ],
        FailureCategory.TIMEOUT: [
            "The clone stalled and was stopped",
            "Raise BASECAMP_CLONE_TIMEOUT for very large repositories",
            "Run the install again; repositories already cloned are skipped",
        ],
        FailureCategory.DISK_SPACE: [
            "Free disk space on the workspace volume",
            "Lower BASECAMP_MIN_FREE_DISK_MB only if you know the repository is small",
        ],
        FailureCategory.PATH_COLLISION: [
            "A non-repository file or directory occupies the target path",
            "Move or delete it, then run the install again",
        ],
        FailureCategory.PERMISSION: [
            "Check write permission on the codebase directory",
        ],
        FailureCategory.UNKNOWN: [
            "Check the error details",
            "Try cloning the repository manually with 'git clone'",
        ],
    }


class FailureClassifier:
    """Maps raw git error text onto a categorised, actionable reason."""

    def __init__(self):
        self.logger = logging.getLogger('basecamp.git_ops.error_strategies')
        self._error_patterns = build_error_patterns()
        self._resolution_steps = build_resolution_steps()

    def categorize(self, error_message: str) -> FailureCategory:
        if not error_message:
            return FailureCategory.UNKNOWN

        error_lower = error_message.lower()
        for pattern, category in self._error_patterns.items():
            if pattern in error_lower:
                self.logger.debug(f"Categorized error as {category.value}: pattern '{pattern}' found")
                return category

        self.logger.debug(f"Could not categorize error: {error_message}")
        return FailureCategory.UNKNOWN

    def reason(
        self,
        error_message: str,
        category: Optional[FailureCategory] = None,
        code: Optional[str] = None
    ) -> FailureReason:
        """Build a FailureReason, categorising ``error_message`` unless ``category`` is given."""
        category = category or self.categorize(error_message)
        return FailureReason(
            category=category,
            code=code or f"CLONE_{category.name}",
            message=error_message.strip(),
            resolution_steps=list(self._resolution_steps[category])
        )
