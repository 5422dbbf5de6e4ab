"""Result type shared by Git operations."""

from dataclasses import dataclass
from typing import Optional

from .error_types import FailureReason


@dataclass
class GitOperationResult:
    """Result of a Git operation on one repository. Failures are reported, not raised."""
    success: bool
    message: str
    operation: str
    error_code: Optional[str] = None
    reason: Optional[FailureReason] = None
    duration: float = 0.0


def create_failure_result(operation: str, reason: FailureReason, duration: float = 0.0) -> GitOperationResult:
    """Helper to build a failed GitOperationResult from a FailureReason."""
    return GitOperationResult(
        success=False,
        message=reason.message,
        operation=operation,
        error_code=reason.code,
        reason=reason,
        duration=duration
    )
