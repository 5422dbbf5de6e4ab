"""Failure categories for Git operations on a single repository."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from ..errors import ErrorCategory


class FailureCategory(Enum):
    """Why a clone job failed."""
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    REPOSITORY_ACCESS = "repository_access"
    TIMEOUT = "timeout"
    DISK_SPACE = "disk_space"
    PATH_COLLISION = "path_collision"
    PERMISSION = "permission"
    UNKNOWN = "unknown"

    @property
    def error_category(self) -> ErrorCategory:
        """The top-level taxonomy bucket this failure belongs to."""
        if self in (FailureCategory.DISK_SPACE, FailureCategory.PATH_COLLISION, FailureCategory.PERMISSION):
            return ErrorCategory.FILE_SYSTEM
        return ErrorCategory.REMOTE


@dataclass
class FailureReason:
    """Actionable description of a failed job."""
    category: FailureCategory
    code: str
    message: str
    resolution_steps: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "code": self.code,
            "message": self.message,
            "resolution_steps": list(self.resolution_steps),
        }

    def __str__(self) -> str:
        return f"{self.category.value}: {self.message}"
