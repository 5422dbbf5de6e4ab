"""Error handling framework for BaseCamp."""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Any, Iterable, List, Optional


class ErrorCategory(Enum):
    """Categories of errors for structured error handling."""
    CONFIGURATION = "configuration"
    REMOTE = "remote"
    FILE_SYSTEM = "file_system"
    SAFETY_CHECK = "safety_check"


class ConfigErrorKind(Enum):
    """Tagged variants of configuration failures."""
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"
    INVALID = "invalid"
    DUPLICATE_REPOSITORY = "duplicate_repository"
    CODEBASE_NOT_FOUND = "codebase_not_found"


class BasecampError(Exception):
    """Base class for all BaseCamp errors."""
    category = ErrorCategory.CONFIGURATION


class ConfigError(BasecampError):
    """Configuration could not be loaded, validated or mutated."""
    kind = ConfigErrorKind.INVALID

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.message = message
        self.path = path


class ConfigNotFoundError(ConfigError):
    kind = ConfigErrorKind.NOT_FOUND


class MalformedConfigError(ConfigError):
    kind = ConfigErrorKind.MALFORMED


class InvalidConfigError(ConfigError):
    kind = ConfigErrorKind.INVALID


class DuplicateRepositoryError(ConfigError):
    """One or more repositories are already registered in the codebase."""
    kind = ConfigErrorKind.DUPLICATE_REPOSITORY

    def __init__(self, codebase: str, duplicates: Iterable[str]):
        self.codebase = codebase
        self.duplicates: List[str] = list(duplicates)
        super().__init__(
            f"Repositories already exist in codebase '{codebase}': {', '.join(self.duplicates)}"
        )


class CodebaseNotFoundError(ConfigError):
    kind = ConfigErrorKind.CODEBASE_NOT_FOUND

    def __init__(self, codebase: str):
        self.codebase = codebase
        super().__init__(f"Codebase '{codebase}' not found")


class FileSystemError(BasecampError):
    """Permission, disk space or path collision failure."""
    category = ErrorCategory.FILE_SYSTEM


class SafetyCheckError(BasecampError):
    """Repository state could not be determined."""
    category = ErrorCategory.SAFETY_CHECK


class InvalidTransitionError(BasecampError, ValueError):
    """An install job was asked to move to a state it cannot reach."""


@dataclass
class ErrorResponse:
    """Standardized error response format for per-item failures."""
    error: str
    error_code: str
    message: str
    timestamp: str
    category: str
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert error response to dictionary format."""
        result = {
            "error": self.error,
            "error_code": self.error_code,
            "message": self.message,
            "timestamp": self.timestamp,
            "category": self.category
        }
        if self.context:
            result["context"] = self.context
        return result


# Most specific first; FileNotFoundError and friends are OSError subclasses
FILE_SYSTEM_CODES = (
    (FileNotFoundError, "FS_NOT_FOUND", "Path not found"),
    (PermissionError, "FS_PERMISSION_DENIED", "Permission denied"),
    (FileExistsError, "FS_PATH_COLLISION", "Path already exists"),
    (OSError, "FS_IO_ERROR", "File system error"),
)


class ErrorHandler:
    """Turns per-item exceptions into structured, logged responses."""

    def __init__(self):
        self.logger = logging.getLogger('basecamp.error_handler')

    def _respond(
        self,
        category: ErrorCategory,
        summary: str,
        error_code: str,
        message: str,
        context: Optional[Dict[str, Any]],
        level: int = logging.WARNING
    ) -> ErrorResponse:
        context = context or {}
        self.logger.log(
            level,
            f"{summary}: {message}",
            extra={
                'operation': f"{category.value}_error",
                'error_code': error_code,
                'path': context.get('path')
            }
        )
        return ErrorResponse(
            error=summary,
            error_code=error_code,
            message=message,
            timestamp=datetime.now().isoformat(),
            category=category.value,
            context=context
        )

    def handle_config_error(self, error: ConfigError, context: Dict[str, Any] = None) -> ErrorResponse:
        """Handle configuration load, validation and mutation errors."""
        context = dict(context or {})
        if error.path is not None:
            context.setdefault('path', str(error.path))

        return self._respond(
            ErrorCategory.CONFIGURATION,
            "Configuration error",
            f"CONFIG_{error.kind.name}",
            str(error),
            context
        )

    def handle_file_system_error(self, error: Exception, context: Dict[str, Any] = None) -> ErrorResponse:
        """Handle filesystem errors raised while installing or removing a repository."""
        error_code, label = "FS_GENERAL_ERROR", "File operation failed"
        for error_type, code, description in FILE_SYSTEM_CODES:
            if isinstance(error, error_type):
                error_code, label = code, description
                break

        return self._respond(
            ErrorCategory.FILE_SYSTEM,
            "File system operation failed",
            error_code,
            f"{label}: {error}",
            context,
            level=logging.ERROR
        )

    def handle_safety_check_error(self, error: Exception, context: Dict[str, Any] = None) -> ErrorResponse:
        """Handle failures to inspect a repository before removal."""
        text = str(error).lower()

        if "not a git repository" in text or "bare repository" in text:
            error_code = "SAFETY_NOT_REPOSITORY"
        elif "corrupt" in text or "bad object" in text:
            error_code = "SAFETY_CORRUPT_REPOSITORY"
        elif isinstance(error, OSError) or isinstance(error.__cause__, OSError):
            error_code = "SAFETY_IO_ERROR"
        else:
            error_code = "SAFETY_GENERAL_ERROR"

        return self._respond(
            ErrorCategory.SAFETY_CHECK,
            "Safety check failed",
            error_code,
            str(error),
            context
        )


error_handler = ErrorHandler()
