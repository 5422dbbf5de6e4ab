"""Git operations for BaseCamp."""

from .clone import clone_repository
from .error_strategies import FailureClassifier
from .error_types import FailureCategory, FailureReason
from .inspection import RepositoryStatus, inspect_repository
from .performance_logger import PerformanceLogger
from .utils import GitOperationResult
from .validation import is_repository_root

__all__ = [
    'clone_repository',
    'FailureClassifier',
    'FailureCategory',
    'FailureReason',
    'RepositoryStatus',
    'inspect_repository',
    'PerformanceLogger',
    'GitOperationResult',
    'is_repository_root'
]
