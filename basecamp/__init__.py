"""
BaseCamp - manage groups of related Git repositories as codebases.

This package provides the configuration store binding codebases to
repositories, bounded-parallel installation of those repositories, and
safety-checked removal that refuses to delete unpushed or uncommitted work.
"""

__version__ = "0.2.0"
__description__ = "Manage multiple codebases and their repositories"

from .config import Config, load_configuration, validate_configuration
from .errors import (
    BasecampError, CodebaseNotFoundError, ConfigError, ConfigNotFoundError,
    DuplicateRepositoryError, InvalidConfigError, MalformedConfigError
)
from .lifecycle import InstallOrchestrator, RemovalSafetyEngine
from .logging_setup import setup_logging
from .workspace import Configuration, ConfigurationStore, ConnectionMode, Repository, locate

__all__ = [
    "Config",
    "load_configuration",
    "validate_configuration",
    "BasecampError",
    "CodebaseNotFoundError",
    "ConfigError",
    "ConfigNotFoundError",
    "DuplicateRepositoryError",
    "InvalidConfigError",
    "MalformedConfigError",
    "InstallOrchestrator",
    "RemovalSafetyEngine",
    "setup_logging",
    "Configuration",
    "ConfigurationStore",
    "ConnectionMode",
    "Repository",
    "locate",
]
