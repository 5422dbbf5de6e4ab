"""Codebase configuration: data model, remote addressing and persistence."""

from .locator import locate
from .models import (
    CodebaseListing, Configuration, ConnectionMode, RemovedEntries, Repository, RepositoryListing
)
from .store import ConfigurationStore

__all__ = [
    'locate',
    'CodebaseListing',
    'Configuration',
    'ConnectionMode',
    'RemovedEntries',
    'Repository',
    'RepositoryListing',
    'ConfigurationStore'
]
