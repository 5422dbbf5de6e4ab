"""Codebase configuration data structures."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from ..config import STATE_DIR_NAME


DEFAULT_HOST = "github.com"

PATH_SEPARATORS = ("/", "\\")
RESERVED_NAMES = {".", "..", STATE_DIR_NAME}


class ConnectionMode(Enum):
    """Addressing scheme used to reach remotes."""
    HTTPS = "https"
    SSH = "ssh"

    @classmethod
    def parse(cls, value: str) -> "ConnectionMode":
        """Parse a connection mode name, case-insensitively."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown connection mode: {value!r}. Must be 'https' or 'ssh'")


@dataclass
class Configuration:
    """Codebase to repository mapping plus remote-addressing settings."""
    connection_mode: ConnectionMode
    owner: str
    codebases: Dict[str, List[str]] = field(default_factory=dict)
    host: str = DEFAULT_HOST

    def copy(self) -> "Configuration":
        return Configuration(
            connection_mode=self.connection_mode,
            owner=self.owner,
            codebases={name: list(repos) for name, repos in self.codebases.items()},
            host=self.host
        )


@dataclass(frozen=True)
class Repository:
    """A repository as seen at operation time. Never persisted on its own."""
    codebase: str
    name: str
    remote_address: str
    local_path: Path

    @property
    def key(self) -> str:
        return f"{self.codebase}/{self.name}"


@dataclass
class RepositoryListing:
    """One repository row of a codebase listing."""
    name: str
    remote_address: str
    local_path: Path
    installed: bool


@dataclass
class CodebaseListing:
    """A codebase and the install state of its repositories."""
    name: str
    repositories: List[RepositoryListing] = field(default_factory=list)

    @property
    def installed_count(self) -> int:
        return sum(1 for repo in self.repositories if repo.installed)


@dataclass
class RemovedEntries:
    """Entries removed from a configuration, plus names that were not there."""
    codebase: str
    removed: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    codebase_removed: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.removed) or self.codebase_removed


def validate_name(name: str, kind: str) -> Optional[str]:
    """
    Check a codebase or repository name.

    Returns:
        A description of the problem, or None if the name is acceptable
    """
    if not isinstance(name, str):
        return f"{kind} name must be a string, got {type(name).__name__}"
    if not name or not name.strip():
        return f"{kind} name must not be empty"
    if name != name.strip():
        return f"{kind} name '{name}' has leading or trailing whitespace"
    if any(sep in name for sep in PATH_SEPARATORS):
        return f"{kind} name '{name}' must not contain path separators"
    if name in RESERVED_NAMES:
        return f"{kind} name '{name}' is reserved"
    return None
