"""Runtime configuration management for BaseCamp."""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from .platform import get_available_cpu_count, normalize_path

load_dotenv()  # Load .env file if it exists


STATE_DIR_NAME = ".basecamp"


@dataclass
class Config:
    """Runtime settings for BaseCamp with validation and defaults."""

    # Workspace
    workspace_root: Path = field(default_factory=Path.cwd)

    # Install
    parallelism: int = field(default_factory=get_available_cpu_count)
    clone_timeout: float = 300.0
    min_free_disk_mb: int = 100

    # Config store locking
    lock_timeout: float = 30.0

    # Logging
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.workspace_root, str):
            self.workspace_root = Path(self.workspace_root)
        self.workspace_root = normalize_path(self.workspace_root)

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        self.log_level = self.log_level.upper()
        if self.log_level not in valid_log_levels:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {valid_log_levels}")

        if self.parallelism <= 0:
            raise ValueError("parallelism must be positive")

        if self.clone_timeout <= 0:
            raise ValueError("clone_timeout must be positive")

        if self.min_free_disk_mb < 0:
            raise ValueError("min_free_disk_mb must be non-negative")

        if self.lock_timeout <= 0:
            raise ValueError("lock_timeout must be positive")

    @property
    def state_dir(self) -> Path:
        """Directory holding the persisted codebase configuration."""
        return self.workspace_root / STATE_DIR_NAME

    @property
    def config_file(self) -> Path:
        """File holding owner, connection mode and host."""
        return self.state_dir / "config.yaml"

    @property
    def codebases_file(self) -> Path:
        """File holding the codebase to repository mapping."""
        return self.state_dir / "codebases.yaml"

    @property
    def lock_file(self) -> Path:
        """Lock file serialising writers of the configuration store."""
        return self.state_dir / "config.lock"


def load_configuration() -> Config:
    """Load configuration from environment variables."""
    try:
        kwargs = {
            'workspace_root': Path(os.getenv("BASECAMP_ROOT", str(Path.cwd()))),
            'clone_timeout': float(os.getenv("BASECAMP_CLONE_TIMEOUT", "300")),
            'min_free_disk_mb': int(os.getenv("BASECAMP_MIN_FREE_DISK_MB", "100")),
            'lock_timeout': float(os.getenv("BASECAMP_LOCK_TIMEOUT", "30")),
            'log_level': os.getenv("BASECAMP_LOG_LEVEL", "INFO").upper(),
        }

        # Unset means "one worker per available execution unit"
        parallelism = os.getenv("BASECAMP_PARALLELISM")
        if parallelism:
            kwargs['parallelism'] = int(parallelism)

        return Config(**kwargs)
    except (ValueError, TypeError) as e:
        raise ValueError(f"Configuration error: {e}")


def validate_configuration(config: Config) -> List[str]:
    """Validate configuration and return any errors or warnings."""
    errors = []

    if not config.workspace_root.exists():
        errors.append(f"ERROR: Workspace root does not exist: {config.workspace_root}")
    elif not config.workspace_root.is_dir():
        errors.append(f"ERROR: Workspace root is not a directory: {config.workspace_root}")
    elif not os.access(config.workspace_root, os.W_OK):
        errors.append(f"ERROR: No write permission for workspace root: {config.workspace_root}")

    cpu_count = get_available_cpu_count()
    if config.parallelism > cpu_count * 4:
        errors.append(
            f"WARNING: parallelism {config.parallelism} is far above the {cpu_count} "
            "available execution units"
        )

    if config.clone_timeout < 10:
        errors.append("WARNING: Very short clone_timeout may fail large repositories")

    if errors:
        logging.getLogger('basecamp.config').debug(f"Configuration validation produced {len(errors)} findings")

    return errors
