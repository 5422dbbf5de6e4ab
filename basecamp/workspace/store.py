"""Persistent codebase configuration store."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from ..config import Config
from ..errors import (
    CodebaseNotFoundError, ConfigNotFoundError, DuplicateRepositoryError,
    FileSystemError, InvalidConfigError, MalformedConfigError
)
from ..file_lock import config_store_lock
from ..platform import create_secure_temp_file
from ..git_ops.validation import is_repository_root
from .locator import locate
from .models import (
    CodebaseListing, Configuration, ConnectionMode, DEFAULT_HOST, RemovedEntries,
    Repository, RepositoryListing, validate_name
)


class ConfigurationStore:
    """
    Loads, validates and persists the codebase configuration of a workspace.

    The configuration lives in two YAML files under ``.basecamp/``:
    ``config.yaml`` (owner, connection mode, host) and ``codebases.yaml``
    (codebase to repository mapping). Every mutation is validated before it
    is written, and every write replaces the file atomically.
    """

    def __init__(self, config: Config):
        """
        Initialize the store for a workspace.

        Args:
            config: Runtime settings naming the workspace root
        """
        self.config = config
        self.workspace_root = config.workspace_root
        self.logger = logging.getLogger('basecamp.workspace.store')

    # ------------------------------------------------------------------
    # Loading and saving
    # ------------------------------------------------------------------

    def exists(self) -> bool:
        return self.config.config_file.exists()

    def initialize(
        self,
        owner: str,
        connection_mode: ConnectionMode,
        host: str = DEFAULT_HOST,
        overwrite: bool = False
    ) -> Configuration:
        """
        Create and persist a fresh configuration with no codebases.

        Raises:
            InvalidConfigError: if a configuration exists and ``overwrite`` is False,
                or if the settings are invalid
        """
        if self.exists() and not overwrite:
            raise InvalidConfigError(
                f"Configuration already exists at {self.config.config_file}",
                path=self.config.config_file
            )

        try:
            mode = ConnectionMode.parse(connection_mode)
        except ValueError as e:
            raise InvalidConfigError(str(e), path=self.config.config_file)

        configuration = Configuration(
            connection_mode=mode,
            owner=owner,
            host=host
        )
        self.save(configuration)
        self.logger.info(f"Initialized configuration for owner '{owner}' ({configuration.connection_mode.value})")
        return configuration

    def load(self) -> Configuration:
        """
        Read the persisted configuration.

        Raises:
            ConfigNotFoundError: if ``config.yaml`` is absent
            MalformedConfigError: if either file is structurally invalid
            InvalidConfigError: if the data breaks a configuration invariant
        """
        config_path = self.config.config_file
        codebases_path = self.config.codebases_file

        if not config_path.exists():
            raise ConfigNotFoundError(f"Configuration file not found: {config_path}", path=config_path)

        self.logger.debug(f"Loading configuration from {self.config.state_dir}")

        settings = self._read_yaml(config_path)
        if not isinstance(settings, dict):
            raise MalformedConfigError(f"{config_path.name} must contain a mapping", path=config_path)

        for key in ("owner", "connection_mode"):
            if key not in settings:
                raise MalformedConfigError(f"{config_path.name} is missing required field '{key}'", path=config_path)

        owner = settings["owner"]
        if not isinstance(owner, str):
            raise MalformedConfigError(f"'owner' must be a string in {config_path.name}", path=config_path)

        try:
            connection_mode = ConnectionMode.parse(settings["connection_mode"])
        except ValueError as e:
            raise MalformedConfigError(str(e), path=config_path)

        host = settings.get("host", DEFAULT_HOST)
        if not isinstance(host, str):
            raise MalformedConfigError(f"'host' must be a string in {config_path.name}", path=config_path)

        codebases = self._load_codebases(codebases_path)

        configuration = Configuration(
            connection_mode=connection_mode,
            owner=owner,
            codebases=codebases,
            host=host
        )

        problems = self.validate(configuration)
        if problems:
            raise InvalidConfigError("; ".join(problems), path=codebases_path)

        self.logger.info("Configuration loaded successfully")
        return configuration

    def _load_codebases(self, path: Path) -> Dict[str, List[str]]:
        if not path.exists():
            return {}

        document = self._read_yaml(path)
        if document is None:
            return {}
        if not isinstance(document, dict) or "codebases" not in document:
            raise MalformedConfigError(f"{path.name} must contain a 'codebases' mapping", path=path)

        raw = document["codebases"]
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise MalformedConfigError(f"'codebases' must be a mapping in {path.name}", path=path)

        codebases = {}
        for name, repos in raw.items():
            if not isinstance(name, str):
                raise MalformedConfigError(f"Codebase name {name!r} must be a string", path=path)
            if not isinstance(repos, list) or not all(isinstance(repo, str) for repo in repos):
                raise MalformedConfigError(f"Codebase '{name}' must map to a list of repository names", path=path)
            codebases[name] = list(repos)

        return codebases

    def _read_yaml(self, path: Path) -> Any:
        try:
            with open(path, "r", encoding="utf-8") as fh:
                return yaml.safe_load(fh)
        except yaml.YAMLError as e:
            raise MalformedConfigError(f"Cannot parse {path.name}: {e}", path=path)
        except UnicodeDecodeError as e:
            raise MalformedConfigError(f"{path.name} is not valid UTF-8: {e}", path=path)

    def validate(self, configuration: Configuration) -> List[str]:
        """Return every invariant violation in ``configuration``."""
        problems = []

        if not isinstance(configuration.owner, str) or not configuration.owner.strip():
            problems.append("owner must not be empty")
        elif any(sep in configuration.owner for sep in ("/", "\\", ":")):
            problems.append(f"owner '{configuration.owner}' must not contain '/', '\\' or ':'")

        if not configuration.host:
            problems.append("host must not be empty")

        if not isinstance(configuration.connection_mode, ConnectionMode):
            problems.append(f"unknown connection mode {configuration.connection_mode!r}")

        for codebase, repos in configuration.codebases.items():
            problem = validate_name(codebase, "Codebase")
            if problem:
                problems.append(problem)

            seen = set()
            for repo in repos:
                problem = validate_name(repo, "Repository")
                if problem:
                    problems.append(f"{problem} (codebase '{codebase}')")
                elif repo in seen:
                    problems.append(f"Repository '{repo}' is listed twice in codebase '{codebase}'")
                seen.add(repo)

        return problems

    def save(self, configuration: Configuration) -> None:
        """
        Validate and persist ``configuration``.

        Raises:
            InvalidConfigError: if an invariant is violated; nothing is written
            FileSystemError: if the files cannot be written; previous files stay intact
        """
        with self._locked():
            self._persist(configuration)

    def _locked(self):
        return config_store_lock(self.config.lock_file, timeout=self.config.lock_timeout)

    def _persist(self, configuration: Configuration) -> None:
        """Validate and write both files. The caller holds the store lock."""
        problems = self.validate(configuration)
        if problems:
            raise InvalidConfigError("; ".join(problems))

        settings = {
            "owner": configuration.owner,
            "connection_mode": configuration.connection_mode.value,
            "host": configuration.host,
        }
        codebases = {"codebases": {name: list(repos) for name, repos in configuration.codebases.items()}}

        self._write_atomic(self.config.codebases_file, codebases)
        self._write_atomic(self.config.config_file, settings)

        self.logger.debug(f"Configuration saved to {self.config.state_dir}")

    def _refresh(self, configuration: Configuration) -> Configuration:
        """
        Copy of ``configuration`` with codebases re-read from disk.

        Called under the store lock, so entries written by another process
        since ``configuration`` was loaded are kept.
        """
        current = configuration.copy()
        if self.config.codebases_file.exists():
            current.codebases = self._load_codebases(self.config.codebases_file)
        return current

    def _write_atomic(self, path: Path, data: Dict[str, Any]) -> None:
        """Write ``data`` to a temp file beside ``path`` and rename it into place."""
        temp_file = None
        try:
            fd, temp_file = create_secure_temp_file(path.parent, suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
                f.flush()
                os.fsync(f.fileno())

            os.replace(temp_file, path)
            temp_file = None
        except OSError as e:
            self.logger.error(f"Failed to write {path}: {e}")
            raise FileSystemError(f"Failed to write {path}: {e}") from e
        finally:
            if temp_file is not None and temp_file.exists():
                temp_file.unlink()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_repositories(self, configuration: Configuration, codebase: str, names: Iterable[str]) -> List[str]:
        """
        Register repositories in a codebase, creating the codebase if needed.

        The store lock is held from re-reading ``codebases.yaml`` until the
        new file is in place, so concurrent additions are not lost.

        Returns:
            The names added, in request order

        Raises:
            InvalidConfigError: if a name is invalid or no names were given
            DuplicateRepositoryError: if any name is already registered or repeated;
                the configuration is left unchanged
        """
        names = list(names)
        if not names:
            raise InvalidConfigError("No repositories specified")

        problems = [validate_name(codebase, "Codebase")]
        problems.extend(validate_name(name, "Repository") for name in names)
        problems = [problem for problem in problems if problem]
        if problems:
            raise InvalidConfigError("; ".join(problems))

        with self._locked():
            updated = self._refresh(configuration)

            existing = updated.codebases.get(codebase, [])
            duplicates = []
            seen = set(existing)
            for name in names:
                if name in seen and name not in duplicates:
                    duplicates.append(name)
                seen.add(name)

            if duplicates:
                self.logger.warning(f"Rejected duplicate repositories in '{codebase}': {duplicates}")
                raise DuplicateRepositoryError(codebase, duplicates)

            updated.codebases.setdefault(codebase, []).extend(names)
            self._persist(updated)

        configuration.codebases = updated.codebases
        self.logger.info(f"Added repositories {names} to codebase '{codebase}'")
        return names

    def remove_entries(
        self,
        configuration: Configuration,
        codebase: str,
        names: Optional[Iterable[str]] = None
    ) -> RemovedEntries:
        """
        Remove repositories, or a whole codebase when ``names`` is None.

        Names that are not registered produce a warning rather than an error.
        The configuration is persisted only when something was removed, under
        the same lock as the re-read it is based on.
        """
        result = RemovedEntries(codebase=codebase)

        with self._locked():
            updated = self._refresh(configuration)

            if codebase not in updated.codebases:
                message = f"Codebase '{codebase}' is not in the configuration"
                self.logger.warning(message)
                result.warnings.append(message)
                return result

            if names is None:
                result.removed = list(updated.codebases.pop(codebase))
                result.codebase_removed = True
            else:
                repos = updated.codebases[codebase]
                for name in names:
                    if name in repos:
                        repos.remove(name)
                        result.removed.append(name)
                    else:
                        message = f"Repository '{name}' is not in codebase '{codebase}'"
                        self.logger.warning(message)
                        result.warnings.append(message)

            if result.changed:
                self._persist(updated)

        configuration.codebases = updated.codebases
        if result.changed:
            self.logger.info(f"Removed {result.removed} from codebase '{codebase}'")

        return result

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def list_codebases(self, configuration: Configuration) -> List[str]:
        return sorted(configuration.codebases)

    def repository(self, configuration: Configuration, codebase: str, name: str) -> Repository:
        """Materialise the view of one repository."""
        return Repository(
            codebase=codebase,
            name=name,
            remote_address=locate(configuration.connection_mode, configuration.owner, name, configuration.host),
            local_path=self.workspace_root / codebase / name
        )

    def repositories(self, configuration: Configuration, codebase: Optional[str] = None) -> List[Repository]:
        """
        Materialise repositories of one codebase, or of every codebase.

        Raises:
            CodebaseNotFoundError: if ``codebase`` is given but not configured
        """
        if codebase is not None:
            if codebase not in configuration.codebases:
                raise CodebaseNotFoundError(codebase)
            selected = [codebase]
        else:
            selected = self.list_codebases(configuration)

        return [
            self.repository(configuration, name, repo)
            for name in selected
            for repo in configuration.codebases[name]
        ]

    def describe(self, configuration: Configuration, codebase: Optional[str] = None) -> List[CodebaseListing]:
        """List codebases with each repository's clone address and install state."""
        if codebase is not None and codebase not in configuration.codebases:
            raise CodebaseNotFoundError(codebase)

        selected = [codebase] if codebase is not None else self.list_codebases(configuration)
        listings = []
        for name in selected:
            listing = CodebaseListing(name=name)
            for repo in self.repositories(configuration, name):
                listing.repositories.append(RepositoryListing(
                    name=repo.name,
                    remote_address=repo.remote_address,
                    local_path=repo.local_path,
                    installed=is_repository_root(repo.local_path)
                ))
            listings.append(listing)

        return listings
