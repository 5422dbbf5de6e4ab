"""Safety-checked removal of repositories from a workspace."""

import logging
import os
import shutil
import stat
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..errors import ConfigError, ErrorResponse, FileSystemError, SafetyCheckError, error_handler
from ..git_ops.inspection import inspect_repository
from ..platform import is_within
from ..workspace.models import Configuration, Repository
from ..workspace.store import ConfigurationStore


class Verdict(Enum):
    SAFE = "safe"
    UNSAFE = "unsafe"
    UNKNOWN = "unknown"


class UnsafeReason(Enum):
    """Why deleting a local repository could lose work."""
    WORKING_TREE_DIRTY = "working_tree_dirty"
    UNPUSHED_COMMITS = "unpushed_commits"
    MISSING_UPSTREAM = "missing_upstream"
    INSPECTION_ERROR = "inspection_error"

    @property
    def description(self) -> str:
        return {
            UnsafeReason.WORKING_TREE_DIRTY: "has uncommitted or untracked changes",
            UnsafeReason.UNPUSHED_COMMITS: "has commits not pushed to its upstream",
            UnsafeReason.MISSING_UPSTREAM: "current branch has no upstream; local commits may be the only copy",
            UnsafeReason.INSPECTION_ERROR: "repository state could not be determined",
        }[self]


class RemovalAction(Enum):
    DELETE = "delete"
    SKIP = "skip"
    FORCE_DELETE = "force_delete"


@dataclass
class SafetyVerdict:
    """Fresh classification of one candidate. Never cached between runs."""
    repository: Repository
    verdict: Verdict
    working_tree_dirty: bool = False
    has_unpushed_commits: bool = False
    has_upstream: bool = False
    local_path_exists: bool = True
    reasons: List[UnsafeReason] = field(default_factory=list)
    error: Optional[ErrorResponse] = None

    @property
    def is_safe(self) -> bool:
        return self.verdict is Verdict.SAFE

    def describe(self) -> str:
        if self.is_safe:
            return f"{self.repository.key} is safe to delete"
        details = [reason.description for reason in self.reasons]
        if self.error:
            details.append(self.error.message)
        return f"{self.repository.key} " + "; ".join(details)


@dataclass
class PlanEntry:
    repository: Repository
    verdict: SafetyVerdict
    action: RemovalAction

    @property
    def approved(self) -> bool:
        return self.action is not RemovalAction.SKIP


@dataclass
class RemovalPlan:
    """Policy applied to verdicts, built before anything is mutated."""
    entries: List[PlanEntry] = field(default_factory=list)
    force: bool = False

    @property
    def approved(self) -> List[PlanEntry]:
        return [entry for entry in self.entries if entry.approved]

    @property
    def skipped(self) -> List[PlanEntry]:
        return [entry for entry in self.entries if not entry.approved]


@dataclass
class OrphanedDirectory:
    """A directory left on disk after its configuration entry was removed."""
    path: Path
    error: str

    def __str__(self) -> str:
        return f"Orphaned directory {self.path} (untracked in configuration): {self.error}"


@dataclass
class RemovalOutcome:
    entry: PlanEntry
    config_removed: bool = False
    directory_deleted: bool = False
    orphaned: Optional[OrphanedDirectory] = None
    error: Optional[ErrorResponse] = None

    @property
    def repository(self) -> Repository:
        return self.entry.repository

    @property
    def action(self) -> RemovalAction:
        return self.entry.action

    @property
    def reasons(self) -> List[UnsafeReason]:
        return self.entry.verdict.reasons

    @property
    def succeeded(self) -> bool:
        """Config entry is gone; a stray directory does not change that."""
        return self.entry.approved and self.config_removed

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "repository": self.repository.key,
            "action": self.action.value,
            "verdict": self.entry.verdict.verdict.value,
            "reasons": [reason.value for reason in self.reasons],
            "config_removed": self.config_removed,
            "directory_deleted": self.directory_deleted,
        }
        if self.orphaned:
            result["orphaned_directory"] = str(self.orphaned.path)
        if self.error:
            result["error"] = self.error.to_dict()
        return result


@dataclass
class RemovalReport:
    """Per-candidate outcomes of one removal batch."""
    outcomes: List[RemovalOutcome] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    codebase_removed: bool = False
    aborted: bool = False

    @property
    def removed(self) -> List[RemovalOutcome]:
        return [outcome for outcome in self.outcomes if outcome.succeeded]

    @property
    def skipped(self) -> List[RemovalOutcome]:
        return [outcome for outcome in self.outcomes if outcome.action is RemovalAction.SKIP]

    @property
    def orphaned(self) -> List[OrphanedDirectory]:
        return [outcome.orphaned for outcome in self.outcomes if outcome.orphaned]


class RemovalSafetyEngine:
    """
    Decides per repository whether deletion may proceed, then performs it.

    Work is strictly sequential. For every approved candidate the
    configuration entry is removed and persisted before the directory is
    deleted; if the directory cannot be deleted the repository is reported as
    an orphaned directory and the removal still counts as done.
    """

    def __init__(self, store: ConfigurationStore):
        self.store = store
        self.workspace_root = store.workspace_root
        self.logger = logging.getLogger('basecamp.lifecycle.removal')

    # ------------------------------------------------------------------
    # Safety checks and policy
    # ------------------------------------------------------------------

    def inspect(self, repository: Repository) -> SafetyVerdict:
        """Classify one repository as safe, unsafe or unknown."""
        path = repository.local_path

        if not path.exists() and not path.is_symlink():
            self.logger.debug(f"{repository.key}: no local copy, safe to remove")
            return SafetyVerdict(repository=repository, verdict=Verdict.SAFE, local_path_exists=False)

        try:
            status = inspect_repository(path)
        except SafetyCheckError as e:
            response = error_handler.handle_safety_check_error(e, {'path': str(path), 'repository': repository.key})
            return SafetyVerdict(
                repository=repository,
                verdict=Verdict.UNKNOWN,
                reasons=[UnsafeReason.INSPECTION_ERROR],
                error=response
            )

        reasons = []
        if status.working_tree_dirty:
            reasons.append(UnsafeReason.WORKING_TREE_DIRTY)
        if status.has_unpushed_commits:
            reasons.append(UnsafeReason.UNPUSHED_COMMITS)
        if not status.has_upstream:
            reasons.append(UnsafeReason.MISSING_UPSTREAM)

        verdict = SafetyVerdict(
            repository=repository,
            verdict=Verdict.UNSAFE if reasons else Verdict.SAFE,
            working_tree_dirty=status.working_tree_dirty,
            has_unpushed_commits=status.has_unpushed_commits,
            has_upstream=status.has_upstream,
            reasons=reasons
        )
        self.logger.debug(verdict.describe())
        return verdict

    def plan(self, repositories: Iterable[Repository], force: bool = False) -> RemovalPlan:
        """Inspect every candidate and apply the force policy."""
        plan = RemovalPlan(force=force)

        for repository in repositories:
            verdict = self.inspect(repository)
            if verdict.is_safe:
                action = RemovalAction.DELETE
            elif force:
                action = RemovalAction.FORCE_DELETE
                self.logger.warning(f"Force removing {verdict.describe()}")
            else:
                action = RemovalAction.SKIP
                self.logger.warning(f"Skipping {verdict.describe()}")
            plan.entries.append(PlanEntry(repository=repository, verdict=verdict, action=action))

        return plan

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, configuration: Configuration, plan: RemovalPlan) -> RemovalReport:
        """
        Carry out every approved entry of ``plan``.

        Skipped entries are reported untouched. If the configuration cannot
        be persisted, no further entries are executed and the rest are
        reported with the same error.
        """
        report = RemovalReport()
        failure: Optional[ErrorResponse] = None

        for entry in plan.entries:
            outcome = RemovalOutcome(entry=entry)
            report.outcomes.append(outcome)

            if not entry.approved:
                continue

            if failure is not None:
                outcome.error = failure
                continue

            try:
                removed = self.store.remove_entries(configuration, entry.repository.codebase, [entry.repository.name])
            except ConfigError as e:
                failure = error_handler.handle_config_error(e, {'repository': entry.repository.key})
            except FileSystemError as e:
                failure = error_handler.handle_file_system_error(e, {'repository': entry.repository.key})

            if failure is not None:
                outcome.error = failure
                report.aborted = True
                self.logger.error(f"Stopping removal: configuration could not be saved ({failure.message})")
                continue

            report.warnings.extend(removed.warnings)
            outcome.config_removed = True

            orphan = self._delete_directory(entry.repository.local_path)
            if orphan is None:
                outcome.directory_deleted = True
                self.logger.info(f"Removed {entry.repository.key} ({entry.action.value})")
            else:
                outcome.orphaned = orphan
                report.warnings.append(str(orphan))
                self.logger.warning(str(orphan))

        return report

    def remove(
        self,
        configuration: Configuration,
        codebase: str,
        names: Optional[Iterable[str]] = None,
        force: bool = False
    ) -> RemovalReport:
        """
        Remove repositories from a codebase, or the whole codebase when ``names`` is None.

        Names not in the configuration are reported as warnings. When the
        whole codebase is requested and nothing was skipped, the codebase
        entry and its emptied directory are removed too.
        """
        if codebase not in configuration.codebases:
            message = f"Codebase '{codebase}' is not in the configuration"
            self.logger.warning(message)
            return RemovalReport(warnings=[message])

        registered = configuration.codebases[codebase]
        warnings = []
        if names is None:
            selected = list(registered)
        else:
            selected = []
            for name in names:
                if name in registered:
                    if name not in selected:
                        selected.append(name)
                else:
                    warnings.append(f"Repository '{name}' is not in codebase '{codebase}'")

        for warning in warnings:
            self.logger.warning(warning)

        candidates = [self.store.repository(configuration, codebase, name) for name in selected]
        plan = self.plan(candidates, force)
        report = self.execute(configuration, plan)
        report.warnings[:0] = warnings

        if names is None and not plan.skipped and not report.aborted:
            self._remove_codebase(configuration, codebase, report)

        return report

    def _remove_codebase(self, configuration: Configuration, codebase: str, report: RemovalReport) -> None:
        try:
            self.store.remove_entries(configuration, codebase)
        except (ConfigError, FileSystemError) as e:
            report.aborted = True
            report.warnings.append(f"Could not drop codebase '{codebase}' from configuration: {e}")
            self.logger.error(report.warnings[-1])
            return

        report.codebase_removed = True
        codebase_dir = self.workspace_root / codebase
        if not codebase_dir.is_dir() or not is_within(codebase_dir, self.workspace_root):
            return

        try:
            codebase_dir.rmdir()
            self.logger.info(f"Deleted codebase directory {codebase_dir}")
        except OSError as e:
            # Stray files outside any tracked repository; leave them for the user
            message = f"Codebase directory {codebase_dir} was not empty and was left in place: {e}"
            report.warnings.append(message)
            self.logger.warning(message)

    def _delete_directory(self, path: Path) -> Optional[OrphanedDirectory]:
        """
        Delete a repository directory.

        Returns:
            None on success (including when the directory is already gone),
            otherwise the orphaned directory record
        """
        if not path.exists() and not path.is_symlink():
            return None

        # A symlink is judged by where it lives, not where it points
        location = path.parent if path.is_symlink() else path
        if not is_within(location, self.workspace_root):
            return OrphanedDirectory(path=path, error=f"refusing to delete a path outside {self.workspace_root}")

        try:
            if path.is_symlink() or not path.is_dir():
                path.unlink()
            else:
                try:
                    shutil.rmtree(path)
                except PermissionError:
                    # Git marks object files read-only on some platforms
                    _make_tree_writable(path)
                    shutil.rmtree(path)
        except OSError as e:
            error_handler.handle_file_system_error(e, {'path': str(path)})
            return OrphanedDirectory(path=path, error=str(e))

        return None


def _make_tree_writable(path: Path) -> None:
    for root, dirs, files in os.walk(path):
        for name in dirs + files:
            target = os.path.join(root, name)
            if not os.path.islink(target):
                os.chmod(target, os.stat(target).st_mode | stat.S_IWRITE)
