"""Bounded-parallelism install of codebase repositories."""

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..config import Config
from ..errors import ConfigError, ErrorResponse, FileSystemError, error_handler
from ..git_ops.clone import clone_repository
from ..git_ops.error_strategies import FailureClassifier
from ..git_ops.error_types import FailureCategory
from ..git_ops.performance_logger import PerformanceLogger
from ..git_ops.utils import GitOperationResult
from ..git_ops.validation import is_empty_directory, is_repository_root
from ..workspace.models import Configuration, Repository
from ..workspace.store import ConfigurationStore
from .jobs import InstallJob, JobState
from .progress import InstallListener, ProgressReporter


Cloner = Callable[..., GitOperationResult]


@dataclass
class InstallReport:
    """Final state of every job in an install run, in submission order."""
    jobs: List[InstallJob] = field(default_factory=list)
    cancelled: bool = False
    max_concurrent_clones: int = 0

    def _in_state(self, state: JobState) -> List[InstallJob]:
        return [job for job in self.jobs if job.state is state]

    @property
    def succeeded(self) -> List[InstallJob]:
        return self._in_state(JobState.SUCCEEDED)

    @property
    def already_present(self) -> List[InstallJob]:
        return self._in_state(JobState.ALREADY_PRESENT)

    @property
    def failed(self) -> List[InstallJob]:
        return self._in_state(JobState.FAILED)

    @property
    def not_dispatched(self) -> List[InstallJob]:
        return self._in_state(JobState.CANCELLED)

    @property
    def ok(self) -> bool:
        """True when every repository is now present on disk."""
        return not self.failed and not self.not_dispatched

    def summary(self) -> Dict[str, Any]:
        return {
            "total": len(self.jobs),
            "succeeded": len(self.succeeded),
            "already_present": len(self.already_present),
            "failed": len(self.failed),
            "cancelled": len(self.not_dispatched),
            "run_cancelled": self.cancelled,
        }


@dataclass
class AddReport:
    """Result of registering repositories and cloning them straight away."""
    codebase: str
    added: List[str] = field(default_factory=list)
    install: InstallReport = field(default_factory=InstallReport)
    rolled_back: List[str] = field(default_factory=list)
    rollback_error: Optional[ErrorResponse] = None

    @property
    def kept(self) -> List[str]:
        """Added names that are still registered after the rollback."""
        return [name for name in self.added if name not in self.rolled_back]


class InstallOrchestrator:
    """
    Clones repositories with a fixed-size pool of worker threads.

    Features:
    - Exactly ``min(parallelism, len(repositories))`` workers pull from one queue
    - Repositories already cloned are skipped without network access
    - One repository's failure never affects its siblings
    - Cancellation stops dispatch; in-flight clones run to completion
    """

    def __init__(self, config: Config, cloner: Cloner = clone_repository):
        """
        Initialize the orchestrator.

        Args:
            config: Runtime settings (default parallelism, clone timeout, disk threshold)
            cloner: Callable performing one clone; replaceable for tests
        """
        self.config = config
        self.cloner = cloner
        self.classifier = FailureClassifier()
        self.logger = logging.getLogger('basecamp.lifecycle.install')

    def install(
        self,
        store: ConfigurationStore,
        configuration: Configuration,
        codebase: Optional[str] = None,
        parallelism: Optional[int] = None,
        listener: Optional[InstallListener] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> InstallReport:
        """Install one codebase, or every codebase when ``codebase`` is None."""
        repositories = store.repositories(configuration, codebase)
        return self.run(repositories, parallelism, listener, cancel_event)

    def add_and_install(
        self,
        store: ConfigurationStore,
        configuration: Configuration,
        codebase: str,
        names: Sequence[str],
        parallelism: Optional[int] = None,
        listener: Optional[InstallListener] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> AddReport:
        """
        Register repositories in a codebase and clone only those.

        Repositories whose clone FAILED are removed from the configuration
        again, so the configuration never names a repository that could not
        be installed. Jobs cancelled before dispatch stay registered.

        Raises:
            InvalidConfigError: if a name is invalid; nothing is registered
            DuplicateRepositoryError: if a name is already registered; nothing is registered
        """
        added = store.add_repositories(configuration, codebase, names)
        repositories = [store.repository(configuration, codebase, name) for name in added]

        report = AddReport(codebase=codebase, added=added)
        report.install = self.run(repositories, parallelism, listener, cancel_event)

        failed = [job.repository.name for job in report.install.failed]
        if not failed:
            return report

        self.logger.warning(f"Removing repositories that failed to install from '{codebase}': {failed}")
        try:
            removed = store.remove_entries(configuration, codebase, failed)
        except ConfigError as e:
            report.rollback_error = error_handler.handle_config_error(e, {'codebase': codebase})
        except FileSystemError as e:
            report.rollback_error = error_handler.handle_file_system_error(e, {'codebase': codebase})
        else:
            report.rolled_back = removed.removed

        return report

    def run(
        self,
        repositories: Sequence[Repository],
        parallelism: Optional[int] = None,
        listener: Optional[InstallListener] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> InstallReport:
        """
        Clone every repository and wait until each job is terminal.

        Args:
            repositories: Resolved repositories to install
            parallelism: Maximum concurrent clones; defaults to the configured value
            listener: Called once per job state transition, serialised
            cancel_event: Set to stop dispatching queued jobs

        Returns:
            InstallReport with exactly one terminal job per repository

        Raises:
            ValueError: if ``parallelism`` is not positive or two repositories share a local path
        """
        parallelism = self.config.parallelism if parallelism is None else parallelism
        if parallelism <= 0:
            raise ValueError("parallelism must be a positive integer")

        paths = [repo.local_path for repo in repositories]
        if len(set(paths)) != len(paths):
            raise ValueError("Two repositories in one install run share a local path")

        cancel_event = cancel_event or threading.Event()
        jobs = [InstallJob(repository=repo) for repo in repositories]
        reporter = ProgressReporter(len(jobs), listener)
        perf_logger = PerformanceLogger()

        if not jobs:
            self.logger.info("Nothing to install")
            return InstallReport()

        work_queue: "queue.Queue[InstallJob]" = queue.Queue()
        for job in jobs:
            work_queue.put(job)

        worker_count = min(parallelism, len(jobs))
        self.logger.info(f"Installing {len(jobs)} repositories with {worker_count} workers")

        workers = [
            threading.Thread(
                target=self._worker,
                args=(work_queue, reporter, cancel_event, perf_logger),
                name=f"basecamp-install-{index}",
                daemon=True
            )
            for index in range(worker_count)
        ]
        for worker in workers:
            worker.start()

        try:
            for worker in workers:
                # Short joins keep the waiting thread responsive to Ctrl-C
                while worker.is_alive():
                    worker.join(0.1)
        except KeyboardInterrupt:
            self.logger.warning("Install interrupted; waiting for in-flight clones to finish")
            cancel_event.set()
            for worker in workers:
                worker.join()

        for job in jobs:
            if job.state is JobState.PENDING:
                reporter.transition(job, JobState.CANCELLED)

        report = InstallReport(
            jobs=jobs,
            cancelled=cancel_event.is_set(),
            max_concurrent_clones=reporter.max_in_flight
        )

        perf_logger.log_performance_summary()
        self.logger.info(f"Install finished, {reporter.completed}/{reporter.total} jobs terminal: {report.summary()}")
        return report

    def _worker(
        self,
        work_queue: "queue.Queue[InstallJob]",
        reporter: ProgressReporter,
        cancel_event: threading.Event,
        perf_logger: PerformanceLogger
    ) -> None:
        while not cancel_event.is_set():
            try:
                job = work_queue.get_nowait()
            except queue.Empty:
                return

            try:
                self._run_job(job, reporter, perf_logger)
            except Exception as e:
                self.logger.exception(f"Unexpected error installing {job.repository.key}")
                if not job.is_terminal:
                    reason = self.classifier.reason(f"Unexpected error: {e}", category=FailureCategory.UNKNOWN)
                    reporter.transition(job, JobState.FAILED, reason)
            finally:
                work_queue.task_done()

    def _run_job(self, job: InstallJob, reporter: ProgressReporter, perf_logger: PerformanceLogger) -> None:
        repo = job.repository

        if is_repository_root(repo.local_path):
            self.logger.info(f"Repository '{repo.key}' already installed")
            reporter.transition(job, JobState.ALREADY_PRESENT)
            return

        if repo.local_path.exists() and not is_empty_directory(repo.local_path):
            reason = self.classifier.reason(
                f"{repo.local_path} exists but is not a repository",
                category=FailureCategory.PATH_COLLISION
            )
            self.logger.error(f"Cannot install '{repo.key}': {reason.message}")
            reporter.transition(job, JobState.FAILED, reason)
            return

        reporter.transition(job, JobState.CLONING)
        result = self.cloner(
            repo.remote_address,
            repo.local_path,
            timeout=self.config.clone_timeout,
            min_free_bytes=self.config.min_free_disk_mb * 1024 * 1024,
            classifier=self.classifier,
            perf_logger=perf_logger
        )
        job.duration = result.duration

        if result.success:
            reporter.transition(job, JobState.SUCCEEDED)
        else:
            reason = result.reason or self.classifier.reason(result.message)
            reporter.transition(job, JobState.FAILED, reason)
