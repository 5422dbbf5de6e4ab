"""
Write lock for the configuration store.

Two BaseCamp processes working in the same workspace must not interleave
writes to ``.basecamp/``. A writer holds ``config.lock`` for the duration
of a save, or of a re-read and rewrite of the codebases. The file names
the owning process so a lock left behind by a crashed process can be
reclaimed.
"""

import os
import time
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import psutil

from .errors import FileSystemError


STALE_LOCK_SECONDS = 300
RETRY_INTERVAL = 0.1


class FileLock:
    """Exclusive lock backed by atomic creation of a lock file."""

    def __init__(self, lock_file_path: Path, timeout: float = 30.0):
        self.lock_file_path = lock_file_path
        self.timeout = timeout
        self.logger = logging.getLogger('basecamp.file_lock')
        self._held = False

    @property
    def acquired(self) -> bool:
        return self._held

    @property
    def holder(self) -> Optional[str]:
        """Contents of the current lock file, if any."""
        try:
            return self.lock_file_path.read_text().strip() or None
        except OSError:
            return None

    def acquire(self) -> bool:
        """
        Wait up to ``timeout`` seconds for the lock.

        Returns:
            True once the lock is held, False if the deadline passed
        """
        deadline = time.monotonic() + self.timeout
        self.lock_file_path.parent.mkdir(parents=True, exist_ok=True)

        while True:
            if self._create_lock_file():
                self._held = True
                self.logger.debug(f"Acquired lock: {self.lock_file_path}")
                return True

            self._reclaim_if_stale()

            if time.monotonic() >= deadline:
                self.logger.warning(f"Lock {self.lock_file_path} still held by {self.holder} after {self.timeout}s")
                return False
            time.sleep(RETRY_INTERVAL)

    def _create_lock_file(self) -> bool:
        try:
            fd = os.open(self.lock_file_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False

        with os.fdopen(fd, 'w') as f:
            f.write(f"locked_by_pid_{os.getpid()}_thread_{threading.get_ident()}")
        return True

    def _reclaim_if_stale(self) -> None:
        """Delete the lock file if its owner has exited or it is older than STALE_LOCK_SECONDS."""
        try:
            age = time.time() - self.lock_file_path.stat().st_mtime
        except FileNotFoundError:
            return

        owner = _owner_pid(self.holder)
        if age <= STALE_LOCK_SECONDS and (owner is None or psutil.pid_exists(owner)):
            return

        self.logger.warning(f"Reclaiming stale lock {self.lock_file_path} (owner pid {owner}, age {age:.0f}s)")
        try:
            self.lock_file_path.unlink()
        except FileNotFoundError:
            pass

    def release(self) -> None:
        if not self._held:
            return

        self._held = False
        try:
            self.lock_file_path.unlink()
            self.logger.debug(f"Released lock: {self.lock_file_path}")
        except FileNotFoundError:
            self.logger.warning(f"Lock file vanished before release: {self.lock_file_path}")

    def __enter__(self):
        if not self.acquire():
            raise FileSystemError(
                f"Configuration is locked by another BaseCamp process ({self.holder}); "
                f"gave up after {self.timeout}s"
            )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


def _owner_pid(holder: Optional[str]) -> Optional[int]:
    if not holder or not holder.startswith("locked_by_pid_"):
        return None
    try:
        return int(holder[len("locked_by_pid_"):].split("_")[0])
    except ValueError:
        return None


@contextmanager
def config_store_lock(lock_file_path: Path, timeout: float = 30.0) -> Iterator[FileLock]:
    """
    Hold the configuration store's write lock.

    Raises:
        FileSystemError: if the lock cannot be acquired within ``timeout``
    """
    with FileLock(lock_file_path, timeout) as lock:
        yield lock
