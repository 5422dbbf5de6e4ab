"""Timing of clone operations across an install run."""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional


SLOW_CLONE_SECONDS = 30.0


@dataclass
class CloneTiming:
    """Wall-clock span of one clone, measured on the monotonic clock."""
    label: str
    remote: Optional[str]
    started: float
    finished: float = 0.0
    succeeded: bool = True

    @property
    def duration(self) -> float:
        return max(self.finished - self.started, 0.0)


class PerformanceLogger:
    """
    Collects clone timings from every install worker.

    One instance is shared by all workers of a run, so ``record`` appends
    under a lock. The summary compares the summed clone time against the
    wall time of the whole run, which shows how much the worker pool
    actually overlapped.
    """

    def __init__(self, slow_after: float = SLOW_CLONE_SECONDS, logger_name: str = 'basecamp.git_ops.performance'):
        self.slow_after = slow_after
        self.logger = logging.getLogger(logger_name)
        self._timings: List[CloneTiming] = []
        self._lock = threading.Lock()

    @contextmanager
    def time_operation(self, label: str, remote: Optional[str] = None) -> Iterator[CloneTiming]:
        """
        Time the enclosed block as one clone.

        An exception escaping the block marks the timing as failed and is
        re-raised unchanged.
        """
        timing = CloneTiming(label=label, remote=remote, started=time.monotonic())
        try:
            yield timing
        except Exception:
            timing.succeeded = False
            raise
        finally:
            timing.finished = time.monotonic()
            self.record(timing)

    def record(self, timing: CloneTiming) -> None:
        with self._lock:
            self._timings.append(timing)

        self.logger.debug(
            f"{timing.label} {'cloned' if timing.succeeded else 'failed'} in {timing.duration:.2f}s"
        )
        if timing.duration > self.slow_after:
            self.logger.warning(f"Slow clone: {timing.label} from {timing.remote} took {timing.duration:.1f}s")

    @property
    def timings(self) -> List[CloneTiming]:
        with self._lock:
            return list(self._timings)

    def get_performance_summary(self) -> Dict[str, Any]:
        """
        Summarise every recorded clone.

        Returns:
            Dictionary with ``clones``, ``succeeded``, ``clone_seconds`` (sum of
            durations), ``wall_seconds`` (first start to last finish),
            ``average_seconds`` and ``slowest``
        """
        timings = self.timings
        if not timings:
            return {"clones": 0, "succeeded": 0, "clone_seconds": 0.0, "wall_seconds": 0.0}

        clone_seconds = sum(t.duration for t in timings)
        slowest = max(timings, key=lambda t: t.duration)

        return {
            "clones": len(timings),
            "succeeded": sum(1 for t in timings if t.succeeded),
            "clone_seconds": clone_seconds,
            "wall_seconds": max(t.finished for t in timings) - min(t.started for t in timings),
            "average_seconds": clone_seconds / len(timings),
            "slowest": {"label": slowest.label, "seconds": slowest.duration},
        }

    def log_performance_summary(self) -> None:
        summary = self.get_performance_summary()
        if not summary["clones"]:
            return

        self.logger.info(
            f"{summary['clones']} clones ({summary['succeeded']} succeeded): "
            f"{summary['clone_seconds']:.1f}s of cloning in {summary['wall_seconds']:.1f}s wall time, "
            f"slowest {summary['slowest']['label']} ({summary['slowest']['seconds']:.1f}s)"
        )
