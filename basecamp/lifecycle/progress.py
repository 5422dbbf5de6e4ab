"""Shared progress tracking for install runs."""

import logging
import threading
from collections import Counter
from typing import Callable, Optional

from ..git_ops.error_types import FailureReason
from .jobs import InstallEvent, InstallJob, JobState


InstallListener = Callable[[InstallEvent], None]


class ProgressReporter:
    """
    The only state shared between install workers.

    Every job transition goes through ``transition`` so counters and the
    listener see one consistent, serialised stream of events.
    """

    def __init__(self, total: int, listener: Optional[InstallListener] = None):
        self.total = total
        self.listener = listener
        self.logger = logging.getLogger('basecamp.lifecycle.progress')
        self._lock = threading.Lock()
        self._counts: Counter = Counter({JobState.PENDING: total})
        self._max_in_flight = 0

    def transition(self, job: InstallJob, state: JobState, reason: Optional[FailureReason] = None) -> InstallEvent:
        with self._lock:
            event = job.transition(state, reason)
            self._counts[event.previous] -= 1
            self._counts[event.state] += 1
            self._max_in_flight = max(self._max_in_flight, self._counts[JobState.CLONING])

            self.logger.debug(f"{job.repository.key}: {event.previous.value} -> {event.state.value}")

            if self.listener is not None:
                try:
                    self.listener(event)
                except Exception:
                    # A broken renderer must not take the clone job down with it
                    self.logger.exception(f"Install listener failed on event for {job.repository.key}")

            return event

    @property
    def completed(self) -> int:
        with self._lock:
            return sum(count for state, count in self._counts.items() if state.is_terminal)

    @property
    def max_in_flight(self) -> int:
        """Highest number of jobs seen in CLONING at the same time."""
        with self._lock:
            return self._max_in_flight
