"""Install job state machine."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from ..errors import InvalidTransitionError
from ..git_ops.error_types import FailureReason
from ..workspace.models import Repository


class JobState(Enum):
    """Lifecycle states of an install job."""
    PENDING = "pending"
    CLONING = "cloning"
    ALREADY_PRESENT = "already_present"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES: FrozenSet[JobState] = frozenset({
    JobState.ALREADY_PRESENT,
    JobState.SUCCEEDED,
    JobState.FAILED,
    JobState.CANCELLED,
})

# PENDING -> FAILED covers pre-flight failures found before any network access
ALLOWED_TRANSITIONS: Dict[JobState, FrozenSet[JobState]] = {
    JobState.PENDING: frozenset({
        JobState.CLONING, JobState.ALREADY_PRESENT, JobState.FAILED, JobState.CANCELLED
    }),
    JobState.CLONING: frozenset({JobState.SUCCEEDED, JobState.FAILED}),
    JobState.ALREADY_PRESENT: frozenset(),
    JobState.SUCCEEDED: frozenset(),
    JobState.FAILED: frozenset(),
    JobState.CANCELLED: frozenset(),
}


@dataclass
class InstallEvent:
    """One state transition of one job."""
    repository: Repository
    previous: JobState
    state: JobState
    reason: Optional[FailureReason] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class InstallJob:
    """Clone job for one repository."""
    repository: Repository
    state: JobState = JobState.PENDING
    reason: Optional[FailureReason] = None
    duration: float = 0.0
    history: List[JobState] = field(default_factory=lambda: [JobState.PENDING])

    def transition(self, new_state: JobState, reason: Optional[FailureReason] = None) -> InstallEvent:
        """
        Move to ``new_state``.

        Raises:
            InvalidTransitionError: if the move is not allowed from the current state
        """
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Job for {self.repository.key} cannot move from {self.state.value} to {new_state.value}"
            )
        if new_state is JobState.FAILED and reason is None:
            raise InvalidTransitionError(f"Job for {self.repository.key} cannot fail without a reason")

        previous = self.state
        self.state = new_state
        self.reason = reason
        self.history.append(new_state)
        return InstallEvent(repository=self.repository, previous=previous, state=new_state, reason=reason)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal
