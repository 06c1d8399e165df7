"""Print job status state machine."""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Optional


class JobStatus(str, Enum):
    pending = "pending"
    printing = "printing"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"


TERMINAL_STATUSES: FrozenSet[JobStatus] = frozenset(
    {JobStatus.completed, JobStatus.failed, JobStatus.cancelled}
)

# Statuses the agent still has work for.
ACTIVE_STATUSES: FrozenSet[JobStatus] = frozenset({JobStatus.pending, JobStatus.printing})

TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.pending: frozenset({JobStatus.printing, JobStatus.cancelled}),
    JobStatus.printing: frozenset({JobStatus.completed, JobStatus.failed}),
    JobStatus.completed: frozenset(),
    JobStatus.failed: frozenset(),
    JobStatus.cancelled: frozenset(),
}

# Timestamp field stamped when a job enters the given status.
TIMESTAMP_FIELDS: Dict[JobStatus, str] = {
    JobStatus.printing: "print_started",
    JobStatus.completed: "completed",
}


class InvalidTransition(ValueError):
    """Raised when a status change is not an edge of the job state machine."""

    def __init__(self, current: str, target: str):
        self.current = current = JobStatus(current).value
        self.target = target = JobStatus(target).value
        if JobStatus(current) in TERMINAL_STATUSES:
            message = f"Job is already {current}"
        else:
            message = f"Cannot move job from {current} to {target}"
        super().__init__(message)


def is_terminal(status: str) -> bool:
    return JobStatus(status) in TERMINAL_STATUSES


def can_transition(current: str, target: str) -> bool:
    return JobStatus(target) in TRANSITIONS[JobStatus(current)]


def ensure_transition(current: str, target: str) -> None:
    if not can_transition(current, target):
        raise InvalidTransition(current, target)


def sources_for(target: str) -> FrozenSet[JobStatus]:
    """Statuses from which `target` is reachable in one step."""
    target = JobStatus(target)
    return frozenset(s for s, allowed in TRANSITIONS.items() if target in allowed)


def timestamp_field(target: str) -> Optional[str]:
    return TIMESTAMP_FIELDS.get(JobStatus(target))
