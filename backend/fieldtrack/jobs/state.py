"""
State transition validation for jobs.

Job lifecycle (forward progress only):
    accepted → travelling → onsite → completed

pending and assigned have no outgoing edges here: assignment and acceptance
are dispatch actions handled outside this engine.

INVARIANT: Terminal job states (COMPLETED, CANCELLED) are immutable.
Once a job enters a terminal state, no state transition is allowed.

Transitions are NOT reentrant. Requesting the status a job already has is
rejected, so repeating a transition that already succeeded fails instead of
being silently accepted.

Cancellation is an operator override kept apart from the forward table:
allowed_next() never contains CANCELLED. See CANCELLABLE_FROM.
"""

from types import MappingProxyType
from typing import FrozenSet, Mapping

from .models import JobStatus
from .errors import InvalidTransitionError


TERMINAL_JOB_STATES: FrozenSet[JobStatus] = frozenset({
    JobStatus.COMPLETED,
    JobStatus.CANCELLED,
})


# Forward-progress edges, one step at a time
_JOB_TRANSITIONS: Mapping[JobStatus, FrozenSet[JobStatus]] = MappingProxyType({
    JobStatus.PENDING: frozenset(),
    JobStatus.ASSIGNED: frozenset(),
    JobStatus.ACCEPTED: frozenset({JobStatus.TRAVELLING}),
    JobStatus.TRAVELLING: frozenset({JobStatus.ONSITE}),
    JobStatus.ONSITE: frozenset({JobStatus.COMPLETED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.CANCELLED: frozenset(),
})


# Out-of-band operator cancellation: any non-terminal status
CANCELLABLE_FROM: FrozenSet[JobStatus] = frozenset({
    JobStatus.PENDING,
    JobStatus.ASSIGNED,
    JobStatus.ACCEPTED,
    JobStatus.TRAVELLING,
    JobStatus.ONSITE,
})


def is_terminal(status: JobStatus) -> bool:
    """
    Check if a job status is terminal (immutable).

    Args:
        status: The job status to check

    Returns:
        True if the status is terminal, False otherwise
    """
    return status in TERMINAL_JOB_STATES


def allowed_next(status: JobStatus) -> FrozenSet[JobStatus]:
    """
    Statuses reachable from `status` through normal job progress.

    Args:
        status: Current job status

    Returns:
        Set of allowed target statuses (empty for terminal and
        dispatch-owned statuses)
    """
    return _JOB_TRANSITIONS.get(JobStatus(status), frozenset())


def is_allowed(from_status: JobStatus, to_status: JobStatus) -> bool:
    """
    Check if a forward job state transition is legal.

    Args:
        from_status: Current job status
        to_status: Target job status

    Returns:
        True if the transition is allowed, False otherwise
    """
    return JobStatus(to_status) in allowed_next(from_status)


def validate_transition(from_status: JobStatus, to_status: JobStatus) -> None:
    """
    Validate a job state transition, raising an exception if illegal.

    Raises:
        InvalidTransitionError: If the transition is not allowed
    """
    if not is_allowed(from_status, to_status):
        raise InvalidTransitionError(
            JobStatus(from_status).value, JobStatus(to_status).value
        )


def can_cancel(status: JobStatus) -> bool:
    """Check if a job in `status` may be cancelled by an operator."""
    return JobStatus(status) in CANCELLABLE_FROM


def validate_cancellation(status: JobStatus) -> None:
    """
    Raises:
        InvalidTransitionError: If the job is already terminal
    """
    if not can_cancel(status):
        raise InvalidTransitionError(
            JobStatus(status).value, JobStatus.CANCELLED.value
        )
