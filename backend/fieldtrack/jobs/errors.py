"""
Job lifecycle error types.

All errors inherit from JobError for easy catching.
Errors are explicit and provide actionable messages.

Taxonomy:
- InvalidTransitionError: workflow error, never retried
- CompletionBlockedError: user-correctable, carries the missing requirements
- PersistenceFailedError: transient backend failure, caller may retry the
  exact same request
"""

from typing import List, Sequence


class JobError(Exception):
    """Base exception for all job-related failures."""
    pass


class LifecycleError(JobError):
    """Base exception for a rejected or failed transition request."""

    retryable = False


class InvalidTransitionError(LifecycleError):
    """Raised when a requested status change is not an allowed edge."""

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid job status transition: {from_status} -> {to_status}"
        )


class CompletionBlockedError(LifecycleError):
    """Raised when a job does not yet satisfy the completion requirements."""

    def __init__(self, reasons: Sequence[str]):
        self.reasons: List[str] = list(reasons)
        super().__init__(
            "Job cannot be completed: " + "; ".join(self.reasons)
        )


class PersistenceFailedError(LifecycleError):
    """
    Raised when the backend did not confirm a transition.

    The in-memory job is left untouched. The caller should offer a manual
    retry of the same request; the engine never retries on its own.
    """

    retryable = True

    def __init__(self, job_id: str, target_status: str, cause: BaseException):
        self.job_id = job_id
        self.target_status = target_status
        self.cause = cause
        super().__init__(
            f"Failed to persist status '{target_status}' for job {job_id}: {cause}"
        )
