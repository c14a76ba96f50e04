"""
Tracking-specific errors.

None of these ever block job progress. The lifecycle engine logs them and
moves on; a failed location send is not even raised, only logged.
"""

from typing import Optional


class TrackingError(Exception):
    """Base exception for location tracking failures."""
    pass


class AlreadyRunningError(TrackingError):
    """Raised when start() is called while a tracking session is active."""

    def __init__(self, active_job_id: str, requested_job_id: Optional[str] = None):
        self.active_job_id = active_job_id
        self.requested_job_id = requested_job_id
        super().__init__(
            f"Location tracking already running for job {active_job_id}"
        )

    @property
    def same_job(self) -> bool:
        """True if the rejected start was for the job already tracked."""
        return self.requested_job_id == self.active_job_id


class LocationUnavailableError(TrackingError):
    """Raised when the device cannot provide a position (permission, no fix)."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Location unavailable: {reason}")
