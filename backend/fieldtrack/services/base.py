"""
Backend collaborator contract.

The backend owns job state. The engine calls it and trusts its answer;
it never implements storage itself.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..jobs.models import CompletionPayload, Job, JobStatus
from ..location import LocationReading


class JobBackend(ABC):
    """Persistence/API collaborator used by the lifecycle engine."""

    @abstractmethod
    def get_job(self, job_id: str) -> Job:
        """
        Fetch the authoritative job record.

        Raises:
            JobNotFoundError: If the backend does not know the job
        """

    @abstractmethod
    def update_job_status(
        self,
        job_id: str,
        status: JobStatus,
        location: Optional[LocationReading] = None,
        notes: Optional[str] = None,
    ) -> Job:
        """
        Persist a status change.

        Args:
            job_id: Job to update
            status: New status
            location: Optional position captured at the moment of the request
            notes: Optional free-text note for the status history

        Returns:
            The persisted job
        """

    @abstractmethod
    def complete_job(self, job_id: str, payload: CompletionPayload) -> Job:
        """
        Close a job with its completion proof.

        Returns:
            The persisted (completed) job
        """

    @abstractmethod
    def report_location(self, engineer_id: str, reading: LocationReading) -> None:
        """
        Record the engineer's current location.

        Best-effort from the engine's point of view.
        """
