"""
Job lifecycle engine.

Orchestrates status transitions for one job per call:
1. Completion gate (only when completing)
2. Transition table check
3. Persistence through the backend collaborator
4. Side effects on confirmed persistence: start location tracking when
   entering travelling, stop it when leaving travelling

Ordering rules:
- Nothing is persisted and no side effect runs when steps 1-2 reject.
- Side effects only run after the backend confirmed the new status.
- Tracking is best-effort: a failed start is logged, never rolled back
  into the status. Status progress is not best-effort.
- The caller's Job is never mutated. The backend's answer is returned.
- No automatic retry on persistence failure. An ambiguous failure could
  have landed, and a retry would duplicate side effects.

Transitions are not idempotent. Repeating a request that already succeeded
is rejected by the table, since the job has moved on.
"""

import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional, TYPE_CHECKING

from ..location import LocationReading, ReadingSource
from ..tracking.errors import AlreadyRunningError, TrackingError
from .completion import CompletionResult, CompletionValidator
from .errors import (
    CompletionBlockedError,
    InvalidTransitionError,
    PersistenceFailedError,
)
from .models import CompletionPayload, Job, JobStatus, StatusHistoryEntry
from .state import validate_cancellation, validate_transition

if TYPE_CHECKING:
    from ..services.base import JobBackend
    from ..tracking.reporter import LocationReporter

logger = logging.getLogger(__name__)

# Confirmed transitions kept per job for diagnostics
HISTORY_LIMIT = 50


class JobLifecycleEngine:
    """
    State machine wrapper with persistence and tracking side effects.

    One engine serves one engineer session. Transitions for a given job
    are expected to be issued serially by the caller.
    """

    def __init__(
        self,
        backend: "JobBackend",
        reporter: "LocationReporter",
        engineer_id: Optional[str] = None,
        validator: Optional[CompletionValidator] = None,
    ):
        """
        Initialize the engine.

        Args:
            backend: Persistence collaborator (source of truth for status)
            reporter: Location reporter driven by travelling transitions
            engineer_id: Engineer of this session. Falls back to the job's
                assigned engineer when not set.
            validator: Completion validator (default rules if omitted)
        """
        self.backend = backend
        self.reporter = reporter
        self.engineer_id = engineer_id
        self.validator = validator or CompletionValidator()

        self._history: Dict[str, Deque[StatusHistoryEntry]] = {}
        self._history_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def request_transition(
        self,
        job: Job,
        target_status: JobStatus,
        location_at_request: Optional[LocationReading] = None,
        notes: Optional[str] = None,
    ) -> Job:
        """
        Move a job to its next status.

        Args:
            job: Current job snapshot, as last confirmed by the backend
            target_status: Requested status
            location_at_request: Position captured when the request was made
                (e.g. on arrival). Sent as transition metadata only; it does
                not go through the tracking feed.
            notes: Optional note stored with the status history

        Returns:
            The job as persisted by the backend

        Raises:
            CompletionBlockedError: Completing a job that misses requirements
            InvalidTransitionError: Target is not an allowed next status
            PersistenceFailedError: Backend did not confirm the change
        """
        target_status = JobStatus(target_status)
        previous_status = job.status
        logger.info(
            f"[LIFECYCLE] Transition requested for job {job.id}: "
            f"{previous_status.value} -> {target_status.value}"
        )

        if target_status == JobStatus.COMPLETED:
            # Authoritative check: state may have changed since the UI checked
            result = self.validator.validate(job)
            if not result.satisfied:
                logger.info(
                    f"[LIFECYCLE] Completion blocked for job {job.id}: "
                    f"{', '.join(result.reasons)}"
                )
                raise CompletionBlockedError(result.reasons)

        try:
            validate_transition(previous_status, target_status)
        except InvalidTransitionError:
            logger.warning(
                f"[LIFECYCLE] Rejected transition for job {job.id}: "
                f"{previous_status.value} -> {target_status.value}"
            )
            raise

        location = self._tag_location(location_at_request)
        updated = self._persist(job, target_status, location, notes)

        self._record(updated.id, target_status, location, notes)
        logger.info(
            f"[LIFECYCLE] Job {job.id} transitioned: "
            f"{previous_status.value} -> {updated.status.value}"
        )

        self._apply_side_effects(job, previous_status, target_status)
        return updated

    def cancel(
        self,
        job: Job,
        reason: Optional[str] = None,
        location_at_request: Optional[LocationReading] = None,
    ) -> Job:
        """
        Cancel a job from any non-terminal status.

        Operator override, separate from the forward transition table.
        Authorization is checked upstream.

        Args:
            job: Current job snapshot
            reason: Reason for cancellation, stored as the status note
            location_at_request: Optional position at the time of the request

        Returns:
            The cancelled job as persisted by the backend

        Raises:
            InvalidTransitionError: If the job is already terminal
            PersistenceFailedError: Backend did not confirm the change
        """
        previous_status = job.status
        logger.info(
            f"[LIFECYCLE] cancel() called for job {job.id}, "
            f"current status: {previous_status.value}"
        )

        validate_cancellation(previous_status)

        location = self._tag_location(location_at_request)
        updated = self._persist(job, JobStatus.CANCELLED, location, reason)

        self._record(updated.id, JobStatus.CANCELLED, location, reason)
        logger.info(
            f"[LIFECYCLE] Job {job.id} transitioned: "
            f"{previous_status.value} -> CANCELLED"
        )

        self._apply_side_effects(job, previous_status, JobStatus.CANCELLED)
        return updated

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_completion_status(self, job: Job) -> CompletionResult:
        """Completion requirements of a job, for progress display."""
        return self.validator.validate(job)

    def is_tracking(self) -> bool:
        return self.reporter.is_tracking()

    def history(self, job_id: str) -> List[StatusHistoryEntry]:
        """Confirmed transitions for a job in this session, oldest first."""
        with self._history_lock:
            return list(self._history.get(job_id, ()))

    def shutdown(self) -> None:
        """Stop any tracking session owned by this engine."""
        self.reporter.stop()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _persist(
        self,
        job: Job,
        target_status: JobStatus,
        location: Optional[LocationReading],
        notes: Optional[str],
    ) -> Job:
        try:
            if target_status == JobStatus.COMPLETED:
                return self.backend.complete_job(
                    job.id, CompletionPayload.from_job(job)
                )
            return self.backend.update_job_status(
                job.id, target_status, location=location, notes=notes
            )
        except Exception as e:
            logger.error(
                f"[LIFECYCLE] Persisting {target_status.value} for job {job.id} failed: {e}"
            )
            raise PersistenceFailedError(job.id, target_status.value, e) from e

    def _apply_side_effects(
        self,
        job: Job,
        previous_status: JobStatus,
        target_status: JobStatus,
    ) -> None:
        if target_status == JobStatus.TRAVELLING:
            self._start_tracking(job)
        elif previous_status == JobStatus.TRAVELLING:
            self.reporter.stop()

    def _start_tracking(self, job: Job) -> None:
        engineer_id = self.engineer_id or job.assigned_engineer_id
        if not engineer_id:
            logger.warning(
                f"[LIFECYCLE] No engineer id for job {job.id}; location tracking not started"
            )
            return

        try:
            self.reporter.start(job.id, engineer_id)
        except AlreadyRunningError as e:
            if e.same_job:
                logger.info(f"[LIFECYCLE] Tracking already active for job {job.id}")
            else:
                logger.warning(
                    f"[LIFECYCLE] Tracking not started for job {job.id}: {e}"
                )
        except TrackingError as e:
            logger.warning(f"[LIFECYCLE] Tracking not started for job {job.id}: {e}")
        except Exception as e:
            logger.error(
                f"[LIFECYCLE] Unexpected tracking failure for job {job.id}: {e}"
            )

    def _record(
        self,
        job_id: str,
        status: JobStatus,
        location: Optional[LocationReading],
        notes: Optional[str],
    ) -> None:
        entry = StatusHistoryEntry(
            job_id=job_id,
            status=status,
            timestamp=datetime.now(timezone.utc),
            location=location,
            notes=notes,
        )
        with self._history_lock:
            self._history.setdefault(job_id, deque(maxlen=HISTORY_LIMIT)).append(entry)

    @staticmethod
    def _tag_location(
        location: Optional[LocationReading],
    ) -> Optional[LocationReading]:
        if location is None or location.source is not None:
            return location
        return location.with_source(ReadingSource.TRANSITION)
