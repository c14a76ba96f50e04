"""
Lifecycle endpoints for the engineer app and automation.

HTTP adapter over JobLifecycleEngine:
- POST /lifecycle/jobs/{job_id}/transition
- POST /lifecycle/jobs/{job_id}/cancel
- GET  /lifecycle/jobs/{job_id}/completion
- GET  /lifecycle/jobs/{job_id}/history
- GET  /lifecycle/tracking
- POST /lifecycle/location   (device fixes for the continuous feed)

Error mapping:
- 404 unknown job
- 409 invalid transition (not retryable)
- 422 completion blocked, detail lists what is missing
- 502 persistence failed, detail says the same request may be retried

Endpoints are sync so blocking backend calls run in the worker threadpool.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from ..jobs.completion import CompletionResult
from ..jobs.errors import (
    CompletionBlockedError,
    InvalidTransitionError,
    PersistenceFailedError,
)
from ..jobs.models import Job, JobStatus, StatusHistoryEntry
from ..location import LocationReading
from ..services.errors import BackendError, JobNotFoundError
from ..tracking.models import TrackingStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lifecycle", tags=["lifecycle"])


# ============================================================================
# API MODELS
# ============================================================================

class LocationInput(BaseModel):
    """A position supplied by the client."""

    model_config = ConfigDict(extra="forbid")

    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)
    accuracy_m: Optional[float] = Field(default=None, ge=0.0)

    def to_reading(self) -> LocationReading:
        return LocationReading(lat=self.lat, lng=self.lng, accuracy_m=self.accuracy_m)


class TransitionRequest(BaseModel):
    """Request body for a status transition."""

    model_config = ConfigDict(extra="forbid")

    target_status: JobStatus
    location: Optional[LocationInput] = None
    notes: Optional[str] = None


class CancelRequest(BaseModel):
    """Request body for an operator cancellation."""

    model_config = ConfigDict(extra="forbid")

    reason: Optional[str] = None
    location: Optional[LocationInput] = None


class TransitionResponse(BaseModel):
    """Response for a confirmed transition."""

    model_config = ConfigDict(extra="forbid")

    success: bool
    message: str
    job: Job
    tracking: bool


class HistoryResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    job_id: str
    entries: List[StatusHistoryEntry]


# ============================================================================
# HELPERS
# ============================================================================

def _load_job(request: Request, job_id: str) -> Job:
    backend = request.app.state.backend
    try:
        return backend.get_job(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    except BackendError as e:
        logger.error(f"Loading job {job_id} failed: {e}")
        raise HTTPException(
            status_code=502,
            detail={"message": f"Could not load job: {e}", "retryable": True},
        )


def _lifecycle_http_error(e: Exception) -> HTTPException:
    if isinstance(e, CompletionBlockedError):
        return HTTPException(
            status_code=422,
            detail={"message": str(e), "reasons": e.reasons},
        )
    if isinstance(e, InvalidTransitionError):
        return HTTPException(
            status_code=409,
            detail={
                "message": str(e),
                "from_status": e.from_status,
                "to_status": e.to_status,
            },
        )
    if isinstance(e, PersistenceFailedError):
        return HTTPException(
            status_code=502,
            detail={"message": str(e), "retryable": True},
        )
    return HTTPException(status_code=500, detail=f"Transition failed: {e}")


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.post("/jobs/{job_id}/transition", response_model=TransitionResponse)
def transition_job_endpoint(job_id: str, body: TransitionRequest, request: Request):
    """
    Move a job to its next status.

    The job is loaded fresh from the backend so the table check runs
    against the authoritative status.

    Raises:
        404: Job not found
        409: Transition not allowed from the current status
        422: Completion requirements not met
        502: Backend did not confirm the change (retry the same request)
    """
    engine = request.app.state.lifecycle_engine
    job = _load_job(request, job_id)
    location = body.location.to_reading() if body.location else None

    try:
        updated = engine.request_transition(
            job, body.target_status, location_at_request=location, notes=body.notes
        )
    except (CompletionBlockedError, InvalidTransitionError, PersistenceFailedError) as e:
        raise _lifecycle_http_error(e)

    return TransitionResponse(
        success=True,
        message=f"Job status updated to {updated.status.value}",
        job=updated,
        tracking=engine.is_tracking(),
    )


@router.post("/jobs/{job_id}/cancel", response_model=TransitionResponse)
def cancel_job_endpoint(job_id: str, body: CancelRequest, request: Request):
    """
    Cancel a job from any non-terminal status.

    Raises:
        404: Job not found
        409: Job already completed or cancelled
        502: Backend did not confirm the change
    """
    engine = request.app.state.lifecycle_engine
    job = _load_job(request, job_id)
    location = body.location.to_reading() if body.location else None

    try:
        updated = engine.cancel(job, reason=body.reason, location_at_request=location)
    except (InvalidTransitionError, PersistenceFailedError) as e:
        raise _lifecycle_http_error(e)

    return TransitionResponse(
        success=True,
        message="Job cancelled",
        job=updated,
        tracking=engine.is_tracking(),
    )


@router.get("/jobs/{job_id}/completion", response_model=CompletionResult)
def completion_status_endpoint(job_id: str, request: Request):
    """Completion requirements of a job, for progress display."""
    engine = request.app.state.lifecycle_engine
    return engine.get_completion_status(_load_job(request, job_id))


@router.get("/jobs/{job_id}/history", response_model=HistoryResponse)
def history_endpoint(job_id: str, request: Request):
    """Transitions confirmed during this service's lifetime."""
    engine = request.app.state.lifecycle_engine
    return HistoryResponse(job_id=job_id, entries=engine.history(job_id))


@router.get("/tracking", response_model=TrackingStatus)
def tracking_status_endpoint(request: Request):
    """Whether location tracking is active, and for which job."""
    return request.app.state.lifecycle_engine.reporter.session_snapshot()


@router.post("/location", response_model=LocationReading)
def push_location_endpoint(body: LocationInput, request: Request):
    """
    Feed a device fix into the continuous location source.

    Raises:
        503: Location source does not accept pushed fixes
    """
    source = request.app.state.location_source
    push = getattr(source, "push", None)
    if push is None:
        raise HTTPException(
            status_code=503, detail="Location source does not accept pushed fixes"
        )
    return push(body.lat, body.lng, accuracy_m=body.accuracy_m)
