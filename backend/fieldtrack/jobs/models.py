"""
Job data models.

Represents a dispatched unit of field work and the data gathered while
it is serviced (checklist, photos, parts, signature).

All models use Pydantic for validation.
State transitions are validated externally (see state.py).

The engine treats a Job as a snapshot of what the backend last confirmed.
It never mutates a Job in place; updated jobs come back from the backend.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..location import LocationReading


class JobStatus(str, Enum):
    """
    Job-level status.

    A job moves forward through these states one step at a time.
    """

    PENDING = "pending"  # Created by dispatch, no engineer yet
    ASSIGNED = "assigned"  # Engineer assigned, not yet accepted
    ACCEPTED = "accepted"  # Engineer accepted the job
    TRAVELLING = "travelling"  # Engineer en route, location is reported
    ONSITE = "onsite"  # Engineer arrived at the site
    COMPLETED = "completed"  # Work done and signed off (terminal)
    CANCELLED = "cancelled"  # Cancelled by operator (terminal)


class SiteLocation(BaseModel):
    """Where the work happens."""

    model_config = ConfigDict(extra="forbid")

    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)
    address: str = ""
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None


class ChecklistItem(BaseModel):
    """One line of the service checklist."""

    model_config = ConfigDict(extra="forbid")

    description: str
    completed: bool = False
    notes: Optional[str] = None


class PartUsed(BaseModel):
    """A part consumed during the service visit."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    quantity: int = Field(gt=0)
    cost: float = Field(ge=0.0)


class Job(BaseModel):
    """
    A unit of dispatched field work.

    Descriptive fields (skill level, site, equipment) are fixed at creation
    by dispatch. Status only changes through the lifecycle engine.
    """

    model_config = ConfigDict(extra="forbid")

    # Identity
    id: str
    job_number: Optional[str] = None

    # State
    status: JobStatus = JobStatus.PENDING
    assigned_engineer_id: Optional[str] = None

    # Descriptive (immutable after creation)
    required_skill_level: Optional[str] = None
    site_location: Optional[SiteLocation] = None
    equipment_type: Optional[str] = None

    # Service completion data
    checklist: List[ChecklistItem] = Field(default_factory=list)
    photos_before: List[str] = Field(default_factory=list)
    photos_after: List[str] = Field(default_factory=list)
    signature_ref: Optional[str] = None
    parts_used: List[PartUsed] = Field(default_factory=list)
    engineer_notes: str = ""

    # Timeline, as recorded by the backend
    assigned_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    started_at: Optional[datetime] = None  # Set when the engineer arrives onsite
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.CANCELLED)


class CompletionPayload(BaseModel):
    """
    Everything the backend needs to close a job.

    Built from the job snapshot at the moment completion is requested.
    """

    model_config = ConfigDict(extra="forbid")

    checklist: List[ChecklistItem] = Field(default_factory=list)
    photos_before: List[str] = Field(default_factory=list)
    photos_after: List[str] = Field(default_factory=list)
    parts_used: List[PartUsed] = Field(default_factory=list)
    signature_url: str
    notes: str = ""

    @classmethod
    def from_job(cls, job: Job) -> "CompletionPayload":
        return cls(
            checklist=[item.model_copy() for item in job.checklist],
            photos_before=list(job.photos_before),
            photos_after=list(job.photos_after),
            parts_used=[part.model_copy() for part in job.parts_used],
            signature_url=job.signature_ref or "",
            notes=job.engineer_notes,
        )


class StatusHistoryEntry(BaseModel):
    """One confirmed status change."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    job_id: str
    status: JobStatus
    timestamp: datetime
    location: Optional[LocationReading] = None
    notes: Optional[str] = None
