"""
Tracking session models.

A TrackingSession exists only while one job is travelling. It is created
by LocationReporter.start() and closed by LocationReporter.stop(); nothing
outside the owning reporter holds it.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from ..location import LocationReading

if TYPE_CHECKING:
    from .sources import Subscription


@dataclass
class TrackingSession:
    """
    Live state for one job's location feed.

    Mutable fields are only touched while holding the owning reporter's
    lock. Readings themselves are immutable snapshots.
    """

    job_id: str
    engineer_id: str
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # Producers
    subscription: Optional["Subscription"] = None
    timer: Optional[threading.Thread] = None
    stop_event: threading.Event = field(default_factory=threading.Event)

    # Last reading handed to the backend ("last reading wins")
    last_reading: Optional[LocationReading] = None
    sent_count: int = 0
    failed_count: int = 0

    # Set once stop() begins; no send may start afterwards
    closed: bool = False

    # thread ident -> number of sends that thread has in flight
    in_flight: Dict[int, int] = field(default_factory=dict)

    def sends_in_flight(self, exclude_thread: Optional[int] = None) -> int:
        return sum(
            count for ident, count in self.in_flight.items()
            if ident != exclude_thread
        )


class TrackingStatus(BaseModel):
    """Read-only view of the reporter for callers."""

    model_config = ConfigDict(extra="forbid")

    tracking: bool
    job_id: Optional[str] = None
    engineer_id: Optional[str] = None
    started_at: Optional[datetime] = None
    last_reading: Optional[LocationReading] = None
    sent_count: int = 0
    failed_count: int = 0
