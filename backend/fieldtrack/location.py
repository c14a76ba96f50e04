"""
Location primitives shared by the job models and the tracking package.

A LocationReading is an immutable snapshot of one position fix.
Readings are never mutated after creation; a new fix is a new reading.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# Mean Earth radius used by the haversine distance (meters)
EARTH_RADIUS_M = 6_371_000.0


class ReadingSource(str, Enum):
    """Where a reading came from."""

    CONTINUOUS = "continuous"  # Subscription feed (distance/time gated)
    PERIODIC = "periodic"  # Fallback timer sample
    TRANSITION = "transition"  # Captured at the moment of a status change


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LocationReading(BaseModel):
    """
    A single position fix.

    Coordinates are validated to the WGS84 range:
    lat in [-90, 90], lng in [-180, 180].
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)
    captured_at: datetime = Field(default_factory=_utcnow)

    accuracy_m: Optional[float] = Field(default=None, ge=0.0)
    source: Optional[ReadingSource] = None

    def with_source(self, source: ReadingSource) -> "LocationReading":
        """Return a copy of this reading tagged with its producer."""
        return self.model_copy(update={"source": source})

    def to_payload(self) -> dict:
        """Coordinates only, as sent to the backend."""
        return {"lat": self.lat, "lng": self.lng}


def distance_m(a: LocationReading, b: LocationReading) -> float:
    """
    Great-circle distance between two readings in meters (haversine).

    Args:
        a: First reading
        b: Second reading

    Returns:
        Distance in meters
    """
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlat = lat2 - lat1
    dlng = math.radians(b.lng - a.lng)

    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))
