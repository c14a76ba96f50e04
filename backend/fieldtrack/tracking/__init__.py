"""
Location tracking for travelling jobs.

Scope:
- One TrackingSession per reporter, alive only while a job is travelling
- Continuous (time/distance gated) feed plus periodic fallback sampling
- Best-effort delivery to the backend: failures are logged, never raised

Not included:
- Location history storage
- Route optimisation or multi-engineer coordination
"""

from .errors import (
    TrackingError,
    AlreadyRunningError,
    LocationUnavailableError,
)
from .models import TrackingSession, TrackingStatus
from .sources import (
    LocationSource,
    FeedLocationSource,
    Subscription,
    ThresholdGate,
)
from .reporter import LocationReporter

__all__ = [
    # Errors
    "TrackingError",
    "AlreadyRunningError",
    "LocationUnavailableError",
    # Models
    "TrackingSession",
    "TrackingStatus",
    # Sources
    "LocationSource",
    "FeedLocationSource",
    "Subscription",
    "ThresholdGate",
    # Reporter
    "LocationReporter",
]
