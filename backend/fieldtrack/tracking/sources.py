"""
Device location sources.

A LocationSource offers two capabilities:
- subscribe(): a continuous feed gated by minimum time/distance deltas,
  returning a Subscription token that cancels the feed
- current_position(): a one-shot query for the latest fix

FeedLocationSource is the concrete source used by the service. Platform
code (a GPS daemon, a mobile bridge, a test) pushes raw fixes into it and
it fans them out to subscribers whose thresholds are met.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from ..location import LocationReading, distance_m
from .errors import LocationUnavailableError

logger = logging.getLogger(__name__)

ReadingCallback = Callable[[LocationReading], None]


class Subscription:
    """
    Cancellation token for a continuous feed.

    cancel() is idempotent. Once it returns, the source will not invoke
    the subscriber's callback for any new fix.
    """

    def __init__(self, on_cancel: Optional[Callable[["Subscription"], None]] = None):
        self._on_cancel = on_cancel
        self._active = True
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        with self._lock:
            return self._active

    def cancel(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
            on_cancel = self._on_cancel
            self._on_cancel = None
        if on_cancel is not None:
            on_cancel(self)


class LocationSource(ABC):
    """Abstract device location source."""

    @abstractmethod
    def subscribe(
        self,
        callback: ReadingCallback,
        min_interval_s: float,
        min_distance_m: float,
    ) -> Subscription:
        """
        Start a continuous feed.

        Args:
            callback: Called with each reading that passes the thresholds
            min_interval_s: Emit at least this often while fixes arrive
            min_distance_m: Emit as soon as the position moves this far

        Returns:
            Subscription token

        Raises:
            LocationUnavailableError: If location access is not possible
        """

    @abstractmethod
    def current_position(self) -> LocationReading:
        """
        Actively sample the current position.

        Raises:
            LocationUnavailableError: If no fix can be obtained
        """


class ThresholdGate:
    """
    "Whichever comes first" filter for a continuous feed.

    A reading passes when it is the first one, when it lies at least
    min_distance_m from the last passed reading, or when min_interval_s
    has elapsed since the last passed reading.
    """

    def __init__(
        self,
        min_interval_s: float,
        min_distance_m: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval_s = min_interval_s
        self.min_distance_m = min_distance_m
        self._clock = clock
        self._last: Optional[LocationReading] = None
        self._last_at: Optional[float] = None

    def should_emit(self, reading: LocationReading) -> bool:
        now = self._clock()
        if self._last is None or self._last_at is None:
            passed = True
        elif now - self._last_at >= self.min_interval_s:
            passed = True
        else:
            passed = distance_m(self._last, reading) >= self.min_distance_m

        if passed:
            self._last = reading
            self._last_at = now
        return passed


class FeedLocationSource(LocationSource):
    """
    Location source fed by pushed device fixes.

    push() may be called from any thread. Subscriber callbacks run on the
    pushing thread, outside the source's lock.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._subscribers: List[Tuple[Subscription, ThresholdGate, ReadingCallback]] = []
        self._latest: Optional[LocationReading] = None
        self._denied_reason: Optional[str] = None

    # ------------------------------------------------------------------
    # Permission state
    # ------------------------------------------------------------------

    def deny_permission(self, reason: str = "location permission denied") -> None:
        """Mark location access as unavailable (e.g. user revoked permission)."""
        with self._lock:
            self._denied_reason = reason

    def grant_permission(self) -> None:
        with self._lock:
            self._denied_reason = None

    @property
    def latest(self) -> Optional[LocationReading]:
        with self._lock:
            return self._latest

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    # ------------------------------------------------------------------
    # Device side
    # ------------------------------------------------------------------

    def push(
        self,
        lat: float,
        lng: float,
        accuracy_m: Optional[float] = None,
        captured_at: Optional[datetime] = None,
    ) -> LocationReading:
        """
        Record a raw fix from the device and fan it out.

        Returns:
            The immutable reading built from the fix
        """
        fields = {"lat": lat, "lng": lng, "accuracy_m": accuracy_m}
        if captured_at is not None:
            fields["captured_at"] = captured_at
        reading = LocationReading(**fields)

        with self._lock:
            self._latest = reading
            due = [
                (subscription, callback)
                for subscription, gate, callback in self._subscribers
                if subscription.active and gate.should_emit(reading)
            ]

        for subscription, callback in due:
            if not subscription.active:
                continue
            try:
                callback(reading)
            except Exception as e:
                logger.warning(f"Location subscriber callback failed: {e}")

        return reading

    # ------------------------------------------------------------------
    # LocationSource
    # ------------------------------------------------------------------

    def subscribe(
        self,
        callback: ReadingCallback,
        min_interval_s: float,
        min_distance_m: float,
    ) -> Subscription:
        with self._lock:
            if self._denied_reason:
                raise LocationUnavailableError(self._denied_reason)
            subscription = Subscription(on_cancel=self._remove)
            gate = ThresholdGate(min_interval_s, min_distance_m, clock=self._clock)
            self._subscribers.append((subscription, gate, callback))
        return subscription

    def current_position(self) -> LocationReading:
        with self._lock:
            if self._denied_reason:
                raise LocationUnavailableError(self._denied_reason)
            if self._latest is None:
                raise LocationUnavailableError("no position fix available yet")
            return self._latest

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscribers = [
                entry for entry in self._subscribers if entry[0] is not subscription
            ]
