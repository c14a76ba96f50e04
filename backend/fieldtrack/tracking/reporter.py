"""
Location reporter for travelling jobs.

Produces a steady stream of location updates for exactly one job while it
is travelling and forwards each to the backend.

Two independent producers feed the same sink:
1. Continuous subscription on the device source (time/distance gated)
2. Periodic fallback timer that actively samples the current position,
   covering a continuous feed that silently stalls (low-power mode, etc.)

The two run independently. The feed can stop firing without error; the
timer keeps samples flowing when it does.

Sending is best-effort. A failed send is logged and counted, never retried
and never raised; the next reading supersedes it.

Shutdown is race-free: once stop() returns, no report_location call is
started for the closed session.
"""

import logging
import threading
from functools import partial
from typing import Optional, TYPE_CHECKING

from ..location import LocationReading, ReadingSource
from ..settings import TrackingSettings
from .errors import AlreadyRunningError, LocationUnavailableError, TrackingError
from .models import TrackingSession, TrackingStatus
from .sources import LocationSource

if TYPE_CHECKING:
    from ..services.base import JobBackend

logger = logging.getLogger(__name__)


class LocationReporter:
    """
    Owns at most one TrackingSession at a time.

    All session bookkeeping happens under a single Condition. Sends happen
    outside the lock so a slow backend never blocks the other producer.
    """

    def __init__(
        self,
        backend: "JobBackend",
        source: LocationSource,
        settings: Optional[TrackingSettings] = None,
    ):
        """
        Initialize the reporter.

        Args:
            backend: Collaborator receiving report_location() calls
            source: Device location source
            settings: Cadence settings. Defaults to 30s / 50m / 30s.
        """
        self.backend = backend
        self.source = source
        self.settings = settings or TrackingSettings()

        self._cond = threading.Condition()
        self._session: Optional[TrackingSession] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, job_id: str, engineer_id: str) -> TrackingSession:
        """
        Open a tracking session and start both producers.

        Args:
            job_id: Job being travelled to
            engineer_id: Engineer whose location is reported

        Returns:
            The new TrackingSession

        Raises:
            AlreadyRunningError: If a session is already active
            LocationUnavailableError: If the continuous feed cannot start
        """
        with self._cond:
            if self._session is not None:
                raise AlreadyRunningError(self._session.job_id, job_id)
            session = TrackingSession(job_id=job_id, engineer_id=engineer_id)
            self._session = session

        try:
            subscription = self.source.subscribe(
                partial(self._on_reading, session, ReadingSource.CONTINUOUS),
                min_interval_s=self.settings.min_interval_s,
                min_distance_m=self.settings.min_distance_m,
            )
        except Exception as e:
            self._discard(session)
            if isinstance(e, TrackingError):
                raise
            raise LocationUnavailableError(str(e)) from e

        timer = threading.Thread(
            target=self._fallback_loop,
            args=(session,),
            daemon=True,
            name=f"location-fallback-{job_id}",
        )

        with self._cond:
            if session.closed:
                # stop() won the race while we were subscribing
                subscription.cancel()
                return session
            session.subscription = subscription
            session.timer = timer
            timer.start()

        logger.info(
            f"Location tracking started for job {job_id} (engineer {engineer_id})"
        )
        return session

    def stop(self) -> None:
        """
        Tear down the active session, if any.

        Idempotent and safe to call when not running. Cancels the
        subscription and the fallback timer, then waits for sends already
        in flight to finish so that none is started after return.
        """
        with self._cond:
            session = self._session
            if session is None:
                return
            session.closed = True
            self._session = None
            session.stop_event.set()

        if session.subscription is not None:
            session.subscription.cancel()

        current = threading.get_ident()
        with self._cond:
            while session.sends_in_flight(exclude_thread=current) > 0:
                self._cond.wait()

        timer = session.timer
        if timer is not None and timer is not threading.current_thread():
            timer.join(timeout=self.settings.stop_join_timeout_s)

        logger.info(
            f"Location tracking stopped for job {session.job_id} "
            f"({session.sent_count} sent, {session.failed_count} failed)"
        )

    def _discard(self, session: TrackingSession) -> None:
        """Drop a session that never fully started."""
        with self._cond:
            session.closed = True
            session.stop_event.set()
            if self._session is session:
                self._session = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_tracking(self) -> bool:
        with self._cond:
            return self._session is not None

    @property
    def active_job_id(self) -> Optional[str]:
        with self._cond:
            return self._session.job_id if self._session else None

    @property
    def last_reading(self) -> Optional[LocationReading]:
        with self._cond:
            return self._session.last_reading if self._session else None

    def session_snapshot(self) -> TrackingStatus:
        """Point-in-time view of the reporter."""
        with self._cond:
            session = self._session
            if session is None:
                return TrackingStatus(tracking=False)
            return TrackingStatus(
                tracking=True,
                job_id=session.job_id,
                engineer_id=session.engineer_id,
                started_at=session.started_at,
                last_reading=session.last_reading,
                sent_count=session.sent_count,
                failed_count=session.failed_count,
            )

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------

    def _fallback_loop(self, session: TrackingSession) -> None:
        """Periodic sampler; exits as soon as the session is stopped."""
        interval = self.settings.fallback_interval_s
        while not session.stop_event.wait(interval):
            try:
                reading = self.source.current_position()
            except Exception as e:
                logger.warning(
                    f"Fallback location sample failed for job {session.job_id}: {e}"
                )
                continue
            self._on_reading(session, ReadingSource.PERIODIC, reading)

    def _on_reading(
        self,
        session: TrackingSession,
        source: ReadingSource,
        reading: LocationReading,
    ) -> None:
        """Sink shared by both producers."""
        reading = reading.with_source(source)
        ident = threading.get_ident()

        with self._cond:
            if session.closed or self._session is not session:
                return
            session.in_flight[ident] = session.in_flight.get(ident, 0) + 1

        sent = False
        try:
            self.backend.report_location(session.engineer_id, reading)
            sent = True
        except Exception as e:
            logger.warning(
                f"Location send failed for engineer {session.engineer_id} "
                f"(job {session.job_id}, {source.value}): {e}"
            )
        finally:
            with self._cond:
                remaining = session.in_flight.get(ident, 1) - 1
                if remaining:
                    session.in_flight[ident] = remaining
                else:
                    session.in_flight.pop(ident, None)
                if sent:
                    session.sent_count += 1
                    session.last_reading = reading
                else:
                    session.failed_count += 1
                self._cond.notify_all()
