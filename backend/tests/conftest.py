"""
Pytest configuration for the fieldtrack test suite.
"""

import sys
from pathlib import Path

import pytest

# Add backend to Python path for test imports
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))
sys.path.insert(0, str(Path(__file__).parent))

from fakes import RecordingBackend, SpyReporter  # noqa: E402
from fieldtrack.settings import TrackingSettings  # noqa: E402
from fieldtrack.tracking.sources import FeedLocationSource  # noqa: E402


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def source():
    source = FeedLocationSource()
    source.push(28.6139, 77.2090)
    return source


@pytest.fixture
def quiet_settings():
    """Fallback timer long enough to never fire during a test."""
    return TrackingSettings(min_interval_s=30, min_distance_m=50, fallback_interval_s=60)


@pytest.fixture
def fast_settings():
    """Fallback timer firing every few milliseconds."""
    return TrackingSettings(
        min_interval_s=30, min_distance_m=50, fallback_interval_s=0.005
    )


@pytest.fixture
def reporter(backend, source, quiet_settings):
    reporter = SpyReporter(backend, source, quiet_settings)
    yield reporter
    reporter.stop()
