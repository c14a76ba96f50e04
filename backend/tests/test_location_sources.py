"""
Tests for location primitives and the feed location source.

Covers the "whichever comes first" time/distance gate, haversine distance,
coordinate validation and subscription cancellation.
"""

import pytest
from pydantic import ValidationError

from fieldtrack.location import LocationReading, ReadingSource, distance_m
from fieldtrack.tracking.errors import LocationUnavailableError
from fieldtrack.tracking.sources import FeedLocationSource, ThresholdGate


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


# =============================================================================
# Readings
# =============================================================================

def test_reading_rejects_out_of_range_coordinates():
    with pytest.raises(ValidationError):
        LocationReading(lat=91.0, lng=0.0)
    with pytest.raises(ValidationError):
        LocationReading(lat=0.0, lng=-180.5)


def test_reading_is_immutable():
    reading = LocationReading(lat=12.97, lng=77.59)
    with pytest.raises(ValidationError):
        reading.lat = 13.0


def test_with_source_returns_new_reading():
    reading = LocationReading(lat=12.97, lng=77.59)
    tagged = reading.with_source(ReadingSource.PERIODIC)

    assert tagged.source == ReadingSource.PERIODIC
    assert reading.source is None
    assert tagged.captured_at == reading.captured_at


def test_distance_m():
    a = LocationReading(lat=0.0, lng=0.0)
    b = LocationReading(lat=0.001, lng=0.0)

    assert distance_m(a, a) == 0.0
    assert distance_m(a, b) == pytest.approx(111.19, abs=0.5)
    assert distance_m(a, b) == pytest.approx(distance_m(b, a))


# =============================================================================
# Threshold gate
# =============================================================================

def test_gate_emits_first_reading():
    gate = ThresholdGate(30, 50, clock=FakeClock())
    assert gate.should_emit(LocationReading(lat=10.0, lng=10.0))


def test_gate_holds_small_moves_within_interval():
    clock = FakeClock()
    gate = ThresholdGate(30, 50, clock=clock)
    gate.should_emit(LocationReading(lat=10.0, lng=10.0))

    clock.now += 10
    # ~11 m north
    assert not gate.should_emit(LocationReading(lat=10.0001, lng=10.0))


def test_gate_emits_on_distance_before_interval():
    clock = FakeClock()
    gate = ThresholdGate(30, 50, clock=clock)
    gate.should_emit(LocationReading(lat=10.0, lng=10.0))

    clock.now += 5
    # ~111 m north
    assert gate.should_emit(LocationReading(lat=10.001, lng=10.0))


def test_gate_emits_on_interval_without_movement():
    clock = FakeClock()
    gate = ThresholdGate(30, 50, clock=clock)
    gate.should_emit(LocationReading(lat=10.0, lng=10.0))

    clock.now += 30
    assert gate.should_emit(LocationReading(lat=10.0, lng=10.0))


def test_gate_measures_from_last_emitted_reading():
    clock = FakeClock()
    gate = ThresholdGate(30, 50, clock=clock)
    gate.should_emit(LocationReading(lat=10.0, lng=10.0))

    # Three ~30 m steps: the second crosses 50 m from the anchor
    clock.now += 1
    assert not gate.should_emit(LocationReading(lat=10.00027, lng=10.0))
    clock.now += 1
    assert gate.should_emit(LocationReading(lat=10.00054, lng=10.0))
    clock.now += 1
    assert not gate.should_emit(LocationReading(lat=10.00081, lng=10.0))


# =============================================================================
# Feed source
# =============================================================================

def test_subscriber_receives_gated_readings():
    clock = FakeClock()
    source = FeedLocationSource(clock=clock)
    received = []
    source.subscribe(received.append, min_interval_s=30, min_distance_m=50)

    source.push(10.0, 10.0)
    clock.now += 1
    source.push(10.0001, 10.0)
    clock.now += 1
    source.push(10.001, 10.0)

    assert [(r.lat, r.lng) for r in received] == [(10.0, 10.0), (10.001, 10.0)]


def test_cancelled_subscription_receives_nothing():
    source = FeedLocationSource()
    received = []
    subscription = source.subscribe(received.append, 30, 50)

    subscription.cancel()
    subscription.cancel()
    source.push(10.0, 10.0)

    assert received == []
    assert not subscription.active
    assert source.subscriber_count == 0


def test_current_position_returns_latest_fix():
    source = FeedLocationSource()
    source.push(1.0, 2.0)
    source.push(3.0, 4.0, accuracy_m=5.0)

    position = source.current_position()
    assert (position.lat, position.lng, position.accuracy_m) == (3.0, 4.0, 5.0)


def test_current_position_without_fix_is_unavailable():
    with pytest.raises(LocationUnavailableError):
        FeedLocationSource().current_position()


def test_denied_permission_blocks_subscribe_and_sample():
    source = FeedLocationSource()
    source.push(1.0, 2.0)
    source.deny_permission()

    with pytest.raises(LocationUnavailableError):
        source.subscribe(lambda r: None, 30, 50)
    with pytest.raises(LocationUnavailableError):
        source.current_position()

    source.grant_permission()
    assert source.current_position().lat == 1.0


def test_failing_subscriber_does_not_break_others():
    source = FeedLocationSource()
    received = []

    def broken(reading):
        raise RuntimeError("boom")

    source.subscribe(broken, 30, 50)
    source.subscribe(received.append, 30, 50)
    source.push(1.0, 1.0)

    assert len(received) == 1
