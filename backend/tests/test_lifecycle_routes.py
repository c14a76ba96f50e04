"""
Tests for the lifecycle HTTP endpoints.

The app is built around a RecordingBackend and a FeedLocationSource, so
no dispatch API is needed.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from fieldtrack.jobs.models import JobStatus
from fieldtrack import main
from fieldtrack.main import create_app
from fieldtrack.services.errors import BackendUnavailableError
from fieldtrack.services.http_backend import HttpJobBackend
from fieldtrack.settings import EngineSettings
from fieldtrack.tracking.sources import FeedLocationSource

from fakes import RecordingBackend, make_job


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def source():
    return FeedLocationSource()


@pytest.fixture
def client(backend, source):
    app = create_app(settings=EngineSettings(), backend=backend, source=source)
    with TestClient(app) as client:
        yield client


def transition(client, job_id, target, **extra):
    return client.post(
        f"/lifecycle/jobs/{job_id}/transition",
        json={"target_status": target, **extra},
    )


# =============================================================================
# Service
# =============================================================================

def test_import_builds_no_app():
    assert not hasattr(main, "app")


def test_root_and_health(client):
    assert client.get("/").json()["service"] == "fieldtrack"
    assert client.get("/health").json() == {"status": "ok", "tracking": False}


# =============================================================================
# Transitions
# =============================================================================

def test_transition_to_travelling_starts_tracking(client, backend):
    backend.add(make_job(JobStatus.ACCEPTED))

    response = transition(client, "job-1", "travelling", notes="On my way")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["job"]["status"] == "travelling"
    assert body["tracking"] is True

    tracking = client.get("/lifecycle/tracking").json()
    assert tracking["tracking"] is True
    assert tracking["job_id"] == "job-1"
    assert tracking["engineer_id"] == "eng-1"


def test_arrival_with_location_stops_tracking(client, backend):
    backend.add(make_job(JobStatus.TRAVELLING))
    client.app.state.lifecycle_engine.reporter.start("job-1", "eng-1")

    response = transition(
        client, "job-1", "onsite", location={"lat": 28.6129, "lng": 77.2295}
    )

    assert response.status_code == 200
    assert response.json()["tracking"] is False
    _, status, location, _ = backend.status_calls[-1]
    assert status == JobStatus.ONSITE
    assert (location.lat, location.lng) == (28.6129, 77.2295)


def test_invalid_transition_is_409(client, backend):
    backend.add(make_job(JobStatus.ACCEPTED))

    response = transition(client, "job-1", "completed")

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["from_status"] == "accepted"
    assert detail["to_status"] == "completed"
    assert backend.persistence_calls == 0


def test_completion_blocked_is_422(client, backend):
    backend.add(make_job(JobStatus.ONSITE, photos_after=[]))

    response = transition(client, "job-1", "completed")

    assert response.status_code == 422
    assert response.json()["detail"]["reasons"] == ["missing after photo"]
    assert backend.complete_calls == []


def test_persistence_failure_is_502(client, backend):
    backend.add(make_job(JobStatus.ACCEPTED))
    backend.fail_status = BackendUnavailableError("timeout")

    response = transition(client, "job-1", "travelling")

    assert response.status_code == 502
    assert response.json()["detail"]["retryable"] is True
    assert client.get("/lifecycle/tracking").json()["tracking"] is False


def test_unknown_job_is_404(client):
    assert transition(client, "nope", "travelling").status_code == 404


def test_backend_down_while_loading_is_502(client, backend, monkeypatch):
    def unavailable(job_id):
        raise BackendUnavailableError("connection refused")

    monkeypatch.setattr(backend, "get_job", unavailable)

    response = transition(client, "job-1", "travelling")

    assert response.status_code == 502
    assert response.json()["detail"]["retryable"] is True


def test_unknown_status_is_rejected(client, backend):
    backend.add(make_job(JobStatus.ACCEPTED))

    assert transition(client, "job-1", "teleporting").status_code == 422
    assert backend.persistence_calls == 0


# =============================================================================
# Cancellation, completion, history
# =============================================================================

def test_cancel(client, backend):
    backend.add(make_job(JobStatus.ASSIGNED))

    response = client.post(
        "/lifecycle/jobs/job-1/cancel", json={"reason": "duplicate booking"}
    )

    assert response.status_code == 200
    assert response.json()["job"]["status"] == "cancelled"


def test_cancel_completed_job_is_409(client, backend):
    backend.add(make_job(JobStatus.COMPLETED))

    response = client.post("/lifecycle/jobs/job-1/cancel", json={})

    assert response.status_code == 409


def test_completion_status(client, backend):
    backend.add(make_job(JobStatus.ONSITE, signature_ref=None))

    body = client.get("/lifecycle/jobs/job-1/completion").json()

    assert body["satisfied"] is False
    assert body["reasons"] == ["missing signature"]
    assert body["checklist_completed"] == 2


def test_history_lists_confirmed_transitions(client, backend):
    backend.add(make_job(JobStatus.ACCEPTED))
    transition(client, "job-1", "travelling")
    transition(client, "job-1", "travelling")  # rejected, not recorded

    entries = client.get("/lifecycle/jobs/job-1/history").json()["entries"]

    assert [entry["status"] for entry in entries] == ["travelling"]


# =============================================================================
# Location feed
# =============================================================================

def test_pushed_location_reaches_backend_while_travelling(client, backend):
    backend.add(make_job(JobStatus.ACCEPTED))
    transition(client, "job-1", "travelling")

    response = client.post("/lifecycle/location", json={"lat": 28.6, "lng": 77.2})

    assert response.status_code == 200
    assert backend.location_calls[-1][0] == "eng-1"
    assert backend.location_calls[-1][1].lat == 28.6


def test_pushed_location_is_ignored_when_idle(client, backend):
    response = client.post("/lifecycle/location", json={"lat": 28.6, "lng": 77.2})

    assert response.status_code == 200
    assert backend.location_calls == []


def test_out_of_range_location_is_rejected(client):
    response = client.post("/lifecycle/location", json={"lat": 95.0, "lng": 0.0})
    assert response.status_code == 422


# =============================================================================
# Against the HTTP backend client
# =============================================================================

def test_completion_route_loads_bare_job_record(source):
    def dispatch_api(request):
        assert request.url.path == "/api/jobs/j1"
        return httpx.Response(200, json={
            "id": "j1",
            "status": "onsite",
            "service_checklist": [{"item": "Clean filters", "completed": True}],
            "photos_before": ["https://media.example.com/b.jpg"],
            "photos_after": ["https://media.example.com/a.jpg"],
            "client_signature_url": "https://media.example.com/sig.png",
        })

    http_client = httpx.Client(
        base_url="http://dispatch.test", transport=httpx.MockTransport(dispatch_api)
    )
    backend = HttpJobBackend("http://dispatch.test", client=http_client)
    app = create_app(settings=EngineSettings(), backend=backend, source=source)

    with TestClient(app) as client:
        response = client.get("/lifecycle/jobs/j1/completion")

    assert response.status_code == 200
    assert response.json()["satisfied"] is True
