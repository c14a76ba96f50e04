"""
HTTP client for the dispatch API.

Endpoints:
- GET   /api/jobs/{id}                    -> {...} (bare job record)
- PATCH /api/jobs/{id}/status             -> {"job": {...}}
- POST  /api/jobs/{id}/complete           -> {"job": {...}}
- PATCH /api/engineers/{id}/location      -> engineer location record

Errors come back as {"error": {"code", "message", ...}} and are raised as
BackendResponseError. Transport failures (connection refused, timeouts)
are raised as BackendUnavailableError. Nothing is retried here.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..jobs.models import ChecklistItem, CompletionPayload, Job, JobStatus
from ..location import LocationReading
from ..settings import EngineSettings
from .base import JobBackend
from .errors import BackendResponseError, BackendUnavailableError, JobNotFoundError

logger = logging.getLogger(__name__)


# API record field -> Job field
_JOB_FIELD_ALIASES = {
    "service_checklist": "checklist",
    "client_signature_url": "signature_ref",
}


def job_from_api(record: Dict[str, Any]) -> Job:
    """
    Build a Job from an API job record.

    Unknown fields (client details, payment, rating...) are dropped.
    Checklist items may use either "item" or "description".
    """
    known = set(Job.model_fields)
    data: Dict[str, Any] = {}
    for key, value in record.items():
        key = _JOB_FIELD_ALIASES.get(key, key)
        if key in known and value is not None:
            data[key] = value

    if "checklist" in data:
        data["checklist"] = [
            {
                "description": item.get("description", item.get("item", "")),
                "completed": bool(item.get("completed", False)),
                "notes": item.get("notes"),
            }
            for item in data["checklist"]
        ]

    site = data.get("site_location")
    if isinstance(site, dict):
        data["site_location"] = {
            key: value for key, value in site.items()
            if key in ("lat", "lng", "address", "city", "state", "pincode")
        }

    return Job.model_validate(data)


def _checklist_item(item: ChecklistItem) -> Dict[str, Any]:
    # notes is optional on the wire but null is rejected
    wire: Dict[str, Any] = {"item": item.description, "completed": item.completed}
    if item.notes is not None:
        wire["notes"] = item.notes
    return wire


class HttpJobBackend(JobBackend):
    """JobBackend speaking JSON over HTTP with bearer-token auth."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: API root, e.g. "https://dispatch.example.com"
            token: Bearer token for the engineer session
            timeout: Per-request timeout in seconds
            client: Pre-built httpx.Client (tests inject a MockTransport)
        """
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        if client is None:
            client = httpx.Client(
                base_url=base_url.rstrip("/"),
                headers=headers,
                timeout=timeout,
            )
        else:
            client.headers.update(headers)
        self._client = client

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "HttpJobBackend":
        return cls(
            base_url=settings.api_base_url,
            token=settings.api_token,
            timeout=settings.request_timeout_s,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpJobBackend":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # JobBackend
    # ------------------------------------------------------------------

    def get_job(self, job_id: str) -> Job:
        body = self._request("GET", f"/api/jobs/{job_id}", job_id=job_id)
        return job_from_api(self._job_record(body))

    def update_job_status(
        self,
        job_id: str,
        status: JobStatus,
        location: Optional[LocationReading] = None,
        notes: Optional[str] = None,
    ) -> Job:
        payload: Dict[str, Any] = {"status": JobStatus(status).value}
        if location is not None:
            payload["location"] = location.to_payload()
        if notes:
            payload["notes"] = notes

        body = self._request(
            "PATCH", f"/api/jobs/{job_id}/status", json=payload, job_id=job_id
        )
        return job_from_api(self._job_record(body))

    def complete_job(self, job_id: str, payload: CompletionPayload) -> Job:
        data = payload.model_dump(mode="json")
        data["checklist"] = [_checklist_item(item) for item in payload.checklist]
        data["engineer_notes"] = data["notes"]

        body = self._request(
            "POST", f"/api/jobs/{job_id}/complete", json=data, job_id=job_id
        )
        return job_from_api(self._job_record(body))

    def report_location(self, engineer_id: str, reading: LocationReading) -> None:
        self._request(
            "PATCH",
            f"/api/engineers/{engineer_id}/location",
            json={"latitude": reading.lat, "longitude": reading.lng},
        )

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        job_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise BackendUnavailableError(str(e)) from e

        if response.is_success:
            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                raise BackendResponseError(
                    response.status_code, f"Invalid JSON body: {e}"
                ) from e

        code, message = self._error_details(response)
        logger.warning(f"{method} {path} returned {response.status_code}: {message}")
        if response.status_code == 404 and job_id is not None:
            raise JobNotFoundError(job_id, message)
        raise BackendResponseError(response.status_code, message, code=code)

    @staticmethod
    def _error_details(response: httpx.Response):
        try:
            body = response.json()
        except ValueError:
            return None, response.text or response.reason_phrase
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            return error.get("code"), error.get("message") or response.reason_phrase
        return None, response.reason_phrase

    @staticmethod
    def _job_record(body: Dict[str, Any]) -> Dict[str, Any]:
        """Job record from a {"job": ...} envelope or a bare record."""
        record = body.get("job", body.get("data"))
        if record is None and "id" in body:
            record = body
        if not isinstance(record, dict):
            raise BackendResponseError(200, "Response did not contain a job record")
        return record
