"""
Backend collaborator: contract and HTTP client.
"""

from .errors import (
    BackendError,
    BackendUnavailableError,
    BackendResponseError,
    JobNotFoundError,
)
from .base import JobBackend
from .http_backend import HttpJobBackend, job_from_api

__all__ = [
    "BackendError",
    "BackendUnavailableError",
    "BackendResponseError",
    "JobNotFoundError",
    "JobBackend",
    "HttpJobBackend",
    "job_from_api",
]
