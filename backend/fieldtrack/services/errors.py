"""
Backend collaborator errors.
"""

from typing import Optional


class BackendError(Exception):
    """Base exception for backend API failures."""
    pass


class BackendUnavailableError(BackendError):
    """Network failure or timeout: the request may or may not have landed."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Backend unavailable: {message}")


class BackendResponseError(BackendError):
    """The backend answered with an error envelope."""

    def __init__(self, status_code: int, message: str, code: Optional[str] = None):
        self.status_code = status_code
        self.code = code
        self.message = message
        label = f"{code}: " if code else ""
        super().__init__(f"Backend returned {status_code}: {label}{message}")


class JobNotFoundError(BackendResponseError):
    """Raised when the backend does not know the job."""

    def __init__(self, job_id: str, message: Optional[str] = None):
        self.job_id = job_id
        super().__init__(404, message or f"Job not found: {job_id}", code="NOT_FOUND")
