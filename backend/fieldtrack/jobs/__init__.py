"""
Job lifecycle: models, transition table, completion gate and engine.

Scope:
- Job data model and status enum
- Forward transition table plus operator cancellation
- Completion validation (checklist, photos, signature)
- Lifecycle engine driving persistence and location tracking

Not included:
- Job creation, assignment and acceptance (dispatch)
- Storage (owned by the backend API)
- Authorization
"""

from .errors import (
    JobError,
    LifecycleError,
    InvalidTransitionError,
    CompletionBlockedError,
    PersistenceFailedError,
)
from .models import (
    JobStatus,
    SiteLocation,
    ChecklistItem,
    PartUsed,
    Job,
    CompletionPayload,
    StatusHistoryEntry,
)
from .state import (
    allowed_next,
    is_allowed,
    is_terminal,
    can_cancel,
)
from .completion import CompletionResult, CompletionValidator, validate_completion
from .engine import JobLifecycleEngine

__all__ = [
    # Errors
    "JobError",
    "LifecycleError",
    "InvalidTransitionError",
    "CompletionBlockedError",
    "PersistenceFailedError",
    # Models
    "JobStatus",
    "SiteLocation",
    "ChecklistItem",
    "PartUsed",
    "Job",
    "CompletionPayload",
    "StatusHistoryEntry",
    # State validation
    "allowed_next",
    "is_allowed",
    "is_terminal",
    "can_cancel",
    # Completion gate
    "CompletionResult",
    "CompletionValidator",
    "validate_completion",
    # Engine
    "JobLifecycleEngine",
]
