"""
Completion gate for jobs.

Decides whether a job carries enough proof of work to be closed:
- every checklist item ticked (when a checklist exists)
- at least one before photo and one after photo
- a client signature

The validator is pure. It reads a job snapshot and never mutates it, so
running it twice on the same job gives equal results. It is run eagerly
for progress display and once more, authoritatively, right before the
engine persists a completion.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from .models import Job


REASON_MISSING_BEFORE_PHOTO = "missing before photo"
REASON_MISSING_AFTER_PHOTO = "missing after photo"
REASON_MISSING_SIGNATURE = "missing signature"


def checklist_reason(completed: int, total: int) -> str:
    return f"checklist incomplete: {completed}/{total}"


class CompletionResult(BaseModel):
    """Outcome of a completion check."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    satisfied: bool
    reasons: List[str] = Field(default_factory=list)

    # Progress counters for display
    checklist_completed: int = 0
    checklist_total: int = 0
    before_photos: int = 0
    after_photos: int = 0
    has_signature: bool = False


class CompletionValidator:
    """
    Evaluates the completion requirements of a job.

    Reasons are reported in a stable order:
    checklist, before photo, after photo, signature.
    """

    def validate(self, job: Job) -> CompletionResult:
        """
        Check a job against the completion rules.

        Args:
            job: Job snapshot to inspect

        Returns:
            CompletionResult with satisfied=True only if every rule holds
        """
        reasons: List[str] = []

        total = len(job.checklist)
        done = sum(1 for item in job.checklist if item.completed)
        if total and done < total:
            reasons.append(checklist_reason(done, total))

        if not job.photos_before:
            reasons.append(REASON_MISSING_BEFORE_PHOTO)

        if not job.photos_after:
            reasons.append(REASON_MISSING_AFTER_PHOTO)

        has_signature = bool(job.signature_ref and job.signature_ref.strip())
        if not has_signature:
            reasons.append(REASON_MISSING_SIGNATURE)

        return CompletionResult(
            satisfied=not reasons,
            reasons=reasons,
            checklist_completed=done,
            checklist_total=total,
            before_photos=len(job.photos_before),
            after_photos=len(job.photos_after),
            has_signature=has_signature,
        )


_DEFAULT_VALIDATOR = CompletionValidator()


def validate_completion(job: Job) -> CompletionResult:
    """Run the default validator on a job."""
    return _DEFAULT_VALIDATOR.validate(job)
