"""
Tests for the completion gate.

The validator is pure: same job in, equal result out, job untouched.
"""

from fieldtrack.jobs.completion import (
    REASON_MISSING_AFTER_PHOTO,
    REASON_MISSING_BEFORE_PHOTO,
    REASON_MISSING_SIGNATURE,
    CompletionValidator,
    validate_completion,
)
from fieldtrack.jobs.models import ChecklistItem, JobStatus

from fakes import make_job


def test_complete_job_is_satisfied():
    result = CompletionValidator().validate(make_job(JobStatus.ONSITE))

    assert result.satisfied
    assert result.reasons == []
    assert result.checklist_completed == 2
    assert result.checklist_total == 2
    assert result.has_signature


def test_empty_checklist_does_not_block():
    result = validate_completion(make_job(checklist=[]))

    assert result.satisfied
    assert result.checklist_total == 0


def test_incomplete_checklist_reports_counts():
    job = make_job(checklist=[
        ChecklistItem(description="Inspect compressor", completed=True),
        ChecklistItem(description="Check drainage", completed=False),
        ChecklistItem(description="Test remote", completed=False),
    ])

    result = validate_completion(job)

    assert not result.satisfied
    assert result.reasons == ["checklist incomplete: 1/3"]


def test_missing_after_photo_and_signature_scenario():
    """Two done items, one before photo, no after photo, no signature."""
    job = make_job(
        checklist=[
            ChecklistItem(description="a", completed=True),
            ChecklistItem(description="b", completed=True),
        ],
        photos_before=["https://media.example.com/before.jpg"],
        photos_after=[],
        signature_ref=None,
    )

    result = validate_completion(job)

    assert result.satisfied is False
    assert REASON_MISSING_AFTER_PHOTO in result.reasons
    assert REASON_MISSING_SIGNATURE in result.reasons
    assert not any(r.startswith("checklist incomplete") for r in result.reasons)
    assert REASON_MISSING_BEFORE_PHOTO not in result.reasons


def test_reasons_follow_rule_order():
    job = make_job(
        checklist=[ChecklistItem(description="a", completed=False)],
        photos_before=[],
        photos_after=[],
        signature_ref=None,
    )

    assert validate_completion(job).reasons == [
        "checklist incomplete: 0/1",
        REASON_MISSING_BEFORE_PHOTO,
        REASON_MISSING_AFTER_PHOTO,
        REASON_MISSING_SIGNATURE,
    ]


def test_blank_signature_counts_as_missing():
    result = validate_completion(make_job(signature_ref="   "))

    assert result.reasons == [REASON_MISSING_SIGNATURE]
    assert not result.has_signature


def test_validate_is_pure():
    job = make_job(photos_after=[], checklist=[ChecklistItem(description="x")])
    before = job.model_dump()
    validator = CompletionValidator()

    first = validator.validate(job)
    second = validator.validate(job)

    assert first == second
    assert job.model_dump() == before
