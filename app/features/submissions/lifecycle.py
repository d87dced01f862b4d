"""
Assignment submission state machine.

    draft --submit--> submitted --grade--> graded --return--> returned

Each transition is a pure function: it validates the current state, and returns
the fields to persist. Callers pass one ``now`` for the whole request so that
lateness and penalties are computed against a single instant.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.common.errors import (
    AlreadySubmitted,
    AssignmentClosed,
    AttemptLimitExceeded,
    NotGraded,
    NotSubmitted,
    ValidationFailed,
)
from app.common.utils import format_timestamp
from app.features.assignments import distribution
from app.features.assignments.schemas import Assignment
from .schemas import Attachment, AssignmentSubmission, LetterGrade, RubricScore

_LETTER_CUTOFFS = (
    (97, "A+"), (93, "A"), (90, "A-"),
    (87, "B+"), (83, "B"), (80, "B-"),
    (77, "C+"), (73, "C"), (70, "C-"),
    (67, "D+"), (63, "D"), (60, "D-"),
)


def letter_grade(percentage: float) -> LetterGrade:
    for cutoff, letter in _LETTER_CUTOFFS:
        if percentage >= cutoff:
            return letter  # type: ignore[return-value]
    return "F"


def hours_late(due_date: datetime, submitted_at: datetime) -> float:
    return (submitted_at - due_date).total_seconds() / 3600


def compute_late_penalty(due_date: datetime, submitted_at: datetime, rate: float) -> float:
    """Rate is charged once per started day of lateness, capped at 100."""
    hours = hours_late(due_date, submitted_at)
    if hours <= 0 or not rate:
        return 0.0
    return min(rate * math.ceil(hours / 24), 100.0)


def _attachments_json(attachments: List[Attachment]) -> List[Dict[str, Any]]:
    return [a.model_dump(mode="json") for a in attachments]


def save_draft(
    existing: AssignmentSubmission,
    content: str,
    attachments: List[Attachment],
    now: datetime,
) -> Dict[str, Any]:
    """Overwrite a draft's content; each successful save is one more attempt."""
    if existing.status != "draft":
        raise AlreadySubmitted(details={"status": existing.status, "submission_id": existing.id})
    return {
        "content": content,
        "attachments": _attachments_json(attachments),
        "attempt_number": existing.attempt_number + 1,
        "updated_at": format_timestamp(now),
    }


def check_attachments(assignment: Assignment, attachments: List[Attachment], max_mb: Optional[float] = None) -> None:
    settings = assignment.settings
    limit_mb = min(settings.max_file_size_mb, max_mb) if max_mb else settings.max_file_size_mb
    allowed = {t.lower().lstrip(".") for t in settings.allowed_file_types}
    for item in attachments:
        if item.size > limit_mb * 1024 * 1024:
            raise ValidationFailed(
                "Attachment exceeds the maximum file size",
                details={"filename": item.filename, "max_file_size_mb": limit_mb},
            )
        if allowed:
            ext = item.filename.rsplit(".", 1)[-1].lower() if "." in item.filename else ""
            if ext not in allowed:
                raise ValidationFailed(
                    "Attachment type not allowed",
                    details={"filename": item.filename, "allowed_file_types": sorted(allowed)},
                )


def add_attachments(existing: AssignmentSubmission, attachments: List[Attachment], now: datetime) -> Dict[str, Any]:
    if existing.status != "draft":
        raise AlreadySubmitted(details={"status": existing.status, "submission_id": existing.id})
    stamped = [a.model_copy(update={"uploaded_at": a.uploaded_at or now}) for a in attachments]
    return {
        "attachments": _attachments_json([*existing.attachments, *stamped]),
        "updated_at": format_timestamp(now),
    }


def submit(existing: AssignmentSubmission, assignment: Assignment, now: datetime) -> Dict[str, Any]:
    if existing.status != "draft":
        raise AlreadySubmitted(details={"status": existing.status, "submission_id": existing.id})
    if not distribution.accepts_submission(assignment, now):
        raise AssignmentClosed(details=distribution.window_details(assignment, now))
    max_attempts = assignment.settings.max_attempts
    if existing.attempt_number > max_attempts:
        raise AttemptLimitExceeded(
            details={"attempt_number": existing.attempt_number, "max_attempts": max_attempts}
        )
    if assignment.settings.require_file_upload and not existing.attachments:
        raise ValidationFailed("This assignment requires a file upload")

    is_late = now > assignment.due_date
    penalty = 0.0
    if is_late and assignment.settings.allow_late_submissions:
        penalty = compute_late_penalty(assignment.due_date, now, assignment.settings.late_submission_penalty)
    return {
        "status": "submitted",
        "submitted_at": format_timestamp(now),
        "is_late": is_late,
        "late_penalty": penalty,
        "updated_at": format_timestamp(now),
    }


def grade(
    existing: AssignmentSubmission,
    assignment: Assignment,
    points: float,
    grader_id: str,
    now: datetime,
    *,
    feedback: str = "",
    rubric_scores: Optional[List[RubricScore]] = None,
) -> Dict[str, Any]:
    if existing.status != "submitted":
        raise NotSubmitted(details={"status": existing.status, "submission_id": existing.id})
    if points < 0 or points > assignment.max_points:
        raise ValidationFailed(
            "Points must be between 0 and the assignment's max points",
            details={"points": points, "max_points": assignment.max_points},
        )
    percentage = points / assignment.max_points * 100
    return {
        "status": "graded",
        "grade": {
            "points": points,
            "percentage": percentage,
            "letter_grade": letter_grade(percentage),
            "graded_by": grader_id,
            "graded_at": format_timestamp(now),
            "feedback": feedback,
            "rubric_scores": [r.model_dump(mode="json") for r in rubric_scores or []],
        },
        "updated_at": format_timestamp(now),
    }


def return_submission(existing: AssignmentSubmission, now: datetime) -> Dict[str, Any]:
    if existing.status != "graded":
        raise NotGraded(details={"status": existing.status, "submission_id": existing.id})
    return {"status": "returned", "updated_at": format_timestamp(now)}


__all__ = [
    "letter_grade",
    "hours_late",
    "compute_late_penalty",
    "save_draft",
    "check_attachments",
    "add_attachments",
    "submit",
    "grade",
    "return_submission",
]
