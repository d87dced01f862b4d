"""Roster rules for course enrollment.

Entries are never removed: dropping flips ``status`` and re-enrolling a dropped
student reactivates the same entry with a fresh ``enrolled_at``.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Tuple

from app.common.errors import ValidationFailed
from .schemas import Course, EnrollmentEntry


def enroll(course: Course, student_id: str, now: datetime) -> Tuple[List[EnrollmentEntry], bool]:
    """Return the new roster and whether an existing entry was reactivated."""
    roster = [entry.model_copy() for entry in course.enrolled_students]
    for entry in roster:
        if entry.student_id != student_id:
            continue
        if entry.status == "dropped":
            entry.status = "active"
            entry.enrolled_at = now
            return roster, True
        raise ValidationFailed("Student is already enrolled in this course", details={"status": entry.status})

    limit = course.settings.max_enrollment
    if limit and course.active_enrollment_count >= limit:
        raise ValidationFailed(
            "Course enrollment limit reached",
            details={"max_enrollment": limit, "enrolled": course.active_enrollment_count},
        )
    roster.append(EnrollmentEntry(student_id=student_id, enrolled_at=now, status="active"))
    return roster, False


def drop(course: Course, student_id: str) -> List[EnrollmentEntry]:
    roster = [entry.model_copy() for entry in course.enrolled_students]
    for entry in roster:
        if entry.student_id == student_id and entry.status == "active":
            entry.status = "dropped"
            return roster
    raise ValidationFailed("Student is not enrolled in this course")


def accepts_enrollment(course: Course, now: datetime) -> bool:
    return course.is_active and (course.end_date is None or now <= course.end_date)


def batch_allows(course_batch: str, student_batch: str) -> bool:
    """An unrestricted course, or an unbatched student, is allowed; otherwise exact match."""
    return not course_batch or not student_batch or course_batch == student_batch


__all__ = ["enroll", "drop", "accepts_enrollment", "batch_allows"]
