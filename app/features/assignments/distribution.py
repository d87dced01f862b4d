"""
Assignment distribution rules.

Two overlapping mechanisms decide who sees an assignment:
    - batch broadcast: the assignment's batch label equals the student's batch
      (exact string equality, no case folding), or the label is empty and the
      assignment is for every batch;
    - explicit roster: the student's id is in ``assigned_students``.

Everything here is pure; the service loads rows, applies these functions and
writes back the result.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Protocol

from app.common.errors import DuplicateAssignment, NotAssigned
from app.common.utils import format_timestamp
from .schemas import Assignment, AssignmentStatus


class Viewer(Protocol):
    id: str
    role: str
    batch: str


def batch_matches(assignment_batch: str, student_batch: str) -> bool:
    return bool(student_batch) and assignment_batch == student_batch


def is_visible_to(assignment: Assignment, user: Viewer) -> bool:
    if user.role == "instructor":
        return assignment.instructor_id == user.id
    if not (assignment.is_active and assignment.is_published):
        return False
    return (
        assignment.batch == user.batch
        or not assignment.batch
        or user.id in assignment.assigned_students
    )


def visible_assignments(assignments: Iterable[Assignment], user: Viewer) -> List[Assignment]:
    visible = [a for a in assignments if is_visible_to(a, user)]
    visible.sort(key=lambda a: a.due_date)
    return visible


def is_open(assignment: Assignment, now: datetime) -> bool:
    return (
        assignment.is_active
        and assignment.is_published
        and assignment.start_date <= now <= assignment.due_date
    )


def accepts_submission(assignment: Assignment, now: datetime) -> bool:
    """Open window, extended past the due date when late work is allowed."""
    if is_open(assignment, now):
        return True
    return (
        assignment.is_active
        and assignment.is_published
        and assignment.settings.allow_late_submissions
        and now > assignment.due_date
    )


def assignment_status(assignment: Assignment, now: datetime) -> AssignmentStatus:
    if now < assignment.start_date:
        return "scheduled"
    if now > assignment.due_date:
        return "overdue"
    return "active"


def window_details(assignment: Assignment, now: datetime) -> Dict[str, Any]:
    return {
        "is_active": assignment.is_active,
        "is_published": assignment.is_published,
        "start_date": format_timestamp(assignment.start_date),
        "due_date": format_timestamp(assignment.due_date),
        "current_date": format_timestamp(now),
        "allow_late_submissions": assignment.settings.allow_late_submissions,
    }


def add_to_roster(assignment: Assignment, student_id: str) -> List[str]:
    if student_id in assignment.assigned_students:
        raise DuplicateAssignment(details={"assignment_id": assignment.id, "student_id": student_id})
    return [*assignment.assigned_students, student_id]


def remove_from_roster(assignment: Assignment, student_id: str) -> List[str]:
    if student_id not in assignment.assigned_students:
        raise NotAssigned(details={"assignment_id": assignment.id, "student_id": student_id})
    return [s for s in assignment.assigned_students if s != student_id]


def publish_on_assignment(assignment: Assignment, now: datetime) -> Dict[str, Any]:
    """Post-condition of explicit assignment: the assignment becomes visible.

    Returns the fields to write; empty when it is already published.
    """
    if assignment.is_published:
        return {}
    return {"is_published": True, "published_at": format_timestamp(now)}


__all__ = [
    "batch_matches",
    "is_visible_to",
    "visible_assignments",
    "is_open",
    "accepts_submission",
    "assignment_status",
    "window_details",
    "add_to_roster",
    "remove_from_roster",
    "publish_on_assignment",
]
