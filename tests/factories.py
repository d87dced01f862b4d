# tests/factories.py
"""Row and model builders shared by the test modules."""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from app.common.deps import CurrentUser
from app.features.assignments.schemas import Assignment
from app.features.courses.schemas import Course
from app.features.submissions.schemas import AssignmentSubmission

BASE = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)

INSTRUCTOR = CurrentUser(id="inst-1", auth_subject="sub-inst-1", email="ins@uni.test", role="instructor")
OTHER_INSTRUCTOR = CurrentUser(id="inst-2", auth_subject="sub-inst-2", email="ins2@uni.test", role="instructor")
STUDENT_A = CurrentUser(id="stu-a", auth_subject="sub-stu-a", email="a@uni.test", role="student", batch="2026-CSE-A")
STUDENT_B = CurrentUser(id="stu-b", auth_subject="sub-stu-b", email="b@uni.test", role="student", batch="2026-CSE-B")


def iso(value: datetime) -> str:
    return value.isoformat()


def user_row(user: CurrentUser, **overrides: Any) -> Dict[str, Any]:
    first, _, last = user.email.partition("@")
    row = {
        "id": user.id,
        "auth_subject": user.auth_subject,
        "email": user.email,
        "first_name": first.upper(),
        "last_name": last.split(".")[0].title(),
        "role": user.role,
        "student_id": f"S-{user.id}" if user.role == "student" else None,
        "batch": user.batch,
        "is_active": True,
        "created_at": iso(BASE - timedelta(days=30)),
        "updated_at": iso(BASE - timedelta(days=30)),
    }
    row.update(overrides)
    return row


def assignment_row(**overrides: Any) -> Dict[str, Any]:
    row = {
        "id": overrides.pop("id", None) or f"asg-{uuid.uuid4().hex[:8]}",
        "title": "Linked Lists",
        "description": "Implement a linked list",
        "instructions": "",
        "instructor_id": INSTRUCTOR.id,
        "course_id": None,
        "batch": "2026-CSE-A",
        "assigned_students": [],
        "start_date": iso(BASE - timedelta(days=1)),
        "due_date": iso(BASE + timedelta(days=1)),
        "max_points": 100,
        "assignment_type": "homework",
        "coding_challenges": [],
        "settings": {},
        "rubric": [],
        "tags": [],
        "is_published": True,
        "published_at": iso(BASE - timedelta(days=1)),
        "is_active": True,
        "version": 1,
        "created_at": iso(BASE - timedelta(days=2)),
        "updated_at": iso(BASE - timedelta(days=2)),
    }
    row.update(overrides)
    return row


def assignment(**overrides: Any) -> Assignment:
    return Assignment.model_validate(assignment_row(**overrides))


def submission_row(assignment_id: Optional[str], student_id: str, **overrides: Any) -> Dict[str, Any]:
    row = {
        "id": overrides.pop("id", None) or f"sub-{uuid.uuid4().hex[:8]}",
        "assignment_id": assignment_id,
        "student_id": student_id,
        "course_id": None,
        "content": "",
        "attachments": [],
        "attempt_number": 1,
        "is_late": False,
        "late_penalty": 0,
        "submitted_at": None,
        "status": "draft",
        "grade": {},
        "created_at": iso(BASE - timedelta(hours=5)),
        "updated_at": iso(BASE - timedelta(hours=5)),
    }
    row.update(overrides)
    return row


def submission(assignment_id: Optional[str] = "asg-1", student_id: str = STUDENT_A.id, **overrides: Any) -> AssignmentSubmission:
    return AssignmentSubmission.model_validate(submission_row(assignment_id, student_id, **overrides))


def quiz(title: str = "Week 1", answers: Optional[List[int]] = None) -> Dict[str, Any]:
    answers = answers if answers is not None else [0, 1, 2]
    return {
        "title": title,
        "questions": [
            {"question": f"Q{i + 1}", "options": ["a", "b", "c", "d"], "correct_answer": a}
            for i, a in enumerate(answers)
        ],
    }


def course_row(**overrides: Any) -> Dict[str, Any]:
    row = {
        "id": overrides.pop("id", None) or f"crs-{uuid.uuid4().hex[:8]}",
        "title": "Data Structures",
        "code": "CS201",
        "description": "",
        "instructor_id": INSTRUCTOR.id,
        "batch": "2026-CSE-A",
        "enrolled_students": [],
        "settings": {},
        "quizzes": [],
        "start_date": iso(BASE - timedelta(days=10)),
        "end_date": iso(BASE + timedelta(days=80)),
        "is_active": True,
        "created_at": iso(BASE - timedelta(days=20)),
        "updated_at": iso(BASE - timedelta(days=20)),
    }
    row.update(overrides)
    return row


def course(**overrides: Any) -> Course:
    return Course.model_validate(course_row(**overrides))


def enrolled(*student_ids: str, status: str = "active") -> List[Dict[str, Any]]:
    return [
        {"student_id": s, "enrolled_at": iso(BASE - timedelta(days=5)), "status": status} for s in student_ids
    ]
