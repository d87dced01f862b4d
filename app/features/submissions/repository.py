from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from app.DB.repository import SupabaseRepository

ASSIGNMENT_UNIQUE_CONSTRAINT = "uq_assignment_submissions_assignment_student"
QUIZ_UNIQUE_CONSTRAINT = "uq_quiz_submissions_student_course_quiz"


def _ids(values: Iterable[Optional[str]]) -> List[str]:
    return sorted({v for v in values if v})


class AssignmentSubmissionsRepository(SupabaseRepository):
    """Assignment-type submissions. Transitions are compare-and-set on ``status``."""

    table_name = "assignment_submissions"

    async def get_for(self, assignment_id: str, student_id: str) -> Optional[Dict[str, Any]]:
        return await self._first(
            self._table().select("*").eq("assignment_id", assignment_id).eq("student_id", student_id)
        )

    async def list_by_student(self, student_id: str) -> List[Dict[str, Any]]:
        return await self._execute(
            self._table().select("*").eq("student_id", student_id).order("created_at", desc=True)
        )

    async def list_by_assignment(self, assignment_id: str) -> List[Dict[str, Any]]:
        return await self._execute(
            self._table().select("*").eq("assignment_id", assignment_id).order("submitted_at", desc=True)
        )

    async def list_by_course(self, course_id: str) -> List[Dict[str, Any]]:
        return await self._execute(self._table().select("*").eq("course_id", course_id))

    async def list_by_assignments(self, assignment_ids: Iterable[str]) -> List[Dict[str, Any]]:
        ids = _ids(assignment_ids)
        if not ids:
            return []
        return await self._execute(self._table().select("*").in_("assignment_id", ids))

    async def list_for_students(self, student_ids: Iterable[str], assignment_ids: Iterable[str]) -> List[Dict[str, Any]]:
        students, assignments = _ids(student_ids), _ids(assignment_ids)
        if not students or not assignments:
            return []
        return await self._execute(
            self._table().select("*").in_("student_id", students).in_("assignment_id", assignments)
        )

    async def update_if_status(
        self, submission_id: str, expected_status: str, fields: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        rows = await self._execute(
            self._table().update(fields).eq("id", submission_id).eq("status", expected_status)
        )
        return rows[0] if rows else None


class QuizSubmissionsRepository(SupabaseRepository):
    table_name = "quiz_submissions"

    async def get_for(self, student_id: str, course_id: str, quiz_index: int) -> Optional[Dict[str, Any]]:
        return await self._first(
            self._table()
            .select("*")
            .eq("student_id", student_id)
            .eq("course_id", course_id)
            .eq("quiz_index", quiz_index)
        )

    async def list_by_student(self, student_id: str) -> List[Dict[str, Any]]:
        return await self._execute(
            self._table().select("*").eq("student_id", student_id).order("submitted_at", desc=True)
        )

    async def list_by_course(self, course_id: str) -> List[Dict[str, Any]]:
        return await self._execute(self._table().select("*").eq("course_id", course_id))

    async def list_by_courses(self, course_ids: Iterable[str]) -> List[Dict[str, Any]]:
        ids = _ids(course_ids)
        if not ids:
            return []
        return await self._execute(self._table().select("*").in_("course_id", ids))

    async def list_for_students(self, student_ids: Iterable[str], course_ids: Iterable[str]) -> List[Dict[str, Any]]:
        students, courses = _ids(student_ids), _ids(course_ids)
        if not students or not courses:
            return []
        return await self._execute(
            self._table().select("*").in_("student_id", students).in_("course_id", courses)
        )


__all__ = [
    "AssignmentSubmissionsRepository",
    "QuizSubmissionsRepository",
    "ASSIGNMENT_UNIQUE_CONSTRAINT",
    "QUIZ_UNIQUE_CONSTRAINT",
]
