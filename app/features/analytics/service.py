from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from app.common.deps import CurrentUser
from app.DB.supabase import Store
from app.features.assignments.repository import AssignmentsRepository
from app.features.assignments.schemas import Assignment
from app.features.courses.repository import CoursesRepository
from app.features.submissions.repository import AssignmentSubmissionsRepository, QuizSubmissionsRepository
from app.features.submissions.schemas import AssignmentSubmission, QuizSubmission
from app.features.users.repository import UserRepository
from app.features.users.schemas import User
from . import aggregator
from .schemas import BatchAnalytics

logger = logging.getLogger("analytics")

M = TypeVar("M", bound=BaseModel)


def parse_rows(model: Type[M], rows: Iterable[Dict[str, Any]]) -> List[M]:
    """Validate rows, skipping (and logging) any that no longer fit the model."""
    parsed: List[M] = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as exc:
            logger.warning("analytics.row_skipped model=%s id=%s errors=%d", model.__name__, row.get("id"), exc.error_count())
    return parsed


class AnalyticsService:
    def __init__(
        self,
        users: UserRepository,
        assignments: AssignmentsRepository,
        courses: CoursesRepository,
        submissions: AssignmentSubmissionsRepository,
        quizzes: QuizSubmissionsRepository,
    ) -> None:
        self.users = users
        self.assignments = assignments
        self.courses = courses
        self.submissions = submissions
        self.quizzes = quizzes

    @classmethod
    def from_store(cls, store: Store) -> "AnalyticsService":
        timeout = store.timeout_seconds
        return cls(
            UserRepository(store.client, timeout=timeout),
            AssignmentsRepository(store.client, timeout=timeout),
            CoursesRepository(store.client, timeout=timeout),
            AssignmentSubmissionsRepository(store.client, timeout=timeout),
            QuizSubmissionsRepository(store.client, timeout=timeout),
        )

    async def batch_report(self, user: CurrentUser, batch: str) -> BatchAnalytics:
        students = parse_rows(User, await self.users.list_students(batch=batch))
        if not students:
            return BatchAnalytics(batch=batch)

        assignments = parse_rows(Assignment, await self.assignments.list_by_instructor(user.id))
        course_rows = await self.courses.list_by_instructor(user.id)
        student_ids = [s.id for s in students]

        submissions = parse_rows(
            AssignmentSubmission,
            await self.submissions.list_for_students(student_ids, [a.id for a in assignments]),
        )
        quizzes = parse_rows(
            QuizSubmission,
            await self.quizzes.list_for_students(student_ids, [c["id"] for c in course_rows]),
        )

        rows_by_student: Dict[str, aggregator.StudentRows] = {s.id: aggregator.StudentRows() for s in students}
        for sub in submissions:
            if sub.student_id in rows_by_student:
                rows_by_student[sub.student_id].assignment_submissions.append(sub)
        for quiz in quizzes:
            if quiz.student_id in rows_by_student:
                rows_by_student[quiz.student_id].quiz_submissions.append(quiz)

        report = aggregator.batch_analytics(batch, students, assignments, rows_by_student)
        logger.info(
            "analytics.batch instructor=%s batch=%r students=%d assignments=%d submissions=%d quizzes=%d",
            user.id,
            batch,
            len(students),
            len(assignments),
            len(submissions),
            len(quizzes),
        )
        return report


__all__ = ["AnalyticsService", "parse_rows"]
