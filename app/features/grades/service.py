from __future__ import annotations

import csv
import io
import logging
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence

from app.common.deps import CurrentUser
from app.common.errors import Forbidden, NotFound, NotGraded, NotSubmitted, ValidationFailed
from app.common.utils import format_timestamp
from app.DB.supabase import Store
from app.features.analytics import aggregator
from app.features.analytics.schemas import EXPORT_COLUMNS, CourseGradeStats, GradeExport, ExportRow
from app.features.assignments.repository import AssignmentsRepository
from app.features.assignments.schemas import Assignment
from app.features.courses.repository import CoursesRepository
from app.features.courses.schemas import Course
from app.features.notifications.schemas import NotificationType
from app.features.notifications.service import NotificationService
from app.features.submissions import lifecycle
from app.features.submissions.schemas import (
    DEFAULT_MAX_POINTS,
    AssignmentSubmission,
    GradeRequest,
    QuizSubmission,
)
from app.features.submissions.service import AnySubmission, SubmissionsService
from app.features.users.repository import UserRepository
from app.features.users.schemas import User
from .schemas import CourseGradeSummary, StudentGradeSummary, SummaryEntry

logger = logging.getLogger("grades")


def summarise_by_course(
    assignment_submissions: Sequence[AssignmentSubmission],
    quiz_submissions: Sequence[QuizSubmission],
    assignments_by_id: Mapping[str, Assignment],
    courses_by_id: Mapping[str, Course],
) -> StudentGradeSummary:
    """Group a student's graded work by course; quizzes count out of 100."""
    groups: Dict[Optional[str], CourseGradeSummary] = {}

    def group(course_id: Optional[str]) -> CourseGradeSummary:
        if course_id not in groups:
            course = courses_by_id.get(course_id or "")
            groups[course_id] = CourseGradeSummary(course_id=course_id, course_title=course.title if course else "")
        return groups[course_id]

    for sub in assignment_submissions:
        if sub.grade.points is None:
            continue
        assignment = assignments_by_id.get(sub.assignment_id or "")
        max_points = float(assignment.max_points) if assignment else DEFAULT_MAX_POINTS
        points = sub.final_points or 0.0
        entry = group(sub.course_id or (assignment.course_id if assignment else None))
        entry.submissions.append(
            SummaryEntry(
                submission_id=sub.id,
                kind="assignment",
                title=assignment.title if assignment else "Unknown Assignment",
                points=points,
                max_points=max_points,
                percentage=points / max_points * 100,
            )
        )
        entry.total_points += points
        entry.max_points += max_points

    for quiz in quiz_submissions:
        points = quiz.final_points or 0.0
        entry = group(quiz.course_id)
        entry.submissions.append(
            SummaryEntry(
                submission_id=quiz.id,
                kind="quiz",
                title=aggregator.quiz_title(courses_by_id.get(quiz.course_id), quiz.quiz_index),
                points=points,
                max_points=DEFAULT_MAX_POINTS,
                percentage=quiz.grade.percentage if quiz.grade.percentage is not None else quiz.score,
            )
        )
        entry.total_points += points
        entry.max_points += DEFAULT_MAX_POINTS

    for entry in groups.values():
        entry.average_grade = entry.total_points / entry.max_points * 100 if entry.max_points else 0.0
    return StudentGradeSummary(courses=list(groups.values()))


def render_csv(rows: Sequence[ExportRow]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS)
    writer.writeheader()
    for row in rows:
        writer.writerow({k: ("" if v is None else v) for k, v in row.model_dump(mode="json").items()})
    return buffer.getvalue()


class GradesService:
    def __init__(
        self,
        submissions: SubmissionsService,
        assignments: AssignmentsRepository,
        courses: CoursesRepository,
        users: UserRepository,
        notifications: NotificationService,
    ) -> None:
        self.submissions = submissions
        self.assignments = assignments
        self.courses = courses
        self.users = users
        self.notifications = notifications

    @classmethod
    def from_store(cls, store: Store) -> "GradesService":
        timeout = store.timeout_seconds
        return cls(
            SubmissionsService.from_store(store),
            AssignmentsRepository(store.client, timeout=timeout),
            CoursesRepository(store.client, timeout=timeout),
            UserRepository(store.client, timeout=timeout),
            NotificationService.from_store(store),
        )

    async def _owned_assignment(self, user: CurrentUser, submission: AssignmentSubmission) -> Assignment:
        row = await self.assignments.get_by_id(submission.assignment_id) if submission.assignment_id else None
        if not row:
            raise NotFound("Assignment not found", details={"assignment_id": submission.assignment_id})
        assignment = Assignment.model_validate(row)
        if assignment.instructor_id != user.id:
            raise Forbidden("Only the assignment's instructor can grade it")
        return assignment

    async def _owned_course(self, user: CurrentUser, course_id: str) -> Course:
        row = await self.courses.get_by_id(course_id)
        if not row:
            raise NotFound("Course not found")
        course = Course.model_validate(row)
        if course.instructor_id != user.id:
            raise Forbidden("Access denied")
        return course

    # Writes

    async def grade(self, user: CurrentUser, submission_id: str, payload: GradeRequest, now: datetime) -> AnySubmission:
        submission = await self.submissions.load(submission_id)
        if isinstance(submission, QuizSubmission):
            return await self._override_quiz(user, submission, payload, now)

        assignment = await self._owned_assignment(user, submission)
        fields = lifecycle.grade(
            submission,
            assignment,
            payload.points,
            user.id,
            now,
            feedback=payload.feedback,
            rubric_scores=payload.rubric_scores,
        )
        graded = await self.submissions.apply_transition(submission, fields, conflict=NotSubmitted)
        logger.info("grade.assigned submission=%s points=%.2f grader=%s", graded.id, payload.points, user.id)
        await self.notifications.notify(
            graded.student_id,
            NotificationType.submission_graded,
            now,
            title=assignment.title,
            data={"submission_id": graded.id, "assignment_id": assignment.id},
        )
        return graded

    async def _override_quiz(
        self, user: CurrentUser, submission: QuizSubmission, payload: GradeRequest, now: datetime
    ) -> QuizSubmission:
        course = await self._owned_course(user, submission.course_id)
        if payload.points > DEFAULT_MAX_POINTS:
            raise ValidationFailed(
                "Quiz points must be between 0 and 100", details={"points": payload.points, "max_points": 100}
            )
        stamp = format_timestamp(now)
        grade = {
            **submission.grade.model_dump(mode="json"),
            "points": payload.points,
            "percentage": payload.points,
            "letter_grade": lifecycle.letter_grade(payload.points),
            "graded_by": user.id,
            "graded_at": stamp,
            "feedback": payload.feedback,
        }
        row = await self.submissions.quizzes.update(submission.id, {"grade": grade, "updated_at": stamp})
        updated = QuizSubmission.model_validate(row) if row else submission
        logger.info("grade.quiz_override submission=%s points=%.2f grader=%s", submission.id, payload.points, user.id)
        await self.notifications.notify(
            submission.student_id,
            NotificationType.grade_updated,
            now,
            title=aggregator.quiz_title(course, submission.quiz_index),
            data={"submission_id": submission.id, "course_id": course.id},
        )
        return updated

    async def return_submission(self, user: CurrentUser, submission_id: str, now: datetime) -> AssignmentSubmission:
        submission = await self.submissions.load(submission_id)
        if isinstance(submission, QuizSubmission):
            raise ValidationFailed("Quiz submissions cannot be returned")
        await self._owned_assignment(user, submission)
        fields = lifecycle.return_submission(submission, now)
        returned = await self.submissions.apply_transition(submission, fields, conflict=NotGraded)
        logger.info("grade.returned submission=%s", returned.id)
        return returned

    async def adjust_late_penalty(
        self, user: CurrentUser, submission_id: str, late_penalty: float, now: datetime
    ) -> AssignmentSubmission:
        submission = await self.submissions.load(submission_id)
        if isinstance(submission, QuizSubmission):
            raise ValidationFailed("Quiz submissions do not carry a late penalty")
        assignment = await self._owned_assignment(user, submission)
        row = await self.submissions.submissions.update(
            submission.id, {"late_penalty": late_penalty, "updated_at": format_timestamp(now)}
        )
        updated = AssignmentSubmission.model_validate(row) if row else submission
        logger.info(
            "grade.late_penalty submission=%s old=%.1f new=%.1f", submission.id, submission.late_penalty, late_penalty
        )
        if updated.grade.points is not None:
            await self.notifications.notify(
                updated.student_id,
                NotificationType.grade_updated,
                now,
                title=assignment.title,
                data={"submission_id": updated.id, "assignment_id": assignment.id},
            )
        return updated

    # Student views

    async def _student_rows(self, user: CurrentUser):
        assignment_rows = await self.submissions.submissions.list_by_student(user.id)
        quiz_rows = await self.submissions.quizzes.list_by_student(user.id)
        return (
            [AssignmentSubmission.model_validate(r) for r in assignment_rows],
            [QuizSubmission.model_validate(r) for r in quiz_rows],
        )

    async def list_for_student(self, user: CurrentUser) -> List[AnySubmission]:
        assignment_subs, quiz_subs = await self._student_rows(user)
        return [*assignment_subs, *quiz_subs]

    async def student_summary(self, user: CurrentUser) -> StudentGradeSummary:
        assignment_subs, quiz_subs = await self._student_rows(user)
        assignment_rows = await self.assignments.list_by_ids([s.assignment_id for s in assignment_subs])
        assignments_by_id = {r["id"]: Assignment.model_validate(r) for r in assignment_rows}
        course_ids = [q.course_id for q in quiz_subs]
        course_ids += [s.course_id for s in assignment_subs if s.course_id]
        course_ids += [a.course_id for a in assignments_by_id.values() if a.course_id]
        course_rows = await self.courses.list_by_ids(course_ids)
        courses_by_id = {r["id"]: Course.model_validate(r) for r in course_rows}
        return summarise_by_course(assignment_subs, quiz_subs, assignments_by_id, courses_by_id)

    # Course views

    async def _course_rows(self, course_id: str):
        assignment_rows = await self.submissions.submissions.list_by_course(course_id)
        quiz_rows = await self.submissions.quizzes.list_by_course(course_id)
        return (
            [AssignmentSubmission.model_validate(r) for r in assignment_rows],
            [QuizSubmission.model_validate(r) for r in quiz_rows],
        )

    async def list_for_course(self, user: CurrentUser, course_id: str) -> List[AnySubmission]:
        course = await self._owned_course(user, course_id)
        assignment_subs, quiz_subs = await self._course_rows(course.id)
        return [*assignment_subs, *quiz_subs]

    async def course_stats(self, user: CurrentUser, course_id: str) -> CourseGradeStats:
        course = await self._owned_course(user, course_id)
        assignment_subs, quiz_subs = await self._course_rows(course.id)
        return aggregator.course_grade_stats(course.id, assignment_subs, quiz_subs)

    async def export(self, user: CurrentUser, course_id: str, now: datetime) -> GradeExport:
        course = await self._owned_course(user, course_id)
        assignment_subs, quiz_subs = await self._course_rows(course.id)
        assignment_rows = await self.assignments.list_by_ids([s.assignment_id for s in assignment_subs])
        student_ids = [s.student_id for s in assignment_subs] + [q.student_id for q in quiz_subs]
        student_rows = await self.users.list_by_ids(student_ids)
        rows = aggregator.export_rows(
            course,
            assignment_subs,
            quiz_subs,
            {r["id"]: Assignment.model_validate(r) for r in assignment_rows},
            {r["id"]: User.model_validate(r) for r in student_rows},
        )
        logger.info("grade.export course=%s rows=%d", course.id, len(rows))
        return GradeExport(
            course_id=course.id,
            course_title=course.title,
            course_code=course.code,
            exported_at=now,
            data=rows,
        )


__all__ = ["GradesService", "summarise_by_course", "render_csv"]
