from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, Union

from postgrest.exceptions import APIError

from app.common.deps import CurrentUser
from app.common.errors import (
    AlreadySubmitted,
    AssignmentClosed,
    CourseTrackerError,
    Forbidden,
    NotFound,
    ValidationFailed,
)
from app.common.utils import format_timestamp
from app.DB.repository import is_unique_violation
from app.DB.supabase import Store
from app.features.assignments import distribution
from app.features.assignments.repository import AssignmentsRepository
from app.features.assignments.schemas import Assignment
from app.features.courses.enrollment import batch_allows
from app.features.courses.repository import CoursesRepository
from app.features.courses.schemas import Course
from app.features.users.repository import UserRepository
from . import lifecycle
from .quiz_grader import grade_quiz
from .repository import (
    ASSIGNMENT_UNIQUE_CONSTRAINT,
    QUIZ_UNIQUE_CONSTRAINT,
    AssignmentSubmissionsRepository,
    QuizSubmissionsRepository,
)
from .schemas import (
    AssignmentSubmission,
    Attachment,
    QuizSubmission,
    QuizSubmissionRequest,
    QuizSubmissionResult,
    SubmissionDetail,
    SubmissionSave,
)

logger = logging.getLogger("submissions")

AnySubmission = Union[AssignmentSubmission, QuizSubmission]


class SubmissionsService:
    def __init__(
        self,
        assignments: AssignmentsRepository,
        submissions: AssignmentSubmissionsRepository,
        quizzes: QuizSubmissionsRepository,
        courses: CoursesRepository,
        users: UserRepository,
        *,
        max_attachment_mb: Optional[float] = None,
    ) -> None:
        self.assignments = assignments
        self.submissions = submissions
        self.quizzes = quizzes
        self.courses = courses
        self.users = users
        self.max_attachment_mb = max_attachment_mb

    @classmethod
    def from_store(cls, store: Store, *, max_attachment_mb: Optional[float] = None) -> "SubmissionsService":
        timeout = store.timeout_seconds
        return cls(
            AssignmentsRepository(store.client, timeout=timeout),
            AssignmentSubmissionsRepository(store.client, timeout=timeout),
            QuizSubmissionsRepository(store.client, timeout=timeout),
            CoursesRepository(store.client, timeout=timeout),
            UserRepository(store.client, timeout=timeout),
            max_attachment_mb=max_attachment_mb,
        )

    # Loading

    async def _assignment(self, assignment_id: Optional[str]) -> Optional[Assignment]:
        if not assignment_id:
            return None
        row = await self.assignments.get_by_id(assignment_id)
        return Assignment.model_validate(row) if row else None

    async def _course(self, course_id: str) -> Optional[Course]:
        row = await self.courses.get_by_id(course_id)
        return Course.model_validate(row) if row else None

    async def load(self, submission_id: str) -> AnySubmission:
        """Find a submission of either kind by id."""
        row = await self.submissions.get_by_id(submission_id)
        if row:
            return AssignmentSubmission.model_validate(row)
        row = await self.quizzes.get_by_id(submission_id)
        if row:
            return QuizSubmission.model_validate(row)
        raise NotFound("Submission not found")

    async def _own_draftable(self, user: CurrentUser, submission_id: str) -> AssignmentSubmission:
        row = await self.submissions.get_by_id(submission_id)
        if not row:
            raise NotFound("Submission not found")
        submission = AssignmentSubmission.model_validate(row)
        if submission.student_id != user.id:
            raise Forbidden("You can only modify your own submissions")
        return submission

    async def _require_assignment(self, submission: AssignmentSubmission) -> Assignment:
        assignment = await self._assignment(submission.assignment_id)
        if assignment is None:
            raise NotFound("Assignment not found", details={"assignment_id": submission.assignment_id})
        return assignment

    async def apply_transition(
        self,
        submission: AssignmentSubmission,
        fields: Dict[str, Any],
        conflict: Type[CourseTrackerError] = AlreadySubmitted,
    ) -> AssignmentSubmission:
        """Persist a transition computed from ``submission.status``; a concurrent change wins."""
        row = await self.submissions.update_if_status(submission.id, submission.status, fields)
        if row is None:
            current = await self.submissions.get_by_id(submission.id)
            status = (current or {}).get("status")
            logger.info(
                "submission.transition_conflict id=%s expected=%s actual=%s",
                submission.id,
                submission.status,
                status,
            )
            raise conflict(details={"status": status, "submission_id": submission.id})
        return AssignmentSubmission.model_validate(row)

    # Drafts and submission

    async def save_draft(self, user: CurrentUser, payload: SubmissionSave, now: datetime) -> AssignmentSubmission:
        assignment = await self._assignment(payload.assignment_id)
        if assignment is None or not assignment.is_active:
            raise NotFound("Assignment not found")
        if not distribution.is_visible_to(assignment, user):
            raise Forbidden("You do not have access to this assignment")

        # A finalised submission reports AlreadySubmitted whatever the window says.
        existing = await self.submissions.get_for(assignment.id, user.id)
        submission = AssignmentSubmission.model_validate(existing) if existing else None
        fields = lifecycle.save_draft(submission, payload.content, payload.attachments, now) if submission else None

        if not distribution.accepts_submission(assignment, now):
            raise AssignmentClosed(details=distribution.window_details(assignment, now))
        lifecycle.check_attachments(assignment, payload.attachments, self.max_attachment_mb)

        if submission is not None:
            saved = await self.apply_transition(submission, fields)
            logger.info("submission.draft_saved id=%s attempt=%d", saved.id, saved.attempt_number)
            return saved

        stamp = format_timestamp(now)
        record = {
            "id": str(uuid.uuid4()),
            "assignment_id": assignment.id,
            "student_id": user.id,
            "course_id": assignment.course_id,
            "content": payload.content,
            "attachments": [a.model_dump(mode="json") for a in payload.attachments],
            "attempt_number": 1,
            "is_late": False,
            "late_penalty": 0,
            "submitted_at": None,
            "status": "draft",
            "grade": {},
            "created_at": stamp,
            "updated_at": stamp,
        }
        try:
            row = await self.submissions.insert(record)
        except APIError as exc:
            if is_unique_violation(exc, ASSIGNMENT_UNIQUE_CONSTRAINT):
                raise AlreadySubmitted(
                    details={"assignment_id": assignment.id, "student_id": user.id}
                ) from exc
            raise
        logger.info("submission.draft_created id=%s assignment=%s student=%s", row["id"], assignment.id, user.id)
        return AssignmentSubmission.model_validate(row)

    async def submit(self, user: CurrentUser, submission_id: str, now: datetime) -> AssignmentSubmission:
        submission = await self._own_draftable(user, submission_id)
        assignment = await self._require_assignment(submission)
        fields = lifecycle.submit(submission, assignment, now)
        submitted = await self.apply_transition(submission, fields)
        logger.info(
            "submission.submitted id=%s late=%s penalty=%.1f",
            submitted.id,
            submitted.is_late,
            submitted.late_penalty,
        )
        return submitted

    async def add_attachments(
        self, user: CurrentUser, submission_id: str, attachments: List[Attachment], now: datetime
    ) -> AssignmentSubmission:
        submission = await self._own_draftable(user, submission_id)
        assignment = await self._require_assignment(submission)
        lifecycle.check_attachments(assignment, attachments, self.max_attachment_mb)
        fields = lifecycle.add_attachments(submission, attachments, now)
        return await self.apply_transition(submission, fields)

    # Reads

    async def get_detail(self, user: CurrentUser, submission_id: str) -> SubmissionDetail:
        submission = await self.load(submission_id)
        if isinstance(submission, QuizSubmission):
            course = await self._course(submission.course_id)
            if not self._may_read(user, submission.student_id, course.instructor_id if course else None):
                raise Forbidden("Access denied")
            quiz = course.quizzes[submission.quiz_index] if course and submission.quiz_index < len(course.quizzes) else None
            return SubmissionDetail(
                submission=submission,
                quiz_title=quiz.title if quiz else f"Quiz {submission.quiz_index + 1}",
                quiz_details=grade_quiz(quiz, submission.answers).details if quiz else None,
            )
        assignment = await self._assignment(submission.assignment_id)
        if not self._may_read(user, submission.student_id, assignment.instructor_id if assignment else None):
            raise Forbidden("Access denied")
        return SubmissionDetail(
            submission=submission,
            assignment_title=assignment.title if assignment else None,
        )

    @staticmethod
    def _may_read(user: CurrentUser, student_id: str, instructor_id: Optional[str]) -> bool:
        if user.is_student:
            return user.id == student_id
        return instructor_id is not None and user.id == instructor_id

    async def list_for(self, user: CurrentUser, assignment_id: Optional[str] = None) -> List[AnySubmission]:
        if user.is_student:
            rows = await self.submissions.list_by_student(user.id)
            items: List[AnySubmission] = [AssignmentSubmission.model_validate(r) for r in rows]
            if assignment_id:
                return [s for s in items if s.assignment_id == assignment_id]
            quiz_rows = await self.quizzes.list_by_student(user.id)
            return items + [QuizSubmission.model_validate(r) for r in quiz_rows]

        if not assignment_id:
            raise ValidationFailed("assignment_id is required")
        assignment = await self._assignment(assignment_id)
        if assignment is None:
            raise NotFound("Assignment not found")
        if assignment.instructor_id != user.id:
            raise Forbidden("Access denied")
        rows = await self.submissions.list_by_assignment(assignment_id)
        return [AssignmentSubmission.model_validate(r) for r in rows]

    async def list_for_instructor(self, user: CurrentUser, batch: Optional[str] = None) -> List[AnySubmission]:
        """Every submission on the instructor's assignments and course quizzes, newest first."""
        assignment_rows = await self.assignments.list_by_instructor(user.id)
        course_rows = await self.courses.list_by_instructor(user.id)
        items: List[AnySubmission] = [
            AssignmentSubmission.model_validate(r)
            for r in await self.submissions.list_by_assignments(a["id"] for a in assignment_rows)
        ]
        items += [
            QuizSubmission.model_validate(r)
            for r in await self.quizzes.list_by_courses(c["id"] for c in course_rows)
        ]
        if batch:
            student_ids = {r["id"] for r in await self.users.list_students(batch)}
            items = [s for s in items if s.student_id in student_ids]
        items.sort(key=lambda s: (s.submitted_at is not None, s.submitted_at), reverse=True)
        return items

    # Course quizzes

    async def submit_quiz(self, user: CurrentUser, payload: QuizSubmissionRequest, now: datetime) -> QuizSubmissionResult:
        course = await self._course(payload.course_id)
        if course is None or not course.is_active:
            raise NotFound("Course not found")
        if not course.is_enrolled(user.id):
            raise Forbidden("You are not enrolled in this course")
        if not batch_allows(course.batch, user.batch):
            raise Forbidden(f"This course is only available for {course.batch} batch students")
        if payload.quiz_index >= len(course.quizzes):
            raise NotFound("Quiz not found", details={"quiz_index": payload.quiz_index})

        result = grade_quiz(course.quizzes[payload.quiz_index], payload.answers)
        stamp = format_timestamp(now)
        fields = {
            "answers": result.answers,
            "score": result.score,
            "max_score": 100,
            "correct_answers": result.correct_count,
            "total_questions": result.total_questions,
            "submitted_at": stamp,
            "status": "graded",
            "grade": {"points": result.score, "percentage": result.score, "graded_at": stamp},
            "updated_at": stamp,
        }
        row = await self._upsert_quiz(user.id, course.id, payload.quiz_index, fields, stamp)
        submission = QuizSubmission.model_validate(row)
        logger.info(
            "quiz.submitted id=%s course=%s quiz_index=%d score=%.2f",
            submission.id,
            course.id,
            payload.quiz_index,
            result.score,
        )
        return QuizSubmissionResult(
            message="Quiz submitted successfully",
            submission=submission,
            score=result.score,
            correct_answers=result.correct_count,
            total_questions=result.total_questions,
            details=result.details,
        )

    async def _upsert_quiz(
        self, student_id: str, course_id: str, quiz_index: int, fields: Dict[str, Any], stamp: str
    ) -> Dict[str, Any]:
        existing = await self.quizzes.get_for(student_id, course_id, quiz_index)
        if existing:
            return await self.quizzes.update(existing["id"], fields) or {**existing, **fields}
        record = {
            "id": str(uuid.uuid4()),
            "student_id": student_id,
            "course_id": course_id,
            "quiz_index": quiz_index,
            "created_at": stamp,
            **fields,
        }
        try:
            return await self.quizzes.insert(record)
        except APIError as exc:
            if not is_unique_violation(exc, QUIZ_UNIQUE_CONSTRAINT):
                raise
        # Another request inserted the same quiz attempt first; overwrite it.
        existing = await self.quizzes.get_for(student_id, course_id, quiz_index)
        if not existing:
            raise AlreadySubmitted(details={"course_id": course_id, "quiz_index": quiz_index})
        return await self.quizzes.update(existing["id"], fields) or {**existing, **fields}


__all__ = ["SubmissionsService", "AnySubmission"]
