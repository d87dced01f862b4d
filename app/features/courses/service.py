from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import List, Union

from postgrest.exceptions import APIError

from app.common.deps import CurrentUser
from app.common.errors import Forbidden, NotFound, ValidationFailed
from app.common.utils import format_timestamp
from app.DB.repository import is_unique_violation
from app.DB.supabase import Store
from app.features.assignments.repository import AssignmentsRepository
from app.features.notifications.schemas import NotificationType
from app.features.notifications.service import NotificationService
from . import enrollment
from .repository import CoursesRepository
from .schemas import (
    AutoEnrollResult,
    Course,
    CourseCreate,
    CourseStats,
    CourseUpdate,
    EnrollmentEntry,
    QuizDefinition,
    StudentCourseView,
)

logger = logging.getLogger("courses")

CourseView = Union[Course, StudentCourseView]


def _roster_json(roster: List[EnrollmentEntry]) -> list:
    return [entry.model_dump(mode="json") for entry in roster]


class CoursesService:
    def __init__(
        self,
        courses: CoursesRepository,
        assignments: AssignmentsRepository,
        notifications: NotificationService,
    ) -> None:
        self.courses = courses
        self.assignments = assignments
        self.notifications = notifications

    @classmethod
    def from_store(cls, store: Store) -> "CoursesService":
        timeout = store.timeout_seconds
        return cls(
            CoursesRepository(store.client, timeout=timeout),
            AssignmentsRepository(store.client, timeout=timeout),
            NotificationService.from_store(store),
        )

    async def _load(self, course_id: str) -> Course:
        row = await self.courses.get_by_id(course_id)
        if not row or not row.get("is_active", True):
            raise NotFound("Course not found")
        return Course.model_validate(row)

    async def _load_owned(self, user: CurrentUser, course_id: str) -> Course:
        course = await self._load(course_id)
        if course.instructor_id != user.id:
            raise Forbidden("Only the course instructor can do this")
        return course

    async def create(self, user: CurrentUser, payload: CourseCreate, now: datetime) -> Course:
        if await self.courses.get_active_by_code(payload.code):
            raise ValidationFailed("Course code already exists", details={"code": payload.code})
        stamp = format_timestamp(now)
        record = {
            "id": str(uuid.uuid4()),
            **payload.model_dump(mode="json"),
            "instructor_id": user.id,
            "enrolled_students": [],
            "is_active": True,
            "created_at": stamp,
            "updated_at": stamp,
        }
        try:
            row = await self.courses.insert(record)
        except APIError as exc:
            if is_unique_violation(exc, "uq_courses_code_active"):
                raise ValidationFailed("Course code already exists", details={"code": payload.code}) from exc
            raise
        logger.info("course.created id=%s code=%s instructor=%s", row["id"], row["code"], user.id)
        return Course.model_validate(row)

    async def list_for(self, user: CurrentUser) -> List[CourseView]:
        if user.is_instructor:
            rows = await self.courses.list_by_instructor(user.id)
            return [Course.model_validate(r) for r in rows]
        rows = await self.courses.list_active()
        courses = [Course.model_validate(r) for r in rows]
        return [StudentCourseView.from_course(c, user.id) for c in courses if c.is_enrolled(user.id)]

    async def list_available(self, user: CurrentUser, now: datetime) -> List[StudentCourseView]:
        rows = await self.courses.list_active()
        available = []
        for row in rows:
            course = Course.model_validate(row)
            if course.is_enrolled(user.id) or not enrollment.accepts_enrollment(course, now):
                continue
            if course.batch and course.batch != user.batch:
                continue
            available.append(StudentCourseView.from_course(course, user.id))
        return available

    async def get_for(self, user: CurrentUser, course_id: str) -> CourseView:
        course = await self._load(course_id)
        if user.is_instructor:
            if course.instructor_id != user.id:
                raise Forbidden("Access denied")
            return course
        if not course.is_enrolled(user.id):
            raise Forbidden("You are not enrolled in this course")
        return StudentCourseView.from_course(course, user.id)

    async def update(self, user: CurrentUser, course_id: str, payload: CourseUpdate, now: datetime) -> Course:
        course = await self._load_owned(user, course_id)
        fields = payload.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        if "settings" in fields:
            merged = course.settings.model_dump()
            merged.update(payload.settings.model_dump(exclude_unset=True))
            fields["settings"] = merged
        start = payload.start_date or course.start_date
        end = payload.end_date or course.end_date
        if start and end and end <= start:
            raise ValidationFailed("end_date must be after start_date")
        fields["updated_at"] = format_timestamp(now)
        row = await self.courses.update(course_id, fields)
        return Course.model_validate(row) if row else course

    async def soft_delete(self, user: CurrentUser, course_id: str, now: datetime) -> None:
        await self._load_owned(user, course_id)
        await self.courses.update(course_id, {"is_active": False, "updated_at": format_timestamp(now)})
        logger.info("course.deleted id=%s", course_id)

    async def enroll(self, user: CurrentUser, course_id: str, now: datetime) -> Course:
        course = await self._load(course_id)
        if not enrollment.accepts_enrollment(course, now):
            raise ValidationFailed(
                "Course enrollment period has ended",
                details={"end_date": format_timestamp(course.end_date) if course.end_date else None},
            )
        if not enrollment.batch_allows(course.batch, user.batch):
            raise Forbidden(f"This course is only available for {course.batch} batch students")
        roster, reactivated = enrollment.enroll(course, user.id, now)
        row = await self.courses.update(
            course_id, {"enrolled_students": _roster_json(roster), "updated_at": format_timestamp(now)}
        )
        logger.info("course.enrolled course=%s student=%s reactivated=%s", course_id, user.id, reactivated)
        await self.notifications.notify(
            user.id, NotificationType.course_enrollment, now, title=course.title, data={"course_id": course_id}
        )
        return Course.model_validate(row) if row else course.model_copy(update={"enrolled_students": roster})

    async def drop(self, user: CurrentUser, course_id: str, now: datetime) -> None:
        course = await self._load(course_id)
        roster = enrollment.drop(course, user.id)
        await self.courses.update(
            course_id, {"enrolled_students": _roster_json(roster), "updated_at": format_timestamp(now)}
        )
        logger.info("course.dropped course=%s student=%s", course_id, user.id)
        await self.notifications.notify(
            user.id, NotificationType.course_dropped, now, title=course.title, data={"course_id": course_id}
        )

    async def auto_enroll(self, user: CurrentUser, now: datetime) -> AutoEnrollResult:
        if not user.batch:
            raise ValidationFailed("Student does not have a batch assigned")
        rows = await self.courses.list_active(batch=user.batch)
        newly, already, ids = 0, 0, []
        for row in rows:
            course = Course.model_validate(row)
            if course.is_enrolled(user.id):
                already += 1
                continue
            if not enrollment.accepts_enrollment(course, now):
                continue
            try:
                roster, _ = enrollment.enroll(course, user.id, now)
            except ValidationFailed as exc:
                logger.info("course.auto_enroll_skipped course=%s reason=%s", course.id, exc.message)
                continue
            await self.courses.update(
                course.id, {"enrolled_students": _roster_json(roster), "updated_at": format_timestamp(now)}
            )
            newly += 1
            ids.append(course.id)
        return AutoEnrollResult(newly_enrolled=newly, already_enrolled=already, total_found=len(rows), course_ids=ids)

    async def add_quiz(self, user: CurrentUser, course_id: str, quiz: QuizDefinition, now: datetime) -> Course:
        course = await self._load_owned(user, course_id)
        quizzes = [q.model_dump(mode="json") for q in course.quizzes] + [quiz.model_dump(mode="json")]
        row = await self.courses.update(course_id, {"quizzes": quizzes, "updated_at": format_timestamp(now)})
        logger.info("course.quiz_added course=%s quiz_index=%d", course_id, len(quizzes) - 1)
        return Course.model_validate(row) if row else course

    async def stats(self, user: CurrentUser, course_id: str, now: datetime) -> CourseStats:
        course = await self._load_owned(user, course_id)
        assignments = await self.assignments.list_by_course(course_id)
        duration = None
        if course.start_date and course.end_date:
            duration = (course.end_date - course.start_date).days
        running = course.is_active and (course.start_date is None or course.start_date <= now) and (
            course.end_date is None or now <= course.end_date
        )
        return CourseStats(
            course_id=course.id,
            enrollment_count=course.active_enrollment_count,
            assignment_count=len(assignments),
            quiz_count=len(course.quizzes),
            is_active=running,
            is_upcoming=bool(course.start_date and now < course.start_date),
            duration_days=duration,
        )


__all__ = ["CoursesService"]
