from __future__ import annotations

from datetime import datetime
from typing import List, Union

from fastapi import APIRouter, Depends, status

from app.common.deps import (
    CurrentUser,
    get_current_user,
    get_request_now,
    get_store,
    require_instructor,
    require_student,
)
from app.common.schemas import StatusResponse
from app.DB.supabase import Store
from .schemas import (
    AutoEnrollResult,
    Course,
    CourseCreate,
    CourseStats,
    CourseUpdate,
    QuizDefinition,
    StudentCourseView,
)
from .service import CoursesService

router = APIRouter(prefix="/courses", tags=["courses"])


def get_courses_service(store: Store = Depends(get_store)) -> CoursesService:
    return CoursesService.from_store(store)


@router.post("", response_model=Course, status_code=status.HTTP_201_CREATED)
async def create_course(
    payload: CourseCreate,
    current_user: CurrentUser = Depends(require_instructor),
    now: datetime = Depends(get_request_now),
    service: CoursesService = Depends(get_courses_service),
) -> Course:
    return await service.create(current_user, payload, now)


@router.get("", response_model=List[Union[Course, StudentCourseView]])
async def list_courses(
    current_user: CurrentUser = Depends(get_current_user),
    service: CoursesService = Depends(get_courses_service),
):
    """Instructors see the courses they own; students see their active enrollments."""
    return await service.list_for(current_user)


@router.get("/available", response_model=List[StudentCourseView])
async def list_available_courses(
    current_user: CurrentUser = Depends(require_student),
    now: datetime = Depends(get_request_now),
    service: CoursesService = Depends(get_courses_service),
) -> List[StudentCourseView]:
    return await service.list_available(current_user, now)


@router.post("/auto-enroll", response_model=AutoEnrollResult)
async def auto_enroll(
    current_user: CurrentUser = Depends(require_student),
    now: datetime = Depends(get_request_now),
    service: CoursesService = Depends(get_courses_service),
) -> AutoEnrollResult:
    return await service.auto_enroll(current_user, now)


@router.get("/{course_id}", response_model=Union[Course, StudentCourseView])
async def get_course(
    course_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: CoursesService = Depends(get_courses_service),
):
    return await service.get_for(current_user, course_id)


@router.put("/{course_id}", response_model=Course)
async def update_course(
    course_id: str,
    payload: CourseUpdate,
    current_user: CurrentUser = Depends(require_instructor),
    now: datetime = Depends(get_request_now),
    service: CoursesService = Depends(get_courses_service),
) -> Course:
    return await service.update(current_user, course_id, payload, now)


@router.delete("/{course_id}", response_model=StatusResponse)
async def delete_course(
    course_id: str,
    current_user: CurrentUser = Depends(require_instructor),
    now: datetime = Depends(get_request_now),
    service: CoursesService = Depends(get_courses_service),
) -> StatusResponse:
    await service.soft_delete(current_user, course_id, now)
    return StatusResponse(status="ok", message="Course deleted")


@router.post("/{course_id}/enroll", response_model=StatusResponse)
async def enroll(
    course_id: str,
    current_user: CurrentUser = Depends(require_student),
    now: datetime = Depends(get_request_now),
    service: CoursesService = Depends(get_courses_service),
) -> StatusResponse:
    course = await service.enroll(current_user, course_id, now)
    return StatusResponse(
        status="ok",
        message="Successfully enrolled in course",
        data={"course_id": course.id, "enrollment_count": course.active_enrollment_count},
    )


@router.post("/{course_id}/drop", response_model=StatusResponse)
async def drop(
    course_id: str,
    current_user: CurrentUser = Depends(require_student),
    now: datetime = Depends(get_request_now),
    service: CoursesService = Depends(get_courses_service),
) -> StatusResponse:
    await service.drop(current_user, course_id, now)
    return StatusResponse(status="ok", message="Successfully dropped course")


@router.post("/{course_id}/quizzes", response_model=Course, status_code=status.HTTP_201_CREATED)
async def add_quiz(
    course_id: str,
    quiz: QuizDefinition,
    current_user: CurrentUser = Depends(require_instructor),
    now: datetime = Depends(get_request_now),
    service: CoursesService = Depends(get_courses_service),
) -> Course:
    return await service.add_quiz(current_user, course_id, quiz, now)


@router.get("/{course_id}/stats", response_model=CourseStats)
async def course_stats(
    course_id: str,
    current_user: CurrentUser = Depends(require_instructor),
    now: datetime = Depends(get_request_now),
    service: CoursesService = Depends(get_courses_service),
) -> CourseStats:
    return await service.stats(current_user, course_id, now)
