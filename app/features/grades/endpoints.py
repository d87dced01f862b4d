from __future__ import annotations

from datetime import datetime
from typing import List, Union

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from app.common.deps import CurrentUser, get_request_now, get_store, require_instructor, require_student
from app.DB.supabase import Store
from app.features.analytics.schemas import CourseGradeStats, GradeExport
from app.features.submissions.schemas import (
    AssignmentSubmission,
    GradeRequest,
    LatePenaltyUpdate,
    Submission,
)
from .schemas import ExportFormat, StudentGradeSummary
from .service import GradesService, render_csv

router = APIRouter(prefix="/grades", tags=["grades"])


def get_grades_service(store: Store = Depends(get_store)) -> GradesService:
    return GradesService.from_store(store)


@router.get("/student", response_model=List[Submission])
async def my_grades(
    current_user: CurrentUser = Depends(require_student),
    service: GradesService = Depends(get_grades_service),
):
    return await service.list_for_student(current_user)


@router.get("/student/summary", response_model=StudentGradeSummary)
async def my_grade_summary(
    current_user: CurrentUser = Depends(require_student),
    service: GradesService = Depends(get_grades_service),
) -> StudentGradeSummary:
    return await service.student_summary(current_user)


@router.get("/course/{course_id}", response_model=List[Submission])
async def course_grades(
    course_id: str,
    current_user: CurrentUser = Depends(require_instructor),
    service: GradesService = Depends(get_grades_service),
):
    return await service.list_for_course(current_user, course_id)


@router.get("/course/{course_id}/stats", response_model=CourseGradeStats)
async def course_grade_stats(
    course_id: str,
    current_user: CurrentUser = Depends(require_instructor),
    service: GradesService = Depends(get_grades_service),
) -> CourseGradeStats:
    return await service.course_stats(current_user, course_id)


@router.get(
    "/course/{course_id}/export",
    response_model=GradeExport,
    summary="Export every grade in a course",
    description="`format=csv` returns a CSV attachment with one row per submission.",
)
async def export_course_grades(
    course_id: str,
    format: ExportFormat = Query(default="json"),
    current_user: CurrentUser = Depends(require_instructor),
    now: datetime = Depends(get_request_now),
    service: GradesService = Depends(get_grades_service),
) -> Union[GradeExport, PlainTextResponse]:
    export = await service.export(current_user, course_id, now)
    if format == "csv":
        filename = f"{export.course_code or export.course_id}-grades.csv"
        return PlainTextResponse(
            render_csv(export.data),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    return export


@router.put("/{submission_id}", response_model=Submission)
async def grade_submission(
    submission_id: str,
    payload: GradeRequest,
    current_user: CurrentUser = Depends(require_instructor),
    now: datetime = Depends(get_request_now),
    service: GradesService = Depends(get_grades_service),
):
    return await service.grade(current_user, submission_id, payload, now)


@router.post("/{submission_id}/return", response_model=AssignmentSubmission)
async def return_submission(
    submission_id: str,
    current_user: CurrentUser = Depends(require_instructor),
    now: datetime = Depends(get_request_now),
    service: GradesService = Depends(get_grades_service),
) -> AssignmentSubmission:
    return await service.return_submission(current_user, submission_id, now)


@router.put("/{submission_id}/late-penalty", response_model=AssignmentSubmission)
async def adjust_late_penalty(
    submission_id: str,
    payload: LatePenaltyUpdate,
    current_user: CurrentUser = Depends(require_instructor),
    now: datetime = Depends(get_request_now),
    service: GradesService = Depends(get_grades_service),
) -> AssignmentSubmission:
    return await service.adjust_late_penalty(current_user, submission_id, payload.late_penalty, now)
