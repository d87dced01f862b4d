# app/features/submissions/endpoints.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.common.deps import (
    CurrentUser,
    get_current_user,
    get_request_now,
    get_store,
    require_instructor,
    require_student,
)
from app.core.config import get_settings
from app.DB.supabase import Store
from .schemas import (
    AssignmentSubmission,
    AttachmentUpload,
    QuizSubmissionRequest,
    QuizSubmissionResult,
    Submission,
    SubmissionDetail,
    SubmissionSave,
)
from .service import SubmissionsService

router = APIRouter(prefix="/submissions", tags=["submissions"])


def get_submissions_service(store: Store = Depends(get_store)) -> SubmissionsService:
    return SubmissionsService.from_store(store, max_attachment_mb=get_settings().max_attachment_mb)


@router.post(
    "",
    response_model=AssignmentSubmission,
    status_code=status.HTTP_201_CREATED,
    summary="Create or update the caller's draft for an assignment",
)
async def save_draft(
    payload: SubmissionSave,
    current_user: CurrentUser = Depends(require_student),
    now: datetime = Depends(get_request_now),
    service: SubmissionsService = Depends(get_submissions_service),
) -> AssignmentSubmission:
    return await service.save_draft(current_user, payload, now)


@router.post(
    "/quiz",
    response_model=QuizSubmissionResult,
    summary="Submit answers for a course quiz",
    description="Grades the answers immediately. Resubmitting the same quiz overwrites the previous attempt.",
)
async def submit_quiz(
    payload: QuizSubmissionRequest,
    current_user: CurrentUser = Depends(require_student),
    now: datetime = Depends(get_request_now),
    service: SubmissionsService = Depends(get_submissions_service),
) -> QuizSubmissionResult:
    return await service.submit_quiz(current_user, payload, now)


@router.get("", response_model=List[Submission])
async def list_submissions(
    assignment_id: Optional[str] = Query(default=None),
    current_user: CurrentUser = Depends(get_current_user),
    service: SubmissionsService = Depends(get_submissions_service),
):
    return await service.list_for(current_user, assignment_id)


@router.get(
    "/instructor",
    response_model=List[Submission],
    summary="All submissions on the caller's assignments and course quizzes",
)
async def list_instructor_submissions(
    batch: Optional[str] = Query(default=None, description="Exact student batch; `all` or empty for every batch"),
    current_user: CurrentUser = Depends(require_instructor),
    service: SubmissionsService = Depends(get_submissions_service),
):
    return await service.list_for_instructor(current_user, None if batch == "all" else batch)


@router.get("/{submission_id}", response_model=SubmissionDetail)
async def get_submission(
    submission_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: SubmissionsService = Depends(get_submissions_service),
) -> SubmissionDetail:
    return await service.get_detail(current_user, submission_id)


@router.post("/{submission_id}/submit", response_model=AssignmentSubmission, summary="Submit a draft")
async def submit_submission(
    submission_id: str,
    current_user: CurrentUser = Depends(require_student),
    now: datetime = Depends(get_request_now),
    service: SubmissionsService = Depends(get_submissions_service),
) -> AssignmentSubmission:
    return await service.submit(current_user, submission_id, now)


@router.post("/{submission_id}/attachments", response_model=AssignmentSubmission)
async def upload_attachments(
    submission_id: str,
    payload: AttachmentUpload,
    current_user: CurrentUser = Depends(require_student),
    now: datetime = Depends(get_request_now),
    service: SubmissionsService = Depends(get_submissions_service),
) -> AssignmentSubmission:
    """Attach file metadata (already uploaded to the file service) to a draft."""
    return await service.add_attachments(current_user, submission_id, payload.attachments, now)
