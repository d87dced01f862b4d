from __future__ import annotations

from datetime import datetime
from typing import List

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
    AssignmentCreate,
    AssignmentOut,
    AssignmentStats,
    AssignmentUpdate,
    AutoAssignResult,
    RosterChangeResult,
)
from .service import AssignmentsService

router = APIRouter(prefix="/assignments", tags=["assignments"])


def get_assignments_service(store: Store = Depends(get_store)) -> AssignmentsService:
    return AssignmentsService.from_store(store)


@router.get("", response_model=List[AssignmentOut])
async def list_assignments(
    current_user: CurrentUser = Depends(get_current_user),
    now: datetime = Depends(get_request_now),
    service: AssignmentsService = Depends(get_assignments_service),
) -> List[AssignmentOut]:
    """Instructors get the assignments they own; students get what their batch or roster makes visible."""
    return await service.list_visible(current_user, now)


@router.post("", response_model=AssignmentOut, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    payload: AssignmentCreate,
    current_user: CurrentUser = Depends(require_instructor),
    now: datetime = Depends(get_request_now),
    service: AssignmentsService = Depends(get_assignments_service),
) -> AssignmentOut:
    return await service.create(current_user, payload, now)


@router.post("/auto-assign", response_model=AutoAssignResult)
async def auto_assign(
    current_user: CurrentUser = Depends(require_student),
    now: datetime = Depends(get_request_now),
    service: AssignmentsService = Depends(get_assignments_service),
) -> AutoAssignResult:
    return await service.auto_assign(current_user, now)


@router.get("/batch/{batch}", response_model=List[AssignmentOut])
async def list_batch_assignments(
    batch: str,
    current_user: CurrentUser = Depends(get_current_user),
    now: datetime = Depends(get_request_now),
    service: AssignmentsService = Depends(get_assignments_service),
) -> List[AssignmentOut]:
    return await service.list_by_batch(current_user, batch, now)


@router.get("/{assignment_id}", response_model=AssignmentOut)
async def get_assignment(
    assignment_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    now: datetime = Depends(get_request_now),
    service: AssignmentsService = Depends(get_assignments_service),
) -> AssignmentOut:
    return await service.get(current_user, assignment_id, now)


@router.put("/{assignment_id}", response_model=AssignmentOut)
async def update_assignment(
    assignment_id: str,
    payload: AssignmentUpdate,
    current_user: CurrentUser = Depends(require_instructor),
    now: datetime = Depends(get_request_now),
    service: AssignmentsService = Depends(get_assignments_service),
) -> AssignmentOut:
    return await service.update(current_user, assignment_id, payload, now)


@router.delete("/{assignment_id}", response_model=StatusResponse)
async def delete_assignment(
    assignment_id: str,
    current_user: CurrentUser = Depends(require_instructor),
    now: datetime = Depends(get_request_now),
    service: AssignmentsService = Depends(get_assignments_service),
) -> StatusResponse:
    await service.soft_delete(current_user, assignment_id, now)
    return StatusResponse(status="ok", message="Assignment deleted")


@router.post("/{assignment_id}/publish", response_model=AssignmentOut)
async def publish_assignment(
    assignment_id: str,
    current_user: CurrentUser = Depends(require_instructor),
    now: datetime = Depends(get_request_now),
    service: AssignmentsService = Depends(get_assignments_service),
) -> AssignmentOut:
    return await service.set_published(current_user, assignment_id, True, now)


@router.post("/{assignment_id}/unpublish", response_model=AssignmentOut)
async def unpublish_assignment(
    assignment_id: str,
    current_user: CurrentUser = Depends(require_instructor),
    now: datetime = Depends(get_request_now),
    service: AssignmentsService = Depends(get_assignments_service),
) -> AssignmentOut:
    return await service.set_published(current_user, assignment_id, False, now)


@router.post("/{assignment_id}/assign-student/{student_id}", response_model=RosterChangeResult)
async def assign_student(
    assignment_id: str,
    student_id: str,
    current_user: CurrentUser = Depends(require_instructor),
    now: datetime = Depends(get_request_now),
    service: AssignmentsService = Depends(get_assignments_service),
) -> RosterChangeResult:
    return await service.assign_student(current_user, assignment_id, student_id, now)


@router.post("/{assignment_id}/unassign-student/{student_id}", response_model=RosterChangeResult)
async def unassign_student(
    assignment_id: str,
    student_id: str,
    current_user: CurrentUser = Depends(require_instructor),
    now: datetime = Depends(get_request_now),
    service: AssignmentsService = Depends(get_assignments_service),
) -> RosterChangeResult:
    return await service.unassign_student(current_user, assignment_id, student_id, now)


@router.get("/{assignment_id}/stats", response_model=AssignmentStats)
async def assignment_stats(
    assignment_id: str,
    current_user: CurrentUser = Depends(require_instructor),
    service: AssignmentsService = Depends(get_assignments_service),
) -> AssignmentStats:
    return await service.stats(current_user, assignment_id)
