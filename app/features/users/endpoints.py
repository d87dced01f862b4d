"""User API endpoints (Supabase-backed)."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.auth.deps import Claims, get_current_claims
from app.common.deps import (
    CurrentUser,
    get_current_user,
    get_request_now,
    get_store,
    require_instructor,
)
from app.DB.supabase import Store
from .schemas import BatchUpdate, User, UserRegistration, UserUpdate
from .service import UsersService

auth_router = APIRouter(prefix="/auth", tags=["auth"])
router = APIRouter(prefix="/users", tags=["users"])


def get_users_service(store: Store = Depends(get_store)) -> UsersService:
    return UsersService.from_store(store)


@auth_router.post("/register", response_model=User, status_code=status.HTTP_201_CREATED)
async def register(
    payload: UserRegistration,
    claims: Claims = Depends(get_current_claims),
    now: datetime = Depends(get_request_now),
    service: UsersService = Depends(get_users_service),
) -> User:
    """Create the local user record for a verified identity."""
    return await service.register(dict(claims), payload, now)


@auth_router.get("/me", response_model=User)
async def auth_me(
    current_user: CurrentUser = Depends(get_current_user),
    service: UsersService = Depends(get_users_service),
) -> User:
    return await service.get(current_user.id)


@router.get("/me", response_model=User)
async def read_current_user(
    current_user: CurrentUser = Depends(get_current_user),
    service: UsersService = Depends(get_users_service),
) -> User:
    return await service.get(current_user.id)


@router.put("/me", response_model=User)
async def update_current_user(
    data: UserUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    now: datetime = Depends(get_request_now),
    service: UsersService = Depends(get_users_service),
) -> User:
    return await service.update_me(current_user.id, data, now)


@router.delete("/me", response_model=User)
async def deactivate_current_user(
    current_user: CurrentUser = Depends(get_current_user),
    now: datetime = Depends(get_request_now),
    service: UsersService = Depends(get_users_service),
) -> User:
    return await service.deactivate(current_user.id, now)


@router.get("/students", response_model=List[User])
async def list_students(
    batch: Optional[str] = Query(default=None, description="Exact batch label"),
    current_user: CurrentUser = Depends(require_instructor),
    service: UsersService = Depends(get_users_service),
) -> List[User]:
    return await service.list_students(batch)


@router.put("/{user_id}/batch", response_model=User)
async def set_student_batch(
    user_id: str,
    body: BatchUpdate,
    current_user: CurrentUser = Depends(require_instructor),
    now: datetime = Depends(get_request_now),
    service: UsersService = Depends(get_users_service),
) -> User:
    return await service.set_batch(user_id, body.batch, now)
