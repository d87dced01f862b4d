"""Shared FastAPI dependencies for the store, clock, authentication and authorization."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from fastapi import Depends, HTTPException, Request, status
from pydantic import BaseModel

from app.auth.deps import Claims, get_current_claims
from app.common.clock import Clock, system_clock
from app.common.errors import StoreUnavailable
from app.DB.supabase import Store
from app.features.users.repository import UserRepository


logger = logging.getLogger("auth.deps")


class CurrentUser(BaseModel):
    """Minimal user identity shared across endpoints."""
    id: str
    auth_subject: str
    email: str
    role: str
    batch: str = ""
    is_active: bool = True

    @property
    def is_instructor(self) -> bool:
        return self.role == "instructor"

    @property
    def is_student(self) -> bool:
        return self.role == "student"


def get_store(request: Request) -> Store:
    store = getattr(request.app.state, "store", None)
    if store is None or not store.is_open:
        raise StoreUnavailable()
    return store


def get_clock(request: Request) -> Clock:
    return getattr(request.app.state, "clock", None) or system_clock


def get_request_now(clock: Clock = Depends(get_clock)) -> datetime:
    """One instant per request; FastAPI caches the result for the request's dependency graph."""
    return clock()


async def get_current_user(
    request: Request,
    claims: Claims = Depends(get_current_claims),
    store: Store = Depends(get_store),
) -> CurrentUser:
    """Resolve the registered user behind the verified token."""
    subject = claims.get("sub")
    row = await UserRepository(store.client, timeout=store.timeout_seconds).get_by_auth_subject(subject)
    if not row:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not registered")
    if not row.get("is_active", True):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")

    current = CurrentUser(
        id=row["id"],
        auth_subject=subject,
        email=row.get("email") or claims.get("email") or "",
        role=row.get("role") or "student",
        batch=row.get("batch") or "",
        is_active=True,
    )
    request_id = getattr(request.state, "request_id", None)
    logger.info(
        "auth_resolved user_id=%s role=%s request_id=%s path=%s",
        current.id,
        current.role,
        request_id,
        request.url.path,
    )
    return current


def require_role(*roles: str) -> Callable[..., CurrentUser]:
    allowed = set(roles)

    async def _dep(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user

    return _dep


require_instructor = require_role("instructor")
require_student = require_role("student")


__all__ = [
    "CurrentUser",
    "get_store",
    "get_clock",
    "get_request_now",
    "get_current_user",
    "require_role",
    "require_instructor",
    "require_student",
]
