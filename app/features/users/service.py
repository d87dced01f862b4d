from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError

from app.common.errors import NotFound, ValidationFailed
from app.common.utils import format_timestamp
from app.DB.repository import is_unique_violation
from app.DB.supabase import Store
from .repository import UserRepository
from .schemas import User, UserRegistration, UserUpdate

logger = logging.getLogger("users")


class UsersService:
    def __init__(self, users: UserRepository) -> None:
        self.users = users

    @classmethod
    def from_store(cls, store: Store) -> "UsersService":
        return cls(UserRepository(store.client, timeout=store.timeout_seconds))

    async def register(self, claims: Dict[str, Any], payload: UserRegistration, now: datetime) -> User:
        subject = claims.get("sub")
        if not subject:
            raise ValidationFailed("Token missing subject")
        if await self.users.get_by_auth_subject(subject):
            raise ValidationFailed("User already registered", details={"auth_subject": subject})
        email = payload.email or claims.get("email") or (claims.get("user_metadata") or {}).get("email")
        if not email:
            raise ValidationFailed("Email is required")
        stamp = format_timestamp(now)
        record = {
            "id": str(uuid.uuid4()),
            "auth_subject": subject,
            "email": str(email),
            "first_name": payload.first_name,
            "last_name": payload.last_name,
            "role": payload.role,
            "student_id": payload.student_id,
            "batch": payload.batch,
            "is_active": True,
            "created_at": stamp,
            "updated_at": stamp,
        }
        try:
            row = await self.users.insert(record)
        except APIError as exc:
            if is_unique_violation(exc):
                raise ValidationFailed("User already registered", details={"auth_subject": subject}) from exc
            raise
        logger.info("user.registered id=%s role=%s batch=%r", row["id"], row["role"], row["batch"])
        return User.model_validate(row)

    async def get(self, user_id: str) -> User:
        row = await self.users.get_by_id(user_id)
        if not row:
            raise NotFound("User not found")
        return User.model_validate(row)

    async def update_me(self, user_id: str, data: UserUpdate, now: datetime) -> User:
        fields = {
            k: v
            for k, v in data.model_dump(exclude_unset=True, exclude={"coding_profiles"}).items()
            if v is not None
        }
        if data.coding_profiles:
            current = await self.get(user_id)
            profiles = {k: p.model_dump(mode="json") for k, p in current.coding_profiles.items()}
            for platform, profile in data.coding_profiles.items():
                profiles[platform] = {**profiles.get(platform, {}), **profile.model_dump(mode="json", exclude_unset=True)}
            fields["coding_profiles"] = profiles
        if not fields:
            return await self.get(user_id)
        fields["updated_at"] = format_timestamp(now)
        row = await self.users.update(user_id, fields)
        if not row:
            raise NotFound("User not found")
        return User.model_validate(row)

    async def set_batch(self, user_id: str, batch: str, now: datetime) -> User:
        target = await self.users.get_by_id(user_id)
        if not target:
            raise NotFound("User not found")
        if target.get("role") != "student":
            raise ValidationFailed("Batch can only be set on student accounts")
        row = await self.users.update(user_id, {"batch": batch, "updated_at": format_timestamp(now)})
        logger.info("user.batch_changed id=%s batch=%r", user_id, batch)
        return User.model_validate(row or {**target, "batch": batch})

    async def list_students(self, batch: Optional[str] = None) -> List[User]:
        rows = await self.users.list_students(batch)
        return [User.model_validate(r) for r in rows]

    async def deactivate(self, user_id: str, now: datetime) -> User:
        row = await self.users.update(user_id, {"is_active": False, "updated_at": format_timestamp(now)})
        if not row:
            raise NotFound("User not found")
        logger.info("user.deactivated id=%s", user_id)
        return User.model_validate(row)


__all__ = ["UsersService"]
