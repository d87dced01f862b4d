# app/features/notifications/repository.py
from __future__ import annotations

from typing import Any, Dict, List

from app.DB.repository import SupabaseRepository


class NotificationRepository(SupabaseRepository):
    table_name = "notifications"

    async def list_for_user(self, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        return await self._execute(
            self._table().select("*").eq("user_id", user_id).order("created_at", desc=True).limit(limit)
        )

    async def mark_read(self, notification_id: str, user_id: str, read_at: str) -> List[Dict[str, Any]]:
        return await self._execute(
            self._table().update({"read": True, "read_at": read_at}).eq("id", notification_id).eq("user_id", user_id)
        )

    async def mark_all_read(self, user_id: str, read_at: str) -> int:
        rows = await self._execute(
            self._table().update({"read": True, "read_at": read_at}).eq("user_id", user_id).eq("read", False)
        )
        return len(rows)

    async def delete_for_user(self, notification_id: str, user_id: str) -> int:
        rows = await self._execute(self._table().delete().eq("id", notification_id).eq("user_id", user_id))
        return len(rows)

    async def delete_expired(self, now_iso: str) -> int:
        rows = await self._execute(self._table().delete().lt("expires_at", now_iso))
        return len(rows)


__all__ = ["NotificationRepository"]
