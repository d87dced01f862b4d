from __future__ import annotations

from typing import Any, Dict, List, Optional

from app.DB.repository import SupabaseRepository


class CoursesRepository(SupabaseRepository):
    table_name = "courses"

    async def get_active_by_code(self, code: str) -> Optional[Dict[str, Any]]:
        return await self._first(self._table().select("*").eq("code", code).eq("is_active", True))

    async def list_by_instructor(self, instructor_id: str) -> List[Dict[str, Any]]:
        return await self._execute(
            self._table()
            .select("*")
            .eq("instructor_id", instructor_id)
            .eq("is_active", True)
            .order("created_at", desc=True)
        )

    async def list_active(self, batch: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self._table().select("*").eq("is_active", True)
        if batch is not None:
            query = query.eq("batch", batch)
        return await self._execute(query.order("created_at", desc=True))


__all__ = ["CoursesRepository"]
