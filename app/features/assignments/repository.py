from __future__ import annotations

from typing import Any, Dict, List, Optional

from app.DB.repository import SupabaseRepository


class AssignmentsRepository(SupabaseRepository):
    """Data access for assignments; roster writes are version-checked."""

    table_name = "assignments"

    async def list_by_instructor(self, instructor_id: str, *, active_only: bool = True) -> List[Dict[str, Any]]:
        query = self._table().select("*").eq("instructor_id", instructor_id)
        if active_only:
            query = query.eq("is_active", True)
        return await self._execute(query.order("due_date"))

    async def list_published(self, batch: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self._table().select("*").eq("is_active", True).eq("is_published", True)
        if batch is not None:
            query = query.eq("batch", batch)
        return await self._execute(query.order("due_date"))

    async def list_by_course(self, course_id: str) -> List[Dict[str, Any]]:
        return await self._execute(
            self._table().select("*").eq("course_id", course_id).eq("is_active", True)
        )

    async def update_versioned(
        self, assignment_id: str, expected_version: int, fields: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Single-document compare-and-set on ``version``; None when another writer got there first."""
        payload = {**fields, "version": expected_version + 1}
        rows = await self._execute(
            self._table().update(payload).eq("id", assignment_id).eq("version", expected_version)
        )
        return rows[0] if rows else None


__all__ = ["AssignmentsRepository"]
