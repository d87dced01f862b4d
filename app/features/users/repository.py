from typing import Any, Dict, List, Optional

from app.DB.repository import SupabaseRepository


class UserRepository(SupabaseRepository):
    """Supabase (PostgREST) based async repository for users."""

    table_name = "users"

    async def get_by_auth_subject(self, auth_subject: str) -> Optional[Dict[str, Any]]:
        return await self._first(self._table().select("*").eq("auth_subject", auth_subject))

    async def get_active_student(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self._first(
            self._table().select("*").eq("id", user_id).eq("role", "student").eq("is_active", True)
        )

    async def list_students(self, batch: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self._table().select("*").eq("role", "student").eq("is_active", True)
        if batch is not None:
            query = query.eq("batch", batch)
        return await self._execute(query.order("last_name"))


__all__ = ["UserRepository"]
