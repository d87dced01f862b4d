"""Shared helpers for Supabase-backed repositories."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError

from app.DB.supabase import execute


def normalise_error_message(exc: Exception) -> str:
    parts: List[str] = []
    for attr in ("message", "detail", "details", "hint", "code"):
        value = getattr(exc, attr, None)
        if value:
            parts.append(str(value))
    if getattr(exc, "args", None):
        parts.extend(str(arg) for arg in exc.args if arg)
    text = " ".join(parts).strip()
    if not text:
        text = str(exc)
    return text.lower()


def is_unique_violation(exc: Exception, *constraint_names: str) -> bool:
    if not isinstance(exc, APIError):
        return False
    text = normalise_error_message(exc)
    if not text:
        return False
    conflict_tokens = (*constraint_names, "duplicate key", "unique constraint", "23505")
    return any(token in text for token in conflict_tokens if token)


class SupabaseRepository:
    """Base class: one table, an injected client and a per-query timeout."""

    table_name: str = ""

    def __init__(self, client: Any, *, timeout: Optional[float] = None) -> None:
        self._client = client
        self._timeout = timeout

    def _table(self):
        return self._client.table(self.table_name)

    async def _execute(self, builder: Any) -> List[Dict[str, Any]]:
        resp = await execute(builder, timeout=self._timeout)
        return list(resp.data or [])

    async def _first(self, builder: Any) -> Optional[Dict[str, Any]]:
        rows = await self._execute(builder.limit(1))
        return rows[0] if rows else None

    async def get_by_id(self, row_id: str) -> Optional[Dict[str, Any]]:
        return await self._first(self._table().select("*").eq("id", row_id))

    async def list_by_ids(self, ids: List[str]) -> List[Dict[str, Any]]:
        unique_ids = sorted({i for i in ids if i})
        if not unique_ids:
            return []
        return await self._execute(self._table().select("*").in_("id", unique_ids))

    async def insert(self, row: Dict[str, Any]) -> Dict[str, Any]:
        rows = await self._execute(self._table().insert(row))
        if not rows:
            raise RuntimeError(f"Insert into {self.table_name} returned no rows")
        return rows[0]

    async def update(self, row_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = await self._execute(self._table().update(fields).eq("id", row_id))
        return rows[0] if rows else None


__all__ = ["SupabaseRepository", "is_unique_violation", "normalise_error_message"]
