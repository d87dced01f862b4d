"""Async Supabase store handle.

The application builds one ``Store`` at startup, opens it in the lifespan and
closes it on shutdown. Request handlers get it through ``app.common.deps.get_store``.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

import httpx
from supabase import AsyncClient, create_async_client

from app.common.errors import StoreUnavailable
from app.core.config import Settings

logger = logging.getLogger("store")

# Errors raised by the HTTP transport under PostgREST; anything else is a query problem.
TRANSPORT_ERRORS = (httpx.TransportError, asyncio.TimeoutError, ConnectionError, OSError)


class Store:
    """Owns the Supabase client for the life of the process."""

    def __init__(self, url: str, key: str, *, timeout_seconds: float = 10.0) -> None:
        self._url = url
        self._key = key
        self.timeout_seconds = timeout_seconds
        self._client: Optional[AsyncClient] = None
        self.last_ping_ok: Optional[bool] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "Store":
        return cls(settings.supabase_url, settings.supabase_key, timeout_seconds=settings.store_timeout_seconds)

    @classmethod
    def with_client(cls, client: Any, *, timeout_seconds: float = 10.0) -> "Store":
        """Wrap an already-built client (tests, scripts)."""
        store = cls("", "", timeout_seconds=timeout_seconds)
        store._client = client
        return store

    @property
    def is_open(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> AsyncClient:
        if self._client is None:
            raise StoreUnavailable("Store is not open")
        return self._client

    async def open(self) -> None:
        if self._client is not None:
            return
        if not self._url or not self._key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be configured")
        try:
            self._client = await create_async_client(self._url, self._key)
        except TRANSPORT_ERRORS as exc:
            raise StoreUnavailable(details={"reason": type(exc).__name__}) from exc
        logger.info("store.open url=%s", self._url)

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        postgrest = getattr(client, "postgrest", None)
        aclose = getattr(postgrest, "aclose", None)
        if callable(aclose):
            try:
                await aclose()
            except TRANSPORT_ERRORS:
                logger.warning("store.close transport error while closing", exc_info=True)
        logger.info("store.closed")

    async def ping(self) -> float:
        """Run a trivial query and return its latency in milliseconds."""
        start = time.perf_counter()
        await execute(self.client.table("users").select("id").limit(1), timeout=self.timeout_seconds)
        self.last_ping_ok = True
        return round((time.perf_counter() - start) * 1000, 2)


async def execute(builder: Any, *, timeout: Optional[float] = None) -> Any:
    """Execute a PostgREST builder, mapping transport failures to ``StoreUnavailable``."""
    try:
        if timeout:
            return await asyncio.wait_for(builder.execute(), timeout)
        return await builder.execute()
    except TRANSPORT_ERRORS as exc:
        logger.error("store.unavailable error=%s", type(exc).__name__)
        raise StoreUnavailable(details={"reason": type(exc).__name__}) from exc


__all__ = ["Store", "execute", "TRANSPORT_ERRORS"]
