# app/jobs/store_health.py
from __future__ import annotations

import asyncio
import logging

from app.DB.supabase import Store

logger = logging.getLogger("store_health")


async def check_store(store: Store) -> bool:
    """One health probe; logs the outcome and records it on the store."""
    try:
        latency_ms = await store.ping()
    except asyncio.CancelledError:
        raise
    except Exception as exc:  # noqa: BLE001 - any failure means the store is unhealthy
        store.last_ping_ok = False
        logger.warning("store.health status=down error=%s", type(exc).__name__)
        return False
    logger.info("store.health status=ok latency_ms=%.2f", latency_ms)
    return True


async def start_store_health_monitor(store: Store, interval_seconds: float) -> None:
    """
    Background loop that logs the store connection state every ``interval_seconds``.
    """
    logger.info("Store health monitor started interval=%ss", interval_seconds)
    while True:
        try:
            await check_store(store)
            await asyncio.sleep(interval_seconds)
        except asyncio.CancelledError:
            logger.info("Store health monitor cancelled")
            break
