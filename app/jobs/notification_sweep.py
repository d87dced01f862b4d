# app/jobs/notification_sweep.py
from __future__ import annotations

import asyncio
import logging

from app.common.clock import Clock
from app.DB.supabase import Store
from app.features.notifications.service import NotificationService

logger = logging.getLogger("notification_sweep")


async def sweep_once(store: Store, clock: Clock) -> int:
    return await NotificationService.from_store(store).sweep_expired(clock())


async def start_notification_sweeper(store: Store, clock: Clock, interval_seconds: float) -> None:
    """
    Background loop that deletes expired notifications every ``interval_seconds``.
    """
    logger.info("Notification sweeper started interval=%ss", interval_seconds)
    while True:
        try:
            deleted = await sweep_once(store, clock)
            logger.info("Expired notifications deleted: %d", deleted)
            await asyncio.sleep(interval_seconds)
        except asyncio.CancelledError:
            logger.info("Notification sweeper cancelled")
            break
        except Exception:
            logger.exception("Notification sweeper error, retrying in %ss", interval_seconds)
            await asyncio.sleep(interval_seconds)
