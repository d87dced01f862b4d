from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from app.common.errors import NotFound
from app.common.utils import format_timestamp
from app.DB.supabase import Store
from .repository import NotificationRepository
from .schemas import DEFAULT_EXPIRY_DAYS, EXPIRY_DAYS, NotificationList, NotificationOut, NotificationType

logger = logging.getLogger("notifications")

_TITLES = {
    NotificationType.assignment_assigned: "New Assignment",
    NotificationType.submission_graded: "Assignment Graded",
    NotificationType.grade_updated: "Grade Updated",
    NotificationType.course_enrollment: "Course Enrollment",
    NotificationType.course_dropped: "Course Dropped",
}

_MESSAGES = {
    NotificationType.assignment_assigned: 'You have been assigned "{title}"',
    NotificationType.submission_graded: 'Your submission for "{title}" has been graded',
    NotificationType.grade_updated: 'Your grade for "{title}" has been updated',
    NotificationType.course_enrollment: "You have been enrolled in {title}",
    NotificationType.course_dropped: "You have been dropped from {title}",
}


def expiry_for(kind: NotificationType, now: datetime) -> datetime:
    return now + timedelta(days=EXPIRY_DAYS.get(kind, DEFAULT_EXPIRY_DAYS))


class NotificationService:
    def __init__(self, notifications: NotificationRepository) -> None:
        self.notifications = notifications

    @classmethod
    def from_store(cls, store: Store) -> "NotificationService":
        return cls(NotificationRepository(store.client, timeout=store.timeout_seconds))

    async def notify(
        self,
        user_id: str,
        kind: NotificationType,
        now: datetime,
        *,
        title: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        """Record an in-app notification. Never raises; delivery is best effort."""
        record = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "type": kind.value,
            "title": _TITLES.get(kind, "System Notification"),
            "message": _MESSAGES.get(kind, "You have a new notification").format(title=title),
            "data": data or {},
            "read": False,
            "read_at": None,
            "created_at": format_timestamp(now),
            "expires_at": format_timestamp(expiry_for(kind, now)),
        }
        try:
            row = await self.notifications.insert(record)
        except Exception:  # noqa: BLE001 - notifications must not fail the caller
            logger.exception("notification.failed user_id=%s type=%s", user_id, kind.value)
            return None
        return row.get("id")

    async def list_for_user(self, user_id: str, limit: int = 50) -> NotificationList:
        rows = await self.notifications.list_for_user(user_id, limit)
        items = [NotificationOut.model_validate(r) for r in rows]
        return NotificationList(count=len(items), unread=sum(1 for n in items if not n.read), notifications=items)

    async def mark_read(self, user_id: str, notification_id: str, now: datetime) -> None:
        rows = await self.notifications.mark_read(notification_id, user_id, format_timestamp(now))
        if not rows:
            raise NotFound("Notification not found")

    async def mark_all_read(self, user_id: str, now: datetime) -> int:
        return await self.notifications.mark_all_read(user_id, format_timestamp(now))

    async def delete(self, user_id: str, notification_id: str) -> None:
        if not await self.notifications.delete_for_user(notification_id, user_id):
            raise NotFound("Notification not found")

    async def sweep_expired(self, now: datetime) -> int:
        deleted = await self.notifications.delete_expired(format_timestamp(now))
        if deleted:
            logger.info("notification.sweep deleted=%d", deleted)
        return deleted


__all__ = ["NotificationService", "expiry_for"]
