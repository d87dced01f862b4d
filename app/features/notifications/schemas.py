from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    assignment_assigned = "assignment_assigned"
    submission_graded = "submission_graded"
    grade_updated = "grade_updated"
    course_enrollment = "course_enrollment"
    course_dropped = "course_dropped"


# Days a notification stays visible before the sweep removes it.
EXPIRY_DAYS: Dict[NotificationType, int] = {
    NotificationType.assignment_assigned: 7,
    NotificationType.submission_graded: 30,
    NotificationType.grade_updated: 30,
    NotificationType.course_enrollment: 7,
    NotificationType.course_dropped: 7,
}
DEFAULT_EXPIRY_DAYS = 7


class NotificationOut(BaseModel):
    id: str
    user_id: str
    type: str
    title: str
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)
    read: bool = False
    read_at: Optional[datetime] = None
    created_at: datetime
    expires_at: datetime


class NotificationList(BaseModel):
    count: int
    unread: int
    notifications: List[NotificationOut]
