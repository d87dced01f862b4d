from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from app.common.deps import CurrentUser
from app.common.errors import DuplicateAssignment, Forbidden, NotFound, ValidationFailed
from app.common.utils import format_timestamp
from app.DB.supabase import Store
from app.features.notifications.schemas import NotificationType
from app.features.notifications.service import NotificationService
from app.features.submissions.repository import AssignmentSubmissionsRepository
from app.features.users.repository import UserRepository
from . import distribution
from .repository import AssignmentsRepository
from .schemas import (
    Assignment,
    AssignmentCreate,
    AssignmentOut,
    AssignmentStats,
    AssignmentUpdate,
    AutoAssignResult,
    RosterChangeResult,
)

logger = logging.getLogger("assignments")

# Roster writes retry this many times when another request changed the row first.
_ROSTER_RETRIES = 3


class AssignmentsService:
    def __init__(
        self,
        assignments: AssignmentsRepository,
        users: UserRepository,
        submissions: AssignmentSubmissionsRepository,
        notifications: NotificationService,
    ) -> None:
        self.assignments = assignments
        self.users = users
        self.submissions = submissions
        self.notifications = notifications

    @classmethod
    def from_store(cls, store: Store) -> "AssignmentsService":
        timeout = store.timeout_seconds
        return cls(
            AssignmentsRepository(store.client, timeout=timeout),
            UserRepository(store.client, timeout=timeout),
            AssignmentSubmissionsRepository(store.client, timeout=timeout),
            NotificationService.from_store(store),
        )

    @staticmethod
    def present(assignment: Assignment, now: datetime) -> AssignmentOut:
        return AssignmentOut.build(
            assignment,
            status=distribution.assignment_status(assignment, now),
            is_open=distribution.is_open(assignment, now),
        )

    async def _load(self, assignment_id: str) -> Assignment:
        row = await self.assignments.get_by_id(assignment_id)
        if not row or not row.get("is_active", True):
            raise NotFound("Assignment not found")
        return Assignment.model_validate(row)

    async def _load_owned(self, user: CurrentUser, assignment_id: str) -> Assignment:
        assignment = await self._load(assignment_id)
        if assignment.instructor_id != user.id:
            raise Forbidden("Only the assignment's instructor can do this")
        return assignment

    # Reads

    async def list_visible(self, user: CurrentUser, now: datetime) -> List[AssignmentOut]:
        if user.is_instructor:
            rows = await self.assignments.list_by_instructor(user.id)
        else:
            rows = await self.assignments.list_published()
        assignments = [Assignment.model_validate(r) for r in rows]
        return [self.present(a, now) for a in distribution.visible_assignments(assignments, user)]

    async def get(self, user: CurrentUser, assignment_id: str, now: datetime) -> AssignmentOut:
        assignment = await self._load(assignment_id)
        if not distribution.is_visible_to(assignment, user):
            raise Forbidden("You do not have access to this assignment")
        return self.present(assignment, now)

    async def list_by_batch(self, user: CurrentUser, batch: str, now: datetime) -> List[AssignmentOut]:
        if user.is_student and batch != user.batch:
            raise Forbidden("Students can only list their own batch")
        rows = await self.assignments.list_published(batch=batch)
        assignments = [Assignment.model_validate(r) for r in rows]
        if user.is_instructor:
            assignments = [a for a in assignments if a.instructor_id == user.id]
        return [self.present(a, now) for a in assignments]

    async def stats(self, user: CurrentUser, assignment_id: str) -> AssignmentStats:
        assignment = await self._load_owned(user, assignment_id)
        rows = await self.submissions.list_by_assignment(assignment.id)
        submitted = [r for r in rows if r.get("status") != "draft"]
        graded = [r for r in submitted if r.get("status") in ("graded", "returned")]
        scores = [float((r.get("grade") or {}).get("points") or 0) for r in graded]
        average = round(sum(scores) / len(scores), 2) if scores else 0.0
        return AssignmentStats(
            assignment_id=assignment.id,
            total=len(rows),
            submitted=len(submitted),
            graded=len(graded),
            ungraded=len(submitted) - len(graded),
            late=sum(1 for r in submitted if r.get("is_late")),
            average_score=average,
        )

    # Writes

    async def create(self, user: CurrentUser, payload: AssignmentCreate, now: datetime) -> AssignmentOut:
        stamp = format_timestamp(now)
        record: Dict[str, Any] = {
            "id": str(uuid.uuid4()),
            **payload.model_dump(mode="json"),
            "instructor_id": user.id,
            "is_published": False,
            "published_at": None,
            "is_active": True,
            "version": 1,
            "created_at": stamp,
            "updated_at": stamp,
        }
        if payload.assigned_students:
            record.update({"is_published": True, "published_at": stamp})
        row = await self.assignments.insert(record)
        assignment = Assignment.model_validate(row)
        logger.info(
            "assignment.created id=%s batch=%r roster=%d published=%s",
            assignment.id,
            assignment.batch,
            len(assignment.assigned_students),
            assignment.is_published,
        )
        return self.present(assignment, now)

    async def update(
        self, user: CurrentUser, assignment_id: str, payload: AssignmentUpdate, now: datetime
    ) -> AssignmentOut:
        assignment = await self._load_owned(user, assignment_id)
        fields = payload.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        if payload.settings is not None:
            merged = assignment.settings.model_dump()
            merged.update(payload.settings.model_dump(exclude_unset=True, exclude_none=True))
            fields["settings"] = merged
        start = payload.start_date or assignment.start_date
        due = payload.due_date or assignment.due_date
        if due <= start:
            raise ValidationFailed("due_date must be after start_date")
        if payload.assigned_students:
            fields["assigned_students"] = list(dict.fromkeys(payload.assigned_students))
            fields.update(distribution.publish_on_assignment(assignment, now))
        fields["updated_at"] = format_timestamp(now)
        row = await self.assignments.update_versioned(assignment.id, assignment.version, fields)
        if row is None:
            raise ValidationFailed("Assignment was modified concurrently; reload and retry")
        return self.present(Assignment.model_validate(row), now)

    async def set_published(self, user: CurrentUser, assignment_id: str, published: bool, now: datetime) -> AssignmentOut:
        assignment = await self._load_owned(user, assignment_id)
        fields: Dict[str, Any] = {"is_published": published, "updated_at": format_timestamp(now)}
        if published and not assignment.is_published:
            fields["published_at"] = format_timestamp(now)
        row = await self.assignments.update(assignment.id, fields)
        logger.info("assignment.publish id=%s published=%s", assignment.id, published)
        return self.present(Assignment.model_validate(row) if row else assignment, now)

    async def soft_delete(self, user: CurrentUser, assignment_id: str, now: datetime) -> None:
        assignment = await self._load_owned(user, assignment_id)
        await self.assignments.update(assignment.id, {"is_active": False, "updated_at": format_timestamp(now)})
        logger.info("assignment.deleted id=%s", assignment.id)

    # Roster

    async def _write_roster(
        self, assignment: Assignment, roster: List[str], extra: Dict[str, Any], now: datetime
    ) -> Optional[Assignment]:
        fields = {"assigned_students": roster, "updated_at": format_timestamp(now), **extra}
        row = await self.assignments.update_versioned(assignment.id, assignment.version, fields)
        return Assignment.model_validate(row) if row else None

    async def assign_student(
        self, user: CurrentUser, assignment_id: str, student_id: str, now: datetime
    ) -> RosterChangeResult:
        assignment = await self._load_owned(user, assignment_id)
        if not await self.users.get_active_student(student_id):
            raise NotFound("Active student not found", details={"student_id": student_id})

        for _ in range(_ROSTER_RETRIES):
            roster = distribution.add_to_roster(assignment, student_id)
            published = distribution.publish_on_assignment(assignment, now)
            updated = await self._write_roster(assignment, roster, published, now)
            if updated is not None:
                break
            assignment = await self._load(assignment_id)
        else:
            raise ValidationFailed("Assignment roster is busy; retry")

        auto_published = bool(published)
        logger.info(
            "assignment.assign id=%s student=%s auto_published=%s", assignment_id, student_id, auto_published
        )
        await self.notifications.notify(
            student_id,
            NotificationType.assignment_assigned,
            now,
            title=updated.title,
            data={"assignment_id": assignment_id},
        )
        return RosterChangeResult(
            message="Student assigned successfully",
            assignment=self.present(updated, now),
            auto_published=auto_published,
        )

    async def unassign_student(
        self, user: CurrentUser, assignment_id: str, student_id: str, now: datetime
    ) -> RosterChangeResult:
        assignment = await self._load_owned(user, assignment_id)
        for _ in range(_ROSTER_RETRIES):
            roster = distribution.remove_from_roster(assignment, student_id)
            updated = await self._write_roster(assignment, roster, {}, now)
            if updated is not None:
                break
            assignment = await self._load(assignment_id)
        else:
            raise ValidationFailed("Assignment roster is busy; retry")
        logger.info("assignment.unassign id=%s student=%s", assignment_id, student_id)
        return RosterChangeResult(message="Student unassigned successfully", assignment=self.present(updated, now))

    async def _auto_assign_one(self, assignment: Assignment, student_id: str, now: datetime) -> Tuple[bool, str]:
        """Returns (added, assignment_id); losing a race to an identical write counts as already assigned."""
        for _ in range(_ROSTER_RETRIES):
            try:
                roster = distribution.add_to_roster(assignment, student_id)
            except DuplicateAssignment:
                return False, assignment.id
            if await self._write_roster(assignment, roster, {}, now) is not None:
                return True, assignment.id
            assignment = await self._load(assignment.id)
        logger.warning("assignment.auto_assign_gave_up id=%s student=%s", assignment.id, student_id)
        return False, assignment.id

    async def auto_assign(self, user: CurrentUser, now: datetime) -> AutoAssignResult:
        if not user.is_student:
            raise Forbidden("Only students can be auto-assigned")
        if not user.batch:
            raise ValidationFailed("Student does not have a batch assigned")
        rows = await self.assignments.list_published(batch=user.batch)
        candidates = [
            a for a in (Assignment.model_validate(r) for r in rows)
            if distribution.batch_matches(a.batch, user.batch)
        ]
        newly: List[str] = []
        already = 0
        for assignment in candidates:
            added, assignment_id = await self._auto_assign_one(assignment, user.id, now)
            if added:
                newly.append(assignment_id)
            else:
                already += 1
        logger.info(
            "assignment.auto_assign student=%s batch=%r new=%d existing=%d",
            user.id,
            user.batch,
            len(newly),
            already,
        )
        return AutoAssignResult(
            message=f"Auto-assigned {len(newly)} assignment(s)",
            newly_assigned=len(newly),
            already_assigned=already,
            total_found=len(candidates),
            assignment_ids=newly,
        )


__all__ = ["AssignmentsService"]
