import asyncio
from datetime import timedelta

import pytest

from factories import BASE, INSTRUCTOR, OTHER_INSTRUCTOR, STUDENT_A, STUDENT_B, assignment_row, iso

from app.common.errors import DuplicateAssignment, Forbidden, NotAssigned, NotFound, ValidationFailed
from app.features.assignments.schemas import AssignmentCreate, AssignmentUpdate
from app.features.assignments.service import AssignmentsService

pytestmark = pytest.mark.anyio("asyncio")


@pytest.fixture
def service(store):
    return AssignmentsService.from_store(store)


def _seed(db, **overrides):
    row = assignment_row(**overrides)
    db.rows("assignments").append(row)
    return row


async def test_create_without_roster_stays_unpublished(service, now):
    payload = AssignmentCreate(
        title="Trees",
        description="Binary trees",
        batch=" 2026-CSE-A ",
        start_date=now,
        due_date=now + timedelta(days=7),
    )
    out = await service.create(INSTRUCTOR, payload, now)
    assert out.is_published is False
    assert out.batch == "2026-CSE-A"
    assert out.assignment_type == "homework"
    assert out.status == "active"


async def test_create_with_roster_auto_publishes(service, now):
    payload = AssignmentCreate(
        title="Trees",
        description="Binary trees",
        assigned_students=[STUDENT_A.id, STUDENT_A.id],
        start_date=now,
        due_date=now + timedelta(days=7),
        coding_challenges=[{"platform": "leetcode", "title": "Two Sum", "url": "https://leetcode.com/problems/two-sum"}],
    )
    out = await service.create(INSTRUCTOR, payload, now)
    assert out.is_published is True
    assert out.published_at == now
    assert out.assigned_students == [STUDENT_A.id]
    assert out.assignment_type == "coding"


def test_create_rejects_inverted_window(now):
    with pytest.raises(ValueError):
        AssignmentCreate(title="x", description="y", start_date=now, due_date=now)


async def test_student_listing_respects_batch_and_roster(service, db, now):
    _seed(db, id="mine", batch="2026-CSE-A")
    _seed(db, id="other", batch="2026-CSE-B")
    _seed(db, id="rostered", batch="2026-CSE-B", assigned_students=[STUDENT_A.id])
    _seed(db, id="draft", is_published=False)

    visible = await service.list_visible(STUDENT_A, now)
    assert {a.id for a in visible} == {"mine", "rostered"}


async def test_get_hidden_assignment_is_forbidden(service, db, now):
    _seed(db, id="other", batch="2026-CSE-B")
    with pytest.raises(Forbidden):
        await service.get(STUDENT_A, "other", now)
    with pytest.raises(NotFound):
        await service.get(STUDENT_A, "missing", now)


async def test_list_by_batch_student_limited_to_own(service, now):
    with pytest.raises(Forbidden):
        await service.list_by_batch(STUDENT_A, "2026-CSE-B", now)


async def test_assign_student_auto_publishes_and_notifies(service, db, now):
    _seed(db, id="a1", is_published=False, published_at=None)

    result = await service.assign_student(INSTRUCTOR, "a1", STUDENT_B.id, now)

    assert result.auto_published is True
    assert result.assignment.is_published is True
    assert result.assignment.assigned_students == [STUDENT_B.id]
    assert result.assignment.version == 2
    notes = db.rows("notifications")
    assert [(n["user_id"], n["type"]) for n in notes] == [(STUDENT_B.id, "assignment_assigned")]

    visible = await service.list_visible(STUDENT_B, now)
    assert [a.id for a in visible] == ["a1"]


async def test_assign_student_twice_is_duplicate(service, db, now):
    _seed(db, id="a1", assigned_students=[STUDENT_A.id])
    with pytest.raises(DuplicateAssignment):
        await service.assign_student(INSTRUCTOR, "a1", STUDENT_A.id, now)


async def test_assign_requires_owner_and_active_student(service, db, now):
    _seed(db, id="a1")
    with pytest.raises(Forbidden):
        await service.assign_student(OTHER_INSTRUCTOR, "a1", STUDENT_A.id, now)
    with pytest.raises(NotFound):
        await service.assign_student(INSTRUCTOR, "a1", OTHER_INSTRUCTOR.id, now)


async def test_unassign(service, db, now):
    _seed(db, id="a1", assigned_students=[STUDENT_A.id])
    result = await service.unassign_student(INSTRUCTOR, "a1", STUDENT_A.id, now)
    assert result.assignment.assigned_students == []
    with pytest.raises(NotAssigned):
        await service.unassign_student(INSTRUCTOR, "a1", STUDENT_A.id, now)


async def test_roster_write_retries_after_concurrent_change(service, db, now):
    row = _seed(db, id="a1", assigned_students=["someone"])
    real = service.assignments.update_versioned
    raced = []

    async def racing_update(assignment_id, expected_version, fields):
        if not raced:
            raced.append(expected_version)
            row["version"] += 1
            row["assigned_students"] = ["someone", "late-joiner"]
        return await real(assignment_id, expected_version, fields)

    service.assignments.update_versioned = racing_update
    result = await service.assign_student(INSTRUCTOR, "a1", STUDENT_A.id, now)

    assert result.assignment.assigned_students == ["someone", "late-joiner", STUDENT_A.id]
    assert result.assignment.version == 3


async def test_concurrent_assigns_keep_both_students(service, db, now):
    _seed(db, id="a1")
    await asyncio.gather(
        service.assign_student(INSTRUCTOR, "a1", STUDENT_A.id, now),
        service.assign_student(INSTRUCTOR, "a1", STUDENT_B.id, now),
    )
    stored = db.rows("assignments")[0]
    assert sorted(stored["assigned_students"]) == sorted([STUDENT_A.id, STUDENT_B.id])


async def test_update_merges_settings_and_checks_dates(service, db, now):
    _seed(db, id="a1", settings={"max_attempts": 3})
    out = await service.update(
        INSTRUCTOR, "a1", AssignmentUpdate(settings={"allow_late_submissions": True}), now
    )
    assert out.settings.max_attempts == 3
    assert out.settings.allow_late_submissions is True

    with pytest.raises(ValidationFailed):
        await service.update(
            INSTRUCTOR, "a1", AssignmentUpdate(due_date=BASE - timedelta(days=5)), now
        )


async def test_publish_unpublish_and_delete(service, db, now):
    _seed(db, id="a1", is_published=False, published_at=None)
    out = await service.set_published(INSTRUCTOR, "a1", True, now)
    assert out.is_published and out.published_at == now
    out = await service.set_published(INSTRUCTOR, "a1", False, now)
    assert out.is_published is False

    await service.soft_delete(INSTRUCTOR, "a1", now)
    with pytest.raises(NotFound):
        await service.get(INSTRUCTOR, "a1", now)


async def test_auto_assign_counts(service, db, now):
    _seed(db, id="a1", batch="2026-CSE-A")
    _seed(db, id="a2", batch="2026-CSE-A", assigned_students=[STUDENT_A.id])
    _seed(db, id="a3", batch="2026-CSE-B")
    _seed(db, id="a4", batch="2026-CSE-A", is_published=False)

    result = await service.auto_assign(STUDENT_A, now)

    assert result.total_found == 2
    assert result.newly_assigned == 1
    assert result.already_assigned == 1
    assert result.assignment_ids == ["a1"]

    again = await service.auto_assign(STUDENT_A, now)
    assert again.newly_assigned == 0 and again.already_assigned == 2


async def test_auto_assign_requires_batch(service, now):
    with pytest.raises(ValidationFailed):
        await service.auto_assign(STUDENT_A.model_copy(update={"batch": ""}), now)
    with pytest.raises(Forbidden):
        await service.auto_assign(INSTRUCTOR, now)


async def test_stats(service, db, now):
    _seed(db, id="a1")
    db.rows("assignment_submissions").extend(
        [
            {"id": "s1", "assignment_id": "a1", "student_id": "x", "status": "draft", "grade": {}},
            {"id": "s2", "assignment_id": "a1", "student_id": "y", "status": "submitted", "is_late": True, "grade": {}},
            {"id": "s3", "assignment_id": "a1", "student_id": "z", "status": "graded", "grade": {"points": 70}},
            {"id": "s4", "assignment_id": "a1", "student_id": "w", "status": "returned", "grade": {"points": 90}},
        ]
    )
    stats = await service.stats(INSTRUCTOR, "a1")
    assert (stats.total, stats.submitted, stats.graded, stats.ungraded, stats.late) == (4, 3, 2, 1, 1)
    assert stats.average_score == 80
