import pytest

from factories import BASE, INSTRUCTOR, STUDENT_A, assignment_row, iso, submission_row, user_row

from app.common.deps import CurrentUser
from app.features.analytics.service import AnalyticsService

pytestmark = pytest.mark.anyio("asyncio")

STUDENT_C = CurrentUser(id="stu-c", auth_subject="sub-stu-c", email="c@uni.test", role="student", batch="2026-CSE-A")


@pytest.fixture
def service(store):
    return AnalyticsService.from_store(store)


@pytest.fixture
def seeded(db):
    db.rows("users").append(user_row(STUDENT_C))
    db.rows("assignments").extend([assignment_row(id="a1"), assignment_row(id="a2")])
    db.rows("assignment_submissions").extend(
        [
            submission_row("a1", STUDENT_A.id, id="sa", status="submitted", submitted_at=iso(BASE)),
            submission_row("a2", STUDENT_C.id, id="sc", status="graded", submitted_at=iso(BASE)),
        ]
    )
    return db


def _by_student(report):
    return {m.student_id: m for m in report.student_metrics}


async def test_batch_report_over_store(service, seeded):
    report = await service.batch_report(INSTRUCTOR, "2026-CSE-A")
    metrics = _by_student(report)
    assert report.total_students == 2
    assert metrics[STUDENT_A.id].assignment_submission_rate == pytest.approx(50)
    assert metrics[STUDENT_C.id].submitted_assignments == 1


async def test_dangling_assignment_reference_leaves_other_students_alone(service, seeded):
    before = _by_student(await service.batch_report(INSTRUCTOR, "2026-CSE-A"))

    seeded.rows("assignment_submissions")[1]["assignment_id"] = "deleted-assignment"
    report = await service.batch_report(INSTRUCTOR, "2026-CSE-A")
    after = _by_student(report)

    assert report.total_students == 2
    assert after[STUDENT_A.id] == before[STUDENT_A.id]
    assert after[STUDENT_C.id].submitted_assignments == 0
    assert after[STUDENT_C.id].assignment_submission_rate == 0


async def test_empty_batch_gives_zero_payload(service, seeded):
    report = await service.batch_report(INSTRUCTOR, "2026-CSE-Z")
    assert report.total_students == 0
    assert report.student_metrics == []
    assert report.coding_profile_summary.average_rating == 0


async def test_coding_profiles_roll_up_into_report(service, seeded):
    seeded.rows("users")[-1]["coding_profiles"] = {"leetcode": {"username": "c", "problems_solved": 40, "rating": 1500}}
    report = await service.batch_report(INSTRUCTOR, "2026-CSE-A")
    assert report.coding_profile_summary.average_problems_solved == pytest.approx(40)
    assert report.coding_profile_summary.average_rating == pytest.approx(1500)
