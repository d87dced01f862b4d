from datetime import timedelta

import pytest

from factories import BASE, STUDENT_A, assignment, iso, submission

from app.common.errors import (
    AlreadySubmitted,
    AssignmentClosed,
    AttemptLimitExceeded,
    NotGraded,
    NotSubmitted,
    ValidationFailed,
)
from app.common.utils import parse_timestamp
from app.features.submissions import lifecycle
from app.features.submissions.schemas import AssignmentSubmission, Attachment, compute_final_points


def _attachment(name="report.pdf", size=1024):
    return Attachment(filename=name, mime_type="application/pdf", size=size, url="https://files.test/" + name)


# Late penalty


def test_no_penalty_on_time_or_exactly_at_due():
    assert lifecycle.compute_late_penalty(BASE, BASE - timedelta(hours=1), 10) == 0
    assert lifecycle.compute_late_penalty(BASE, BASE, 10) == 0


def test_any_lateness_costs_a_full_day():
    assert lifecycle.compute_late_penalty(BASE, BASE + timedelta(hours=0.01), 10) == 10


@pytest.mark.parametrize("hours, expected", [(23.9, 10), (24, 10), (24.5, 20), (30, 20), (49, 30)])
def test_penalty_per_started_day(hours, expected):
    assert lifecycle.compute_late_penalty(BASE, BASE + timedelta(hours=hours), 10) == expected


def test_penalty_caps_at_100():
    assert lifecycle.compute_late_penalty(BASE, BASE + timedelta(days=30), 15) == 100


def test_zero_rate_means_no_penalty():
    assert lifecycle.compute_late_penalty(BASE, BASE + timedelta(days=3), 0) == 0


def test_final_points():
    assert compute_final_points(80, 20) == 64
    assert compute_final_points(80, 100) == 0
    assert compute_final_points(None, 20) is None


# Drafts


def test_save_draft_bumps_attempt():
    fields = lifecycle.save_draft(submission(attempt_number=1), "v2", [_attachment()], BASE)
    assert fields["attempt_number"] == 2
    assert fields["content"] == "v2"
    assert fields["attachments"][0]["filename"] == "report.pdf"


def test_save_draft_rejects_submitted():
    with pytest.raises(AlreadySubmitted):
        lifecycle.save_draft(submission(status="submitted"), "v2", [], BASE)


def test_check_attachments_size_and_type():
    a = assignment(settings={"allowed_file_types": ["pdf", ".zip"], "max_file_size_mb": 1})
    lifecycle.check_attachments(a, [_attachment("a.PDF"), _attachment("b.zip")])
    with pytest.raises(ValidationFailed) as exc:
        lifecycle.check_attachments(a, [_attachment("c.exe")])
    assert exc.value.details["allowed_file_types"] == ["pdf", "zip"]
    with pytest.raises(ValidationFailed):
        lifecycle.check_attachments(a, [_attachment(size=2 * 1024 * 1024)])


def test_global_attachment_limit_tightens_assignment_limit():
    a = assignment(settings={"max_file_size_mb": 50})
    with pytest.raises(ValidationFailed):
        lifecycle.check_attachments(a, [_attachment(size=11 * 1024 * 1024)], max_mb=10)


def test_add_attachments_appends_and_stamps():
    existing = submission(attachments=[_attachment("first.pdf").model_dump(mode="json")])
    fields = lifecycle.add_attachments(existing, [_attachment("second.pdf")], BASE)
    assert [a["filename"] for a in fields["attachments"]] == ["first.pdf", "second.pdf"]
    assert parse_timestamp(fields["attachments"][1]["uploaded_at"]) == BASE


# Submit


def test_submit_on_time():
    fields = lifecycle.submit(submission(), assignment(), BASE)
    assert fields["status"] == "submitted"
    assert fields["submitted_at"] == BASE.isoformat()
    assert fields["is_late"] is False
    assert fields["late_penalty"] == 0


def test_submit_twice_is_already_submitted():
    with pytest.raises(AlreadySubmitted):
        lifecycle.submit(submission(status="submitted"), assignment(), BASE)


def test_submit_after_due_without_late_window_is_closed():
    a = assignment(start_date=iso(BASE - timedelta(days=3)), due_date=iso(BASE - timedelta(hours=1)))
    with pytest.raises(AssignmentClosed) as exc:
        lifecycle.submit(submission(), a, BASE)
    details = exc.value.details
    assert details["due_date"] == a.due_date.isoformat()
    assert details["current_date"] == BASE.isoformat()
    assert details["allow_late_submissions"] is False


def test_submit_over_attempt_limit():
    a = assignment(settings={"max_attempts": 2})
    with pytest.raises(AttemptLimitExceeded) as exc:
        lifecycle.submit(submission(attempt_number=3), a, BASE)
    assert exc.value.details == {"attempt_number": 3, "max_attempts": 2}


def test_submit_requires_upload_when_configured():
    a = assignment(settings={"require_file_upload": True})
    with pytest.raises(ValidationFailed):
        lifecycle.submit(submission(), a, BASE)


# Grade and return


def test_grade_requires_submitted():
    with pytest.raises(NotSubmitted):
        lifecycle.grade(submission(status="draft"), assignment(), 50, "inst-1", BASE)


def test_grade_bounds():
    with pytest.raises(ValidationFailed):
        lifecycle.grade(submission(status="submitted"), assignment(max_points=50), 51, "inst-1", BASE)


def test_grade_sets_percentage_and_letter():
    fields = lifecycle.grade(
        submission(status="submitted"), assignment(max_points=50), 45, "inst-1", BASE, feedback="Good"
    )
    assert fields["status"] == "graded"
    assert fields["grade"]["percentage"] == pytest.approx(90)
    assert fields["grade"]["letter_grade"] == "A-"
    assert fields["grade"]["graded_by"] == "inst-1"
    assert fields["grade"]["feedback"] == "Good"


@pytest.mark.parametrize(
    "percentage, letter",
    [(100, "A+"), (97, "A+"), (96.9, "A"), (85, "B"), (70, "C-"), (60, "D-"), (59.9, "F")],
)
def test_letter_grade_cutoffs(percentage, letter):
    assert lifecycle.letter_grade(percentage) == letter


def test_return_requires_graded():
    with pytest.raises(NotGraded):
        lifecycle.return_submission(submission(status="submitted"), BASE)
    assert lifecycle.return_submission(submission(status="graded"), BASE)["status"] == "returned"


def test_late_submission_scenario():
    """Due now, 10%/day; submitted 30 hours late and graded 80/100 gives 64."""
    a = assignment(
        batch="2026-CSE-A",
        start_date=iso(BASE - timedelta(days=1)),
        due_date=iso(BASE),
        settings={"allow_late_submissions": True, "late_submission_penalty": 10},
    )
    submitted_at = BASE + timedelta(hours=30)
    draft = submission(a.id, STUDENT_A.id)

    after_submit = lifecycle.submit(draft, a, submitted_at)
    assert after_submit["is_late"] is True
    assert after_submit["late_penalty"] == 20

    sub = AssignmentSubmission.model_validate({**draft.model_dump(exclude={"kind", "final_points"}), **after_submit})
    graded = lifecycle.grade(sub, a, 80, "inst-1", submitted_at + timedelta(days=1))
    final = AssignmentSubmission.model_validate({**sub.model_dump(exclude={"kind", "final_points"}), **graded})
    assert final.final_points == 64
