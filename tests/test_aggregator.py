from datetime import timedelta

import pytest

from factories import BASE, STUDENT_A, STUDENT_B, assignment, course, quiz, submission, user_row

from app.features.analytics import aggregator
from app.features.analytics.aggregator import StudentRows
from app.features.submissions.schemas import QuizSubmission
from app.features.users.schemas import User


def _user(uid, batch="2026-CSE-A"):
    return User.model_validate(
        user_row(STUDENT_A, id=uid, auth_subject=f"sub-{uid}", email=f"{uid}@uni.test", batch=batch)
    )


def _quiz_sub(student_id, score, quiz_index=0, course_id="crs-1", **overrides):
    row = {
        "id": f"q-{student_id}-{quiz_index}",
        "student_id": student_id,
        "course_id": course_id,
        "quiz_index": quiz_index,
        "score": score,
        "submitted_at": BASE,
        "status": "graded",
    }
    row.update(overrides)
    return QuizSubmission.model_validate(row)


def test_quiz_average_is_earned_over_possible():
    rows = StudentRows(quiz_submissions=[_quiz_sub("s", 80), _quiz_sub("s", 40, quiz_index=1)])
    items = aggregator.scored_items(rows, {})
    assert aggregator.quiz_average(items) == pytest.approx(60)
    assert aggregator.quiz_points(items) == (120, 200, 2)


def test_quiz_type_assignment_counts_as_quiz():
    q_asg = assignment(id="asg-q", assignment_type="quiz", max_points=50)
    graded = submission("asg-q", "s", status="graded", grade={"points": 25, "percentage": 50})
    items = aggregator.scored_items(StudentRows(assignment_submissions=[graded]), {"asg-q": q_asg})
    assert aggregator.quiz_average(items) == pytest.approx(50)
    assert aggregator.submitted_count(items) == 0


def test_submitted_count_uses_submitted_statuses():
    a1, a2, a3 = assignment(id="a1"), assignment(id="a2"), assignment(id="a3")
    rows = StudentRows(
        assignment_submissions=[
            submission("a1", "s", status="draft"),
            submission("a2", "s", status="submitted"),
            submission("a3", "s", status="returned"),
            submission("gone", "s", status="submitted"),
        ]
    )
    items = aggregator.scored_items(rows, {"a1": a1, "a2": a2, "a3": a3})
    assert aggregator.submitted_count(items) == 2


def test_rates_are_zero_when_nothing_to_measure():
    assert aggregator.submission_rate(0, 0) == 0
    assert aggregator.quiz_average([]) == 0


def test_performance_score_weights():
    assert aggregator.performance_score(80, 50) == pytest.approx(80 * 0.4 + 50 * 0.6)


def test_batch_analytics_formulas():
    students = [_user("s1"), _user("s2")]
    assignments = [assignment(id="a1"), assignment(id="a2")]
    rows = {
        "s1": StudentRows(
            assignment_submissions=[submission("a1", "s1", status="submitted"), submission("a2", "s1", status="graded")],
            quiz_submissions=[_quiz_sub("s1", 90)],
        ),
        "s2": StudentRows(quiz_submissions=[_quiz_sub("s2", 50)]),
    }
    report = aggregator.batch_analytics("2026-CSE-A", students, assignments, rows)

    assert report.total_students == 2
    s1, s2 = report.student_metrics
    assert s1.student_id == "s1"
    assert s1.assignment_submission_rate == pytest.approx(100)
    assert s1.performance_score == pytest.approx(90 * 0.4 + 100 * 0.6)
    assert s2.performance_score == pytest.approx(50 * 0.4)
    assert s2.submitted_assignments == 0
    assert report.average_quiz_score == pytest.approx(70)
    assert report.average_assignment_submission_rate == pytest.approx(50)


def test_empty_batch():
    report = aggregator.batch_analytics("2026-CSE-Z", [], [], {})
    assert report.total_students == 0
    assert report.top_performers == [] and report.bottom_performers == []


def test_rank_top_and_bottom():
    students = [_user(f"s{i}") for i in range(7)]
    rows = {f"s{i}": StudentRows(quiz_submissions=[_quiz_sub(f"s{i}", i * 10)]) for i in range(7)}
    report = aggregator.batch_analytics("2026-CSE-A", students, [], rows)

    assert [m.student_id for m in report.top_performers] == ["s6", "s5", "s4", "s3", "s2"]
    assert [m.student_id for m in report.bottom_performers] == ["s0", "s1", "s2", "s3", "s4"]


def test_small_batch_top_and_bottom_overlap():
    students = [_user("s1"), _user("s2")]
    rows = {"s1": StudentRows(quiz_submissions=[_quiz_sub("s1", 90)])}
    report = aggregator.batch_analytics("2026-CSE-A", students, [], rows)
    assert [m.student_id for m in report.top_performers] == ["s1", "s2"]
    assert [m.student_id for m in report.bottom_performers] == ["s2", "s1"]


def test_one_bad_student_degrades_to_zero_metrics(monkeypatch):
    students = [_user("good"), _user("bad")]
    rows = {
        "good": StudentRows(quiz_submissions=[_quiz_sub("good", 100)]),
        "bad": StudentRows(quiz_submissions=[_quiz_sub("bad", 100)]),
    }
    real = aggregator.student_performance

    def flaky(student, *args, **kwargs):
        if student.id == "bad":
            raise RuntimeError("corrupt row")
        return real(student, *args, **kwargs)

    monkeypatch.setattr(aggregator, "student_performance", flaky)
    report = aggregator.batch_analytics("2026-CSE-A", students, [], rows)

    by_id = {m.student_id: m for m in report.student_metrics}
    assert report.total_students == 2
    assert by_id["good"].average_quiz_score == pytest.approx(100)
    assert by_id["bad"].performance_score == 0
    assert by_id["bad"].average_quiz_score == 0


def test_course_grade_stats_weighted_overall():
    subs = [
        submission("a1", "s1", status="graded", grade={"points": 80, "percentage": 80}),
        submission("a1", "s2", status="submitted"),
    ]
    quizzes = [_quiz_sub("s1", 100), _quiz_sub("s2", 70), _quiz_sub("s3", 40)]
    stats = aggregator.course_grade_stats("crs-1", subs, quizzes)

    assert stats.assignment_stats.total == 2
    assert stats.assignment_stats.graded == 1
    assert stats.assignment_stats.average == pytest.approx(40)
    assert stats.quiz_stats.average == pytest.approx(70)
    assert stats.overall_stats.total_submissions == 5
    assert stats.overall_stats.total_graded == 4
    assert stats.overall_stats.average_grade == pytest.approx((40 * 2 + 70 * 3) / 5)


def test_course_grade_stats_empty():
    stats = aggregator.course_grade_stats("crs-1", [], [])
    assert stats.overall_stats.average_grade == 0


def test_quiz_title_falls_back_to_position():
    crs = course(quizzes=[quiz(title="Pointers")])
    assert aggregator.quiz_title(crs, 0) == "Pointers"
    assert aggregator.quiz_title(crs, 3) == "Quiz 4"


def test_export_rows_cover_both_kinds_and_missing_references():
    crs = course(id="crs-1", quizzes=[quiz(title="Pointers")])
    asg = assignment(id="a1", title="Linked Lists", max_points=50)
    student = User.model_validate(user_row(STUDENT_B))
    subs = [
        submission(
            "a1", STUDENT_B.id, status="graded", submitted_at=BASE,
            grade={"points": 40, "percentage": 80, "graded_at": BASE + timedelta(hours=1)},
        ),
        submission("deleted", "ghost", status="submitted"),
    ]
    rows = aggregator.export_rows(crs, subs, [_quiz_sub(STUDENT_B.id, 75)], {"a1": asg}, {STUDENT_B.id: student})

    first, orphan, quiz_row = rows
    assert first.type == "Assignment" and first.title == "Linked Lists"
    assert first.student_name == student.full_name
    assert first.max_points == 50 and first.points == 40 and first.percentage == 80
    assert orphan.title == "Unknown Assignment"
    assert orphan.student_name == "" and orphan.email == ""
    assert quiz_row.type == "Quiz" and quiz_row.title == "Pointers"
    assert quiz_row.points == 75 and quiz_row.percentage == 75


def test_coding_profile_summary_skips_unreported_figures():
    students = [
        User.model_validate(
            user_row(
                STUDENT_A,
                id="p1",
                coding_profiles={
                    "leetcode": {"username": "p1", "problems_solved": 120, "rating": 1500},
                    "codeforces": {"username": "p1", "problems_solved": 30, "rating": 0},
                },
            )
        ),
        User.model_validate(user_row(STUDENT_A, id="p2", coding_profiles=None)),
    ]
    summary = aggregator.coding_profile_summary(students)
    assert summary.average_problems_solved == pytest.approx(75)
    assert summary.average_rating == pytest.approx(1500)
    assert aggregator.coding_profile_summary([]).average_problems_solved == 0
