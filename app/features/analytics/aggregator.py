"""
Read-side rollups over already-fetched rows.

Nothing here touches storage. Both submission variants are consumed through
their ``ScoredItem`` view, so the arithmetic never branches on row shape.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.features.assignments.schemas import Assignment
from app.features.courses.schemas import Course
from app.features.submissions.schemas import (
    DEFAULT_MAX_POINTS,
    AssignmentSubmission,
    QuizSubmission,
    ScoredItem,
)
from app.features.users.schemas import User
from .schemas import (
    BatchAnalytics,
    CodingProfileSummary,
    CourseGradeStats,
    ExportRow,
    KindStats,
    OverallStats,
    StudentPerformance,
)

logger = logging.getLogger("analytics")

SUBMITTED_STATUSES = frozenset({"submitted", "graded", "returned"})
GRADED_STATUSES = frozenset({"graded", "returned"})
QUIZ_WEIGHT = 0.4
SUBMISSION_WEIGHT = 0.6
PERFORMER_COUNT = 5


@dataclass
class StudentRows:
    """One student's submissions, already scoped to the instructor's assignments and courses."""
    assignment_submissions: List[AssignmentSubmission] = field(default_factory=list)
    quiz_submissions: List[QuizSubmission] = field(default_factory=list)


def scored_items(
    rows: StudentRows, assignments_by_id: Mapping[str, Assignment]
) -> List[ScoredItem]:
    items = [
        s.as_scored(assignments_by_id.get(s.assignment_id or "")) for s in rows.assignment_submissions
    ]
    items.extend(q.as_scored() for q in rows.quiz_submissions)
    return items


def quiz_points(items: Iterable[ScoredItem]) -> Tuple[float, float, int]:
    """(earned, possible, count) over resolved quiz items that carry points."""
    earned = possible = 0.0
    count = 0
    for item in items:
        if not (item.resolved and item.is_quiz) or item.points is None:
            continue
        earned += item.points
        possible += item.max_points or DEFAULT_MAX_POINTS
        count += 1
    return earned, possible, count


def quiz_average(items: Iterable[ScoredItem]) -> float:
    earned, possible, _ = quiz_points(items)
    return earned / possible * 100 if possible > 0 else 0.0


def submitted_count(items: Iterable[ScoredItem]) -> int:
    return sum(
        1
        for item in items
        if item.resolved and not item.is_quiz and item.kind == "assignment" and item.status in SUBMITTED_STATUSES
    )


def submission_rate(submitted: int, total_non_quiz: int) -> float:
    return submitted / total_non_quiz * 100 if total_non_quiz > 0 else 0.0


def performance_score(quiz_avg: float, rate: float) -> float:
    return quiz_avg * QUIZ_WEIGHT + rate * SUBMISSION_WEIGHT


def student_performance(
    student: User,
    rows: StudentRows,
    assignments_by_id: Mapping[str, Assignment],
    total_non_quiz: int,
) -> StudentPerformance:
    items = scored_items(rows, assignments_by_id)
    quiz_avg = quiz_average(items)
    submitted = submitted_count(items)
    rate = submission_rate(submitted, total_non_quiz)
    return StudentPerformance(
        student_id=student.id,
        first_name=student.first_name,
        last_name=student.last_name,
        email=student.email,
        batch=student.batch,
        average_quiz_score=quiz_avg,
        assignment_submission_rate=rate,
        performance_score=performance_score(quiz_avg, rate),
        total_assignments=total_non_quiz,
        submitted_assignments=submitted,
        total_quiz_submissions=quiz_points(items)[2],
    )


def empty_performance(student: User, total_non_quiz: int) -> StudentPerformance:
    return StudentPerformance(
        student_id=student.id,
        first_name=student.first_name,
        last_name=student.last_name,
        email=student.email,
        batch=student.batch,
        total_assignments=total_non_quiz,
    )


def rank(metrics: Sequence[StudentPerformance]) -> Tuple[List[StudentPerformance], List[StudentPerformance]]:
    """Top performers best-first and bottom performers weakest-first, from one stable ranking."""
    ordered = sorted(metrics, key=lambda m: m.performance_score, reverse=True)
    top = ordered[:PERFORMER_COUNT]
    bottom = list(reversed(ordered[-PERFORMER_COUNT:])) if ordered else []
    return top, bottom


def coding_profile_summary(students: Iterable[User]) -> CodingProfileSummary:
    """Averages over every platform profile that reports a non-zero figure."""
    solved: List[float] = []
    ratings: List[float] = []
    for student in students:
        for profile in student.coding_profiles.values():
            if profile.problems_solved:
                solved.append(profile.problems_solved)
            if profile.rating:
                ratings.append(profile.rating)
    return CodingProfileSummary(average_problems_solved=_mean(solved), average_rating=_mean(ratings))


def batch_analytics(
    batch: str,
    students: Sequence[User],
    assignments: Sequence[Assignment],
    rows_by_student: Mapping[str, StudentRows],
) -> BatchAnalytics:
    if not students:
        return BatchAnalytics(batch=batch)

    assignments_by_id = {a.id: a for a in assignments}
    total_non_quiz = sum(1 for a in assignments if a.assignment_type != "quiz")
    metrics: List[StudentPerformance] = []
    for student in students:
        try:
            metrics.append(
                student_performance(
                    student, rows_by_student.get(student.id, StudentRows()), assignments_by_id, total_non_quiz
                )
            )
        except Exception:  # noqa: BLE001 - one bad record must not sink the batch report
            logger.warning("analytics.student_failed student_id=%s batch=%r", student.id, batch, exc_info=True)
            metrics.append(empty_performance(student, total_non_quiz))

    ordered = sorted(metrics, key=lambda m: m.performance_score, reverse=True)
    top, bottom = rank(ordered)
    count = len(ordered)
    return BatchAnalytics(
        batch=batch,
        total_students=count,
        average_quiz_score=sum(m.average_quiz_score for m in ordered) / count,
        average_assignment_submission_rate=sum(m.assignment_submission_rate for m in ordered) / count,
        top_performers=top,
        bottom_performers=bottom,
        coding_profile_summary=coding_profile_summary(students),
        student_metrics=ordered,
    )


# Per-course grade views


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def course_grade_stats(
    course_id: str,
    assignment_submissions: Sequence[AssignmentSubmission],
    quiz_submissions: Sequence[QuizSubmission],
) -> CourseGradeStats:
    assignment_stats = KindStats(
        total=len(assignment_submissions),
        graded=sum(1 for s in assignment_submissions if s.status in GRADED_STATUSES),
        average=_mean([s.grade.points or 0 for s in assignment_submissions]),
    )
    quiz_stats = KindStats(
        total=len(quiz_submissions),
        graded=sum(1 for q in quiz_submissions if q.status in GRADED_STATUSES),
        average=_mean([q.final_points or 0 for q in quiz_submissions]),
    )
    total = assignment_stats.total + quiz_stats.total
    overall = (
        (assignment_stats.average * assignment_stats.total + quiz_stats.average * quiz_stats.total) / total
        if total
        else 0.0
    )
    return CourseGradeStats(
        course_id=course_id,
        assignment_stats=assignment_stats,
        quiz_stats=quiz_stats,
        overall_stats=OverallStats(
            total_submissions=total,
            total_graded=assignment_stats.graded + quiz_stats.graded,
            average_grade=overall,
        ),
    )


def _identity(student: Optional[User]) -> Dict[str, str]:
    if student is None:
        return {"student_name": "", "student_id": "", "email": "", "batch": ""}
    return {
        "student_name": student.full_name,
        "student_id": student.student_id or "",
        "email": student.email,
        "batch": student.batch,
    }


def quiz_title(course: Optional[Course], quiz_index: int) -> str:
    if course is not None and 0 <= quiz_index < len(course.quizzes):
        return course.quizzes[quiz_index].title
    return f"Quiz {quiz_index + 1}"


def export_rows(
    course: Course,
    assignment_submissions: Sequence[AssignmentSubmission],
    quiz_submissions: Sequence[QuizSubmission],
    assignments_by_id: Mapping[str, Assignment],
    students_by_id: Mapping[str, User],
) -> List[ExportRow]:
    rows: List[ExportRow] = []
    for sub in assignment_submissions:
        assignment = assignments_by_id.get(sub.assignment_id or "")
        rows.append(
            ExportRow(
                **_identity(students_by_id.get(sub.student_id)),
                type="Assignment",
                title=assignment.title if assignment else "Unknown Assignment",
                points=sub.grade.points or 0,
                max_points=assignment.max_points if assignment else DEFAULT_MAX_POINTS,
                percentage=sub.grade.percentage or 0,
                submitted_at=sub.submitted_at,
                graded_at=sub.grade.graded_at,
            )
        )
    for quiz in quiz_submissions:
        rows.append(
            ExportRow(
                **_identity(students_by_id.get(quiz.student_id)),
                type="Quiz",
                title=quiz_title(course, quiz.quiz_index),
                points=quiz.final_points or 0,
                max_points=DEFAULT_MAX_POINTS,
                percentage=quiz.grade.percentage if quiz.grade.percentage is not None else quiz.score,
                submitted_at=quiz.submitted_at,
                graded_at=quiz.grade.graded_at,
            )
        )
    return rows


__all__ = [
    "StudentRows",
    "scored_items",
    "quiz_points",
    "quiz_average",
    "submitted_count",
    "submission_rate",
    "performance_score",
    "student_performance",
    "rank",
    "coding_profile_summary",
    "batch_analytics",
    "course_grade_stats",
    "quiz_title",
    "export_rows",
]
