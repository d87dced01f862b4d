from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class StudentPerformance(BaseModel):
    student_id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    batch: str = ""
    average_quiz_score: float = 0.0
    assignment_submission_rate: float = 0.0
    performance_score: float = 0.0
    total_assignments: int = 0
    submitted_assignments: int = 0
    total_quiz_submissions: int = 0


class CodingProfileSummary(BaseModel):
    average_problems_solved: float = 0.0
    average_rating: float = 0.0


class BatchAnalytics(BaseModel):
    batch: str
    total_students: int = 0
    average_quiz_score: float = 0.0
    average_assignment_submission_rate: float = 0.0
    top_performers: List[StudentPerformance] = Field(default_factory=list)
    bottom_performers: List[StudentPerformance] = Field(default_factory=list)
    coding_profile_summary: CodingProfileSummary = Field(default_factory=CodingProfileSummary)
    student_metrics: List[StudentPerformance] = Field(default_factory=list)


class KindStats(BaseModel):
    total: int = 0
    graded: int = 0
    average: float = 0.0


class OverallStats(BaseModel):
    total_submissions: int = 0
    total_graded: int = 0
    average_grade: float = 0.0


class CourseGradeStats(BaseModel):
    course_id: str
    assignment_stats: KindStats
    quiz_stats: KindStats
    overall_stats: OverallStats


class ExportRow(BaseModel):
    student_name: str = ""
    student_id: str = ""
    email: str = ""
    batch: str = ""
    type: Literal["Assignment", "Quiz"]
    title: str
    points: float = 0.0
    max_points: float = 100.0
    percentage: float = 0.0
    submitted_at: Optional[datetime] = None
    graded_at: Optional[datetime] = None


class GradeExport(BaseModel):
    course_id: str
    course_title: str
    course_code: str
    exported_at: datetime
    data: List[ExportRow] = Field(default_factory=list)


EXPORT_COLUMNS = list(ExportRow.model_fields)
