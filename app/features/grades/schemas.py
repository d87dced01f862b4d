from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

ExportFormat = Literal["json", "csv"]


class SummaryEntry(BaseModel):
    submission_id: str
    kind: Literal["assignment", "quiz"]
    title: str
    points: float
    max_points: float
    percentage: float


class CourseGradeSummary(BaseModel):
    course_id: Optional[str] = None
    course_title: str = ""
    total_points: float = 0.0
    max_points: float = 0.0
    average_grade: float = 0.0
    submissions: List[SummaryEntry] = Field(default_factory=list)


class StudentGradeSummary(BaseModel):
    courses: List[CourseGradeSummary] = Field(default_factory=list)
