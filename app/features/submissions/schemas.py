from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, computed_field, field_validator

from app.common.schemas import UtcDateTime
from app.features.assignments.schemas import Assignment

SubmissionStatus = Literal["draft", "submitted", "graded", "returned"]
LetterGrade = Literal["A+", "A", "A-", "B+", "B", "B-", "C+", "C", "C-", "D+", "D", "D-", "F"]

DEFAULT_MAX_POINTS = 100.0


class Attachment(BaseModel):
    """Metadata for a file held by the external file service."""
    filename: str = Field(min_length=1, max_length=255)
    original_name: str = ""
    mime_type: str = Field(min_length=1)
    size: int = Field(ge=0)
    url: str
    uploaded_at: Optional[UtcDateTime] = None

    @field_validator("url")
    @classmethod
    def _http_url(cls, value: str) -> str:
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError("url must be an http(s) URL")
        return value


class RubricScore(BaseModel):
    criterion: str
    points: float = Field(ge=0)
    comments: str = ""


class GradeInfo(BaseModel):
    """Grade block shared by both submission variants."""
    points: Optional[float] = Field(default=None, ge=0)
    percentage: Optional[float] = Field(default=None, ge=0, le=100)
    letter_grade: Optional[LetterGrade] = None
    graded_by: Optional[str] = None
    graded_at: Optional[UtcDateTime] = None
    feedback: str = ""
    rubric_scores: List[RubricScore] = Field(default_factory=list)

    @field_validator("feedback", mode="before")
    @classmethod
    def _none_feedback(cls, value: Optional[str]) -> str:
        return value or ""


@dataclass(frozen=True)
class ScoredItem:
    """Common read-side view of either submission variant."""
    kind: str
    submission_id: str
    student_id: str
    points: Optional[float]
    max_points: float
    submitted_at: Optional[datetime]
    status: str
    is_quiz: bool
    resolved: bool = True


def compute_final_points(points: Optional[float], late_penalty: float) -> Optional[float]:
    """Effective grade after the late penalty; derived on every read, never stored."""
    if points is None:
        return None
    return max(0.0, points - points * (late_penalty or 0) / 100)


class AssignmentSubmission(BaseModel):
    kind: Literal["assignment"] = "assignment"
    id: str
    assignment_id: Optional[str] = None
    student_id: str
    course_id: Optional[str] = None
    content: str = ""
    attachments: List[Attachment] = Field(default_factory=list)
    attempt_number: int = Field(default=1, ge=1)
    is_late: bool = False
    late_penalty: float = Field(default=0, ge=0, le=100)
    submitted_at: Optional[UtcDateTime] = None
    status: SubmissionStatus = "draft"
    grade: GradeInfo = Field(default_factory=GradeInfo)
    created_at: Optional[UtcDateTime] = None
    updated_at: Optional[UtcDateTime] = None

    model_config = {"from_attributes": True}

    @field_validator("grade", mode="before")
    @classmethod
    def _none_grade(cls, value):
        return value or {}

    @computed_field  # type: ignore[misc]
    @property
    def final_points(self) -> Optional[float]:
        return compute_final_points(self.grade.points, self.late_penalty)

    def as_scored(self, assignment: Optional[Assignment]) -> ScoredItem:
        return ScoredItem(
            kind=self.kind,
            submission_id=self.id,
            student_id=self.student_id,
            points=self.grade.points,
            max_points=float(assignment.max_points) if assignment else DEFAULT_MAX_POINTS,
            submitted_at=self.submitted_at,
            status=self.status,
            is_quiz=bool(assignment and assignment.assignment_type == "quiz"),
            resolved=assignment is not None,
        )


class QuizSubmission(BaseModel):
    kind: Literal["quiz"] = "quiz"
    id: str
    student_id: str
    course_id: str
    quiz_index: int = Field(ge=0)
    answers: List[Optional[int]] = Field(default_factory=list)
    score: float = 0
    max_score: float = DEFAULT_MAX_POINTS
    correct_answers: int = 0
    total_questions: int = 0
    submitted_at: Optional[UtcDateTime] = None
    status: SubmissionStatus = "graded"
    grade: GradeInfo = Field(default_factory=GradeInfo)
    created_at: Optional[UtcDateTime] = None
    updated_at: Optional[UtcDateTime] = None

    model_config = {"from_attributes": True}

    @field_validator("grade", mode="before")
    @classmethod
    def _none_grade(cls, value):
        return value or {}

    @computed_field  # type: ignore[misc]
    @property
    def final_points(self) -> Optional[float]:
        return self.grade.points if self.grade.points is not None else self.score

    def as_scored(self, assignment: Optional[Assignment] = None) -> ScoredItem:
        return ScoredItem(
            kind=self.kind,
            submission_id=self.id,
            student_id=self.student_id,
            points=self.final_points,
            max_points=self.max_score or DEFAULT_MAX_POINTS,
            submitted_at=self.submitted_at,
            status=self.status,
            is_quiz=True,
        )


Submission = Annotated[Union[AssignmentSubmission, QuizSubmission], Field(discriminator="kind")]


# REQUEST SCHEMAS

class SubmissionSave(BaseModel):
    assignment_id: str
    content: str = Field(default="", max_length=100_000)
    attachments: List[Attachment] = Field(default_factory=list)


class AttachmentUpload(BaseModel):
    attachments: List[Attachment] = Field(min_length=1, max_length=10)


class QuizSubmissionRequest(BaseModel):
    course_id: str
    quiz_index: int = Field(ge=0)
    answers: List[Optional[int]]


class GradeRequest(BaseModel):
    points: float = Field(ge=0)
    feedback: str = Field(default="", max_length=2000)
    rubric_scores: List[RubricScore] = Field(default_factory=list)


class LatePenaltyUpdate(BaseModel):
    late_penalty: float = Field(ge=0, le=100)


# RESPONSE SCHEMAS

class QuizAnswerDetail(BaseModel):
    question_index: int
    selected_option: Optional[int] = None
    correct_option: int
    is_correct: bool


class QuizSubmissionResult(BaseModel):
    message: str
    submission: QuizSubmission
    score: float
    correct_answers: int
    total_questions: int
    details: List[QuizAnswerDetail] = Field(default_factory=list)


class SubmissionDetail(BaseModel):
    submission: Submission
    assignment_title: Optional[str] = None
    quiz_title: Optional[str] = None
    quiz_details: Optional[List[QuizAnswerDetail]] = None
