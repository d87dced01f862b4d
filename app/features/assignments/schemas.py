from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.common.schemas import UtcDateTime
from app.common.utils import clean_batch

AssignmentType = Literal["homework", "quiz", "exam", "project", "lab", "discussion", "coding", "other"]
Platform = Literal["leetcode", "hackerrank", "codechef", "codeforces", "other"]
Difficulty = Literal["easy", "medium", "hard"]
AssignmentStatus = Literal["scheduled", "active", "overdue"]


class CodingChallenge(BaseModel):
    platform: Platform
    title: str = Field(min_length=1, max_length=200)
    url: str
    assignment_number: Optional[int] = Field(default=None, ge=1)
    difficulty: Difficulty = "medium"

    @field_validator("url")
    @classmethod
    def _http_url(cls, value: str) -> str:
        value = value.strip()
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError("url must start with http:// or https://")
        return value


class AssignmentSettings(BaseModel):
    allow_late_submissions: bool = False
    late_submission_penalty: float = Field(default=0, ge=0, le=100)  # percent per started day
    max_attempts: int = Field(default=1, ge=1)
    require_file_upload: bool = False
    allowed_file_types: List[str] = Field(default_factory=list)
    max_file_size_mb: float = Field(default=10, gt=0)


class AssignmentSettingsPatch(BaseModel):
    allow_late_submissions: Optional[bool] = None
    late_submission_penalty: Optional[float] = Field(default=None, ge=0, le=100)
    max_attempts: Optional[int] = Field(default=None, ge=1)
    require_file_upload: Optional[bool] = None
    allowed_file_types: Optional[List[str]] = None
    max_file_size_mb: Optional[float] = Field(default=None, gt=0)


class RubricCriterion(BaseModel):
    criterion: str = Field(min_length=1)
    max_points: float = Field(ge=0)
    description: str = ""


def _default_type(coding_challenges: List[CodingChallenge]) -> AssignmentType:
    return "coding" if coding_challenges else "homework"


class AssignmentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    instructions: str = ""
    course_id: Optional[str] = None
    batch: str = ""
    assigned_students: List[str] = Field(default_factory=list)
    start_date: UtcDateTime
    due_date: UtcDateTime
    max_points: int = Field(default=100, ge=1)
    assignment_type: Optional[AssignmentType] = None
    coding_challenges: List[CodingChallenge] = Field(default_factory=list)
    settings: AssignmentSettings = Field(default_factory=AssignmentSettings)
    rubric: List[RubricCriterion] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)

    @field_validator("batch", mode="before")
    @classmethod
    def _trim_batch(cls, value: Optional[str]) -> str:
        return clean_batch(value)

    @model_validator(mode="after")
    def _check(self) -> "AssignmentCreate":
        if self.due_date <= self.start_date:
            raise ValueError("due_date must be after start_date")
        if self.assignment_type is None:
            self.assignment_type = _default_type(self.coding_challenges)
        self.assigned_students = list(dict.fromkeys(self.assigned_students))
        return self


class AssignmentUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    instructions: Optional[str] = None
    batch: Optional[str] = None
    assigned_students: Optional[List[str]] = None
    start_date: Optional[UtcDateTime] = None
    due_date: Optional[UtcDateTime] = None
    max_points: Optional[int] = Field(default=None, ge=1)
    assignment_type: Optional[AssignmentType] = None
    coding_challenges: Optional[List[CodingChallenge]] = None
    settings: Optional[AssignmentSettingsPatch] = None
    rubric: Optional[List[RubricCriterion]] = None
    tags: Optional[List[str]] = None

    @field_validator("batch", mode="before")
    @classmethod
    def _trim_batch(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else clean_batch(value)


class Assignment(BaseModel):
    id: str
    title: str
    description: str = ""
    instructions: str = ""
    instructor_id: str
    course_id: Optional[str] = None
    batch: str = ""
    assigned_students: List[str] = Field(default_factory=list)
    start_date: UtcDateTime
    due_date: UtcDateTime
    max_points: int = 100
    assignment_type: AssignmentType = "homework"
    coding_challenges: List[CodingChallenge] = Field(default_factory=list)
    settings: AssignmentSettings = Field(default_factory=AssignmentSettings)
    rubric: List[RubricCriterion] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    is_published: bool = False
    published_at: Optional[UtcDateTime] = None
    is_active: bool = True
    version: int = 1
    created_at: Optional[UtcDateTime] = None
    updated_at: Optional[UtcDateTime] = None

    model_config = {"from_attributes": True}

    # Stored labels are trimmed on write; read them verbatim so Python and
    # PostgREST filters compare the same string.
    @field_validator("batch", mode="before")
    @classmethod
    def _none_batch(cls, value: Optional[str]) -> str:
        return value or ""

    @field_validator("assigned_students", "tags", mode="before")
    @classmethod
    def _none_list(cls, value):
        return value or []


class AssignmentOut(Assignment):
    status: AssignmentStatus
    is_open: bool

    @classmethod
    def build(cls, assignment: Assignment, *, status: AssignmentStatus, is_open: bool) -> "AssignmentOut":
        return cls(**assignment.model_dump(), status=status, is_open=is_open)


class RosterChangeResult(BaseModel):
    message: str
    assignment: AssignmentOut
    auto_published: bool = False


class AutoAssignResult(BaseModel):
    message: str
    newly_assigned: int
    already_assigned: int
    total_found: int
    assignment_ids: List[str] = Field(default_factory=list)


class AssignmentStats(BaseModel):
    assignment_id: str
    total: int
    submitted: int
    graded: int
    ungraded: int
    late: int
    average_score: float
