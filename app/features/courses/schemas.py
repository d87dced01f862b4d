from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.common.schemas import UtcDateTime
from app.common.utils import clean_batch

EnrollmentStatus = Literal["active", "dropped", "completed"]


class EnrollmentEntry(BaseModel):
    student_id: str
    enrolled_at: UtcDateTime
    status: EnrollmentStatus = "active"


class CourseSettings(BaseModel):
    allow_late_submissions: bool = False
    late_submission_penalty: float = Field(default=0, ge=0, le=100)
    max_enrollment: Optional[int] = Field(default=None, ge=1)


class QuizQuestion(BaseModel):
    question: str = Field(min_length=1)
    options: List[str] = Field(min_length=2)
    correct_answer: int = Field(ge=0)

    @model_validator(mode="after")
    def _answer_in_range(self) -> "QuizQuestion":
        if self.correct_answer >= len(self.options):
            raise ValueError("correct_answer must index one of the options")
        return self


class QuizDefinition(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    questions: List[QuizQuestion] = Field(min_length=1)


class PublicQuizQuestion(BaseModel):
    """Question as shown to students: no answer key."""
    question: str
    options: List[str]


class PublicQuiz(BaseModel):
    title: str
    questions: List[PublicQuizQuestion]


class CourseCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1, max_length=20)
    description: str = ""
    batch: str = ""
    settings: CourseSettings = Field(default_factory=CourseSettings)
    quizzes: List[QuizDefinition] = Field(default_factory=list)
    start_date: Optional[UtcDateTime] = None
    end_date: Optional[UtcDateTime] = None

    @field_validator("code")
    @classmethod
    def _upper_code(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("batch", mode="before")
    @classmethod
    def _trim_batch(cls, value: Optional[str]) -> str:
        return clean_batch(value)

    @model_validator(mode="after")
    def _dates(self) -> "CourseCreate":
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    batch: Optional[str] = None
    settings: Optional[CourseSettings] = None
    start_date: Optional[UtcDateTime] = None
    end_date: Optional[UtcDateTime] = None

    @field_validator("batch", mode="before")
    @classmethod
    def _trim_batch(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else clean_batch(value)


class Course(BaseModel):
    id: str
    title: str
    code: str
    description: str = ""
    instructor_id: str
    batch: str = ""
    enrolled_students: List[EnrollmentEntry] = Field(default_factory=list)
    settings: CourseSettings = Field(default_factory=CourseSettings)
    quizzes: List[QuizDefinition] = Field(default_factory=list)
    start_date: Optional[UtcDateTime] = None
    end_date: Optional[UtcDateTime] = None
    is_active: bool = True
    created_at: Optional[UtcDateTime] = None
    updated_at: Optional[UtcDateTime] = None

    model_config = {"from_attributes": True}

    @field_validator("batch", mode="before")
    @classmethod
    def _none_batch(cls, value: Optional[str]) -> str:
        return value or ""

    @property
    def active_enrollment_count(self) -> int:
        return sum(1 for e in self.enrolled_students if e.status == "active")

    def is_enrolled(self, student_id: str) -> bool:
        return any(e.student_id == student_id and e.status == "active" for e in self.enrolled_students)


class StudentCourseView(BaseModel):
    id: str
    title: str
    code: str
    description: str = ""
    instructor_id: str
    batch: str = ""
    start_date: Optional[UtcDateTime] = None
    end_date: Optional[UtcDateTime] = None
    is_enrolled: bool = False
    quizzes: List[PublicQuiz] = Field(default_factory=list)

    @classmethod
    def from_course(cls, course: Course, student_id: str) -> "StudentCourseView":
        return cls(
            id=course.id,
            title=course.title,
            code=course.code,
            description=course.description,
            instructor_id=course.instructor_id,
            batch=course.batch,
            start_date=course.start_date,
            end_date=course.end_date,
            is_enrolled=course.is_enrolled(student_id),
            quizzes=[
                PublicQuiz(
                    title=q.title,
                    questions=[PublicQuizQuestion(question=x.question, options=x.options) for x in q.questions],
                )
                for q in course.quizzes
            ],
        )


class CourseStats(BaseModel):
    course_id: str
    enrollment_count: int
    assignment_count: int
    quiz_count: int
    is_active: bool
    is_upcoming: bool
    duration_days: Optional[int] = None


class AutoEnrollResult(BaseModel):
    newly_enrolled: int
    already_enrolled: int
    total_found: int
    course_ids: List[str] = Field(default_factory=list)
