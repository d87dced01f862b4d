from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    Text,
    Integer,
    Float,
    ForeignKey,
    Index,
    UniqueConstraint,
    CheckConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.sql import func
import uuid

from app.DB.base import Base


class AssignmentSubmission(Base):
    __tablename__ = "assignment_submissions"
    __table_args__ = (
        # One submission per (assignment, student); rows without an assignment are not constrained.
        Index(
            "uq_assignment_submissions_assignment_student",
            "assignment_id",
            "student_id",
            unique=True,
            postgresql_where=text("assignment_id IS NOT NULL"),
        ),
        CheckConstraint("attempt_number >= 1", name="ck_assignment_submissions_attempt"),
        CheckConstraint("late_penalty >= 0 AND late_penalty <= 100", name="ck_assignment_submissions_penalty"),
        CheckConstraint(
            "status in ('draft', 'submitted', 'graded', 'returned')", name="ck_assignment_submissions_status"
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    assignment_id = Column(UUID(as_uuid=True), ForeignKey("assignments.id", ondelete="SET NULL"), nullable=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(UUID(as_uuid=True), ForeignKey("courses.id"), nullable=True, index=True)
    content = Column(Text, nullable=False, server_default="")
    attachments = Column(JSONB, nullable=False, server_default="[]")
    attempt_number = Column(Integer, nullable=False, server_default="1")
    is_late = Column(Boolean, nullable=False, server_default="false")
    late_penalty = Column(Float, nullable=False, server_default="0")
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=False, server_default="draft", index=True)
    grade = Column(JSONB, nullable=False, server_default="{}")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class QuizSubmission(Base):
    __tablename__ = "quiz_submissions"
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", "quiz_index", name="uq_quiz_submissions_student_course_quiz"),
        CheckConstraint("quiz_index >= 0", name="ck_quiz_submissions_index"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(UUID(as_uuid=True), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_index = Column(Integer, nullable=False)
    answers = Column(JSONB, nullable=False, server_default="[]")
    score = Column(Float, nullable=False, server_default="0")
    max_score = Column(Float, nullable=False, server_default="100")
    correct_answers = Column(Integer, nullable=False, server_default="0")
    total_questions = Column(Integer, nullable=False, server_default="0")
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=False, server_default="graded")
    grade = Column(JSONB, nullable=False, server_default="{}")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
