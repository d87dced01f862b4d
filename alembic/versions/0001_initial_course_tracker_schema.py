"""initial course tracker schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid(name: str, *args, **kwargs) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), *args, **kwargs)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _jsonb(name: str, default: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.JSONB(astext_type=sa.Text()),
        nullable=False,
        server_default=sa.text(f"'{default}'::jsonb"),
    )


def upgrade() -> None:
    op.create_table(
        "users",
        _uuid("id", primary_key=True, nullable=False, server_default=sa.text("gen_random_uuid()")),
        sa.Column("auth_subject", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="student"),
        sa.Column("student_id", sa.String(length=50), nullable=True),
        sa.Column("batch", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("role in ('instructor', 'student')", name="ck_users_role"),
    )
    op.create_index("ix_users_auth_subject", "users", ["auth_subject"], unique=True)
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_batch", "users", ["batch"])

    op.create_table(
        "courses",
        _uuid("id", primary_key=True, nullable=False, server_default=sa.text("gen_random_uuid()")),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        _uuid("instructor_id", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("batch", sa.String(length=100), nullable=False, server_default=""),
        _jsonb("enrolled_students", "[]"),
        _jsonb("settings", "{}"),
        _jsonb("quizzes", "[]"),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_courses_instructor_id", "courses", ["instructor_id"])
    op.create_index("ix_courses_batch", "courses", ["batch"])
    op.create_index(
        "uq_courses_code_active", "courses", ["code"], unique=True, postgresql_where=sa.text("is_active")
    )

    op.create_table(
        "assignments",
        _uuid("id", primary_key=True, nullable=False, server_default=sa.text("gen_random_uuid()")),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("instructions", sa.Text(), nullable=False, server_default=""),
        _uuid("instructor_id", sa.ForeignKey("users.id"), nullable=False),
        _uuid("course_id", sa.ForeignKey("courses.id"), nullable=True),
        sa.Column("batch", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("assigned_students", postgresql.ARRAY(sa.String()), nullable=False, server_default="{}"),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("max_points", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("assignment_type", sa.String(length=20), nullable=False, server_default="homework"),
        _jsonb("coding_challenges", "[]"),
        _jsonb("settings", "{}"),
        _jsonb("rubric", "[]"),
        sa.Column("tags", postgresql.ARRAY(sa.String()), nullable=False, server_default="{}"),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.CheckConstraint("due_date > start_date", name="ck_assignments_window"),
        sa.CheckConstraint("max_points >= 1", name="ck_assignments_max_points"),
        sa.CheckConstraint(
            "assignment_type in ('homework', 'quiz', 'exam', 'project', 'lab', 'discussion', 'coding', 'other')",
            name="ck_assignments_type",
        ),
    )
    op.create_index("ix_assignments_instructor_id", "assignments", ["instructor_id"])
    op.create_index("ix_assignments_course_id", "assignments", ["course_id"])
    op.create_index("ix_assignments_batch", "assignments", ["batch"])

    op.create_table(
        "assignment_submissions",
        _uuid("id", primary_key=True, nullable=False, server_default=sa.text("gen_random_uuid()")),
        _uuid("assignment_id", sa.ForeignKey("assignments.id", ondelete="SET NULL"), nullable=True),
        _uuid("student_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _uuid("course_id", sa.ForeignKey("courses.id"), nullable=True),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        _jsonb("attachments", "[]"),
        sa.Column("attempt_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_late", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("late_penalty", sa.Float(), nullable=False, server_default="0"),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
        _jsonb("grade", "{}"),
        *_timestamps(),
        sa.CheckConstraint("attempt_number >= 1", name="ck_assignment_submissions_attempt"),
        sa.CheckConstraint("late_penalty >= 0 AND late_penalty <= 100", name="ck_assignment_submissions_penalty"),
        sa.CheckConstraint(
            "status in ('draft', 'submitted', 'graded', 'returned')", name="ck_assignment_submissions_status"
        ),
    )
    op.create_index("ix_assignment_submissions_student_id", "assignment_submissions", ["student_id"])
    op.create_index("ix_assignment_submissions_course_id", "assignment_submissions", ["course_id"])
    op.create_index("ix_assignment_submissions_status", "assignment_submissions", ["status"])
    op.create_index(
        "uq_assignment_submissions_assignment_student",
        "assignment_submissions",
        ["assignment_id", "student_id"],
        unique=True,
        postgresql_where=sa.text("assignment_id IS NOT NULL"),
    )

    op.create_table(
        "quiz_submissions",
        _uuid("id", primary_key=True, nullable=False, server_default=sa.text("gen_random_uuid()")),
        _uuid("student_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _uuid("course_id", sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("quiz_index", sa.Integer(), nullable=False),
        _jsonb("answers", "[]"),
        sa.Column("score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("max_score", sa.Float(), nullable=False, server_default="100"),
        sa.Column("correct_answers", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_questions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="graded"),
        _jsonb("grade", "{}"),
        *_timestamps(),
        sa.UniqueConstraint("student_id", "course_id", "quiz_index", name="uq_quiz_submissions_student_course_quiz"),
        sa.CheckConstraint("quiz_index >= 0", name="ck_quiz_submissions_index"),
    )
    op.create_index("ix_quiz_submissions_student_id", "quiz_submissions", ["student_id"])
    op.create_index("ix_quiz_submissions_course_id", "quiz_submissions", ["course_id"])

    op.create_table(
        "notifications",
        _uuid("id", primary_key=True, nullable=False, server_default=sa.text("gen_random_uuid()")),
        _uuid("user_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        _jsonb("data", "{}"),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_expires_at", "notifications", ["expires_at"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("quiz_submissions")
    op.drop_table("assignment_submissions")
    op.drop_table("assignments")
    op.drop_table("courses")
    op.drop_table("users")
