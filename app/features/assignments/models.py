from sqlalchemy import Column, String, Boolean, DateTime, Text, Integer, ForeignKey, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB, ARRAY
from sqlalchemy.sql import func
import uuid

from app.DB.base import Base


class Assignment(Base):
    __tablename__ = "assignments"
    __table_args__ = (
        CheckConstraint("due_date > start_date", name="ck_assignments_window"),
        CheckConstraint("max_points >= 1", name="ck_assignments_max_points"),
        CheckConstraint(
            "assignment_type in ('homework', 'quiz', 'exam', 'project', 'lab', 'discussion', 'coding', 'other')",
            name="ck_assignments_type",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    instructions = Column(Text, nullable=False, server_default="")
    instructor_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(UUID(as_uuid=True), ForeignKey("courses.id"), nullable=True, index=True)
    batch = Column(String(100), nullable=False, server_default="", index=True)  # "" means all batches
    assigned_students = Column(ARRAY(String), nullable=False, server_default="{}")
    start_date = Column(DateTime(timezone=True), nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=False)
    max_points = Column(Integer, nullable=False, server_default="100")
    assignment_type = Column(String(20), nullable=False, server_default="homework")
    coding_challenges = Column(JSONB, nullable=False, server_default="[]")
    settings = Column(JSONB, nullable=False, server_default="{}")
    rubric = Column(JSONB, nullable=False, server_default="[]")
    tags = Column(ARRAY(String), nullable=False, server_default="{}")
    is_published = Column(Boolean, nullable=False, server_default="false")
    published_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, server_default="true")
    version = Column(Integer, nullable=False, server_default="1")  # bumped on every roster write
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<Assignment id={self.id} title={self.title!r} batch={self.batch!r}>"
