from sqlalchemy import Column, String, Boolean, DateTime, Text, ForeignKey, Index, text
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.sql import func
import uuid

from app.DB.base import Base


class Course(Base):
    __tablename__ = "courses"
    __table_args__ = (
        # A code may be reused once the previous course is soft-deleted.
        Index("uq_courses_code_active", "code", unique=True, postgresql_where=text("is_active")),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    code = Column(String(20), nullable=False)
    description = Column(Text, nullable=False, server_default="")
    instructor_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    batch = Column(String(100), nullable=False, server_default="", index=True)
    enrolled_students = Column(JSONB, nullable=False, server_default="[]")
    settings = Column(JSONB, nullable=False, server_default="{}")
    quizzes = Column(JSONB, nullable=False, server_default="[]")
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, server_default="true")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<Course id={self.id} code={self.code}>"
