from sqlalchemy import Column, String, Boolean, DateTime, CheckConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.sql import func
import uuid

from app.DB.base import Base


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role in ('instructor', 'student')", name="ck_users_role"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    auth_subject = Column(String(255), unique=True, nullable=False, index=True)  # identity provider subject
    email = Column(String(255), nullable=False, index=True)
    first_name = Column(String(100), nullable=False, server_default="")
    last_name = Column(String(100), nullable=False, server_default="")
    role = Column(String(20), nullable=False, server_default="student", index=True)
    student_id = Column(String(50), nullable=True)
    batch = Column(String(100), nullable=False, server_default="", index=True)
    coding_profiles = Column(JSONB, nullable=False, server_default="{}")  # platform -> profile
    is_active = Column(Boolean, nullable=False, server_default="true")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role} batch={self.batch!r}>"
