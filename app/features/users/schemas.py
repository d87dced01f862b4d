"""Pydantic models for user resources."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.common.utils import clean_batch

Role = Literal["instructor", "student"]
CodingPlatform = Literal["leetcode", "hackerrank", "codechef", "codeforces"]


class CodingProfile(BaseModel):
    """A student's self-reported standing on one competitive-programming site."""
    username: str = ""
    url: str = ""
    problems_solved: Optional[int] = Field(default=None, ge=0)
    rating: Optional[float] = Field(default=None, ge=0)
    rank: str = ""
    badges: List[str] = Field(default_factory=list)


class UserRegistration(BaseModel):
    """Body of ``POST /auth/register``; identity comes from the verified token."""
    email: Optional[EmailStr] = None
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    role: Role = "student"
    student_id: Optional[str] = Field(default=None, max_length=50)
    batch: str = ""

    @field_validator("first_name", "last_name")
    @classmethod
    def _strip_names(cls, value: str) -> str:
        return value.strip()

    @field_validator("batch", mode="before")
    @classmethod
    def _trim_batch(cls, value: Optional[str]) -> str:
        return clean_batch(value)


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    student_id: Optional[str] = Field(default=None, max_length=50)
    batch: Optional[str] = None
    # Merged per platform into what is already stored.
    coding_profiles: Optional[Dict[CodingPlatform, CodingProfile]] = None

    @field_validator("batch", mode="before")
    @classmethod
    def _trim_batch(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else clean_batch(value)


class BatchUpdate(BaseModel):
    batch: str

    @field_validator("batch", mode="before")
    @classmethod
    def _trim_batch(cls, value: Optional[str]) -> str:
        return clean_batch(value)


class User(BaseModel):
    """Represents a user stored in the database."""
    id: str
    auth_subject: str
    email: str
    first_name: str = ""
    last_name: str = ""
    role: Role
    student_id: Optional[str] = None
    batch: str = ""
    coding_profiles: Dict[CodingPlatform, CodingProfile] = Field(default_factory=dict)
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("coding_profiles", mode="before")
    @classmethod
    def _none_profiles(cls, value):
        return value or {}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
