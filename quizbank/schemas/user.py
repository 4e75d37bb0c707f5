"""Pydantic schemas for accounts."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserBase(BaseModel):
    email: EmailStr = Field(..., examples=["instructor@example.com"])
    display_name: Optional[str] = Field(None, max_length=100, examples=["Ms. Frizzle"])


class UserCreate(UserBase):
    """Registration payload. Also claims a pending account created by a share."""

    password: str = Field(..., min_length=8, max_length=128)


class UserResponse(UserBase):
    """Public account data; never includes the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserProfile(UserResponse):
    """Current user's profile with library totals."""

    quiz_count: int = 0
    folder_count: int = 0
    shared_with_me_count: int = 0
