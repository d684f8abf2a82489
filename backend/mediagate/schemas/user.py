"""Pydantic schemas for user operations."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mediagate.core.tokens import is_user_id

USERNAME_PATTERN = r"^[A-Za-z0-9_\-]+$"


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=32, pattern=USERNAME_PATTERN)
    password: str = Field(..., min_length=6, max_length=128)
    email: str | None = Field(default=None, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

    @field_validator("username")
    @classmethod
    def _not_id_shaped(cls, value: str) -> str:
        # Token subjects shaped like a user id are never looked up by username.
        if is_user_id(value.lower()):
            raise ValueError("username must not look like a user id")
        return value


class UserRead(BaseModel):
    id: str
    username: str
    email: str | None = None
    role: str
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class UserPasswordUpdate(BaseModel):
    old_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=6, max_length=128)


class PasswordReset(BaseModel):
    new_password: str = Field(..., min_length=6, max_length=128)
