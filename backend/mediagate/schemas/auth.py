"""Authentication-related schemas."""
from __future__ import annotations

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=128)


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user_id: str
    username: str
    role: str


class TokenVerification(BaseModel):
    valid: bool = True
    user_id: str
    username: str
    role: str


class EmailCodeRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class EmailLoginRequest(EmailCodeRequest):
    code: str = Field(..., pattern=r"^\d{6}$")
