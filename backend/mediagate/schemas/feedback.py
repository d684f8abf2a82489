"""Schemas for feedback tickets."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from mediagate.models.enums import FeedbackStatus, FeedbackType


class FeedbackCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    content: str = Field(..., min_length=1, max_length=2000)
    type: FeedbackType = FeedbackType.OTHER


class FeedbackReply(BaseModel):
    reply: str = Field(..., min_length=1, max_length=2000)
    status: FeedbackStatus = FeedbackStatus.REPLIED


class FeedbackStatusUpdate(BaseModel):
    status: FeedbackStatus


class FeedbackRead(BaseModel):
    id: str
    user_id: str
    username: str
    title: str
    content: str
    type: str
    status: str
    admin_reply: str | None = None
    replied_at: datetime | None = None
    replied_by: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FeedbackStats(BaseModel):
    total: int
    by_status: dict[str, int]
    by_type: dict[str, int]
