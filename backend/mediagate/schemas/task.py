"""Schemas for generation task records."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class TaskRead(BaseModel):
    external_id: str
    user_id: str
    provider: str
    kind: str
    model: str
    prompt: str
    params: dict[str, Any] | None = None
    status: str
    progress: int
    asset_urls: list[str] | None = None
    thumbnail_url: str | None = None
    error: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
