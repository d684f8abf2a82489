"""Request schemas for video generation providers."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class SoraCreateRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    model: str = "sora-2"
    images: list[str] = Field(default_factory=list)
    orientation: Literal["portrait", "landscape"] = "landscape"
    size: Literal["small", "large"] = "small"
    duration: int = Field(default=10, ge=1, le=60)
    watermark: bool = True
    private: bool = False


class SoraCharacterRequest(BaseModel):
    timestamps: str = Field(..., min_length=1)
    url: str | None = None
    from_task: str | None = None
