"""Schemas for image generation requests and task views."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

DEFAULT_IMAGE_MODEL = "gemini-3-pro-image-preview"
MAX_REFERENCE_IMAGES = 5


class ReferenceImage(BaseModel):
    mime_type: str = Field(..., pattern=r"^image/[\w.+-]+$")
    data: str = Field(..., min_length=1)


class ImageCreateRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    model: str = DEFAULT_IMAGE_MODEL
    aspect_ratio: str = "1:1"
    image_size: str = "1K"
    size: str = "1024x1024"
    n: int = Field(default=1, ge=1, le=4)
    reference_images: list[ReferenceImage] = Field(default_factory=list, max_length=MAX_REFERENCE_IMAGES)


class ImageAccepted(BaseModel):
    id: str
    status: str


class GeneratedImage(BaseModel):
    mime_type: str
    data: str | None = None
    url: str | None = None


class ImageGenerateResult(BaseModel):
    status: str
    images: list[GeneratedImage]
    raw: dict | None = None


class ImageTaskView(BaseModel):
    id: str
    status: str
    prompt: str
    model: str
    aspect_ratio: str | None = None
    image_size: str | None = None
    images: list[GeneratedImage] | None = None
    error: str | None = None
    created_at: datetime
