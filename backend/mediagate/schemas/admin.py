"""Schemas for administrative views."""
from __future__ import annotations

from pydantic import BaseModel

from mediagate.schemas.user import UserRead


class AdminUserRead(UserRead):
    video_task_count: int = 0
    image_task_count: int = 0


class AdminUserDetail(AdminUserRead):
    config: dict[str, dict[str, str]]


class SystemStats(BaseModel):
    total_users: int
    total_video_tasks: int
    total_image_tasks: int
    video_by_provider: dict[str, int]
    video_by_status: dict[str, int]
    image_by_status: dict[str, int]
