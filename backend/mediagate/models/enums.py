"""Enumerations shared by models, schemas and services."""
from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


class Provider(str, Enum):
    SORA = "sora"
    VEO = "veo"
    GROK = "grok"
    GEMINI_IMAGE = "gemini_image"
    GROK_IMAGE = "grok_image"

    @property
    def kind(self) -> "TaskKind":
        if self in (Provider.GEMINI_IMAGE, Provider.GROK_IMAGE):
            return TaskKind.IMAGE
        return TaskKind.VIDEO


class TaskKind(str, Enum):
    VIDEO = "video"
    IMAGE = "image"


class TaskStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class FeedbackType(str, Enum):
    BUG = "bug"
    FEATURE = "feature"
    QUESTION = "question"
    OTHER = "other"


class FeedbackStatus(str, Enum):
    OPEN = "open"
    REPLIED = "replied"
    RESOLVED = "resolved"
    CLOSED = "closed"
