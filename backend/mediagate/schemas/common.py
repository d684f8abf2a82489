"""Schemas shared across API areas."""
from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

ItemT = TypeVar("ItemT")


class Page(BaseModel, Generic[ItemT]):
    items: list[ItemT]
    total: int
    page: int
    limit: int


class DeletedCount(BaseModel):
    deleted: int


class Message(BaseModel):
    status: str = "success"
    message: str
