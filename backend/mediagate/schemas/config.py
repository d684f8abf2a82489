"""Schemas for provider configuration reads and updates."""
from __future__ import annotations

from pydantic import BaseModel, Field

from mediagate.models.enums import Provider


class ProviderConfigUpdate(BaseModel):
    """Partial update: omitted fields are left untouched, empty strings clear an override."""

    server: str | None = Field(default=None, max_length=512)
    key: str | None = Field(default=None, max_length=512)
    character_server: str | None = Field(default=None, max_length=512)
    character_key: str | None = Field(default=None, max_length=512)


class SyncDefaultsRequest(BaseModel):
    server: str = Field(default="", max_length=512)
    key: str = Field(default="", max_length=512)
    sync_server: bool = True
    sync_key: bool = True
    providers: list[Provider] | None = None


class SyncDefaultsResult(BaseModel):
    providers: list[Provider]


ConfigView = dict[str, dict[str, str]]
