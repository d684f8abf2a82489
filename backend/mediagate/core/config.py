"""Application configuration and settings management."""
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings loaded from environment variables or .env."""

    model_config = SettingsConfigDict(
        env_file=(Path(__file__).resolve().parent.parent / ".." / ".env"),
        env_file_encoding="utf-8",
        env_prefix="MEDIAGATE_",
        extra="ignore",
    )

    app_name: str = "MediaGate"
    secret_key: str = "change-me"
    encryption_key: str | None = None

    # Database
    database_url: str = "sqlite+aiosqlite:///./mediagate.db"

    # Security
    access_token_expire_minutes: int = 60 * 24 * 7
    allowed_origins: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    initial_credentials_file: str = "./initial_admin_credentials.txt"

    # Provider defaults, seeded into the global configuration record
    sora_server: str = ""
    sora_key: str = ""
    sora_character_server: str = ""
    sora_character_key: str = ""
    veo_server: str = ""
    veo_key: str = ""
    grok_server: str = ""
    grok_key: str = ""
    gemini_image_server: str = ""
    gemini_image_key: str = ""
    grok_image_server: str = ""
    grok_image_key: str = ""

    # Outbound timeouts (seconds)
    sora_create_timeout_seconds: float = 60
    video_create_timeout_seconds: float = 120
    video_query_timeout_seconds: float = 30
    image_timeout_seconds: float = 120

    # Pagination
    default_page_limit: int = 50
    max_page_limit: int = 100

    # Generated assets
    upload_dir: str = "./uploads"
    upload_url_prefix: str = "/uploads"

    # Verification codes
    verification_code_ttl_seconds: int = 300
    verification_resend_seconds: int = 60
    verification_max_entries: int = 10_000
    verification_purge_interval_seconds: int = 60

    # Background work
    shutdown_drain_timeout_seconds: float = 30

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: List[str] | str) -> List[str]:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    """Return memoized settings instance."""

    return Settings()


settings = get_settings()
