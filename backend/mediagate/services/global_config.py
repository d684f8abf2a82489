"""Process-wide provider defaults and helpers shared with per-user configuration."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.core.config import Settings, get_settings
from mediagate.core.errors import ValidationError
from mediagate.core.security import SecretManager, mask_key
from mediagate.models.config import GlobalConfig
from mediagate.models.enums import Provider
from mediagate.schemas.config import ProviderConfigUpdate

logger = logging.getLogger(__name__)

GLOBAL_CONFIG_NAME = "default"

PROVIDER_FIELDS: dict[Provider, tuple[str, ...]] = {
    Provider.SORA: ("server", "key", "character_server", "character_key"),
    Provider.VEO: ("server", "key"),
    Provider.GROK: ("server", "key"),
    Provider.GEMINI_IMAGE: ("server", "key"),
    Provider.GROK_IMAGE: ("server", "key"),
}
SECRET_FIELDS = frozenset({"key", "character_key"})


@dataclass(frozen=True, slots=True)
class EffectiveConfig:
    """Resolved endpoint and credentials for one provider."""

    provider: Provider
    server: str = ""
    key: str = ""
    character_server: str = ""
    character_key: str = ""


def parse_provider(name: str) -> Provider:
    try:
        return Provider(name)
    except ValueError as exc:
        valid = ", ".join(provider.value for provider in Provider)
        raise ValidationError(f"Invalid service: {name}. Valid services are: {valid}") from exc


def empty_fields(provider: Provider) -> dict[str, str]:
    return {field: "" for field in PROVIDER_FIELDS[provider]}


def merge_fields(provider: Provider, override: Mapping[str, str], default: Mapping[str, str]) -> dict[str, str]:
    """Field-level fallback: every empty override field takes the default's value."""

    return {field: override.get(field) or default.get(field) or "" for field in PROVIDER_FIELDS[provider]}


def apply_update(provider: Provider, current: Mapping[str, str], update: ProviderConfigUpdate) -> dict[str, str]:
    merged = {field: current.get(field, "") for field in PROVIDER_FIELDS[provider]}
    for field in PROVIDER_FIELDS[provider]:
        value = getattr(update, field)
        if value is not None:
            merged[field] = value.strip()
    return merged


def mask_fields(fields: Mapping[str, str]) -> dict[str, str]:
    return {name: mask_key(value) if name in SECRET_FIELDS else value for name, value in fields.items()}


def seal_fields(secret_manager: SecretManager, fields: Mapping[str, str]) -> dict[str, str]:
    return {
        name: secret_manager.encrypt(value) if name in SECRET_FIELDS and value else value
        for name, value in fields.items()
    }


def unseal_fields(secret_manager: SecretManager, provider: Provider, stored: Mapping[str, str] | None) -> dict[str, str]:
    fields = empty_fields(provider)
    for name in fields:
        value = (stored or {}).get(name) or ""
        if name in SECRET_FIELDS and value:
            try:
                value = secret_manager.decrypt(value)
            except ValueError:
                logger.warning("Stored %s %s could not be decrypted; treating it as empty", provider.value, name)
                value = ""
        fields[name] = value
    return fields


def defaults_from_settings(settings: Settings) -> dict[Provider, dict[str, str]]:
    return {
        Provider.SORA: {
            "server": settings.sora_server,
            "key": settings.sora_key,
            "character_server": settings.sora_character_server,
            "character_key": settings.sora_character_key,
        },
        Provider.VEO: {"server": settings.veo_server, "key": settings.veo_key},
        Provider.GROK: {"server": settings.grok_server, "key": settings.grok_key},
        Provider.GEMINI_IMAGE: {"server": settings.gemini_image_server, "key": settings.gemini_image_key},
        Provider.GROK_IMAGE: {"server": settings.grok_image_server, "key": settings.grok_image_key},
    }


async def _load_record(session: AsyncSession) -> GlobalConfig | None:
    result = await session.execute(select(GlobalConfig).where(GlobalConfig.name == GLOBAL_CONFIG_NAME))
    return result.scalar_one_or_none()


async def get_global_record(session: AsyncSession, secret_manager: SecretManager) -> GlobalConfig:
    """Return the global configuration row, seeding it from settings on first access."""

    record = await _load_record(session)
    if record:
        return record
    defaults = defaults_from_settings(get_settings())
    record = GlobalConfig(
        name=GLOBAL_CONFIG_NAME,
        providers={provider.value: seal_fields(secret_manager, fields) for provider, fields in defaults.items()},
    )
    session.add(record)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        record = await _load_record(session)
        if record is None:
            raise
    else:
        logger.info("Seeded global provider configuration from settings")
    return record


async def get_global_config(session: AsyncSession, secret_manager: SecretManager) -> dict[Provider, dict[str, str]]:
    record = await get_global_record(session, secret_manager)
    return {provider: unseal_fields(secret_manager, provider, record.providers.get(provider.value)) for provider in Provider}


async def get_global_display(session: AsyncSession, secret_manager: SecretManager) -> dict[str, dict[str, str]]:
    config = await get_global_config(session, secret_manager)
    return {provider.value: mask_fields(fields) for provider, fields in config.items()}


async def update_global_config(
    session: AsyncSession,
    secret_manager: SecretManager,
    provider: Provider,
    update: ProviderConfigUpdate,
) -> dict[str, str]:
    record = await get_global_record(session, secret_manager)
    current = unseal_fields(secret_manager, provider, record.providers.get(provider.value))
    updated = apply_update(provider, current, update)
    record.providers = {**record.providers, provider.value: seal_fields(secret_manager, updated)}
    await session.flush()
    logger.info("Updated global %s configuration", provider.value)
    return updated
