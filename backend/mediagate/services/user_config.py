"""Per-user provider configuration with field-level fallback to global defaults."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.core.security import SecretManager
from mediagate.models.config import UserProviderConfig
from mediagate.models.enums import Provider
from mediagate.schemas.config import ProviderConfigUpdate, SyncDefaultsRequest
from mediagate.services.global_config import (
    EffectiveConfig,
    apply_update,
    empty_fields,
    get_global_config,
    mask_fields,
    merge_fields,
    seal_fields,
    unseal_fields,
)

logger = logging.getLogger(__name__)


async def _load_record(session: AsyncSession, user_id: str) -> UserProviderConfig | None:
    result = await session.execute(select(UserProviderConfig).where(UserProviderConfig.user_id == user_id))
    return result.scalar_one_or_none()


async def ensure_user_config(session: AsyncSession, user_id: str) -> UserProviderConfig:
    """Return the user's override record, creating an all-empty one if missing.

    Safe to call concurrently: the unique ``user_id`` constraint decides the
    winner and losers re-read the stored row. Call it before any other pending
    writes in the session, since a lost race rolls the session back.
    """
    record = await _load_record(session, user_id)
    if record:
        return record
    record = UserProviderConfig(user_id=user_id, providers={p.value: empty_fields(p) for p in Provider})
    session.add(record)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        record = await _load_record(session, user_id)
        if record is None:
            raise
    else:
        logger.debug("Created provider configuration for user %s", user_id)
    return record


async def get_overrides(session: AsyncSession, secret_manager: SecretManager, user_id: str) -> dict[Provider, dict[str, str]]:
    record = await ensure_user_config(session, user_id)
    return {provider: unseal_fields(secret_manager, provider, record.providers.get(provider.value)) for provider in Provider}


async def get_effective_configs(
    session: AsyncSession, secret_manager: SecretManager, user_id: str
) -> dict[Provider, dict[str, str]]:
    """Unmasked effective configuration for every provider."""

    overrides = await get_overrides(session, secret_manager, user_id)
    defaults = await get_global_config(session, secret_manager)
    return {provider: merge_fields(provider, overrides[provider], defaults[provider]) for provider in Provider}


async def get_effective_config(
    session: AsyncSession, secret_manager: SecretManager, user_id: str, provider: Provider
) -> EffectiveConfig:
    configs = await get_effective_configs(session, secret_manager, user_id)
    return EffectiveConfig(provider=provider, **configs[provider])


async def get_display_config(session: AsyncSession, secret_manager: SecretManager, user_id: str) -> dict[str, dict[str, str]]:
    """Effective configuration with every key masked, for client-facing reads."""

    configs = await get_effective_configs(session, secret_manager, user_id)
    return {provider.value: mask_fields(fields) for provider, fields in configs.items()}


async def update_user_provider_config(
    session: AsyncSession,
    secret_manager: SecretManager,
    user_id: str,
    provider: Provider,
    update: ProviderConfigUpdate,
) -> dict[str, str]:
    """Write only the fields present in ``update``; return the masked effective result."""

    record = await ensure_user_config(session, user_id)
    current = unseal_fields(secret_manager, provider, record.providers.get(provider.value))
    updated = apply_update(provider, current, update)
    record.providers = {**record.providers, provider.value: seal_fields(secret_manager, updated)}
    await session.flush()
    logger.info("User %s updated %s configuration", user_id, provider.value)
    defaults = await get_global_config(session, secret_manager)
    return mask_fields(merge_fields(provider, updated, defaults[provider]))


async def sync_defaults(
    session: AsyncSession,
    secret_manager: SecretManager,
    user_id: str,
    request: SyncDefaultsRequest,
) -> list[Provider]:
    """Copy one server/key pair into the user's overrides for many providers.

    Empty values are never copied. Sora's character fields follow its main
    server and key.
    """
    targets = list(dict.fromkeys(request.providers)) if request.providers is not None else list(Provider)
    server = request.server.strip() if request.sync_server else ""
    key = request.key.strip() if request.sync_key else ""
    if not targets or not (server or key):
        return []

    record = await ensure_user_config(session, user_id)
    providers = dict(record.providers)
    for provider in targets:
        fields = unseal_fields(secret_manager, provider, providers.get(provider.value))
        if server:
            fields["server"] = server
            if provider is Provider.SORA:
                fields["character_server"] = server
        if key:
            fields["key"] = key
            if provider is Provider.SORA:
                fields["character_key"] = key
        providers[provider.value] = seal_fields(secret_manager, fields)
    record.providers = providers
    await session.flush()
    logger.info("User %s synced defaults to %s", user_id, ", ".join(p.value for p in targets))
    return targets


async def ensure_all_user_configs(session: AsyncSession, user_ids: list[str]) -> int:
    created = 0
    for user_id in user_ids:
        if await _load_record(session, user_id) is None:
            await ensure_user_config(session, user_id)
            created += 1
    return created
