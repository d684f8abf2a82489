"""Global provider configuration endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.core.dependencies import get_current_principal, get_db, get_secret_manager, require_admin
from mediagate.core.security import SecretManager
from mediagate.schemas.config import ConfigView, ProviderConfigUpdate
from mediagate.services import global_config as global_config_service
from mediagate.services.auth import Principal
from mediagate.services.global_config import mask_fields, parse_provider

router = APIRouter(prefix="/config", tags=["config"])


@router.get("", response_model=ConfigView)
async def get_global_config(
    session: AsyncSession = Depends(get_db),
    secret_manager: SecretManager = Depends(get_secret_manager),
    _: Principal = Depends(get_current_principal),
) -> ConfigView:
    view = await global_config_service.get_global_display(session, secret_manager)
    await session.commit()
    return view


@router.get("/full", response_model=ConfigView)
async def get_global_config_full(
    session: AsyncSession = Depends(get_db),
    secret_manager: SecretManager = Depends(get_secret_manager),
    _: Principal = Depends(require_admin),
) -> ConfigView:
    config = await global_config_service.get_global_config(session, secret_manager)
    await session.commit()
    return {provider.value: fields for provider, fields in config.items()}


@router.put("", response_model=ConfigView)
async def update_global_config(
    payload: dict[str, ProviderConfigUpdate],
    session: AsyncSession = Depends(get_db),
    secret_manager: SecretManager = Depends(get_secret_manager),
    _: Principal = Depends(require_admin),
) -> ConfigView:
    updates = [(parse_provider(name), update) for name, update in payload.items()]
    for provider, update in updates:
        await global_config_service.update_global_config(session, secret_manager, provider, update)
    view = await global_config_service.get_global_display(session, secret_manager)
    await session.commit()
    return view


@router.put("/{service}", response_model=dict[str, str])
async def update_global_service_config(
    service: str,
    payload: ProviderConfigUpdate,
    session: AsyncSession = Depends(get_db),
    secret_manager: SecretManager = Depends(get_secret_manager),
    _: Principal = Depends(require_admin),
) -> dict[str, str]:
    provider = parse_provider(service)
    updated = await global_config_service.update_global_config(session, secret_manager, provider, payload)
    await session.commit()
    return mask_fields(updated)
