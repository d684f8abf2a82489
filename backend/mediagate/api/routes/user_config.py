"""Per-user provider configuration endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.core.dependencies import get_current_principal, get_db, get_secret_manager
from mediagate.core.security import SecretManager
from mediagate.schemas.config import ConfigView, ProviderConfigUpdate, SyncDefaultsRequest, SyncDefaultsResult
from mediagate.services import user_config as user_config_service
from mediagate.services.auth import Principal
from mediagate.services.global_config import parse_provider

router = APIRouter(prefix="/user-config", tags=["user-config"])


@router.get("", response_model=ConfigView)
async def get_user_config(
    session: AsyncSession = Depends(get_db),
    secret_manager: SecretManager = Depends(get_secret_manager),
    principal: Principal = Depends(get_current_principal),
) -> ConfigView:
    view = await user_config_service.get_display_config(session, secret_manager, principal.user_id)
    await session.commit()
    return view


@router.get("/full", response_model=ConfigView)
async def get_user_config_full(
    session: AsyncSession = Depends(get_db),
    secret_manager: SecretManager = Depends(get_secret_manager),
    principal: Principal = Depends(get_current_principal),
) -> ConfigView:
    configs = await user_config_service.get_effective_configs(session, secret_manager, principal.user_id)
    await session.commit()
    return {provider.value: fields for provider, fields in configs.items()}


@router.put("/sync-default", response_model=SyncDefaultsResult)
async def sync_default(
    payload: SyncDefaultsRequest,
    session: AsyncSession = Depends(get_db),
    secret_manager: SecretManager = Depends(get_secret_manager),
    principal: Principal = Depends(get_current_principal),
) -> SyncDefaultsResult:
    providers = await user_config_service.sync_defaults(session, secret_manager, principal.user_id, payload)
    await session.commit()
    return SyncDefaultsResult(providers=providers)


@router.put("/{service}", response_model=dict[str, str])
async def update_user_config(
    service: str,
    payload: ProviderConfigUpdate,
    session: AsyncSession = Depends(get_db),
    secret_manager: SecretManager = Depends(get_secret_manager),
    principal: Principal = Depends(get_current_principal),
) -> dict[str, str]:
    provider = parse_provider(service)
    view = await user_config_service.update_user_provider_config(
        session, secret_manager, principal.user_id, provider, payload
    )
    await session.commit()
    return view
