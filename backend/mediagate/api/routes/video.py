"""Sora video endpoints."""
from __future__ import annotations

from typing import Any

import httpx
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.core.dependencies import get_current_principal, get_db, get_http_transport, provider_config
from mediagate.models.enums import Provider
from mediagate.schemas.video import SoraCharacterRequest, SoraCreateRequest
from mediagate.services import video as video_service
from mediagate.services.auth import Principal
from mediagate.services.global_config import EffectiveConfig
from mediagate.services.video import SoraGateway

router = APIRouter(prefix="/video", tags=["sora"])


@router.post("/create")
async def create_video(
    payload: SoraCreateRequest,
    session: AsyncSession = Depends(get_db),
    config: EffectiveConfig = Depends(provider_config(Provider.SORA)),
    transport: httpx.AsyncBaseTransport | None = Depends(get_http_transport),
    principal: Principal = Depends(get_current_principal),
) -> dict[str, Any]:
    response = await SoraGateway(config, transport).create_video(payload)
    await video_service.record_created_task(
        session,
        principal.user_id,
        Provider.SORA,
        model=payload.model,
        prompt=payload.prompt,
        params=payload.model_dump(exclude={"prompt", "model"}),
        response=response,
    )
    return response


@router.get("/query")
async def query_video(
    task_id: str = Query(..., alias="id", min_length=1),
    session: AsyncSession = Depends(get_db),
    config: EffectiveConfig = Depends(provider_config(Provider.SORA)),
    transport: httpx.AsyncBaseTransport | None = Depends(get_http_transport),
    principal: Principal = Depends(get_current_principal),
) -> dict[str, Any]:
    response = await SoraGateway(config, transport).query_video(task_id)
    await video_service.reconcile_query(session, principal.user_id, Provider.SORA, task_id, response)
    return response


@router.post("/character")
async def create_character(
    payload: SoraCharacterRequest,
    config: EffectiveConfig = Depends(provider_config(Provider.SORA)),
    transport: httpx.AsyncBaseTransport | None = Depends(get_http_transport),
) -> dict[str, Any]:
    return await SoraGateway(config, transport).create_character(payload)
