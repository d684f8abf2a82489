"""Grok video endpoints."""
from __future__ import annotations

from typing import Any, Literal

import httpx
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.api.uploads import read_references
from mediagate.core.dependencies import get_current_principal, get_db, get_http_transport, provider_config
from mediagate.models.enums import Provider
from mediagate.services import video as video_service
from mediagate.services.auth import Principal
from mediagate.services.global_config import EffectiveConfig
from mediagate.services.video import GrokVideoGateway, MultipartVideoRequest

router = APIRouter(prefix="/grok", tags=["grok"])


@router.post("/create")
async def create_video(
    prompt: str = Form(..., min_length=1),
    model: str = Form("grok-video-3"),
    aspect_ratio: Literal["2:3", "3:2", "1:1"] | None = Form(None),
    seconds: int | None = Form(None, ge=1),
    size: Literal["720P", "1080P"] | None = Form(None),
    input_reference: list[UploadFile] | None = File(None),
    session: AsyncSession = Depends(get_db),
    config: EffectiveConfig = Depends(provider_config(Provider.GROK)),
    transport: httpx.AsyncBaseTransport | None = Depends(get_http_transport),
    principal: Principal = Depends(get_current_principal),
) -> dict[str, Any]:
    fields: dict[str, str] = {}
    if aspect_ratio:
        fields["aspect_ratio"] = aspect_ratio
    if seconds:
        fields["seconds"] = str(seconds)
    if size:
        fields["size"] = size
    request = MultipartVideoRequest(model=model, prompt=prompt, fields=fields, files=await read_references(input_reference))
    response = await GrokVideoGateway(config, transport).create_video(request)
    await video_service.record_created_task(
        session,
        principal.user_id,
        Provider.GROK,
        model=model,
        prompt=prompt,
        params=request.snapshot(),
        response=response,
    )
    return response


@router.get("/query")
async def query_video(
    task_id: str = Query(..., alias="id", min_length=1),
    session: AsyncSession = Depends(get_db),
    config: EffectiveConfig = Depends(provider_config(Provider.GROK)),
    transport: httpx.AsyncBaseTransport | None = Depends(get_http_transport),
    principal: Principal = Depends(get_current_principal),
) -> dict[str, Any]:
    response = await GrokVideoGateway(config, transport).query_video(task_id)
    await video_service.reconcile_query(session, principal.user_id, Provider.GROK, task_id, response)
    return response
