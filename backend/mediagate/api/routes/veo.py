"""VEO video endpoints."""
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
from mediagate.services.video import MultipartVideoRequest, VeoGateway

router = APIRouter(prefix="/veo", tags=["veo"])


@router.post("/create")
async def create_video(
    prompt: str = Form(..., min_length=1),
    model: str = Form("veo_3_1-fast"),
    size: Literal["720x1280", "1280x720"] | None = Form(None),
    seconds: int | None = Form(None, ge=1),
    enable_upsample: bool | None = Form(None),
    input_reference: list[UploadFile] | None = File(None),
    session: AsyncSession = Depends(get_db),
    config: EffectiveConfig = Depends(provider_config(Provider.VEO)),
    transport: httpx.AsyncBaseTransport | None = Depends(get_http_transport),
    principal: Principal = Depends(get_current_principal),
) -> dict[str, Any]:
    fields: dict[str, str] = {}
    if size:
        fields["size"] = size
    if seconds:
        fields["seconds"] = str(seconds)
    if enable_upsample is not None:
        fields["enable_upsample"] = "true" if enable_upsample else "false"
    request = MultipartVideoRequest(model=model, prompt=prompt, fields=fields, files=await read_references(input_reference))
    response = await VeoGateway(config, transport).create_video(request)
    await video_service.record_created_task(
        session,
        principal.user_id,
        Provider.VEO,
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
    config: EffectiveConfig = Depends(provider_config(Provider.VEO)),
    transport: httpx.AsyncBaseTransport | None = Depends(get_http_transport),
    principal: Principal = Depends(get_current_principal),
) -> dict[str, Any]:
    response = await VeoGateway(config, transport).query_video(task_id)
    await video_service.reconcile_query(session, principal.user_id, Provider.VEO, task_id, response)
    return response
