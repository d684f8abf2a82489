"""Image generation endpoints."""
from __future__ import annotations

import httpx
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.api.uploads import read_reference_images
from mediagate.core.dependencies import (
    get_current_principal,
    get_db,
    get_http_transport,
    get_image_store,
    get_secret_manager,
    get_task_registry,
)
from mediagate.core.errors import NotFoundError, ValidationError
from mediagate.core.security import SecretManager
from mediagate.models.enums import TaskKind
from mediagate.schemas.image import (
    DEFAULT_IMAGE_MODEL,
    MAX_REFERENCE_IMAGES,
    ImageAccepted,
    ImageCreateRequest,
    ImageGenerateResult,
    ImageTaskView,
)
from mediagate.services import image_tasks
from mediagate.services import tasks as ledger
from mediagate.services.auth import Principal
from mediagate.services.background import BackgroundTaskRegistry
from mediagate.services.image_tasks import ImageGateway
from mediagate.services.images import IMAGE_GATEWAYS, image_provider_for
from mediagate.services.storage import ImageStore
from mediagate.services.user_config import get_effective_config

router = APIRouter(prefix="/image", tags=["image"])


async def _gateway(
    session: AsyncSession,
    secret_manager: SecretManager,
    principal: Principal,
    model: str,
    transport: httpx.AsyncBaseTransport | None,
) -> ImageGateway:
    provider = image_provider_for(model)
    config = await get_effective_config(session, secret_manager, principal.user_id, provider)
    return IMAGE_GATEWAYS[provider](config, transport)


async def _form_request(
    prompt: str = Form(..., min_length=1),
    model: str = Form(DEFAULT_IMAGE_MODEL),
    aspect_ratio: str = Form("1:1"),
    image_size: str = Form("1K"),
    size: str = Form("1024x1024"),
    n: int = Form(1, ge=1, le=4),
    reference_images: list[UploadFile] | None = File(None),
) -> ImageCreateRequest:
    if reference_images and len(reference_images) > MAX_REFERENCE_IMAGES:
        raise ValidationError(f"At most {MAX_REFERENCE_IMAGES} reference images are allowed")
    return ImageCreateRequest(
        prompt=prompt,
        model=model,
        aspect_ratio=aspect_ratio,
        image_size=image_size,
        size=size,
        n=n,
        reference_images=await read_reference_images(reference_images),
    )


async def _start(
    payload: ImageCreateRequest,
    session: AsyncSession,
    secret_manager: SecretManager,
    transport: httpx.AsyncBaseTransport | None,
    store: ImageStore,
    registry: BackgroundTaskRegistry,
    principal: Principal,
) -> ImageAccepted:
    gateway = await _gateway(session, secret_manager, principal, payload.model, transport)
    task = await image_tasks.record_image_task(session, principal.user_id, gateway, payload)
    await session.commit()
    registry.spawn(
        image_tasks.run_image_task(task.external_id, principal.user_id, gateway, payload, store),
        name=f"image-task-{task.external_id}",
    )
    return ImageAccepted(id=task.external_id, status=task.status)


@router.post("/create", response_model=ImageAccepted)
async def create_image(
    payload: ImageCreateRequest,
    session: AsyncSession = Depends(get_db),
    secret_manager: SecretManager = Depends(get_secret_manager),
    transport: httpx.AsyncBaseTransport | None = Depends(get_http_transport),
    store: ImageStore = Depends(get_image_store),
    registry: BackgroundTaskRegistry = Depends(get_task_registry),
    principal: Principal = Depends(get_current_principal),
) -> ImageAccepted:
    return await _start(payload, session, secret_manager, transport, store, registry, principal)


@router.post("/create-with-ref", response_model=ImageAccepted)
async def create_image_with_reference(
    payload: ImageCreateRequest = Depends(_form_request),
    session: AsyncSession = Depends(get_db),
    secret_manager: SecretManager = Depends(get_secret_manager),
    transport: httpx.AsyncBaseTransport | None = Depends(get_http_transport),
    store: ImageStore = Depends(get_image_store),
    registry: BackgroundTaskRegistry = Depends(get_task_registry),
    principal: Principal = Depends(get_current_principal),
) -> ImageAccepted:
    return await _start(payload, session, secret_manager, transport, store, registry, principal)


@router.post("/generate", response_model=ImageGenerateResult)
async def generate_image(
    payload: ImageCreateRequest,
    session: AsyncSession = Depends(get_db),
    secret_manager: SecretManager = Depends(get_secret_manager),
    transport: httpx.AsyncBaseTransport | None = Depends(get_http_transport),
    principal: Principal = Depends(get_current_principal),
) -> ImageGenerateResult:
    gateway = await _gateway(session, secret_manager, principal, payload.model, transport)
    await session.commit()
    return await image_tasks.generate_now(gateway, payload)


@router.post("/generate-with-ref", response_model=ImageGenerateResult)
async def generate_image_with_reference(
    payload: ImageCreateRequest = Depends(_form_request),
    session: AsyncSession = Depends(get_db),
    secret_manager: SecretManager = Depends(get_secret_manager),
    transport: httpx.AsyncBaseTransport | None = Depends(get_http_transport),
    principal: Principal = Depends(get_current_principal),
) -> ImageGenerateResult:
    gateway = await _gateway(session, secret_manager, principal, payload.model, transport)
    await session.commit()
    return await image_tasks.generate_now(gateway, payload)


@router.get("/query", response_model=ImageTaskView)
async def query_image(
    task_id: str = Query(..., alias="id", min_length=1),
    session: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> ImageTaskView:
    task = await ledger.get_user_task(session, principal.user_id, task_id)
    if task.kind != TaskKind.IMAGE.value:
        raise NotFoundError("Task not found")
    return image_tasks.task_view(task)
