"""Image task orchestration: ledger bookkeeping around the image gateways."""
from __future__ import annotations

import asyncio
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.core.errors import ServiceError, UpstreamProviderError
from mediagate.db.session import get_session
from mediagate.models.enums import TaskStatus
from mediagate.models.task import GenerationTask
from mediagate.schemas.image import GeneratedImage, ImageCreateRequest, ImageGenerateResult, ImageTaskView
from mediagate.services import tasks as ledger
from mediagate.services.images import GeminiImageGateway, GrokImageGateway, ImageData
from mediagate.services.storage import ImageStore, decode_base64_image, detect_image_type, mime_type_for_url

logger = logging.getLogger(__name__)

ImageGateway = GeminiImageGateway | GrokImageGateway


async def record_image_task(
    session: AsyncSession,
    user_id: str,
    gateway: ImageGateway,
    request: ImageCreateRequest,
) -> GenerationTask:
    params = request.model_dump(exclude={"prompt", "model", "reference_images"})
    params["reference_count"] = len(request.reference_images)
    return await ledger.create_task(
        session,
        user_id=user_id,
        external_id=str(uuid.uuid4()),
        provider=gateway.provider,
        model=request.model,
        prompt=request.prompt,
        params=params,
        response={"status": TaskStatus.PROCESSING.value},
    )


async def _image_bytes(gateway: ImageGateway, image: ImageData) -> tuple[bytes, str]:
    if image.data:
        raw = decode_base64_image(image.data)
    elif image.url and isinstance(gateway, GrokImageGateway):
        raw = await gateway.download(image.url)
    else:
        raise UpstreamProviderError("Generated image has no content")
    mime_type, _ = detect_image_type(raw, image.mime_type)
    return raw, mime_type


async def run_image_task(
    external_id: str,
    user_id: str,
    gateway: ImageGateway,
    request: ImageCreateRequest,
    store: ImageStore,
) -> None:
    """Generate, persist and record one image task. Every outcome lands on the task record."""

    try:
        images, _ = await gateway.generate(request)
        if not images:
            raise UpstreamProviderError("No images generated")
        urls = []
        for index, image in enumerate(images):
            raw, mime_type = await _image_bytes(gateway, image)
            urls.append(await store.save(user_id, external_id, index, raw, mime_type))
        fields = {"status": TaskStatus.COMPLETED.value, "progress": 100, "asset_urls": urls, "error": None}
        logger.info("Image task %s completed with %d image(s)", external_id, len(urls))
    except asyncio.CancelledError:
        await _finish(external_id, status=TaskStatus.FAILED.value, error="Interrupted before completion")
        raise
    except ServiceError as exc:
        logger.warning("Image task %s failed: %s", external_id, exc.message)
        fields = {"status": TaskStatus.FAILED.value, "error": exc.message, "last_response": _details(exc)}
    except Exception as exc:
        logger.exception("Image task %s failed unexpectedly", external_id)
        fields = {"status": TaskStatus.FAILED.value, "error": str(exc) or exc.__class__.__name__}
    await _finish(external_id, **fields)


def _details(exc: ServiceError) -> dict | None:
    return exc.details if isinstance(exc.details, dict) else None


async def _finish(external_id: str, **fields) -> None:
    async with get_session() as session:
        await ledger.update_by_external_id(session, external_id, **fields)
        await session.commit()


async def generate_now(gateway: ImageGateway, request: ImageCreateRequest) -> ImageGenerateResult:
    images, raw = await gateway.generate(request)
    return ImageGenerateResult(
        status=TaskStatus.COMPLETED.value if images else TaskStatus.FAILED.value,
        images=[GeneratedImage(mime_type=image.mime_type, data=image.data, url=image.url) for image in images],
        raw=raw,
    )


def task_view(task: GenerationTask) -> ImageTaskView:
    params = task.params or {}
    images = None
    if task.status == TaskStatus.COMPLETED.value and task.asset_urls:
        images = [GeneratedImage(mime_type=mime_type_for_url(url), url=url) for url in task.asset_urls]
    return ImageTaskView(
        id=task.external_id,
        status=task.status,
        prompt=task.prompt,
        model=task.model,
        aspect_ratio=params.get("aspect_ratio"),
        image_size=params.get("image_size"),
        images=images,
        error=task.error if task.status == TaskStatus.FAILED.value else None,
        created_at=task.created_at,
    )
