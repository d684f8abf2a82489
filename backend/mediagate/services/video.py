"""Video generation gateways for Sora, VEO and Grok, and their ledger bookkeeping."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.core.config import get_settings
from mediagate.models.enums import Provider
from mediagate.schemas.video import SoraCharacterRequest, SoraCreateRequest
from mediagate.services import tasks as ledger
from mediagate.services.gateway import FileField, ProviderGateway, external_task_id

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReferenceFile:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass(slots=True)
class MultipartVideoRequest:
    """Form fields shared by the VEO and Grok ``/v1/videos`` endpoints."""

    model: str
    prompt: str
    fields: dict[str, str] = field(default_factory=dict)
    files: list[ReferenceFile] = field(default_factory=list)

    def form(self) -> dict[str, str]:
        return {"model": self.model, "prompt": self.prompt, **self.fields}

    def multipart(self) -> list[FileField] | None:
        if not self.files:
            return None
        return [("input_reference", (f.filename, f.content, f.content_type)) for f in self.files]

    def snapshot(self) -> dict[str, Any]:
        return {**self.fields, "reference_count": len(self.files)}


class _VideoGateway(ProviderGateway):
    async def query_video(self, task_id: str) -> dict[str, Any]:
        logger.info("Querying %s task %s", self.provider.value, task_id)
        return await self._request(
            "GET",
            f"/v1/videos/{quote(task_id, safe='')}",
            timeout=get_settings().video_query_timeout_seconds,
        )


class SoraGateway(_VideoGateway):
    provider = Provider.SORA

    async def create_video(self, request: SoraCreateRequest) -> dict[str, Any]:
        payload = request.model_dump()
        logger.info("Creating Sora video with model %s (%s, %ss)", request.model, request.orientation, request.duration)
        return await self._request(
            "POST",
            "/v1/video/create",
            timeout=get_settings().sora_create_timeout_seconds,
            json=payload,
        )

    async def create_character(self, request: SoraCharacterRequest) -> dict[str, Any]:
        """Character creation may live on its own server; it falls back to the main one."""

        payload = request.model_dump(exclude_none=True)
        server = self._config.character_server or self._config.server
        key = self._config.character_key or self._config.key
        logger.info("Creating Sora character via %s", server)
        return await self._request(
            "POST",
            "/sora/v1/characters",
            timeout=get_settings().sora_create_timeout_seconds,
            server=server,
            key=key,
            json=payload,
        )


class _MultipartVideoGateway(_VideoGateway):
    async def create_video(self, request: MultipartVideoRequest) -> dict[str, Any]:
        logger.info(
            "Creating %s video with model %s and %d reference image(s)",
            self.provider.value,
            request.model,
            len(request.files),
        )
        return await self._request(
            "POST",
            "/v1/videos",
            timeout=get_settings().video_create_timeout_seconds,
            data=request.form(),
            files=request.multipart(),
        )


class VeoGateway(_MultipartVideoGateway):
    provider = Provider.VEO


class GrokVideoGateway(_MultipartVideoGateway):
    provider = Provider.GROK


GATEWAYS: dict[Provider, type[_VideoGateway]] = {
    Provider.SORA: SoraGateway,
    Provider.VEO: VeoGateway,
    Provider.GROK: GrokVideoGateway,
}


async def record_created_task(
    session: AsyncSession,
    user_id: str,
    provider: Provider,
    *,
    model: str,
    prompt: str,
    params: dict[str, Any],
    response: dict[str, Any],
) -> None:
    """Ledger bookkeeping after the provider accepted a job. Failures are logged, never raised."""

    external_id = external_task_id(response)
    if not external_id:
        logger.warning("%s create response carried no task id; nothing recorded", provider.value)
        return
    try:
        await ledger.create_task(
            session,
            user_id=user_id,
            external_id=external_id,
            provider=provider,
            model=model,
            prompt=prompt,
            params=params,
            response=response,
        )
        await session.commit()
    except Exception:
        await session.rollback()
        logger.exception("Could not record %s task %s", provider.value, external_id)


async def reconcile_query(
    session: AsyncSession,
    user_id: str,
    provider: Provider,
    task_id: str,
    response: dict[str, Any],
) -> None:
    """Fold a query response into the ledger. Failures are logged, never raised."""

    try:
        await ledger.reconcile(session, user_id, task_id, provider, response)
        await session.commit()
    except Exception:
        await session.rollback()
        logger.exception("Could not reconcile %s task %s", provider.value, task_id)
