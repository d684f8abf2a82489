"""Image generation gateways for Gemini and Grok image models."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from mediagate.core.config import get_settings
from mediagate.core.errors import UpstreamProviderError, ValidationError
from mediagate.models.enums import Provider
from mediagate.schemas.image import ImageCreateRequest
from mediagate.services.gateway import ProviderGateway

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ImageData:
    mime_type: str
    data: str | None = None
    url: str | None = None


def image_provider_for(model: str) -> Provider:
    return Provider.GEMINI_IMAGE if model.lower().startswith("gemini") else Provider.GROK_IMAGE


def extract_gemini_images(response: dict[str, Any]) -> list[ImageData]:
    """Collect inline image parts; providers use both camelCase and snake_case keys."""

    images: list[ImageData] = []
    for candidate in response.get("candidates") or []:
        content = (candidate or {}).get("content") or {}
        for part in content.get("parts") or []:
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                images.append(ImageData(mime_type=mime_type, data=inline["data"]))
    return images


def extract_generation_images(response: dict[str, Any]) -> list[ImageData]:
    images: list[ImageData] = []
    for item in response.get("data") or []:
        if item.get("b64_json"):
            images.append(ImageData(mime_type="image/png", data=item["b64_json"]))
        elif item.get("url"):
            images.append(ImageData(mime_type="image/png", url=item["url"]))
    return images


class GeminiImageGateway(ProviderGateway):
    provider = Provider.GEMINI_IMAGE

    async def generate(self, request: ImageCreateRequest) -> tuple[list[ImageData], dict[str, Any]]:
        parts: list[dict[str, Any]] = [{"text": request.prompt}]
        for image in request.reference_images:
            parts.append({"inline_data": {"mime_type": image.mime_type, "data": image.data}})
        payload = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "responseModalities": ["TEXT", "IMAGE"],
                "imageConfig": {"aspectRatio": request.aspect_ratio, "imageSize": request.image_size},
            },
        }
        logger.info(
            "Generating Gemini image with %s (%s, %s, %d reference(s))",
            request.model,
            request.aspect_ratio,
            request.image_size,
            len(request.reference_images),
        )
        response = await self._request(
            "POST",
            f"/v1beta/models/{quote(request.model, safe='')}:generateContent",
            timeout=get_settings().image_timeout_seconds,
            json=payload,
        )
        return extract_gemini_images(response), response


class GrokImageGateway(ProviderGateway):
    provider = Provider.GROK_IMAGE

    async def generate(self, request: ImageCreateRequest) -> tuple[list[ImageData], dict[str, Any]]:
        if request.reference_images:
            raise ValidationError(f"Model {request.model} does not accept reference images")
        payload = {
            "model": request.model,
            "prompt": request.prompt,
            "size": request.size,
            "n": request.n,
            "response_format": "b64_json",
        }
        logger.info("Generating %d image(s) with %s (%s)", request.n, request.model, request.size)
        response = await self._request(
            "POST",
            "/v1/images/generations",
            timeout=get_settings().image_timeout_seconds,
            json=payload,
        )
        return extract_generation_images(response), response

    async def download(self, url: str) -> bytes:
        try:
            async with httpx.AsyncClient(timeout=get_settings().image_timeout_seconds, transport=self._transport) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            raise UpstreamProviderError(f"Could not download generated image: {exc}") from exc
        if response.status_code >= 400:
            raise UpstreamProviderError("Could not download generated image", status_code=response.status_code)
        return response.content


IMAGE_GATEWAYS: dict[Provider, type[GeminiImageGateway] | type[GrokImageGateway]] = {
    Provider.GEMINI_IMAGE: GeminiImageGateway,
    Provider.GROK_IMAGE: GrokImageGateway,
}
