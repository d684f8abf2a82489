"""Shared HTTP plumbing for provider gateways."""
from __future__ import annotations

import json
import logging
import math
from typing import Any

import httpx

from mediagate.core.errors import UpstreamProviderError, ValidationError
from mediagate.models.enums import Provider
from mediagate.services.global_config import EffectiveConfig

logger = logging.getLogger(__name__)

FileField = tuple[str, tuple[str, bytes, str]]


def _finite_or_none(text: str) -> float | None:
    value = float(text)
    return value if math.isfinite(value) else None


def _response_details(response: httpx.Response) -> Any:
    # Non-finite numbers become null so bodies can be passed back to clients as JSON.
    try:
        return json.loads(response.content, parse_float=_finite_or_none, parse_constant=lambda _: None)
    except ValueError:
        return response.text or None


def _error_message(provider: Provider, details: Any, status_code: int) -> str:
    if isinstance(details, dict):
        error = details.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        if details.get("message"):
            return str(details["message"])
    return f"{provider.value} request failed with status {status_code}"


class ProviderGateway:
    """Base class for provider clients using the caller's effective configuration."""

    provider: Provider

    def __init__(self, config: EffectiveConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        if not config.server:
            raise ValidationError(f"{config.provider.value} server is not configured")
        self._config = config
        self._transport = transport

    def _url(self, path: str, server: str | None = None) -> str:
        return f"{(server or self._config.server).rstrip('/')}{path}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        timeout: float,
        server: str | None = None,
        key: str | None = None,
        json: Any = None,
        data: dict[str, str] | None = None,
        files: list[FileField] | None = None,
    ) -> Any:
        url = self._url(path, server)
        headers = {"Accept": "application/json"}
        token = key if key is not None else self._config.key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.request(method, url, headers=headers, json=json, data=data, files=files)
        except httpx.TimeoutException as exc:
            logger.error("%s %s %s timed out after %ss", self.provider.value, method, url, timeout)
            raise UpstreamProviderError(f"{self.provider.value} request timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("%s %s %s failed: %s", self.provider.value, method, url, exc)
            raise UpstreamProviderError(f"{self.provider.value} request failed: {exc}") from exc

        if response.status_code >= 400:
            details = _response_details(response)
            logger.warning("%s %s %s responded %s: %s", self.provider.value, method, url, response.status_code, details)
            raise UpstreamProviderError(
                _error_message(self.provider, details, response.status_code),
                status_code=response.status_code,
                details=details,
            )
        payload = _response_details(response)
        if not isinstance(payload, dict):
            logger.warning("%s %s %s returned a non-object body", self.provider.value, method, url)
            raise UpstreamProviderError(f"{self.provider.value} returned an unexpected response", details=payload)
        return payload


def external_task_id(response: dict[str, Any]) -> str | None:
    """The provider's job id from a create response."""

    for field in ("id", "task_id"):
        value = response.get(field)
        if isinstance(value, (str, int)) and str(value):
            return str(value)
    return None
