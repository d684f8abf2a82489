"""Provider status vocabularies mapped onto task statuses."""
from __future__ import annotations

from typing import Any, Mapping

from mediagate.models.enums import Provider, TaskStatus

Q, P, C, F = TaskStatus.QUEUED, TaskStatus.PROCESSING, TaskStatus.COMPLETED, TaskStatus.FAILED

STATUS_TABLES: dict[Provider, dict[str, TaskStatus]] = {
    Provider.SORA: {
        "queued": Q,
        "pending": Q,
        "processing": P,
        "in_progress": P,
        "running": P,
        "completed": C,
        "complete": C,
        "succeeded": C,
        "failed": F,
        "error": F,
        "cancelled": F,
    },
    Provider.VEO: {
        "queued": Q,
        "pending": Q,
        "submitted": Q,
        "processing": P,
        "in_progress": P,
        "running": P,
        "completed": C,
        "complete": C,
        "succeeded": C,
        "success": C,
        "failed": F,
        "failure": F,
        "error": F,
        "cancelled": F,
        "expired": F,
    },
    Provider.GROK: {
        "queued": Q,
        "pending": Q,
        "processing": P,
        "in_progress": P,
        "running": P,
        "generating": P,
        "completed": C,
        "complete": C,
        "succeeded": C,
        "success": C,
        "failed": F,
        "error": F,
        "cancelled": F,
        "moderated": F,
    },
    # Image tasks are driven by our own background job, which only writes these.
    Provider.GEMINI_IMAGE: {"processing": P, "completed": C, "failed": F},
    Provider.GROK_IMAGE: {"processing": P, "completed": C, "failed": F},
}


def map_provider_status(provider: Provider, raw: Any) -> TaskStatus:
    """Translate a provider status string; anything not in the table is UNKNOWN."""

    if not isinstance(raw, str):
        return TaskStatus.UNKNOWN
    return STATUS_TABLES[provider].get(raw.strip().lower(), TaskStatus.UNKNOWN)


def initial_status(provider: Provider, response: Mapping[str, Any] | None) -> TaskStatus:
    """Status for a freshly accepted job: adopt in-progress or terminal states, else queued."""

    status = map_provider_status(provider, (response or {}).get("status"))
    if status in (TaskStatus.PROCESSING, TaskStatus.COMPLETED, TaskStatus.FAILED):
        return status
    return TaskStatus.QUEUED


def extract_video_url(response: Mapping[str, Any]) -> str | None:
    url = response.get("video_url")
    if not url and isinstance(response.get("output"), Mapping):
        url = response["output"].get("video_url")
    return url if isinstance(url, str) and url else None


def extract_error(response: Mapping[str, Any]) -> str:
    error = response.get("error")
    if isinstance(error, Mapping):
        error = error.get("message") or error.get("code")
    if not error:
        error = response.get("message")
    return str(error) if error else "Generation failed"


def extract_progress(response: Mapping[str, Any], default: int) -> int:
    raw = response.get("progress")
    if isinstance(raw, str):
        raw = raw.strip().rstrip("%")
    try:
        value = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return default
    return max(0, min(100, value)) or default
