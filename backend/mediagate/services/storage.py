"""On-disk storage for generated images."""
from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
from pathlib import Path

from mediagate.core.config import get_settings

logger = logging.getLogger(__name__)

_SIGNATURES: tuple[tuple[bytes, str, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", "image/png", "png"),
    (b"\xff\xd8\xff", "image/jpeg", "jpg"),
    (b"GIF87a", "image/gif", "gif"),
    (b"GIF89a", "image/gif", "gif"),
)
_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/gif": "gif", "image/webp": "webp"}
_MIME_BY_EXTENSION = {ext: mime for mime, ext in _EXTENSIONS.items()}
_UNSAFE = re.compile(r"[^A-Za-z0-9_-]")


def detect_image_type(raw: bytes, fallback: str = "image/png") -> tuple[str, str]:
    """Return ``(mime_type, extension)`` from the file's magic bytes."""

    for signature, mime_type, extension in _SIGNATURES:
        if raw.startswith(signature):
            return mime_type, extension
    if raw[:4] == b"RIFF" and raw[8:12] == b"WEBP":
        return "image/webp", "webp"
    return fallback, _EXTENSIONS.get(fallback, "png")


def mime_type_for_url(url: str) -> str:
    extension = url.rsplit(".", 1)[-1].lower() if "." in url else ""
    return _MIME_BY_EXTENSION.get(extension, "image/png")


def decode_base64_image(data: str) -> bytes:
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Image data is not valid base64") from exc


class ImageStore:
    """Write images under ``{root}/images/{owner}/`` and hand back public URLs."""

    def __init__(self, root: str | Path | None = None, url_prefix: str | None = None) -> None:
        settings = get_settings()
        self.root = Path(root or settings.upload_dir)
        self.url_prefix = (url_prefix or settings.upload_url_prefix).rstrip("/")

    async def save(self, owner: str, task_id: str, index: int, raw: bytes, mime_type: str = "image/png") -> str:
        _, extension = detect_image_type(raw, mime_type)
        owner_dir = _UNSAFE.sub("_", owner)
        filename = f"{_UNSAFE.sub('_', task_id)}_{index}.{extension}"
        path = self.root / "images" / owner_dir / filename
        await asyncio.to_thread(self._write, path, raw)
        logger.debug("Stored %d bytes at %s", len(raw), path)
        return f"{self.url_prefix}/images/{owner_dir}/{filename}"

    @staticmethod
    def _write(path: Path, raw: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(raw)
