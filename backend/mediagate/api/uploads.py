"""Helpers for multipart uploads."""
from __future__ import annotations

import base64

from fastapi import UploadFile

from mediagate.schemas.image import ReferenceImage
from mediagate.services.video import ReferenceFile


async def read_references(uploads: list[UploadFile] | None) -> list[ReferenceFile]:
    files = []
    for index, upload in enumerate(uploads or []):
        files.append(
            ReferenceFile(
                filename=upload.filename or f"reference_{index}",
                content=await upload.read(),
                content_type=upload.content_type or "application/octet-stream",
            )
        )
    return files


async def read_reference_images(uploads: list[UploadFile] | None) -> list[ReferenceImage]:
    """Uploaded images as base64 inline parts."""

    images = []
    for file in await read_references(uploads):
        mime_type = file.content_type if file.content_type.startswith("image/") else "image/png"
        images.append(ReferenceImage(mime_type=mime_type, data=base64.b64encode(file.content).decode("ascii")))
    return images
