import base64
import shutil
import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from mediagate.core.config import get_settings
from mediagate.db.session import get_session
from mediagate.main import app
from mediagate.models.enums import Provider, TaskStatus
from mediagate.schemas.image import ImageCreateRequest, ReferenceImage
from mediagate.services import image_tasks
from mediagate.services import tasks as ledger
from mediagate.services.global_config import EffectiveConfig
from mediagate.services.images import GeminiImageGateway, GrokImageGateway, image_provider_for
from mediagate.services.storage import ImageStore, detect_image_type

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 16
OWNER = "cccccccccccccccccccccccc"
GEMINI_URL = "https://gemini.test/v1beta/models/gemini-3-pro-image-preview:generateContent"


def _gemini_response(raw: bytes) -> dict:
    return {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"text": "here you go"},
                        {"inlineData": {"mimeType": "image/png", "data": base64.b64encode(raw).decode()}},
                    ]
                }
            }
        ]
    }


def _gemini(provider) -> GeminiImageGateway:
    config = EffectiveConfig(provider=Provider.GEMINI_IMAGE, server="https://gemini.test", key="sk-gemini")
    return GeminiImageGateway(config, provider.transport)


async def _record(gateway, request) -> str:
    async with get_session() as session:
        task = await image_tasks.record_image_task(session, OWNER, gateway, request)
        await session.commit()
        return task.external_id


async def _load(external_id):
    async with get_session() as session:
        return await ledger.get_task(session, external_id)


def test_image_provider_for_model():
    assert image_provider_for("gemini-2.5-flash-image") is Provider.GEMINI_IMAGE
    assert image_provider_for("grok-2-image") is Provider.GROK_IMAGE


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(PNG, ("image/png", "png")), (JPEG, ("image/jpeg", "jpg")), (b"RIFF\x00\x00\x00\x00WEBPVP8 ", ("image/webp", "webp"))],
)
def test_detect_image_type(raw, expected):
    assert detect_image_type(raw) == expected


async def test_image_task_stores_images_and_completes(provider, tmp_path):
    provider.on("POST", GEMINI_URL, json=_gemini_response(PNG))
    gateway = _gemini(provider)
    request = ImageCreateRequest(prompt="a red fox", aspect_ratio="16:9")
    external_id = await _record(gateway, request)

    await image_tasks.run_image_task(external_id, OWNER, gateway, request, ImageStore(tmp_path, "/uploads"))

    task = await _load(external_id)
    assert task.status == TaskStatus.COMPLETED.value
    assert task.progress == 100
    assert task.asset_urls == [f"/uploads/images/{OWNER}/{external_id}_0.png"]
    assert (tmp_path / "images" / OWNER / f"{external_id}_0.png").read_bytes() == PNG
    assert provider.last().headers["Authorization"] == "Bearer sk-gemini"


async def test_image_task_records_upstream_failure(provider, tmp_path):
    provider.on("POST", GEMINI_URL, status_code=503, json={"error": {"message": "overloaded"}})
    gateway = _gemini(provider)
    request = ImageCreateRequest(prompt="a red fox")
    external_id = await _record(gateway, request)

    await image_tasks.run_image_task(external_id, OWNER, gateway, request, ImageStore(tmp_path))

    task = await _load(external_id)
    assert task.status == TaskStatus.FAILED.value
    assert task.error == "overloaded"


async def test_image_task_without_images_fails(provider, tmp_path):
    provider.on("POST", GEMINI_URL, json={"candidates": [{"content": {"parts": [{"text": "refused"}]}}]})
    gateway = _gemini(provider)
    request = ImageCreateRequest(prompt="a red fox")
    external_id = await _record(gateway, request)

    await image_tasks.run_image_task(external_id, OWNER, gateway, request, ImageStore(tmp_path))

    task = await _load(external_id)
    assert task.status == TaskStatus.FAILED.value
    assert task.error == "No images generated"


async def test_grok_image_downloads_url_results(provider, tmp_path):
    provider.on("POST", "https://grok-image.test/v1/images/generations", json={"data": [{"url": "https://files.test/1.jpg"}]})
    provider.on("GET", "https://files.test/1.jpg", content=JPEG)
    config = EffectiveConfig(provider=Provider.GROK_IMAGE, server="https://grok-image.test", key="sk-grok")
    gateway = GrokImageGateway(config, provider.transport)
    request = ImageCreateRequest(prompt="a comet", model="grok-2-image")
    external_id = await _record(gateway, request)

    await image_tasks.run_image_task(external_id, OWNER, gateway, request, ImageStore(tmp_path, "/uploads"))

    task = await _load(external_id)
    assert task.status == TaskStatus.COMPLETED.value
    assert task.asset_urls == [f"/uploads/images/{OWNER}/{external_id}_0.jpg"]


async def test_grok_image_rejects_reference_images(provider, tmp_path):
    config = EffectiveConfig(provider=Provider.GROK_IMAGE, server="https://grok-image.test", key="sk-grok")
    gateway = GrokImageGateway(config, provider.transport)
    request = ImageCreateRequest(
        prompt="a comet",
        model="grok-2-image",
        reference_images=[ReferenceImage(mime_type="image/png", data=base64.b64encode(PNG).decode())],
    )
    external_id = await _record(gateway, request)

    await image_tasks.run_image_task(external_id, OWNER, gateway, request, ImageStore(tmp_path))

    task = await _load(external_id)
    assert task.status == TaskStatus.FAILED.value
    assert "does not accept reference images" in task.error
    assert provider.requests == []


def _wait_for_terminal(client, headers, task_id, attempts=50):
    for _ in range(attempts):
        body = client.get("/api/v1/image/query", headers=headers, params={"id": task_id}).json()
        if body["status"] in ("completed", "failed"):
            return body
        time.sleep(0.05)
    raise AssertionError(f"image task {task_id} did not finish")


def test_image_create_then_poll(client, provider, make_user):
    headers = make_user("ursula")
    provider.on("POST", GEMINI_URL, json=_gemini_response(PNG))

    accepted = client.post("/api/v1/image/create", headers=headers, json={"prompt": "a lighthouse", "aspect_ratio": "3:4"})
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "processing"

    body = _wait_for_terminal(client, headers, accepted.json()["id"])
    assert body["status"] == "completed"
    assert body["aspect_ratio"] == "3:4"
    assert body["images"][0]["mime_type"] == "image/png"
    assert body["images"][0]["url"].startswith("/uploads/images/")
    assert body["error"] is None

    payload = provider.last().content
    assert b'"aspectRatio":"3:4"' in payload.replace(b" ", b"")


def test_image_create_with_reference_uploads(client, provider, make_user):
    headers = make_user("victor")
    provider.on("POST", GEMINI_URL, json=_gemini_response(PNG))

    accepted = client.post(
        "/api/v1/image/create-with-ref",
        headers=headers,
        data={"prompt": "restyle this"},
        files=[("reference_images", ("ref.png", PNG, "image/png"))],
    )

    assert accepted.status_code == 200
    assert _wait_for_terminal(client, headers, accepted.json()["id"])["status"] == "completed"
    assert base64.b64encode(PNG) in provider.last().content


def test_image_query_for_unknown_id_is_404(client, make_user):
    headers = make_user("wendy")

    response = client.get("/api/v1/image/query", headers=headers, params={"id": "missing"})

    assert response.status_code == 404


def test_image_generate_returns_inline_images(client, provider, make_user):
    headers = make_user("xavier")
    provider.on("POST", GEMINI_URL, json=_gemini_response(PNG))

    response = client.post("/api/v1/image/generate", headers=headers, json={"prompt": "a kite"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert base64.b64decode(body["images"][0]["data"]) == PNG
    assert client.get("/api/v1/tasks", headers=headers).json()["total"] == 0


def test_upload_dir_is_created_at_startup():
    upload_dir = Path(get_settings().upload_dir)
    shutil.rmtree(upload_dir, ignore_errors=True)

    with TestClient(app) as fresh_client:
        assert upload_dir.is_dir()
        assert fresh_client.get("/uploads/images/nobody/missing.png").status_code == 404
