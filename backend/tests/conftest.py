import os
import tempfile
from pathlib import Path

_TMP = Path(tempfile.mkdtemp(prefix="mediagate-tests-"))
_DB_FILE = _TMP / "test.db"

os.environ["MEDIAGATE_DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_FILE}"
os.environ["MEDIAGATE_SECRET_KEY"] = "test-secret-key"
os.environ["MEDIAGATE_UPLOAD_DIR"] = str(_TMP / "uploads")
os.environ["MEDIAGATE_INITIAL_CREDENTIALS_FILE"] = str(_TMP / "initial_admin_credentials.txt")
os.environ["MEDIAGATE_SORA_SERVER"] = "https://sora.test"
os.environ["MEDIAGATE_SORA_KEY"] = "sk-sora-default-0123456789"
os.environ["MEDIAGATE_VEO_SERVER"] = "https://veo.test"
os.environ["MEDIAGATE_VEO_KEY"] = "sk-veo-default-0123456789"
os.environ["MEDIAGATE_GROK_SERVER"] = "https://grok.test"
os.environ["MEDIAGATE_GROK_KEY"] = "sk-grok-default-0123456789"
os.environ["MEDIAGATE_GEMINI_IMAGE_SERVER"] = "https://gemini.test"
os.environ["MEDIAGATE_GEMINI_IMAGE_KEY"] = "sk-gemini-default-0123456789"
os.environ["MEDIAGATE_GROK_IMAGE_SERVER"] = "https://grok-image.test"
os.environ["MEDIAGATE_GROK_IMAGE_KEY"] = "sk-grok-image-0123456789"

from typing import Any, Callable  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402

import mediagate.models  # noqa: E402,F401
from mediagate.core.config import get_settings  # noqa: E402
from mediagate.core.dependencies import get_http_transport  # noqa: E402
from mediagate.db.base import Base  # noqa: E402
from mediagate.db.session import get_session  # noqa: E402
from mediagate.main import app  # noqa: E402


@pytest.fixture(autouse=True)
def reset_database():
    sync_engine = create_engine(f"sqlite:///{_DB_FILE}")
    try:
        Base.metadata.drop_all(sync_engine)
        Base.metadata.create_all(sync_engine)
    finally:
        sync_engine.dispose()
    credentials = Path(get_settings().initial_credentials_file)
    if credentials.exists():
        credentials.unlink()
    yield


@pytest.fixture
async def session():
    async with get_session() as db_session:
        yield db_session


class FakeProvider:
    """Routes outbound provider requests to canned responses and records them."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    def on(self, method: str, url: str, status_code: int = 200, json: Any = None, content: bytes | None = None) -> None:
        def respond(_: httpx.Request) -> httpx.Response:
            if content is not None:
                return httpx.Response(status_code, content=content)
            return httpx.Response(status_code, json=json)

        self._routes[(method.upper(), url)] = respond

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        route = self._routes.get((request.method, url))
        if route is None:
            return httpx.Response(404, json={"error": {"message": f"no route for {request.method} {url}"}})
        return route(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def client(provider: FakeProvider):
    transport = provider.transport
    app.dependency_overrides[get_http_transport] = lambda: transport
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(client: TestClient) -> Callable[..., dict[str, str]]:
    """Register and log in a user; returns request headers carrying the token."""

    def _make(username: str, password: str = "secret1", email: str | None = None) -> dict[str, str]:
        body = {"username": username, "password": password}
        if email:
            body["email"] = email
        response = client.post("/api/v1/auth/register", json=body)
        assert response.status_code == 201, response.text
        login = client.post("/api/v1/auth/login", json={"username": username, "password": password})
        assert login.status_code == 200, login.text
        return bearer(login.json()["token"])

    return _make


@pytest.fixture
def admin_headers(client: TestClient) -> dict[str, str]:
    lines = Path(get_settings().initial_credentials_file).read_text(encoding="utf-8").splitlines()
    credentials = dict(line.split(": ", 1) for line in lines if line)
    response = client.post(
        "/api/v1/auth/login",
        json={"username": credentials["username"], "password": credentials["password"]},
    )
    assert response.status_code == 200, response.text
    return bearer(response.json()["token"])
