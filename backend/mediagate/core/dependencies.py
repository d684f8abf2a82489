"""Reusable dependencies for FastAPI routes."""
from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass

import httpx
from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.core.config import get_settings
from mediagate.core.errors import AuthenticationError, AuthorizationError, PersistenceError
from mediagate.core.security import SecretManager
from mediagate.core.tokens import TokenIssuer
from mediagate.db.session import get_session
from mediagate.models.enums import Provider
from mediagate.services.auth import Principal, authenticate_token
from mediagate.services.background import BackgroundTaskRegistry
from mediagate.services.global_config import EffectiveConfig
from mediagate.services.storage import ImageStore
from mediagate.services.user_config import get_effective_config
from mediagate.services.verification import CodeDelivery, VerificationCodeStore

bearer_scheme = HTTPBearer(auto_error=False)

MAX_PAGE = 1_000_000


async def get_db() -> AsyncIterator[AsyncSession]:
    async with get_session() as session:
        try:
            yield session
        except SQLAlchemyError as exc:
            raise PersistenceError("Database operation failed") from exc


async def get_secret_manager() -> SecretManager:
    return SecretManager()


async def get_token_issuer() -> TokenIssuer:
    return TokenIssuer()


async def get_http_transport() -> httpx.AsyncBaseTransport | None:
    """Transport for outbound provider calls; ``None`` means httpx's default."""

    return None


async def get_image_store() -> ImageStore:
    return ImageStore()


async def get_task_registry(request: Request) -> BackgroundTaskRegistry:
    return request.app.state.task_registry


async def get_code_store(request: Request) -> VerificationCodeStore:
    return request.app.state.code_store


async def get_code_delivery(request: Request) -> CodeDelivery:
    return request.app.state.code_delivery


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> Principal:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise AuthenticationError("Not authenticated")
    return await authenticate_token(session, issuer, credentials.credentials)


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise AuthorizationError("Admin privileges required")
    return principal


@dataclass(frozen=True, slots=True)
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int | None = Query(None, ge=1),
) -> PageParams:
    settings = get_settings()
    return PageParams(page=page, limit=min(limit or settings.default_page_limit, settings.max_page_limit))


def provider_config(provider: Provider) -> Callable[..., Awaitable[EffectiveConfig]]:
    """Dependency resolving the caller's effective configuration for ``provider``."""

    async def _resolve(
        session: AsyncSession = Depends(get_db),
        secret_manager: SecretManager = Depends(get_secret_manager),
        principal: Principal = Depends(get_current_principal),
    ) -> EffectiveConfig:
        config = await get_effective_config(session, secret_manager, principal.user_id, provider)
        await session.commit()
        return config

    return _resolve
