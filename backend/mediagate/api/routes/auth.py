"""Authentication endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.core.dependencies import (
    get_code_delivery,
    get_code_store,
    get_current_principal,
    get_db,
    get_token_issuer,
)
from mediagate.core.errors import AuthenticationError, NotFoundError
from mediagate.core.tokens import TokenIssuer
from mediagate.schemas.auth import EmailCodeRequest, EmailLoginRequest, LoginRequest, TokenResponse, TokenVerification
from mediagate.schemas.common import Message
from mediagate.schemas.user import UserCreate, UserPasswordUpdate, UserRead
from mediagate.services import auth as auth_service
from mediagate.services.auth import Principal
from mediagate.services.user_config import ensure_user_config
from mediagate.services.users import create_user, get_user, get_user_by_email, record_login, update_user_password
from mediagate.services.verification import CodeDelivery, VerificationCodeStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register_user(payload: UserCreate, session: AsyncSession = Depends(get_db)) -> UserRead:
    user = await create_user(session, payload)
    await ensure_user_config(session, user.id)
    await session.commit()
    return UserRead.model_validate(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> TokenResponse:
    token = await auth_service.login(session, issuer, payload.username, payload.password)
    await session.commit()
    return token


@router.get("/profile", response_model=UserRead)
async def profile(
    session: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> UserRead:
    user = await get_user(session, principal.user_id)
    if not user:
        raise NotFoundError("User not found")
    return UserRead.model_validate(user)


@router.put("/password", response_model=Message)
async def change_password(
    payload: UserPasswordUpdate,
    session: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> Message:
    user = await get_user(session, principal.user_id)
    if not user:
        raise NotFoundError("User not found")
    await update_user_password(session, user, payload.old_password, payload.new_password)
    await session.commit()
    return Message(message="Password updated")


@router.get("/verify", response_model=TokenVerification)
async def verify_token(principal: Principal = Depends(get_current_principal)) -> TokenVerification:
    return TokenVerification(user_id=principal.user_id, username=principal.username, role=principal.role)


@router.post("/email/send-code", response_model=Message, status_code=status.HTTP_202_ACCEPTED)
async def send_email_code(
    payload: EmailCodeRequest,
    session: AsyncSession = Depends(get_db),
    store: VerificationCodeStore = Depends(get_code_store),
    delivery: CodeDelivery = Depends(get_code_delivery),
) -> Message:
    user = await get_user_by_email(session, payload.email)
    if not user:
        raise NotFoundError("No account is registered with this email")
    code = store.issue(payload.email)
    try:
        await delivery.deliver(payload.email, code)
    except Exception:
        store.discard(payload.email)
        raise
    return Message(message="Verification code sent")


@router.post("/email/login", response_model=TokenResponse)
async def email_login(
    payload: EmailLoginRequest,
    session: AsyncSession = Depends(get_db),
    store: VerificationCodeStore = Depends(get_code_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> TokenResponse:
    if not store.verify(payload.email, payload.code):
        raise AuthenticationError("Invalid or expired verification code")
    user = await get_user_by_email(session, payload.email)
    if not user:
        raise AuthenticationError("Invalid or expired verification code")
    await record_login(session, user)
    await session.commit()
    logger.info("User %s logged in with an email code", user.username)
    return auth_service.issue_token(issuer, user)
