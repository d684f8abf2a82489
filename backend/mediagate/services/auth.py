"""Token verification and principal resolution."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.core.errors import AuthenticationError, UnresolvableSubjectError
from mediagate.core.tokens import CurrentSubject, LegacySubject, TokenClaims, TokenIssuer
from mediagate.models.enums import Role
from mediagate.models.user import User
from mediagate.schemas.auth import TokenResponse
from mediagate.services.users import authenticate_user, get_user_by_username, record_login

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Principal:
    """The authenticated caller of a request."""

    user_id: str
    username: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


async def resolve_principal(session: AsyncSession, claims: TokenClaims) -> Principal:
    subject = claims.subject
    if isinstance(subject, CurrentSubject):
        return Principal(subject.user_id, claims.username or "", claims.role or Role.USER.value)
    if isinstance(subject, LegacySubject):
        user = await get_user_by_username(session, subject.username)
        if not user:
            logger.info("Legacy token subject %s does not match any user", subject.username)
            raise UnresolvableSubjectError("Token user not found")
        return Principal(user.id, user.username, claims.role or user.role)
    raise TypeError(f"Unsupported token subject {subject!r}")


async def authenticate_token(session: AsyncSession, issuer: TokenIssuer, token: str) -> Principal:
    return await resolve_principal(session, issuer.decode(token))


def issue_token(issuer: TokenIssuer, user: User) -> TokenResponse:
    token = issuer.issue(user.id, user.username, user.role)
    return TokenResponse(token=token, user_id=user.id, username=user.username, role=user.role)


async def login(session: AsyncSession, issuer: TokenIssuer, username: str, password: str) -> TokenResponse:
    user = await authenticate_user(session, username, password)
    if not user:
        raise AuthenticationError("Invalid username or password")
    await record_login(session, user)
    logger.info("User %s logged in", user.username)
    return issue_token(issuer, user)
