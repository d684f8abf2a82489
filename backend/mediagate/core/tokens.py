"""Bearer token issuance and verification.

Tokens are HS256 JWTs carrying ``sub``, ``username``, ``role``, ``iat`` and
``exp``. Two subject encodings are accepted: the stable user id (current) and
the username (legacy tokens, or tokens with no ``sub`` at all). The decoded
subject is modelled as :class:`CurrentSubject` or :class:`LegacySubject`;
resolving a legacy subject to a user id needs a database lookup and lives in
``mediagate.services.auth``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Union

from jose import JWTError, jwt

from .config import get_settings
from .errors import InvalidTokenError

ALGORITHM = "HS256"

_USER_ID_PATTERN = re.compile(r"^[0-9a-f]{24}$")


def is_user_id(value: str) -> bool:
    """Return True when ``value`` has the shape of a stable user id."""

    return bool(_USER_ID_PATTERN.match(value))


@dataclass(frozen=True, slots=True)
class CurrentSubject:
    user_id: str


@dataclass(frozen=True, slots=True)
class LegacySubject:
    username: str


Subject = Union[CurrentSubject, LegacySubject]


@dataclass(frozen=True, slots=True)
class TokenClaims:
    subject: Subject
    username: str | None
    role: str | None


def parse_subject(payload: dict[str, Any]) -> Subject:
    sub = payload.get("sub")
    if isinstance(sub, str) and sub:
        if is_user_id(sub):
            return CurrentSubject(sub)
        return LegacySubject(sub)
    username = payload.get("username")
    if isinstance(username, str) and username:
        return LegacySubject(username)
    raise InvalidTokenError("Token has no subject")


class TokenIssuer:
    """Sign and verify HS256 bearer tokens."""

    def __init__(self, secret: str | None = None, lifetime: timedelta | None = None) -> None:
        settings = get_settings()
        self._secret = secret or settings.secret_key
        self.lifetime = lifetime or timedelta(minutes=settings.access_token_expire_minutes)

    def issue(self, user_id: str, username: str, role: str, *, issued_at: datetime | None = None) -> str:
        now = issued_at or datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "username": username,
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int((now + self.lifetime).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def decode(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM], options={"require_exp": True})
        except JWTError as exc:
            raise InvalidTokenError("Invalid or expired token") from exc
        return TokenClaims(
            subject=parse_subject(payload),
            username=payload.get("username"),
            role=payload.get("role"),
        )
