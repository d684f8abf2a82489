"""Security helpers for password credentials, secret encryption and key masking."""
from __future__ import annotations

import base64
import hashlib
import secrets

from cryptography.exceptions import InvalidKey
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .config import get_settings

SALT_BYTES = 16
KEY_LENGTH = 32
MASK = "****"
MASK_VISIBLE_CHARS = 6


def _scrypt(salt: str) -> Scrypt:
    # N=16384, r=8, p=1 matches the credentials already stored by earlier deployments.
    return Scrypt(salt=salt.encode("utf-8"), length=KEY_LENGTH, n=2**14, r=8, p=1)


class PasswordHasher:
    """Hash and verify user passwords as ``hexsalt:hexkey`` scrypt credentials."""

    @staticmethod
    def hash(password: str) -> str:
        salt = secrets.token_hex(SALT_BYTES)
        derived = _scrypt(salt).derive(password.encode("utf-8"))
        return f"{salt}:{derived.hex()}"

    @staticmethod
    def verify(password: str, credential: str) -> bool:
        """Return True only when ``password`` derives the stored key.

        Malformed credentials never raise, they simply do not verify.
        """
        salt, separator, derived_hex = (credential or "").partition(":")
        if not separator or not salt or not derived_hex:
            return False
        try:
            expected = bytes.fromhex(derived_hex)
        except ValueError:
            return False
        if len(expected) != KEY_LENGTH:
            return False
        try:
            _scrypt(salt).verify(password.encode("utf-8"), expected)
        except InvalidKey:
            return False
        return True


def _derive_fernet_key(secret: str) -> bytes:
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


class SecretManager:
    """Encrypt and decrypt sensitive secrets with Fernet."""

    def __init__(self, key: str | None = None) -> None:
        settings = get_settings()
        raw_key = key or settings.encryption_key or settings.secret_key
        derived = _derive_fernet_key(raw_key)
        self._fernet = Fernet(derived)

    def encrypt(self, value: str) -> str:
        return self._fernet.encrypt(value.encode("utf-8")).decode("utf-8")

    def decrypt(self, token: str) -> str:
        try:
            return self._fernet.decrypt(token.encode("utf-8")).decode("utf-8")
        except InvalidToken as exc:
            raise ValueError("Invalid encryption token") from exc


def mask_key(key: str | None) -> str:
    """Redact the middle of an API key for display."""

    if not key:
        return ""
    if len(key) <= MASK_VISIBLE_CHARS * 2:
        return MASK
    return f"{key[:MASK_VISIBLE_CHARS]}{MASK}{key[-MASK_VISIBLE_CHARS:]}"
