"""One-time verification codes and their delivery."""
from __future__ import annotations

import logging
import secrets
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Protocol

from mediagate.core.errors import RateLimitError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Entry:
    code: str
    issued_at: float
    expires_at: float


def mask_email(address: str) -> str:
    name, _, domain = address.partition("@")
    if not domain:
        return "***"
    visible = name[:2] if len(name) > 2 else name[:1]
    return f"{visible}***@{domain}"


class VerificationCodeStore:
    """Bounded in-memory store of six-digit codes keyed by address.

    Eviction policy: an entry is dropped when it is verified, when it is read
    after expiry, on :meth:`purge_expired`, and when the store is full, in
    which case expired entries go first and then the oldest live entry.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = 300,
        resend_interval_seconds: float = 60,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self._ttl = ttl_seconds
        self._resend_interval = resend_interval_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, _Entry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def _key(address: str) -> str:
        return address.strip().lower()

    def issue(self, address: str) -> str:
        """Create a fresh code for ``address``, replacing any previous one."""

        key = self._key(address)
        now = self._clock()
        existing = self._entries.get(key)
        if existing and existing.expires_at > now and now - existing.issued_at < self._resend_interval:
            wait = int(self._resend_interval - (now - existing.issued_at)) + 1
            raise RateLimitError(f"Code sent too recently, retry in {wait} seconds")
        self._entries.pop(key, None)
        self._make_room()
        code = f"{secrets.randbelow(900_000) + 100_000}"
        self._entries[key] = _Entry(code=code, issued_at=now, expires_at=now + self._ttl)
        return code

    def discard(self, address: str) -> None:
        self._entries.pop(self._key(address), None)

    def verify(self, address: str, code: str) -> bool:
        """Check ``code``; a matching code is consumed and cannot be used twice."""

        key = self._key(address)
        entry = self._entries.get(key)
        if entry is None:
            return False
        if self._clock() > entry.expires_at:
            del self._entries[key]
            return False
        if not secrets.compare_digest(entry.code, code):
            return False
        del self._entries[key]
        return True

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at < now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def _make_room(self) -> None:
        if len(self._entries) < self._max_entries:
            return
        self.purge_expired()
        while len(self._entries) >= self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Verification store full, evicted code for %s", mask_email(evicted))


class CodeDelivery(Protocol):
    async def deliver(self, address: str, code: str) -> None:
        ...


class LoggingCodeDelivery:
    """Delivery sink used when no mail transport is wired in."""

    async def deliver(self, address: str, code: str) -> None:
        logger.info("Verification code issued for %s", mask_email(address))
