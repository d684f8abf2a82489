"""Supervised registry for work that outlives the request that started it."""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Coroutine
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BackgroundFailure:
    name: str
    error: str
    failed_at: datetime


class BackgroundTaskRegistry:
    """Track detached asyncio tasks, log their failures and drain them at shutdown."""

    def __init__(self, failure_history: int = 100) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._failures: deque[BackgroundFailure] = deque(maxlen=failure_history)
        self._closed = False

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        if self._closed:
            coro.close()
            raise RuntimeError("Background registry is shut down")
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        logger.debug("Spawned background task %s", name)
        return task

    def _finished(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Background task %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task %s failed", task.get_name(), exc_info=exc)
            self._failures.append(BackgroundFailure(task.get_name(), repr(exc), datetime.now(timezone.utc)))

    @property
    def pending(self) -> int:
        return len(self._tasks)

    @property
    def failures(self) -> list[BackgroundFailure]:
        return list(self._failures)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for outstanding work; cancel whatever is still running after ``timeout``."""

        if not self._tasks:
            return
        logger.info("Waiting for %d background task(s)", len(self._tasks))
        _, still_running = await asyncio.wait(set(self._tasks), timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning("Cancelled %d background task(s) at shutdown", len(still_running))

    async def shutdown(self, timeout: float | None = None) -> None:
        self._closed = True
        await self.drain(timeout)
