"""Background scheduler for periodic housekeeping."""
from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from mediagate.core.config import get_settings
from mediagate.services.verification import VerificationCodeStore

logger = logging.getLogger(__name__)

PURGE_JOB_ID = "purge-verification-codes"

_scheduler: AsyncIOScheduler | None = None


def get_scheduler() -> AsyncIOScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler()
    return _scheduler


def start_scheduler() -> None:
    scheduler = get_scheduler()
    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started")


def stop_scheduler() -> None:
    """Shut the scheduler down and forget it; it is bound to the loop that started it."""

    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    _scheduler = None


def schedule_code_purge_job(store: VerificationCodeStore) -> None:
    settings = get_settings()
    scheduler = get_scheduler()
    trigger = IntervalTrigger(seconds=settings.verification_purge_interval_seconds)
    scheduler.add_job(_purge_verification_codes, trigger=trigger, id=PURGE_JOB_ID, args=[store], replace_existing=True)
    logger.info("Scheduled %s every %s seconds", PURGE_JOB_ID, trigger.interval.total_seconds())


async def _purge_verification_codes(store: VerificationCodeStore) -> None:
    removed = store.purge_expired()
    if removed:
        logger.debug("Purged %d expired verification code(s), %d remaining", removed, len(store))
