"""FastAPI application entrypoint."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

import mediagate.models  # noqa: F401  registers tables on Base.metadata
from mediagate.api import api_router
from mediagate.core.config import get_settings
from mediagate.core.errors import register_exception_handlers
from mediagate.db.base import Base
from mediagate.db.session import engine, get_session
from mediagate.services.background import BackgroundTaskRegistry
from mediagate.services.scheduler import schedule_code_purge_job, start_scheduler, stop_scheduler
from mediagate.services.user_config import ensure_all_user_configs
from mediagate.services.users import bootstrap_admin, list_user_ids
from mediagate.services.verification import LoggingCodeDelivery, VerificationCodeStore

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with get_session() as session:
        await bootstrap_admin(session, settings.initial_credentials_file)
        created = await ensure_all_user_configs(session, await list_user_ids(session))
        await session.commit()
    if created:
        logger.info("Created provider configuration for %d existing user(s)", created)

    app.state.task_registry = BackgroundTaskRegistry()
    app.state.code_store = VerificationCodeStore(
        ttl_seconds=settings.verification_code_ttl_seconds,
        resend_interval_seconds=settings.verification_resend_seconds,
        max_entries=settings.verification_max_entries,
    )
    app.state.code_delivery = LoggingCodeDelivery()

    start_scheduler()
    schedule_code_purge_job(app.state.code_store)

    try:
        yield
    finally:
        stop_scheduler()
        await app.state.task_registry.shutdown(settings.shutdown_drain_timeout_seconds)


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(api_router)

# Generated images are written by the image task runner and served from here.
app.mount(
    settings.upload_url_prefix,
    StaticFiles(directory=settings.upload_dir, check_dir=False),
    name="uploads",
)
