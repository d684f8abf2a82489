"""API router aggregator."""
from fastapi import APIRouter

from mediagate.api.routes import admin, auth, config, feedback, grok, images, tasks, user_config, veo, video

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(user_config.router)
api_router.include_router(config.router)
api_router.include_router(video.router)
api_router.include_router(veo.router)
api_router.include_router(grok.router)
api_router.include_router(images.router)
api_router.include_router(tasks.router)
api_router.include_router(feedback.router)
api_router.include_router(admin.router)

__all__ = ["api_router"]
