"""Route modules for the MediaGate API."""
from . import admin, auth, config, feedback, grok, images, tasks, user_config, veo, video

__all__ = ["admin", "auth", "config", "feedback", "grok", "images", "tasks", "user_config", "veo", "video"]
