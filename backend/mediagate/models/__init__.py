"""SQLAlchemy models exposed for metadata creation and imports."""
from .config import GlobalConfig, UserProviderConfig
from .feedback import Feedback
from .task import GenerationTask
from .user import User

__all__ = ["User", "UserProviderConfig", "GlobalConfig", "GenerationTask", "Feedback"]
