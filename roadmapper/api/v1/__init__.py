"""API v1 package."""

from .roadmaps import router as roadmaps_router
from .chat import router as chat_router
from .conversations import router as conversations_router

__all__ = ["roadmaps_router", "chat_router", "conversations_router"]
