"""Services package."""

from .session_store import (
    BaseSessionStore,
    DuckDBSessionStore,
    FileSessionStore,
    create_session_store,
)
from .llm_gateway import LLMResult, ModelGateway
from .roadmap_pipeline import PHASES, RoadmapPipeline
from .chat_service import ChatReply, ChatService, extract_idea, is_roadmap_request

__all__ = [
    "BaseSessionStore",
    "DuckDBSessionStore",
    "FileSessionStore",
    "create_session_store",
    "LLMResult",
    "ModelGateway",
    "PHASES",
    "RoadmapPipeline",
    "ChatReply",
    "ChatService",
    "extract_idea",
    "is_roadmap_request",
]
