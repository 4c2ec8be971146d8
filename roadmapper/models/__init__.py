"""Pydantic models for API request/response."""

from .conversation import (
    ConversationPatch,
    ConversationResponse,
    RoadmapFields,
    TurnResponse,
)
from .roadmap import GenerateRoadmapRequest, GenerateRoadmapResponse, RoadmapResult
from .chat import ChatRequest, ChatResponse

__all__ = [
    "ConversationPatch",
    "ConversationResponse",
    "RoadmapFields",
    "TurnResponse",
    "GenerateRoadmapRequest",
    "GenerateRoadmapResponse",
    "RoadmapResult",
    "ChatRequest",
    "ChatResponse",
]
