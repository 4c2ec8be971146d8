"""Chat API models."""

from typing import Any, Dict, Literal, Optional, Union
from pydantic import Field

from .conversation import CamelModel
from .roadmap import RoadmapResult


class ChatRequest(CamelModel):
    """Request model for /chat. Presence of message is checked by the route."""

    message: Optional[str] = Field(None, description="User message")
    session_id: Optional[str] = Field(None, description="Existing session; omit to start one")


class ChatResponse(CamelModel):
    """Response model for /chat."""

    response: Union[RoadmapResult, str] = Field(description="Roadmap result or model reply")
    type: Literal["roadmap", "chat"] = Field(description="Which path handled the message")
    session_id: str = Field(description="Session the turn was recorded under")
    grounding_metadata: Optional[Dict[str, Any]] = Field(None, description="Search grounding for chat replies")
