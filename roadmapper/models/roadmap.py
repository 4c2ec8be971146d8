"""Roadmap API models."""

from typing import Any, Dict, List, Optional
from pydantic import Field

from .conversation import CamelModel, TurnResponse


class GenerateRoadmapRequest(CamelModel):
    """Request model for /generate-roadmap. Presence is checked by the route."""

    idea_description: Any = Field(None, description="Free-text or structured product idea")


class RoadmapResult(CamelModel):
    """Aggregated output of a complete pipeline run."""

    idea: Any = Field(description="Idea the roadmap was generated for")
    initial_clarification_questions: str = Field(description="Phase 1 output")
    market_overview: str = Field(description="Phase 2 output")
    market_overview_grounding_metadata: Optional[Dict[str, Any]] = Field(
        None, description="Search grounding attached to the market overview"
    )
    mvp_epics: str = Field(description="Phase 3 output")
    task_breakdown: str = Field(description="Phase 4 output")
    conversation_history: List[TurnResponse] = Field(
        default_factory=list, description="Phase prompt/response turns in order"
    )

    def summary(self) -> str:
        """Transcript text recorded after a chat-triggered run."""
        return (
            "Here's your roadmap:\n\n"
            f"Initial Questions:\n{self.initial_clarification_questions}\n\n"
            f"Market Overview:\n{self.market_overview}\n\n"
            f"MVP Epics:\n{self.mvp_epics}\n\n"
            f"Task Breakdown:\n{self.task_breakdown}"
        )


class GenerateRoadmapResponse(CamelModel):
    """Response model for /generate-roadmap."""

    conversation_id: str = Field(description="Conversation the roadmap is stored under")
    roadmap: RoadmapResult = Field(description="Generated roadmap")
