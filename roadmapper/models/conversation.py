"""Conversation API models."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exchanging camelCase keys with clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TurnResponse(CamelModel):
    """Response model for a single transcript turn."""

    role: Literal["user", "model"] = Field(description="Turn author")
    content: str = Field(description="Turn text")
    timestamp: Optional[datetime] = Field(None, description="When the turn was recorded")


class RoadmapFields(CamelModel):
    """The four roadmap fields as stored, each None until its phase has run."""

    initial_clarification_questions: Optional[str] = None
    market_overview: Optional[str] = None
    market_overview_grounding_metadata: Optional[Dict[str, Any]] = None
    mvp_epics: Optional[str] = None
    task_breakdown: Optional[str] = None


class ConversationResponse(CamelModel):
    """Response model for conversation information."""

    id: str = Field(description="Conversation ID")
    idea_description: Any = Field(description="Originating idea, text or structured")
    history: List[TurnResponse] = Field(default_factory=list, description="Ordered transcript")
    roadmap: RoadmapFields = Field(description="Partial or complete roadmap")
    roadmap_complete: bool = Field(description="Whether all four phases have been stored")
    created_at: datetime = Field(description="Creation timestamp")
    last_accessed: datetime = Field(description="Last mutation timestamp")


class ConversationPatch(CamelModel):
    """
    Fields a store update may replace.

    Anything not named here is rejected at the store boundary. Only fields
    explicitly set on the patch are merged.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    idea_description: Any = None
    initial_clarification_questions: Optional[str] = None
    market_overview: Optional[str] = None
    market_overview_grounding_metadata: Optional[Dict[str, Any]] = None
    mvp_epics: Optional[str] = None
    task_breakdown: Optional[str] = None

    def roadmap_updates(self) -> Dict[str, Any]:
        """Set fields that belong to the roadmap record."""
        updates = self.model_dump(exclude_unset=True)
        updates.pop("idea_description", None)
        return updates

    def has_idea(self) -> bool:
        return "idea_description" in self.model_fields_set
