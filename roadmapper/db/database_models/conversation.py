"""Conversation database model."""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional


ROLE_USER = "user"
ROLE_MODEL = "model"


@dataclass
class TurnDO:
    """One transcript entry."""

    role: str
    content: str
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TurnDO":
        timestamp = data.get("timestamp")
        return cls(
            role=data["role"],
            content=data.get("content", ""),
            timestamp=datetime.fromisoformat(timestamp) if timestamp else datetime.utcnow(),
        )


@dataclass
class RoadmapDO:
    """Partial roadmap; a field stays None until its phase has run."""

    initial_clarification_questions: Optional[str] = None
    market_overview: Optional[str] = None
    market_overview_grounding_metadata: Optional[Dict[str, Any]] = None
    mvp_epics: Optional[str] = None
    task_breakdown: Optional[str] = None

    # Grounding metadata is optional and never counts as a phase result.
    PHASE_FIELDS = (
        "initial_clarification_questions",
        "market_overview",
        "mvp_epics",
        "task_breakdown",
    )

    def completed_phases(self) -> List[str]:
        return [name for name in self.PHASE_FIELDS if getattr(self, name)]

    def is_complete(self) -> bool:
        return len(self.completed_phases()) == len(self.PHASE_FIELDS)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RoadmapDO":
        data = data or {}
        return cls(**{f.name: data.get(f.name) for f in fields(cls)})


@dataclass
class ConversationDO:
    """Conversation data object - maps to conversations table / snapshot record."""

    id: str
    idea_description: Any = ""
    history: List[TurnDO] = field(default_factory=list)
    roadmap: RoadmapDO = field(default_factory=RoadmapDO)
    created_at: datetime = field(default_factory=datetime.utcnow)
    last_accessed: datetime = field(default_factory=datetime.utcnow)
