"""Database models (Data Objects) - map to database tables."""

from .conversation import ConversationDO, RoadmapDO, TurnDO

__all__ = ["ConversationDO", "RoadmapDO", "TurnDO"]
