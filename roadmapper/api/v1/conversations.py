"""Conversation REST API routes - V1."""

from fastapi import APIRouter, HTTPException, Depends

from ...db.database_models import ConversationDO
from ...exceptions import SessionStoreError
from ...models.conversation import ConversationResponse, RoadmapFields, TurnResponse
from ...services import BaseSessionStore

router = APIRouter(prefix="/api/v1/conversations", tags=["Conversations"])

# Session store (set by main.py)
session_store: BaseSessionStore = None


def get_session_store() -> BaseSessionStore:
    """Dependency to get the session store."""
    if session_store is None:
        raise HTTPException(status_code=500, detail="Session store not initialized")
    return session_store


def _to_response(conv: ConversationDO) -> ConversationResponse:
    """Convert ConversationDO to ConversationResponse."""
    return ConversationResponse(
        id=conv.id,
        idea_description=conv.idea_description,
        history=[
            TurnResponse(role=turn.role, content=turn.content, timestamp=turn.timestamp)
            for turn in conv.history
        ],
        roadmap=RoadmapFields(**conv.roadmap.to_dict()),
        roadmap_complete=conv.roadmap.is_complete(),
        created_at=conv.created_at,
        last_accessed=conv.last_accessed
    )


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: str,
    store: BaseSessionStore = Depends(get_session_store)
):
    """Get conversation details, including partial roadmap results."""
    try:
        conversation = store.get(conversation_id)
    except SessionStoreError:
        raise HTTPException(status_code=500, detail="Failed to read conversation")

    if not conversation:
        raise HTTPException(status_code=404, detail=f"Conversation not found: {conversation_id}")

    return _to_response(conversation)
