"""Chat REST API routes - V1."""

from fastapi import APIRouter, HTTPException, Depends

from ...exceptions import (
    ConversationNotFoundError,
    InvalidInputError,
    RoadmapAlreadyCompleteError,
    RoadmapperError,
)
from ...models.chat import ChatRequest, ChatResponse
from ...services import ChatService
from ...utils.logger import get_app_logger

router = APIRouter(tags=["Chat"])

# Chat service (set by main.py)
chat_service: ChatService = None


def get_chat_service() -> ChatService:
    """Dependency to get the chat service."""
    if chat_service is None:
        raise HTTPException(status_code=500, detail="Chat service not initialized")
    return chat_service


@router.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(
    request: ChatRequest,
    service: ChatService = Depends(get_chat_service)
):
    """Answer a message, or generate a roadmap when the message asks for one."""
    try:
        reply = await service.handle_message(request.message, request.session_id)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RoadmapAlreadyCompleteError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except RoadmapperError as e:
        get_app_logger().error(f"Error in chat endpoint: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    return ChatResponse(
        response=reply.response,
        type=reply.type,
        session_id=reply.session_id,
        grounding_metadata=reply.grounding_metadata
    )
