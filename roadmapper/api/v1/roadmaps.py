"""Roadmap generation REST API routes - V1."""

from fastapi import APIRouter, HTTPException, Depends

from ...exceptions import (
    ConversationNotFoundError,
    InvalidInputError,
    RoadmapAlreadyCompleteError,
    RoadmapperError,
)
from ...models.roadmap import GenerateRoadmapRequest, GenerateRoadmapResponse
from ...services import ChatService
from ...utils.logger import get_app_logger

router = APIRouter(tags=["Roadmaps"])

# Chat service (set by main.py)
chat_service: ChatService = None


def get_chat_service() -> ChatService:
    """Dependency to get the chat service."""
    if chat_service is None:
        raise HTTPException(status_code=500, detail="Chat service not initialized")
    return chat_service


@router.post("/generate-roadmap", response_model=GenerateRoadmapResponse)
async def generate_roadmap(
    request: GenerateRoadmapRequest,
    service: ChatService = Depends(get_chat_service)
):
    """Create a conversation for an idea and run the full roadmap pipeline."""
    try:
        conversation_id, roadmap = await service.generate_roadmap(request.idea_description)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RoadmapAlreadyCompleteError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except RoadmapperError as e:
        get_app_logger().error(f"Error generating roadmap: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate roadmap. Please check server logs.")

    return GenerateRoadmapResponse(conversation_id=conversation_id, roadmap=roadmap)
