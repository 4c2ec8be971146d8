"""Session/chat endpoint logic."""

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from ..db.database_models.conversation import ROLE_MODEL, ROLE_USER, TurnDO
from ..exceptions import ChatGenerationError, ConversationNotFoundError, InvalidInputError
from ..models.conversation import ConversationPatch
from ..models.roadmap import RoadmapResult
from ..utils.logger import get_app_logger
from .llm_gateway import ModelGateway
from .roadmap_pipeline import RoadmapPipeline
from .session_store import BaseSessionStore


ROADMAP_TRIGGERS = ("generate roadmap", "create roadmap", "build roadmap")

_TRIGGER_PATTERN = re.compile("|".join(re.escape(t) for t in ROADMAP_TRIGGERS), re.IGNORECASE)


def is_roadmap_request(message: str) -> bool:
    """True when the message asks for a roadmap rather than a chat reply."""
    lowered = message.lower()
    return any(trigger in lowered for trigger in ROADMAP_TRIGGERS)


def extract_idea(message: str) -> str:
    """
    Derive the idea from a roadmap request.

    Everything up to and including the first trigger phrase is dropped. When
    nothing follows the trigger, the text before it is used instead.
    """
    match = _TRIGGER_PATTERN.search(message)
    if match is None:
        return " ".join(message.split())
    idea = message[match.end():].strip(" \t\n:,-")
    if not idea:
        idea = message[:match.start()].strip(" \t\n:,-")
    return " ".join(idea.split())


@dataclass
class ChatReply:
    """What one inbound message produced."""

    response: Union[RoadmapResult, str]
    type: str
    session_id: str
    grounding_metadata: Optional[Dict[str, Any]] = None


class ChatService:
    """Routes inbound messages to the roadmap pipeline or a single chat turn."""

    def __init__(self, gateway: ModelGateway, store: BaseSessionStore):
        self.gateway = gateway
        self.store = store
        self.pipeline = RoadmapPipeline(gateway, store)
        self.logger = get_app_logger()

    async def generate_roadmap(self, idea_description: Any) -> Tuple[str, RoadmapResult]:
        """Create a conversation for ``idea_description`` and run the full pipeline."""
        if idea_description is None or (isinstance(idea_description, str) and not idea_description.strip()):
            raise InvalidInputError("Missing 'ideaDescription' in request body")

        conversation = self.store.create(idea_description)
        async with self.store.locked(conversation.id):
            roadmap = await self.pipeline.run(conversation.id)
        return conversation.id, roadmap

    async def handle_message(self, message: Optional[str], session_id: Optional[str] = None) -> ChatReply:
        """
        Answer one inbound message, recording it in the session transcript.

        A missing or unknown ``session_id`` starts a new conversation; the
        reply carries the id the store assigned.
        """
        if not message or not message.strip():
            raise InvalidInputError("Message is required")

        if session_id is not None and self.store.get(session_id) is None:
            self.logger.info(f"Unknown session {session_id}, starting a new conversation")
            session_id = None

        if is_roadmap_request(message):
            return await self._handle_roadmap(message, session_id)
        return await self._handle_chat(message, session_id)

    async def _handle_roadmap(self, message: str, session_id: Optional[str]) -> ChatReply:
        idea = extract_idea(message)
        if not idea:
            raise InvalidInputError("Could not find an idea description in the message")

        if session_id is None:
            session_id = self.store.create(idea).id

        async with self.store.locked(session_id):
            roadmap = await self.pipeline.run(session_id, idea_description=idea)
            self._require(
                self.store.update(
                    session_id,
                    ConversationPatch(),
                    append_turns=[
                        TurnDO(role=ROLE_USER, content=message),
                        TurnDO(role=ROLE_MODEL, content=roadmap.summary()),
                    ]
                ),
                session_id
            )

        self.logger.info(f"Roadmap generated from chat for session {session_id}")
        return ChatReply(response=roadmap, type="roadmap", session_id=session_id)

    async def _handle_chat(self, message: str, session_id: Optional[str]) -> ChatReply:
        if session_id is None:
            session_id = self.store.create("").id

        async with self.store.locked(session_id):
            conversation = self._require(
                self.store.append_turn(session_id, TurnDO(role=ROLE_USER, content=message)),
                session_id
            )
            prior_turns = conversation.history[:-1]
            result = await self.gateway.converse(message, prior_turns)
            if not result.ok:
                raise ChatGenerationError(f"Chat reply failed for session {session_id}: {result.error}")

            self._require(
                self.store.append_turn(session_id, TurnDO(role=ROLE_MODEL, content=result.text)),
                session_id
            )

        return ChatReply(
            response=result.text,
            type="chat",
            session_id=session_id,
            grounding_metadata=result.grounding_metadata
        )

    @staticmethod
    def _require(conversation, session_id: str):
        if conversation is None:
            raise ConversationNotFoundError(session_id)
        return conversation
