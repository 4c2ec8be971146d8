"""Four-phase MVP roadmap generation."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..db.database_models.conversation import ROLE_MODEL, ROLE_USER, RoadmapDO, TurnDO
from ..exceptions import (
    ConversationNotFoundError,
    RoadmapAlreadyCompleteError,
    RoadmapGenerationError,
    SessionStoreError,
)
from ..models.conversation import TurnResponse
from ..models.roadmap import RoadmapResult
from ..utils.idea_codec import encode_idea
from ..utils.logger import get_app_logger
from .llm_gateway import ModelGateway
from .session_store import BaseSessionStore


@dataclass(frozen=True)
class Phase:
    name: str
    field: str
    prompt_template: str
    grounded: bool = False

    def prompt(self, idea: str) -> str:
        return self.prompt_template.format(idea=idea)


PHASES = (
    Phase(
        name="clarification",
        field="initial_clarification_questions",
        prompt_template=(
            'You are an expert product roadmap generator. A user has provided an idea: "{idea}". '
            "Ask 2-3 concise questions to better understand their idea and its target users. "
            "Focus on clarifying the core functionality and target audience for an MVP."
        ),
    ),
    Phase(
        name="market_overview",
        field="market_overview",
        prompt_template=(
            'Based on our discussion about "{idea}", provide a brief market overview including '
            "potential market size, key competitors, and current trends. Use web search to ground "
            "your response in recent information. Keep it concise for an MVP roadmap context."
        ),
        grounded=True,
    ),
    Phase(
        name="epics",
        field="mvp_epics",
        prompt_template=(
            'Given our previous discussion about the market and the idea "{idea}", suggest 2-3 '
            "high-level epics (major feature areas) for the MVP. Focus on core functionality that "
            "addresses the market needs we identified."
        ),
    ),
    Phase(
        name="task_breakdown",
        field="task_breakdown",
        prompt_template=(
            "Based on all our previous discussion about the market, idea, and epics, break down "
            "the first epic into specific, actionable tasks. Include estimated complexity "
            "(Low/Medium/High) for each task."
        ),
    ),
)


class RoadmapPipeline:
    """
    Runs the phases in order, threading the growing transcript into each call.

    Each phase's result and its prompt/response turns are written to the store
    before the next phase starts. On a transactional store the whole run sits
    in one transaction; otherwise earlier phases stay recorded when a later one
    fails.

    Callers must hold ``store.locked(conversation_id)`` for the duration of
    ``run``.
    """

    def __init__(self, gateway: ModelGateway, store: BaseSessionStore):
        self.gateway = gateway
        self.store = store
        self.logger = get_app_logger()

    async def run(self, conversation_id: str, idea_description: Any = None) -> RoadmapResult:
        """
        Generate all four phases for a conversation.

        ``idea_description``, when given, replaces the stored idea. It is
        written only once the conversation is known to accept a new run.
        """
        conversation = self.store.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        if conversation.roadmap.is_complete():
            raise RoadmapAlreadyCompleteError(conversation_id)

        idea = conversation.idea_description if idea_description is None else idea_description
        idea_text, _ = encode_idea(idea)
        self.logger.info(f"Starting MVP roadmap generation for conversation {conversation_id}: {idea_text[:100]}")

        history: List[TurnDO] = []
        outputs: Dict[str, Any] = {}
        grounding: Optional[Dict[str, Any]] = None
        phase = PHASES[0]

        try:
            with self.store.transaction() as store:
                reset: Dict[str, Any] = {}
                if idea_description is not None:
                    reset["idea_description"] = idea_description
                stale = conversation.roadmap.completed_phases()
                if stale:
                    self.logger.info(f"Re-running partial roadmap for {conversation_id}, clearing {stale}")
                    reset.update({name: None for name in RoadmapDO.PHASE_FIELDS})
                    reset["market_overview_grounding_metadata"] = None
                if reset:
                    self._persist(store, conversation_id, phase, reset, [])

                for phase in PHASES:
                    prompt = phase.prompt(idea_text)
                    result = await self.gateway.converse(prompt, history)
                    if not result.ok:
                        raise RoadmapGenerationError(phase.name, f"model call failed: {result.error}")

                    turns = [
                        TurnDO(role=ROLE_USER, content=prompt),
                        TurnDO(role=ROLE_MODEL, content=result.text),
                    ]
                    history.extend(turns)

                    patch = {phase.field: result.text}
                    if phase.grounded:
                        grounding = result.grounding_metadata
                        patch["market_overview_grounding_metadata"] = grounding
                        self.logger.debug(f"Market overview grounding present: {grounding is not None}")

                    self._persist(store, conversation_id, phase, patch, turns)
                    outputs[phase.field] = result.text
                    self.logger.info(f"Phase '{phase.name}' complete for conversation {conversation_id}")
        except SessionStoreError as e:
            # Raised by the transaction commit itself
            self.logger.error(f"Roadmap commit failed for conversation {conversation_id}: {e}")
            raise RoadmapGenerationError("commit", str(e), cause=e) from e
        except RoadmapGenerationError as e:
            self.logger.error(str(e))
            raise

        self.logger.info(f"Roadmap generation complete for conversation {conversation_id}")
        return RoadmapResult(
            idea=idea,
            market_overview_grounding_metadata=grounding,
            conversation_history=[
                TurnResponse(role=turn.role, content=turn.content, timestamp=turn.timestamp)
                for turn in history
            ],
            **outputs
        )

    @staticmethod
    def _persist(
        store: BaseSessionStore,
        conversation_id: str,
        phase: Phase,
        patch: Dict[str, Any],
        turns: List[TurnDO]
    ) -> None:
        try:
            updated = store.update(conversation_id, patch, append_turns=turns)
        except SessionStoreError as e:
            raise RoadmapGenerationError(phase.name, f"failed to persist result: {e}", cause=e) from e
        if updated is None:
            raise RoadmapGenerationError(phase.name, "conversation no longer exists")
