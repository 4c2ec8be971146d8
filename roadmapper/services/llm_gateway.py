"""Model gateway - Gemini calls through LangChain.

Failures never cross this boundary as exceptions. Every call returns an
``LLMResult`` whose ``ok`` flag tells callers whether ``text`` is a model
answer or the fallback message.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from ..db.database_models.conversation import ROLE_MODEL, ROLE_USER, TurnDO
from ..utils.logger import get_app_logger


GENERATE_FAILURE_TEXT = "Error generating text. Please check the logs."
CHAT_FAILURE_TEXT = "Error in chat. Please check the logs."


@dataclass
class LLMResult:
    """Outcome of one model call."""

    ok: bool
    text: str
    grounding_metadata: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @classmethod
    def failure(cls, text: str, error: str) -> "LLMResult":
        return cls(ok=False, text=text, grounding_metadata=None, error=error)


def history_to_messages(history: Sequence[TurnDO]) -> List[BaseMessage]:
    """Translate transcript turns into chat messages."""
    messages: List[BaseMessage] = []
    for turn in history:
        if turn.role == ROLE_USER:
            messages.append(HumanMessage(content=turn.content))
        elif turn.role == ROLE_MODEL:
            messages.append(AIMessage(content=turn.content))
        else:
            raise ValueError(f"Unknown turn role: {turn.role}")
    return messages


def _content_to_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type", "text") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def search_tool(model: str) -> Dict[str, Any]:
    """
    Google Search grounding tool for ``model``.

    Gemini 1.x models only accept dynamic search retrieval; later models
    take the plain ``google_search`` tool.
    """
    name = model.split("/")[-1]
    if name.startswith("gemini-1."):
        return {
            "google_search_retrieval": {
                "dynamic_retrieval_config": {
                    "mode": "MODE_DYNAMIC",
                    "dynamic_threshold": 0.7,
                }
            }
        }
    return {"google_search": {}}


class ModelGateway:
    """Single-turn and multi-turn access to the language model."""

    def __init__(self, llm, timeout: Optional[float] = None, max_retries: int = 0):
        """
        Args:
            llm: LangChain chat model (anything exposing ``ainvoke``)
            timeout: Seconds to wait for one attempt; None waits indefinitely
            max_retries: Extra attempts after a failed call
        """
        self.llm = llm
        self.timeout = timeout
        self.max_retries = max_retries
        self.logger = get_app_logger()

    @classmethod
    def from_settings(cls, settings) -> "ModelGateway":
        """Build a Gemini-backed gateway, optionally grounded with Google Search."""
        llm = ChatGoogleGenerativeAI(**settings.get_llm_config())
        if settings.llm_enable_search:
            llm = llm.bind_tools([search_tool(settings.llm_model)])
        return cls(llm, timeout=settings.llm_timeout, max_retries=settings.llm_max_retries)

    async def generate_once(self, prompt: str) -> LLMResult:
        """Single-turn call with no prior context."""
        return await self._invoke([HumanMessage(content=prompt)], GENERATE_FAILURE_TEXT, "generate")

    async def converse(self, prompt: str, history: Sequence[TurnDO] = ()) -> LLMResult:
        """Send ``prompt`` after replaying ``history`` as prior turns."""
        try:
            messages = history_to_messages(history)
        except ValueError as e:
            self.logger.error(f"Error in chat with history: {e}")
            return LLMResult.failure(CHAT_FAILURE_TEXT, str(e))
        messages.append(HumanMessage(content=prompt))
        return await self._invoke(messages, CHAT_FAILURE_TEXT, "chat")

    async def _invoke(self, messages: List[BaseMessage], failure_text: str, label: str) -> LLMResult:
        attempts = self.max_retries + 1
        last_error = ""

        for attempt in range(1, attempts + 1):
            try:
                call = self.llm.ainvoke(messages)
                if self.timeout:
                    response = await asyncio.wait_for(call, timeout=self.timeout)
                else:
                    response = await call
            except Exception as e:
                last_error = repr(e)
                self.logger.warning(
                    f"Model {label} call failed (attempt {attempt}/{attempts}): {last_error}",
                    exc_info=True
                )
                continue

            metadata = getattr(response, "response_metadata", None) or {}
            return LLMResult(
                ok=True,
                text=_content_to_text(response.content),
                grounding_metadata=metadata.get("grounding_metadata") or None
            )

        self.logger.error(f"Model {label} call gave up after {attempts} attempt(s): {last_error}")
        return LLMResult.failure(failure_text, last_error)
