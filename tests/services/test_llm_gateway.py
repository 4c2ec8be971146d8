"""Tests for ModelGateway."""

import asyncio

import pytest
from langchain_core.messages import AIMessage, HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from roadmapper.config import Settings
from roadmapper.db.database_models import TurnDO
from roadmapper.services.llm_gateway import (
    CHAT_FAILURE_TEXT,
    GENERATE_FAILURE_TEXT,
    ModelGateway,
    history_to_messages,
    search_tool,
)

from fakes import FakeChatModel, GROUNDING


class SlowChatModel:
    """Never answers within the test timeout."""

    async def ainvoke(self, messages):
        await asyncio.sleep(5)
        return AIMessage(content="too late")


class TestHistoryToMessages:
    """SUT: history_to_messages"""

    def test_roles_map_to_message_types(self):
        messages = history_to_messages([
            TurnDO(role="user", content="q"),
            TurnDO(role="model", content="a"),
        ])
        assert isinstance(messages[0], HumanMessage)
        assert isinstance(messages[1], AIMessage)
        assert [m.content for m in messages] == ["q", "a"]

    def test_unknown_role(self):
        with pytest.raises(ValueError):
            history_to_messages([TurnDO(role="system", content="x")])


class TestGenerateOnce:
    """SUT: ModelGateway.generate_once"""

    async def test_success(self):
        llm = FakeChatModel(replies=["hello"], grounding=GROUNDING)
        result = await ModelGateway(llm).generate_once("say hello")

        assert result.ok is True
        assert result.text == "hello"
        assert result.grounding_metadata == GROUNDING
        assert len(llm.calls[0]) == 1
        assert llm.calls[0][0].content == "say hello"

    async def test_failure_returns_sentinel(self):
        result = await ModelGateway(FakeChatModel(fail_on=(1,))).generate_once("x")

        assert result.ok is False
        assert result.text == GENERATE_FAILURE_TEXT
        assert result.grounding_metadata is None
        assert "model unavailable" in result.error

    async def test_no_grounding(self):
        result = await ModelGateway(FakeChatModel(replies=["plain"])).generate_once("x")
        assert result.grounding_metadata is None


class TestConverse:
    """SUT: ModelGateway.converse"""

    async def test_history_precedes_prompt(self):
        llm = FakeChatModel(replies=["answer"])
        history = [TurnDO(role="user", content="q1"), TurnDO(role="model", content="a1")]
        result = await ModelGateway(llm).converse("q2", history)

        assert result.ok is True
        sent = llm.calls[0]
        assert [type(m) for m in sent] == [HumanMessage, AIMessage, HumanMessage]
        assert [m.content for m in sent] == ["q1", "a1", "q2"]

    async def test_failure_returns_chat_sentinel(self):
        result = await ModelGateway(FakeChatModel(fail_on=(1,))).converse("x", [])
        assert result.ok is False
        assert result.text == CHAT_FAILURE_TEXT

    async def test_bad_history_is_a_failure_not_an_exception(self):
        llm = FakeChatModel()
        result = await ModelGateway(llm).converse("x", [TurnDO(role="tool", content="?")])
        assert result.ok is False
        assert llm.calls == []

    async def test_list_content_is_flattened(self):
        class BlockModel:
            async def ainvoke(self, messages):
                return AIMessage(content=[{"type": "text", "text": "part one, "}, "part two"])

        result = await ModelGateway(BlockModel()).converse("x")
        assert result.text == "part one, part two"


class TestRetriesAndTimeout:
    """Optional resilience settings."""

    async def test_no_retry_by_default(self):
        llm = FakeChatModel(fail_on=(1,))
        result = await ModelGateway(llm).converse("x")
        assert result.ok is False
        assert len(llm.calls) == 1

    async def test_retry_recovers(self):
        llm = FakeChatModel(replies=["lost", "second try"], fail_on=(1,))
        result = await ModelGateway(llm, max_retries=2).converse("x")
        assert result.ok is True
        assert result.text == "second try"
        assert len(llm.calls) == 2

    async def test_timeout_is_a_failure(self):
        result = await ModelGateway(SlowChatModel(), timeout=0.05).converse("x")
        assert result.ok is False
        assert result.text == CHAT_FAILURE_TEXT


class TestSearchTool:
    """SUT: search_tool"""

    def test_current_models_use_google_search(self):
        assert search_tool("gemini-2.0-flash") == {"google_search": {}}
        assert search_tool("models/gemini-2.5-pro") == {"google_search": {}}

    def test_legacy_models_use_dynamic_retrieval(self):
        tool = search_tool("models/gemini-1.5-pro-002")
        config = tool["google_search_retrieval"]["dynamic_retrieval_config"]
        assert config == {"mode": "MODE_DYNAMIC", "dynamic_threshold": 0.7}


class TestFromSettings:
    """SUT: ModelGateway.from_settings"""

    @pytest.fixture
    def bound_tools(self, monkeypatch):
        """Record the tools bound to the Gemini client."""
        calls = []

        def fake_bind_tools(self, tools, **kwargs):
            calls.append(tools)
            return self

        monkeypatch.setattr(ChatGoogleGenerativeAI, "bind_tools", fake_bind_tools)
        return calls

    def test_builds_gemini_client(self, bound_tools):
        """The configured model and resilience options are wired through."""
        settings = Settings(
            gemini_api_key="test-key-not-real-1234",
            llm_model="gemini-2.0-flash",
            llm_enable_search=False,
            llm_timeout=30,
            llm_max_retries=1,
            log_file=None
        )
        gateway = ModelGateway.from_settings(settings)

        assert gateway.timeout == 30
        assert gateway.max_retries == 1
        assert gateway.llm.model.endswith("gemini-2.0-flash")
        assert bound_tools == []

    def test_default_model_binds_google_search(self, bound_tools):
        settings = Settings(gemini_api_key="test-key-not-real-1234", log_file=None)
        assert settings.llm_model == "gemini-2.0-flash"

        ModelGateway.from_settings(settings)

        assert bound_tools == [[{"google_search": {}}]]

    def test_legacy_model_binds_dynamic_retrieval(self, bound_tools):
        settings = Settings(
            gemini_api_key="test-key-not-real-1234",
            llm_model="gemini-1.5-pro-002",
            log_file=None
        )
        ModelGateway.from_settings(settings)

        assert list(bound_tools[0][0]) == ["google_search_retrieval"]
