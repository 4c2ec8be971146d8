"""Shared pytest fixtures."""

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from roadmapper.api.v1 import chat, conversations, roadmaps
from roadmapper.services import ChatService, DuckDBSessionStore, FileSessionStore, ModelGateway

from fakes import FakeChatModel, GROUNDING


@pytest.fixture
def fake_llm():
    """Fake chat model with grounding on every reply."""
    return FakeChatModel(grounding=GROUNDING)


@pytest.fixture
def gateway(fake_llm):
    """ModelGateway over the fake chat model."""
    return ModelGateway(fake_llm)


@pytest.fixture
def snapshot_path(tmp_path):
    """Path of the JSON snapshot used by the file store."""
    return tmp_path / "conversations.json"


@pytest.fixture
def file_store(snapshot_path):
    """Fresh file-backed session store."""
    return FileSessionStore(str(snapshot_path))


@pytest.fixture
def duckdb_path(tmp_path):
    """Path of the DuckDB database used by the transactional store."""
    return str(tmp_path / "sessions.db")


@pytest.fixture
def duckdb_store(duckdb_path):
    """Fresh DuckDB-backed session store."""
    store = DuckDBSessionStore(duckdb_path)
    yield store
    store.close()


@pytest.fixture(params=["file", "duckdb"])
def store(request):
    """Each session store backend in turn."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def chat_service(gateway, file_store):
    """ChatService over the fake model and a file store."""
    return ChatService(gateway, file_store)


@pytest.fixture
async def client(chat_service, file_store):
    """Async HTTP client against a test app without lifespan."""
    roadmaps.chat_service = chat_service
    chat.chat_service = chat_service
    conversations.session_store = file_store

    test_app = FastAPI(title="Roadmapper Test")
    test_app.include_router(roadmaps.router)
    test_app.include_router(chat.router)
    test_app.include_router(conversations.router)

    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    roadmaps.chat_service = None
    chat.chat_service = None
    conversations.session_store = None
