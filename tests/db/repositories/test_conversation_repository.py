"""Tests for ConversationRepository."""

import pytest
from datetime import datetime

from roadmapper.db.connection import DatabaseConnection
from roadmapper.db.repositories.conversation import ConversationRepository
from roadmapper.db.database_models.conversation import ConversationDO, RoadmapDO, TurnDO


@pytest.fixture
def db_conn(tmp_path):
    """Provide a fresh database connection."""
    db = DatabaseConnection(str(tmp_path / "test.db"))
    yield db
    db.close()


@pytest.fixture
def repo(db_conn):
    """Provide a ConversationRepository."""
    return ConversationRepository(db_conn.conn)


def _make_conv(**overrides):
    """Factory for ConversationDO with sensible defaults."""
    defaults = dict(id="1", idea_description="a todo app")
    defaults.update(overrides)
    return ConversationDO(**defaults)


class TestConversationRepository:
    """Tests for ConversationRepository."""

    class TestNextId:
        """SUT: ConversationRepository.next_id"""

        def test_monotonic(self, repo):
            """Ids increase with every allocation."""
            assert [repo.next_id() for _ in range(3)] == ["1", "2", "3"]

    class TestCreate:
        """SUT: ConversationRepository.create"""

        def test_returns_true(self, repo):
            """create() should return True on success."""
            assert repo.create(_make_conv()) is True

        def test_duplicate_returns_false(self, repo):
            """A duplicate id is reported, not raised."""
            repo.create(_make_conv())
            assert repo.create(_make_conv()) is False

        def test_fields_persisted(self, repo):
            """Created conversation should be retrievable with all fields."""
            repo.create(_make_conv(
                history=[TurnDO(role="user", content="hi")],
                roadmap=RoadmapDO(initial_clarification_questions="Who are the users?")
            ))
            result = repo.get("1")
            assert result.idea_description == "a todo app"
            assert [(t.role, t.content) for t in result.history] == [("user", "hi")]
            assert result.roadmap.initial_clarification_questions == "Who are the users?"
            assert result.roadmap.market_overview is None

        def test_structured_idea(self, repo):
            """Structured ideas come back deeply equal."""
            idea = {"summary": "AI architecture", "details": {"model": "VLM", "version": 2.1}}
            repo.create(_make_conv(idea_description=idea))
            assert repo.get("1").idea_description == idea

    class TestGet:
        """SUT: ConversationRepository.get"""

        def test_not_found(self, repo):
            """get() should return None for non-existent id."""
            assert repo.get("nonexistent") is None

        def test_malformed_idea(self, repo, db_conn):
            """A corrupt JSON idea degrades to an empty string."""
            db_conn.conn.execute("""
                INSERT INTO conversations (id, idea_description, idea_format, history, roadmap, created_at, last_accessed)
                VALUES ('9', '{"invalid: json}', 'json', '[]', '{}', now(), now())
            """)
            assert repo.get("9").idea_description == ""

    class TestSave:
        """SUT: ConversationRepository.save"""

        def test_overwrites_mutable_columns(self, repo):
            """save() writes history, roadmap and idea back."""
            conv = _make_conv()
            repo.create(conv)
            conv.idea_description = ["a", "b"]
            conv.history.append(TurnDO(role="model", content="hello"))
            conv.roadmap.mvp_epics = "Epic 1"
            assert repo.save(conv) is True

            result = repo.get("1")
            assert result.idea_description == ["a", "b"]
            assert result.history[-1].content == "hello"
            assert result.roadmap.mvp_epics == "Epic 1"

    class TestDelete:
        """SUT: ConversationRepository.delete"""

        def test_removes_conversation(self, repo):
            """Deleted conversation should not be retrievable."""
            repo.create(_make_conv())
            assert repo.delete("1") is True
            assert repo.get("1") is None

    class TestTransaction:
        """Repository writes without autocommit follow the caller's transaction."""

        def test_rollback_discards_writes(self, db_conn):
            cursor = db_conn.cursor()
            cursor.begin()
            scoped = ConversationRepository(cursor, autocommit=False)
            scoped.create(_make_conv())
            cursor.rollback()
            cursor.close()

            assert ConversationRepository(db_conn.conn).get("1") is None
