"""Tests for database connection and schema management."""

import pytest
from pathlib import Path

from roadmapper.db.connection import DatabaseConnection


@pytest.fixture
def db_path(tmp_path):
    """Provide a temporary database path."""
    return str(tmp_path / "nested" / "test.db")


class TestDatabaseConnection:
    """Tests for DatabaseConnection."""

    def test_connect_creates_file(self, db_path):
        """After connecting, the db file and its directory should exist."""
        conn = DatabaseConnection(db_path)
        assert Path(db_path).exists()
        conn.close()

    def test_schema_conversations_table(self, db_path):
        """Conversations table should be queryable after init."""
        conn = DatabaseConnection(db_path)
        result = conn.conn.execute("SELECT COUNT(*) FROM conversations").fetchone()
        assert result[0] == 0
        conn.close()

    def test_sequence_starts_at_one(self, db_path):
        """The id sequence should hand out 1 first."""
        conn = DatabaseConnection(db_path)
        result = conn.conn.execute("SELECT nextval('conversations_id_seq')").fetchone()
        assert result[0] == 1
        conn.close()

    def test_init_schema_idempotent(self, db_path):
        """Calling _init_schema again should not raise."""
        conn = DatabaseConnection(db_path)
        conn._init_schema()
        conn.close()

    def test_cursor_is_separate_transaction(self, db_path):
        """Uncommitted writes on a cursor are invisible to the main connection."""
        conn = DatabaseConnection(db_path)
        cursor = conn.cursor()
        cursor.begin()
        cursor.execute("""
            INSERT INTO conversations (id, idea_description, idea_format, history, roadmap, created_at, last_accessed)
            VALUES ('x', 'idea', 'text', '[]', '{}', now(), now())
        """)
        assert conn.conn.execute("SELECT COUNT(*) FROM conversations").fetchone()[0] == 0
        cursor.rollback()
        cursor.close()
        conn.close()

    def test_context_manager(self, db_path):
        """Context manager should auto-close connection."""
        with DatabaseConnection(db_path) as conn:
            conn.conn.execute("SELECT 1").fetchone()

    def test_close(self, db_path):
        """After close, connection should not be usable."""
        conn = DatabaseConnection(db_path)
        conn.close()
        with pytest.raises(Exception):
            conn.conn.execute("SELECT 1")
