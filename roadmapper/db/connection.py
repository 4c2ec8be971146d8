"""Database connection and schema management."""

import duckdb
from typing import Optional
from pathlib import Path
from ..utils.logger import get_app_logger


class DatabaseConnection:
    """DuckDB connection manager."""

    def __init__(self, db_path: str = "./data/roadmapper.db"):
        """
        Initialize database connection.

        Args:
            db_path: Path to DuckDB database file
        """
        self.db_path = db_path
        self.logger = get_app_logger()
        self.conn: Optional[duckdb.DuckDBPyConnection] = None

        # Ensure database directory exists
        db_dir = Path(db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

        self._connect()
        self._init_schema()

    def _connect(self):
        """Connect to DuckDB database."""
        try:
            self.conn = duckdb.connect(self.db_path)
            self.logger.info(f"Connected to DuckDB at {self.db_path}")
        except Exception as e:
            self.logger.error(f"Failed to connect to DuckDB: {e}")
            raise

    def _init_schema(self):
        """Initialize database schema."""
        try:
            # Conversation ids come from a sequence so deleted ids are never handed out again
            self.conn.execute("CREATE SEQUENCE IF NOT EXISTS conversations_id_seq START 1")

            # One row per conversation; history and roadmap travel with the row
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS conversations (
                    id VARCHAR PRIMARY KEY,
                    idea_description VARCHAR,
                    idea_format VARCHAR,
                    history JSON,
                    roadmap JSON,
                    created_at TIMESTAMP NOT NULL,
                    last_accessed TIMESTAMP NOT NULL
                )
            """)

            # No secondary indexes: rows are rewritten several times inside one
            # pipeline transaction and DuckDB turns indexed-column updates into
            # delete + insert, which trips its unique constraint check.

            self.logger.info("Database schema initialized successfully")

        except Exception as e:
            self.logger.error(f"Failed to initialize database schema: {e}")
            raise

    def cursor(self) -> duckdb.DuckDBPyConnection:
        """Open a duplicate connection with its own transaction context."""
        return self.conn.cursor()

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.logger.info("Database connection closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
