"""Base repository class."""

import duckdb
from ...utils.logger import get_app_logger


class BaseRepository:
    """Base class for all repositories."""

    def __init__(self, conn: duckdb.DuckDBPyConnection, autocommit: bool = True):
        """
        Initialize repository with database connection.

        Args:
            conn: DuckDB connection instance
            autocommit: Commit after every write; False when the caller owns a transaction
        """
        self.conn = conn
        self.autocommit = autocommit
        self.logger = get_app_logger()

    def _commit(self):
        if self.autocommit:
            self.conn.commit()
