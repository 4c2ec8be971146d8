"""Database package - connection, models, and repositories."""

from .connection import DatabaseConnection
from .repositories.conversation import ConversationRepository

__all__ = [
    "DatabaseConnection",
    "ConversationRepository",
]
