"""Conversation repository for database operations."""

import json
from typing import Optional
from .base import BaseRepository
from ..database_models.conversation import ConversationDO, RoadmapDO, TurnDO
from ...exceptions import SessionStoreError
from ...utils.idea_codec import decode_idea, encode_idea


_COLUMNS = "id, idea_description, idea_format, history, roadmap, created_at, last_accessed"


class ConversationRepository(BaseRepository):
    """Repository for Conversation CRUD operations."""

    def next_id(self) -> str:
        """
        Allocate the next conversation id from the sequence.

        Returns:
            New conversation ID
        """
        try:
            result = self.conn.execute("SELECT nextval('conversations_id_seq')").fetchone()
            return str(result[0])
        except Exception as e:
            self.logger.error(f"Failed to allocate conversation id: {e}")
            raise SessionStoreError(f"Failed to allocate conversation id: {e}") from e

    def create(self, conversation: ConversationDO) -> bool:
        """
        Create a new conversation record.

        Args:
            conversation: ConversationDO instance

        Returns:
            True if successful, False otherwise
        """
        try:
            idea_text, idea_format = encode_idea(conversation.idea_description)
            self.conn.execute(f"""
                INSERT INTO conversations ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, [
                conversation.id,
                idea_text,
                idea_format,
                json.dumps([turn.to_dict() for turn in conversation.history]),
                json.dumps(conversation.roadmap.to_dict()),
                conversation.created_at,
                conversation.last_accessed
            ])
            self._commit()
            self.logger.info(f"Created conversation record: {conversation.id}")
            return True
        except Exception as e:
            self.logger.error(f"Failed to create conversation: {e}")
            return False

    def get(self, conversation_id: str) -> Optional[ConversationDO]:
        """
        Get conversation by ID.

        Args:
            conversation_id: Conversation ID

        Returns:
            ConversationDO instance or None if not found
        """
        try:
            result = self.conn.execute(f"""
                SELECT {_COLUMNS}
                FROM conversations
                WHERE id = ?
            """, [conversation_id]).fetchone()
        except Exception as e:
            self.logger.error(f"Failed to get conversation {conversation_id}: {e}")
            raise SessionStoreError(f"Failed to read conversation {conversation_id}: {e}") from e

        return self._to_do(result) if result else None

    def save(self, conversation: ConversationDO) -> bool:
        """
        Write back every mutable column of a conversation.

        Args:
            conversation: ConversationDO instance

        Returns:
            True if successful, False otherwise
        """
        try:
            idea_text, idea_format = encode_idea(conversation.idea_description)
            self.conn.execute("""
                UPDATE conversations
                SET idea_description = ?, idea_format = ?, history = ?, roadmap = ?, last_accessed = ?
                WHERE id = ?
            """, [
                idea_text,
                idea_format,
                json.dumps([turn.to_dict() for turn in conversation.history]),
                json.dumps(conversation.roadmap.to_dict()),
                conversation.last_accessed,
                conversation.id
            ])
            self._commit()
            return True
        except Exception as e:
            self.logger.error(f"Failed to update conversation {conversation.id}: {e}")
            return False

    def delete(self, conversation_id: str) -> bool:
        """
        Delete conversation by ID.

        Args:
            conversation_id: Conversation ID

        Returns:
            True if successful, False otherwise
        """
        try:
            self.conn.execute("DELETE FROM conversations WHERE id = ?", [conversation_id])
            self._commit()
            self.logger.info(f"Deleted conversation record: {conversation_id}")
            return True
        except Exception as e:
            self.logger.error(f"Failed to delete conversation: {e}")
            return False

    def _to_do(self, row) -> ConversationDO:
        history = json.loads(row[3]) if isinstance(row[3], str) else (row[3] or [])
        roadmap = json.loads(row[4]) if isinstance(row[4], str) else row[4]
        return ConversationDO(
            id=row[0],
            idea_description=decode_idea(row[1], row[2], record_id=row[0]),
            history=[TurnDO.from_dict(turn) for turn in history],
            roadmap=RoadmapDO.from_dict(roadmap),
            created_at=row[5],
            last_accessed=row[6]
        )
