"""Session store - durable conversation state.

Two backends share one contract:

* ``FileSessionStore`` keeps every conversation in a single JSON snapshot,
  rewritten atomically (temp file, fsync, rename) on each mutation. A
  pipeline run against it commits phase by phase.
* ``DuckDBSessionStore`` keeps one row per conversation and supports
  ``transaction()``, so a whole pipeline run becomes visible at once or not
  at all.

Snapshot layout::

    {"next_id": 3, "conversations": {"1": {"id": "1", "ideaDescription": "...",
     "ideaFormat": "text", "history": [...], "roadmap": {...},
     "createdAt": "...", "lastAccessed": "..."}}}
"""

import asyncio
import copy
import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Iterator, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from ..db import ConversationRepository, DatabaseConnection
from ..db.database_models import ConversationDO, RoadmapDO, TurnDO
from ..exceptions import InvalidPatchError, SessionStoreError
from ..models.conversation import ConversationPatch, RoadmapFields
from ..utils.idea_codec import decode_idea, encode_idea, preview_idea
from ..utils.logger import get_app_logger


PatchLike = Union[ConversationPatch, Mapping[str, Any]]


class BaseSessionStore(ABC):
    """Conversation store interface."""

    supports_transactions = False

    def __init__(self):
        self.logger = get_app_logger()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @abstractmethod
    def create(self, idea_description: Any) -> ConversationDO:
        """Allocate an id and persist an empty conversation."""

    @abstractmethod
    def get(self, conversation_id: str) -> Optional[ConversationDO]:
        """Look up a conversation; None when unknown."""

    @abstractmethod
    def update(
        self,
        conversation_id: str,
        patch: PatchLike,
        append_turns: Sequence[TurnDO] = ()
    ) -> Optional[ConversationDO]:
        """Merge a patch (and optional turns) in one durable write; None when unknown."""

    @abstractmethod
    def append_turn(self, conversation_id: str, turn: TurnDO) -> Optional[ConversationDO]:
        """Append a single turn; None when unknown."""

    @abstractmethod
    def delete(self, conversation_id: str) -> bool:
        """Remove a conversation. Its id is never handed out again."""

    @abstractmethod
    def close(self) -> None:
        """Flush and release the backing medium."""

    @contextmanager
    def transaction(self) -> Iterator["BaseSessionStore"]:
        """
        Scope for a multi-step write.

        Stores without transactions yield themselves: every write inside the
        scope is committed as soon as it is made.
        """
        yield self

    def lock_for(self, conversation_id: str) -> asyncio.Lock:
        """Lock that serializes mutations of one conversation."""
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = self._locks[conversation_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def locked(self, conversation_id: str) -> AsyncIterator[None]:
        """
        Hold the conversation's lock for the enclosed block.

        The lock is forgotten once its last holder or waiter leaves, so the
        lock table only holds ids that are in use.
        """
        lock = self.lock_for(conversation_id)
        self._lock_users[conversation_id] = self._lock_users.get(conversation_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._lock_users[conversation_id] - 1
            if remaining:
                self._lock_users[conversation_id] = remaining
            else:
                del self._lock_users[conversation_id]
                self._locks.pop(conversation_id, None)

    def _log_created(self, conversation: ConversationDO, original: Any) -> None:
        details = {
            "id": conversation.id,
            "ideaDescriptionType": type(original).__name__,
            "ideaDescriptionFirst100": preview_idea(original),
        }
        self.logger.debug(f"Created context: {details}")

    @staticmethod
    def _validate_patch(patch: PatchLike) -> ConversationPatch:
        if isinstance(patch, ConversationPatch):
            return patch
        if not isinstance(patch, Mapping):
            raise InvalidPatchError(f"Unsupported patch type: {type(patch).__name__}")
        try:
            return ConversationPatch.model_validate(dict(patch))
        except ValidationError as e:
            raise InvalidPatchError(str(e)) from e

    @classmethod
    def _apply_patch(
        cls,
        conversation: ConversationDO,
        patch: PatchLike,
        append_turns: Sequence[TurnDO] = ()
    ) -> ConversationDO:
        """Return a patched copy; the original is left untouched."""
        validated = cls._validate_patch(patch)
        updated = copy.deepcopy(conversation)

        if validated.has_idea():
            updated.idea_description = validated.idea_description
        for name, value in validated.roadmap_updates().items():
            setattr(updated.roadmap, name, value)

        updated.history.extend(copy.deepcopy(list(append_turns)))
        updated.last_accessed = datetime.utcnow()
        return updated


class FileSessionStore(BaseSessionStore):
    """JSON snapshot file store."""

    def __init__(self, file_path: str = "./data/conversations.json"):
        super().__init__()
        self.file_path = Path(file_path)
        self._conversations: Dict[str, ConversationDO] = {}
        self._next_id = 1
        self._lock = threading.Lock()
        self._load()

    def create(self, idea_description: Any) -> ConversationDO:
        with self._lock:
            conversation_id = str(self._next_id)
            now = datetime.utcnow()
            conversation = ConversationDO(
                id=conversation_id,
                idea_description=copy.deepcopy(idea_description),
                created_at=now,
                last_accessed=now
            )
            conversations = dict(self._conversations)
            conversations[conversation_id] = conversation
            self._write_snapshot(conversations, self._next_id + 1)

            self._conversations = conversations
            self._next_id += 1

        self.logger.info(f"Created conversation {conversation_id}")
        self._log_created(conversation, idea_description)
        return copy.deepcopy(conversation)

    def get(self, conversation_id: str) -> Optional[ConversationDO]:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            return copy.deepcopy(conversation) if conversation else None

    def update(
        self,
        conversation_id: str,
        patch: PatchLike,
        append_turns: Sequence[TurnDO] = ()
    ) -> Optional[ConversationDO]:
        with self._lock:
            current = self._conversations.get(conversation_id)
            if current is None:
                return None
            updated = self._apply_patch(current, patch, append_turns)
            self._commit(updated)
            return copy.deepcopy(updated)

    def append_turn(self, conversation_id: str, turn: TurnDO) -> Optional[ConversationDO]:
        return self.update(conversation_id, ConversationPatch(), append_turns=[turn])

    def delete(self, conversation_id: str) -> bool:
        with self._lock:
            if conversation_id not in self._conversations:
                return False
            conversations = dict(self._conversations)
            del conversations[conversation_id]
            self._write_snapshot(conversations, self._next_id)
            self._conversations = conversations

        self.logger.info(f"Deleted conversation {conversation_id}")
        return True

    def close(self) -> None:
        with self._lock:
            self._write_snapshot(self._conversations, self._next_id)
        self.logger.info(f"Session store flushed to {self.file_path}")

    def _commit(self, conversation: ConversationDO) -> None:
        """Write a snapshot containing ``conversation``, then publish it in memory."""
        conversations = dict(self._conversations)
        conversations[conversation.id] = conversation
        self._write_snapshot(conversations, self._next_id)
        self._conversations = conversations

    def _write_snapshot(self, conversations: Dict[str, ConversationDO], next_id: int) -> None:
        snapshot = {
            "next_id": next_id,
            "conversations": {
                conversation_id: self._to_record(conversation)
                for conversation_id, conversation in conversations.items()
            },
        }

        tmp_path = None
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.file_path.parent,
                prefix=f".{self.file_path.name}.",
                suffix=".tmp",
                delete=False
            ) as f:
                tmp_path = f.name
                json.dump(snapshot, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.file_path)
        except (OSError, TypeError, ValueError) as e:
            self.logger.error(f"Failed to write session snapshot {self.file_path}: {e}")
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise SessionStoreError(f"Failed to persist conversations: {e}") from e

    def _load(self) -> None:
        if not self.file_path.exists():
            self.logger.info(f"No session snapshot at {self.file_path}, starting empty")
            return

        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                snapshot = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.error(f"Failed to read session snapshot {self.file_path}: {e}")
            raise SessionStoreError(f"Failed to load conversations: {e}") from e

        records = self._records_from_snapshot(snapshot)
        highest = 0
        for key, record in records.items():
            conversation = self._from_record(str(key), record)
            self._conversations[conversation.id] = conversation
            if conversation.id.isdigit():
                highest = max(highest, int(conversation.id))

        self._next_id = max(int(snapshot.get("next_id", 1)), highest + 1)
        self.logger.info(
            f"Loaded {len(self._conversations)} conversations from {self.file_path}"
        )

    def _records_from_snapshot(self, snapshot: Any) -> Dict[str, Any]:
        """
        Find the conversation records in a loaded snapshot.

        Besides the current ``{"next_id", "conversations"}`` layout, a flat
        ``{id: record}`` mapping is accepted. Anything else is refused so
        that the next write cannot overwrite data it failed to read.
        """
        if isinstance(snapshot, dict) and "conversations" in snapshot:
            records = snapshot["conversations"]
            if isinstance(records, dict):
                return records
        elif isinstance(snapshot, dict) and all(isinstance(r, dict) for r in snapshot.values()):
            if snapshot:
                self.logger.info(f"Reading flat conversation layout from {self.file_path}")
            return snapshot

        self.logger.error(f"Unrecognized session snapshot layout in {self.file_path}")
        raise SessionStoreError(f"Unrecognized session snapshot layout in {self.file_path}")

    @staticmethod
    def _to_record(conversation: ConversationDO) -> Dict[str, Any]:
        idea_text, idea_format = encode_idea(conversation.idea_description)
        return {
            "id": conversation.id,
            "ideaDescription": idea_text,
            "ideaFormat": idea_format,
            "history": [turn.to_dict() for turn in conversation.history],
            "roadmap": RoadmapFields(**conversation.roadmap.to_dict()).model_dump(by_alias=True),
            "createdAt": conversation.created_at.isoformat(),
            "lastAccessed": conversation.last_accessed.isoformat(),
        }

    @staticmethod
    def _from_record(key: str, record: Dict[str, Any]) -> ConversationDO:
        conversation_id = str(record.get("id", key))
        roadmap = RoadmapFields.model_validate(record.get("roadmap") or {})
        now = datetime.utcnow()
        created_at = record.get("createdAt")
        last_accessed = record.get("lastAccessed")
        return ConversationDO(
            id=conversation_id,
            idea_description=decode_idea(
                record.get("ideaDescription"),
                record.get("ideaFormat"),
                record_id=conversation_id
            ),
            history=[TurnDO.from_dict(turn) for turn in record.get("history") or []],
            roadmap=RoadmapDO.from_dict(roadmap.model_dump()),
            created_at=datetime.fromisoformat(created_at) if created_at else now,
            last_accessed=datetime.fromisoformat(last_accessed) if last_accessed else now
        )


class DuckDBSessionStore(BaseSessionStore):
    """DuckDB-backed store with transactional pipeline commits."""

    supports_transactions = True

    def __init__(self, db_path: str = "./data/roadmapper.db"):
        super().__init__()
        self.db = DatabaseConnection(db_path)
        self.repo = ConversationRepository(self.db.conn)

    def create(self, idea_description: Any) -> ConversationDO:
        now = datetime.utcnow()
        conversation = ConversationDO(
            id=self.repo.next_id(),
            idea_description=copy.deepcopy(idea_description),
            created_at=now,
            last_accessed=now
        )
        if not self.repo.create(conversation):
            raise SessionStoreError(f"Failed to create conversation {conversation.id}")

        self._log_created(conversation, idea_description)
        return conversation

    def get(self, conversation_id: str) -> Optional[ConversationDO]:
        return self.repo.get(conversation_id)

    def update(
        self,
        conversation_id: str,
        patch: PatchLike,
        append_turns: Sequence[TurnDO] = ()
    ) -> Optional[ConversationDO]:
        current = self.repo.get(conversation_id)
        if current is None:
            return None
        updated = self._apply_patch(current, patch, append_turns)
        if not self.repo.save(updated):
            raise SessionStoreError(f"Failed to update conversation {conversation_id}")
        return updated

    def append_turn(self, conversation_id: str, turn: TurnDO) -> Optional[ConversationDO]:
        return self.update(conversation_id, ConversationPatch(), append_turns=[turn])

    def delete(self, conversation_id: str) -> bool:
        if self.repo.get(conversation_id) is None:
            return False
        if not self.repo.delete(conversation_id):
            raise SessionStoreError(f"Failed to delete conversation {conversation_id}")
        return True

    def close(self) -> None:
        self.db.close()

    @contextmanager
    def transaction(self) -> Iterator["DuckDBSessionStore"]:
        """
        Run the enclosed writes in one DuckDB transaction.

        The transaction lives on its own cursor so writes made concurrently
        through the main connection are not swept into it. Any exception
        rolls everything back before propagating.
        """
        cursor = self.db.cursor()
        cursor.begin()
        scoped = copy.copy(self)
        scoped.repo = ConversationRepository(cursor, autocommit=False)
        try:
            yield scoped
        except BaseException:
            self.logger.warning("Rolling back session store transaction")
            cursor.rollback()
            raise
        else:
            try:
                cursor.commit()
            except Exception as e:
                self.logger.error(f"Failed to commit session store transaction: {e}")
                raise SessionStoreError(f"Failed to commit transaction: {e}") from e
        finally:
            cursor.close()


def create_session_store(settings) -> BaseSessionStore:
    """Build the store selected by ``settings.session_store_backend``."""
    backend = settings.session_store_backend.lower()
    if backend == "file":
        return FileSessionStore(settings.conversations_file)
    if backend == "duckdb":
        return DuckDBSessionStore(settings.database_path)
    raise ValueError(f"Unknown session store backend: {backend}")
