"""Error taxonomy shared by the store, the pipeline and the routers."""

from typing import Optional


class RoadmapperError(Exception):
    """Base class for all service errors."""


class InvalidInputError(RoadmapperError):
    """Raised when a request is missing a required value."""


class ConversationNotFoundError(RoadmapperError):
    """Raised when a conversation id is unknown to the store."""

    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation not found: {conversation_id}")
        self.conversation_id = conversation_id


class InvalidPatchError(RoadmapperError):
    """Raised when an update names fields the store does not allow."""


class SessionStoreError(RoadmapperError):
    """Raised when the backing medium cannot be read or written."""


class RoadmapGenerationError(RoadmapperError):
    """Raised when a pipeline phase cannot complete."""

    def __init__(self, phase: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"Roadmap generation failed during phase '{phase}': {message}")
        self.phase = phase
        self.cause = cause


class RoadmapAlreadyCompleteError(RoadmapperError):
    """Raised when a pipeline run targets a conversation whose roadmap is complete."""

    def __init__(self, conversation_id: str):
        super().__init__(f"Roadmap already generated for conversation {conversation_id}")
        self.conversation_id = conversation_id


class ChatGenerationError(RoadmapperError):
    """Raised when the model fails to answer a chat turn."""
