"""
Conversation state and the session/message lifecycle manager
"""

from .models import (
    ConversationMetadata,
    Message,
    MessageType,
    MetadataError,
    Sender,
    Session,
)
from .store import ConversationStore, StoreError
from .manager import SessionManager

__all__ = [
    "ConversationMetadata",
    "ConversationStore",
    "Message",
    "MessageType",
    "MetadataError",
    "Sender",
    "Session",
    "SessionManager",
    "StoreError",
]
