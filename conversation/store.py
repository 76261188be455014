"""
In-memory conversation state: message log, session, progress metadata and error slot
"""

from typing import Any, Dict, List, Optional, Tuple

from events import event_bus as default_event_bus, EventBus, EventTypes
from core.logging_config import get_logger
from .models import ConversationMetadata, Message, Session


class StoreError(Exception):
    """Raised on a mutation the store does not allow"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConversationStore:
    """Pure state holder owned by the session manager

    Every mutation is applied in full or not at all and is announced on the
    event bus so observers can re-render.
    """

    def __init__(self, bus: Optional[EventBus] = None):
        self.logger = get_logger(__name__)
        self.bus = bus or default_event_bus

        self._messages: List[Message] = []
        self._session: Optional[Session] = None
        self._metadata: Optional[ConversationMetadata] = None
        self._error: Optional[str] = None

    @property
    def messages(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def metadata(self) -> Optional[ConversationMetadata]:
        return self._metadata

    @property
    def error(self) -> Optional[str]:
        return self._error

    def set_session(self, session: Session):
        if self._session is not None:
            raise StoreError("A session is already established",
                             details={"session_id": self._session.id, "rejected_id": session.id})
        self._session = session

    def set_metadata(self, metadata: ConversationMetadata):
        """Replace the metadata wholesale (initial server snapshot)"""
        self._metadata = metadata
        self.bus.emit(EventTypes.METADATA_UPDATED, {"metadata": metadata.to_dict()}, source="store")

    def append_message(self, message: Message):
        self._messages.append(message)
        self.bus.emit(EventTypes.MESSAGE_APPENDED, {
            "message": message.to_dict(),
            "index": len(self._messages) - 1,
        }, source="store")

    def merge_metadata(self, delta: Dict[str, Any]) -> ConversationMetadata:
        """
        Shallow-merge a server delta into the current metadata.

        The merged object is fully built before it replaces the current one,
        so a rejected delta leaves the metadata untouched.

        Raises:
            MetadataError: If the delta contains unusable values
        """
        base = self._metadata or ConversationMetadata()
        merged = base.merged(delta)
        self._metadata = merged
        self.bus.emit(EventTypes.METADATA_UPDATED, {
            "metadata": merged.to_dict(),
            "delta_keys": sorted(delta or {}),
        }, source="store")
        return merged

    def set_error(self, error: str):
        self._error = error
        self.bus.emit(EventTypes.ERROR_SET, {"error": error}, source="store")

    def clear_error(self):
        if self._error is None:
            return
        self._error = None
        self.bus.emit(EventTypes.ERROR_CLEARED, {}, source="store")

    def get_stats(self) -> Dict[str, Any]:
        return {
            "message_count": len(self._messages),
            "error_messages": sum(1 for m in self._messages if m.is_error),
            "has_session": self._session is not None,
            "has_error": self._error is not None,
            "completion_percentage": self._metadata.completion_percentage if self._metadata else None,
        }
