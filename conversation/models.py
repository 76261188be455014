"""
Data model for sessions, chat messages and conversation progress
"""

import itertools
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Union


class MetadataError(ValueError):
    """Raised when server-provided conversation metadata is malformed"""
    pass


class Sender(Enum):
    USER = "user"
    ASSISTANT = "assistant"


class MessageType(Enum):
    NORMAL = "normal"
    ERROR = "error"
    SAFETY_NOTICE = "safety_notice"


_message_ordinal = itertools.count(1)


def new_message_id() -> str:
    """Timestamp-derived id with an ordinal suffix, unique within the process"""
    return f"{int(time.time() * 1000)}-{next(_message_ordinal)}"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Session:
    """Server-side conversation identity held for the process lifetime"""
    id: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class Message:
    """A single entry of the conversation log"""
    id: Union[str, int]
    sender: Sender
    content: str
    timestamp: str
    message_type: MessageType = MessageType.NORMAL

    @classmethod
    def create(cls, sender: Sender, content: str,
               message_type: MessageType = MessageType.NORMAL) -> "Message":
        """Build a locally originated message stamped with the current time"""
        return cls(
            id=new_message_id(),
            sender=sender,
            content=content,
            timestamp=utc_timestamp(),
            message_type=message_type,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        """
        Parse a message as sent by the service.

        Raises:
            ValueError: If the payload is not a message object
        """
        if not isinstance(data, dict):
            raise ValueError(f"Message payload must be an object, got {type(data).__name__}")

        content = data.get("content")
        if not isinstance(content, str):
            raise ValueError("Message payload has no text content")

        return cls(
            id=data.get("id") if data.get("id") is not None else new_message_id(),
            sender=Sender(data.get("sender", Sender.ASSISTANT.value)),
            content=content,
            timestamp=data.get("timestamp") or utc_timestamp(),
            message_type=MessageType(data.get("message_type") or MessageType.NORMAL.value),
        )

    @property
    def is_error(self) -> bool:
        return self.message_type == MessageType.ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sender": self.sender.value,
            "content": self.content,
            "timestamp": self.timestamp,
            "message_type": self.message_type.value,
        }


@dataclass(frozen=True)
class ConversationMetadata:
    """Progress of the course design conversation, as reported by the service"""
    current_step: int = 0
    total_steps: int = 0
    completion_percentage: float = 0.0
    framework_areas_covered: FrozenSet[str] = frozenset()
    extra: Dict[str, Any] = field(default_factory=dict)

    KNOWN_FIELDS = ("current_step", "total_steps", "completion_percentage", "framework_areas_covered")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ConversationMetadata":
        return cls().merged(data or {})

    @staticmethod
    def validate_delta(delta: Any) -> Dict[str, Any]:
        """
        Normalize a (partial) metadata update.

        Returns:
            A new dict with known fields coerced to their types

        Raises:
            MetadataError: If any field has an unusable value
        """
        if delta is None:
            return {}
        if not isinstance(delta, dict):
            raise MetadataError(f"Metadata update must be an object, got {type(delta).__name__}")

        normalized = dict(delta)
        try:
            for key in ("current_step", "total_steps"):
                if key in normalized:
                    if isinstance(normalized[key], bool):
                        raise MetadataError(f"{key} must be an integer")
                    normalized[key] = int(normalized[key])

            if "completion_percentage" in normalized:
                percentage = float(normalized["completion_percentage"])
                if not 0.0 <= percentage <= 100.0:
                    raise MetadataError(f"completion_percentage out of range: {percentage}")
                normalized["completion_percentage"] = percentage

            if "framework_areas_covered" in normalized:
                areas = normalized["framework_areas_covered"]
                if isinstance(areas, str) or not hasattr(areas, "__iter__"):
                    raise MetadataError("framework_areas_covered must be a list of area names")
                normalized["framework_areas_covered"] = frozenset(str(area) for area in areas)
        except MetadataError:
            raise
        except (TypeError, ValueError) as e:
            raise MetadataError(f"Invalid metadata value: {e}") from e

        return normalized

    def merged(self, delta: Dict[str, Any]) -> "ConversationMetadata":
        """Return a new metadata object with delta shallow-merged over this one"""
        normalized = self.validate_delta(delta)

        extra = dict(self.extra)
        extra.update({k: v for k, v in normalized.items() if k not in self.KNOWN_FIELDS})

        return ConversationMetadata(
            current_step=normalized.get("current_step", self.current_step),
            total_steps=normalized.get("total_steps", self.total_steps),
            completion_percentage=normalized.get("completion_percentage", self.completion_percentage),
            framework_areas_covered=normalized.get("framework_areas_covered", self.framework_areas_covered),
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.extra,
            "current_step": self.current_step,
            "total_steps": self.total_steps,
            "completion_percentage": self.completion_percentage,
            "framework_areas_covered": sorted(self.framework_areas_covered),
        }
