"""
Central event bus connecting the session core to its observers

Components emit events as their state changes; the rendering layer and the
accessibility announcer subscribe to them. Dispatch is synchronous: listeners
run on the caller's thread before emit() returns, so observers always see
events in the order the state changed.
"""

import time
from typing import Dict, Any, List, Callable, Optional
from collections import defaultdict
from datetime import datetime
import uuid

from core.logging_config import get_logger

logger = get_logger(__name__)


class SystemEvent:
    """Represents a system event"""

    def __init__(self, event_type: str, data: Dict[str, Any], source: str = None):
        self.id = str(uuid.uuid4())
        self.type = event_type
        self.data = data
        self.source = source or "system"
        self.timestamp = time.time()
        self.datetime = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary"""
        return {
            "id": self.id,
            "type": self.type,
            "data": self.data,
            "source": self.source,
            "timestamp": self.timestamp,
            "datetime": self.datetime
        }


class EventBus:
    """Publish/subscribe hub for state-change notifications"""

    def __init__(self, max_history: int = 1000):
        self.listeners: Dict[str, List[Callable]] = defaultdict(list)
        self.event_history: List[SystemEvent] = []
        self.max_history = max_history
        self.event_counts = defaultdict(int)
        self.listener_errors = 0

    def emit(self, event_type: str, data: Optional[Dict[str, Any]] = None, source: str = None) -> SystemEvent:
        """Emit an event and deliver it to every matching listener"""
        event = SystemEvent(event_type, data or {}, source)

        self.event_counts[event.type] += 1
        self.event_history.append(event)
        if len(self.event_history) > self.max_history:
            self.event_history.pop(0)

        # Copy so listeners may unsubscribe while being notified
        for listener in list(self.listeners.get(event.type, [])) + list(self.listeners.get("*", [])):
            try:
                listener(event)
            except Exception:
                self.listener_errors += 1
                logger.exception(f"Error in event listener for {event.type}")

        return event

    def on(self, event_type: str, callback: Callable[[SystemEvent], None]):
        """Register a listener for specific event type"""
        self.listeners[event_type].append(callback)

    def on_all(self, callback: Callable[[SystemEvent], None]):
        """Register a listener for all events"""
        self.listeners["*"].append(callback)

    def off(self, event_type: str, callback: Callable[[SystemEvent], None]):
        """Remove a listener"""
        if callback in self.listeners[event_type]:
            self.listeners[event_type].remove(callback)

    def get_stats(self) -> Dict[str, Any]:
        """Get event bus statistics"""
        return {
            "total_events": sum(self.event_counts.values()),
            "event_counts": dict(self.event_counts),
            "history_size": len(self.event_history),
            "listener_errors": self.listener_errors,
            "listener_counts": {
                event_type: len(listeners)
                for event_type, listeners in self.listeners.items()
            }
        }

    def get_recent_events(self, count: int = 50, event_type: str = None) -> List[Dict[str, Any]]:
        """Get recent events from history"""
        events = self.event_history[-count:]

        if event_type:
            events = [e for e in events if e.type == event_type]

        return [e.to_dict() for e in events]

    def clear_history(self):
        """Drop recorded history and counters"""
        self.event_history.clear()
        self.event_counts.clear()


# Global event bus instance
event_bus = EventBus()


# Event type constants
class EventTypes:
    # Session lifecycle
    SESSION_INITIALIZING = "session.initializing"
    SESSION_CREATED = "session.created"
    SESSION_INIT_FAILED = "session.init_failed"
    STATE_TRANSITION = "state.transition"

    # Message exchange
    MESSAGE_APPENDED = "message.appended"
    MESSAGE_SEND_START = "message.send_start"
    MESSAGE_SEND_COMPLETE = "message.send_complete"
    MESSAGE_SEND_FAILED = "message.send_failed"
    MESSAGE_SAFETY_NOTICE = "message.safety_notice"

    # Conversation state
    METADATA_UPDATED = "metadata.updated"
    ERROR_SET = "error.set"
    ERROR_CLEARED = "error.cleared"

    # Connectivity
    CONNECTIVITY_LOST = "connectivity.lost"
    CONNECTIVITY_RESTORED = "connectivity.restored"

    # Export panel
    EXPORT_START = "export.start"
    EXPORT_COMPLETE = "export.complete"
    EXPORT_ERROR = "export.error"
    EXPORT_DOWNLOAD_READY = "export.download_ready"
