"""
Screen-reader style announcements derived from session events
"""

from typing import Callable, List, Optional

from config import DISPLAY_CONFIG
from core.logging_config import get_logger
from events import event_bus as default_event_bus, EventBus, EventTypes, SystemEvent


class Announcer:
    """Turns announcement-worthy events into short spoken-style notices

    The session core only emits events; the wording lives here. Notices go
    to the speak callback (a narration backend), and the latest ones are kept
    for inspection.
    """

    def __init__(self, bus: Optional[EventBus] = None,
                 speak: Optional[Callable[[str], None]] = None,
                 max_history: int = 50):
        self.logger = get_logger(__name__)
        self.bus = bus or default_event_bus
        self.speak = speak
        self.max_history = max_history
        self.announcements: List[str] = []

        self._handlers = {
            EventTypes.MESSAGE_SEND_COMPLETE: self._on_send_complete,
            EventTypes.MESSAGE_SAFETY_NOTICE: self._on_safety_notice,
            EventTypes.MESSAGE_SEND_FAILED: self._on_send_failed,
            EventTypes.CONNECTIVITY_LOST: lambda event: self.announce("Connection lost"),
            EventTypes.CONNECTIVITY_RESTORED: lambda event: self.announce("Connection restored"),
        }
        for event_type, handler in self._handlers.items():
            self.bus.on(event_type, handler)

    def announce(self, text: str):
        self.announcements.append(text)
        if len(self.announcements) > self.max_history:
            self.announcements.pop(0)

        if self.speak:
            self.speak(text)
        else:
            self.logger.debug(f"Announcement: {text}")

    def _on_send_complete(self, event: SystemEvent):
        # Safety turns get their own notice
        if not event.data.get("safety_violation"):
            self.announce("Assistant responded")

    def _on_safety_notice(self, event: SystemEvent):
        preview = event.data.get("content", "")[:DISPLAY_CONFIG["safety_preview_chars"]]
        self.announce(f"Safety notice: {preview}")

    def _on_send_failed(self, event: SystemEvent):
        if event.data.get("network_failure"):
            self.announce("Connection error occurred")
        else:
            self.announce(f"Error: {event.data.get('error', '')}")

    def detach(self):
        for event_type, handler in self._handlers.items():
            self.bus.off(event_type, handler)
