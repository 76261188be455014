"""
Pytest configuration and shared fixtures.

Environment overrides are applied before any project module is imported so
that config.py picks them up.
"""

import os

os.environ.setdefault("ENABLE_FILE_LOGGING", "false")
os.environ.setdefault("CONNECTIVITY_PROBE", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import AsyncMock, MagicMock

import pytest

from client import MessageReply, SessionCreated
from conversation import Message, Sender
from core import ConnectivityMonitor
from events import EventBus


def make_message(content: str, sender: Sender = Sender.ASSISTANT, message_id="srv-1") -> Message:
    return Message.from_dict({
        "id": message_id,
        "sender": sender.value,
        "content": content,
        "timestamp": "2024-05-01T10:15:00+00:00",
    })


def make_created(session_id: str = "abc-123", welcome: str = "Welcome! Let's design your course.") -> SessionCreated:
    return SessionCreated(
        session_id=session_id,
        initial_metadata={"current_step": 1, "total_steps": 8, "completion_percentage": 0.0,
                          "framework_areas_covered": []},
        welcome_message=make_message(welcome, message_id="welcome"),
    )


def make_reply(content: str = "Tell me about your learners.", delta=None, safety_violation=False) -> MessageReply:
    return MessageReply(
        assistant_message=make_message(content, message_id=f"reply-{content[:8]}"),
        metadata_delta=delta if delta is not None else {"current_step": 2, "completion_percentage": 12.5},
        safety_violation=safety_violation,
    )


class EventRecorder:
    """Collects every event emitted on a bus"""

    def __init__(self, bus: EventBus):
        self.events = []
        bus.on_all(self.events.append)

    def types(self):
        return [event.type for event in self.events]

    def of_type(self, event_type):
        return [event for event in self.events if event.type == event_type]


@pytest.fixture
def bus() -> EventBus:
    """Fresh event bus per test, isolated from the global instance."""
    return EventBus()


@pytest.fixture
def recorder(bus) -> EventRecorder:
    return EventRecorder(bus)


@pytest.fixture
def monitor() -> ConnectivityMonitor:
    return ConnectivityMonitor()


@pytest.fixture
def fake_client():
    """Stand-in for SessionClient with coroutine methods."""
    client = MagicMock()
    client.base_url = "http://assistant.test"
    client.create_session = AsyncMock(return_value=make_created())
    client.send_message = AsyncMock(return_value=make_reply())
    client.request_export = AsyncMock()
    client.get_stats = MagicMock(return_value={"requests_made": 0, "requests_failed": 0})
    return client
