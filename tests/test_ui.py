"""Tests for the announcer, render boundary and terminal view."""

import io

import pytest

from client import ApplicationError, TransportError
from config import DISPLAY_CONFIG, MESSAGES
from conftest import make_reply
from conversation import SessionManager
from events import EventTypes
from export import ExportCoordinator, ExportSummary
from ui import Announcer, RenderBoundary, TerminalChat
from ui.terminal import completion_color, format_timestamp


@pytest.fixture
def manager(fake_client, monitor, bus):
    return SessionManager(client=fake_client, connectivity=monitor, bus=bus)


@pytest.fixture
def exporter(fake_client, manager, bus):
    return ExportCoordinator(fake_client, lambda: manager.session_id, on_download=lambda d: None, bus=bus)


class TestAnnouncer:

    @pytest.mark.asyncio
    async def test_announces_responses_and_errors(self, manager, fake_client, bus):
        spoken = []
        Announcer(bus=bus, speak=spoken.append)
        await manager.initialize()

        await manager.send_message("hello")
        fake_client.send_message.side_effect = ApplicationError(500, server_message="rate limited")
        await manager.send_message("again")
        fake_client.send_message.side_effect = TransportError(MESSAGES["connection_error"])
        await manager.send_message("third")

        assert spoken == ["Assistant responded", "Error: rate limited", "Connection error occurred"]

    @pytest.mark.asyncio
    async def test_safety_notice_preview(self, manager, fake_client, bus):
        announcer = Announcer(bus=bus)
        await manager.initialize()
        fake_client.send_message.return_value = make_reply(content="x" * 150, safety_violation=True)

        await manager.send_message("unsafe")

        assert announcer.announcements == ["Safety notice: " + "x" * 100]

    def test_connectivity_announcements(self, manager, monitor, bus):
        announcer = Announcer(bus=bus)

        monitor.go_offline()
        monitor.go_online()

        assert announcer.announcements == ["Connection lost", "Connection restored"]

    def test_history_bounded_and_detach(self, bus):
        announcer = Announcer(bus=bus, max_history=2)
        for text in ("a", "b", "c"):
            announcer.announce(text)
        assert announcer.announcements == ["b", "c"]

        announcer.detach()
        bus.emit(EventTypes.CONNECTIVITY_LOST)
        assert announcer.announcements == ["b", "c"]


class TestRenderBoundary:

    def test_passes_through_results(self):
        boundary = RenderBoundary()
        assert boundary.wrap(lambda x: x * 2)(3) == 6

    def test_trips_and_skips_until_reset(self):
        failures, calls = [], []
        boundary = RenderBoundary(on_error=failures.append)

        def render(value):
            calls.append(value)
            if value == "bad":
                raise ValueError("cannot render")

        guarded = boundary.wrap(render)
        guarded("bad")
        guarded("skipped")

        assert boundary.has_error
        assert isinstance(failures[0], ValueError)
        assert calls == ["bad"]

        boundary.reset()
        guarded("good")
        assert calls == ["bad", "good"]
        assert boundary.trip_count == 1

    def test_failing_fallback_is_contained(self):
        def broken_fallback(error):
            raise RuntimeError("fallback failed")

        boundary = RenderBoundary(on_error=broken_fallback)
        boundary.wrap(lambda: 1 / 0)()

        assert boundary.has_error


class TestTerminalChat:

    def test_helpers(self):
        colors = DISPLAY_CONFIG["colors"]
        assert completion_color(85) == colors["assistant"]
        assert completion_color(50) == colors["warning"]
        assert completion_color(None) == colors["error"]
        assert format_timestamp("not a time") == "not a time"
        assert len(format_timestamp("2024-05-01T10:15:00+00:00")) == 5

    @pytest.mark.asyncio
    async def test_renders_conversation(self, manager, exporter, bus):
        out = io.StringIO()
        TerminalChat(manager, exporter, bus=bus, out=out)

        await manager.initialize()
        await manager.send_message("Design a course on X")
        text = out.getvalue()

        assert "Welcome! Let's design your course." in text
        assert "Design a course on X" in text
        assert "Tell me about your learners." in text
        assert "Step 2 of 8" in text

    @pytest.mark.asyncio
    async def test_renders_error_banner(self, manager, exporter, fake_client, bus):
        out = io.StringIO()
        TerminalChat(manager, exporter, bus=bus, out=out)
        await manager.initialize()
        fake_client.send_message.side_effect = ApplicationError(500, server_message="rate limited")

        await manager.send_message("hello")

        assert "rate limited  (type /dismiss to hide)" in out.getvalue()

    def test_renders_summary_template(self, manager, exporter, bus):
        chat = TerminalChat(manager, exporter, bus=bus, out=io.StringIO())
        summary = ExportSummary.from_dict({
            "course_design": {"title": "Intro to Data Literacy", "duration": "6 weeks"},
            "progress": {"completion_percentage": 62.5, "current_step": 5, "total_steps": 8, "status": "in_progress"},
            "quality_metrics": {"total_messages": 12, "completeness_score": 70.0, "average_confidence": 0.85},
            "framework_analysis": {"learning_outcomes": True, "assessment": False},
            "key_insights": ["Learners prefer case studies"],
            "recommendations": ["Add a formative quiz"],
        })

        rendered = chat.render_summary(summary)

        assert "Title: Intro to Data Literacy" in rendered
        assert "Duration: 6 weeks" in rendered
        assert "Step: 5 of 8" in rendered
        assert "Avg Confidence: 85.0%" in rendered
        assert "learning_outcomes" in rendered
        assert "Learners prefer case studies" in rendered
        assert "Add a formative quiz" in rendered
        assert "Raw Data" not in rendered

    def test_render_failure_is_contained(self, manager, exporter, bus):
        out = io.StringIO()
        chat = TerminalChat(manager, exporter, bus=bus, out=out)

        bus.emit(EventTypes.MESSAGE_APPENDED, {"message": {}})
        bus.emit(EventTypes.ERROR_SET, {"error": "hidden while tripped"})

        assert chat.boundary.has_error
        assert "Something went wrong" in out.getvalue()
        assert "hidden while tripped" not in out.getvalue()

        chat.reset()
        assert not chat.boundary.has_error

    def test_detach(self, manager, exporter, bus):
        out = io.StringIO()
        chat = TerminalChat(manager, exporter, bus=bus, out=out)
        chat.detach()

        bus.emit(EventTypes.ERROR_SET, {"error": "boom"})

        assert out.getvalue() == ""
