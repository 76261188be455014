"""
Terminal rendering of the chat, progress, error banner and export panel
"""

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO

from jinja2 import Environment, FileSystemLoader

from config import DISPLAY_CONFIG
from core.logging_config import get_logger
from events import event_bus as default_event_bus, EventBus, EventTypes, SystemEvent
from export.models import ExportSummary
from .boundary import RenderBoundary


def format_timestamp(timestamp: str) -> str:
    """HH:MM in local time, or the raw value if it cannot be parsed"""
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return str(timestamp)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.strftime("%H:%M")


def completion_color(percentage) -> str:
    colors = DISPLAY_CONFIG["colors"]
    value = percentage or 0
    if value >= 80:
        return colors["assistant"]
    if value >= 50:
        return colors["warning"]
    return colors["error"]


class TerminalChat:
    """Observes the event bus and prints the conversation as it changes"""

    def __init__(self, session_manager, exporter,
                 bus: Optional[EventBus] = None,
                 out: Optional[TextIO] = None,
                 boundary: Optional[RenderBoundary] = None):
        self.logger = get_logger(__name__)
        self.session_manager = session_manager
        self.exporter = exporter
        self.bus = bus or default_event_bus
        self.out = out or sys.stdout
        self.colors = DISPLAY_CONFIG["colors"]
        self.emojis = DISPLAY_CONFIG["emojis"]
        self.boundary = boundary or RenderBoundary(on_error=self._render_fallback)

        template_dir = Path(__file__).parent / "templates"
        self.template_env = Environment(
            loader=FileSystemLoader(template_dir),
            trim_blocks=True,
            lstrip_blocks=True
        )

        self._subscriptions = {
            EventTypes.MESSAGE_APPENDED: self.render_message,
            EventTypes.MESSAGE_SEND_START: self.render_typing,
            EventTypes.METADATA_UPDATED: self.render_progress,
            EventTypes.ERROR_SET: self.render_error,
            EventTypes.CONNECTIVITY_LOST: self.render_connectivity,
            EventTypes.CONNECTIVITY_RESTORED: self.render_connectivity,
            EventTypes.EXPORT_START: self.render_export_status,
            EventTypes.EXPORT_COMPLETE: self.render_export_status,
            EventTypes.EXPORT_ERROR: self.render_export_status,
        }
        self._guarded = {}
        for event_type, render in self._subscriptions.items():
            guarded = self.boundary.wrap(render)
            self._guarded[event_type] = guarded
            self.bus.on(event_type, guarded)

    def write(self, text: str = ""):
        self.out.write(text + "\n")
        self.out.flush()

    def render_message(self, event: SystemEvent):
        message = event.data["message"]
        time_label = format_timestamp(message.get("timestamp", ""))

        if message["sender"] == "user":
            self.write(f"{self.colors['user']}{self.emojis['user']} You [{time_label}]{self.colors['reset']}")
        else:
            self.write(f"{self.colors['assistant']}{self.emojis['assistant']} Assistant [{time_label}]{self.colors['reset']}")

        if message.get("message_type") == "error":
            self.write(f"{self.colors['error']}{message['content']}{self.colors['reset']}")
        elif message.get("message_type") == "safety_notice":
            self.write(f"{self.colors['warning']}{self.emojis['safety']} {message['content']}{self.colors['reset']}")
        else:
            self.write(message["content"])
        self.write()

    def render_typing(self, event: SystemEvent):
        self.write(f"{self.colors['muted']}{self.emojis['assistant']} ...{self.colors['reset']}")

    def render_progress(self, event: SystemEvent):
        metadata = event.data["metadata"]
        percentage = metadata.get("completion_percentage", 0)
        line = (f"Progress: Step {metadata.get('current_step', 0)} of {metadata.get('total_steps', 0)}"
                f" - {completion_color(percentage)}{percentage:.0f}%{self.colors['reset']}")
        areas = metadata.get("framework_areas_covered") or []
        if areas:
            line += f" | Framework areas: {', '.join(areas)}"
        self.write(f"{self.colors['info']}{line}{self.colors['reset']}")

    def render_error(self, event: SystemEvent):
        self.write(f"{self.colors['error']}{self.emojis['error']} {event.data['error']}"
                   f"  (type /dismiss to hide){self.colors['reset']}")

    def render_connectivity(self, event: SystemEvent):
        if event.type == EventTypes.CONNECTIVITY_LOST:
            self.write(f"{self.colors['error']}{self.emojis['offline']} Offline{self.colors['reset']}")
        else:
            self.write(f"{self.colors['assistant']}{self.emojis['online']} Online{self.colors['reset']}")

    def render_export_status(self, event: SystemEvent):
        status = event.data.get("status")
        if status == "in_flight":
            self.write(f"{self.colors['muted']}{self.emojis['export']} Working on {event.data.get('action')}...{self.colors['reset']}")
            return

        color = self.colors["assistant"] if status == "success" else self.colors["error"]
        emoji = self.emojis["success"] if status == "success" else self.emojis["error"]
        self.write(f"{color}{emoji} {event.data.get('message', '')}{self.colors['reset']}")

        payload = self.exporter.state.payload
        if status == "success" and payload is not None:
            self.write(self.render_summary(payload))

    def render_summary(self, summary: ExportSummary) -> str:
        template = self.template_env.get_template("summary.j2")
        raw_json = json.dumps(summary.raw, indent=2, ensure_ascii=False) if summary.conversation_metadata else None
        return template.render(
            summary=summary,
            colors=self.colors,
            completion_color=completion_color,
            raw_json=raw_json,
        )

    def render_status_bar(self):
        """One-line view of connectivity, progress and the current banner"""
        manager = self.session_manager
        online = manager.connectivity.is_online
        parts = [f"{self.emojis['online']} online" if online else f"{self.emojis['offline']} offline"]
        if manager.metadata:
            parts.append(f"step {manager.metadata.current_step}/{manager.metadata.total_steps}")
            parts.append(f"{manager.metadata.completion_percentage:.0f}%")
        if manager.error:
            parts.append(f"error: {manager.error}")
        self.write(f"{self.colors['muted']}[{' | '.join(parts)}]{self.colors['reset']}")

    def _render_fallback(self, error: Exception):
        self.write(f"{self.colors['error']}Something went wrong while displaying the conversation.")
        self.write(f"Type /reset to restore the display.{self.colors['reset']}")

    def reset(self):
        """Clear a tripped render boundary and redraw the status bar"""
        self.boundary.reset()
        self.render_status_bar()

    def detach(self):
        for event_type, guarded in self._guarded.items():
            self.bus.off(event_type, guarded)
