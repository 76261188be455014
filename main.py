#!/usr/bin/env python3
"""
Main application - Terminal client for the course design assistant service
"""

import asyncio
import sys
from typing import Callable, Optional, Set, TextIO

from config import API_CONFIG, CONNECTIVITY_CONFIG, DISPLAY_CONFIG, EXPORT_CONFIG, LOGGING_CONFIG
from core.logging_config import setup_logging, get_logger
from core.config_validator import validate_startup_config, ConfigValidationError
from core import ConnectivityMonitor, probe_reachability
from client import SessionClient
from conversation import SessionManager
from events import event_bus as default_event_bus, EventBus, EventTypes
from export import ExportCoordinator, directory_saver
from ui import Announcer, TerminalChat

HELP_TEXT = """Commands:
  /export pdf|csv|json   Export the conversation
  /summary               Show the course design summary
  /offline, /online      Report a connectivity change manually
  /dismiss               Hide the error banner
  /reset                 Restore the display after a rendering failure
  /stats                 Show session statistics
  /help                  Show this help
  /quit                  Exit
Anything else is sent to the assistant. Commands keep working while a
reply is pending; a connection error triggers a reachability re-check."""


class CourseDesignAssistant:
    def __init__(self,
                 client: Optional[SessionClient] = None,
                 connectivity: Optional[ConnectivityMonitor] = None,
                 bus: Optional[EventBus] = None,
                 out: Optional[TextIO] = None,
                 download_dir: Optional[str] = None,
                 reachability: Optional[Callable[[], bool]] = None):
        self.logger = get_logger(__name__)
        self.bus = bus or default_event_bus
        self.out = out or sys.stdout

        # Seeded from the service host; re-checked after connection errors
        if connectivity is None:
            if reachability is None and CONNECTIVITY_CONFIG.get("probe_on_start", True):
                reachability = probe_reachability(API_CONFIG["base_url"],
                                                  CONNECTIVITY_CONFIG.get("probe_timeout", 3.0))
            connectivity = ConnectivityMonitor(reachability)
        self.connectivity = connectivity
        self.reachability = reachability

        self.client = client or SessionClient()

        self.session_manager = SessionManager(
            client=self.client,
            connectivity=self.connectivity,
            bus=self.bus
        )

        self.exporter = ExportCoordinator(
            client=self.client,
            session_id_provider=lambda: self.session_manager.session_id,
            on_download=directory_saver(download_dir or EXPORT_CONFIG["download_dir"],
                                        on_saved=self._handle_saved),
            bus=self.bus
        )

        self.announcer = Announcer(bus=self.bus)
        self.chat_view = TerminalChat(self.session_manager, self.exporter, bus=self.bus, out=self.out)

        self.running = False
        self._send_tasks: Set[asyncio.Task] = set()
        self._network_failure_seen = False
        self.bus.on(EventTypes.MESSAGE_SEND_FAILED, self._on_send_failed)

    def _handle_saved(self, path):
        colors = DISPLAY_CONFIG["colors"]
        self.chat_view.write(f"{colors['muted']}Saved to {path}{colors['reset']}")

    def _on_send_failed(self, event):
        if event.data.get("network_failure"):
            self._network_failure_seen = True

    async def recheck_connectivity(self) -> Optional[bool]:
        """
        Probe the service host again and report the result to the monitor.

        Only an unreachable host is reported; recovery is left to the next
        successful probe or an explicit /online.
        """
        if self.reachability is None:
            return None

        reachable = await asyncio.to_thread(self.reachability)
        if not reachable:
            self.logger.warning("Service unreachable after connection error; switching to offline")
            self.connectivity.set_online(False)
        return reachable

    async def _send(self, text: str):
        if not await self.session_manager.send_message(text):
            self.logger.debug("Message not sent", extra={"extra_data": self.session_manager.get_stats()})
            return

        if self._network_failure_seen:
            self._network_failure_seen = False
            await self.recheck_connectivity()

    def _dispatch_send(self, text: str) -> asyncio.Task:
        task = asyncio.create_task(self._send(text))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)
        return task

    async def wait_idle(self):
        """Wait until every dispatched message has settled"""
        while self._send_tasks:
            await asyncio.gather(*list(self._send_tasks), return_exceptions=True)

    async def handle_line(self, line: str) -> bool:
        """
        Process one line of user input.

        Returns:
            False when the user asked to quit
        """
        text = line.strip()
        if not text:
            return True

        if not text.startswith("/"):
            self._dispatch_send(line.rstrip("\n"))
            return True

        command, _, argument = text.partition(" ")
        command = command.lower()
        argument = argument.strip().lower()

        if command == "/quit":
            return False
        elif command == "/help":
            self.chat_view.write(HELP_TEXT)
        elif command == "/export":
            try:
                await self.exporter.export_as(argument)
            except ValueError as e:
                self.chat_view.write(f"{e}. Choose one of: {', '.join(EXPORT_CONFIG['formats'])}")
        elif command == "/summary":
            await self.exporter.get_summary()
        elif command == "/offline":
            self.connectivity.go_offline()
        elif command == "/online":
            self.connectivity.go_online()
        elif command == "/dismiss":
            self.session_manager.dismiss_error()
        elif command == "/reset":
            self.chat_view.reset()
        elif command == "/stats":
            stats = self.get_stats()
            for section, values in stats.items():
                self.chat_view.write(f"{section}: {values}")
        else:
            self.chat_view.write(f"Unknown command {command}. Type /help for the list.")

        return True

    async def start(self):
        """Create the session and run the input loop until /quit or end of input"""
        emojis = DISPLAY_CONFIG["emojis"]
        self.logger.info("Starting course design assistant client", extra={"extra_data": {
            "base_url": self.client.base_url,
            "online": self.connectivity.is_online,
        }})

        if not await self.session_manager.initialize():
            self.logger.error("Could not start a conversation; check that the service is running")

        self.chat_view.write(f"{emojis['assistant']} Type your message, or /help for commands.")
        self.running = True

        try:
            while self.running:
                line = await asyncio.to_thread(sys.stdin.readline)
                if not line:
                    await self.wait_idle()
                    break
                if not await self.handle_line(line):
                    break
        finally:
            self.stop()

    def stop(self):
        """Stop the client"""
        if not self.running:
            return
        self.running = False

        for task in list(self._send_tasks):
            task.cancel()

        self.logger.info("Stopping course design assistant client", extra={"extra_data": self.get_stats()})

        try:
            self.session_manager.shutdown()
        except Exception as e:
            self.logger.error(f"Error shutting down session manager: {e}", exc_info=True)

        self.bus.off(EventTypes.MESSAGE_SEND_FAILED, self._on_send_failed)
        self.announcer.detach()
        self.chat_view.detach()

    def get_stats(self):
        return {
            "session": self.session_manager.get_stats(),
            "client": self.client.get_stats(),
            "exports_completed": self.exporter.actions_completed,
            "events": self.bus.get_stats(),
        }


def run():
    # Validate configuration first (before logging setup)
    try:
        validate_startup_config()
    except ConfigValidationError as e:
        print(f"❌ Configuration validation failed: {e}")
        print("Please fix the configuration errors and try again.")
        sys.exit(1)

    # Setup logging system
    setup_logging(LOGGING_CONFIG)
    logger = get_logger(__name__)
    logger.info("Starting Course Design Assistant application")

    assistant = CourseDesignAssistant()

    try:
        asyncio.run(assistant.start())
    except KeyboardInterrupt:
        print("\n\nShutting down gracefully...")
        assistant.stop()
    except Exception as e:
        logger.error("Course Design Assistant failed", exc_info=True, extra={
            "extra_data": {"error_type": type(e).__name__, "error_message": str(e)}
        })
        sys.exit(1)


if __name__ == "__main__":
    run()
