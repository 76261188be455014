"""
Export coordinator: file exports and summaries, tracked apart from the chat state
"""

from datetime import date, datetime, timezone
from typing import Callable, Optional

from client.exceptions import SessionClientError
from config import EXPORT_CONFIG, MESSAGES
from core.logging_config import get_logger, log_error_with_context
from events import event_bus as default_event_bus, EventBus, EventTypes
from security import InputSanitizer
from .models import ExportDownload, ExportRequestState, ExportStatus, ExportSummary

DownloadHandler = Callable[[ExportDownload], None]


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class ExportCoordinator:
    """Issues export/summary requests and owns the export panel state

    Failures stay in ExportRequestState; they never reach the chat error
    banner. Every action starts from a fresh state object, and that object
    is always settled to success or error before the action returns.
    """

    def __init__(self,
                 client,
                 session_id_provider: Callable[[], Optional[str]],
                 on_download: Optional[DownloadHandler] = None,
                 bus: Optional[EventBus] = None,
                 today: Callable[[], date] = utc_today):
        """
        Args:
            client: SessionClient used for the export endpoints
            session_id_provider: Returns the current session id (or None)
            on_download: Receives each downloaded file; the coordinator keeps
                no reference to the bytes once it returns
            bus: Event bus for observers (defaults to the global bus)
            today: Date source for fallback filenames
        """
        self.logger = get_logger(__name__)
        self.client = client
        self.session_id_provider = session_id_provider
        self.on_download = on_download
        self.bus = bus or default_event_bus
        self.today = today

        self.state = ExportRequestState()
        self.summary: Optional[ExportSummary] = None
        self.actions_completed = 0

    @property
    def is_busy(self) -> bool:
        return self.state.in_flight

    async def export_as(self, export_format: str) -> ExportRequestState:
        """
        Export the conversation in the given format.

        Binary formats are handed to the download handler; the structured
        format is parsed and kept as the current summary.

        Raises:
            ValueError: If the format is not one of EXPORT_CONFIG["formats"]
        """
        export_format = (export_format or "").lower()
        kind = EXPORT_CONFIG["formats"].get(export_format)
        if kind is None:
            raise ValueError(f"Unsupported export format: {export_format!r}")

        action = f"export:{export_format}"
        if self.is_busy:
            self.logger.warning(f"Ignoring {action}: {self.state.action} still in flight")
            return self.state

        session_id = self.session_id_provider()
        if not session_id:
            self.state = ExportRequestState(ExportStatus.ERROR, MESSAGES["no_session_export"], action=action)
            self.bus.emit(EventTypes.EXPORT_ERROR, self.state.to_dict(), source="export")
            return self.state

        state = self._begin(action)
        try:
            result = await self.client.request_export(session_id, export_format)

            if kind == "binary":
                self._deliver_download(session_id, export_format, result)
                self._settle(state, ExportStatus.SUCCESS,
                             MESSAGES["export_download_success"].format(format=export_format.upper()))
            else:
                self._store_summary(state, result.payload)
                self._settle(state, ExportStatus.SUCCESS, MESSAGES["export_json_success"])

        except SessionClientError as e:
            if e.network_failure:
                self._settle(state, ExportStatus.ERROR, MESSAGES["export_transport_failed"])
            else:
                self._settle(state, ExportStatus.ERROR, e.server_message or MESSAGES["export_failed"])
        except Exception as e:
            log_error_with_context(self.logger, e, action, session_id=session_id)
            self._settle(state, ExportStatus.ERROR, MESSAGES["export_transport_failed"])
        finally:
            if state.in_flight:
                self._settle(state, ExportStatus.ERROR, MESSAGES["export_transport_failed"])

        return state

    async def get_summary(self) -> ExportRequestState:
        """Fetch the course design summary without choosing a file format"""
        session_id = self.session_id_provider()
        if not session_id:
            self.logger.debug("Summary requested without a session")
            return self.state

        if self.is_busy:
            self.logger.warning(f"Ignoring summary request: {self.state.action} still in flight")
            return self.state

        state = self._begin("summary")
        try:
            result = await self.client.request_export(session_id, None)
            self._store_summary(state, result.payload)
            self._settle(state, ExportStatus.SUCCESS, MESSAGES["summary_success"])

        except SessionClientError as e:
            if e.network_failure:
                self._settle(state, ExportStatus.ERROR, MESSAGES["summary_failed"])
            else:
                self._settle(state, ExportStatus.ERROR, e.server_message or MESSAGES["summary_failed"])
        except Exception as e:
            log_error_with_context(self.logger, e, "summary", session_id=session_id)
            self._settle(state, ExportStatus.ERROR, MESSAGES["summary_failed"])
        finally:
            if state.in_flight:
                self._settle(state, ExportStatus.ERROR, MESSAGES["summary_failed"])

        return state

    def fallback_filename(self, session_id: str, export_format: str) -> str:
        return EXPORT_CONFIG["filename_pattern"].format(
            session_id=InputSanitizer.filename_component(session_id),
            date=self.today().isoformat(),
            export_format=export_format,
        )

    def _begin(self, action: str) -> ExportRequestState:
        self.state = ExportRequestState(ExportStatus.IN_FLIGHT, action=action)
        self.bus.emit(EventTypes.EXPORT_START, self.state.to_dict(), source="export")
        return self.state

    def _settle(self, state: ExportRequestState, status: ExportStatus, message: str):
        state.status = status
        state.message = message
        self.actions_completed += 1

        if status == ExportStatus.SUCCESS:
            self.logger.info(f"{state.action} succeeded: {message}")
            self.bus.emit(EventTypes.EXPORT_COMPLETE, state.to_dict(), source="export")
        else:
            self.logger.warning(f"{state.action} failed: {message}")
            self.bus.emit(EventTypes.EXPORT_ERROR, state.to_dict(), source="export")

    def _store_summary(self, state: ExportRequestState, payload):
        summary = ExportSummary.from_dict(payload or {})
        state.payload = summary
        self.summary = summary

    def _deliver_download(self, session_id: str, export_format: str, result):
        fallback = self.fallback_filename(session_id, export_format)
        if result.suggested_filename:
            filename = InputSanitizer.safe_filename(result.suggested_filename, fallback)
        else:
            filename = fallback

        download = ExportDownload(
            filename=filename,
            content=result.content,
            export_format=export_format,
            content_type=result.content_type,
        )
        self.bus.emit(EventTypes.EXPORT_DOWNLOAD_READY, {
            "filename": filename,
            "size": len(download.content),
        }, source="export")

        if self.on_download is None:
            self.logger.warning(f"No download handler registered; discarding {filename}")
            return

        # The handler gets the only reference; nothing is retained afterwards
        self.on_download(download)
