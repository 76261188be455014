"""
HTTP client for the course design assistant service

Each operation is a single request/response cycle. There is no retry or
backoff here; failures are raised to the caller for classification.
"""

import asyncio
import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import quote

import aiohttp

from config import API_CONFIG, API_ENDPOINTS, API_HEADERS, EXPORT_CONFIG, MESSAGES
from conversation.models import ConversationMetadata, Message, MetadataError
from core.logging_config import get_logger, log_api_call
from .exceptions import ApplicationError, ResponseFormatError, TransportError


@dataclass(frozen=True)
class SessionCreated:
    session_id: str
    initial_metadata: Dict[str, Any]
    welcome_message: Message


@dataclass(frozen=True)
class MessageReply:
    assistant_message: Message
    metadata_delta: Dict[str, Any]
    safety_violation: bool = False


@dataclass(frozen=True)
class ExportResult:
    """Either a downloadable file ("download") or a parsed summary ("summary")"""
    kind: str
    content: bytes = b""
    suggested_filename: Optional[str] = None
    content_type: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    DOWNLOAD = "download"
    SUMMARY = "summary"


@dataclass(frozen=True)
class _RawResponse:
    status: int
    content_type: str
    body: bytes
    filename: Optional[str]

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class SessionClient:
    """Thin transport wrapper over the assistant service's REST API"""

    def __init__(self,
                 base_url: Optional[str] = None,
                 request_timeout: Optional[float] = None,
                 endpoints: Optional[Dict[str, str]] = None):
        """
        Args:
            base_url: Service root, e.g. http://localhost:5000
            request_timeout: Total seconds per request; None waits indefinitely
            endpoints: Override for the API_ENDPOINTS path table
        """
        self.logger = get_logger(__name__)
        self.base_url = (base_url or API_CONFIG["base_url"]).rstrip("/")
        timeout = request_timeout if request_timeout is not None else API_CONFIG.get("request_timeout")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.endpoints = {**API_ENDPOINTS, **(endpoints or {})}
        self.service_name = API_CONFIG.get("service_name", "course_assistant")

        self.requests_made = 0
        self.requests_failed = 0

    async def create_session(self) -> SessionCreated:
        """Open a new conversation on the service"""
        raw = await self._request("POST", "create_session", self.endpoints["create_session"],
                                  headers=API_HEADERS)
        data = self._parse_json_object(raw, "create_session")

        session_id = data.get("session_id")
        if not isinstance(session_id, (str, int)) or session_id == "":
            raise ResponseFormatError("Session response has no session_id", status=raw.status,
                                      details={"keys": sorted(data)})

        try:
            initial_metadata = ConversationMetadata.validate_delta(data.get("conversation") or {})
            welcome = Message.from_dict(data.get("welcome_message"))
        except (MetadataError, ValueError) as e:
            raise ResponseFormatError(f"Malformed session response: {e}", status=raw.status) from e

        return SessionCreated(
            session_id=str(session_id),
            initial_metadata=initial_metadata,
            welcome_message=welcome,
        )

    async def send_message(self, session_id: str, text: str) -> MessageReply:
        """Post one user message and return the assistant's reply"""
        path = self.endpoints["send_message"].format(session_id=quote(session_id, safe=""))
        raw = await self._request("POST", "send_message", path,
                                  payload={"message": text}, headers=API_HEADERS)
        data = self._parse_json_object(raw, "send_message")

        try:
            assistant_message = Message.from_dict(data.get("ai_response"))
            delta = ConversationMetadata.validate_delta(data.get("conversation_update") or {})
        except (MetadataError, ValueError) as e:
            raise ResponseFormatError(f"Malformed message response: {e}", status=raw.status) from e

        return MessageReply(
            assistant_message=assistant_message,
            metadata_delta=delta,
            safety_violation=bool(data.get("safety_violation", False)),
        )

    async def request_export(self, session_id: str, export_format: Optional[str] = None) -> ExportResult:
        """
        Fetch an export of the conversation.

        Args:
            session_id: Conversation to export
            export_format: "pdf"/"csv" for a file, "json" for structured data,
                None for the summary endpoint

        Returns:
            ExportResult of kind "download" for binary formats, "summary" otherwise
        """
        quoted_id = quote(session_id, safe="")
        if export_format is None:
            endpoint_key = "summary"
            path = self.endpoints["summary"].format(session_id=quoted_id)
        else:
            endpoint_key = "export"
            path = self.endpoints["export"].format(session_id=quoted_id,
                                                   export_format=quote(export_format, safe=""))

        raw = await self._request("GET", endpoint_key, path)

        if export_format is not None and EXPORT_CONFIG["formats"].get(export_format) == "binary":
            self._raise_for_status(raw)
            return ExportResult(
                kind=ExportResult.DOWNLOAD,
                content=raw.body,
                suggested_filename=raw.filename,
                content_type=raw.content_type,
            )

        payload = self._parse_json_object(raw, endpoint_key)
        return ExportResult(kind=ExportResult.SUMMARY, payload=payload, content_type=raw.content_type)

    async def _request(self, method: str, endpoint_key: str, path: str,
                       payload: Optional[Dict[str, Any]] = None,
                       headers: Optional[Dict[str, str]] = None) -> _RawResponse:
        """Perform one HTTP exchange, mapping transport failures to TransportError"""
        url = f"{self.base_url}{path}"
        start_time = time.monotonic()
        status = None
        self.requests_made += 1

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(method, url, json=payload, headers=headers) as response:
                    status = response.status
                    body = await response.read()
                    disposition = response.content_disposition
                    return _RawResponse(
                        status=status,
                        content_type=response.content_type,
                        body=body,
                        filename=disposition.filename if disposition else None,
                    )

        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            self.requests_failed += 1
            self.logger.warning(f"Transport failure on {method} {path}: {type(e).__name__}: {e}")
            raise TransportError(MESSAGES["connection_error"], details={
                "endpoint": endpoint_key,
                "error_type": type(e).__name__,
            }) from e

        finally:
            log_api_call(self.logger, self.service_name, endpoint_key, status,
                         (time.monotonic() - start_time) * 1000, method=method)

    def _raise_for_status(self, raw: _RawResponse):
        """Raise ApplicationError with the service's error text for non-2xx replies"""
        if raw.ok:
            return

        self.requests_failed += 1
        server_message = None
        try:
            body = json.loads(raw.body.decode("utf-8"))
            if isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"].strip():
                server_message = body["error"]
        except (UnicodeDecodeError, ValueError):
            pass

        raise ApplicationError(raw.status, server_message=server_message)

    def _parse_json_object(self, raw: _RawResponse, endpoint_key: str) -> Dict[str, Any]:
        self._raise_for_status(raw)

        try:
            data = json.loads(raw.body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise ResponseFormatError(f"Invalid JSON from {endpoint_key}: {e}", status=raw.status) from e

        if not isinstance(data, dict):
            raise ResponseFormatError(f"Expected a JSON object from {endpoint_key}", status=raw.status)

        return data

    def get_stats(self) -> Dict[str, Any]:
        return {
            "base_url": self.base_url,
            "requests_made": self.requests_made,
            "requests_failed": self.requests_failed,
        }
