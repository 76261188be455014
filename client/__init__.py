"""
Transport layer for the assistant service
"""

from .exceptions import SessionClientError, TransportError, ApplicationError, ResponseFormatError
from .session_client import SessionClient, SessionCreated, MessageReply, ExportResult

__all__ = [
    "SessionClient",
    "SessionCreated",
    "MessageReply",
    "ExportResult",
    "SessionClientError",
    "TransportError",
    "ApplicationError",
    "ResponseFormatError",
]
