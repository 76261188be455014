"""
Failures raised by the session client
"""

from typing import Optional, Dict, Any


class SessionClientError(Exception):
    """Base exception for a failed request to the assistant service

    Attributes:
        network_failure: True when no response was obtained at all
        status: HTTP status when a response was received
        server_message: The service's own error text, if it sent one
    """
    network_failure = False

    def __init__(self, message: str, status: Optional[int] = None,
                 server_message: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.server_message = server_message
        self.details = details or {}


class TransportError(SessionClientError):
    """The request never produced a response (refused, DNS, timeout, reset)"""
    network_failure = True


class ApplicationError(SessionClientError):
    """The service answered with a non-2xx status"""
    def __init__(self, status: int, server_message: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(
            server_message or f"Service rejected the request: HTTP {status}",
            status=status,
            server_message=server_message,
            details=details,
        )


class ResponseFormatError(SessionClientError):
    """The service answered 2xx with a body that does not match the protocol"""
    pass
