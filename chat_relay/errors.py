# chat_relay/errors.py
# Purpose: Error taxonomy shared by the routes and services.
# Notes:
# - Only ChatValidationError and RateLimitError ever reach the caller as hard failures.
# - UpstreamError subclasses stay inside ChatService; they end in a fallback reply.

from __future__ import annotations

from typing import Any, Dict, Optional

INVALID_MESSAGE_ERROR = "Missing or invalid 'message' in request body."
RATE_LIMIT_ERROR = "Rate limit exceeded. Try later."


class ChatRelayError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ChatValidationError(ChatRelayError):
    status_code = 400

    def __init__(self, message: str = INVALID_MESSAGE_ERROR) -> None:
        super().__init__(message)


class RateLimitError(ChatRelayError):
    status_code = 429

    def __init__(self, message: str = RATE_LIMIT_ERROR) -> None:
        super().__init__(message)


class UpstreamError(ChatRelayError):
    """Failure talking to the generative API.

    ``status`` is the HTTP status when a response arrived (None for timeouts and
    connection failures), ``raw`` the decoded response body if there was one.
    """

    status_code = 502

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        raw: Any = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.raw = raw

    def to_dict(self) -> Dict[str, Any]:
        """Diagnostic shape attached to fallback replies."""
        return {"status": self.status, "message": self.message, "raw": self.raw}


class UpstreamTransientError(UpstreamError):
    """Retryable: 429/503, overload wording, timeouts, empty candidates."""


class UpstreamFatalError(UpstreamError):
    """Not retryable, or retries exhausted."""
