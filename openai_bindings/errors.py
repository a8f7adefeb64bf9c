"""
Error types raised by openai-bindings.

Three families callers need to tell apart:
- TransportError: the request never produced a usable HTTP exchange
  (connect refused, TLS, timeout, connection dropped mid-stream)
- DecodeError: a body or event arrived but doesn't match the expected shape
- OpenAIAPIError: the service answered with a structured error body
"""

import json
from typing import Any, Optional

import httpx


class OpenAIBindingsError(Exception):
    """Base class for all library errors."""
    pass


class BuilderError(OpenAIBindingsError, ValueError):
    """Request builder is missing a required field."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"`{field}` must be initialized")


class TransportError(OpenAIBindingsError):
    """HTTP transport failure (wraps httpx.HTTPError)."""
    pass


class StreamTransportError(TransportError):
    """Event stream ended because of a transport failure."""
    pass


class DecodeError(OpenAIBindingsError):
    """Response payload doesn't match the expected shape."""
    pass


class StreamDecodeError(DecodeError):
    """
    A single server-sent event could not be decoded.

    Emitted in-band by ChatCompletionStream (default policy), so the
    stream can continue past it. ``data`` holds the raw event payload.
    """

    def __init__(self, message: str, data: str):
        self.data = data
        super().__init__(message)


class StreamConsumedError(OpenAIBindingsError):
    """A stream was iterated a second time."""
    pass


class OpenAIAPIError(OpenAIBindingsError):
    """
    Structured error returned by the API.

    The service answers failures with {"error": {"message", "type", "param", "code"}}.
    Non-JSON error bodies keep the HTTP status and a truncated body as message.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        type: Optional[str] = None,
        param: Optional[str] = None,
        code: Optional[Any] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.type = type
        self.param = param
        self.code = code
        super().__init__(message)

    def __str__(self) -> str:
        prefix = f"HTTP {self.status_code}: " if self.status_code else ""
        suffix = f" ({self.type})" if self.type else ""
        return f"{prefix}{self.message}{suffix}"

    @classmethod
    def from_body(cls, status_code: int, body: bytes) -> "OpenAIAPIError":
        """Build from a raw error response body."""
        try:
            data = json.loads(body)
        except (ValueError, UnicodeDecodeError):
            return cls(body.decode(errors="replace")[:200], status_code=status_code)

        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict):
                return cls(
                    error.get("message") or f"HTTP {status_code}",
                    status_code=status_code,
                    type=error.get("type"),
                    param=error.get("param"),
                    code=error.get("code"),
                )
            if isinstance(error, str):
                return cls(error, status_code=status_code)
        return cls(body.decode(errors="replace")[:200], status_code=status_code)

    @classmethod
    def from_response(cls, response: httpx.Response) -> "OpenAIAPIError":
        """Build from a fully read httpx response."""
        return cls.from_body(response.status_code, response.content)
