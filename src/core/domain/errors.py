"""Error taxonomy shared by the library and the CLI.

Every failure is raised as a `TikaError` subclass so callers can tell
configuration, startup, transport, protocol and decoding problems apart
without parsing messages.
"""

from __future__ import annotations

_BODY_SNIPPET_CHARS = 512


class TikaError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(TikaError):
    """Invalid URL, missing archive or unsupported archive version."""


class ServerStateError(TikaError):
    """An operation was called in the wrong server lifecycle state."""


class StartupError(TikaError):
    """The server process could not be spawned or never became ready."""

    def __init__(self, reason: str, *, stderr: str = "") -> None:
        self.reason = reason
        self.stderr = stderr
        message = reason
        if stderr.strip():
            message = f"{reason}: {stderr.strip()}"
        super().__init__(message)


class RequestError(TikaError):
    """The request could not be built (bad base URL, method or path)."""


class TransportError(TikaError):
    """The request was sent but no HTTP response came back."""


class ClientError(TikaError):
    """The server answered with a status outside 2xx."""

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        snippet = body.strip()
        if len(snippet) > _BODY_SNIPPET_CHARS:
            snippet = snippet[: _BODY_SNIPPET_CHARS - 1].rstrip() + "…"
        message = f"response code {status_code}"
        if snippet:
            message = f"{message}: {snippet}"
        super().__init__(message)


class DecodeError(TikaError):
    """A response body was not valid JSON or had an unexpected shape."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class DownloadError(TikaError):
    """The server archive could not be fetched or written."""


class ChecksumError(DownloadError):
    """The downloaded archive does not match its pinned digest."""
