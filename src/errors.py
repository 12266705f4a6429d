"""Error taxonomy shared by the API, extractor, executor, and clients.

Each error carries the HTTP status it maps to and a ``payload()`` with the
diagnostic fields returned to the caller. The FastAPI exception handlers in
``src.api.main`` turn these into JSON responses.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def payload(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(AppError):
    """The request (or an action in it) has the wrong shape."""

    status_code = 400


class AuthError(AppError):
    """Missing or invalid credentials."""

    status_code = 401


class NotFoundError(AppError):
    """The requested resource, file, or result does not exist."""

    status_code = 404


class PayloadTooLargeError(AppError):
    """Upload exceeds the configured size or duration limit."""

    status_code = 413


class NotConfiguredError(AppError):
    """A feature needs credentials or settings that are not present."""

    status_code = 501


class UpstreamError(AppError):
    """An external API returned a non-2xx response or could not be reached."""

    status_code = 502

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status: int | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status = status
        # Keep the upstream body short; it is echoed back to the client.
        self.details = details[:200] if details else details

    def payload(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.provider:
            body["provider"] = self.provider
        if self.status is not None:
            body["status"] = self.status
        if self.details:
            body["details"] = self.details
        return body


class ParseError(AppError):
    """Model output could not be parsed into the expected JSON shape."""

    status_code = 502

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw[:500]

    def payload(self) -> dict[str, Any]:
        return {"error": self.message, "raw": self.raw}
