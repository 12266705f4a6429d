"""
Typed errors raised by the transcription client.

Each error carries a user-facing ``message`` distinct from the raw provider
error, which is kept on ``raw_error`` for logging.
"""

from __future__ import annotations

from src.errors import UpstreamError


class TranscriptionError(UpstreamError):
    """Base exception for transcription errors."""

    user_message = "Transcription failed. Please try again or upload a different file."

    def __init__(self, raw_error: str = "", provider: str | None = None, status: int | None = None):
        super().__init__(self.user_message, provider=provider, status=status)
        self.raw_error = raw_error


class NetworkError(TranscriptionError):
    """Provider unreachable (connection reset/refused, timeout). Retried."""

    status_code = 503
    user_message = (
        "Network connection failed after multiple attempts. Please check your internet connection."
    )


class AuthError(TranscriptionError):
    """Provider rejected the API key. Not retried."""

    user_message = "Invalid speech-to-text API key. Please check the server configuration."


class RateLimited(TranscriptionError):
    """Provider returned 429. Retried once after a fixed delay."""

    status_code = 503
    user_message = "Rate limit exceeded. Please wait and try again later."


class OtherError(TranscriptionError):
    """Any other provider failure. Not retried."""
