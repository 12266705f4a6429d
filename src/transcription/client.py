"""Speech-to-text client with typed errors and bounded retries.

Retry policy:
- ``NetworkError``: retried up to ``max_attempts`` with linear backoff
  (``attempt * network_backoff`` seconds).
- ``RateLimited``: retried once after ``rate_limit_delay`` seconds.
- ``AuthError`` and ``OtherError``: raised immediately.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import assemblyai as aai  # type: ignore[import-untyped]
import httpx
import openai

from src.config import settings
from src.errors import PayloadTooLargeError, UpstreamError, ValidationError
from src.pipeline_config import TranscriptionProvider
from src.transcription.exceptions import AuthError, NetworkError, OtherError, RateLimited

logger = logging.getLogger(__name__)

# Extensions treated as audio
AUDIO_EXTENSIONS = {"mp3", "wav", "m4a", "mp4", "ogg", "flac", "webm"}


def check_audio_limits(size_bytes: int, duration_seconds: float | None = None) -> None:
    """Raise PayloadTooLargeError if the audio exceeds the configured limits."""
    if size_bytes > settings.max_upload_bytes:
        raise PayloadTooLargeError(
            f"File too large. Maximum size is {settings.max_upload_bytes // (1024 * 1024)}MB"
        )
    if duration_seconds is not None and duration_seconds > settings.max_audio_duration_seconds:
        raise PayloadTooLargeError(
            f"Audio too long. Maximum duration is {settings.max_audio_duration_seconds // 60} minutes"
        )


def fetch_media(url: str, timeout: float = 60.0) -> bytes:
    """Download audio from ``url``, enforcing the upload size limit."""
    if not url.startswith(("http://", "https://")):
        raise ValidationError("mediaUrl must be an http(s) URL")
    try:
        with httpx.stream("GET", url, timeout=timeout, follow_redirects=True) as response:
            if response.status_code >= 400:
                response.read()
                raise UpstreamError(
                    "Could not download media",
                    provider="media",
                    status=response.status_code,
                    details=response.text,
                )
            chunks: list[bytes] = []
            total = 0
            for chunk in response.iter_bytes():
                total += len(chunk)
                check_audio_limits(total)
                chunks.append(chunk)
    except httpx.HTTPError as exc:
        raise UpstreamError("Could not download media", provider="media", details=str(exc)) from exc
    return b"".join(chunks)


class TranscriptionClient:
    """Transcribe audio bytes with the configured provider."""

    def __init__(
        self,
        provider: TranscriptionProvider | None = None,
        max_attempts: int | None = None,
        network_backoff: float = 2.0,
        rate_limit_delay: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.provider = provider or TranscriptionProvider(settings.transcription_provider.lower())
        self.max_attempts = max_attempts or settings.transcription_max_attempts
        self.network_backoff = network_backoff
        self.rate_limit_delay = rate_limit_delay
        self._sleep = sleep

    def is_configured(self) -> bool:
        if self.provider is TranscriptionProvider.ASSEMBLYAI:
            return bool(settings.assemblyai_api_key)
        return bool(settings.openai_api_key)

    def transcribe(self, audio: bytes, filename: str = "audio.webm") -> str:
        """Return the transcript text for ``audio``.

        Raises:
            NetworkError, AuthError, RateLimited, OtherError
        """
        check_audio_limits(len(audio))
        rate_limit_retried = False

        for attempt in range(1, self.max_attempts + 1):
            logger.info(
                "Transcribing %s via %s (attempt %d/%d)",
                filename,
                self.provider.value,
                attempt,
                self.max_attempts,
            )
            try:
                return self._call_provider(audio, filename)
            except NetworkError as exc:
                logger.warning("Attempt %d failed: %s", attempt, exc.raw_error)
                if attempt >= self.max_attempts:
                    raise
                delay = attempt * self.network_backoff
                logger.info("Network error detected, retrying in %.0f seconds", delay)
                self._sleep(delay)
            except RateLimited as exc:
                logger.warning("Attempt %d rate limited: %s", attempt, exc.raw_error)
                if rate_limit_retried or attempt >= self.max_attempts:
                    raise
                rate_limit_retried = True
                logger.info("Rate limited, waiting %.0f seconds", self.rate_limit_delay)
                self._sleep(self.rate_limit_delay)
            except (AuthError, OtherError) as exc:
                logger.error("Transcription failed without retry: %s", exc.raw_error)
                raise

        # Unreachable: the loop either returns or raises.
        raise OtherError("retry loop exhausted", provider=self.provider.value)

    def _call_provider(self, audio: bytes, filename: str) -> str:
        if self.provider is TranscriptionProvider.ASSEMBLYAI:
            return self._transcribe_assemblyai(audio)
        return self._transcribe_openai(audio, filename)

    def _transcribe_openai(self, audio: bytes, filename: str) -> str:
        provider = TranscriptionProvider.OPENAI.value
        client = openai.OpenAI(api_key=settings.openai_api_key, timeout=120.0)
        try:
            transcription = client.audio.transcriptions.create(
                model=settings.whisper_model,
                file=(filename, audio),
                response_format="text",
                temperature=0.0,
            )
        except openai.APIConnectionError as exc:  # includes APITimeoutError
            raise NetworkError(str(exc), provider=provider) from exc
        except openai.AuthenticationError as exc:
            raise AuthError(str(exc), provider=provider, status=exc.status_code) from exc
        except openai.RateLimitError as exc:
            raise RateLimited(str(exc), provider=provider, status=exc.status_code) from exc
        except openai.APIStatusError as exc:
            raise OtherError(str(exc), provider=provider, status=exc.status_code) from exc

        # response_format="text" returns a plain string
        text = str(transcription).strip()
        if not text:
            raise OtherError("No transcription result received", provider=provider)
        return text

    def _transcribe_assemblyai(self, audio: bytes) -> str:
        provider = TranscriptionProvider.ASSEMBLYAI.value
        aai.settings.api_key = settings.assemblyai_api_key
        transcriber = aai.Transcriber()
        try:
            transcript = transcriber.transcribe(audio)
        except httpx.TransportError as exc:
            raise NetworkError(str(exc), provider=provider) from exc
        except Exception as exc:
            raise OtherError(str(exc), provider=provider) from exc

        if transcript.status == aai.TranscriptStatus.error:
            error = str(transcript.error or "")
            lowered = error.lower()
            if "401" in lowered or "unauthorized" in lowered or "authentication" in lowered:
                raise AuthError(error, provider=provider, status=401)
            if "429" in lowered or "rate limit" in lowered:
                raise RateLimited(error, provider=provider, status=429)
            raise OtherError(error, provider=provider)

        text = (transcript.text or "").strip()
        if not text:
            raise OtherError("No transcription result received", provider=provider)
        return text
