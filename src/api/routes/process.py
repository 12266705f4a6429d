"""Processing endpoints: audio or browser transcript in, reviewable actions out."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from src.api.deps import get_store, get_transcriber
from src.api.models import (
    FormatOutputRequest,
    FormatOutputResponse,
    ProcessRequest,
    ProcessResponse,
)
from src.errors import NotConfiguredError, ValidationError
from src.execution.formatter import format_output
from src.extraction.extractor import extract_with_fallback, utc_timestamp
from src.pipeline_config import TranscriptionProvider
from src.sessions.store import ResultStore, new_session_id
from src.transcription.client import TranscriptionClient, check_audio_limits, fetch_media

logger = logging.getLogger(__name__)

router = APIRouter()

# Browser transcripts at or below this length are treated as missing.
MIN_SOURCE_TRANSCRIPT_CHARS = 10

_METHOD_NAMES = {
    TranscriptionProvider.OPENAI: "whisper-api",
    TranscriptionProvider.ASSEMBLYAI: "assemblyai-api",
}


def _decode_audio(audio_data: str) -> bytes:
    if "," in audio_data and audio_data.startswith("data:"):
        audio_data = audio_data.split(",", 1)[1]
    try:
        return base64.b64decode(audio_data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("audioData is not valid base64") from exc


@router.post("/process", response_model=ProcessResponse)
async def process(
    request: ProcessRequest,
    store: Annotated[ResultStore, Depends(get_store)],
    transcriber: Annotated[TranscriptionClient, Depends(get_transcriber)],
) -> ProcessResponse:
    """Transcribe (unless a usable browser transcript was sent) and extract actions.

    Extraction failures do not fail the request: the response then carries
    a single manual-review action.
    """
    session_id = request.session_id or new_session_id()
    transcript = (request.source_transcript or "").strip()
    method = "web-speech-api"

    if len(transcript) <= MIN_SOURCE_TRANSCRIPT_CHARS:
        audio: bytes | None = None
        if request.audio_data:
            audio = _decode_audio(request.audio_data)
        elif request.media_url:
            audio = await asyncio.to_thread(fetch_media, request.media_url)

        if audio is not None:
            check_audio_limits(len(audio), request.duration_seconds)
            if not transcriber.is_configured():
                raise NotConfiguredError(
                    f"No API key configured for {transcriber.provider.value} transcription"
                )
            logger.info("Session %s: transcribing %d bytes of audio", session_id, len(audio))
            transcript = await asyncio.to_thread(transcriber.transcribe, audio, request.filename)
            method = _METHOD_NAMES[transcriber.provider]
        elif not transcript:
            raise ValidationError("Provide audioData, mediaUrl, or sourceTranscript")

    summary = ""
    actions: list[dict] = []
    source = None
    if transcript.strip():
        outcome = await asyncio.to_thread(extract_with_fallback, transcript)
        summary = outcome.summary
        actions = [a.to_dict() for a in outcome.actions]
        source = outcome.source
    else:
        logger.warning("Session %s: transcription returned no text", session_id)

    store.save_session(
        session_id,
        {
            "transcript": transcript,
            "summary": summary,
            "actions": actions,
            "meta": {"processingMethod": method},
            "updatedAt": utc_timestamp(),
        },
    )
    return ProcessResponse(
        session_id=session_id,
        transcript=transcript,
        summary=summary,
        actions=actions,
        processing_method=method,
        extraction_source=source,
    )


@router.post("/format-output", response_model=FormatOutputResponse)
async def format_results(request: FormatOutputRequest) -> FormatOutputResponse:
    formatted = format_output(request.forge_results, request.session_id, request.original_actions)
    return FormatOutputResponse.model_validate(formatted)
