"""Recording endpoints: save, list, delete, and transcribe audio files."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, UploadFile

from src.api.deps import get_recording_store, get_transcriber
from src.errors import NotConfiguredError, ValidationError
from src.recordings.storage import RecordingStore
from src.transcription.client import AUDIO_EXTENSIONS, TranscriptionClient, check_audio_limits

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_upload(audio: UploadFile) -> bytes:
    raw = await audio.read()
    if not raw:
        raise ValidationError("No audio file provided")
    check_audio_limits(len(raw))
    return raw


def _upload_name(audio: UploadFile) -> str | None:
    """Keep the client's filename only when it names an audio file."""
    if not audio.filename:
        return None
    ext = Path(audio.filename).suffix.lower().lstrip(".")
    return audio.filename if ext in AUDIO_EXTENSIONS else None


@router.post("/save-mp3")
async def save_mp3(
    audio: Annotated[UploadFile, File()],
    recordings: Annotated[RecordingStore, Depends(get_recording_store)],
) -> dict[str, Any]:
    raw = await _read_upload(audio)
    recording = recordings.save(raw, _upload_name(audio))
    return {
        "success": True,
        "filename": recording.filename,
        "path": recording.path,
        "size": recording.size,
        "message": "File saved successfully",
    }


@router.post("/transcribe")
async def transcribe(
    audio: Annotated[UploadFile, File()],
    recordings: Annotated[RecordingStore, Depends(get_recording_store)],
    transcriber: Annotated[TranscriptionClient, Depends(get_transcriber)],
) -> dict[str, Any]:
    """Save the upload, then transcribe it."""
    raw = await _read_upload(audio)
    if not transcriber.is_configured():
        raise NotConfiguredError(f"No API key configured for {transcriber.provider.value} transcription")
    recording = recordings.save(raw, _upload_name(audio))
    text = await asyncio.to_thread(transcriber.transcribe, raw, recording.filename)
    logger.info("Transcribed %s (%d characters)", recording.filename, len(text))
    return {"success": True, "transcript": text, "filename": recording.filename}


@router.get("/recordings")
async def list_recordings(
    recordings: Annotated[RecordingStore, Depends(get_recording_store)],
) -> dict[str, Any]:
    return {"recordings": [r.to_dict() for r in recordings.list()]}


@router.delete("/recordings/{filename}")
async def delete_recording(
    filename: str,
    recordings: Annotated[RecordingStore, Depends(get_recording_store)],
) -> dict[str, Any]:
    recordings.delete(filename)
    return {"success": True, "message": f"Deleted {filename}"}
