"""Local-disk storage for recorded and uploaded audio."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from src.errors import NotFoundError, ValidationError
from src.transcription.client import AUDIO_EXTENSIONS

logger = logging.getLogger(__name__)


@dataclass
class Recording:
    filename: str
    path: str
    size: int

    def to_dict(self) -> dict[str, object]:
        return {"filename": self.filename, "path": self.path, "size": self.size}


def default_recording_name() -> str:
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%f")[:-3]
    return f"recording-{timestamp}Z.mp3"


class RecordingStore:
    """Audio files kept under one root directory.

    Filenames are reduced to their final path component, and every resolved
    path is checked to stay inside the root.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, filename: str) -> Path:
        raw = filename.strip()
        name = Path(raw).name
        if not name or name in (".", "..") or name != raw:
            raise ValidationError("Invalid file path")
        path = (self.root / name).resolve()
        if path.parent != self.root:
            raise ValidationError("Invalid file path")
        return path

    def save(self, data: bytes, filename: str | None = None) -> Recording:
        """Write ``data``, preserving an uploaded filename when one is given."""
        name = Path(filename.strip()).name if filename and filename.strip() else default_recording_name()
        path = self._resolve(name)
        path.write_bytes(data)
        logger.info("File saved: %s (%d bytes)", name, len(data))
        return Recording(filename=name, path=f"./recordings/{name}", size=len(data))

    def list(self) -> list[Recording]:
        recordings: list[Recording] = []
        for path in sorted(self.root.iterdir()):
            ext = path.suffix.lower().lstrip(".")
            if not path.is_file() or ext not in AUDIO_EXTENSIONS:
                continue
            recordings.append(
                Recording(filename=path.name, path=f"./recordings/{path.name}", size=path.stat().st_size)
            )
        return recordings

    def read(self, filename: str) -> bytes:
        path = self._resolve(filename)
        if not path.exists():
            raise NotFoundError("File not found")
        return path.read_bytes()

    def delete(self, filename: str) -> None:
        path = self._resolve(filename)
        if not path.exists():
            raise NotFoundError("File not found")
        path.unlink()
        logger.info("Deleted recording %s", filename)
