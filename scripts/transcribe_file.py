"""Transcribe a local audio file and optionally extract actions from it.

Usage:
    python scripts/transcribe_file.py recordings/standup.mp3
    python scripts/transcribe_file.py recordings/standup.mp3 --extract --out standup.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.errors import AppError
from src.extraction.extractor import extract_actions
from src.transcription.client import AUDIO_EXTENSIONS, TranscriptionClient


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("audio", type=Path, help="Audio file to transcribe")
    parser.add_argument("--extract", action="store_true", help="Also extract actions from the transcript")
    parser.add_argument("--out", type=Path, help="Write JSON output here instead of stdout")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    if not args.audio.exists():
        print(f"Audio file not found: {args.audio}")
        return 1
    if args.audio.suffix.lower().lstrip(".") not in AUDIO_EXTENSIONS:
        print(f"Unsupported audio format: {args.audio.suffix}")
        return 1

    client = TranscriptionClient()
    if not client.is_configured():
        print(f"No API key configured for {client.provider.value} transcription")
        return 1

    print(f"Transcribing {args.audio.name} ({args.audio.stat().st_size / 1e6:.1f} MB)...", file=sys.stderr)
    try:
        transcript = client.transcribe(args.audio.read_bytes(), args.audio.name)
        output: dict[str, object] = {"file": args.audio.name, "transcript": transcript}
        if args.extract:
            outcome = extract_actions(transcript)
            output["summary"] = outcome.summary
            output["actions"] = [a.to_dict() for a in outcome.actions]
            if outcome.error:
                output["error"] = outcome.error
    except AppError as exc:
        print(f"Failed: {exc.message}")
        return 1

    text = json.dumps(output, indent=2, ensure_ascii=False)
    if args.out:
        args.out.write_text(text, encoding="utf-8")
        print(f"Saved -> {args.out}", file=sys.stderr)
    else:
        print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
