from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from scribeflow.config import Settings
from scribeflow.pipeline import RecordingTranscriber
from scribeflow.utils.audio import format_duration, format_file_size
from scribeflow.utils.logging_setup import setup_logging


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Transcribe a local audio recording with ScribeFlow.")
    parser.add_argument("--audio", required=True, help="Path to local audio file")
    parser.add_argument("--language", default=None, help="Language hint (defaults to TRANSCRIPTION_LANGUAGE)")
    parser.add_argument(
        "--mode",
        choices=["sequential", "queue"],
        default=None,
        help="Segment execution mode (defaults to PIPELINE_MODE)",
    )
    parser.add_argument("--max-segment-mb", type=float, default=None, help="Maximum segment size in MiB")
    parser.add_argument("--max-concurrent", type=int, default=None, help="Queue concurrency (queue mode)")
    parser.add_argument("--mime-type", default=None, help="Declared MIME type; unsupported types are rejected")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    return parser.parse_args()


async def _run() -> int:
    args = _parse_args()
    audio_path = Path(args.audio)
    if not audio_path.exists():
        raise SystemExit(f"Audio not found: {audio_path}")

    settings = Settings()
    if args.language is not None:
        settings.transcription.language = str(args.language) or None
    if args.mode is not None:
        settings.pipeline.mode = args.mode
    if args.max_segment_mb is not None:
        settings.segmentation.max_segment_bytes = max(1, int(float(args.max_segment_mb) * 1024 * 1024))
    if args.max_concurrent is not None:
        settings.queue.max_concurrent = max(1, int(args.max_concurrent))
    setup_logging(settings, level="DEBUG" if args.verbose else None)

    payload = audio_path.read_bytes()
    if not args.json:
        print(f"file={audio_path.name} size={format_file_size(len(payload))} mode={settings.pipeline.mode}")

    async with RecordingTranscriber(settings) as transcriber:
        result = await transcriber.transcribe(payload, mime_type=args.mime_type)

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return 1 if result.has_errors else 0

    print(f"segments={len(result.segments)} duration={format_duration(result.total_duration)}")
    print()
    print(result.combined_transcript)
    if result.errors:
        print()
        for err in result.errors:
            print(f"error: {err}")
        return 1
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(_run()))


if __name__ == "__main__":
    main()
