"""Command-line interface for the vertical shorts pipeline.

WHY: Editors need to caption a source video or find its best 55 seconds
from the terminal, without starting the HTTP service. The CLI wires the
caption generator and the highlight selector to the OpenAI client and
saves or prints the results.

HOW: argparse with two subcommands. ``captions`` extracts audio,
transcribes it, reflows the transcript into cues and saves one file per
selected formatter next to the source (or to --output-dir).
``highlights`` scores the transcript (or a stored cue file given with
--captions) and prints up to five candidate windows. Each subcommand
runs its async pipeline via asyncio.run().

RULES:
- Positional argument: source video path
- Validates the file extension against SUPPORTED_VIDEO_FORMATS before any API call
- --formats: comma-separated formatter keys (default: all registered)
- Output naming: {stem}{suffix}, numeric suffix for conflicts (-captions-2.srt)
- Status output goes to stderr; --json output goes to stdout
- Exit code 1 on any failure
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from caption_cues import parse_segments
from shorts_maker.api.client import OpenAIClient
from shorts_maker.config import SUPPORTED_VIDEO_FORMATS
from shorts_maker.core.captions import CaptionGenerator
from shorts_maker.core.highlights import HighlightSelector, format_timestamp
from shorts_maker.core.media import MediaError, probe_duration
from shorts_maker.formatters import FORMATTERS
from shorts_maker.formatters.base import FormatterOutput

logger = logging.getLogger(__name__)


def _status(msg: str) -> None:
    """Print a status message to stderr.

    WHY: Status output must not pollute stdout so --json output can be piped.
    """
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> None:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def _validate_video(path_arg: str) -> Path:
    """Resolve the source video path and check it exists with a known extension."""
    video_path = Path(path_arg).resolve()
    if not video_path.is_file():
        _fail("File not found: {}".format(video_path))

    ext = video_path.suffix.lower()
    if ext not in SUPPORTED_VIDEO_FORMATS:
        _fail("Unsupported file type '{}'. Supported formats: {}".format(
            ext, ", ".join(sorted(SUPPORTED_VIDEO_FORMATS))
        ))
    return video_path


def _resolve_output_path(stem: str, suffix: str, output_dir: Path) -> Path:
    """Resolve the output file path, adding a numeric suffix on conflict.

    RULES:
    - First attempt: {stem}{suffix} (e.g. talk-captions.srt)
    - Conflict: counter inserted before the extension (talk-captions-2.srt)
    - Counter starts at 2 and increments
    """
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    dot_idx = suffix.rfind(".")
    if dot_idx > 0:
        suffix_name, suffix_ext = suffix[:dot_idx], suffix[dot_idx:]
    else:
        suffix_name, suffix_ext = suffix, ""

    counter = 2
    while True:
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(output: FormatterOutput, stem: str, output_dir: Path) -> Path:
    path = _resolve_output_path(stem, output.suffix, output_dir)
    if isinstance(output.content, bytes):
        path.write_bytes(output.content)
    else:
        path.write_text(output.content, encoding="utf-8")
    return path


def _parse_format_keys(formats: Optional[str]) -> List[str]:
    if not formats:
        return list(FORMATTERS.keys())
    format_keys = [f.strip() for f in formats.split(",") if f.strip()]
    for key in format_keys:
        if key not in FORMATTERS:
            _fail("Unknown format '{}'. Available formats: {}".format(
                key, ", ".join(sorted(FORMATTERS.keys()))
            ))
    return format_keys


# ---------------------------------------------------------------------------
# captions
# ---------------------------------------------------------------------------


async def _run_captions(args: argparse.Namespace) -> None:
    """Generate caption cues for a video and save the selected formats."""
    video_path = _validate_video(args.video)

    output_dir = Path(args.output_dir).resolve() if args.output_dir else video_path.parent
    if not output_dir.is_dir():
        _fail("Output directory does not exist: {}".format(output_dir))

    format_keys = _parse_format_keys(args.formats)

    try:
        async with OpenAIClient() as client:
            generator = CaptionGenerator.from_client(client)
            result = await generator.generate(
                video_path,
                max_chars=args.max_chars,
                min_duration=args.min_duration,
                max_duration=args.max_duration,
                on_status=_status,
            )
    except ValueError as e:
        # Missing API key
        _fail(str(e))

    if not result.success:
        _fail(result.error)

    _status("  {} caption cues, {:.1f}s of audio".format(len(result.cues), result.duration))

    _status("Formatting output...")
    saved_files: List[Path] = []
    for key in format_keys:
        formatter = FORMATTERS[key]()
        try:
            outputs = formatter.format(result.cues)
        except ValueError as e:
            _fail("{} formatter: {}".format(formatter.name, e))
        for output in outputs:
            saved_path = _save_output(output, video_path.stem, output_dir)
            saved_files.append(saved_path)
            _status("  Saved: {}".format(saved_path.name))

    _status("")
    _status("Done! Saved {} file(s) to {}".format(len(saved_files), output_dir))


# ---------------------------------------------------------------------------
# highlights
# ---------------------------------------------------------------------------


def _load_captions(path_arg: str):
    """Load a stored cue or transcript JSON file as segments."""
    try:
        with open(path_arg, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        _fail(str(e))
    except json.JSONDecodeError as e:
        _fail("Could not parse captions file: {}".format(e))

    if isinstance(data, dict) and "cues" in data:
        data = data["cues"]
    segments = parse_segments(data)
    if not segments:
        _fail("No captions found in {}".format(path_arg))
    return segments


async def _run_highlights(args: argparse.Namespace) -> None:
    """Detect highlight windows and print them."""
    video_path = _validate_video(args.video)

    captions = _load_captions(args.captions) if args.captions else None
    if captions:
        _status("Using {} stored captions as transcript".format(len(captions)))

    video_duration = args.duration
    if video_duration is None and captions:
        # No transcription will report a duration, so ask ffprobe
        try:
            video_duration = await probe_duration(video_path)
        except MediaError as e:
            logger.warning("Could not probe duration: %s", e)

    try:
        async with OpenAIClient() as client:
            selector = HighlightSelector.from_client(client)
            result = await selector.detect_highlights(
                video_path,
                video_duration,
                captions=captions,
                on_status=_status,
            )
    except ValueError as e:
        _fail(str(e))

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        if not result.success:
            sys.exit(1)
        return

    if not result.success:
        _fail(result.error)

    if not result.highlights:
        _status("No highlight candidates found.")
        return

    _status("")
    for h in result.highlights:
        print("{}  [{} - {}]  score {}  {}".format(
            h.id, format_timestamp(h.start), format_timestamp(h.end), h.score, h.reason,
        ))
        print("    \"{}\"".format(h.excerpt))


# ---------------------------------------------------------------------------
# Parser and entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser with the captions and highlights subcommands."""
    parser = argparse.ArgumentParser(
        prog="shorts_maker",
        description="Generate caption cues and highlight windows for vertical shorts.",
    )
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    captions = subparsers.add_parser(
        "captions",
        help="Transcribe a video and save caption files.",
    )
    captions.add_argument("video", help="Path to the source video.")
    captions.add_argument(
        "--formats",
        default=None,
        help="Comma-separated list of output formats. "
             "Available: {}. Default: all.".format(", ".join(sorted(FORMATTERS.keys()))),
    )
    captions.add_argument("--output-dir", default=None,
                          help="Directory to save output files (default: next to the video).")
    captions.add_argument("--max-chars", type=int, default=None,
                          help="Maximum characters per cue (default: 30).")
    captions.add_argument("--min-duration", type=float, default=None,
                          help="Shorter segments merge into the previous cue (default: 0.5).")
    captions.add_argument("--max-duration", type=float, default=None,
                          help="Longer segments are split (default: 4.0).")
    captions.set_defaults(func=_run_captions)

    highlights = subparsers.add_parser(
        "highlights",
        help="Propose up to five 55-second highlight windows.",
    )
    highlights.add_argument("video", help="Path to the source video.")
    highlights.add_argument("--captions", default=None,
                            help="Caption JSON to use as the transcript instead of transcribing.")
    highlights.add_argument("--duration", type=float, default=None,
                            help="Source video duration in seconds.")
    highlights.add_argument("--json", action="store_true",
                            help="Print the result as JSON on stdout.")
    highlights.set_defaults(func=_run_highlights)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m shorts_maker`` and the shorts-maker script."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    asyncio.run(args.func(args))


if __name__ == "__main__":
    main()
