"""CLI wrapper for the caption cue library.

WHY: Editors sometimes already have a transcript (a Whisper verbose_json
dump or exported caption records) and only want the cue reflow, without
running the whole video pipeline or the HTTP service.

HOW: Reads JSON from a file or stdin, normalizes it with parse_segments(),
runs optimize() with the requested limits and writes SRT or JSON.

RULES:
- Usage:
    python -m caption_cues input.json output.srt
    python -m caption_cues input.json --format json   (outputs to stdout)
    cat input.json | python -m caption_cues - output.srt
- Exit codes: 0 = success, 1 = error.
- Progress messages go to stderr; content goes to stdout (if no output file).
"""

import argparse
import json
import sys
from typing import List, Optional

from . import optimize
from .core import cues_to_dicts, generate_srt, parse_segments
from .presets import PRESETS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="caption_cues",
        description="Reflow timestamped transcript segments into caption cues.",
    )
    parser.add_argument("input", help="Transcript JSON file, or '-' for stdin.")
    parser.add_argument("output", nargs="?", default=None,
                        help="Output file (default: stdout).")
    parser.add_argument("--format", dest="output_format", choices=("srt", "json"),
                        default="srt", help="Output format (default: %(default)s).")
    parser.add_argument("--preset", choices=sorted(PRESETS.keys()), default="shorts",
                        help="Limit preset (default: %(default)s).")
    parser.add_argument("--max-chars", type=int, default=None,
                        help="Maximum characters per cue.")
    parser.add_argument("--min-duration", type=float, default=None,
                        help="Segments shorter than this (seconds) merge into the previous cue.")
    parser.add_argument("--max-duration", type=float, default=None,
                        help="Segments longer than this (seconds) are split.")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Run the caption cue CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).
    """
    args = build_parser().parse_args(argv)

    if args.input == "-":
        raw = sys.stdin.read()
    else:
        try:
            with open(args.input, "r", encoding="utf-8") as f:
                raw = f.read()
        except OSError as e:
            print("Error: {}".format(e), file=sys.stderr)
            sys.exit(1)

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        print("Error: Could not parse JSON input: {}".format(e), file=sys.stderr)
        sys.exit(1)

    segments = parse_segments(data)
    if not segments:
        print("Error: No segments found in input", file=sys.stderr)
        sys.exit(1)

    try:
        cues = optimize(
            segments,
            max_chars=args.max_chars,
            min_duration=args.min_duration,
            max_duration=args.max_duration,
            preset=args.preset,
        )
    except ValueError as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)

    if args.output_format == "json":
        content = json.dumps(cues_to_dicts(cues), ensure_ascii=False, indent=2)
    else:
        content = generate_srt(cues)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(content)
        print(
            "Wrote {} cues from {} segments to {}".format(
                len(cues), len(segments), args.output
            ),
            file=sys.stderr,
        )
    else:
        print(content)


if __name__ == "__main__":
    main()
