"""Core caption cue logic: splitting, merging, input parsing and SRT output.

WHY: Whisper-style segments are sized by the recogniser. Some are far too
long for a one-line vertical caption, others flash by in a fraction of a
second. This module reflows them into cues that fit the screen and stay
up long enough to read.

HOW: The pipeline has three stages:
  1. parse_segments() - normalize JSON input into TranscriptSegment objects.
  2. optimize_segments() - one left-to-right pass that splits long
     segments and merges short ones into the previous cue.
  3. generate_srt() - render the finished cues as an SRT document.

RULES:
- ALL functions take limits explicitly (config dict or arguments) - no
  global state, so concurrent calls with different limits are safe.
- Input segments are never mutated. Only the last cue of the output list
  is ever replaced, and only during a merge.
- Split parts share the segment's duration evenly, in order.
- Merged text is concatenated with no separator (Japanese captions).
"""

from typing import Any, Dict, List, Sequence, Tuple

from .models import CaptionCue, TranscriptSegment
from .presets import BREAK_CHARACTERS

# =============================================================================
# Splitting
# =============================================================================

def split_text(
    text: str,
    max_chars: int,
    break_chars: Sequence[str] = BREAK_CHARACTERS,
) -> List[str]:
    """Split text into parts of at most max_chars characters.

    WHY: A caption longer than max_chars wraps or runs off a 9:16 frame.
    Breaking after punctuation keeps each part readable on its own.

    HOW: Greedy from the front. While the remainder is too long, try each
    break character in priority order and take the first one whose last
    occurrence within the first max_chars + 1 characters is at index > 0;
    the split lands right after it. With no break character in range the
    split is forced at max_chars. Parts and remainder are trimmed.

    RULES:
    - Priority order beats position: an earlier break char wins even if a
      later-priority one occurs further right.
    - Never returns an empty list. Text that already fits (including "")
      is returned unchanged as the only part.
    - Parts that are empty after trimming are dropped.

    Args:
        text: Caption text to split.
        max_chars: Maximum characters per part (>= 1).
        break_chars: Break characters in priority order.

    Returns:
        List of parts in original order.

    Raises:
        ValueError: If max_chars is smaller than 1.
    """
    if max_chars < 1:
        raise ValueError("max_chars must be at least 1, got {}".format(max_chars))

    parts = []  # type: List[str]
    remaining = text

    while len(remaining) > max_chars:
        split_at = -1
        for char in break_chars:
            index = remaining.rfind(char, 0, max_chars + 1)
            if index > 0:
                split_at = index + 1
                break

        if split_at == -1:
            split_at = max_chars

        part = remaining[:split_at].strip()
        if part:
            parts.append(part)
        remaining = remaining[split_at:].strip()

    if remaining or not parts:
        parts.append(remaining)

    return parts


# =============================================================================
# Optimization
# =============================================================================

def _split_segment(
    segment: TranscriptSegment,
    max_chars: int,
    break_chars: Sequence[str],
) -> List[CaptionCue]:
    """Split one segment into cues, sharing its duration evenly."""
    parts = split_text(segment.text, max_chars, break_chars)
    part_duration = (segment.end - segment.start) / len(parts)
    return [
        CaptionCue(
            text=part,
            start=segment.start + part_duration * i,
            end=segment.start + part_duration * (i + 1),
        )
        for i, part in enumerate(parts)
    ]


def optimize_segments(
    segments: Sequence[TranscriptSegment],
    config: Dict,
) -> List[CaptionCue]:
    """Reflow transcript segments into caption cues.

    WHY: This is the heart of caption generation. The recogniser's
    segmentation is tuned for recognition accuracy, not for reading.

    HOW: One pass, one decision per input segment, evaluated against the
    cue list built so far:
      1. Split - text longer than max_chars or duration above
         max_duration. Each part becomes a new cue; no merge is tried.
      2. Merge - duration below min_duration and at least one cue exists.
         The segment's text is appended to the previous cue's text. If
         the result fits within max_chars * merge_factor, the previous cue
         is replaced with the combined text ending at this segment's end;
         otherwise the segment is appended unchanged.
      3. Default - append the segment unchanged.

    RULES:
    - Empty input returns an empty list.
    - Cue start times are non-decreasing for time-ordered input.
    - Merged cues are not capped in duration beyond the trigger rules.
    - Never raises for well-formed input.

    Args:
        segments: Time-ordered TranscriptSegment objects.
        config: Dict with max_chars, min_duration, max_duration,
                merge_factor and break_chars.

    Returns:
        New list of CaptionCue objects.
    """
    max_chars = config["max_chars"]
    min_duration = config["min_duration"]
    max_duration = config["max_duration"]
    merge_limit = max_chars * config["merge_factor"]
    break_chars = config["break_chars"]

    cues = []  # type: List[CaptionCue]

    for segment in segments:
        duration = segment.end - segment.start

        if len(segment.text) > max_chars or duration > max_duration:
            cues.extend(_split_segment(segment, max_chars, break_chars))

        elif duration < min_duration and cues:
            previous = cues[-1]
            combined = previous.text + segment.text
            if len(combined) <= merge_limit:
                cues[-1] = CaptionCue(text=combined, start=previous.start, end=segment.end)
            else:
                cues.append(CaptionCue.from_segment(segment))

        else:
            cues.append(CaptionCue.from_segment(segment))

    return cues


# =============================================================================
# Input Parsing
# =============================================================================

_TEXT_KEYS = ("text", "t")
_START_KEYS = ("start", "startTime", "start_time", "s")
_END_KEYS = ("end", "endTime", "end_time", "e")


def _first_value(item: Dict[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        if key in item:
            return item[key]
    return None


def parse_segments(data: Any) -> List[TranscriptSegment]:
    """Parse transcript JSON into a list of TranscriptSegment objects.

    WHY: Segments arrive from Whisper verbose_json responses, from stored
    caption records (startTime/endTime) and from hand-written files.

    HOW: Accepts either a list of segment objects or an object with a
    "segments" list. Field names are flexible: text/t, start/startTime/
    start_time/s, end/endTime/end_time/e.

    RULES:
    - Non-dict items and items with blank text or missing start are skipped.
    - A missing end falls back to start.
    - Text is trimmed.
    """
    if isinstance(data, dict):
        data = data.get("segments", [])
    if not isinstance(data, list):
        return []

    segments = []  # type: List[TranscriptSegment]
    for item in data:
        if not isinstance(item, dict):
            continue
        text = _first_value(item, _TEXT_KEYS)
        start = _first_value(item, _START_KEYS)
        if not isinstance(text, str) or not text.strip() or start is None:
            continue
        end = _first_value(item, _END_KEYS)
        start = float(start)
        end = float(end) if end is not None else start
        segments.append(TranscriptSegment(text=text.strip(), start=start, end=end))

    return segments


def cues_to_dicts(cues: Sequence[CaptionCue]) -> List[Dict[str, Any]]:
    """Serialize cues to plain dicts (for JSON output)."""
    return [cue.to_dict() for cue in cues]


# =============================================================================
# SRT Output
# =============================================================================

def seconds_to_srt_time(seconds: float) -> str:
    """Convert seconds to SRT timestamp format: HH:MM:SS,mmm"""
    total_ms = int(round(max(seconds, 0.0) * 1000))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)
    return "{:02d}:{:02d}:{:02d},{:03d}".format(hours, minutes, secs, millis)


def generate_srt(cues: Sequence[CaptionCue]) -> str:
    """Render cues as an SRT document.

    RULES:
    - SRT indices are 1-based.
    - Each block ends with a blank line.
    - Returns "" for no cues.
    """
    lines = []  # type: List[str]

    for i, cue in enumerate(cues, 1):
        lines.append(str(i))
        lines.append("{} --> {}".format(
            seconds_to_srt_time(cue.start), seconds_to_srt_time(cue.end)
        ))
        lines.append(cue.text)
        lines.append("")

    return "\n".join(lines)
