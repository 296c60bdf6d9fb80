"""Highlight window selection: transcript -> LLM scoring -> clamped candidates.

WHY: Picking the best 55 seconds of a long video is a judgement call that
a language model makes well from a timestamped transcript. The model is
not trusted, though: it may wrap its JSON in prose, ignore the length
limit, or invent scores outside the scale. This module owns the contract
with the model and turns whatever comes back into safe candidates or a
clean error.

HOW: HighlightSelector receives its collaborators (transcriber, audio
extractor, cleanup, scorer) at construction. detect_highlights() runs:
  1. transcript source - stored captions if given, else extract + transcribe
  2. render_transcript() - one "[MM:SS - MM:SS] text" line per segment
  3. build_highlight_prompt() - instructions + transcript
  4. scorer(prompt) - one chat completion
  5. parse_highlight_response() - locate, decode, validate, clamp
Every failure becomes HighlightResult(success=False, error=...). A temp
audio file, if one was made, is always removed.

RULES:
- Window cap is 55 s: end = min(endTime, start + 55)
- Scores are rounded and clamped to [1, 5]
- At most max_candidates (5) are kept, in the model's order
- Candidates may overlap; de-overlapping is the caller's decision
- The reply is validated with jsonschema before any field is read
- Exceptions never escape detect_highlights(); cleanup errors are swallowed
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Any

import jsonschema

from caption_cues.models import TranscriptSegment
from shorts_maker.api.models import TranscriptionResult
from shorts_maker.config import DEFAULT_VIDEO_DURATION_S, HIGHLIGHT_WINDOW_S, MAX_HIGHLIGHTS
from shorts_maker.core import media
from shorts_maker.core.ir import HighlightCandidate, HighlightResult

logger = logging.getLogger(__name__)

Transcriber = Callable[[Path], Awaitable[TranscriptionResult]]
AudioExtractor = Callable[[Path], Awaitable[Path]]
Cleanup = Callable[[Path], None]
Scorer = Callable[[str], Awaitable[str]]

GENERIC_ERROR = "Highlight detection failed"

_ARRAY_START_RE = re.compile(r"\[")

HIGHLIGHT_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "required": ["startTime", "endTime", "score", "reason", "transcript"],
        "properties": {
            "startTime": {"type": "number"},
            "endTime": {"type": "number"},
            "score": {"type": "number"},
            "reason": {"type": "string"},
            "transcript": {"type": "string"},
        },
    },
}


class ResponseFormatError(ValueError):
    """Raised when the scoring model's reply has no usable JSON array.

    RULES:
    - Raised for: no array in the reply, undecodable array, or an array
      that does not match HIGHLIGHT_RESPONSE_SCHEMA, or a non-finite number
    - Never escapes detect_highlights(); it becomes the result's error
    """


# ---------------------------------------------------------------------------
# Transcript rendering and prompt
# ---------------------------------------------------------------------------


def format_timestamp(seconds: float) -> str:
    """Format seconds as MM:SS (minutes are not wrapped into hours)."""
    total = int(seconds)
    return f"{total // 60:02d}:{total % 60:02d}"


def render_transcript(segments: Sequence[TranscriptSegment]) -> str:
    """Render segments as one "[MM:SS - MM:SS] text" line each."""
    return "\n".join(
        f"[{format_timestamp(seg.start)} - {format_timestamp(seg.end)}] {seg.text}"
        for seg in segments
    )


def build_highlight_prompt(
    transcript: str,
    video_duration: float,
    window_cap: float = HIGHLIGHT_WINDOW_S,
    max_candidates: int = MAX_HIGHLIGHTS,
) -> str:
    """Build the scoring prompt for a timestamped transcript.

    WHY: The model needs the selection criteria, the hard limits and an
    exact output shape. Stating the video length keeps it from proposing
    windows past the end.

    RULES:
    - Asks for at most max_candidates windows of at most window_cap seconds
    - Output keys: startTime, endTime, score, reason, transcript
    - Video duration is stated in whole seconds
    """
    cap = int(window_cap)
    return f"""You are an expert editor of YouTube Shorts.
Below is the transcript of a video, with timestamps.

Propose up to {max_candidates} segments of at most {cap} seconds each that would work best as a viral short.

## Selection criteria
- Funny remarks or reactions
- High-impact moments
- Content that hooks the viewer
- Emotional moments (laughter, surprise, being moved)
- Topical content
- A topic that completes within a short time

## Transcript
{transcript}

## Output format (JSON)
Respond in this format:
```json
[
  {{
    "startTime": start in seconds (number),
    "endTime": end in seconds (number, within {cap} seconds of startTime),
    "score": recommendation (number 1-5, 5 is best),
    "reason": "why this segment is recommended (same language as the transcript, max 50 characters)",
    "transcript": "a representative line from the segment (same language as the transcript, max 30 characters)"
  }}
]
```

Notes:
- startTime and endTime must be numbers
- Each segment is at most {cap} seconds long
- The video is {int(video_duration)} seconds long
- At most {max_candidates} segments
- Output JSON only (no explanation)"""


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def _reject_constant(name: str) -> float:
    raise ResponseFormatError(f"Model response contains a non-finite number: {name}")


def _finite(item: dict[str, Any], key: str) -> float:
    """Read a numeric field as a finite float."""
    try:
        value = float(item[key])
    except OverflowError:
        value = math.inf
    if not math.isfinite(value):
        raise ResponseFormatError(f"Model response has a non-finite {key}")
    return value


def extract_json_array(raw: str) -> list[Any]:
    """Return the first top-level JSON array embedded in a reply.

    WHY: Models often wrap the requested JSON in a code fence or prose.

    HOW: Tries json.JSONDecoder.raw_decode at every "[" in order and
    returns the first value that decodes to a list.

    RULES:
    - Raises ResponseFormatError if no "[" is present or nothing decodes
    - NaN, Infinity and -Infinity literals are rejected, not decoded
    """
    decoder = json.JSONDecoder(parse_constant=_reject_constant)
    found_bracket = False
    for match in _ARRAY_START_RE.finditer(raw):
        found_bracket = True
        try:
            value, _ = decoder.raw_decode(raw, match.start())
        except json.JSONDecodeError:
            continue
        if isinstance(value, list):
            return value

    if not found_bracket:
        raise ResponseFormatError("Could not find a JSON array in the model response")
    raise ResponseFormatError("Could not decode the JSON array in the model response")


def parse_highlight_response(
    raw: str,
    window_cap: float = HIGHLIGHT_WINDOW_S,
    max_candidates: int = MAX_HIGHLIGHTS,
) -> list[HighlightCandidate]:
    """Turn a raw model reply into clamped HighlightCandidate objects.

    WHY: The reply is an untrusted wire payload. Shape is validated before
    any field is read, and numeric fields are clamped so the renderer never
    receives a window longer than the main segment.

    HOW: extract_json_array() -> jsonschema validation -> per item:
    id "highlight-N", start floored at 0, end capped at start + window_cap,
    score rounded and clamped to [1, 5], reason/excerpt passed through.

    RULES:
    - Raises ResponseFormatError on a missing or invalid array, or on a
      non-finite startTime, endTime or score
    - Keeps at most max_candidates items, in reply order
    - An empty array is a valid reply (no candidates)

    Args:
        raw: The model's reply text.
        window_cap: Longest allowed window in seconds.
        max_candidates: Maximum number of candidates returned.

    Returns:
        List of HighlightCandidate objects.
    """
    items = extract_json_array(raw)

    try:
        jsonschema.validate(instance=items, schema=HIGHLIGHT_RESPONSE_SCHEMA)
    except jsonschema.ValidationError as exc:
        raise ResponseFormatError(
            f"Model response does not match the highlight format: {exc.message}"
        ) from exc

    if len(items) > max_candidates:
        logger.info("Model returned %d highlights, keeping %d", len(items), max_candidates)

    candidates = []
    for index, item in enumerate(items[:max_candidates], 1):
        start = max(0.0, _finite(item, "startTime"))
        end = min(_finite(item, "endTime"), start + window_cap)
        score = int(min(5, max(1, round(_finite(item, "score")))))
        candidates.append(HighlightCandidate(
            id=f"highlight-{index}",
            start=start,
            end=end,
            score=score,
            reason=item["reason"],
            excerpt=item["transcript"],
        ))
    return candidates


# ---------------------------------------------------------------------------
# Selector
# ---------------------------------------------------------------------------


class HighlightSelector:
    """Proposes highlight windows for a video using injected collaborators.

    WHY: Keeping the transcriber, extractor and scorer as constructor
    arguments lets the selector run in tests with plain stubs and in
    production with the OpenAI client, without global client state.

    HOW: detect_highlights() orchestrates the steps listed in the module
    docstring and converts every failure into a HighlightResult.

    RULES:
    - scorer is required; transcriber and extract_audio are only needed
      when no stored captions are passed
    - One instance may serve concurrent calls; no state is kept per call
    """

    def __init__(
        self,
        scorer: Scorer,
        transcriber: Transcriber | None = None,
        extract_audio: AudioExtractor | None = None,
        cleanup: Cleanup = media.cleanup_temp_file,
        window_cap: float = HIGHLIGHT_WINDOW_S,
        max_candidates: int = MAX_HIGHLIGHTS,
    ) -> None:
        self._scorer = scorer
        self._transcriber = transcriber
        self._extract_audio = extract_audio
        self._cleanup = cleanup
        self.window_cap = window_cap
        self.max_candidates = max_candidates

    @classmethod
    def from_client(cls, client: Any, **kwargs: Any) -> HighlightSelector:
        """Wire the selector to an open OpenAIClient and ffmpeg extraction."""
        return cls(
            scorer=client.complete,
            transcriber=client.transcribe,
            extract_audio=media.extract_audio,
            **kwargs,
        )

    async def detect_highlights(
        self,
        video_path: Path | None,
        video_duration: float | None = None,
        captions: Sequence[TranscriptSegment] | None = None,
        on_status: Callable[[str], None] | None = None,
    ) -> HighlightResult:
        """Propose up to max_candidates highlight windows for a video.

        WHY: This is the selector's only public operation. Callers get a
        tagged result and never have to catch anything.

        HOW: Uses the stored captions when present (they are an earlier
        transcription of the same video), otherwise extracts audio and
        transcribes it. Then renders, prompts, scores and parses.

        RULES:
        - Never raises; failures come back as success=False with a message
        - The temp audio file is cleaned up on every exit path
        - An empty transcript returns success with no candidates and does
          not call the scorer
        - video_duration falls back to the transcription's duration, then
          to DEFAULT_VIDEO_DURATION_S

        Args:
            video_path: Source video (unused when captions are given).
            video_duration: Source video length in seconds, if known.
            captions: Stored caption cues or segments for this video.
            on_status: Optional callback for status updates.

        Returns:
            HighlightResult with candidates or an error message.
        """
        audio_path: Path | None = None

        try:
            if captions:
                segments: Sequence[TranscriptSegment] = list(captions)
                logger.info("Using %d stored captions as transcript", len(segments))
            else:
                if self._transcriber is None or self._extract_audio is None:
                    raise RuntimeError(
                        "No stored captions and no transcriber configured"
                    )
                if on_status:
                    on_status("Extracting audio...")
                audio_path = await self._extract_audio(Path(video_path))
                if on_status:
                    on_status("Transcribing...")
                transcription = await self._transcriber(audio_path)
                segments = transcription.segments
                if not video_duration:
                    video_duration = transcription.duration

            if not segments:
                logger.info("Transcript is empty, no highlights to score")
                return HighlightResult(success=True, highlights=[])

            prompt = build_highlight_prompt(
                render_transcript(segments),
                video_duration or DEFAULT_VIDEO_DURATION_S,
                window_cap=self.window_cap,
                max_candidates=self.max_candidates,
            )

            if on_status:
                on_status("Analyzing highlights...")
            raw = await self._scorer(prompt)

            highlights = parse_highlight_response(
                raw,
                window_cap=self.window_cap,
                max_candidates=self.max_candidates,
            )
            logger.info("Detected %d highlight candidates", len(highlights))
            return HighlightResult(success=True, highlights=highlights)

        except Exception as exc:
            logger.exception("Highlight detection failed for %s", video_path)
            return HighlightResult(success=False, error=str(exc) or GENERIC_ERROR)

        finally:
            if audio_path is not None:
                try:
                    self._cleanup(audio_path)
                except Exception:
                    logger.warning("Failed to clean up temp audio %s", audio_path)
