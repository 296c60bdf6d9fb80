"""OpenAI API response dataclasses.

WHY: The transcription and chat completion endpoints return nested JSON.
Typed dataclasses make the few fields we rely on explicit and keep raw
dict access out of the pipeline code.

HOW: Each dataclass maps to one API response. Factory methods (from_dict)
handle parsing from raw responses and tolerate fields that only appear
for some models or response formats.

RULES:
- TranscriptionResult.segments are caption_cues TranscriptSegment objects
  with trimmed text, in time order
- Segments with blank text are dropped at parse time
- duration is 0.0 when the API does not report it
- ChatCompletion.content falls back to "[]" when the model returns null
"""

from __future__ import annotations

from dataclasses import dataclass, field

from caption_cues.models import TranscriptSegment


@dataclass
class TranscriptionResult:
    """Parsed verbose_json response from POST /audio/transcriptions.

    RULES:
    - text is the full transcript (convenience field, not used for timing)
    - segments carry the timing used by captions and highlight selection
    - language is the detected or requested language code
    """

    text: str
    segments: list[TranscriptSegment] = field(default_factory=list)
    language: str = ""
    duration: float = 0.0

    @classmethod
    def from_dict(cls, data: dict, default_language: str = "") -> TranscriptionResult:
        segments = []
        for i, seg in enumerate(data.get("segments") or [], 1):
            text = (seg.get("text") or "").strip()
            if not text:
                continue
            start, end = seg.get("start"), seg.get("end")
            if start is None or end is None:
                raise ValueError(
                    f"Transcription segment {i} is missing its start or end time"
                )
            segments.append(TranscriptSegment(
                text=text,
                start=float(start),
                end=float(end),
            ))
        return cls(
            text=data.get("text", ""),
            segments=segments,
            language=data.get("language") or default_language,
            duration=float(data.get("duration") or 0.0),
        )


@dataclass
class ChatCompletion:
    """The first choice of a POST /chat/completions response."""

    id: str
    model: str
    content: str

    @classmethod
    def from_dict(cls, data: dict) -> ChatCompletion:
        choices = data.get("choices") or []
        content = None
        if choices:
            content = (choices[0].get("message") or {}).get("content")
        return cls(
            id=data.get("id", ""),
            model=data.get("model", ""),
            content=content or "[]",
        )
