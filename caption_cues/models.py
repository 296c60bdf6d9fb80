"""Data models for the caption cue optimizer.

WHY: Speech-to-text services return timestamped segments whose length is
dictated by the recogniser, not by what fits on a vertical 9:16 screen.
The optimizer needs one input type (what the recogniser said) and one
output type (what is shown on screen) so the two never get confused.

HOW: Two small dataclasses with identical fields. TranscriptSegment is
read-only input; CaptionCue is the optimizer's owned output and is the
only one that may be mutated (when a short segment is merged into it).

RULES:
- Times are in seconds (float), never milliseconds.
- TranscriptSegment.text is trimmed by the parser; the optimizer never
  rewrites it except by concatenation during a merge.
- A cue produced by one optimization run never aliases an input segment.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class TranscriptSegment:
    """One timestamped unit of speech-to-text output.

    Attributes:
        text: Recognised text (non-empty after trim for real transcripts).
        start: Start time in seconds (>= 0).
        end: End time in seconds (> start).
    """
    text: str
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TranscriptSegment":
        return cls(
            text=str(data["text"]),
            start=float(data["start"]),
            end=float(data["end"]),
        )


@dataclass
class CaptionCue:
    """One timed unit of on-screen caption text."""
    text: str
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    @classmethod
    def from_segment(cls, segment: TranscriptSegment) -> "CaptionCue":
        return cls(text=segment.text, start=segment.start, end=segment.end)

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "start": self.start, "end": self.end}
