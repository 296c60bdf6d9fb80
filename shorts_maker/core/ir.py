"""Result dataclasses shared by the highlight selector and caption pipeline.

WHY: Both pipelines run external calls that can fail in many ways, but
their callers (HTTP service, CLI) must never see an exception - they show
a result or an error string. Tagged result objects make that contract
explicit and serializable.

HOW: Three dataclasses:
  HighlightCandidate - one proposed time window with score and reason
  HighlightResult    - success flag + candidates, or an error message
  CaptionResult      - success flag + caption cues, or an error message

RULES:
- HighlightCandidate.id is "highlight-N", 1-based, in oracle order
- end - start never exceeds the window cap (55 s by default)
- score is an integer in [1, 5]
- error is a non-empty human-readable string whenever success is False
- Candidates may overlap; choosing among them is the caller's decision
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from caption_cues.models import CaptionCue


@dataclass
class HighlightCandidate:
    """A candidate time range proposed as the main segment of a short.

    RULES:
    - start / end: seconds in the source video, start >= 0
    - score: 1 (weak) to 5 (strongest)
    - reason: short justification from the scoring model
    - excerpt: short representative quote from the window
    """

    id: str
    start: float
    end: float
    score: int
    reason: str
    excerpt: str

    @property
    def duration(self) -> float:
        return self.end - self.start

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "start": self.start,
            "end": self.end,
            "score": self.score,
            "reason": self.reason,
            "excerpt": self.excerpt,
        }


@dataclass
class HighlightResult:
    """Outcome of one highlight detection run."""

    success: bool
    highlights: list[HighlightCandidate] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.success:
            data["highlights"] = [h.to_dict() for h in self.highlights]
        else:
            data["error"] = self.error
        return data


@dataclass
class CaptionResult:
    """Outcome of one caption generation run."""

    success: bool
    cues: list[CaptionCue] = field(default_factory=list)
    duration: float = 0.0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.success:
            data["cues"] = [cue.to_dict() for cue in self.cues]
            data["duration"] = self.duration
        else:
            data["error"] = self.error
        return data
