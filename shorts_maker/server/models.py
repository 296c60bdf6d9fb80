"""Pydantic schemas for the shorts service requests and responses.

WHY: Upload, caption, highlight and optimizer requests arrive as JSON or
form data from the editor UI. Validating them at the edge (segment times,
positive limits, known output formats) keeps bad input out of the
pipelines, and the same models document the API at /docs.

HOW: One request model per task endpoint and one response model per
result shape. CueModel is the plain cue shape used in responses;
SegmentModel is the validated input shape.

RULES:
- Every field carries a Field(description=...) for the OpenAPI schema
- OutputFormat values are the FORMATTERS keys
- Times are seconds (float) everywhere
- Response models never expose internal paths
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class OutputFormat(str, Enum):
    """Available caption output format identifiers.

    RULES:
    - Values match keys in shorts_maker.formatters.FORMATTERS exactly
    """

    srt_captions = "srt_captions"
    caption_json = "caption_json"
    plain_text = "plain_text"


# ---------------------------------------------------------------------------
# Shared shapes
# ---------------------------------------------------------------------------


class CueModel(BaseModel):
    """One timed caption cue."""

    text: str = Field(description="Cue text.")
    start: float = Field(description="Start time in seconds.")
    end: float = Field(description="End time in seconds.")


class SegmentModel(BaseModel):
    """One timestamped transcript segment (request input)."""

    text: str = Field(description="Segment text.")
    start: float = Field(ge=0, description="Start time in seconds.")
    end: float = Field(ge=0, description="End time in seconds.")

    @model_validator(mode="after")
    def _end_not_before_start(self) -> SegmentModel:
        if self.end < self.start:
            raise ValueError("end must not be before start")
        return self


class HighlightModel(BaseModel):
    """One proposed highlight window."""

    id: str = Field(description="Ordinal identifier, e.g. 'highlight-1'.")
    start: float = Field(description="Window start in seconds.")
    end: float = Field(description="Window end in seconds (at most 55 s after start).")
    score: int = Field(ge=1, le=5, description="Recommendation score, 5 is best.")
    reason: str = Field(description="Why the window was proposed.")
    excerpt: str = Field(description="Representative line from the window.")


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class OptimizeRequest(BaseModel):
    """Transcript segments plus optional limits for the cue optimizer.

    RULES:
    - Omitted limits use the "shorts" preset (30 chars, 0.5 s, 4 s)
    """

    segments: List[SegmentModel] = Field(description="Time-ordered transcript segments.")
    max_chars: Optional[int] = Field(default=None, ge=1, description="Maximum characters per cue.")
    min_duration: Optional[float] = Field(
        default=None, ge=0, description="Shorter segments merge into the previous cue (seconds).",
    )
    max_duration: Optional[float] = Field(
        default=None, gt=0, description="Longer segments are split (seconds).",
    )


class CaptionRequest(BaseModel):
    """Options for caption generation on an uploaded video."""

    max_chars: Optional[int] = Field(default=None, ge=1, description="Maximum characters per cue.")
    min_duration: Optional[float] = Field(default=None, ge=0, description="Merge threshold (seconds).")
    max_duration: Optional[float] = Field(default=None, gt=0, description="Split threshold (seconds).")
    output_formats: Optional[List[OutputFormat]] = Field(
        default=None,
        description="Output files to write. Defaults to all available formats.",
    )


class HighlightRequest(BaseModel):
    """Options for highlight detection on an uploaded video."""

    video_duration: Optional[float] = Field(
        default=None, gt=0,
        description="Source duration in seconds. Defaults to the known or transcribed duration.",
    )
    use_captions: bool = Field(
        default=True,
        description="Reuse stored captions as the transcript instead of transcribing again.",
    )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class OptimizeResponse(BaseModel):
    """Caption cues produced by the optimizer."""

    cues: List[CueModel] = Field(description="Optimized caption cues.")


class JobResponse(BaseModel):
    """Source video job status response.

    RULES:
    - error is only set when status is 'failed'
    - captions / highlights hold the latest results, possibly empty
    """

    id: str = Field(description="Unique job identifier (UUID).")
    status: str = Field(description="Current job status.")
    filename: str = Field(description="Uploaded filename.")
    created_at: float = Field(description="Job creation timestamp (Unix epoch seconds).")
    task: Optional[str] = Field(default=None, description="Task currently or last run.")
    duration: Optional[float] = Field(default=None, description="Source duration in seconds.")
    error: Optional[str] = Field(default=None, description="Error message when status is 'failed'.")
    captions: List[CueModel] = Field(default_factory=list, description="Stored caption cues.")
    highlights: List[HighlightModel] = Field(default_factory=list, description="Highlight candidates.")
    output_files: List[str] = Field(default_factory=list, description="Downloadable output filenames.")


class JobCreatedResponse(BaseModel):
    """Response returned when a source video is uploaded."""

    id: str = Field(description="Unique job identifier (UUID).")
    status: str = Field(description="Initial job status (always 'pending').")
    filename: str = Field(description="Uploaded filename.")


class TaskAcceptedResponse(BaseModel):
    """Response returned when a background task is started."""

    id: str = Field(description="Job identifier.")
    status: str = Field(description="Job status after the task was queued.")
    task: str = Field(description="Task name ('captions' or 'highlights').")


class FormatInfo(BaseModel):
    """Description of an available output format."""

    key: str = Field(description="Format identifier used in API requests.")
    name: str = Field(description="Human-readable format name.")
    suffix: str = Field(description="File suffix produced (e.g. '-captions.srt').")


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
