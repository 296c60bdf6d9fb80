"""Plain text transcript formatter with timestamped lines.

WHY: Editors reviewing captions or picking a highlight by hand want a
quick, readable transcript with times, not a subtitle file.

HOW: Reuses the highlight selector's renderer, so the text file shows
exactly what the scoring model saw: one "[MM:SS - MM:SS] text" line per cue.

RULES:
- One line per cue, no trailing blank line
- Output suffix: "-transcript.txt"
- Media type: "text/plain"
"""

from __future__ import annotations

from collections.abc import Sequence

from caption_cues.models import CaptionCue
from shorts_maker.core.highlights import render_transcript
from shorts_maker.formatters.base import BaseFormatter, FormatterOutput


class PlainTextFormatter(BaseFormatter):
    """Formatter that produces a timestamped plain text transcript."""

    @property
    def name(self) -> str:
        return "Plain Text"

    def format(self, cues: Sequence[CaptionCue]) -> list[FormatterOutput]:
        return [
            FormatterOutput(
                suffix="-transcript.txt",
                content=render_transcript(cues),
                media_type="text/plain",
            )
        ]
