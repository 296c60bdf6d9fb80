"""SRT caption formatter.

WHY: SRT is what editors and most players import. The cues are already
sized for a one-line vertical caption, so this formatter only renders.

RULES:
- Produces one file: {stem}-captions.srt
- Registered as "srt_captions" in the FORMATTERS dict
- Media type: "application/x-subrip"
"""

from __future__ import annotations

from collections.abc import Sequence

from caption_cues import generate_srt
from caption_cues.models import CaptionCue
from shorts_maker.formatters.base import BaseFormatter, FormatterOutput


class SRTCaptionFormatter(BaseFormatter):
    """Formatter that renders caption cues as an SRT file."""

    @property
    def name(self) -> str:
        return "SRT Captions"

    def format(self, cues: Sequence[CaptionCue]) -> list[FormatterOutput]:
        return [
            FormatterOutput(
                suffix="-captions.srt",
                content=generate_srt(cues),
                media_type="application/x-subrip",
            )
        ]
