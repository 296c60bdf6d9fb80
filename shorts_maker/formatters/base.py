"""Formatter interface shared by every caption output format.

WHY: SRT, caption JSON and the plain transcript all start from the same
optimized cue list. Giving them one interface lets the CLI write files
and the HTTP service serve them without knowing which format it holds.

HOW: A formatter exposes a display ``name`` and a ``format()`` method
that turns cues into FormatterOutput records (suffix, content, MIME type).

RULES:
- ``format()`` always returns a list, even for a single file
- Suffixes begin with a hyphen and already carry the extension
- Callers prepend the video's filename stem before writing
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from caption_cues.models import CaptionCue


@dataclass
class FormatterOutput:
    """One output file produced by a formatter.

    Attributes:
        suffix: File suffix appended to the source stem,
                e.g. ``"-captions.srt"`` -> ``"talk-captions.srt"``.
        content: The file content.
        media_type: MIME type for the content, e.g. ``"application/json"``.
    """

    suffix: str
    content: str | bytes
    media_type: str


class BaseFormatter(ABC):
    """Base class for caption output formats.

    New formats subclass this and get a key in ``FORMATTERS``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'SRT Captions'."""

    @abstractmethod
    def format(self, cues: Sequence[CaptionCue]) -> list[FormatterOutput]:
        """Convert caption cues into one or more output files."""
