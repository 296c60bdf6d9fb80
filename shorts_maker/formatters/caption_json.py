"""Caption cue JSON formatter for the composition timeline.

WHY: The renderer's caption track reads cues as JSON (text, start, end in
seconds). A malformed file would only surface as a broken render, so the
output is validated against a schema before it leaves this module.

HOW: Serializes cues with cues_to_dicts(), wraps them with the output
video spec, and validates with jsonschema.

RULES:
- Produces one file: {stem}-captions.json
- Registered as "caption_json" in the FORMATTERS dict
- Cues that do not end after they start are skipped with a warning, so
  one degenerate segment never sinks the whole file
- Non-ASCII text is written as-is (ensure_ascii=False)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

import jsonschema

from caption_cues import cues_to_dicts
from caption_cues.models import CaptionCue
from shorts_maker.config import VIDEO_SPECS
from shorts_maker.formatters.base import BaseFormatter, FormatterOutput

logger = logging.getLogger(__name__)

CAPTION_JSON_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["video", "cues"],
    "properties": {
        "video": {
            "type": "object",
            "required": ["width", "height", "fps"],
            "properties": {
                "width": {"type": "integer"},
                "height": {"type": "integer"},
                "fps": {"type": "integer"},
            },
        },
        "cues": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["text", "start", "end"],
                "additionalProperties": False,
                "properties": {
                    "text": {"type": "string"},
                    "start": {"type": "number", "minimum": 0},
                    "end": {"type": "number", "minimum": 0},
                },
            },
        },
    },
}


class CaptionJSONFormatter(BaseFormatter):
    """Formatter that writes schema-validated caption JSON."""

    @property
    def name(self) -> str:
        return "Caption JSON"

    def format(self, cues: Sequence[CaptionCue]) -> list[FormatterOutput]:
        """Serialize cues to JSON, leaving out cues with no duration.

        Raises:
            jsonschema.ValidationError: If the output does not match
                CAPTION_JSON_SCHEMA.
        """
        kept = []
        for i, cue in enumerate(cues, 1):
            if cue.end <= cue.start:
                logger.warning(
                    "Skipping cue %d (%r): ends at %s but starts at %s",
                    i, cue.text, cue.end, cue.start,
                )
                continue
            kept.append(cue)

        output = {
            "video": {
                "width": VIDEO_SPECS["width"],
                "height": VIDEO_SPECS["height"],
                "fps": VIDEO_SPECS["fps"],
            },
            "cues": cues_to_dicts(kept),
        }
        jsonschema.validate(instance=output, schema=CAPTION_JSON_SCHEMA)

        return [
            FormatterOutput(
                suffix="-captions.json",
                content=json.dumps(output, ensure_ascii=False, indent=2),
                media_type="application/json",
            )
        ]
