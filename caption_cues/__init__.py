"""Caption cue library for vertical short-form video.

WHY: Raw speech-to-text segments need reflowing before they can be burned
into a 9:16 short: long segments overflow the frame and very short ones
flash by unread. This package is a pure library for that step so the
HTTP service, the CLI and tests all share one implementation.

HOW: The public entry point is optimize(segments, ...). It resolves the
preset to a config dict, applies keyword overrides, copies it, and runs
core.optimize_segments(). Rendering helpers (generate_srt, cues_to_dicts)
and the input parser (parse_segments) are re-exported.

RULES:
- optimize() is the public API for producing cues.
- Preset names: "shorts" (default) and "vertical" (alias).
- Keyword arguments override the preset; None means "use the preset".
- Never mutate the preset constants - copies are made internally.
"""

import copy
from typing import List, Optional, Sequence

from .core import (
    cues_to_dicts,
    generate_srt,
    optimize_segments,
    parse_segments,
    split_text,
)
from .models import CaptionCue, TranscriptSegment
from .presets import BREAK_CHARACTERS, PRESET_SHORTS, PRESETS

__all__ = [
    "optimize",
    "resolve_config",
    "split_text",
    "parse_segments",
    "generate_srt",
    "cues_to_dicts",
    "CaptionCue",
    "TranscriptSegment",
    "PRESETS",
    "PRESET_SHORTS",
    "BREAK_CHARACTERS",
]


def resolve_config(
    preset: str = "shorts",
    config: Optional[dict] = None,
    **overrides,
) -> dict:
    """Build an optimizer config from a preset name plus overrides.

    Raises:
        ValueError: If preset name is not recognized and no config is provided.
    """
    if config is not None:
        cfg = copy.deepcopy(config)
    else:
        if preset not in PRESETS:
            raise ValueError(
                "Unknown preset '{}'. Available: {}".format(
                    preset, ", ".join(PRESETS.keys())
                )
            )
        cfg = copy.deepcopy(PRESETS[preset])

    for key, value in overrides.items():
        if value is not None:
            cfg[key] = value
    return cfg


def optimize(
    segments: Sequence[TranscriptSegment],
    max_chars: Optional[int] = None,
    min_duration: Optional[float] = None,
    max_duration: Optional[float] = None,
    preset: str = "shorts",
    config: Optional[dict] = None,
) -> List[CaptionCue]:
    """Reflow transcript segments into caption cues.

    WHY: This is the single public entry point for the optimizer. The
    caption pipeline, the HTTP endpoint and the CLI call this instead of
    reaching into core.

    HOW: Resolves the config (preset -> copy -> overrides), then runs
    optimize_segments(). With the default preset the limits are 30
    characters, 0.5 s minimum and 4 s maximum duration.

    RULES:
    - Returns an empty list for empty input.
    - Thread-safe: each call works on its own config copy.

    Args:
        segments: Time-ordered TranscriptSegment objects.
        max_chars: Maximum characters per cue (default 30).
        min_duration: Segments shorter than this merge into the previous cue.
        max_duration: Segments longer than this are split.
        preset: Preset name ("shorts", "vertical").
        config: Optional custom config dict. If provided, preset is ignored.

    Returns:
        List of CaptionCue objects.
    """
    cfg = resolve_config(
        preset,
        config,
        max_chars=max_chars,
        min_duration=min_duration,
        max_duration=max_duration,
    )
    if not segments:
        return []
    return optimize_segments(segments, cfg)
