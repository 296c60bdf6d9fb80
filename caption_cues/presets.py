"""Configuration presets for caption cue optimization.

WHY: The split/merge thresholds are heuristics tuned for one-line
captions on a 1080x1920 short. Keeping them as named, importable
constants (instead of literals inside the algorithm) makes them easy to
override per call and keeps concurrent calls with different limits safe.

HOW: Each preset is a plain dict. PRESETS maps preset names to dicts.
BREAK_CHARACTERS lists split points in priority order: full-width
Japanese punctuation first, then ASCII punctuation, then a space.

RULES:
- Presets are frozen constants. Callers copy before modifying
  (optimize() does this internally).
- merge_factor multiplies max_chars to give the merge ceiling.
- "vertical" is an alias for "shorts".
"""

from typing import Dict, Tuple

BREAK_CHARACTERS: Tuple[str, ...] = (
    "\u3002",  # 。
    "\u3001",  # 、
    "\uff01",  # ！
    "\uff1f",  # ？
    ".",
    ",",
    "!",
    "?",
    " ",
)

# One-line captions for a 9:16 short
PRESET_SHORTS: Dict = {
    "max_chars": 30,
    "min_duration": 0.5,
    "max_duration": 4.0,
    "merge_factor": 1.5,
    "break_chars": BREAK_CHARACTERS,
}

PRESETS: Dict[str, Dict] = {
    "shorts": PRESET_SHORTS,
    "vertical": PRESET_SHORTS,
}
