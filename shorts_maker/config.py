"""Configuration constants, output video specs, and .env loading.

WHY: Centralizes all configurable values so they are easy to find,
update, and override. Video output dimensions, highlight limits, and
API defaults are plain data structures - not buried in logic - so both
humans and coding agents can modify them confidently.

HOW: python-dotenv loads the .env file on import. Constants are defined
as module-level dicts, sets, and strings. The load_api_key() function
provides a clear error when the key is missing.

RULES:
- VIDEO_SPECS: 1080x1920, 30 fps, 60 s total = 5 s opening + 55 s main
- HIGHLIGHT_WINDOW_S equals the main segment length (55 s)
- API key is loaded from .env via python-dotenv, never hardcoded
- All API defaults can be overridden via environment variables
- Core classes take these values as arguments; importing this module
  never requires a key
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Output video specification
# ---------------------------------------------------------------------------

VIDEO_SPECS: dict[str, int] = {
    "width": 1080,
    "height": 1920,
    "fps": 30,
    "duration_s": 60,
    "opening_duration_s": 5,
    "main_duration_s": 55,
}

FRAME_SPECS: dict[str, int] = {
    "total": VIDEO_SPECS["duration_s"] * VIDEO_SPECS["fps"],  # 1800
    "opening": VIDEO_SPECS["opening_duration_s"] * VIDEO_SPECS["fps"],  # 150
    "main": VIDEO_SPECS["main_duration_s"] * VIDEO_SPECS["fps"],  # 1650
}

# ---------------------------------------------------------------------------
# Highlight selection limits
# ---------------------------------------------------------------------------

HIGHLIGHT_WINDOW_S = float(VIDEO_SPECS["main_duration_s"])
"""Longest highlight window the renderer can use as the main segment."""

MAX_HIGHLIGHTS = 5

DEFAULT_VIDEO_DURATION_S = 3600.0
"""Duration quoted to the scoring model when the real one is unknown."""

# ---------------------------------------------------------------------------
# Supported source video extensions
# ---------------------------------------------------------------------------

SUPPORTED_VIDEO_FORMATS: set[str] = {
    ".mp4", ".mov", ".m4v", ".mkv", ".webm", ".avi",
}
"""Source video file extensions accepted for upload (lowercase, with dot)."""

# ---------------------------------------------------------------------------
# API configuration defaults
# ---------------------------------------------------------------------------

OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
OPENAI_CHAT_MODEL = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o")
OPENAI_TRANSCRIBE_MODEL = os.getenv("OPENAI_TRANSCRIBE_MODEL", "whisper-1")
TRANSCRIBE_LANGUAGE = os.getenv("TRANSCRIBE_LANGUAGE", "ja")
CHAT_TEMPERATURE = float(os.getenv("CHAT_TEMPERATURE", "0.7"))

TEMP_DIR = Path(os.getenv("SHORTS_TEMP_DIR", "./tmp"))
"""Where extracted audio files are written before transcription."""


def load_api_key() -> str:
    """Load the OpenAI API key from the environment.

    WHY: The key is required for transcription and highlight scoring.
    Loading it from the environment (via .env) keeps it out of source code.

    HOW: Reads OPENAI_API_KEY from os.environ (populated by python-dotenv).

    RULES:
    - Raises ValueError if the key is missing or empty
    - Never returns a default/placeholder value
    """
    key = os.getenv("OPENAI_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "OpenAI API key not configured. "
            "Add OPENAI_API_KEY to the .env file in the app folder."
        )
    return key
