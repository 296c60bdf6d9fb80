"""Vertical Shorts Maker - captions and highlight windows for 60-second shorts.

WHY: Turning a long landscape video into a 60-second vertical short needs
two pieces of judgement: which 55 seconds to use, and how to break the
speech into captions that fit a 9:16 frame. Everything else (crop,
bumper, BGM mixing, rendering) consumes time offsets produced here.

HOW: Three-stage pipeline - ingest (ffmpeg audio extraction + OpenAI
transcription), analyse (caption cue optimizer, LLM highlight selector),
output (pluggable formatters, HTTP service, CLI). Each stage is
independently testable with stub collaborators.

RULES:
- Core classes receive their collaborators; nothing reads API keys at import
- All output formats consume the same list of CaptionCue objects
- The 55-second window cap mirrors the fixed main segment of the short
"""

__version__ = "0.1.0"
