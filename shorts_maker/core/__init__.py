"""Core pipeline modules: result types, media helpers, highlights, captions.

WHY: The core package holds the parts with real logic - the highlight
selector's contract with the scoring model and the caption pipeline -
plus the small ffmpeg layer they share. None of it knows about HTTP
routes or the CLI.

HOW: ir.py defines the result dataclasses, media.py wraps ffmpeg,
highlights.py and captions.py orchestrate injected collaborators.

RULES:
- Collaborators are passed in; core modules never construct API clients
- Public operations return tagged results instead of raising
"""
