"""OpenAI API client package - async HTTP interface to transcription and chat.

WHY: The pipeline needs two external capabilities: speech-to-text with
segment timestamps, and a single-turn chat completion for highlight
scoring. This package encapsulates both behind one async client class.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. Response data is parsed
into typed dataclasses defined in models.py.

RULES:
- All HTTP calls go through OpenAIClient (no direct httpx usage elsewhere)
- Authentication is via Bearer token from config
"""

from shorts_maker.api.client import OpenAIAPIError, OpenAIClient
from shorts_maker.api.models import ChatCompletion, TranscriptionResult

__all__ = ["OpenAIAPIError", "OpenAIClient", "ChatCompletion", "TranscriptionResult"]
