"""Async HTTP client for the OpenAI transcription and chat completion APIs.

WHY: The pipeline needs timestamped speech-to-text for captions and a
text-scoring model for highlight selection. This module hides the HTTP
details behind a single client class so callers (CLI, HTTP service,
tests) only deal with typed results.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. The OpenAIClient is an
async context manager - enter it to get an authenticated client, exit to
close the connection pool. Two methods cover the two capabilities:
transcribe() and complete().

RULES:
- Always use the async context manager (async with OpenAIClient(...) as client:)
- Default models: whisper-1 for transcription, gpt-4o for chat
- Transcription requests verbose_json with segment timestamps
- Chat requests are single-turn: one user message, one reply
- Non-2xx responses raise OpenAIAPIError with status code and body
- A custom httpx transport can be injected (tests use httpx.MockTransport)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import httpx

from shorts_maker.api.models import ChatCompletion, TranscriptionResult
from shorts_maker.config import (
    CHAT_TEMPERATURE,
    OPENAI_BASE_URL,
    OPENAI_CHAT_MODEL,
    OPENAI_TRANSCRIBE_MODEL,
    TRANSCRIBE_LANGUAGE,
    load_api_key,
)

logger = logging.getLogger(__name__)


class OpenAIAPIError(Exception):
    """Raised when the OpenAI API returns an error response.

    WHY: Callers need a typed exception to distinguish API errors from
    network errors or other failures.

    RULES:
    - Always include status_code and message
    - message is the response body text or a summary
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"OpenAI API error {status_code}: {message}")


class OpenAIClient:
    """Async client for OpenAI speech-to-text and chat completions.

    WHY: Provides the two external capabilities the pipeline consumes
    (transcription oracle, text-scoring oracle) behind one authenticated
    connection pool.

    HOW: Wraps httpx.AsyncClient with Bearer token auth. Use as an async
    context manager to ensure the connection pool is properly closed.

    RULES:
    - Use as: async with OpenAIClient() as client: ...
    - api_key defaults to load_api_key() from .env
    - base_url, models and language default to values from config
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        chat_model: str | None = None,
        transcribe_model: str | None = None,
        language: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or load_api_key()
        self._base_url = (base_url or OPENAI_BASE_URL).rstrip("/")
        self._chat_model = chat_model or OPENAI_CHAT_MODEL
        self._transcribe_model = transcribe_model or OPENAI_TRANSCRIBE_MODEL
        self._language = language or TRANSCRIBE_LANGUAGE
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> OpenAIClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=httpx.Timeout(300.0, connect=30.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "OpenAIClient must be used as an async context manager: "
                "async with OpenAIClient() as client: ..."
            )
        return self._client

    # ------------------------------------------------------------------
    # Transcription
    # ------------------------------------------------------------------

    async def transcribe(
        self,
        audio_path: Path,
        language: str | None = None,
        on_status: Callable[[str], None] | None = None,
    ) -> TranscriptionResult:
        """Transcribe an audio file and return timestamped segments.

        WHY: Captions and highlight selection both start from segment-level
        timestamps. verbose_json is the only response format that has them.

        HOW: Sends a multipart/form-data POST with the audio file, model,
        language, response_format=verbose_json and segment granularity.
        The response is parsed into a TranscriptionResult.

        RULES:
        - audio_path must point to an existing file
        - Segment text is trimmed; blank segments are dropped
        - Raises OpenAIAPIError on non-2xx responses

        Args:
            audio_path: Path to the extracted audio file.
            language: ISO 639-1 language code (default from config).
            on_status: Optional callback for status updates.

        Returns:
            TranscriptionResult with segments in time order.
        """
        client = self._ensure_client()
        if on_status:
            on_status("Transcribing audio...")

        audio_path = Path(audio_path)
        language = language or self._language
        with open(audio_path, "rb") as f:
            resp = await client.post(
                "/audio/transcriptions",
                files={"file": (audio_path.name, f)},
                data={
                    "model": self._transcribe_model,
                    "language": language,
                    "response_format": "verbose_json",
                    "timestamp_granularities[]": "segment",
                },
            )

        if resp.status_code != 200:
            raise OpenAIAPIError(resp.status_code, resp.text)

        result = TranscriptionResult.from_dict(resp.json(), default_language=language)
        logger.info(
            "Transcribed %s: %d segments, %.1fs",
            audio_path.name, len(result.segments), result.duration,
        )
        return result

    # ------------------------------------------------------------------
    # Chat completion
    # ------------------------------------------------------------------

    async def complete(
        self,
        prompt: str,
        temperature: float | None = None,
        on_status: Callable[[str], None] | None = None,
    ) -> str:
        """Send a single-turn prompt and return the reply text.

        WHY: Highlight scoring is one prompt in, one reply out. The caller
        is responsible for extracting structure from the reply.

        HOW: POSTs one user message to /chat/completions and returns the
        content of the first choice.

        RULES:
        - Returns "[]" when the model returns no content
        - Raises OpenAIAPIError on non-2xx responses

        Args:
            prompt: The full prompt text.
            temperature: Sampling temperature (default from config).
            on_status: Optional callback for status updates.

        Returns:
            The reply text, possibly with prose around the requested JSON.
        """
        client = self._ensure_client()
        if on_status:
            on_status("Scoring transcript...")

        body = {
            "model": self._chat_model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": CHAT_TEMPERATURE if temperature is None else temperature,
        }
        resp = await client.post("/chat/completions", json=body)

        if resp.status_code != 200:
            raise OpenAIAPIError(resp.status_code, resp.text)

        completion = ChatCompletion.from_dict(resp.json())
        logger.info("Chat completion %s (%d chars)", completion.id, len(completion.content))
        return completion.content
