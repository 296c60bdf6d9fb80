"""Tests for the OpenAI HTTP client (shorts_maker.api.client).

WHY: The client is the only code that talks to the network. Request
shape (endpoint, multipart fields, auth header) and error mapping must be
right or every pipeline run fails in production.

HOW: httpx.MockTransport intercepts requests in-process. Each test
records the request it receives and returns a canned response.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from shorts_maker.api.client import OpenAIAPIError, OpenAIClient
from shorts_maker.api.models import ChatCompletion, TranscriptionResult


def _client(handler) -> OpenAIClient:
    return OpenAIClient(
        api_key="sk-test",
        base_url="https://api.example.test/v1/",
        chat_model="test-chat",
        transcribe_model="test-whisper",
        language="ja",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "clip.mp3"
    path.write_bytes(b"ID3fakeaudio")
    return path


class TestTranscribe:
    """OpenAIClient.transcribe() posts multipart audio and parses verbose_json."""

    def test_request_shape_and_parsing(self, audio_file, verbose_json_response):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = request.read()
            return httpx.Response(200, json=verbose_json_response)

        async def run():
            async with _client(handler) as client:
                return await client.transcribe(audio_file)

        result = asyncio.run(run())

        assert seen["url"] == "https://api.example.test/v1/audio/transcriptions"
        assert seen["auth"] == "Bearer sk-test"
        body = seen["body"]
        assert b'name="model"' in body and b"test-whisper" in body
        assert b"verbose_json" in body
        assert b'name="timestamp_granularities[]"' in body
        assert b'filename="clip.mp3"' in body
        assert b"ID3fakeaudio" in body

        assert isinstance(result, TranscriptionResult)
        assert [s.text for s in result.segments] == ["hello there", "general kenobi"]
        assert result.duration == 125.5
        assert result.language == "japanese"

    def test_language_override(self, audio_file, verbose_json_response):
        bodies = []

        def handler(request):
            bodies.append(request.read())
            return httpx.Response(200, json=verbose_json_response)

        async def run():
            async with _client(handler) as client:
                await client.transcribe(audio_file, language="en")

        asyncio.run(run())
        assert b'name="language"\r\n\r\nen\r\n' in bodies[0]

    def test_error_status_raises(self, audio_file):
        def handler(request):
            return httpx.Response(401, text="invalid api key")

        async def run():
            async with _client(handler) as client:
                await client.transcribe(audio_file)

        with pytest.raises(OpenAIAPIError) as exc_info:
            asyncio.run(run())
        assert exc_info.value.status_code == 401
        assert "invalid api key" in str(exc_info.value)


class TestComplete:
    """OpenAIClient.complete() sends one user message and returns the reply."""

    def test_request_and_reply(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["json"] = json.loads(request.read())
            return httpx.Response(200, json={
                "id": "chatcmpl-1",
                "model": "test-chat",
                "choices": [{"index": 0, "message": {"role": "assistant", "content": "[1]"}}],
            })

        async def run():
            async with _client(handler) as client:
                return await client.complete("pick highlights", temperature=0.2)

        reply = asyncio.run(run())

        assert reply == "[1]"
        assert seen["url"].endswith("/chat/completions")
        assert seen["json"]["model"] == "test-chat"
        assert seen["json"]["messages"] == [{"role": "user", "content": "pick highlights"}]
        assert seen["json"]["temperature"] == 0.2

    def test_null_content_falls_back_to_empty_array(self):
        def handler(request):
            return httpx.Response(200, json={"choices": [{"message": {"content": None}}]})

        async def run():
            async with _client(handler) as client:
                return await client.complete("x")

        assert asyncio.run(run()) == "[]"

    def test_error_status_raises(self):
        def handler(request):
            return httpx.Response(429, text="rate limited")

        async def run():
            async with _client(handler) as client:
                await client.complete("x")

        with pytest.raises(OpenAIAPIError) as exc_info:
            asyncio.run(run())
        assert exc_info.value.status_code == 429


class TestClientLifecycle:
    """The client must be used as an async context manager."""

    def test_use_outside_context_raises(self):
        client = _client(lambda request: httpx.Response(200))
        with pytest.raises(RuntimeError, match="async context manager"):
            asyncio.run(client.complete("x"))

    def test_missing_api_key_raises(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            OpenAIClient()


class TestResponseModels:
    """from_dict() factories tolerate partial responses."""

    def test_transcription_drops_blank_segments(self, verbose_json_response):
        result = TranscriptionResult.from_dict(verbose_json_response)
        assert len(result.segments) == 2

    def test_transcription_defaults(self):
        result = TranscriptionResult.from_dict({"text": "hi"}, default_language="ja")
        assert result.segments == []
        assert result.duration == 0.0
        assert result.language == "ja"

    def test_segment_without_start_raises_readable_error(self):
        data = {"text": "hi", "segments": [{"text": "hi", "end": 1.0}]}
        with pytest.raises(ValueError, match="segment 1 is missing its start or end time"):
            TranscriptionResult.from_dict(data)

    def test_chat_completion_without_choices(self):
        completion = ChatCompletion.from_dict({"id": "x"})
        assert completion.content == "[]"
