"""Shared test fixtures for the caption cue and shorts pipeline test suite.

WHY: Several test modules need the same small Japanese transcript, the
same Whisper verbose_json payload and the same well-formed model reply.
Centralizing them here keeps the modules focused on behaviour.

HOW: Plain module constants plus pytest fixtures that hand out fresh
copies, so no test can mutate another test's data.

RULES:
- Segment timings are time-ordered and non-overlapping.
- The verbose_json payload matches the fields OpenAI returns for
  response_format=verbose_json with segment granularity.
- The model reply is valid JSON that passes the highlight schema.
"""

import json
from typing import Any, Dict, List

import pytest

from caption_cues.models import CaptionCue, TranscriptSegment
from shorts_maker.api.models import TranscriptionResult


SAMPLE_SEGMENTS: List[Dict[str, Any]] = [
    {"text": "こんにちは、今日はよろしく。", "start": 0.0, "end": 2.0},
    {"text": "えっ", "start": 2.0, "end": 2.3},
    {"text": "今日は最高のニュースがあります。", "start": 2.3, "end": 5.0},
]

VERBOSE_JSON_RESPONSE: Dict[str, Any] = {
    "task": "transcribe",
    "language": "japanese",
    "duration": 125.5,
    "text": "hello there general kenobi",
    "segments": [
        {"id": 0, "seek": 0, "start": 0.0, "end": 1.5, "text": " hello there"},
        {"id": 1, "seek": 0, "start": 1.5, "end": 1.7, "text": "   "},
        {"id": 2, "seek": 0, "start": 1.7, "end": 3.2, "text": " general kenobi "},
    ],
}

HIGHLIGHT_ITEMS: List[Dict[str, Any]] = [
    {"startTime": 12.0, "endTime": 60.0, "score": 5, "reason": "big laugh", "transcript": "no way"},
    {"startTime": 300.5, "endTime": 340.0, "score": 3, "reason": "surprise", "transcript": "what?"},
]


@pytest.fixture
def sample_segments() -> List[TranscriptSegment]:
    """Three Japanese segments: normal, very short, normal."""
    return [TranscriptSegment(**s) for s in SAMPLE_SEGMENTS]


@pytest.fixture
def sample_cues() -> List[CaptionCue]:
    return [
        CaptionCue(text="hello there", start=0.0, end=1.5),
        CaptionCue(text="general kenobi", start=1.7, end=3.2),
    ]


@pytest.fixture
def verbose_json_response() -> Dict[str, Any]:
    return json.loads(json.dumps(VERBOSE_JSON_RESPONSE))


@pytest.fixture
def sample_transcription(verbose_json_response) -> TranscriptionResult:
    return TranscriptionResult.from_dict(verbose_json_response)


@pytest.fixture
def highlight_reply() -> str:
    """A well-formed model reply wrapped in a markdown code fence."""
    return "```json\n{}\n```".format(json.dumps(HIGHLIGHT_ITEMS))
