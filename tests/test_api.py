"""Tests for the FastAPI shorts service.

WHY: Validates every endpoint's happy path and error cases (400, 404,
409, 422, 429) and the two background pipelines that fill in captions
and highlights.

HOW: Endpoint tests use the FastAPI TestClient with the background
runners patched out, then set job state directly through the store.
Pipeline tests call the async pipeline functions with asyncio.run() and
patch OpenAIClient, CaptionGenerator and HighlightSelector in the app
module, so no network or ffmpeg is touched.

RULES:
- The shared job store is cleared before and after each test
- OpenAI is never called
"""

from __future__ import annotations

import asyncio
import io
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from caption_cues.models import CaptionCue
from shorts_maker import __version__
from shorts_maker.core.ir import CaptionResult, HighlightCandidate, HighlightResult
from shorts_maker.server.app import (
    _run_caption_pipeline,
    _run_highlight_pipeline,
    app,
    job_store,
)
from shorts_maker.server.jobs import JobStatus, JobStore


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_job_store():
    """Clear all jobs before and after each test."""
    for job in job_store.list_jobs():
        job_store.delete_job(job.id)
    yield
    for job in job_store.list_jobs():
        job_store.delete_job(job.id)


@pytest.fixture
def client():
    """TestClient with both background runners patched out."""
    with patch(
        "shorts_maker.server.app._run_captions_sync",
        new=lambda job_id, store, options: None,
    ), patch(
        "shorts_maker.server.app._run_highlights_sync",
        new=lambda job_id, store, options: None,
    ):
        yield TestClient(app)


def _video_file(name="talk.mp4", content=b"fake video data"):
    return ("file", (name, io.BytesIO(content), "video/mp4"))


def _upload(client, name="talk.mp4") -> str:
    resp = client.post("/videos", files=[_video_file(name)])
    assert resp.status_code == 201
    return resp.json()["id"]


def _candidate(n=1):
    return HighlightCandidate(
        id="highlight-{}".format(n), start=10.0, end=65.0, score=5, reason="big laugh", excerpt="no way",
    )


# ---------------------------------------------------------------------------
# POST /videos
# ---------------------------------------------------------------------------


class TestUploadVideo:

    def test_upload_returns_201(self, client):
        resp = client.post("/videos", files=[_video_file()])
        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "pending"
        assert body["filename"] == "talk.mp4"

    def test_upload_saves_file(self, client):
        resp = client.post("/videos", files=[_video_file(content=b"abc123")])
        job = job_store.get_job(resp.json()["id"])
        assert job.video_path.read_bytes() == b"abc123"

    def test_filename_is_sanitized(self, client):
        resp = client.post("/videos", files=[_video_file(name="../../etc/evil.mp4")])
        assert resp.status_code == 201
        assert resp.json()["filename"] == "evil.mp4"

    def test_rejects_unsupported_extension(self, client):
        resp = client.post("/videos", files=[_video_file(name="notes.txt")])
        assert resp.status_code == 400
        assert "Unsupported file type" in resp.json()["detail"]

    def test_store_full_returns_429(self, client, monkeypatch):
        monkeypatch.setattr(job_store, "max_jobs", 1)
        _upload(client)
        resp = client.post("/videos", files=[_video_file()])
        assert resp.status_code == 429


# ---------------------------------------------------------------------------
# GET /videos/{id}
# ---------------------------------------------------------------------------


class TestGetVideo:

    def test_pending_job(self, client):
        job_id = _upload(client)
        body = client.get("/videos/{}".format(job_id)).json()
        assert body["status"] == "pending"
        assert body["captions"] == []
        assert body["highlights"] == []
        assert body["task"] is None

    def test_completed_job_exposes_results(self, client):
        job_id = _upload(client)
        job_store.update_job(
            job_id,
            status=JobStatus.COMPLETED,
            captions=[CaptionCue(text="hi", start=0.0, end=1.0)],
            highlights=[_candidate()],
            duration=612.0,
        )
        body = client.get("/videos/{}".format(job_id)).json()
        assert body["status"] == "completed"
        assert body["duration"] == 612.0
        assert body["captions"] == [{"text": "hi", "start": 0.0, "end": 1.0}]
        assert body["highlights"][0]["id"] == "highlight-1"
        assert body["highlights"][0]["end"] == 65.0

    def test_failed_job_exposes_error(self, client):
        job_id = _upload(client)
        job_store.update_job(job_id, status=JobStatus.FAILED, error="ffmpeg not found on PATH")
        body = client.get("/videos/{}".format(job_id)).json()
        assert body["error"] == "ffmpeg not found on PATH"

    def test_unknown_job_returns_404(self, client):
        assert client.get("/videos/nope").status_code == 404


# ---------------------------------------------------------------------------
# POST /videos/{id}/captions and /highlights
# ---------------------------------------------------------------------------


class TestStartTasks:

    def test_captions_accepted(self, client):
        job_id = _upload(client)
        resp = client.post("/videos/{}/captions".format(job_id), json={"max_chars": 20})
        assert resp.status_code == 202
        assert resp.json() == {"id": job_id, "status": "extracting", "task": "captions"}
        assert client.get("/videos/{}".format(job_id)).json()["task"] == "captions"

    def test_captions_without_body(self, client):
        job_id = _upload(client)
        assert client.post("/videos/{}/captions".format(job_id)).status_code == 202

    def test_captions_options_reach_runner(self):
        with patch("shorts_maker.server.app._run_captions_sync") as runner:
            test_client = TestClient(app)
            job_id = _upload(test_client)
            test_client.post(
                "/videos/{}/captions".format(job_id),
                json={"max_chars": 20, "output_formats": ["srt_captions"]},
            )
        args = runner.call_args.args
        assert args[0] == job_id
        assert args[1] is job_store
        assert args[2]["max_chars"] == 20
        assert args[2]["output_formats"] == ["srt_captions"]

    def test_unknown_output_format_returns_422(self, client):
        job_id = _upload(client)
        resp = client.post(
            "/videos/{}/captions".format(job_id), json={"output_formats": ["premiere_pro"]},
        )
        assert resp.status_code == 422

    def test_highlights_accepted(self, client):
        job_id = _upload(client)
        resp = client.post("/videos/{}/highlights".format(job_id), json={"video_duration": 600})
        assert resp.status_code == 202
        assert resp.json()["task"] == "highlights"

    def test_busy_job_returns_409(self, client):
        job_id = _upload(client)
        client.post("/videos/{}/captions".format(job_id))
        resp = client.post("/videos/{}/highlights".format(job_id))
        assert resp.status_code == 409

    def test_finished_job_can_run_again(self, client):
        job_id = _upload(client)
        client.post("/videos/{}/captions".format(job_id))
        job_store.update_job(job_id, status=JobStatus.COMPLETED)
        assert client.post("/videos/{}/highlights".format(job_id)).status_code == 202

    def test_unknown_job_returns_404(self, client):
        assert client.post("/videos/nope/captions").status_code == 404
        assert client.post("/videos/nope/highlights").status_code == 404


# ---------------------------------------------------------------------------
# Files and deletion
# ---------------------------------------------------------------------------


class TestFilesAndDeletion:

    def test_download_output_file(self, client):
        job_id = _upload(client)
        job = job_store.get_job(job_id)
        (job.output_dir / "talk-captions.srt").write_text("1\n", encoding="utf-8")
        job_store.update_job(job_id, status=JobStatus.COMPLETED, output_files=["talk-captions.srt"])

        resp = client.get("/videos/{}/files/talk-captions.srt".format(job_id))
        assert resp.status_code == 200
        assert resp.content == b"1\n"
        assert resp.headers["content-type"].startswith("application/x-subrip")
        assert "attachment" in resp.headers["content-disposition"]

    def test_uploaded_video_is_not_downloadable(self, client):
        job_id = _upload(client)
        assert client.get("/videos/{}/files/talk.mp4".format(job_id)).status_code == 404

    def test_dotdot_filename_rejected(self, client):
        job_id = _upload(client)
        assert client.get("/videos/{}/files/..secret".format(job_id)).status_code == 400

    def test_delete_video(self, client):
        job_id = _upload(client)
        output_dir = job_store.get_job(job_id).output_dir
        assert client.delete("/videos/{}".format(job_id)).status_code == 204
        assert not output_dir.exists()
        assert client.get("/videos/{}".format(job_id)).status_code == 404

    def test_delete_unknown_returns_404(self, client):
        assert client.delete("/videos/nope").status_code == 404


# ---------------------------------------------------------------------------
# POST /captions/optimize, /formats, /health
# ---------------------------------------------------------------------------


class TestOptimizeEndpoint:

    def test_merges_short_segment(self, client):
        resp = client.post("/captions/optimize", json={
            "segments": [
                {"text": "hi", "start": 0, "end": 0.2},
                {"text": "there", "start": 0.2, "end": 0.4},
            ],
            "min_duration": 0.5,
        })
        assert resp.status_code == 200
        assert resp.json() == {"cues": [{"text": "hithere", "start": 0.0, "end": 0.4}]}

    def test_splits_long_segment(self, client):
        resp = client.post("/captions/optimize", json={
            "segments": [{"text": "a" * 40, "start": 0, "end": 2}],
        })
        cues = resp.json()["cues"]
        assert [c["end"] for c in cues] == [1.0, 2.0]

    def test_empty_segments(self, client):
        resp = client.post("/captions/optimize", json={"segments": []})
        assert resp.json() == {"cues": []}

    def test_end_before_start_returns_422(self, client):
        resp = client.post("/captions/optimize", json={
            "segments": [{"text": "x", "start": 2, "end": 1}],
        })
        assert resp.status_code == 422

    def test_zero_max_chars_returns_422(self, client):
        resp = client.post("/captions/optimize", json={"segments": [], "max_chars": 0})
        assert resp.status_code == 422


class TestFormatsAndHealth:

    def test_formats(self, client):
        formats = client.get("/formats").json()
        assert [(f["key"], f["suffix"]) for f in formats] == [
            ("caption_json", "-captions.json"),
            ("plain_text", "-transcript.txt"),
            ("srt_captions", "-captions.srt"),
        ]

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok", "version": __version__}


# ---------------------------------------------------------------------------
# Background pipelines
# ---------------------------------------------------------------------------


def _patched_openai_client():
    """Patch OpenAIClient in the app module with an async context manager stub."""
    openai_cls = MagicMock()
    openai_cls.return_value.__aenter__ = AsyncMock(return_value=MagicMock())
    openai_cls.return_value.__aexit__ = AsyncMock(return_value=None)
    return patch("shorts_maker.server.app.OpenAIClient", openai_cls)


@pytest.fixture
def store():
    local_store = JobStore()
    yield local_store
    for job in local_store.list_jobs():
        local_store.delete_job(job.id)


class TestCaptionPipeline:

    def _run(self, store, job_id, result, options=None):
        generator = MagicMock()
        generator.generate = AsyncMock(return_value=result)
        with _patched_openai_client(), patch(
            "shorts_maker.server.app.CaptionGenerator.from_client", return_value=generator,
        ):
            asyncio.run(_run_caption_pipeline(job_id, store, options or {}))
        return generator

    def test_success_stores_captions_and_files(self, store):
        job = store.create_job("talk.mp4")
        store.claim_job(job.id, task="captions")
        cues = [CaptionCue(text="hello", start=0.0, end=1.0)]

        generator = self._run(store, job.id, CaptionResult(success=True, cues=cues, duration=61.0),
                              options={"max_chars": 20})

        assert job.status == JobStatus.COMPLETED
        assert job.captions == cues
        assert job.duration == 61.0
        assert sorted(job.output_files) == [
            "talk-captions.json", "talk-captions.srt", "talk-transcript.txt",
        ]
        assert (job.output_dir / "talk-captions.srt").read_text(encoding="utf-8").startswith("1\n")
        assert generator.generate.await_args.kwargs["max_chars"] == 20

    def test_selected_formats_only(self, store):
        job = store.create_job("talk.mp4")
        store.claim_job(job.id, task="captions")
        result = CaptionResult(success=True, cues=[CaptionCue(text="x", start=0, end=1)])
        self._run(store, job.id, result, options={"output_formats": ["srt_captions"]})
        assert job.output_files == ["talk-captions.srt"]

    def test_zero_length_cue_does_not_fail_job(self, store):
        job = store.create_job("talk.mp4")
        store.claim_job(job.id, task="captions")
        cues = [
            CaptionCue(text="blip", start=0.0, end=0.0),
            CaptionCue(text="hello", start=0.2, end=1.5),
        ]
        self._run(store, job.id, CaptionResult(success=True, cues=cues, duration=2.0),
                  options={"output_formats": ["caption_json"]})

        assert job.status == JobStatus.COMPLETED
        data = json.loads((job.output_dir / "talk-captions.json").read_text(encoding="utf-8"))
        assert [c["text"] for c in data["cues"]] == ["hello"]

    def test_failed_result_marks_job_failed(self, store):
        job = store.create_job("talk.mp4")
        store.claim_job(job.id, task="captions")
        self._run(store, job.id, CaptionResult(success=False, error="ffmpeg not found on PATH"))
        assert job.status == JobStatus.FAILED
        assert job.error == "ffmpeg not found on PATH"

    def test_missing_api_key_marks_job_failed(self, store):
        job = store.create_job("talk.mp4")
        store.claim_job(job.id, task="captions")
        with patch("shorts_maker.server.app.OpenAIClient", side_effect=ValueError("no key")):
            asyncio.run(_run_caption_pipeline(job.id, store, {}))
        assert job.status == JobStatus.FAILED
        assert job.error == "no key"

    def test_missing_job_is_ignored(self, store):
        asyncio.run(_run_caption_pipeline("nope", store, {}))


class TestHighlightPipeline:

    def _run(self, store, job_id, result, options=None):
        selector = MagicMock()
        selector.detect_highlights = AsyncMock(return_value=result)
        with _patched_openai_client(), patch(
            "shorts_maker.server.app.HighlightSelector.from_client", return_value=selector,
        ):
            asyncio.run(_run_highlight_pipeline(job_id, store, options or {}))
        return selector

    def test_success_uses_stored_captions_and_duration(self, store):
        job = store.create_job("talk.mp4")
        cues = [CaptionCue(text="hello", start=0.0, end=1.0)]
        store.update_job(job.id, status=JobStatus.COMPLETED, captions=cues, duration=612.0)
        store.claim_job(job.id, task="highlights")

        selector = self._run(store, job.id, HighlightResult(success=True, highlights=[_candidate()]))

        assert job.status == JobStatus.COMPLETED
        assert job.highlights[0].id == "highlight-1"
        call = selector.detect_highlights.await_args
        assert call.args[0] == job.video_path
        assert call.args[1] == 612.0
        assert call.kwargs["captions"] == cues

    def test_use_captions_false_transcribes_again(self, store):
        job = store.create_job("talk.mp4")
        store.update_job(job.id, captions=[CaptionCue(text="hello", start=0.0, end=1.0)])
        store.claim_job(job.id, task="highlights")

        selector = self._run(
            store, job.id, HighlightResult(success=True),
            options={"use_captions": False, "video_duration": 300.0},
        )
        call = selector.detect_highlights.await_args
        assert call.kwargs["captions"] is None
        assert call.args[1] == 300.0

    def test_failed_result_marks_job_failed(self, store):
        job = store.create_job("talk.mp4")
        store.claim_job(job.id, task="highlights")
        self._run(store, job.id, HighlightResult(success=False, error="Could not find a JSON array"))
        assert job.status == JobStatus.FAILED
        assert job.error == "Could not find a JSON array"
