"""Tests for the ffmpeg helpers, with the subprocess layer patched out."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from shorts_maker.core.media import (
    MediaError,
    cleanup_temp_file,
    extract_audio,
    probe_duration,
)


def _fake_process(stdout=b"", stderr=b"", returncode=0):
    proc = MagicMock()
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.returncode = returncode
    return proc


def _patch_exec(proc=None, side_effect=None):
    return patch(
        "shorts_maker.core.media.asyncio.create_subprocess_exec",
        AsyncMock(return_value=proc, side_effect=side_effect),
    )


class TestExtractAudio:

    def test_writes_uuid_mp3_into_temp_dir(self, tmp_path):
        video = tmp_path / "talk.mp4"
        video.write_bytes(b"video")
        with _patch_exec(_fake_process()) as exec_mock:
            audio = asyncio.run(extract_audio(video, temp_dir=tmp_path / "audio"))

        assert audio.parent == tmp_path / "audio"
        assert audio.suffix == ".mp3"
        cmd = exec_mock.await_args.args
        assert cmd[0] == "ffmpeg"
        assert str(video) in cmd
        assert cmd[-1] == str(audio)
        assert "16000" in cmd

    def test_missing_video_raises(self, tmp_path):
        with pytest.raises(MediaError, match="not found"):
            asyncio.run(extract_audio(tmp_path / "missing.mp4", temp_dir=tmp_path))

    def test_nonzero_exit_reports_last_stderr_line(self, tmp_path):
        video = tmp_path / "talk.mp4"
        video.write_bytes(b"video")
        proc = _fake_process(stderr=b"frame=1\nInvalid data found\n", returncode=1)
        with _patch_exec(proc):
            with pytest.raises(MediaError, match="code 1: Invalid data found"):
                asyncio.run(extract_audio(video, temp_dir=tmp_path))

    def test_missing_binary(self, tmp_path):
        video = tmp_path / "talk.mp4"
        video.write_bytes(b"video")
        with _patch_exec(side_effect=FileNotFoundError()):
            with pytest.raises(MediaError, match="ffmpeg not found"):
                asyncio.run(extract_audio(video, temp_dir=tmp_path))


class TestProbeDuration:

    def test_parses_seconds(self, tmp_path):
        with _patch_exec(_fake_process(stdout=b"612.480000\n")) as exec_mock:
            assert asyncio.run(probe_duration(tmp_path / "talk.mp4")) == 612.48
        assert exec_mock.await_args.args[0] == "ffprobe"

    def test_unreadable_output_raises(self, tmp_path):
        with _patch_exec(_fake_process(stdout=b"N/A\n")):
            with pytest.raises(MediaError, match="Could not read duration"):
                asyncio.run(probe_duration(tmp_path / "talk.mp4"))


class TestCleanupTempFile:

    def test_removes_file(self, tmp_path):
        path = tmp_path / "a.mp3"
        path.write_bytes(b"x")
        cleanup_temp_file(path)
        assert not path.exists()

    def test_missing_file_and_none_are_ignored(self, tmp_path):
        cleanup_temp_file(tmp_path / "gone.mp3")
        cleanup_temp_file(None)

    def test_os_error_is_logged_not_raised(self, tmp_path, caplog):
        with patch("shorts_maker.core.media.Path.unlink", side_effect=PermissionError("denied")):
            cleanup_temp_file(tmp_path / "locked.mp3")
        assert "Failed to remove temp file" in caplog.text
