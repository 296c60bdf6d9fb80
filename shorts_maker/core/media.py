"""ffmpeg helpers: audio extraction, temp file cleanup, duration probing.

WHY: The transcription API accepts audio, not the multi-gigabyte source
video. Extracting a small mono 16 kHz MP3 first keeps uploads fast and
within the API's size limit.

HOW: Runs the ffmpeg / ffprobe binaries through asyncio subprocesses so
the event loop is not blocked while a long video is decoded.

RULES:
- Extracted audio goes to TEMP_DIR as <uuid4>.mp3, unique per call
- The caller owns the file and must call cleanup_temp_file() in a finally
- cleanup_temp_file() never raises
- A non-zero ffmpeg/ffprobe exit raises MediaError with stderr attached
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path

from shorts_maker.config import TEMP_DIR

logger = logging.getLogger(__name__)


class MediaError(RuntimeError):
    """Raised when ffmpeg or ffprobe fails on a source file."""


async def _run(cmd: list[str]) -> bytes:
    """Run a command and return stdout, raising MediaError on failure."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise MediaError(f"{cmd[0]} not found on PATH") from exc

    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip().splitlines()
        raise MediaError(
            f"{cmd[0]} exited with code {proc.returncode}: "
            f"{detail[-1] if detail else 'no output'}"
        )
    return stdout


async def extract_audio(video_path: Path, temp_dir: Path | None = None) -> Path:
    """Extract a mono 16 kHz MP3 track from a video file.

    Args:
        video_path: Source video file.
        temp_dir: Output directory (default: TEMP_DIR from config).

    Returns:
        Path of the new audio file.
    """
    video_path = Path(video_path)
    if not video_path.is_file():
        raise MediaError(f"Video file not found: {video_path}")

    out_dir = Path(temp_dir or TEMP_DIR)
    out_dir.mkdir(parents=True, exist_ok=True)
    audio_path = out_dir / f"{uuid.uuid4()}.mp3"

    logger.info("Extracting audio from %s", video_path.name)
    await _run([
        "ffmpeg",
        "-i", str(video_path),
        "-vn",
        "-acodec", "libmp3lame",
        "-ar", "16000",
        "-ac", "1",
        "-y",
        str(audio_path),
    ])
    return audio_path


def cleanup_temp_file(path: Path | None) -> None:
    """Delete a temporary file. Errors are logged and ignored."""
    if path is None:
        return
    try:
        Path(path).unlink(missing_ok=True)
    except OSError:
        logger.warning("Failed to remove temp file: %s", path)


async def probe_duration(video_path: Path) -> float:
    """Return the container duration of a media file in seconds."""
    stdout = await _run([
        "ffprobe",
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(video_path),
    ])
    try:
        return float(stdout.decode().strip())
    except ValueError as exc:
        raise MediaError(f"Could not read duration of {video_path}") from exc
