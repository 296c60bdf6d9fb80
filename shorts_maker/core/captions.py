"""Caption generation pipeline: video -> audio -> transcript -> caption cues.

WHY: Captions are burned into the short, so they are generated once per
source video and stored. The stored cues double as the transcript cache
for highlight detection, which then skips a second transcription.

HOW: CaptionGenerator receives an audio extractor, a transcriber and a
cleanup function. generate() extracts audio, transcribes it, and runs
caption_cues.optimize() on the segments with the requested limits.

RULES:
- Never raises; failures come back as CaptionResult(success=False)
- The temp audio file is removed on every exit path
- The reported duration is the transcription's audio duration
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from caption_cues import optimize
from shorts_maker.core import media
from shorts_maker.core.highlights import AudioExtractor, Cleanup, Transcriber
from shorts_maker.core.ir import CaptionResult

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Caption generation failed"


class CaptionGenerator:
    """Generates optimized caption cues for a source video."""

    def __init__(
        self,
        transcriber: Transcriber,
        extract_audio: AudioExtractor = media.extract_audio,
        cleanup: Cleanup = media.cleanup_temp_file,
    ) -> None:
        self._transcriber = transcriber
        self._extract_audio = extract_audio
        self._cleanup = cleanup

    @classmethod
    def from_client(cls, client: Any) -> CaptionGenerator:
        """Wire the generator to an open OpenAIClient."""
        return cls(transcriber=client.transcribe)

    async def generate(
        self,
        video_path: Path,
        max_chars: int | None = None,
        min_duration: float | None = None,
        max_duration: float | None = None,
        on_status: Callable[[str], None] | None = None,
    ) -> CaptionResult:
        """Transcribe a video and reflow the transcript into caption cues.

        Args:
            video_path: Source video file.
            max_chars: Maximum characters per cue (preset default 30).
            min_duration: Merge threshold in seconds (preset default 0.5).
            max_duration: Split threshold in seconds (preset default 4).
            on_status: Optional callback for status updates.

        Returns:
            CaptionResult with cues and audio duration, or an error message.
        """
        audio_path: Path | None = None

        try:
            if on_status:
                on_status("Extracting audio...")
            audio_path = await self._extract_audio(Path(video_path))

            if on_status:
                on_status("Transcribing...")
            transcription = await self._transcriber(audio_path)

            cues = optimize(
                transcription.segments,
                max_chars=max_chars,
                min_duration=min_duration,
                max_duration=max_duration,
            )
            logger.info(
                "Optimized %d segments into %d caption cues",
                len(transcription.segments), len(cues),
            )
            return CaptionResult(success=True, cues=cues, duration=transcription.duration)

        except Exception as exc:
            logger.exception("Caption generation failed for %s", video_path)
            return CaptionResult(success=False, error=str(exc) or GENERIC_ERROR)

        finally:
            if audio_path is not None:
                try:
                    self._cleanup(audio_path)
                except Exception:
                    logger.warning("Failed to clean up temp audio %s", audio_path)
