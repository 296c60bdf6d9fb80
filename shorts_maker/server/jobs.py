"""In-memory store for uploaded source videos and their processing state.

WHY: The HTTP API accepts a source video once and then runs caption
generation and highlight detection against it, each taking from seconds
to many minutes. The API returns immediately and work runs in the
background, so something has to remember each video's state, its
caption cues (which double as the transcript cache) and its highlights.
An in-memory store is enough for a single-editor tool with no
persistence requirements.

HOW: Three components work together:
  JobStatus  - enum of valid states
  Job        - dataclass holding the video's metadata, results and temp dir
  JobStore   - thread-safe dict-based store with create/update/get/list/
               delete and TTL cleanup

RULES:
- All store mutations are protected by threading.Lock
- Each job gets a dedicated temp directory (upload + output files)
- A job is busy while extracting, transcribing or analyzing; only one
  task runs per job at a time
- TTL expiry removes idle finished jobs and their temp directories
- Job IDs are UUID4 hex strings generated at creation time
"""

from __future__ import annotations

import enum
import logging
import shutil
import tempfile
import threading
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from caption_cues.models import CaptionCue
from shorts_maker.core.ir import HighlightCandidate

logger = logging.getLogger(__name__)

# Finished videos are kept this long after their last task (seconds)
DEFAULT_TTL_SECONDS = 3600


class JobStatus(str, enum.Enum):
    """Valid states for a source video job.

    RULES:
    - pending: video uploaded, no task started yet
    - extracting: ffmpeg is pulling the audio track
    - transcribing: speech-to-text is running
    - analyzing: cues are being optimized or highlights scored
    - completed: the last task finished; results are readable
    - failed: the last task failed; error holds the message
    """

    PENDING = "pending"
    EXTRACTING = "extracting"
    TRANSCRIBING = "transcribing"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"


BUSY_STATUSES = frozenset({JobStatus.EXTRACTING, JobStatus.TRANSCRIBING, JobStatus.ANALYZING})
TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


@dataclass
class Job:
    """Metadata, results and state for one uploaded source video.

    RULES:
    - id: UUID4 hex string, unique and immutable after creation
    - filename: sanitized uploaded filename (stored in output_dir)
    - duration: source duration in seconds, once known
    - captions: optimized caption cues, empty until generated
    - highlights: candidates from the last highlight run
    - progress: {"task": "captions" | "highlights"} for the running task
    - output_files: formatter outputs available for download
    """

    id: str
    status: JobStatus
    filename: str
    output_dir: Path
    created_at: float
    updated_at: float
    completed_at: Optional[float] = None
    error: Optional[str] = None
    progress: Optional[Dict[str, Any]] = None
    config: Dict[str, Any] = field(default_factory=dict)
    duration: Optional[float] = None
    captions: List[CaptionCue] = field(default_factory=list)
    highlights: List[HighlightCandidate] = field(default_factory=list)
    output_files: List[str] = field(default_factory=list)

    @property
    def video_path(self) -> Path:
        return self.output_dir / self.filename

    @property
    def is_busy(self) -> bool:
        return self.status in BUSY_STATUSES


class JobStore:
    """Thread-safe in-memory store for source video jobs.

    WHY: Request handlers and background tasks touch job state at the
    same time. A single store with a lock prevents races.

    RULES:
    - Lookups of unknown IDs return None or False, never raise
    - update_job() only applies non-None arguments
    - claim_job() atomically moves an idle job into a busy state
    - delete_job() removes the job and its temp directory
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_jobs: int = 100,
    ) -> None:
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self.max_jobs = max_jobs

    def create_job(
        self,
        filename: str,
        config: Optional[Dict[str, Any]] = None,
    ) -> Job:
        """Register an uploaded video as a PENDING job with its own temp dir.

        Raises:
            ValueError: If the store already holds max_jobs jobs.
        """
        with self._lock:
            if len(self._jobs) >= self.max_jobs:
                raise ValueError(
                    "Maximum number of stored videos ({}) reached".format(
                        self.max_jobs
                    )
                )

            job_id = uuid.uuid4().hex
            now = time.time()
            output_dir = Path(tempfile.mkdtemp(prefix="shorts_job_"))

            job = Job(
                id=job_id,
                status=JobStatus.PENDING,
                filename=filename,
                output_dir=output_dir,
                created_at=now,
                updated_at=now,
                config=config or {},
            )

            self._jobs[job_id] = job

        logger.info("Registered video %s as job %s", filename, job_id)
        return job

    def get_job(self, job_id: str) -> Optional[Job]:
        """Return the live Job for job_id, or None."""
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self) -> List[Job]:
        """Return all jobs, oldest first."""
        with self._lock:
            return sorted(self._jobs.values(), key=lambda j: j.created_at)

    def claim_job(self, job_id: str, task: str) -> Optional[Job]:
        """Move an idle job into EXTRACTING for the given task.

        WHY: Two requests for the same video must not run tasks over each
        other's temp files and results.

        RULES:
        - Returns None if the job is missing or already busy
        - Clears the previous error and sets progress to {"task": task}
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.is_busy:
                return None
            job.status = JobStatus.EXTRACTING
            job.error = None
            job.progress = {"task": task}
            job.completed_at = None
            job.updated_at = time.time()
            return job

    def update_job(
        self,
        job_id: str,
        status: Optional[JobStatus] = None,
        error: Optional[str] = None,
        progress: Optional[Dict[str, Any]] = None,
        duration: Optional[float] = None,
        captions: Optional[List[CaptionCue]] = None,
        highlights: Optional[List[HighlightCandidate]] = None,
        output_files: Optional[List[str]] = None,
    ) -> Optional[Job]:
        """Apply status, error and result changes to a job.

        RULES:
        - None arguments leave the field as it is; lists are copied
        - Returns None for an unknown job_id
        - Reaching COMPLETED or FAILED stamps completed_at
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None

            now = time.time()

            if status is not None:
                job.status = status
            if error is not None:
                job.error = error
            if progress is not None:
                job.progress = progress
            if duration is not None:
                job.duration = duration
            if captions is not None:
                job.captions = list(captions)
            if highlights is not None:
                job.highlights = list(highlights)
            if output_files is not None:
                job.output_files = output_files

            job.updated_at = now

            if job.status in TERMINAL_STATUSES:
                job.completed_at = now

            return job

    def delete_job(self, job_id: str) -> bool:
        """Forget a video and remove its upload and output files.

        Returns False if job_id is unknown.
        """
        with self._lock:
            job = self._jobs.pop(job_id, None)

        if job is None:
            return False

        self._cleanup_output_dir(job.output_dir)
        logger.info("Removed job %s and its files", job_id)
        return True

    def cleanup_expired(self) -> int:
        """Drop videos whose last task finished more than ttl_seconds ago.

        RULES:
        - Pending and busy jobs are never expired
        - Age counts from completed_at of the last task
        - Returns how many jobs were dropped
        """
        now = time.time()
        expired_jobs: List[Job] = []

        with self._lock:
            for job_id, job in list(self._jobs.items()):
                if job.status not in TERMINAL_STATUSES:
                    continue
                if job.completed_at is None:
                    continue
                if now - job.completed_at > self._ttl_seconds:
                    expired_jobs.append(self._jobs.pop(job_id))

        for job in expired_jobs:
            self._cleanup_output_dir(job.output_dir)
            logger.info("Expired job %s, idle for %.0fs", job.id, now - job.completed_at)

        return len(expired_jobs)

    @staticmethod
    def _cleanup_output_dir(output_dir: Path) -> None:
        """Remove a job's temp directory tree. Never raises."""
        if output_dir.exists():
            try:
                shutil.rmtree(output_dir)
            except OSError:
                logger.warning("Could not remove job directory %s", output_dir)
