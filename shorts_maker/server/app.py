"""FastAPI application: video upload, captions, highlights, and cue optimizer.

WHY: The editor UI (and scripts) need an HTTP API to upload a source
video, generate its captions, ask for highlight windows, poll progress,
and download caption files. FastAPI provides automatic OpenAPI
documentation, request validation, and background task support.

HOW: A single FastAPI app exposes endpoints grouped by tags. POST /videos
stores the upload and creates a job. POST /videos/{id}/captions and
POST /videos/{id}/highlights claim the job and run the matching pipeline
in the background; GET /videos/{id} reports status and results.
POST /captions/optimize runs the pure cue optimizer synchronously.

RULES:
- Error responses use a consistent ErrorResponse schema
- Background work uses FastAPI BackgroundTasks with a sync wrapper
- One task per job at a time (409 while busy)
- Highlight detection reuses stored captions as the transcript cache
- File validation checks extension against SUPPORTED_VIDEO_FORMATS
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, Any, Callable, Dict, List, Optional

from fastapi import BackgroundTasks, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import Response

from caption_cues import optimize
from caption_cues.models import TranscriptSegment
from shorts_maker import __version__
from shorts_maker.api.client import OpenAIClient
from shorts_maker.config import SUPPORTED_VIDEO_FORMATS
from shorts_maker.core.captions import CaptionGenerator
from shorts_maker.core.highlights import HighlightSelector
from shorts_maker.formatters import FORMATTERS
from shorts_maker.server.jobs import Job, JobStatus, JobStore
from shorts_maker.server.models import (
    CaptionRequest,
    CueModel,
    ErrorResponse,
    FormatInfo,
    HealthResponse,
    HighlightModel,
    HighlightRequest,
    JobCreatedResponse,
    JobResponse,
    OptimizeRequest,
    OptimizeResponse,
    TaskAcceptedResponse,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

job_store = JobStore()


async def _periodic_cleanup() -> None:
    """Expire idle jobs every 5 minutes."""
    while True:
        await asyncio.sleep(300)
        job_store.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the expiry loop for the lifetime of the app."""
    task = asyncio.create_task(_periodic_cleanup())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    lifespan=lifespan,
    title="Vertical Shorts Maker API",
    description=(
        "REST API for turning a long landscape video into a 60-second "
        "vertical short: upload a source video, generate burned-in caption "
        "cues, and get up to five 55-second highlight windows."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_STAGE_STATUS = {
    "Extracting audio...": JobStatus.EXTRACTING,
    "Transcribing...": JobStatus.TRANSCRIBING,
    "Analyzing highlights...": JobStatus.ANALYZING,
}


def _job_to_response(job: Job) -> JobResponse:
    """Build the public view of a job (no temp paths)."""
    return JobResponse(
        id=job.id,
        status=job.status.value,
        filename=job.filename,
        created_at=job.created_at,
        task=(job.progress or {}).get("task"),
        duration=job.duration,
        error=job.error,
        captions=[CueModel(**cue.to_dict()) for cue in job.captions],
        highlights=[HighlightModel(**h.to_dict()) for h in job.highlights],
        output_files=list(job.output_files),
    )


def _validate_file_extension(filename: str) -> None:
    """Reject uploads whose extension is not a known video container (400)."""
    ext = Path(filename).suffix.lower()
    if ext not in SUPPORTED_VIDEO_FORMATS:
        raise HTTPException(
            status_code=400,
            detail="Unsupported file type '{}'. Supported formats: {}".format(
                ext, ", ".join(sorted(SUPPORTED_VIDEO_FORMATS))
            ),
        )


def _stage_callback(store: JobStore, job_id: str) -> Callable[[str], None]:
    """Return an on_status callback that mirrors pipeline stages into the store."""
    def on_status(message: str) -> None:
        status = _STAGE_STATUS.get(message)
        if status is not None:
            store.update_job(job_id, status=status)
    return on_status


def _get_job_or_404(job_id: str) -> Job:
    job = job_store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))
    return job


def _write_outputs(job: Job, result_cues: List[Any], format_keys: List[str]) -> List[str]:
    """Run the selected formatters and save their files in the job directory."""
    stem = Path(job.filename).stem
    filenames = []
    for key in format_keys:
        formatter = FORMATTERS[key]()
        for output in formatter.format(result_cues):
            out_filename = "{}{}".format(stem, output.suffix)
            out_path = job.output_dir / out_filename
            if isinstance(output.content, bytes):
                out_path.write_bytes(output.content)
            else:
                out_path.write_text(output.content, encoding="utf-8")
            filenames.append(out_filename)
    return filenames


# ---------------------------------------------------------------------------
# Background pipelines
# ---------------------------------------------------------------------------


async def _run_caption_pipeline(job_id: str, store: JobStore, options: Dict[str, Any]) -> None:
    """Generate captions for a job's video and write the output files.

    RULES:
    - Job must already be claimed (status EXTRACTING)
    - On success: captions, duration and output_files are stored, COMPLETED
    - On any failure: FAILED with a human-readable error
    """
    job = store.get_job(job_id)
    if job is None:
        return

    format_keys = options.get("output_formats") or list(FORMATTERS.keys())

    try:
        async with OpenAIClient() as client:
            generator = CaptionGenerator.from_client(client)
            result = await generator.generate(
                job.video_path,
                max_chars=options.get("max_chars"),
                min_duration=options.get("min_duration"),
                max_duration=options.get("max_duration"),
                on_status=_stage_callback(store, job_id),
            )

        if not result.success:
            store.update_job(job_id, status=JobStatus.FAILED, error=result.error)
            return

        store.update_job(job_id, status=JobStatus.ANALYZING)
        output_files = _write_outputs(job, result.cues, format_keys)
        store.update_job(
            job_id,
            status=JobStatus.COMPLETED,
            captions=result.cues,
            duration=result.duration or None,
            output_files=output_files,
        )

    except Exception as exc:
        logger.exception("Caption pipeline failed for job %s", job_id)
        store.update_job(job_id, status=JobStatus.FAILED, error=str(exc) or "Caption generation failed")


async def _run_highlight_pipeline(job_id: str, store: JobStore, options: Dict[str, Any]) -> None:
    """Detect highlight windows for a job's video.

    RULES:
    - Stored captions are used as the transcript when use_captions is set
    - video_duration falls back to the job's known duration
    - On success: highlights stored, COMPLETED; on failure: FAILED
    """
    job = store.get_job(job_id)
    if job is None:
        return

    captions = job.captions if options.get("use_captions", True) else None
    video_duration = options.get("video_duration") or job.duration

    try:
        async with OpenAIClient() as client:
            selector = HighlightSelector.from_client(client)
            result = await selector.detect_highlights(
                job.video_path,
                video_duration,
                captions=captions,
                on_status=_stage_callback(store, job_id),
            )
    except Exception as exc:
        logger.exception("Highlight pipeline failed for job %s", job_id)
        store.update_job(job_id, status=JobStatus.FAILED, error=str(exc) or "Highlight detection failed")
        return

    if result.success:
        store.update_job(job_id, status=JobStatus.COMPLETED, highlights=result.highlights)
    else:
        store.update_job(job_id, status=JobStatus.FAILED, error=result.error)


def _run_captions_sync(job_id: str, store: JobStore, options: Dict[str, Any]) -> None:
    """Synchronous wrapper for the async caption pipeline (BackgroundTasks)."""
    asyncio.run(_run_caption_pipeline(job_id, store, options))


def _run_highlights_sync(job_id: str, store: JobStore, options: Dict[str, Any]) -> None:
    """Synchronous wrapper for the async highlight pipeline (BackgroundTasks)."""
    asyncio.run(_run_highlight_pipeline(job_id, store, options))


# ---------------------------------------------------------------------------
# Endpoints: Videos
# ---------------------------------------------------------------------------


@app.post(
    "/videos",
    response_model=JobCreatedResponse,
    status_code=201,
    tags=["videos"],
    summary="Upload a source video",
    description="Upload a landscape source video. Returns a job ID for caption and highlight tasks.",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid file type"},
        429: {"model": ErrorResponse, "description": "Too many stored videos"},
    },
)
async def upload_video(
    file: Annotated[UploadFile, File(description="Source video file")],
) -> JobCreatedResponse:
    # Keep only the base name of the upload
    filename = Path(file.filename or "upload").name
    _validate_file_extension(filename)

    try:
        job = job_store.create_job(filename=filename)
    except ValueError as exc:
        raise HTTPException(status_code=429, detail=str(exc))

    content = await file.read()
    job.video_path.write_bytes(content)

    return JobCreatedResponse(id=job.id, status=job.status.value, filename=job.filename)


@app.get(
    "/videos/{job_id}",
    response_model=JobResponse,
    tags=["videos"],
    summary="Get video job status and results",
    responses={404: {"model": ErrorResponse, "description": "Job not found"}},
)
async def get_video(job_id: str) -> JobResponse:
    return _job_to_response(_get_job_or_404(job_id))


@app.post(
    "/videos/{job_id}/captions",
    response_model=TaskAcceptedResponse,
    status_code=202,
    tags=["videos"],
    summary="Generate captions",
    description=(
        "Extract audio, transcribe it, and reflow the transcript into caption "
        "cues. Runs in the background; poll GET /videos/{id}."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Job not found"},
        409: {"model": ErrorResponse, "description": "Another task is running"},
    },
)
async def generate_captions(
    job_id: str,
    background_tasks: BackgroundTasks,
    request: Optional[CaptionRequest] = None,
) -> TaskAcceptedResponse:
    _get_job_or_404(job_id)
    request = request or CaptionRequest()

    job = job_store.claim_job(job_id, task="captions")
    if job is None:
        raise HTTPException(status_code=409, detail="Job {} is busy".format(job_id))

    options = request.model_dump()
    if request.output_formats:
        options["output_formats"] = [f.value for f in request.output_formats]
    background_tasks.add_task(_run_captions_sync, job.id, job_store, options)

    return TaskAcceptedResponse(id=job.id, status=job.status.value, task="captions")


@app.post(
    "/videos/{job_id}/highlights",
    response_model=TaskAcceptedResponse,
    status_code=202,
    tags=["videos"],
    summary="Detect highlight windows",
    description=(
        "Ask the scoring model for up to five 55-second highlight windows. "
        "Stored captions are reused as the transcript when available."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Job not found"},
        409: {"model": ErrorResponse, "description": "Another task is running"},
    },
)
async def detect_highlights(
    job_id: str,
    background_tasks: BackgroundTasks,
    request: Optional[HighlightRequest] = None,
) -> TaskAcceptedResponse:
    _get_job_or_404(job_id)
    request = request or HighlightRequest()

    job = job_store.claim_job(job_id, task="highlights")
    if job is None:
        raise HTTPException(status_code=409, detail="Job {} is busy".format(job_id))

    background_tasks.add_task(_run_highlights_sync, job.id, job_store, request.model_dump())

    return TaskAcceptedResponse(id=job.id, status=job.status.value, task="highlights")


@app.get(
    "/videos/{job_id}/files/{filename}",
    tags=["videos"],
    summary="Download a caption output file",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid filename"},
        404: {"model": ErrorResponse, "description": "Job or file not found"},
    },
)
async def download_file(job_id: str, filename: str) -> Response:
    # Only bare output names are served
    if "/" in filename or "\\" in filename or ".." in filename:
        raise HTTPException(status_code=400, detail="Invalid filename")

    job = _get_job_or_404(job_id)
    if filename not in job.output_files:
        raise HTTPException(
            status_code=404,
            detail="File '{}' not found in job output files.".format(filename),
        )

    fpath = job.output_dir / filename
    if not fpath.exists():
        raise HTTPException(
            status_code=404,
            detail="File '{}' not found on disk.".format(filename),
        )

    return Response(
        content=fpath.read_bytes(),
        media_type=_infer_media_type(filename),
        headers={"Content-Disposition": 'attachment; filename="{}"'.format(filename)},
    )


@app.delete(
    "/videos/{job_id}",
    status_code=204,
    tags=["videos"],
    summary="Delete a video job",
    responses={404: {"model": ErrorResponse, "description": "Job not found"}},
)
async def delete_video(job_id: str) -> Response:
    if not job_store.delete_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Endpoints: Captions
# ---------------------------------------------------------------------------


@app.post(
    "/captions/optimize",
    response_model=OptimizeResponse,
    tags=["captions"],
    summary="Reflow transcript segments into caption cues",
    description=(
        "Split long segments and merge short ones. Runs synchronously; "
        "no video or API key is needed."
    ),
)
async def optimize_captions(request: OptimizeRequest) -> OptimizeResponse:
    segments = [
        TranscriptSegment(text=s.text, start=s.start, end=s.end) for s in request.segments
    ]
    cues = optimize(
        segments,
        max_chars=request.max_chars,
        min_duration=request.min_duration,
        max_duration=request.max_duration,
    )
    return OptimizeResponse(cues=[CueModel(**cue.to_dict()) for cue in cues])


# ---------------------------------------------------------------------------
# Endpoints: Formats and health
# ---------------------------------------------------------------------------


@app.get(
    "/formats",
    response_model=List[FormatInfo],
    tags=["formats"],
    summary="List available caption output formats",
)
async def list_formats() -> List[FormatInfo]:
    result = []
    for key, formatter_cls in sorted(FORMATTERS.items()):
        formatter = formatter_cls()
        outputs = formatter.format([])
        result.append(FormatInfo(
            key=key,
            name=formatter.name,
            suffix=outputs[0].suffix if outputs else "",
        ))
    return result


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness and readiness check for load balancers and orchestrators.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


# ---------------------------------------------------------------------------
# Helpers (private)
# ---------------------------------------------------------------------------


def run_api():
    """Entry point for the shorts-api console script."""
    import uvicorn
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)


def _infer_media_type(filename: str) -> str:
    """Infer MIME type from filename extension."""
    ext = Path(filename).suffix.lower()
    mapping = {
        ".json": "application/json",
        ".srt": "application/x-subrip",
        ".txt": "text/plain",
    }
    return mapping.get(ext, "application/octet-stream")
