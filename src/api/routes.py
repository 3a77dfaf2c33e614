"""FastAPI routes for the audio extraction API."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from src.api.deps import get_job_dispatcher_dep, get_job_store_dep
from src.models.job import JobRecord
from src.services.database import JobStore
from src.services.dispatcher import JobDispatcher
from src.utils.errors import (
    AudioExtractorError,
    BackendError,
    ConfigurationError,
    RecordingNotFound,
    StorageNotFound,
    UnsupportedProcessingType,
)

logger = logging.getLogger(__name__)

# Create router
router = APIRouter()


# ==================== Error Response Model ====================


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
    error_type: str
    errors: Optional[List[Dict[str, Any]]] = None


# ==================== Exception Handlers ====================


async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle Pydantic validation errors."""
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Validation error",
            "error_type": "ValidationError",
            "errors": exc.errors(),
        },
    )


def status_code_for(exc: AudioExtractorError) -> int:
    """HTTP status for an application error."""
    if isinstance(exc, UnsupportedProcessingType):
        return 400
    if isinstance(exc, (RecordingNotFound, StorageNotFound)):
        return 404
    if isinstance(exc, ConfigurationError):
        return 503
    if isinstance(exc, BackendError):
        return 502  # Bad Gateway for external API errors
    return 500


async def audio_extractor_exception_handler(
    request: Request, exc: AudioExtractorError
) -> JSONResponse:
    """Handle application-specific errors."""
    return JSONResponse(
        status_code=status_code_for(exc),
        content={
            "detail": str(exc),
            "error_type": type(exc).__name__,
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "error_type": "HTTPException",
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_type": "InternalError",
        },
    )


# ==================== Request/Response Models ====================


class JobResponse(BaseModel):
    """Response model for a single job record."""

    id: str
    recording_id: str
    processing_type: str
    status: str
    result_url: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_job(cls, job: JobRecord) -> "JobResponse":
        return cls(**job.model_dump())


class JobListResponse(BaseModel):
    """Response model for the jobs of a recording."""

    recording_id: str
    jobs: List[JobResponse]
    processing: bool


class ExtractResponse(BaseModel):
    """Response model for extract endpoint."""

    recording_id: str
    processing_type: str
    status: str
    message: str


class CancelResponse(BaseModel):
    """Response model for cancel endpoint."""

    recording_id: str
    processing_type: str
    cancelled: List[str]
    message: str


# ==================== Endpoints ====================


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check."""
    return {"status": "ok"}


@router.get("/recordings/{recording_id}/jobs", response_model=JobListResponse)
async def list_jobs(
    recording_id: str,
    store: JobStore = Depends(get_job_store_dep),
) -> JobListResponse:
    """List job records for a recording, newest first."""
    jobs = await store.list_jobs(recording_id)
    return JobListResponse(
        recording_id=recording_id,
        jobs=[JobResponse.from_job(job) for job in jobs],
        processing=any(job.status == "processing" for job in jobs),
    )


@router.get(
    "/jobs/{job_id}",
    response_model=JobResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_job(
    job_id: str,
    store: JobStore = Depends(get_job_store_dep),
) -> JobResponse:
    """Get one job record."""
    job = await store.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    return JobResponse.from_job(job)


@router.post(
    "/recordings/{recording_id}/jobs/{processing_type}",
    response_model=ExtractResponse,
    status_code=202,
    responses={400: {"model": ErrorResponse}},
)
async def extract(
    recording_id: str,
    processing_type: str,
    background_tasks: BackgroundTasks,
    dispatcher: JobDispatcher = Depends(get_job_dispatcher_dep),
) -> ExtractResponse:
    """
    Start an extraction for a recording.

    Any processing job of the same type is superseded. The dispatch runs as a
    background task; poll the jobs listing for its outcome.
    """
    # Reject unknown types before scheduling anything
    dispatcher.registry.resolve(processing_type)

    background_tasks.add_task(_execute_dispatch, dispatcher, recording_id, processing_type)

    return ExtractResponse(
        recording_id=recording_id,
        processing_type=processing_type,
        status="processing",
        message=f"{processing_type} extraction started for recording: {recording_id}",
    )


@router.post(
    "/recordings/{recording_id}/jobs/{processing_type}/cancel",
    response_model=CancelResponse,
)
async def cancel(
    recording_id: str,
    processing_type: str,
    store: JobStore = Depends(get_job_store_dep),
) -> CancelResponse:
    """
    Cancel processing jobs of a type.

    Only the job record changes; the backend is not told to stop.
    """
    cancelled = await store.cancel_processing(recording_id, processing_type)
    return CancelResponse(
        recording_id=recording_id,
        processing_type=processing_type,
        cancelled=cancelled,
        message=f"Cancelled {len(cancelled)} {processing_type} job(s)",
    )


# ==================== Background Tasks ====================


async def _execute_dispatch(
    dispatcher: JobDispatcher, recording_id: str, processing_type: str
) -> None:
    """Execute a dispatch in the background."""
    try:
        job = await dispatcher.dispatch(recording_id, processing_type)
        logger.info(f"Dispatch of {processing_type} for {recording_id} settled: {job.status}")
    except AudioExtractorError as e:
        logger.error(f"Dispatch of {processing_type} for {recording_id} failed: {e}")
