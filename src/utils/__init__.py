"""Utility modules for the audio extractor."""

from src.utils.clock import Clock, SystemClock
from src.utils.errors import (
    AudioExtractorError,
    BackendError,
    BackendJobFailed,
    BackendRejected,
    BackendTimeout,
    BackendUnavailable,
    ConfigurationError,
    PollTimeout,
    RecordingNotFound,
    StorageError,
    StorageNotFound,
    UnsupportedProcessingType,
    UploadError,
)
from src.utils.retry import retry_async

__all__ = [
    "AudioExtractorError",
    "BackendError",
    "BackendJobFailed",
    "BackendRejected",
    "BackendTimeout",
    "BackendUnavailable",
    "ConfigurationError",
    "PollTimeout",
    "RecordingNotFound",
    "StorageError",
    "StorageNotFound",
    "UnsupportedProcessingType",
    "UploadError",
    "Clock",
    "SystemClock",
    "retry_async",
]
