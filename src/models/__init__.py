"""Pydantic data models for the audio extractor."""

from src.models.job import (
    CANCELLED_MESSAGE,
    PROCESSING_TYPES,
    TERMINAL_STATES,
    BackendKind,
    JobRecord,
)
from src.models.outcome import (
    Deferred,
    Immediate,
    PollFailed,
    PollOutcome,
    PollSuccess,
    PollTimedOut,
    StatusReport,
    SubmissionOutcome,
)

__all__ = [
    "BackendKind",
    "CANCELLED_MESSAGE",
    "JobRecord",
    "PROCESSING_TYPES",
    "TERMINAL_STATES",
    "Deferred",
    "Immediate",
    "PollFailed",
    "PollOutcome",
    "PollSuccess",
    "PollTimedOut",
    "StatusReport",
    "SubmissionOutcome",
]
