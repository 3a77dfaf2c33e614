"""Submission, status and poll outcome models."""

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field


class Immediate(BaseModel):
    """Backend returned the converted audio in the submit call."""

    kind: Literal["immediate"] = "immediate"
    result_bytes: bytes


class Deferred(BaseModel):
    """Backend accepted the work and returned a handle to poll."""

    kind: Literal["deferred"] = "deferred"
    job_handle: str = Field(min_length=1)


SubmissionOutcome = Union[Immediate, Deferred]


class StatusReport(BaseModel):
    """One status check of a deferred backend job, normalized."""

    state: Literal["pending", "running", "succeeded", "failed"]
    result_url: Optional[str] = None
    error: Optional[str] = None
    raw_status: str = ""


class PollSuccess(BaseModel):
    kind: Literal["success"] = "success"
    result_url: str
    attempts: int


class PollFailed(BaseModel):
    kind: Literal["failed"] = "failed"
    reason: str
    attempts: int


class PollTimedOut(BaseModel):
    kind: Literal["timed_out"] = "timed_out"
    attempts: int


PollOutcome = Union[PollSuccess, PollFailed, PollTimedOut]
