"""Job record Pydantic model and processing type catalogue."""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class BackendKind(str, Enum):
    """External conversion service that handles a processing type."""

    KITS = "kits"
    MUSICGEN = "musicgen"
    HUGGINGFACE = "huggingface"


# Processing type tag -> backend. New tags only need an entry here.
PROCESSING_TYPES: dict[str, BackendKind] = {
    "drums": BackendKind.MUSICGEN,
    "melody": BackendKind.MUSICGEN,
    "hf-drums": BackendKind.HUGGINGFACE,
    "hf-melody": BackendKind.HUGGINGFACE,
    "kits-drums": BackendKind.KITS,
    "kits-melody": BackendKind.KITS,
}

JobState = Literal["pending", "processing", "completed", "failed"]

TERMINAL_STATES: tuple[str, ...] = ("completed", "failed")

CANCELLED_MESSAGE = "cancelled by user"


class JobRecord(BaseModel):
    """Persisted state of one processing attempt for a recording."""

    id: str = Field(min_length=1)
    recording_id: str = Field(min_length=1)
    processing_type: str
    status: JobState = "pending"
    result_url: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("processing_type")
    @classmethod
    def known_processing_type(cls, v: str) -> str:
        """Validate that the tag maps to a backend."""
        if v not in PROCESSING_TYPES:
            raise ValueError(f"unknown processing type: {v}")
        return v

    @model_validator(mode="after")
    def terminal_fields_match_status(self) -> "JobRecord":
        """result_url belongs to completed jobs, error_message to failed ones."""
        if self.result_url is not None and self.status != "completed":
            raise ValueError("result_url is only set on completed jobs")
        if self.error_message is not None and self.status != "failed":
            raise ValueError("error_message is only set on failed jobs")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def backend(self) -> BackendKind:
        return PROCESSING_TYPES[self.processing_type]
