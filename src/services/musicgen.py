"""MusicGen backend running on the Replicate predictions API."""

import base64
import logging
from typing import Any, Optional

import httpx

from src.models.job import BackendKind
from src.models.outcome import Deferred, Immediate, StatusReport, SubmissionOutcome
from src.services.backend import HttpBackendAdapter, adapter_options, sound_file_format
from src.utils.clock import Clock
from src.utils.errors import BackendJobFailed, BackendRejected, UnsupportedProcessingType

logger = logging.getLogger(__name__)

# Replicate API endpoint
REPLICATE_API_URL = "https://api.replicate.com/v1/predictions"

# meta/musicgen
MUSICGEN_VERSION = "b05b1dff1d8c6dc63d14b0cdb42135378dcb87f6373b0d3d341ede46e59e2b38"

MUSICGEN_TYPES = ("drums", "melody")

DEFAULT_PROMPT = "Create a modern musical accompaniment"

STATUS_STATES = {
    "starting": "pending",
    "processing": "running",
    "succeeded": "succeeded",
    "failed": "failed",
    "canceled": "failed",
}


def prediction_output_url(output: Any) -> Optional[str]:
    """Replicate returns a single URL or a list of URLs as output."""
    if isinstance(output, list):
        return output[0] if output else None
    return output or None


class MusicGenAdapter(HttpBackendAdapter):
    """Adapter for MusicGen predictions.

    Predictions are created with ``Prefer: wait`` so short generations come
    back finished in the submit call; anything still running is polled.
    """

    name = "MusicGen"
    kind = BackendKind.MUSICGEN
    api_key_setting = "replicate_api_key"

    def __init__(
        self,
        api_key: str,
        default_prompt: str = DEFAULT_PROMPT,
        duration: int = 8,
        **http_options: Any,
    ) -> None:
        super().__init__(api_key, **http_options)
        self.api_url = REPLICATE_API_URL
        self.default_prompt = default_prompt
        self.duration = duration

    def _build_prediction_payload(
        self, audio_bytes: bytes, mime_type: str, prompt: Optional[str]
    ) -> dict[str, Any]:
        """
        Construct the prediction request for Replicate.

        Args:
            audio_bytes: Recording used as the melody input
            mime_type: MIME type of the recording
            prompt: Text prompt, falls back to the default prompt

        Returns:
            Dictionary payload for the predictions endpoint
        """
        encoded = base64.b64encode(audio_bytes).decode("ascii")
        return {
            "version": MUSICGEN_VERSION,
            "input": {
                "model_version": "melody",
                "prompt": prompt or self.default_prompt,
                "input_audio": f"data:{mime_type};base64,{encoded}",
                "duration": self.duration,
                "continuation": False,
                "normalization_strategy": "peak",
                "output_format": "wav",
                "temperature": 1,
            },
        }

    def _to_status_report(self, prediction: dict[str, Any]) -> StatusReport:
        status = str(prediction.get("status", ""))
        state = STATUS_STATES.get(status, "running")

        if state == "succeeded":
            return StatusReport(
                state="succeeded",
                result_url=prediction_output_url(prediction.get("output")),
                raw_status=status,
            )
        if state == "failed":
            return StatusReport(
                state="failed",
                error=prediction.get("error") or f"Prediction {status}",
                raw_status=status,
            )
        return StatusReport(state=state, raw_status=status)

    async def submit(
        self,
        audio_bytes: bytes,
        processing_type: str,
        *,
        filename: str = "recording.wav",
        prompt: Optional[str] = None,
    ) -> SubmissionOutcome:
        if processing_type not in MUSICGEN_TYPES:
            raise UnsupportedProcessingType(processing_type)

        headers = {
            **self._auth_headers(),
            "Content-Type": "application/json",
            "Prefer": "wait",
        }
        _, mime_type = sound_file_format(filename)
        payload = self._build_prediction_payload(audio_bytes, mime_type, prompt)

        logger.info(f"Starting MusicGen prediction for {processing_type}")
        response = await self._request("POST", self.api_url, headers=headers, json=payload)
        prediction = response.json()

        prediction_id = prediction.get("id")
        if not prediction_id:
            raise BackendRejected(self.name, response.status_code, "No prediction ID returned")

        report = self._to_status_report(prediction)
        if report.state == "succeeded" and report.result_url:
            logger.info(f"MusicGen prediction {prediction_id} finished during submit")
            return Immediate(result_bytes=await self.fetch_result(report.result_url))
        if report.state == "failed":
            raise BackendJobFailed(report.error or "MusicGen prediction failed")

        logger.info(f"MusicGen prediction {prediction_id} is {report.raw_status}")
        return Deferred(job_handle=str(prediction_id))

    async def check_status(self, job_handle: str) -> StatusReport:
        response = await self._request(
            "GET",
            f"{self.api_url}/{job_handle}",
            headers=self._auth_headers(),
        )
        return self._to_status_report(response.json())


def create_musicgen_adapter(
    transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Optional[Clock] = None,
) -> MusicGenAdapter:
    """
    Create a MusicGenAdapter instance using application settings.

    Args:
        transport: Optional httpx transport
        clock: Optional clock for download backoff

    Returns:
        Configured MusicGenAdapter instance
    """
    from src.config import get_settings

    settings = get_settings()
    return MusicGenAdapter(
        api_key=settings.replicate_api_key,
        default_prompt=settings.musicgen_default_prompt,
        **adapter_options(transport, clock),
    )
