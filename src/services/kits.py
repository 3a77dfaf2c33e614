"""Kits.ai voice conversion backend."""

import logging
from typing import Any, Optional

import httpx

from src.models.job import BackendKind
from src.models.outcome import Deferred, StatusReport
from src.services.backend import HttpBackendAdapter, adapter_options, sound_file_format
from src.utils.clock import Clock
from src.utils.errors import BackendRejected, UnsupportedProcessingType

logger = logging.getLogger(__name__)

# Kits.ai API endpoint
KITS_API_URL = "https://arpeggi.io/api/kits/v1/voice-conversions"

# Processing type -> Kits.ai voice model
KITS_MODEL_IDS: dict[str, str] = {
    "kits-drums": "212569",  # Gritty Tape Drums
    "kits-melody": "221129",  # Female Rock/Pop
}

FAILED_STATUSES = ("failed", "error")


class KitsAdapter(HttpBackendAdapter):
    """Submit-then-poll adapter for Kits.ai voice conversions."""

    name = "Kits.ai"
    kind = BackendKind.KITS
    api_key_setting = "kits_api_key"

    def __init__(
        self,
        api_key: str,
        conversion_strength: float = 0.5,
        model_volume_mix: float = 0.5,
        pitch_shift: int = 0,
        **http_options: Any,
    ) -> None:
        super().__init__(api_key, **http_options)
        self.api_url = KITS_API_URL
        self.conversion_strength = conversion_strength
        self.model_volume_mix = model_volume_mix
        self.pitch_shift = pitch_shift

    async def submit(
        self,
        audio_bytes: bytes,
        processing_type: str,
        *,
        filename: str = "recording.wav",
        prompt: Optional[str] = None,
    ) -> Deferred:
        voice_model_id = KITS_MODEL_IDS.get(processing_type)
        if voice_model_id is None:
            raise UnsupportedProcessingType(processing_type)

        headers = self._auth_headers()
        extension, mime_type = sound_file_format(filename)

        logger.info(
            f"Submitting {len(audio_bytes)} bytes to Kits.ai "
            f"(model {voice_model_id}, {mime_type})"
        )

        response = await self._request(
            "POST",
            self.api_url,
            headers=headers,
            data={
                "voiceModelId": voice_model_id,
                "conversionStrength": str(self.conversion_strength),
                "modelVolumeMix": str(self.model_volume_mix),
                "pitchShift": str(self.pitch_shift),
            },
            files={"soundFile": (f"recording.{extension}", audio_bytes, mime_type)},
        )

        conversion_id = response.json().get("id")
        if not conversion_id:
            raise BackendRejected(
                self.name, response.status_code, "No conversion ID returned"
            )

        logger.info(f"Created Kits.ai conversion {conversion_id}")
        return Deferred(job_handle=str(conversion_id))

    async def check_status(self, job_handle: str) -> StatusReport:
        response = await self._request(
            "GET",
            f"{self.api_url}/{job_handle}",
            headers={**self._auth_headers(), "Content-Type": "application/json"},
        )
        data = response.json()
        status = str(data.get("status", ""))

        if status == "success":
            return StatusReport(
                state="succeeded",
                result_url=data.get("outputFileUrl") or data.get("lossyOutputFileUrl"),
                raw_status=status,
            )
        if status in FAILED_STATUSES:
            return StatusReport(
                state="failed",
                error=data.get("errorMessage") or "Unknown error",
                raw_status=status,
            )
        return StatusReport(state="running", raw_status=status)


def create_kits_adapter(
    transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Optional[Clock] = None,
) -> KitsAdapter:
    """
    Create a KitsAdapter instance using application settings.

    Args:
        transport: Optional httpx transport
        clock: Optional clock for download backoff

    Returns:
        Configured KitsAdapter instance
    """
    from src.config import get_settings

    settings = get_settings()
    return KitsAdapter(
        api_key=settings.kits_api_key,
        **adapter_options(transport, clock),
    )
