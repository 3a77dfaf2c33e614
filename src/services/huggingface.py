"""Hugging Face Inference API backend."""

import base64
import logging
from typing import Any, Optional

import httpx

from src.models.job import BackendKind
from src.models.outcome import Immediate
from src.services.backend import HttpBackendAdapter, adapter_options, sound_file_format
from src.utils.clock import Clock
from src.utils.errors import BackendRejected, UnsupportedProcessingType

logger = logging.getLogger(__name__)

# Hugging Face Inference API endpoint
HF_INFERENCE_URL = "https://api-inference.huggingface.co/models"


def pick_audio_blob(results: list[dict[str, Any]], target: str) -> Optional[bytes]:
    """
    Choose one source from an audio-to-audio response.

    Args:
        results: List of ``{"label", "blob", "content-type"}`` items
        target: Extraction target, e.g. "drums" or "melody"

    Returns:
        Decoded audio of the item whose label mentions the target,
        else of the first item, or None if there are no items
    """
    if not results:
        return None

    chosen = next(
        (item for item in results if target in str(item.get("label", "")).lower()),
        results[0],
    )
    blob = chosen.get("blob")
    return base64.b64decode(blob) if blob else None


class HuggingFaceAdapter(HttpBackendAdapter):
    """Synchronous adapter: the inference call returns the audio."""

    name = "HuggingFace"
    kind = BackendKind.HUGGINGFACE
    api_key_setting = "hugging_face_api_key"

    def __init__(
        self,
        api_key: str,
        models: dict[str, str],
        **http_options: Any,
    ) -> None:
        """
        Initialize the HuggingFaceAdapter.

        Args:
            api_key: Hugging Face access token
            models: Processing type -> model repository id
            http_options: Timeout, transport, clock and retry settings
        """
        super().__init__(api_key, **http_options)
        self.models = models

    async def submit(
        self,
        audio_bytes: bytes,
        processing_type: str,
        *,
        filename: str = "recording.wav",
        prompt: Optional[str] = None,
    ) -> Immediate:
        model = self.models.get(processing_type)
        if model is None:
            raise UnsupportedProcessingType(processing_type)

        _, mime_type = sound_file_format(filename)
        logger.info(f"Running Hugging Face model {model} for {processing_type}")

        response = await self._request(
            "POST",
            f"{HF_INFERENCE_URL}/{model}",
            headers={**self._auth_headers(), "Content-Type": mime_type},
            content=audio_bytes,
        )

        content_type = response.headers.get("content-type", "")
        if content_type.startswith("audio/"):
            return Immediate(result_bytes=response.content)

        results = response.json()
        if not isinstance(results, list):
            raise BackendRejected(self.name, response.status_code, response.text)

        audio = pick_audio_blob(results, processing_type.removeprefix("hf-"))
        if not audio:
            raise BackendRejected(self.name, response.status_code, "No audio in response")

        return Immediate(result_bytes=audio)


def create_huggingface_adapter(
    transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Optional[Clock] = None,
) -> HuggingFaceAdapter:
    """
    Create a HuggingFaceAdapter instance using application settings.

    Args:
        transport: Optional httpx transport
        clock: Optional clock for download backoff

    Returns:
        Configured HuggingFaceAdapter instance
    """
    from src.config import get_settings

    settings = get_settings()
    return HuggingFaceAdapter(
        api_key=settings.hugging_face_api_key,
        models={
            "hf-drums": settings.hf_drums_model,
            "hf-melody": settings.hf_melody_model,
        },
        **adapter_options(transport, clock),
    )
