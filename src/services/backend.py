"""Backend adapter contract and shared HTTP plumbing."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from src.models.job import BackendKind
from src.models.outcome import StatusReport, SubmissionOutcome
from src.utils.clock import Clock, SystemClock
from src.utils.errors import (
    BackendError,
    BackendRejected,
    BackendTimeout,
    BackendUnavailable,
    ConfigurationError,
)
from src.utils.retry import retry_async

logger = logging.getLogger(__name__)

AUDIO_MIME_TYPES: dict[str, str] = {
    "wav": "audio/wav",
    "mp3": "audio/mpeg",
    "flac": "audio/flac",
}


def sound_file_format(filename: str) -> tuple[str, str]:
    """
    Pick the upload extension and MIME type for a recording.

    Only wav, mp3 and flac are passed through; anything else is sent as wav.

    Args:
        filename: Recording file name or storage path

    Returns:
        Tuple of (extension, mime type)
    """
    base = filename.rsplit("/", 1)[-1]
    extension = base.rsplit(".", 1)[-1].lower() if "." in base else ""
    if extension not in AUDIO_MIME_TYPES:
        extension = "wav"
    return extension, AUDIO_MIME_TYPES[extension]


class BackendAdapter(ABC):
    """Uniform interface to one external conversion service.

    ``submit`` either returns the converted audio right away (``Immediate``)
    or a handle (``Deferred``) that the poller drives through
    ``check_status``. Adapters never touch job records.
    """

    name: str = "backend"
    kind: BackendKind

    @abstractmethod
    async def submit(
        self,
        audio_bytes: bytes,
        processing_type: str,
        *,
        filename: str = "recording.wav",
        prompt: Optional[str] = None,
    ) -> SubmissionOutcome:
        """
        Send a recording to the backend.

        Args:
            audio_bytes: Raw recording audio
            processing_type: Processing type tag
            filename: Original recording file name, used for format detection
            prompt: Optional text prompt for generative backends

        Returns:
            Immediate with result bytes, or Deferred with a job handle

        Raises:
            ConfigurationError: If credentials are missing
            BackendUnavailable: If the backend cannot be reached
            BackendRejected: If the backend answers with a non-2xx response
            BackendTimeout: If the submit call times out
        """

    async def check_status(self, job_handle: str) -> StatusReport:
        """Query a deferred job. Only deferred backends implement this."""
        raise BackendError(f"{self.name} does not support status checks")

    async def fetch_result(self, result_url: str) -> bytes:
        """Download result audio produced by a deferred job."""
        raise BackendError(f"{self.name} does not produce result URLs")


class HttpBackendAdapter(BackendAdapter):
    """Backend adapter talking to a JSON/HTTP API through httpx."""

    api_key_setting: str = "api_key"

    def __init__(
        self,
        api_key: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Clock] = None,
        retry_attempts: int = 3,
        retry_base_delay: float = 1.0,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            api_key: Credential for the backend
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used to stub the network)
            clock: Clock used for result download backoff
            retry_attempts: Attempts for a result download
            retry_base_delay: First backoff delay for a result download
        """
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport
        self.clock = clock or SystemClock()
        self.retry_attempts = retry_attempts
        self.retry_base_delay = retry_base_delay

    def _require_api_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError(f"{self.api_key_setting.upper()} is not set")
        return self.api_key

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._require_api_key()}"}

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Send one request and map transport failures to backend errors.

        Raises:
            BackendTimeout: If the request times out
            BackendUnavailable: On any other transport error
            BackendRejected: If the response status is not 2xx
        """
        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.request(method, url, timeout=self.timeout, **kwargs)
        except httpx.TimeoutException as e:
            raise BackendTimeout(f"{self.name} request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise BackendUnavailable(f"{self.name} request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise BackendRejected(self.name, response.status_code, response.text)

        return response

    async def fetch_result(self, result_url: str) -> bytes:
        """
        Download result audio, retrying transient transport failures.

        Args:
            result_url: URL reported by the backend

        Returns:
            Result audio bytes
        """
        response = await retry_async(
            lambda: self._request("GET", result_url, follow_redirects=True),
            description=f"{self.name} result download",
            max_attempts=self.retry_attempts,
            base_delay=self.retry_base_delay,
            exceptions=(BackendUnavailable, BackendTimeout),
            clock=self.clock,
        )
        logger.info(f"Downloaded {self.name} result ({len(response.content)} bytes)")
        return response.content


def adapter_options(
    transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Optional[Clock] = None,
) -> dict[str, Any]:
    """
    HTTP adapter keyword arguments shared by every backend factory.

    Args:
        transport: Optional httpx transport
        clock: Optional clock for download backoff

    Returns:
        Keyword arguments for an HttpBackendAdapter subclass
    """
    from src.config import get_settings

    settings = get_settings()
    return {
        "timeout": settings.http_timeout_seconds,
        "transport": transport,
        "clock": clock,
        "retry_attempts": settings.max_retry_attempts,
        "retry_base_delay": settings.base_delay_seconds,
    }
