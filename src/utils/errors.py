"""Custom exception classes for the audio extractor."""


class AudioExtractorError(Exception):
    """Base exception for all application errors."""

    pass


class UnsupportedProcessingType(AudioExtractorError):
    """Processing type has no registered backend."""

    def __init__(self, processing_type: str) -> None:
        self.processing_type = processing_type
        super().__init__(f"Unsupported processing type: {processing_type}")


class RecordingNotFound(AudioExtractorError):
    """Recording row or its audio file is missing."""

    def __init__(self, recording_id: str, detail: str = "") -> None:
        self.recording_id = recording_id
        message = f"Recording not found: {recording_id}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class BackendError(AudioExtractorError):
    """Errors from an external conversion backend."""

    pass


class BackendRejected(BackendError):
    """Backend answered with a non-2xx response."""

    def __init__(self, backend: str, status_code: int, message: str) -> None:
        self.backend = backend
        self.status_code = status_code
        super().__init__(f"{backend} error {status_code}: {message}")


class BackendUnavailable(BackendError):
    """Backend could not be reached or is not configured."""

    pass


class ConfigurationError(BackendUnavailable):
    """Backend credentials or settings are missing."""

    pass


class BackendTimeout(BackendError):
    """Submit call to the backend timed out."""

    pass


class BackendJobFailed(BackendError):
    """Backend reported a terminal failure for a deferred job."""

    pass


class PollTimeout(BackendError):
    """Backend never reached a terminal status within the attempt budget."""

    def __init__(self, attempts: int, interval_seconds: float) -> None:
        self.attempts = attempts
        self.interval_seconds = interval_seconds
        # No wait follows the final check
        total = int((attempts - 1) * interval_seconds)
        super().__init__(
            f"Backend did not finish after {attempts} status checks ({total}s)"
        )


class StorageError(AudioExtractorError):
    """Errors from the object storage layer."""

    pass


class StorageNotFound(StorageError):
    """Requested object does not exist in storage."""

    pass


class UploadError(StorageError):
    """Uploading processed audio failed."""

    pass
