"""Storage service for raw and processed audio in Supabase storage."""

import logging
from typing import Any, Optional

from src.utils.errors import StorageNotFound, UploadError

logger = logging.getLogger(__name__)


class AudioStorage:
    """Service for reading recordings and writing processed audio."""

    def __init__(self, supabase_client: Any, bucket: str = "recordings") -> None:
        """
        Initialize the AudioStorage.

        Args:
            supabase_client: Supabase client instance
            bucket: Storage bucket for recordings and processed files
        """
        self.supabase = supabase_client
        self.bucket = bucket

    async def download(self, name: str) -> bytes:
        """
        Download an object from the bucket.

        Args:
            name: Object path inside the bucket

        Returns:
            Object contents

        Raises:
            StorageNotFound: If the object is missing or cannot be read
        """
        try:
            data = self.supabase.storage.from_(self.bucket).download(name)
        except Exception as e:
            raise StorageNotFound(f"Failed to download {name}: {e}") from e

        if not data:
            raise StorageNotFound(f"File not found: {name}")

        logger.debug(f"Downloaded {name} ({len(data)} bytes)")
        return data

    async def upload(
        self, name: str, data: bytes, content_type: str = "audio/wav"
    ) -> str:
        """
        Upload processed audio to the bucket.

        Args:
            name: Object path inside the bucket
            data: Audio bytes to upload
            content_type: MIME type stored with the object

        Returns:
            The object path

        Raises:
            UploadError: If upload fails
        """
        try:
            result = self.supabase.storage.from_(self.bucket).upload(
                path=name,
                file=data,
                file_options={"content-type": content_type},
            )
        except Exception as e:
            raise UploadError(f"Failed to upload processed audio: {e}") from e

        if not result:
            raise UploadError("Upload returned empty result")

        logger.info(f"Uploaded {name} ({len(data)} bytes)")
        return name

    def public_url(self, name: str) -> str:
        """Public URL for an object in the bucket."""
        return self.supabase.storage.from_(self.bucket).get_public_url(name)


def create_audio_storage(supabase_client: Optional[Any] = None) -> AudioStorage:
    """
    Create an AudioStorage instance using application settings.

    Args:
        supabase_client: Optional Supabase client to reuse

    Returns:
        Configured AudioStorage instance
    """
    from src.config import get_settings
    from src.services.database import create_supabase_client

    settings = get_settings()
    if supabase_client is None:
        supabase_client = create_supabase_client()
    return AudioStorage(supabase_client=supabase_client, bucket=settings.recordings_bucket)
