"""Database service for job records stored in Supabase."""

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional
from uuid import uuid4

from pydantic import ValidationError

from src.models.job import CANCELLED_MESSAGE, JobRecord
from src.utils.errors import AudioExtractorError, RecordingNotFound

logger = logging.getLogger(__name__)


class DatabaseError(AudioExtractorError):
    """Base exception for database operations."""

    pass


class JobStore:
    """Job record store backed by a Supabase table.

    Terminal writes are conditioned on ``status = 'processing'`` so a record
    that has already reached ``completed`` or ``failed`` is never rewritten.
    """

    def __init__(
        self,
        supabase_client: Any,
        jobs_table: str = "processing_jobs",
        recordings_table: str = "recordings",
    ) -> None:
        """
        Initialize the JobStore.

        Args:
            supabase_client: Supabase client instance
            jobs_table: Table holding job records
            recordings_table: Table holding recording rows
        """
        self.supabase = supabase_client
        self.jobs_table = jobs_table
        self.recordings_table = recordings_table

    # ==================== JOBS ====================

    async def create_job(
        self,
        recording_id: str,
        processing_type: str,
        status: str = "processing",
    ) -> JobRecord:
        """
        Insert a new job record.

        Args:
            recording_id: Parent recording ID
            processing_type: Processing type tag
            status: Initial status (processing unless a caller stages it as pending)

        Returns:
            The created JobRecord

        Raises:
            DatabaseError: If creation fails
        """
        try:
            job = JobRecord(
                id=str(uuid4()),
                recording_id=recording_id,
                processing_type=processing_type,
                status=status,
            )

            job_data = {
                "id": job.id,
                "recording_id": job.recording_id,
                "processing_type": job.processing_type,
                "status": job.status,
                "result_url": None,
                "error_message": None,
                "created_at": job.created_at.isoformat(),
            }

            result = self.supabase.table(self.jobs_table).insert(job_data).execute()

            if not result.data:
                raise DatabaseError("Failed to insert job into database")

            logger.info(
                f"Created job {job.id} ({processing_type}) for recording {recording_id}"
            )
            return job

        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to create job: {e}") from e

    async def get_job(self, job_id: str) -> Optional[JobRecord]:
        """
        Retrieve a job by ID.

        Args:
            job_id: The job ID to retrieve

        Returns:
            JobRecord if found, None otherwise
        """
        try:
            result = self.supabase.table(self.jobs_table).select("*").eq("id", job_id).execute()

            if not result.data:
                return None

            return self._row_to_job(result.data[0])

        except Exception as e:
            logger.error(f"Failed to get job {job_id}: {e}")
            return None

    async def list_jobs(self, recording_id: str, limit: int = 100) -> List[JobRecord]:
        """
        List jobs for a recording, newest first.

        Args:
            recording_id: Recording to list jobs for
            limit: Maximum number of jobs to return

        Returns:
            List of JobRecords ordered by created_at descending
        """
        try:
            result = (
                self.supabase.table(self.jobs_table)
                .select("*")
                .eq("recording_id", recording_id)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )

            return self._rows_to_jobs(result.data or [])

        except Exception as e:
            logger.error(f"Failed to list jobs for recording {recording_id}: {e}")
            return []

    async def list_processing(
        self, recording_id: str, processing_type: str
    ) -> List[JobRecord]:
        """Jobs of one type for a recording that are still processing."""
        try:
            result = (
                self.supabase.table(self.jobs_table)
                .select("*")
                .eq("recording_id", recording_id)
                .eq("processing_type", processing_type)
                .eq("status", "processing")
                .execute()
            )

            return self._rows_to_jobs(result.data or [])

        except Exception as e:
            logger.error(
                f"Failed to list processing {processing_type} jobs "
                f"for recording {recording_id}: {e}"
            )
            return []

    async def is_processing(self, job_id: str) -> bool:
        """
        Check whether a job is still in processing.

        Raises:
            DatabaseError: If the status cannot be read
        """
        try:
            result = (
                self.supabase.table(self.jobs_table)
                .select("status")
                .eq("id", job_id)
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Failed to check job {job_id}: {e}") from e

        return bool(result.data) and result.data[0].get("status") == "processing"

    async def complete_job(self, job_id: str, result_url: str) -> bool:
        """
        Move a processing job to completed.

        Args:
            job_id: The job ID to update
            result_url: Public URL of the processed audio

        Returns:
            True if the job was processing and is now completed, False otherwise
        """
        return await self._finish(
            job_id, {"status": "completed", "result_url": result_url}
        )

    async def fail_job(self, job_id: str, error_message: str) -> bool:
        """
        Move a processing job to failed.

        Args:
            job_id: The job ID to update
            error_message: Human-readable cause

        Returns:
            True if the job was processing and is now failed, False otherwise
        """
        return await self._finish(
            job_id, {"status": "failed", "error_message": error_message}
        )

    async def cancel_processing(
        self,
        recording_id: str,
        processing_type: str,
        message: str = CANCELLED_MESSAGE,
    ) -> List[str]:
        """
        Force every processing job of a type to failed.

        Only the local record changes; any remote work keeps running.

        Args:
            recording_id: Recording the jobs belong to
            processing_type: Processing type tag
            message: Error message written to the cancelled jobs

        Returns:
            IDs of the jobs that were cancelled
        """
        try:
            result = (
                self.supabase.table(self.jobs_table)
                .update({"status": "failed", "error_message": message})
                .eq("recording_id", recording_id)
                .eq("processing_type", processing_type)
                .eq("status", "processing")
                .execute()
            )

            cancelled = [row["id"] for row in result.data or []]
            if cancelled:
                logger.info(
                    f"Cancelled {len(cancelled)} {processing_type} job(s) "
                    f"for recording {recording_id}"
                )
            return cancelled

        except Exception as e:
            raise DatabaseError(f"Failed to cancel jobs: {e}") from e

    async def _finish(self, job_id: str, update_data: dict[str, Any]) -> bool:
        """
        Compare-and-set a terminal state onto a processing job.

        Raises:
            DatabaseError: If the update cannot be executed
        """
        try:
            result = (
                self.supabase.table(self.jobs_table)
                .update(update_data)
                .eq("id", job_id)
                .eq("status", "processing")
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Failed to update job {job_id}: {e}") from e

        if not result.data:
            logger.info(
                f"Job {job_id} is no longer processing; "
                f"{update_data['status']} not written"
            )
            return False

        return True

    # ==================== RECORDINGS ====================

    async def get_recording(self, recording_id: str) -> dict[str, Any]:
        """
        Retrieve the recording row a job refers to.

        Args:
            recording_id: The recording ID to retrieve

        Returns:
            Recording row with at least ``filename``

        Raises:
            RecordingNotFound: If the row does not exist or has no filename
        """
        try:
            result = (
                self.supabase.table(self.recordings_table)
                .select("*")
                .eq("id", recording_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Failed to fetch recording {recording_id}: {e}") from e

        if not result.data or not result.data[0].get("filename"):
            raise RecordingNotFound(recording_id)

        return result.data[0]

    @classmethod
    def _rows_to_jobs(cls, rows: List[dict[str, Any]]) -> List[JobRecord]:
        """Parse rows one at a time; a row that fails validation is skipped."""
        jobs = []
        for row in rows:
            try:
                jobs.append(cls._row_to_job(row))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable job row {row.get('id')}: {e}")
        return jobs

    @staticmethod
    def _row_to_job(row: dict[str, Any]) -> JobRecord:
        return JobRecord(
            id=row["id"],
            recording_id=row["recording_id"],
            processing_type=row["processing_type"],
            status=row["status"],
            result_url=row.get("result_url"),
            error_message=row.get("error_message"),
            created_at=row.get("created_at") or datetime.now(timezone.utc),
        )


# Factory function for creating JobStore with settings
def create_job_store(supabase_client: Optional[Any] = None) -> JobStore:
    """
    Create a JobStore instance using application settings.

    Args:
        supabase_client: Optional Supabase client to reuse

    Returns:
        Configured JobStore instance
    """
    from src.config import get_settings

    settings = get_settings()
    if supabase_client is None:
        supabase_client = create_supabase_client()
    return JobStore(
        supabase_client=supabase_client,
        jobs_table=settings.jobs_table,
        recordings_table=settings.recordings_table,
    )


def create_supabase_client() -> Any:
    """Create a Supabase client from application settings."""
    from supabase import create_client

    from src.config import get_settings

    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_key)
