"""Client-facing supervisor for the jobs of one recording."""

import logging
from typing import AsyncIterator, Optional

from src.models.job import JobRecord
from src.services.database import JobStore
from src.services.dispatcher import JobDispatcher
from src.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 3.0


class JobSupervisor:
    """Lists, starts and cancels extraction jobs for a single recording.

    Cancellation is local: it marks the job record failed so the caller stops
    waiting and may start again, but the backend keeps whatever it was doing.
    """

    def __init__(
        self,
        recording_id: str,
        store: JobStore,
        dispatcher: JobDispatcher,
        clock: Optional[Clock] = None,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
    ) -> None:
        """
        Initialize the JobSupervisor.

        Args:
            recording_id: Recording whose jobs are supervised
            store: Job record store
            dispatcher: Dispatcher used by extract
            clock: Clock for refresh scheduling and elapsed time
            refresh_interval: Seconds between refreshes while jobs are processing
        """
        self.recording_id = recording_id
        self.store = store
        self.dispatcher = dispatcher
        self.clock = clock or SystemClock()
        self.refresh_interval = refresh_interval
        self.active_type: Optional[str] = None
        self.jobs: list[JobRecord] = []
        self._start_times: dict[str, float] = {}

    async def list_jobs(self) -> list[JobRecord]:
        """Re-read the recording's jobs, newest first."""
        self.jobs = await self.store.list_jobs(self.recording_id)
        return self.jobs

    def has_processing(self) -> bool:
        return any(job.status == "processing" for job in self.jobs)

    async def watch(self) -> AsyncIterator[list[JobRecord]]:
        """
        Yield the job listing, refreshing while any job is processing.

        The first listing is yielded immediately. Iteration ends as soon as a
        listing has no processing job, or when the consumer stops iterating.
        """
        yield await self.list_jobs()
        while self.has_processing():
            await self.clock.sleep(self.refresh_interval)
            yield await self.list_jobs()

    async def cancel(self, processing_type: str) -> list[str]:
        """
        Mark every processing job of a type as cancelled.

        Args:
            processing_type: Processing type tag

        Returns:
            IDs of the cancelled jobs
        """
        cancelled = await self.store.cancel_processing(self.recording_id, processing_type)
        await self.list_jobs()
        self._clear(processing_type)
        if cancelled:
            logger.info(f"Cancelled {processing_type} extraction for {self.recording_id}")
        return cancelled

    async def extract(self, processing_type: str) -> JobRecord:
        """
        Start an extraction and wait for it to settle.

        Args:
            processing_type: Processing type tag

        Returns:
            The job record as stored after dispatch
        """
        processing = await self.store.list_processing(self.recording_id, processing_type)
        if processing:
            await self.cancel(processing_type)

        self.active_type = processing_type
        self._start_times[processing_type] = self.clock.now()
        try:
            job = await self.dispatcher.dispatch(self.recording_id, processing_type)
            await self.list_jobs()
            return job
        finally:
            self._clear(processing_type)

    def processing_time(self, processing_type: str) -> str:
        """Elapsed seconds since extract started for a type, e.g. "12s"."""
        started = self._start_times.get(processing_type)
        if started is None:
            return ""
        return f"{int(self.clock.now() - started)}s"

    def latest(self, processing_type: str) -> Optional[JobRecord]:
        """Most recent job of a type from the last listing."""
        return next(
            (job for job in self.jobs if job.processing_type == processing_type), None
        )

    def latest_by_type(self) -> dict[str, JobRecord]:
        latest: dict[str, JobRecord] = {}
        for job in self.jobs:
            latest.setdefault(job.processing_type, job)
        return latest

    def _clear(self, processing_type: str) -> None:
        self._start_times.pop(processing_type, None)
        if self.active_type == processing_type:
            self.active_type = None


def create_job_supervisor(
    recording_id: str, dispatcher: Optional[JobDispatcher] = None
) -> JobSupervisor:
    """
    Create a JobSupervisor using application settings.

    Args:
        recording_id: Recording to supervise
        dispatcher: Optional dispatcher to reuse

    Returns:
        Configured JobSupervisor instance
    """
    from src.config import get_settings
    from src.services.dispatcher import create_job_dispatcher

    settings = get_settings()
    dispatcher = dispatcher or create_job_dispatcher()
    return JobSupervisor(
        recording_id=recording_id,
        store=dispatcher.store,
        dispatcher=dispatcher,
        refresh_interval=settings.refresh_interval_seconds,
    )
