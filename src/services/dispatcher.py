"""Job dispatcher: runs one extraction request end to end."""

import logging
from typing import Optional

from src.models.job import JobRecord
from src.models.outcome import Immediate, PollFailed, PollTimedOut
from src.services.backend import BackendAdapter
from src.services.database import JobStore
from src.services.poller import Poller
from src.services.registry import BackendRegistry
from src.services.storage import AudioStorage
from src.utils.clock import Clock, SystemClock
from src.utils.errors import BackendJobFailed, PollTimeout, RecordingNotFound, StorageNotFound

logger = logging.getLogger(__name__)


class JobDispatcher:
    """Create a job record, run the backend and write the terminal outcome."""

    def __init__(
        self,
        store: JobStore,
        storage: AudioStorage,
        registry: BackendRegistry,
        poller: Poller,
        clock: Optional[Clock] = None,
    ) -> None:
        """
        Initialize the JobDispatcher.

        Args:
            store: Job record store
            storage: Storage for recordings and processed audio
            registry: Processing type -> adapter registry
            poller: Poller for deferred backends
            clock: Clock used for result file naming
        """
        self.store = store
        self.storage = storage
        self.registry = registry
        self.poller = poller
        self.clock = clock or SystemClock()

    async def dispatch(self, recording_id: str, processing_type: str) -> JobRecord:
        """
        Run one extraction for a recording.

        Any processing job of the same type is superseded first. Every failure
        after the new record exists, including a failed store read or
        completion write, is written to it as ``failed``.

        Args:
            recording_id: Recording to process
            processing_type: Processing type tag

        Returns:
            The job record as stored once the dispatch settles

        Raises:
            UnsupportedProcessingType: If the tag has no backend
            DatabaseError: If the job record cannot be created, or its failure
                cannot be written
        """
        adapter = self.registry.resolve(processing_type)

        superseded = await self.store.cancel_processing(recording_id, processing_type)
        if superseded:
            logger.info(f"Superseded {processing_type} job(s) {superseded}")

        job = await self.store.create_job(recording_id, processing_type)

        try:
            result_url = await self._run(job, adapter)

            if result_url is None:
                logger.info(f"Job {job.id} was cancelled before its result was stored")
            elif await self.store.complete_job(job.id, result_url):
                logger.info(f"Job {job.id} completed: {result_url}")

        except Exception as e:
            logger.error(f"Job {job.id} ({processing_type}) failed: {e}")
            await self.store.fail_job(job.id, str(e))

        return await self.store.get_job(job.id) or job

    async def _run(self, job: JobRecord, adapter: BackendAdapter) -> Optional[str]:
        """Fetch, convert and store; returns None if the job was cancelled meanwhile."""
        recording = await self.store.get_recording(job.recording_id)
        filename = recording["filename"]

        try:
            audio = await self.storage.download(filename)
        except StorageNotFound as e:
            raise RecordingNotFound(job.recording_id, str(e)) from e

        outcome = await adapter.submit(
            audio,
            job.processing_type,
            filename=filename,
            prompt=recording.get("prompt"),
        )

        if isinstance(outcome, Immediate):
            result_bytes = outcome.result_bytes
        else:
            logger.info(f"Job {job.id} deferred as {adapter.name} {outcome.job_handle}")
            poll = await self.poller.poll(adapter, outcome.job_handle)

            if isinstance(poll, PollFailed):
                raise BackendJobFailed(poll.reason)
            if isinstance(poll, PollTimedOut):
                raise PollTimeout(poll.attempts, self.poller.interval)

            result_bytes = await adapter.fetch_result(poll.result_url)

        if not await self.store.is_processing(job.id):
            return None

        name = f"{job.processing_type}-{int(self.clock.now() * 1000)}-{job.id[:8]}.wav"
        await self.storage.upload(name, result_bytes, content_type="audio/wav")
        return self.storage.public_url(name)


def create_job_dispatcher(clock: Optional[Clock] = None) -> JobDispatcher:
    """
    Create a JobDispatcher wired from application settings.

    Args:
        clock: Optional clock shared by the poller and file naming

    Returns:
        Configured JobDispatcher instance
    """
    from src.services.database import create_job_store, create_supabase_client
    from src.services.poller import create_poller
    from src.services.registry import create_backend_registry
    from src.services.storage import create_audio_storage

    supabase_client = create_supabase_client()
    return JobDispatcher(
        store=create_job_store(supabase_client),
        storage=create_audio_storage(supabase_client),
        registry=create_backend_registry(clock),
        poller=create_poller(clock),
        clock=clock,
    )
