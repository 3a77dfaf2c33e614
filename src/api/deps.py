"""FastAPI dependencies for the audio extraction API."""

from src.services.database import JobStore, create_job_store
from src.services.dispatcher import JobDispatcher, create_job_dispatcher


def get_job_store_dep() -> JobStore:
    """Dependency for the job record store."""
    return create_job_store()


def get_job_dispatcher_dep() -> JobDispatcher:
    """Dependency for a per-request job dispatcher."""
    return create_job_dispatcher()
