"""Service layer for the audio extractor."""

from src.services.backend import BackendAdapter, HttpBackendAdapter
from src.services.database import DatabaseError, JobStore, create_job_store
from src.services.dispatcher import JobDispatcher, create_job_dispatcher
from src.services.huggingface import HuggingFaceAdapter, create_huggingface_adapter
from src.services.kits import KitsAdapter, create_kits_adapter
from src.services.musicgen import MusicGenAdapter, create_musicgen_adapter
from src.services.poller import Poller, create_poller
from src.services.registry import BackendRegistry, create_backend_registry
from src.services.storage import AudioStorage, create_audio_storage
from src.services.supervisor import JobSupervisor, create_job_supervisor

__all__ = [
    "AudioStorage",
    "create_audio_storage",
    "BackendAdapter",
    "HttpBackendAdapter",
    "BackendRegistry",
    "create_backend_registry",
    "DatabaseError",
    "JobStore",
    "create_job_store",
    "HuggingFaceAdapter",
    "create_huggingface_adapter",
    "JobDispatcher",
    "create_job_dispatcher",
    "JobSupervisor",
    "create_job_supervisor",
    "KitsAdapter",
    "create_kits_adapter",
    "MusicGenAdapter",
    "create_musicgen_adapter",
    "Poller",
    "create_poller",
]
