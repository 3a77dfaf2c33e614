"""Application settings from environment variables."""

from functools import lru_cache
from dotenv import load_dotenv

from pydantic_settings import BaseSettings

# Load environment variables
load_dotenv()


class Settings(BaseSettings):
    """Application settings from environment."""

    # Backend API Keys
    kits_api_key: str = ""
    replicate_api_key: str = ""
    hugging_face_api_key: str = ""

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    recordings_bucket: str = "recordings"
    recordings_table: str = "recordings"
    jobs_table: str = "processing_jobs"

    # Configuration
    log_level: str = "INFO"
    max_retry_attempts: int = 3
    base_delay_seconds: float = 1.0
    http_timeout_seconds: float = 60.0

    # Polling
    poll_interval_seconds: float = 10.0
    poll_max_attempts: int = 30
    refresh_interval_seconds: float = 3.0

    # Hugging Face
    hf_drums_model: str = "speechbrain/sepformer-wham"
    hf_melody_model: str = "speechbrain/sepformer-wham"

    # MusicGen
    musicgen_default_prompt: str = "Create a modern musical accompaniment"

    model_config = {"env_file": ".env"}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
