"""Pytest fixtures for audio extractor tests."""

import pytest

from tests.fakes import FakeClock, MockSupabaseClient


@pytest.fixture
def supabase_client() -> MockSupabaseClient:
    """Mock Supabase client with one recording stored."""
    client = MockSupabaseClient()
    client.add_recording("rec-1", audio=b"RIFF-hummed-melody", prompt="lofi beat")
    return client


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sample_job_row() -> dict:
    """Sample processing_jobs row as Supabase returns it."""
    return {
        "id": "4d7c1f7e-7a53-4a43-9f0e-0d8f6c1b2a10",
        "recording_id": "rec-1",
        "processing_type": "kits-drums",
        "status": "completed",
        "result_url": "https://storage.test/object/public/recordings/kits-drums-1.wav",
        "error_message": None,
        "created_at": "2024-05-01T12:30:00.123456+00:00",
    }
