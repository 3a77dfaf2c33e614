"""Tests for the backend adapters and the registry.

HTTP traffic is served by httpx.MockTransport handlers.
"""

import base64
import json
from typing import Callable, List

import httpx
import pytest
from hypothesis import given, settings, strategies as st

from src.models.job import PROCESSING_TYPES, BackendKind
from src.models.outcome import Deferred, Immediate
from src.services.backend import sound_file_format
from src.services.database import JobStore
from src.services.huggingface import HF_INFERENCE_URL, HuggingFaceAdapter
from src.services.kits import KITS_API_URL, KitsAdapter
from src.services.musicgen import MUSICGEN_VERSION, REPLICATE_API_URL, MusicGenAdapter
from src.services.registry import BackendRegistry
from src.utils.errors import (
    BackendJobFailed,
    BackendRejected,
    BackendTimeout,
    BackendUnavailable,
    ConfigurationError,
    UnsupportedProcessingType,
)
from tests.fakes import MockSupabaseClient, ScriptedAdapter


def recording_transport(
    handler: Callable[[httpx.Request], httpx.Response], seen: List[httpx.Request]
) -> httpx.MockTransport:
    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    return httpx.MockTransport(record)


# ==================== Kits.ai ====================


class TestKitsAdapter:
    """Multipart submit and status mapping for Kits.ai."""

    @pytest.mark.asyncio
    async def test_submit_sends_voice_model_and_returns_handle(self) -> None:
        seen: List[httpx.Request] = []
        transport = recording_transport(
            lambda request: httpx.Response(201, json={"id": 9876, "status": "running"}),
            seen,
        )
        adapter = KitsAdapter(api_key="kits-key", transport=transport)

        outcome = await adapter.submit(b"RIFF....", "kits-drums", filename="takes/beat.mp3")

        assert isinstance(outcome, Deferred)
        assert outcome.job_handle == "9876"

        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == KITS_API_URL
        assert request.headers["Authorization"] == "Bearer kits-key"
        body = request.content
        assert b'name="voiceModelId"' in body
        assert b"212569" in body
        assert b'filename="recording.mp3"' in body
        assert b"audio/mpeg" in body
        assert b'name="conversionStrength"' in body

    @pytest.mark.asyncio
    async def test_submit_without_conversion_id_is_rejected(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={}))
        adapter = KitsAdapter(api_key="kits-key", transport=transport)

        with pytest.raises(BackendRejected):
            await adapter.submit(b"x", "kits-melody")

    @pytest.mark.asyncio
    async def test_non_2xx_submit_carries_status_and_body(self) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(402, text="insufficient credits")
        )
        adapter = KitsAdapter(api_key="kits-key", transport=transport)

        with pytest.raises(BackendRejected) as exc_info:
            await adapter.submit(b"x", "kits-melody")

        assert exc_info.value.status_code == 402
        assert str(exc_info.value) == "Kits.ai error 402: insufficient credits"

    @pytest.mark.asyncio
    async def test_missing_api_key_is_configuration_error(self) -> None:
        adapter = KitsAdapter(api_key="")

        with pytest.raises(ConfigurationError) as exc_info:
            await adapter.submit(b"x", "kits-drums")

        assert "KITS_API_KEY" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_rejects_foreign_processing_type(self) -> None:
        adapter = KitsAdapter(api_key="kits-key")

        with pytest.raises(UnsupportedProcessingType):
            await adapter.submit(b"x", "drums")

    @pytest.mark.asyncio
    async def test_submit_timeout_is_backend_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        adapter = KitsAdapter(api_key="kits-key", transport=httpx.MockTransport(handler))

        with pytest.raises(BackendTimeout):
            await adapter.submit(b"x", "kits-drums")

    @pytest.mark.asyncio
    async def test_connection_error_is_backend_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        adapter = KitsAdapter(api_key="kits-key", transport=httpx.MockTransport(handler))

        with pytest.raises(BackendUnavailable):
            await adapter.submit(b"x", "kits-drums")

    @pytest.mark.parametrize(
        "payload,state,url,error",
        [
            ({"status": "success", "outputFileUrl": "https://o/a.wav"}, "succeeded", "https://o/a.wav", None),
            ({"status": "success", "lossyOutputFileUrl": "https://o/a.mp3"}, "succeeded", "https://o/a.mp3", None),
            ({"status": "error", "errorMessage": "bad input"}, "failed", None, "bad input"),
            ({"status": "failed"}, "failed", None, "Unknown error"),
            ({"status": "running"}, "running", None, None),
            ({"status": "queued"}, "running", None, None),
        ],
    )
    @pytest.mark.asyncio
    async def test_check_status_mapping(self, payload, state, url, error) -> None:
        seen: List[httpx.Request] = []
        transport = recording_transport(lambda request: httpx.Response(200, json=payload), seen)
        adapter = KitsAdapter(api_key="kits-key", transport=transport)

        report = await adapter.check_status("9876")

        assert str(seen[0].url) == f"{KITS_API_URL}/9876"
        assert report.state == state
        assert report.result_url == url
        assert report.error == error

    @pytest.mark.asyncio
    async def test_status_check_failure_raises(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="oops"))
        adapter = KitsAdapter(api_key="kits-key", transport=transport)

        with pytest.raises(BackendRejected):
            await adapter.check_status("9876")


class TestSoundFileFormat:
    @pytest.mark.parametrize(
        "filename,expected",
        [
            ("take.wav", ("wav", "audio/wav")),
            ("dir/take.MP3", ("mp3", "audio/mpeg")),
            ("take.flac", ("flac", "audio/flac")),
            ("take.webm", ("wav", "audio/wav")),
            ("no-extension", ("wav", "audio/wav")),
        ],
    )
    def test_formats(self, filename: str, expected: tuple) -> None:
        assert sound_file_format(filename) == expected

    @settings(max_examples=100)
    @given(filename=st.text(max_size=40))
    def test_always_an_allowed_format(self, filename: str) -> None:
        extension, mime_type = sound_file_format(filename)

        assert extension in ("wav", "mp3", "flac")
        assert mime_type.startswith("audio/")


# ==================== MusicGen ====================


class TestMusicGenAdapter:
    """Prediction payload, synchronous completion and deferred polling."""

    @pytest.mark.asyncio
    async def test_finished_prediction_is_immediate(self) -> None:
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "replicate.delivery":
                return httpx.Response(200, content=b"generated-wav")
            return httpx.Response(
                201,
                json={
                    "id": "pred-1",
                    "status": "succeeded",
                    "output": "https://replicate.delivery/out.wav",
                },
            )

        adapter = MusicGenAdapter(api_key="r8-key", transport=recording_transport(handler, seen))

        outcome = await adapter.submit(b"hum", "melody", prompt="jazzy bassline")

        assert isinstance(outcome, Immediate)
        assert outcome.result_bytes == b"generated-wav"

        create = seen[0]
        assert str(create.url) == REPLICATE_API_URL
        assert create.headers["Prefer"] == "wait"
        payload = json.loads(create.content)
        assert payload["version"] == MUSICGEN_VERSION
        assert payload["input"]["prompt"] == "jazzy bassline"
        assert payload["input"]["model_version"] == "melody"
        assert payload["input"]["duration"] == 8
        assert payload["input"]["output_format"] == "wav"
        encoded = base64.b64encode(b"hum").decode()
        assert payload["input"]["input_audio"] == f"data:audio/wav;base64,{encoded}"

    @pytest.mark.asyncio
    async def test_default_prompt_used_without_prompt(self) -> None:
        seen: List[httpx.Request] = []
        transport = recording_transport(
            lambda request: httpx.Response(201, json={"id": "pred-2", "status": "starting"}),
            seen,
        )
        adapter = MusicGenAdapter(api_key="r8-key", transport=transport)

        outcome = await adapter.submit(b"hum", "drums")

        assert isinstance(outcome, Deferred)
        assert outcome.job_handle == "pred-2"
        payload = json.loads(seen[0].content)
        assert payload["input"]["prompt"] == "Create a modern musical accompaniment"

    @pytest.mark.asyncio
    async def test_prediction_failed_during_submit(self) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(
                201, json={"id": "pred-3", "status": "failed", "error": "CUDA out of memory"}
            )
        )
        adapter = MusicGenAdapter(api_key="r8-key", transport=transport)

        with pytest.raises(BackendJobFailed) as exc_info:
            await adapter.submit(b"hum", "melody")

        assert str(exc_info.value) == "CUDA out of memory"

    @pytest.mark.parametrize(
        "prediction,state",
        [
            ({"status": "starting"}, "pending"),
            ({"status": "processing"}, "running"),
            ({"status": "succeeded", "output": ["https://r/a.wav"]}, "succeeded"),
            ({"status": "failed", "error": "boom"}, "failed"),
            ({"status": "canceled"}, "failed"),
        ],
    )
    @pytest.mark.asyncio
    async def test_check_status_mapping(self, prediction: dict, state: str) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"id": "pred-1", **prediction})
        )
        adapter = MusicGenAdapter(api_key="r8-key", transport=transport)

        report = await adapter.check_status("pred-1")

        assert report.state == state
        if state == "succeeded":
            assert report.result_url == "https://r/a.wav"

    @pytest.mark.asyncio
    async def test_missing_api_key_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            await MusicGenAdapter(api_key="").submit(b"hum", "melody")


# ==================== Hugging Face ====================


class TestHuggingFaceAdapter:
    """Raw audio in, audio out."""

    @pytest.mark.asyncio
    async def test_audio_response_is_returned_directly(self) -> None:
        seen: List[httpx.Request] = []
        transport = recording_transport(
            lambda request: httpx.Response(
                200, content=b"separated", headers={"content-type": "audio/wav"}
            ),
            seen,
        )
        adapter = HuggingFaceAdapter(
            api_key="hf-key", models={"hf-drums": "org/drum-model"}, transport=transport
        )

        outcome = await adapter.submit(b"raw-audio", "hf-drums")

        assert isinstance(outcome, Immediate)
        assert outcome.result_bytes == b"separated"
        assert str(seen[0].url) == f"{HF_INFERENCE_URL}/org/drum-model"
        assert seen[0].content == b"raw-audio"
        assert seen[0].headers["Authorization"] == "Bearer hf-key"

    @pytest.mark.asyncio
    async def test_audio_to_audio_json_picks_matching_label(self) -> None:
        items = [
            {"label": "vocals", "blob": base64.b64encode(b"vox").decode(), "content-type": "audio/flac"},
            {"label": "melody", "blob": base64.b64encode(b"tune").decode(), "content-type": "audio/flac"},
        ]
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=items))
        adapter = HuggingFaceAdapter(
            api_key="hf-key", models={"hf-melody": "org/sep"}, transport=transport
        )

        outcome = await adapter.submit(b"raw", "hf-melody")

        assert outcome.result_bytes == b"tune"

    @pytest.mark.asyncio
    async def test_error_payload_is_rejected(self) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"error": "Model is loading"})
        )
        adapter = HuggingFaceAdapter(
            api_key="hf-key", models={"hf-melody": "org/sep"}, transport=transport
        )

        with pytest.raises(BackendRejected):
            await adapter.submit(b"raw", "hf-melody")

    @pytest.mark.asyncio
    async def test_unknown_model_type(self) -> None:
        adapter = HuggingFaceAdapter(api_key="hf-key", models={})

        with pytest.raises(UnsupportedProcessingType):
            await adapter.submit(b"raw", "hf-drums")


# ==================== Registry ====================


class TestBackendRegistry:
    """Processing type tags resolve through BackendKind to an adapter."""

    def test_every_type_resolves_to_its_backend(self) -> None:
        adapters = {kind: ScriptedAdapter(kind=kind) for kind in BackendKind}
        registry = BackendRegistry(adapters=adapters)

        for processing_type, kind in PROCESSING_TYPES.items():
            assert registry.resolve(processing_type) is adapters[kind]

    def test_tag_prefixes_select_backends(self) -> None:
        registry = BackendRegistry(adapters={})

        assert registry.kind_for("kits-drums") is BackendKind.KITS
        assert registry.kind_for("hf-melody") is BackendKind.HUGGINGFACE
        assert registry.kind_for("drums") is BackendKind.MUSICGEN

    def test_unknown_type(self) -> None:
        registry = BackendRegistry(adapters={})

        with pytest.raises(UnsupportedProcessingType):
            registry.resolve("theremin")

    def test_unregistered_backend_is_configuration_error(self) -> None:
        registry = BackendRegistry(adapters={BackendKind.KITS: ScriptedAdapter()})

        with pytest.raises(ConfigurationError):
            registry.resolve("melody")

    @pytest.mark.asyncio
    async def test_resolvable_tags_and_storable_tags_agree(self) -> None:
        registry = BackendRegistry(adapters={kind: ScriptedAdapter(kind=kind) for kind in BackendKind})
        store = JobStore(MockSupabaseClient())

        for processing_type in PROCESSING_TYPES:
            registry.resolve(processing_type)
            job = await store.create_job("rec-1", processing_type)
            assert job.backend is registry.kind_for(processing_type)
