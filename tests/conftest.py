"""
Pytest Configuration and Shared Fixtures

Copyright (c) 2024 Cleansheet LLC
License: CC BY 4.0
"""

from concurrent.futures import Executor, Future
from pathlib import Path
from typing import Any, Callable
from unittest.mock import MagicMock

import numpy as np
import pytest

from symptom_scribe.capture.audio_capture import AudioCapture, CaptureConfig
from symptom_scribe.capture.audio_utils import AudioArtifact, AudioChunk
from symptom_scribe.capture.sources import AudioSource, SourceSettings
from symptom_scribe.coordinator.coordinator import TranscriptionCoordinator
from symptom_scribe.recognition.engine import EngineCallbacks, SpeechEngine
from symptom_scribe.recognition.recognizer import LocalRecognizer
from symptom_scribe.transcription.remote_client import (
    RemoteClientConfig,
    RemoteTranscriptionClient,
)


# =============================================================================
# AUDIO FIXTURES
# =============================================================================


@pytest.fixture
def sample_rate() -> int:
    """Standard sample rate for tests."""
    return 16000


@pytest.fixture
def sample_audio_data() -> np.ndarray:
    """One second of low-amplitude noise."""
    return (np.random.randn(16000) * 0.001).astype(np.float32)


@pytest.fixture
def sample_audio_with_speech() -> np.ndarray:
    """One second of a speech-like signal (higher amplitude)."""
    t = np.linspace(0, 1.0, 16000)
    signal = (
        0.3 * np.sin(2 * np.pi * 200 * t) +
        0.2 * np.sin(2 * np.pi * 400 * t) +
        0.1 * np.sin(2 * np.pi * 800 * t)
    )
    return signal.astype(np.float32)


def make_chunk(data: np.ndarray, sequence_number: int = 0, sample_rate: int = 16000) -> AudioChunk:
    return AudioChunk(
        data=data,
        sample_rate=sample_rate,
        timestamp_ms=sequence_number * len(data) / sample_rate * 1000,
        sequence_number=sequence_number,
    )


@pytest.fixture
def sample_artifact(sample_audio_with_speech: np.ndarray) -> AudioArtifact:
    """Artifact holding two seconds of speech-like audio."""
    chunks = [make_chunk(sample_audio_with_speech, i) for i in range(2)]
    return AudioArtifact.from_chunks(chunks, 16000, "session-1")


# =============================================================================
# HOST FAKES
# =============================================================================


class FakeSource(AudioSource):
    """Audio source that delivers blocks only when the test pushes them."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.settings: SourceSettings | None = None
        self.on_block: Callable[[np.ndarray], None] | None = None
        self.on_error: Callable[[Exception], None] | None = None
        self.open_count = 0
        self.close_count = 0

    def open(self, settings: SourceSettings, on_block, on_error) -> None:
        if self.error is not None:
            raise self.error
        self.settings = settings
        self.on_block = on_block
        self.on_error = on_error
        self.open_count += 1

    def close(self) -> None:
        self.close_count += 1

    def emit(self, data: np.ndarray | None = None) -> None:
        if data is None:
            data = np.full(16000, 0.1, dtype=np.float32)
        self.on_block(data)

    def lose_stream(self, error: Exception) -> None:
        """Simulate the host reporting a lost stream."""
        self.on_error(error)


class FakeEngine(SpeechEngine):
    """Speech engine driven by the test through its callbacks."""

    def __init__(self, consumes_audio: bool = False, start_error: Exception | None = None):
        self.consumes_audio = consumes_audio
        self.start_error = start_error
        self.callbacks: EngineCallbacks | None = None
        self.start_count = 0
        self.stop_count = 0
        self.fed: list[AudioChunk] = []

    def start(self, callbacks: EngineCallbacks) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.callbacks = callbacks
        self.start_count += 1

    def stop(self) -> None:
        self.stop_count += 1

    def feed(self, chunk: AudioChunk) -> None:
        self.fed.append(chunk)


class ManualExecutor(Executor):
    """Executor that runs submitted work only when the test asks."""

    def __init__(self):
        self.pending: list[tuple[Callable, tuple, dict]] = []

    def submit(self, fn, *args, **kwargs) -> Future:
        self.pending.append((fn, args, kwargs))
        return Future()

    def run_all(self) -> None:
        pending, self.pending = self.pending, []
        for fn, args, kwargs in pending:
            fn(*args, **kwargs)


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def executor() -> ManualExecutor:
    return ManualExecutor()


# =============================================================================
# REMOTE SERVICE FIXTURES
# =============================================================================


def make_response(status_code: int = 200, payload: Any = None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def medical_response() -> dict[str, Any]:
    """Successful medical transcription response."""
    return {
        "success": True,
        "transcript": "I have had a headache and nausea since Tuesday.",
        "quality": "final",
        "source": "elevenlabs",
        "medicalTermsDetected": ["headache", "nausea"],
        "speakers": [],
        "words": [
            {"word": "I", "start_time": 0.0, "end_time": 0.1, "confidence": 0.99},
        ],
        "confidence": 0.94,
        "processingTime": 812,
    }


@pytest.fixture
def mock_http(medical_response: dict) -> MagicMock:
    """requests.Session stand-in returning a successful response."""
    http = MagicMock()
    http.post.return_value = make_response(200, medical_response)
    http.get.return_value = make_response(200, {"status": "ok"})
    return http


@pytest.fixture
def client(mock_http: MagicMock) -> RemoteTranscriptionClient:
    return RemoteTranscriptionClient(
        RemoteClientConfig(base_url="http://scribe.test", timeout=5.0), http=mock_http
    )


# =============================================================================
# COORDINATOR FIXTURES
# =============================================================================


@pytest.fixture
def capture(fake_source: FakeSource) -> AudioCapture:
    return AudioCapture(CaptureConfig(), source=fake_source)


@pytest.fixture
def recognizer(fake_engine: FakeEngine) -> LocalRecognizer:
    return LocalRecognizer(fake_engine)


@pytest.fixture
def coordinator(
    capture: AudioCapture,
    recognizer: LocalRecognizer,
    client: RemoteTranscriptionClient,
    executor: ManualExecutor,
) -> TranscriptionCoordinator:
    return TranscriptionCoordinator(
        capture=capture,
        client=client,
        recognizer=recognizer,
        executor=executor,
    )


# =============================================================================
# CONFIGURATION FIXTURES
# =============================================================================


@pytest.fixture
def sample_config_dict() -> dict[str, Any]:
    """Sample application configuration dictionary."""
    return {
        "name": "test-scribe",
        "start_policy": "restart",
        "capture": {
            "sample_rate": 16000,
            "chunk_duration_ms": 500,
        },
        "recognition": {
            "enabled": False,
            "interim_interval_ms": 1000,
        },
        "remote": {
            "base_url": "http://scribe.test",
            "api_key": "secret",
            "timeout": 30,
        },
        "transcription": {
            "enableSpeakerDiarization": True,
            "expectedSpeakers": 3,
            "transcriptionMode": "elevenlabs",
        },
        "playback": {
            "volume": 0.5,
        },
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, sample_config_dict: dict) -> Path:
    """Create a temporary config file."""
    import yaml

    config_path = tmp_path / "config.yaml"
    with open(config_path, "w") as f:
        yaml.dump(sample_config_dict, f)
    return config_path


# =============================================================================
# FACTORY FIXTURES
# =============================================================================


@pytest.fixture
def response_factory() -> Callable[..., MagicMock]:
    """Build fake requests responses."""
    return make_response


@pytest.fixture
def chunk_factory() -> Callable[..., AudioChunk]:
    """Build AudioChunks from sample arrays."""
    return make_chunk
