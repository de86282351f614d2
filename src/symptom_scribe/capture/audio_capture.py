"""
Audio Capture

Owns the microphone stream for one session and finalizes the recorded
chunks into an AudioArtifact when recording stops.
"""

from dataclasses import dataclass
from typing import Callable
import logging
import threading

import numpy as np

from symptom_scribe.capture.audio_utils import AudioArtifact, AudioChunk
from symptom_scribe.capture.sources import AudioSource, SoundDeviceSource, SourceSettings
from symptom_scribe.errors import InvalidStateTransition, TranscriptionError
from symptom_scribe.events import (
    ArtifactFinalized,
    CaptureFailed,
    ChunkCaptured,
    EventChannel,
)

logger = logging.getLogger(__name__)


@dataclass
class CaptureConfig:
    """Configuration for audio capture."""

    sample_rate: int = 16000
    channels: int = 1
    chunk_duration_ms: int = 1000
    dtype: str = "float32"
    device: int | str | None = None  # None = default device
    echo_cancellation: bool = True
    noise_suppression: bool = True

    @property
    def chunk_samples(self) -> int:
        """Number of samples per chunk."""
        return int(self.sample_rate * self.chunk_duration_ms / 1000)

    def source_settings(self) -> SourceSettings:
        return SourceSettings(
            sample_rate=self.sample_rate,
            channels=self.channels,
            block_samples=self.chunk_samples,
            dtype=self.dtype,
            device=self.device,
            echo_cancellation=self.echo_cancellation,
            noise_suppression=self.noise_suppression,
        )


class AudioCapture:
    """Exclusive microphone capture producing one artifact per stop()."""

    def __init__(
        self,
        config: CaptureConfig | None = None,
        source: AudioSource | None = None,
    ):
        self.config = config or CaptureConfig()
        self.source = source or SoundDeviceSource()
        self.events: EventChannel = EventChannel("capture")
        self._lock = threading.Lock()
        self._is_capturing = False
        self._stream_open = False
        self._session_id: str | None = None
        self._recorded_chunks: list[AudioChunk] = []
        self._sequence_number = 0
        self._chunk_listeners: list[Callable[[AudioChunk], None]] = []
        self.release_count = 0

    @property
    def is_capturing(self) -> bool:
        return self._is_capturing

    @property
    def chunk_count(self) -> int:
        return len(self._recorded_chunks)

    def add_chunk_listener(self, listener: Callable[[AudioChunk], None]) -> None:
        """Receive every captured chunk (e.g. to feed a local speech engine)."""
        self._chunk_listeners.append(listener)

    def _on_block(self, data: np.ndarray) -> None:
        with self._lock:
            if not self._is_capturing:
                return
            chunk = AudioChunk(
                data=data,
                sample_rate=self.config.sample_rate,
                timestamp_ms=self._sequence_number * self.config.chunk_duration_ms,
                sequence_number=self._sequence_number,
            )
            self._sequence_number += 1
            self._recorded_chunks.append(chunk)
            session_id = self._session_id
            listeners = list(self._chunk_listeners)

        self.events.put(ChunkCaptured(session_id, chunk.sequence_number, chunk.duration_ms))
        for listener in listeners:
            listener(chunk)

    def start(self, session_id: str) -> None:
        """Acquire the microphone and start recording.

        Acquisition errors propagate before any recording state is set.
        """
        if self._is_capturing:
            return

        self._recorded_chunks = []
        self._sequence_number = 0
        self._session_id = session_id

        self.source.open(self.config.source_settings(), self._on_block, self.fail)
        self._stream_open = True
        self._is_capturing = True
        logger.debug("Capture started for session %s", session_id)

    def stop(self) -> AudioArtifact:
        """Stop recording, release the stream and return the artifact."""
        if not self._is_capturing:
            raise InvalidStateTransition("Capture is not running")

        with self._lock:
            self._is_capturing = False
            chunks = self._recorded_chunks
            self._recorded_chunks = []

        try:
            self._release_stream()
        finally:
            artifact = AudioArtifact.from_chunks(
                chunks, self.config.sample_rate, self._session_id
            )
            self.events.put(ArtifactFinalized(self._session_id, artifact))

        logger.debug(
            "Capture stopped for session %s: %d chunks, %.0f ms",
            self._session_id,
            artifact.chunk_count,
            artifact.duration_ms,
        )
        return artifact

    def fail(self, error: TranscriptionError) -> None:
        """Abort capture after a fatal host error.

        Called by the source, possibly on the host audio thread, so the stream
        is left for the owner to release().
        """
        with self._lock:
            if not self._is_capturing:
                return
            self._is_capturing = False
            self._recorded_chunks = []
            session_id = self._session_id
        logger.error("Capture failed for session %s: %s", session_id, error.message)
        self.events.put(CaptureFailed(session_id, error))

    def release(self) -> None:
        """Discard recorded audio and release the stream if still held."""
        with self._lock:
            self._is_capturing = False
            self._recorded_chunks = []
        self._release_stream()

    def _release_stream(self) -> None:
        if not self._stream_open:
            return
        self._stream_open = False
        self.release_count += 1
        self.source.close()

    @staticmethod
    def list_devices() -> list[dict]:
        """List available audio input devices."""
        return SoundDeviceSource.list_devices()
