"""
Audio Utilities

Data types for captured audio: streaming chunks, the finalized artifact
and its revocable playback handle.
"""

from dataclasses import dataclass, field
from pathlib import Path
import io
import os
import tempfile
import uuid

import numpy as np


@dataclass
class AudioChunk:
    """A chunk of audio data for streaming processing."""

    data: np.ndarray
    sample_rate: int
    timestamp_ms: float
    is_speech: bool = False
    sequence_number: int = 0

    @property
    def duration_ms(self) -> float:
        """Duration of this chunk in milliseconds."""
        return (len(self.data) / self.sample_rate) * 1000


@dataclass(frozen=True)
class AudioArtifact:
    """Immutable recorded audio owned by one recording session."""

    data: bytes
    sample_rate: int
    session_id: str
    chunk_count: int = 0
    duration_ms: float = 0.0
    mime_type: str = "audio/wav"
    filename: str = "recording.wav"
    artifact_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def is_empty(self) -> bool:
        return self.chunk_count == 0

    @classmethod
    def from_chunks(
        cls, chunks: list[AudioChunk], sample_rate: int, session_id: str
    ) -> "AudioArtifact":
        """Encode accumulated chunks into a single WAV artifact."""
        import soundfile as sf

        if chunks:
            samples = np.concatenate([c.data for c in chunks])
        else:
            samples = np.array([], dtype=np.float32)

        buffer = io.BytesIO()
        sf.write(buffer, samples, sample_rate, format="WAV")
        buffer.seek(0)

        return cls(
            data=buffer.read(),
            sample_rate=sample_rate,
            session_id=session_id,
            chunk_count=len(chunks),
            duration_ms=len(samples) / sample_rate * 1000,
        )

    @classmethod
    def from_file(cls, filepath: str | Path, session_id: str) -> "AudioArtifact":
        """Wrap an existing audio file as an artifact."""
        import soundfile as sf

        path = Path(filepath)
        info = sf.info(str(path))
        mime_types = {"WAV": "audio/wav", "FLAC": "audio/flac", "OGG": "audio/ogg"}

        return cls(
            data=path.read_bytes(),
            sample_rate=info.samplerate,
            session_id=session_id,
            chunk_count=1,
            duration_ms=info.duration * 1000,
            mime_type=mime_types.get(info.format, "application/octet-stream"),
            filename=path.name,
        )

    def open_playback(self) -> "PlaybackHandle":
        """Create a playable handle for this artifact."""
        suffix = Path(self.filename).suffix or ".wav"
        fd, path = tempfile.mkstemp(prefix="symptom-scribe-", suffix=suffix)
        with os.fdopen(fd, "wb") as f:
            f.write(self.data)
        return PlaybackHandle(Path(path), self.artifact_id)


class PlaybackHandle:
    """Revocable handle to a playable copy of an artifact."""

    def __init__(self, path: Path, artifact_id: str):
        self._path = path
        self.artifact_id = artifact_id
        self._revoked = False

    @property
    def revoked(self) -> bool:
        return self._revoked

    @property
    def path(self) -> Path:
        if self._revoked:
            raise ValueError("Playback handle has been revoked")
        return self._path

    def revoke(self) -> None:
        """Release the playable copy. Safe to call more than once."""
        if self._revoked:
            return
        self._revoked = True
        self._path.unlink(missing_ok=True)

    def __repr__(self) -> str:
        state = "revoked" if self._revoked else str(self._path)
        return f"PlaybackHandle({self.artifact_id}, {state})"
