"""
Component Events

Events emitted by capture, recognition and the remote client. Each
component owns one ordered EventChannel; the coordinator drains them.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar
import queue

from symptom_scribe.errors import TranscriptionError

if TYPE_CHECKING:
    from symptom_scribe.capture.audio_utils import AudioArtifact

T = TypeVar("T")


@dataclass(frozen=True)
class ChunkCaptured:
    session_id: str
    sequence_number: int
    duration_ms: float


@dataclass(frozen=True)
class ArtifactFinalized:
    session_id: str
    artifact: "AudioArtifact"


@dataclass(frozen=True)
class CaptureFailed:
    session_id: str
    error: TranscriptionError


@dataclass(frozen=True)
class RecognizerStarted:
    session_id: str


@dataclass(frozen=True)
class Hypothesis:
    """A recognizer hypothesis. Interim ones are replaced, final ones appended."""

    session_id: str
    text: str
    is_final: bool
    confidence: float | None = None


@dataclass(frozen=True)
class RecognizerFailed:
    session_id: str
    error: TranscriptionError


@dataclass(frozen=True)
class RecognizerEnded:
    session_id: str


class EventChannel(Generic[T]):
    """Ordered, thread-safe event queue with a single consumer."""

    def __init__(self, name: str):
        self.name = name
        self._queue: queue.Queue[T] = queue.Queue()

    def put(self, event: T) -> None:
        self._queue.put(event)

    def drain(self) -> list[T]:
        """Remove and return all pending events in arrival order."""
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events
