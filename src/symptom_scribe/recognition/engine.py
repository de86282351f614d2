"""
Speech Engine Interface

Capability interface for host speech engines. An engine streams interim
and final hypotheses through callbacks; LocalRecognizer adapts it onto an
ordered event channel.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

from symptom_scribe.capture.audio_utils import AudioChunk


@dataclass
class EngineCallbacks:
    """Callbacks an engine invokes, possibly from its own thread."""

    on_start: Callable[[], None]
    on_interim: Callable[[str, float | None], None]
    on_final: Callable[[str, float | None], None]
    on_error: Callable[[str, str | None], None]
    on_end: Callable[[], None]


class SpeechEngine(ABC):
    """Continuous speech recognition on the host."""

    #: Whether the engine needs captured audio pushed through feed().
    consumes_audio: bool = False

    @abstractmethod
    def start(self, callbacks: EngineCallbacks) -> None:
        """Begin continuous recognition."""

    @abstractmethod
    def stop(self) -> None:
        """Stop recognition. No callbacks are expected afterwards."""

    def feed(self, chunk: AudioChunk) -> None:
        """Push captured audio to engines that do not own an input."""
