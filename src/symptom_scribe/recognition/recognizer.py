"""
Local Recognizer

Runs a host speech engine alongside capture and turns its callbacks into
an ordered stream of Hypothesis events for the coordinator.
"""

import logging
import threading

from symptom_scribe.capture.audio_utils import AudioChunk
from symptom_scribe.errors import (
    NoSpeechDetected,
    PermissionDenied,
    RecognizerTransientError,
    TranscriptionError,
)
from symptom_scribe.events import (
    EventChannel,
    Hypothesis,
    RecognizerEnded,
    RecognizerFailed,
    RecognizerStarted,
)
from symptom_scribe.recognition.engine import EngineCallbacks, SpeechEngine

logger = logging.getLogger(__name__)

FATAL_ERROR_CODES = frozenset({"not-allowed"})


def error_for_code(code: str, detail: str | None = None) -> TranscriptionError:
    """Map an engine error code to the error taxonomy."""
    if code == "no-speech":
        return NoSpeechDetected()
    if code in FATAL_ERROR_CODES:
        return PermissionDenied(detail)
    if code == "audio-capture":
        return RecognizerTransientError("Audio capture failed. Please check your microphone.")
    message = f"Speech recognition error: {code}"
    if detail:
        message = f"{message} ({detail})"
    return RecognizerTransientError(message)


class LocalRecognizer:
    """Continuous local recognition for one session at a time."""

    def __init__(self, engine: SpeechEngine):
        self.engine = engine
        self.events: EventChannel = EventChannel("recognizer")
        self._lock = threading.Lock()
        self._session_id: str | None = None
        self._generation = 0
        self._active = False

    @property
    def is_running(self) -> bool:
        return self._active

    def start(self, session_id: str) -> None:
        """Start streaming hypotheses for a session."""
        with self._lock:
            if self._active:
                return
            self._generation += 1
            self._session_id = session_id
            self._active = True
            callbacks = self._callbacks(self._generation, session_id)

        try:
            self.engine.start(callbacks)
        except Exception:
            with self._lock:
                self._active = False
            raise

    def stop(self) -> None:
        """Stop recognition. Hypotheses arriving afterwards are dropped."""
        with self._lock:
            if not self._active:
                return
            self._active = False
        self.engine.stop()

    def feed(self, chunk: AudioChunk) -> None:
        if self._active and self.engine.consumes_audio:
            self.engine.feed(chunk)

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return self._active and generation == self._generation

    def _callbacks(self, generation: int, session_id: str) -> EngineCallbacks:
        def on_start() -> None:
            if self._is_current(generation):
                self.events.put(RecognizerStarted(session_id))

        def on_interim(text: str, confidence: float | None) -> None:
            if self._is_current(generation):
                self.events.put(Hypothesis(session_id, text, False, confidence))

        def on_final(text: str, confidence: float | None) -> None:
            if self._is_current(generation):
                self.events.put(Hypothesis(session_id, text, True, confidence))

        def on_error(code: str, detail: str | None) -> None:
            if not self._is_current(generation):
                return
            error = error_for_code(code, detail)
            logger.warning("Speech recognition error: %s", code)
            self.events.put(RecognizerFailed(session_id, error))
            if error.fatal:
                self.stop()

        def on_end() -> None:
            # Reported even after stop() so the listening flag clears
            if generation == self._generation:
                self.events.put(RecognizerEnded(session_id))

        return EngineCallbacks(
            on_start=on_start,
            on_interim=on_interim,
            on_final=on_final,
            on_error=on_error,
            on_end=on_end,
        )
