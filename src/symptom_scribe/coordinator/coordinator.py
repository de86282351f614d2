"""
Transcription Coordinator

Sequences capture, local recognition and remote transcription for one
session at a time and is the single writer of session state.

Component events arrive on per-component channels and are applied in
arrival order by pump(). Every public operation pumps first, so callers
always act on up-to-date state. Remote requests run on a worker thread and
are tagged with the session id; responses for a cleared or replaced
session are dropped.
"""

from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable
import logging
import threading

from symptom_scribe.capture.audio_capture import AudioCapture
from symptom_scribe.capture.audio_utils import AudioArtifact, PlaybackHandle
from symptom_scribe.coordinator.config import AppConfig, load_config
from symptom_scribe.coordinator.session import RecordingSession
from symptom_scribe.coordinator.state_machine import (
    TEARDOWN_EFFECTS,
    CaptureFatal,
    Clear,
    Effect,
    FallbackApplied,
    RemoteFailed,
    RemoteSucceeded,
    RequestEnhancement,
    SessionState,
    Start,
    StartPolicy,
    Stop,
    transition,
)
from symptom_scribe.errors import (
    InvalidStateTransition,
    NoAudioCaptured,
    TranscriptionCancelled,
    TranscriptionError,
    TranscriptionFailed,
)
from symptom_scribe.events import (
    ArtifactFinalized,
    CaptureFailed,
    ChunkCaptured,
    Hypothesis,
    RecognizerEnded,
    RecognizerFailed,
    RecognizerStarted,
)
from symptom_scribe.recognition.local_engine import LocalModelEngine
from symptom_scribe.recognition.recognizer import LocalRecognizer
from symptom_scribe.transcription.fallback import FallbackPolicy
from symptom_scribe.transcription.options import TranscriptionOptions
from symptom_scribe.transcription.remote_client import (
    CancellationToken,
    RemoteTranscriptionClient,
)
from symptom_scribe.transcription.transcript_types import (
    Quality,
    TranscriptionMode,
    TranscriptionResult,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    """Something a UI layer may want to show."""

    kind: str  # state, result, warning, error
    state: SessionState
    session_id: str | None = None
    result: TranscriptionResult | None = None
    error: TranscriptionError | None = None
    message: str | None = None


@dataclass(frozen=True)
class CoordinatorSnapshot:
    """Read-only view of the coordinator for callers."""

    state: SessionState
    session_id: str | None
    mode: TranscriptionMode
    is_listening: bool
    interim_text: str
    local_transcript: str
    final_transcript: str
    quality: Quality | None
    medical_terms: tuple[str, ...]
    has_audio_data: bool
    error_message: str | None

    @property
    def is_recording(self) -> bool:
        return self.state is SessionState.RECORDING

    @property
    def is_processing(self) -> bool:
        return self.state is SessionState.PROCESSING


@dataclass
class _PendingRequest:
    request_id: int
    session_id: str
    options: TranscriptionOptions
    token: CancellationToken
    future: Future


Listener = Callable[[Notification], None]


class TranscriptionCoordinator:
    """State machine owner exposing one contract to callers."""

    def __init__(
        self,
        capture: AudioCapture,
        client: RemoteTranscriptionClient,
        recognizer: LocalRecognizer | None = None,
        fallback: FallbackPolicy | None = None,
        options: TranscriptionOptions | None = None,
        start_policy: StartPolicy = StartPolicy.REJECT,
        executor: Executor | None = None,
    ):
        self.capture = capture
        self.client = client
        self.recognizer = recognizer
        self.fallback = fallback or FallbackPolicy()
        self.options = (options or TranscriptionOptions()).validate()
        self.start_policy = start_policy

        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="remote-transcription"
        )
        self._owns_executor = executor is None
        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._session: RecordingSession | None = None
        self._pending: _PendingRequest | None = None
        self._request_counter = 0
        self._listeners: list[Listener] = []

        if self.recognizer is not None:
            self.capture.add_chunk_listener(self.recognizer.feed)

    @classmethod
    def from_config(cls, config_path: str | Path) -> "TranscriptionCoordinator":
        """Create coordinator from config file."""
        return cls.from_app_config(load_config(config_path))

    @classmethod
    def from_app_config(cls, config: AppConfig) -> "TranscriptionCoordinator":
        """Create coordinator with the desktop host implementations."""
        recognizer = None
        if config.recognition.enabled:
            recognizer = LocalRecognizer(LocalModelEngine(config.recognition.engine_config()))

        return cls(
            capture=AudioCapture(config.capture),
            client=RemoteTranscriptionClient(config.remote),
            recognizer=recognizer,
            options=config.transcription,
            start_policy=config.start_policy,
        )

    # -- observation -------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> RecordingSession | None:
        return self._session

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def snapshot(self) -> CoordinatorSnapshot:
        with self._lock:
            self.pump()
            session = self._session
            if session is None:
                return CoordinatorSnapshot(
                    state=self._state,
                    session_id=None,
                    mode=self.options.transcription_mode,
                    is_listening=False,
                    interim_text="",
                    local_transcript="",
                    final_transcript="",
                    quality=None,
                    medical_terms=(),
                    has_audio_data=False,
                    error_message=None,
                )

            result = session.result
            return CoordinatorSnapshot(
                state=self._state,
                session_id=session.session_id,
                mode=session.mode,
                is_listening=session.listening,
                interim_text=session.interim_text,
                local_transcript=session.local_transcript,
                final_transcript=result.text if result else session.local_transcript,
                quality=session.quality,
                medical_terms=tuple(result.medical_terms) if result else (),
                has_audio_data=session.has_audio_data,
                error_message=session.error_message,
            )

    # -- operations ----------------------------------------------------------

    def start(self, options: TranscriptionOptions | None = None) -> RecordingSession:
        """Start a new recording session.

        Raises SessionAlreadyActive (reject policy) without touching the
        active session, and PermissionDenied / DeviceUnavailable before
        any recording state is entered.
        """
        with self._lock:
            self.pump()
            options = (options or self.options).validate()
            with_recognizer = (
                self.recognizer is not None
                and options.transcription_mode is not TranscriptionMode.REMOTE_ONLY
            )
            step = transition(
                self._state, Start(with_recognizer=with_recognizer, policy=self.start_policy)
            )

            teardown = [e for e in step.effects if e in TEARDOWN_EFFECTS]
            self._run_effects(teardown)

            session = RecordingSession(options=options)
            try:
                self.capture.start(session.session_id)
            except TranscriptionError as e:
                logger.error("Could not start recording: %s", e.message)
                if teardown:
                    self._reset_to_idle()
                self._notify("error", error=e, message=e.user_message)
                raise

            # Old session's artifact and transcript go before the new one is installed
            self._run_effects(
                [e for e in step.effects if e in (Effect.RELEASE_ARTIFACT, Effect.RESET_TRANSCRIPT)]
            )
            self._session = session
            self._set_state(step.state)

            if Effect.START_RECOGNIZER in step.effects:
                self._start_recognizer(session)

            logger.info(
                "Recording started (session %s, mode %s)",
                session.session_id,
                session.mode.value,
            )
            return session

    def stop(self) -> AudioArtifact:
        """Stop recording and return the finalized artifact."""
        with self._lock:
            self.pump()
            step = transition(self._state, Stop())
            self._run_effects(step.effects)
            self._set_state(step.state)
            logger.info("Recording stopped (session %s)", self._session.session_id)
            return self._session.artifact

    def request_enhanced_transcription(
        self, options: TranscriptionOptions | None = None
    ) -> "Future[TranscriptionResult]":
        """Submit the session's artifact for enhanced transcription.

        Options are validated before any state change or network call. The
        returned future resolves to the published result, or raises
        TranscriptionFailed, or TranscriptionCancelled if the session is
        cleared first.
        """
        with self._lock:
            self.pump()
            session = self._session
            options = (options or (session.options if session else self.options)).validate()
            step = transition(self._state, RequestEnhancement())

            if session is None or not session.has_audio_data:
                raise NoAudioCaptured()

            self._request_counter += 1
            pending = _PendingRequest(
                request_id=self._request_counter,
                session_id=session.session_id,
                options=options,
                token=CancellationToken(),
                future=Future(),
            )
            self._pending = pending
            session.error_message = None
            self._set_state(step.state)

            logger.info(
                "Enhanced transcription requested (session %s, request %d, mode %s)",
                session.session_id,
                pending.request_id,
                options.transcription_mode.value,
            )
            self._executor.submit(
                self._run_remote, pending, session.artifact, session.local_transcript
            )
            return pending.future

    def transcribe(
        self, options: TranscriptionOptions | None = None, timeout: float | None = None
    ) -> TranscriptionResult:
        """Blocking form of request_enhanced_transcription()."""
        return self.request_enhanced_transcription(options).result(timeout=timeout)

    def clear(self) -> None:
        """Discard the session, its artifact and any in-flight result."""
        with self._lock:
            step = transition(self._state, Clear())
            self._run_effects(step.effects)
            session_id = self._session.session_id if self._session else None
            self._session = None
            self._discard_pending_events()
            self._set_state(step.state)
            logger.info("Session %s cleared", session_id)

    def set_mode(self, mode: TranscriptionMode | str) -> None:
        """Change the transcription mode; accumulated local text is discarded."""
        with self._lock:
            self.pump()
            if self._state in (SessionState.RECORDING, SessionState.PROCESSING):
                raise InvalidStateTransition(
                    f"Cannot change transcription mode while {self._state.value}"
                )
            self.options = self.options.with_mode(mode)
            session = self._session
            if session is not None:
                session.options = session.options.with_mode(mode)
                session.segments = []
                session.interim_text = ""
            logger.info("Transcription mode set to %s", self.options.transcription_mode.value)

    def open_playback(self) -> PlaybackHandle:
        """Playable handle for the session's artifact, revoked on clear."""
        with self._lock:
            session = self._session
            if session is None or session.artifact is None:
                raise NoAudioCaptured()
            if session.playback is None:
                session.playback = session.artifact.open_playback()
            return session.playback

    def close(self, wait: bool = True) -> None:
        """Clear any session and shut down the worker.

        A request still in flight is cancelled first; with wait=True this
        blocks until its HTTP call returns (bounded by the client timeout).
        With wait=False the call is abandoned and its response dropped.
        """
        self.clear()
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    # -- event handling -----------------------------------------------------

    def pump(self) -> int:
        """Apply pending component events in arrival order."""
        with self._lock:
            applied = 0
            for event in self.capture.events.drain():
                applied += self._on_capture_event(event)
            if self.recognizer is not None:
                for event in self.recognizer.events.drain():
                    applied += self._on_recognizer_event(event)
            return applied

    def _is_current(self, session_id: str | None) -> bool:
        return self._session is not None and self._session.session_id == session_id

    def _on_capture_event(self, event) -> int:
        if not self._is_current(event.session_id):
            return 0
        session = self._session

        if isinstance(event, ChunkCaptured):
            session.chunk_count += 1
        elif isinstance(event, ArtifactFinalized):
            if session.artifact is None:
                session.artifact = event.artifact
        elif isinstance(event, CaptureFailed):
            if self._state is not SessionState.RECORDING:
                return 0
            self._fail_recording(event.error)
        return 1

    def _on_recognizer_event(self, event, finals_only: bool = False) -> int:
        if not self._is_current(event.session_id):
            return 0
        session = self._session
        recording = self._state is SessionState.RECORDING

        if isinstance(event, Hypothesis):
            if not recording:
                return 0
            if event.is_final:
                session.add_final(event.text, event.confidence)
            elif not finals_only:
                session.interim_text = event.text
        elif isinstance(event, RecognizerStarted):
            session.listening = recording and not finals_only
        elif isinstance(event, RecognizerEnded):
            session.listening = False
        elif isinstance(event, RecognizerFailed):
            error = event.error
            if error.fatal and recording and not finals_only:
                self._fail_recording(error)
            else:
                session.error_message = error.message
                self._notify("warning", error=error, message=error.message)
        return 1

    def _fail_recording(self, error: TranscriptionError) -> None:
        step = transition(self._state, CaptureFatal())
        self._session.error_message = error.message
        logger.error("Recording failed: %s", error.message)
        self._run_effects([e for e in step.effects if e is not Effect.PUBLISH_ERROR])
        self._set_state(step.state)
        self._notify("error", error=error, message=error.user_message)

    def _discard_pending_events(self) -> None:
        self.capture.events.drain()
        if self.recognizer is not None:
            self.recognizer.events.drain()

    # -- effects ------------------------------------------------------------

    def _run_effects(self, effects) -> None:
        for effect in effects:
            logger.debug("Effect %s", effect.value)
            if effect is Effect.STOP_RECOGNIZER:
                self._stop_recognizer()
            elif effect is Effect.RELEASE_CAPTURE:
                self.capture.release()
            elif effect is Effect.CANCEL_REMOTE:
                self._cancel_pending()
            elif effect is Effect.RELEASE_ARTIFACT:
                if self._session is not None:
                    self._session.release_artifact()
            elif effect is Effect.RESET_TRANSCRIPT:
                if self._session is not None:
                    self._session.reset_transcript()
            elif effect is Effect.FINALIZE_ARTIFACT:
                self._session.artifact = self.capture.stop()

    def _start_recognizer(self, session: RecordingSession) -> None:
        try:
            self.recognizer.start(session.session_id)
        except Exception as e:
            # Recording continues without local hypotheses
            logger.warning("Local recognizer failed to start: %s", e)
            session.error_message = f"Speech recognition unavailable: {e}"
            self._notify("warning", message=session.error_message)

    def _stop_recognizer(self) -> None:
        if self.recognizer is None:
            return
        self.recognizer.stop()
        # Finals that arrived before stop still count; interims are discarded
        for event in self.recognizer.events.drain():
            self._on_recognizer_event(event, finals_only=True)
        if self._session is not None:
            self._session.interim_text = ""
            self._session.listening = False

    def _cancel_pending(self) -> None:
        pending, self._pending = self._pending, None
        if pending is None:
            return
        pending.token.cancel()
        if not pending.future.done():
            pending.future.set_exception(TranscriptionCancelled())
        logger.info(
            "Cancelled transcription request %d for session %s",
            pending.request_id,
            pending.session_id,
        )

    def _reset_to_idle(self) -> None:
        if self._session is not None:
            self._session.release_artifact()
        self._session = None
        self._set_state(SessionState.IDLE)

    # -- remote -------------------------------------------------------------

    def _run_remote(self, pending: _PendingRequest, artifact: AudioArtifact, local_text: str) -> None:
        try:
            result = self.client.transcribe(artifact, pending.options, local_text, pending.token)
        except TranscriptionError as e:
            self._complete(pending, error=e)
        except Exception as e:
            logger.exception("Unexpected error during enhanced transcription")
            self._complete(pending, error=TranscriptionFailed(str(e), cause=e))
        else:
            self._complete(pending, result=result)

    def _complete(
        self,
        pending: _PendingRequest,
        result: TranscriptionResult | None = None,
        error: TranscriptionError | None = None,
    ) -> None:
        with self._lock:
            if (
                self._pending is not pending
                or pending.token.cancelled
                or not self._is_current(pending.session_id)
            ):
                logger.info(
                    "Dropping stale transcription response for session %s (request %d)",
                    pending.session_id,
                    pending.request_id,
                )
                outcome = TranscriptionCancelled()
            else:
                self._pending = None
                outcome = self._resolve(pending, result, error)

        if pending.future.done():
            return
        if isinstance(outcome, TranscriptionResult):
            pending.future.set_result(outcome)
        else:
            pending.future.set_exception(outcome)

    def _resolve(
        self,
        pending: _PendingRequest,
        result: TranscriptionResult | None,
        error: TranscriptionError | None,
    ) -> TranscriptionResult | TranscriptionError:
        session = self._session

        if error is None:
            step = transition(self._state, RemoteSucceeded())
            self._publish(session, result, step.state)
            return result

        logger.warning("Enhanced transcription failed: %s", error.message)
        try:
            fallback_result = self.fallback.resolve(
                error, session.segments, pending.options, session.session_id
            )
        except TranscriptionFailed as failed:
            step = transition(self._state, RemoteFailed())
            session.error_message = failed.message
            self._set_state(step.state)
            self._notify("error", error=failed, message=failed.user_message)
            return failed

        step = transition(self._state, FallbackApplied())
        self._publish(session, fallback_result, step.state, fallback=True)
        return fallback_result

    def _publish(
        self,
        session: RecordingSession,
        result: TranscriptionResult,
        state: SessionState,
        fallback: bool = False,
    ) -> None:
        result.session_id = session.session_id
        session.result = result
        session.apply_quality(result.quality, fallback=fallback)
        if result.warning:
            session.error_message = result.warning
        self._set_state(state)
        if result.warning:
            self._notify("warning", message=result.warning)
        self._notify("result", result=result)
        logger.info(
            "Transcription %s (session %s, quality %s, source %s, %d medical terms)",
            "completed with fallback" if fallback else "completed",
            session.session_id,
            result.quality.value,
            result.source.value,
            len(result.medical_terms),
        )

    # -- notifications ------------------------------------------------------

    def _set_state(self, state: SessionState) -> None:
        previous, self._state = self._state, state
        if self._session is not None:
            self._session.state = state
        if previous is not state:
            logger.debug("State %s -> %s", previous.value, state.value)
            self._notify("state")

    def _notify(
        self,
        kind: str,
        result: TranscriptionResult | None = None,
        error: TranscriptionError | None = None,
        message: str | None = None,
    ) -> None:
        notification = Notification(
            kind=kind,
            state=self._state,
            session_id=self._session.session_id if self._session else None,
            result=result,
            error=error,
            message=message,
        )
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                logger.exception("Listener raised while handling %s notification", kind)
