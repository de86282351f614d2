"""
Session State Machine

Pure transition function for a recording session:

    Idle -> Recording -> Stopped -> Processing -> Completed
                |                       |
                +------> Failed <-------+

Any state returns to Idle on clear. transition() has no side effects; it
returns the new state and the ordered effects the coordinator must run.
"""

from dataclasses import dataclass
from enum import Enum

from symptom_scribe.errors import InvalidStateTransition, SessionAlreadyActive


class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPED = "stopped"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_STATES = frozenset({SessionState.RECORDING, SessionState.PROCESSING})


class StartPolicy(str, Enum):
    """What to do when start is requested while a session is active."""

    REJECT = "reject"
    RESTART = "restart"


class Effect(str, Enum):
    STOP_RECOGNIZER = "stop_recognizer"
    RELEASE_CAPTURE = "release_capture"
    CANCEL_REMOTE = "cancel_remote"
    RELEASE_ARTIFACT = "release_artifact"
    RESET_TRANSCRIPT = "reset_transcript"
    START_RECOGNIZER = "start_recognizer"
    FINALIZE_ARTIFACT = "finalize_artifact"
    SUBMIT_REMOTE = "submit_remote"
    PUBLISH_RESULT = "publish_result"
    PUBLISH_ERROR = "publish_error"


# Effects that tear down a running session
TEARDOWN_EFFECTS = frozenset(
    {Effect.STOP_RECOGNIZER, Effect.RELEASE_CAPTURE, Effect.CANCEL_REMOTE}
)


@dataclass(frozen=True)
class Start:
    with_recognizer: bool = True
    policy: StartPolicy = StartPolicy.REJECT


@dataclass(frozen=True)
class Stop:
    pass


@dataclass(frozen=True)
class CaptureFatal:
    pass


@dataclass(frozen=True)
class RequestEnhancement:
    pass


@dataclass(frozen=True)
class RemoteSucceeded:
    pass


@dataclass(frozen=True)
class FallbackApplied:
    pass


@dataclass(frozen=True)
class RemoteFailed:
    pass


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class Transition:
    state: SessionState
    effects: tuple[Effect, ...] = ()


def _teardown(state: SessionState) -> tuple[Effect, ...]:
    if state is SessionState.RECORDING:
        return (Effect.STOP_RECOGNIZER, Effect.RELEASE_CAPTURE)
    if state is SessionState.PROCESSING:
        return (Effect.CANCEL_REMOTE,)
    return ()


def _require(state: SessionState, allowed: tuple[SessionState, ...], event) -> None:
    if state not in allowed:
        raise InvalidStateTransition(
            f"{type(event).__name__} is not allowed while {state.value}"
        )


def transition(state: SessionState, event) -> Transition:
    """Compute the next state and effects for an event."""
    if isinstance(event, Start):
        if state in ACTIVE_STATES and event.policy is not StartPolicy.RESTART:
            raise SessionAlreadyActive(
                f"Cannot start a new recording while {state.value}"
            )
        effects = _teardown(state) + (Effect.RELEASE_ARTIFACT, Effect.RESET_TRANSCRIPT)
        if event.with_recognizer:
            effects += (Effect.START_RECOGNIZER,)
        return Transition(SessionState.RECORDING, effects)

    if isinstance(event, Stop):
        _require(state, (SessionState.RECORDING,), event)
        return Transition(
            SessionState.STOPPED, (Effect.STOP_RECOGNIZER, Effect.FINALIZE_ARTIFACT)
        )

    if isinstance(event, CaptureFatal):
        _require(state, (SessionState.RECORDING,), event)
        return Transition(
            SessionState.FAILED,
            (Effect.STOP_RECOGNIZER, Effect.RELEASE_CAPTURE, Effect.PUBLISH_ERROR),
        )

    if isinstance(event, RequestEnhancement):
        _require(state, (SessionState.STOPPED, SessionState.FAILED), event)
        return Transition(SessionState.PROCESSING, (Effect.SUBMIT_REMOTE,))

    if isinstance(event, (RemoteSucceeded, FallbackApplied)):
        _require(state, (SessionState.PROCESSING,), event)
        return Transition(SessionState.COMPLETED, (Effect.PUBLISH_RESULT,))

    if isinstance(event, RemoteFailed):
        _require(state, (SessionState.PROCESSING,), event)
        return Transition(SessionState.FAILED, (Effect.PUBLISH_ERROR,))

    if isinstance(event, Clear):
        return Transition(
            SessionState.IDLE,
            _teardown(state) + (Effect.RELEASE_ARTIFACT, Effect.RESET_TRANSCRIPT),
        )

    raise InvalidStateTransition(f"Unknown event: {event!r}")
