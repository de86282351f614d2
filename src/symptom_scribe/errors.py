"""
Error Types

Exceptions raised by the capture, recognition and transcription layers.

Every error is tagged with a category so callers can tell a recording
problem (fatal to the session) from an enhancement problem (recoverable
through the local transcript).
"""

RECORDING = "recording"
ENHANCEMENT = "enhancement"


class TranscriptionError(Exception):
    """Base class for all symptom-scribe errors."""

    category: str = RECORDING
    fatal: bool = True
    default_message: str = "Transcription error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def is_recording_problem(self) -> bool:
        return self.category == RECORDING

    @property
    def user_message(self) -> str:
        """Message prefixed with the kind of problem."""
        prefix = "Recording problem" if self.is_recording_problem else "Enhancement problem"
        return f"{prefix}: {self.message}"


# Recording problems


class PermissionDenied(TranscriptionError):
    default_message = "Microphone access denied. Please allow microphone access."


class DeviceUnavailable(TranscriptionError):
    default_message = "Unable to access microphone. Please check your audio device."


class NoSpeechDetected(TranscriptionError):
    fatal = False
    default_message = "No speech detected. Please speak clearly."


class RecognizerTransientError(TranscriptionError):
    fatal = False
    default_message = "Speech recognition error"


class NoAudioCaptured(TranscriptionError):
    default_message = "No audio to transcribe. Please record audio first."


# Enhancement problems


class NetworkFailure(TranscriptionError):
    category = ENHANCEMENT
    fatal = False
    default_message = "Could not reach the transcription service"


class TranscriptionTimeout(NetworkFailure):
    default_message = "Transcription service timed out"


class ServerProcessingFailure(TranscriptionError):
    category = ENHANCEMENT
    fatal = False
    default_message = "Transcription service failed to process the audio"


class TranscriptionFailed(TranscriptionError):
    category = ENHANCEMENT
    default_message = "Unable to process audio. Please try again."

    def __init__(self, message: str | None = None, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class TranscriptionCancelled(TranscriptionError):
    category = ENHANCEMENT
    fatal = False
    default_message = "Transcription request was cancelled"


# Rejected operations


class SessionAlreadyActive(TranscriptionError):
    default_message = "A recording session is already active"


class InvalidStateTransition(TranscriptionError):
    default_message = "Operation not allowed in the current state"


class InvalidConfiguration(TranscriptionError):
    category = ENHANCEMENT
    default_message = "Invalid transcription configuration"
