"""
Transcription Options

Per-request options for enhanced transcription.
"""

from dataclasses import dataclass, replace
from typing import Any

from symptom_scribe.errors import InvalidConfiguration
from symptom_scribe.transcription.transcript_types import TranscriptionMode

MIN_SPEAKERS = 2
MAX_SPEAKERS = 6


@dataclass(frozen=True)
class TranscriptionOptions:
    """Options sent with an enhanced transcription request."""

    enable_speaker_diarization: bool = False
    expected_speakers: int = 2
    use_medical_optimization: bool = True
    transcription_mode: TranscriptionMode = TranscriptionMode.HYBRID
    fallback_to_realtime: bool = True

    def validate(self) -> "TranscriptionOptions":
        """Return self, or raise InvalidConfiguration."""
        if not isinstance(self.transcription_mode, TranscriptionMode):
            raise InvalidConfiguration(
                f"Unknown transcription mode: {self.transcription_mode!r}"
            )
        if isinstance(self.expected_speakers, bool) or not isinstance(
            self.expected_speakers, int
        ):
            raise InvalidConfiguration(
                f"expected_speakers must be an integer, got {self.expected_speakers!r}"
            )
        if not MIN_SPEAKERS <= self.expected_speakers <= MAX_SPEAKERS:
            raise InvalidConfiguration(
                f"expected_speakers must be between {MIN_SPEAKERS} and {MAX_SPEAKERS}, "
                f"got {self.expected_speakers}"
            )
        return self

    def with_mode(self, mode: TranscriptionMode | str) -> "TranscriptionOptions":
        return replace(self, transcription_mode=TranscriptionMode.parse(mode))

    def to_form_fields(self, realtime_transcript: str | None = None) -> dict[str, str]:
        """Multipart form fields for the remote request."""
        fields = {
            "enableSpeakerDiarization": _flag(self.enable_speaker_diarization),
            "useMedicalOptimization": _flag(self.use_medical_optimization),
            "transcriptionMode": self.transcription_mode.value,
            "fallbackToRealtime": _flag(self.fallback_to_realtime),
        }
        if self.enable_speaker_diarization:
            fields["expectedSpeakers"] = str(self.expected_speakers)
        if realtime_transcript:
            fields["realtimeTranscript"] = realtime_transcript
        return fields

    def to_dict(self) -> dict[str, Any]:
        return {
            "enable_speaker_diarization": self.enable_speaker_diarization,
            "expected_speakers": self.expected_speakers,
            "use_medical_optimization": self.use_medical_optimization,
            "transcription_mode": self.transcription_mode.value,
            "fallback_to_realtime": self.fallback_to_realtime,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TranscriptionOptions":
        """Create options from a dictionary, accepting camelCase keys too."""

        def pick(snake: str, camel: str, default):
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        try:
            mode = TranscriptionMode.parse(
                pick("transcription_mode", "transcriptionMode", TranscriptionMode.HYBRID)
            )
        except ValueError as e:
            raise InvalidConfiguration(str(e)) from e

        return cls(
            enable_speaker_diarization=bool(
                pick("enable_speaker_diarization", "enableSpeakerDiarization", False)
            ),
            expected_speakers=pick("expected_speakers", "expectedSpeakers", 2),
            use_medical_optimization=bool(
                pick("use_medical_optimization", "useMedicalOptimization", True)
            ),
            transcription_mode=mode,
            fallback_to_realtime=bool(
                pick("fallback_to_realtime", "fallbackToRealtime", True)
            ),
        ).validate()


def _flag(value: bool) -> str:
    return "true" if value else "false"
