"""
Recording Session

Mutable state of one capture cycle. Only the coordinator writes to it.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid

from symptom_scribe.capture.audio_utils import AudioArtifact, PlaybackHandle
from symptom_scribe.coordinator.state_machine import SessionState
from symptom_scribe.transcription.fallback import local_final_text
from symptom_scribe.transcription.options import TranscriptionOptions
from symptom_scribe.transcription.transcript_types import (
    Quality,
    SegmentSource,
    TranscriptionMode,
    TranscriptionResult,
    TranscriptSegment,
)


def new_session_id() -> str:
    return uuid.uuid4().hex


@dataclass
class RecordingSession:
    """One start-to-clear recording and transcription cycle."""

    options: TranscriptionOptions
    session_id: str = field(default_factory=new_session_id)
    state: SessionState = SessionState.RECORDING
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    segments: list[TranscriptSegment] = field(default_factory=list)
    interim_text: str = ""
    listening: bool = False
    chunk_count: int = 0

    artifact: AudioArtifact | None = None
    playback: PlaybackHandle | None = None

    result: TranscriptionResult | None = None
    quality: Quality | None = None
    error_message: str | None = None

    @property
    def mode(self) -> TranscriptionMode:
        return self.options.transcription_mode

    @property
    def local_transcript(self) -> str:
        return local_final_text(self.segments)

    @property
    def has_audio_data(self) -> bool:
        return self.artifact is not None and not self.artifact.is_empty

    def add_final(self, text: str, confidence: float | None = None) -> None:
        self.segments.append(
            TranscriptSegment(text=text, source=SegmentSource.LOCAL_FINAL, confidence=confidence)
        )
        self.interim_text = ""
        self.apply_quality(Quality.DRAFT)

    def apply_quality(self, quality: Quality, fallback: bool = False) -> None:
        """Set the quality grade; final never reverts except through fallback."""
        if self.quality is not None and quality.rank < self.quality.rank and not fallback:
            return
        self.quality = quality

    def release_artifact(self) -> None:
        """Revoke the playback handle, then drop the artifact."""
        if self.playback is not None:
            self.playback.revoke()
            self.playback = None
        self.artifact = None

    def reset_transcript(self) -> None:
        self.segments = []
        self.interim_text = ""
        self.result = None
        self.quality = None
        self.error_message = None
