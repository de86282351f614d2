"""
Transcript Data Types

Data models for transcript segments and transcription results.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TranscriptionMode(str, Enum):
    HYBRID = "hybrid"
    LOCAL_ONLY = "local-only"
    REMOTE_ONLY = "remote-only"

    @classmethod
    def parse(cls, value: "str | TranscriptionMode") -> "TranscriptionMode":
        """Parse a mode, accepting the legacy realtime/elevenlabs spellings."""
        if isinstance(value, cls):
            return value
        aliases = {"realtime": cls.LOCAL_ONLY, "elevenlabs": cls.REMOTE_ONLY}
        normalized = str(value).strip().lower().replace("_", "-")
        if normalized in aliases:
            return aliases[normalized]
        return cls(normalized)


class Quality(str, Enum):
    DRAFT = "draft"
    FINAL = "final"

    @property
    def rank(self) -> int:
        return 1 if self is Quality.FINAL else 0


class ResultSource(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
    HYBRID = "hybrid"


class SegmentSource(str, Enum):
    LOCAL_INTERIM = "local-interim"
    LOCAL_FINAL = "local-final"
    REMOTE = "remote"


@dataclass
class TranscriptWord:
    """A single word with timing information."""

    text: str
    start_time: float
    end_time: float
    confidence: float | None = None

    @property
    def duration(self) -> float:
        """Duration of the word in seconds."""
        return self.end_time - self.start_time

    def to_dict(self) -> dict[str, Any]:
        return {
            "word": self.text,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TranscriptWord":
        return cls(
            text=data.get("word", data.get("text", "")),
            start_time=float(data.get("start_time", 0.0)),
            end_time=float(data.get("end_time", 0.0)),
            confidence=data.get("confidence"),
        )


@dataclass
class TranscriptSegment:
    """A piece of transcript text tagged with where it came from."""

    text: str
    source: SegmentSource
    confidence: float | None = None
    speaker: str | None = None
    start_time: float | None = None
    end_time: float | None = None

    @property
    def duration(self) -> float | None:
        if self.start_time is None or self.end_time is None:
            return None
        return self.end_time - self.start_time

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "source": self.source.value,
            "confidence": self.confidence,
            "speaker": self.speaker,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }

    @classmethod
    def from_speaker_turn(cls, data: dict[str, Any]) -> "TranscriptSegment":
        """Create a remote segment from a diarized speaker turn."""
        return cls(
            text=data.get("text", ""),
            source=SegmentSource.REMOTE,
            speaker=data.get("speaker"),
            start_time=data.get("start_time"),
            end_time=data.get("end_time"),
        )


@dataclass
class TranscriptionResult:
    """The published transcript of a session."""

    text: str
    quality: Quality
    source: ResultSource
    medical_terms: list[str] = field(default_factory=list)
    speakers: list[TranscriptSegment] = field(default_factory=list)
    words: list[TranscriptWord] = field(default_factory=list)
    confidence: float | None = None
    processing_time_ms: float | None = None
    warning: str | None = None
    session_id: str | None = None

    @property
    def is_final(self) -> bool:
        return self.quality is Quality.FINAL

    @property
    def word_count(self) -> int:
        if not self.text:
            return 0
        return len(self.text.split())

    def to_dict(self) -> dict[str, Any]:
        return {
            "transcript": self.text,
            "quality": self.quality.value,
            "source": self.source.value,
            "medicalTermsDetected": list(self.medical_terms),
            "speakers": [s.to_dict() for s in self.speakers],
            "words": [w.to_dict() for w in self.words],
            "confidence": self.confidence,
            "processingTime": self.processing_time_ms,
            "warning": self.warning,
            "sessionId": self.session_id,
        }
