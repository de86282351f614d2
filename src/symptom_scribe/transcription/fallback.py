"""
Fallback Policy

Substitutes the accumulated local transcript when the remote pass fails.
"""

from typing import Callable, Iterable
import logging

from symptom_scribe.errors import (
    NetworkFailure,
    ServerProcessingFailure,
    TranscriptionError,
    TranscriptionFailed,
)
from symptom_scribe.transcription.options import TranscriptionOptions
from symptom_scribe.transcription.transcript_types import (
    Quality,
    ResultSource,
    SegmentSource,
    TranscriptionMode,
    TranscriptionResult,
    TranscriptSegment,
)

logger = logging.getLogger(__name__)

FALLBACK_WARNING = "Enhanced transcription failed, using real-time transcript as fallback"


def local_final_text(segments: Iterable[TranscriptSegment]) -> str:
    """Join local-final segments; interim hypotheses never count."""
    parts = [
        s.text.strip()
        for s in segments
        if s.source is SegmentSource.LOCAL_FINAL and s.text.strip()
    ]
    return " ".join(parts)


class FallbackPolicy:
    """Decides what to publish when the remote transcription fails."""

    def __init__(self, term_detector: Callable[[str], list[str]] | None = None):
        self.term_detector = term_detector

    @staticmethod
    def is_recoverable(error: Exception) -> bool:
        return isinstance(error, (NetworkFailure, ServerProcessingFailure))

    def resolve(
        self,
        error: Exception,
        segments: Iterable[TranscriptSegment],
        options: TranscriptionOptions,
        session_id: str | None = None,
    ) -> TranscriptionResult:
        """Return a draft local result, or raise TranscriptionFailed."""
        if not self.is_recoverable(error):
            if isinstance(error, TranscriptionFailed):
                raise error
            raise TranscriptionFailed(cause=error) from error

        if options.transcription_mode is TranscriptionMode.REMOTE_ONLY:
            raise TranscriptionFailed(
                f"Enhanced transcription failed in remote-only mode: {_describe(error)}",
                cause=error,
            ) from error

        if not options.fallback_to_realtime:
            raise TranscriptionFailed(
                f"Enhanced transcription failed and fallback is disabled: {_describe(error)}",
                cause=error,
            ) from error

        text = local_final_text(segments)
        if not text:
            raise TranscriptionFailed(
                f"Enhanced transcription failed and no real-time transcript is available: "
                f"{_describe(error)}",
                cause=error,
            ) from error

        logger.warning("%s (%s)", FALLBACK_WARNING, _describe(error))

        terms = self.term_detector(text) if self.term_detector else []
        return TranscriptionResult(
            text=text,
            quality=Quality.DRAFT,
            source=ResultSource.LOCAL,
            medical_terms=terms,
            warning=FALLBACK_WARNING,
            session_id=session_id,
        )


def _describe(error: Exception) -> str:
    if isinstance(error, TranscriptionError):
        return error.message
    return str(error)
