"""
Transcription Module

Enhanced remote transcription and the local fallback policy.
"""

from symptom_scribe.transcription.fallback import FallbackPolicy, local_final_text
from symptom_scribe.transcription.options import TranscriptionOptions
from symptom_scribe.transcription.remote_client import (
    CancellationToken,
    RemoteClientConfig,
    RemoteTranscriptionClient,
)
from symptom_scribe.transcription.transcript_types import (
    Quality,
    ResultSource,
    SegmentSource,
    TranscriptionMode,
    TranscriptionResult,
    TranscriptSegment,
    TranscriptWord,
)

__all__ = [
    "FallbackPolicy",
    "local_final_text",
    "TranscriptionOptions",
    "CancellationToken",
    "RemoteClientConfig",
    "RemoteTranscriptionClient",
    "Quality",
    "ResultSource",
    "SegmentSource",
    "TranscriptionMode",
    "TranscriptionResult",
    "TranscriptSegment",
    "TranscriptWord",
]
