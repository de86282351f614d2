"""
Symptom Scribe

Hybrid voice transcription for symptom reporting: live local hypotheses
while recording, then an enhanced medical transcription of the recorded
audio, with the local transcript as fallback.

Usage:
    from symptom_scribe import TranscriptionCoordinator

    coordinator = TranscriptionCoordinator.from_config("configs/default.yaml")
    coordinator.start()
    ...
    coordinator.stop()
    result = coordinator.transcribe()
    print(result.text)

Author: Cleansheet LLC
License: CC BY 4.0
"""

from symptom_scribe.coordinator import (
    AppConfig,
    SessionState,
    TranscriptionCoordinator,
    load_config,
)
from symptom_scribe.errors import TranscriptionError
from symptom_scribe.transcription import (
    Quality,
    TranscriptionMode,
    TranscriptionOptions,
    TranscriptionResult,
)

__version__ = "0.1.0"
__author__ = "Cleansheet LLC"
__license__ = "CC BY 4.0"

__all__ = [
    "AppConfig",
    "SessionState",
    "TranscriptionCoordinator",
    "load_config",
    "TranscriptionError",
    "Quality",
    "TranscriptionMode",
    "TranscriptionOptions",
    "TranscriptionResult",
    "__version__",
]
