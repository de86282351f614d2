"""
Recognition Module

Local, low-latency speech recognition that runs alongside capture.
"""

from symptom_scribe.recognition.engine import EngineCallbacks, SpeechEngine
from symptom_scribe.recognition.local_engine import LocalEngineConfig, LocalModelEngine
from symptom_scribe.recognition.recognizer import LocalRecognizer, error_for_code

__all__ = [
    "EngineCallbacks",
    "SpeechEngine",
    "LocalEngineConfig",
    "LocalModelEngine",
    "LocalRecognizer",
    "error_for_code",
]
