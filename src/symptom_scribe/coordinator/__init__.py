"""
Coordinator Module

Session state machine and the coordinator that owns it.
"""

from symptom_scribe.coordinator.config import AppConfig, RecognitionConfig, load_config
from symptom_scribe.coordinator.coordinator import (
    CoordinatorSnapshot,
    Notification,
    TranscriptionCoordinator,
)
from symptom_scribe.coordinator.session import RecordingSession
from symptom_scribe.coordinator.state_machine import SessionState, StartPolicy

__all__ = [
    "AppConfig",
    "RecognitionConfig",
    "load_config",
    "CoordinatorSnapshot",
    "Notification",
    "TranscriptionCoordinator",
    "RecordingSession",
    "SessionState",
    "StartPolicy",
]
