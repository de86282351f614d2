"""
Audio Capture Module

Microphone capture, the recorded audio artifact and its playback.
"""

from symptom_scribe.capture.audio_capture import AudioCapture, CaptureConfig
from symptom_scribe.capture.audio_utils import AudioArtifact, AudioChunk, PlaybackHandle
from symptom_scribe.capture.playback import PlaybackConfig, play_artifact
from symptom_scribe.capture.sources import AudioSource, SoundDeviceSource, SourceSettings
from symptom_scribe.capture.vad import VADConfig, VoiceActivityDetector

__all__ = [
    "AudioCapture",
    "CaptureConfig",
    "AudioArtifact",
    "AudioChunk",
    "PlaybackHandle",
    "PlaybackConfig",
    "play_artifact",
    "AudioSource",
    "SoundDeviceSource",
    "SourceSettings",
    "VADConfig",
    "VoiceActivityDetector",
]
