"""
Application Configuration

Configuration management for the transcription coordinator.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from symptom_scribe.capture.audio_capture import CaptureConfig
from symptom_scribe.capture.playback import PlaybackConfig
from symptom_scribe.capture.vad import VADConfig
from symptom_scribe.coordinator.state_machine import StartPolicy
from symptom_scribe.errors import InvalidConfiguration
from symptom_scribe.recognition.local_engine import LocalEngineConfig
from symptom_scribe.transcription.options import TranscriptionOptions
from symptom_scribe.transcription.remote_client import RemoteClientConfig


@dataclass
class RecognitionConfig:
    """Local recognition configuration."""

    enabled: bool = True
    model_path: str = "openai/whisper-tiny.en"
    device: str = "cpu"
    precision: str = "fp32"
    interim_interval_ms: float = 1500
    min_silence_duration_ms: float = 700
    no_speech_timeout_ms: float = 8000
    vad_energy_threshold: float = 0.01
    use_webrtc_vad: bool = False

    def engine_config(self) -> LocalEngineConfig:
        return LocalEngineConfig(
            model_path=self.model_path,
            device=self.device,
            precision=self.precision,
            interim_interval_ms=self.interim_interval_ms,
            min_silence_duration_ms=self.min_silence_duration_ms,
            no_speech_timeout_ms=self.no_speech_timeout_ms,
            vad=VADConfig(
                energy_threshold=self.vad_energy_threshold,
                use_webrtc=self.use_webrtc_vad,
            ),
        )


@dataclass
class AppConfig:
    """Complete configuration."""

    name: str = "symptom-scribe"

    capture: CaptureConfig = field(default_factory=CaptureConfig)
    recognition: RecognitionConfig = field(default_factory=RecognitionConfig)
    remote: RemoteClientConfig = field(default_factory=RemoteClientConfig)
    transcription: TranscriptionOptions = field(default_factory=TranscriptionOptions)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    start_policy: StartPolicy = StartPolicy.REJECT

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AppConfig":
        """Create config from dictionary."""
        data = data or {}
        config = cls()

        if "name" in data:
            config.name = data["name"]

        if "start_policy" in data:
            try:
                config.start_policy = StartPolicy(data["start_policy"])
            except ValueError as e:
                raise InvalidConfiguration(
                    f"start_policy must be 'reject' or 'restart', got {data['start_policy']!r}"
                ) from e

        if "capture" in data:
            cap = data["capture"]
            config.capture = CaptureConfig(
                sample_rate=cap.get("sample_rate", 16000),
                channels=cap.get("channels", 1),
                chunk_duration_ms=cap.get("chunk_duration_ms", 1000),
                device=cap.get("device"),
                echo_cancellation=cap.get("echo_cancellation", True),
                noise_suppression=cap.get("noise_suppression", True),
            )

        if "recognition" in data:
            rec = data["recognition"]
            config.recognition = RecognitionConfig(
                enabled=rec.get("enabled", True),
                model_path=rec.get("model_path", "openai/whisper-tiny.en"),
                device=rec.get("device", "cpu"),
                precision=rec.get("precision", "fp32"),
                interim_interval_ms=rec.get("interim_interval_ms", 1500),
                min_silence_duration_ms=rec.get("min_silence_duration_ms", 700),
                no_speech_timeout_ms=rec.get("no_speech_timeout_ms", 8000),
                vad_energy_threshold=rec.get("vad_energy_threshold", 0.01),
                use_webrtc_vad=rec.get("use_webrtc_vad", False),
            )

        if "remote" in data:
            rem = data["remote"]
            defaults = RemoteClientConfig()
            config.remote = RemoteClientConfig(
                base_url=rem.get("base_url", defaults.base_url),
                medical_path=rem.get("medical_path", defaults.medical_path),
                generic_path=rem.get("generic_path", defaults.generic_path),
                health_path=rem.get("health_path", defaults.health_path),
                api_key=rem.get("api_key"),
                timeout=float(rem.get("timeout", defaults.timeout)),
            )

        if "transcription" in data:
            config.transcription = TranscriptionOptions.from_dict(data["transcription"])

        if "playback" in data:
            play = data["playback"]
            config.playback = PlaybackConfig(
                volume=play.get("volume", 1.0),
                device=play.get("device"),
                blocking=play.get("blocking", True),
            )

        return config

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "name": self.name,
            "start_policy": self.start_policy.value,
            "capture": {
                "sample_rate": self.capture.sample_rate,
                "channels": self.capture.channels,
                "chunk_duration_ms": self.capture.chunk_duration_ms,
                "device": self.capture.device,
                "echo_cancellation": self.capture.echo_cancellation,
                "noise_suppression": self.capture.noise_suppression,
            },
            "recognition": {
                "enabled": self.recognition.enabled,
                "model_path": self.recognition.model_path,
                "device": self.recognition.device,
                "precision": self.recognition.precision,
                "interim_interval_ms": self.recognition.interim_interval_ms,
                "min_silence_duration_ms": self.recognition.min_silence_duration_ms,
                "no_speech_timeout_ms": self.recognition.no_speech_timeout_ms,
                "vad_energy_threshold": self.recognition.vad_energy_threshold,
                "use_webrtc_vad": self.recognition.use_webrtc_vad,
            },
            "remote": {
                "base_url": self.remote.base_url,
                "medical_path": self.remote.medical_path,
                "generic_path": self.remote.generic_path,
                "health_path": self.remote.health_path,
                "timeout": self.remote.timeout,
            },
            "transcription": self.transcription.to_dict(),
            "playback": {
                "volume": self.playback.volume,
                "device": self.playback.device,
                "blocking": self.playback.blocking,
            },
        }


def load_config(config_path: str | Path) -> AppConfig:
    """Load configuration from YAML file."""
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    return AppConfig.from_dict(data)
