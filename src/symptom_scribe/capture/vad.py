"""
Voice Activity Detection (VAD)

Speech/silence classification for audio chunks, used by the local engine
to find utterance boundaries.
"""

from dataclasses import dataclass

import numpy as np

from symptom_scribe.capture.audio_utils import AudioChunk


@dataclass
class VADConfig:
    """Configuration for voice activity detection."""

    # Energy-based VAD settings
    energy_threshold: float = 0.01

    # WebRTC VAD settings (requires the `vad` extra)
    use_webrtc: bool = False
    webrtc_mode: int = 3  # 0-3, higher = more aggressive
    frame_duration_ms: int = 30  # 10, 20, or 30 ms for WebRTC VAD

    def __post_init__(self):
        if self.frame_duration_ms not in (10, 20, 30):
            raise ValueError(
                f"frame_duration_ms must be 10, 20 or 30, got {self.frame_duration_ms}"
            )
        if self.webrtc_mode not in (0, 1, 2, 3):
            raise ValueError(f"webrtc_mode must be 0-3, got {self.webrtc_mode}")


class VoiceActivityDetector:
    """Detects voice activity in audio chunks."""

    def __init__(self, config: VADConfig | None = None):
        self.config = config or VADConfig()
        self._webrtc_vad = None

        if self.config.use_webrtc:
            import webrtcvad

            self._webrtc_vad = webrtcvad.Vad(self.config.webrtc_mode)

    def is_speech(self, chunk: AudioChunk) -> bool:
        """Determine if an audio chunk contains speech."""
        if self._webrtc_vad is not None and chunk.sample_rate in (8000, 16000, 32000, 48000):
            return self._is_speech_webrtc(chunk)
        return self._is_speech_energy(chunk)

    def _is_speech_energy(self, chunk: AudioChunk) -> bool:
        if len(chunk.data) == 0:
            return False
        energy = np.sqrt(np.mean(chunk.data**2))
        return bool(energy > self.config.energy_threshold)

    def _is_speech_webrtc(self, chunk: AudioChunk) -> bool:
        # WebRTC VAD requires 16-bit PCM frames of 10/20/30 ms
        audio_int16 = (np.clip(chunk.data, -1.0, 1.0) * 32767).astype(np.int16)
        frame_samples = int(chunk.sample_rate * self.config.frame_duration_ms / 1000)

        for i in range(0, len(audio_int16) - frame_samples + 1, frame_samples):
            frame = audio_int16[i : i + frame_samples]
            if self._webrtc_vad.is_speech(frame.tobytes(), chunk.sample_rate):
                return True

        return False
