"""
Playback

Plays an artifact's playback handle with explicit playback preferences.
"""

from dataclasses import dataclass
import logging

import numpy as np

from symptom_scribe.capture.audio_utils import PlaybackHandle

logger = logging.getLogger(__name__)


@dataclass
class PlaybackConfig:
    """Playback preferences, passed explicitly by the caller."""

    volume: float = 1.0
    device: int | str | None = None
    blocking: bool = True

    def __post_init__(self):
        if not 0.0 <= self.volume <= 1.0:
            raise ValueError(f"volume must be between 0 and 1, got {self.volume}")


def play_artifact(handle: PlaybackHandle, config: PlaybackConfig | None = None) -> None:
    """Play the audio behind a playback handle."""
    import sounddevice as sd
    import soundfile as sf

    config = config or PlaybackConfig()
    data, sample_rate = sf.read(str(handle.path), dtype="float32")
    data = np.clip(data * config.volume, -1.0, 1.0)

    logger.debug("Playing %s at volume %.2f", handle.artifact_id, config.volume)
    sd.play(data, sample_rate, device=config.device)
    if config.blocking:
        sd.wait()
