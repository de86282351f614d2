"""
Audio Sources

Host-specific microphone access behind a small capability interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable
import logging

import numpy as np

from symptom_scribe.errors import DeviceUnavailable, PermissionDenied, TranscriptionError

logger = logging.getLogger(__name__)

BlockCallback = Callable[[np.ndarray], None]
ErrorCallback = Callable[[TranscriptionError], None]


@dataclass
class SourceSettings:
    """Stream parameters requested from a host source."""

    sample_rate: int = 16000
    channels: int = 1
    block_samples: int = 16000
    dtype: str = "float32"
    device: int | str | None = None  # None = default device
    echo_cancellation: bool = True
    noise_suppression: bool = True


class AudioSource(ABC):
    """Exclusive microphone stream for one capture."""

    @abstractmethod
    def open(
        self, settings: SourceSettings, on_block: BlockCallback, on_error: ErrorCallback
    ) -> None:
        """Acquire the device and start delivering blocks.

        Raises PermissionDenied or DeviceUnavailable if acquisition fails.
        A stream lost after that is reported through on_error, possibly from
        the host audio thread.
        """

    @abstractmethod
    def close(self) -> None:
        """Stop delivery and release the device."""


_PERMISSION_MARKERS = ("permission", "access denied", "not permitted", "not allowed")


class SoundDeviceSource(AudioSource):
    """Desktop microphone through PortAudio (sounddevice)."""

    def __init__(self):
        self._stream = None

    def _callback(self, on_block: BlockCallback):
        def callback(indata: np.ndarray, frames: int, time_info, status) -> None:
            if status:
                logger.warning("Audio capture status: %s", status)

            # Convert to mono if needed
            if len(indata.shape) > 1:
                data = np.mean(indata, axis=1)
            else:
                data = indata.flatten()

            on_block(data.astype(np.float32))

        return callback

    def _finished_callback(self, on_error: ErrorCallback):
        def finished() -> None:
            # close() clears _stream first, so only unexpected ends get here
            if self._stream is not None:
                logger.error("Audio input stream ended unexpectedly")
                on_error(DeviceUnavailable("Audio input stream ended unexpectedly"))

        return finished

    def open(
        self, settings: SourceSettings, on_block: BlockCallback, on_error: ErrorCallback
    ) -> None:
        import sounddevice as sd

        if settings.echo_cancellation or settings.noise_suppression:
            logger.debug(
                "PortAudio input has no echo cancellation or noise suppression; "
                "relying on the device driver"
            )

        try:
            stream = sd.InputStream(
                samplerate=settings.sample_rate,
                channels=settings.channels,
                dtype=settings.dtype,
                blocksize=settings.block_samples,
                device=settings.device,
                callback=self._callback(on_block),
                finished_callback=self._finished_callback(on_error),
            )
            stream.start()
        except sd.PortAudioError as e:
            message = str(e)
            if any(marker in message.lower() for marker in _PERMISSION_MARKERS):
                raise PermissionDenied(f"Microphone access denied: {message}") from e
            raise DeviceUnavailable(f"Unable to open audio input: {message}") from e

        self._stream = stream

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()

    @staticmethod
    def list_devices() -> list[dict]:
        """List available audio input devices."""
        import sounddevice as sd

        devices = sd.query_devices()
        input_devices = []

        for i, device in enumerate(devices):
            if device["max_input_channels"] > 0:
                input_devices.append(
                    {
                        "index": i,
                        "name": device["name"],
                        "channels": device["max_input_channels"],
                        "sample_rate": device["default_samplerate"],
                    }
                )

        return input_devices
