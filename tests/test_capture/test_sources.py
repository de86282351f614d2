"""
Tests for host audio sources.

Copyright (c) 2024 Cleansheet LLC
License: CC BY 4.0
"""

import sys
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from symptom_scribe.capture.audio_capture import AudioCapture, CaptureConfig
from symptom_scribe.capture.sources import SoundDeviceSource, SourceSettings
from symptom_scribe.errors import DeviceUnavailable, PermissionDenied
from symptom_scribe.events import CaptureFailed


class FakePortAudioError(Exception):
    pass


@pytest.fixture
def fake_sd() -> MagicMock:
    sd = MagicMock()
    sd.PortAudioError = FakePortAudioError
    return sd


class TestSoundDeviceSource:
    """Tests for the PortAudio source."""

    def test_open_starts_stream(self, fake_sd: MagicMock):
        """Test stream parameters."""
        source = SoundDeviceSource()

        with patch.dict(sys.modules, {"sounddevice": fake_sd}):
            source.open(SourceSettings(block_samples=8000, device=1), MagicMock(), MagicMock())

        kwargs = fake_sd.InputStream.call_args[1]
        assert kwargs["samplerate"] == 16000
        assert kwargs["blocksize"] == 8000
        assert kwargs["device"] == 1
        fake_sd.InputStream.return_value.start.assert_called_once()

    def test_callback_converts_to_mono(self, fake_sd: MagicMock):
        """Test that stereo input is averaged to mono."""
        on_block = MagicMock()
        source = SoundDeviceSource()

        with patch.dict(sys.modules, {"sounddevice": fake_sd}):
            source.open(SourceSettings(channels=2), on_block, MagicMock())

        callback = fake_sd.InputStream.call_args[1]["callback"]
        stereo = np.stack([np.full(4, 0.2), np.full(4, 0.4)], axis=1)
        callback(stereo, 4, None, None)

        block = on_block.call_args[0][0]
        assert block.shape == (4,)
        assert block.dtype == np.float32
        assert block[0] == pytest.approx(0.3)

    def test_permission_error(self, fake_sd: MagicMock):
        """Test mapping of host permission failures."""
        fake_sd.InputStream.side_effect = FakePortAudioError("Permission denied by host")

        with patch.dict(sys.modules, {"sounddevice": fake_sd}):
            with pytest.raises(PermissionDenied):
                SoundDeviceSource().open(SourceSettings(), MagicMock(), MagicMock())

    def test_device_error(self, fake_sd: MagicMock):
        """Test mapping of other PortAudio failures."""
        fake_sd.InputStream.side_effect = FakePortAudioError("Invalid device")

        with patch.dict(sys.modules, {"sounddevice": fake_sd}):
            with pytest.raises(DeviceUnavailable):
                SoundDeviceSource().open(SourceSettings(), MagicMock(), MagicMock())

    def test_close_is_idempotent(self, fake_sd: MagicMock):
        """Test that the stream is closed once."""
        source = SoundDeviceSource()

        with patch.dict(sys.modules, {"sounddevice": fake_sd}):
            source.open(SourceSettings(), MagicMock(), MagicMock())

        source.close()
        source.close()

        stream = fake_sd.InputStream.return_value
        stream.stop.assert_called_once()
        stream.close.assert_called_once()

    def test_unexpected_stream_end_reported(self, fake_sd: MagicMock):
        """Test that a stream aborted by the host is reported as an error."""
        on_error = MagicMock()
        source = SoundDeviceSource()

        with patch.dict(sys.modules, {"sounddevice": fake_sd}):
            source.open(SourceSettings(), MagicMock(), on_error)

        finished = fake_sd.InputStream.call_args[1]["finished_callback"]
        finished()

        [error] = on_error.call_args[0]
        assert isinstance(error, DeviceUnavailable)

    def test_close_does_not_report_error(self, fake_sd: MagicMock):
        on_error = MagicMock()
        source = SoundDeviceSource()

        with patch.dict(sys.modules, {"sounddevice": fake_sd}):
            source.open(SourceSettings(), MagicMock(), on_error)

        finished = fake_sd.InputStream.call_args[1]["finished_callback"]
        fake_sd.InputStream.return_value.stop.side_effect = lambda: finished()
        source.close()

        on_error.assert_not_called()

    def test_capture_fails_when_stream_lost(self, fake_sd: MagicMock):
        """Test the lost stream reaching AudioCapture through the source."""
        capture = AudioCapture(CaptureConfig(), source=SoundDeviceSource())

        with patch.dict(sys.modules, {"sounddevice": fake_sd}):
            capture.start("s1")

        fake_sd.InputStream.call_args[1]["finished_callback"]()

        [event] = capture.events.drain()
        assert isinstance(event, CaptureFailed)
        assert not capture.is_capturing

    def test_list_devices(self, fake_sd: MagicMock):
        """Test that only input devices are listed."""
        fake_sd.query_devices.return_value = [
            {"name": "Speakers", "max_input_channels": 0, "default_samplerate": 48000.0},
            {"name": "USB Mic", "max_input_channels": 1, "default_samplerate": 16000.0},
        ]

        with patch.dict(sys.modules, {"sounddevice": fake_sd}):
            devices = SoundDeviceSource.list_devices()

        assert devices == [
            {"index": 1, "name": "USB Mic", "channels": 1, "sample_rate": 16000.0}
        ]
