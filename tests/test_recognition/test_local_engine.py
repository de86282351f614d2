"""
Tests for the local model speech engine.

Copyright (c) 2024 Cleansheet LLC
License: CC BY 4.0
"""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from symptom_scribe.recognition.local_engine import LocalEngineConfig, LocalModelEngine


@pytest.fixture
def engine() -> LocalModelEngine:
    """Engine with the model load skipped."""
    engine = LocalModelEngine(LocalEngineConfig(no_speech_timeout_ms=3000))
    engine._initialized = True
    return engine


def run_with(engine: LocalModelEngine, chunks) -> MagicMock:
    """Queue chunks, then run the worker loop to completion on this thread."""
    callbacks = MagicMock()
    for chunk in chunks:
        engine.feed(chunk)
    engine._queue.put(None)
    engine._run(callbacks)
    return callbacks


class TestLocalEngineConfig:
    def test_defaults(self):
        config = LocalEngineConfig()

        assert config.device == "cpu"
        assert config.interim_interval_ms == 1500
        assert config.min_silence_duration_ms == 700
        assert config.vad.energy_threshold == 0.01


class TestLocalModelEngine:
    """Tests for utterance segmentation and callbacks."""

    def test_consumes_audio(self, engine: LocalModelEngine):
        assert engine.consumes_audio is True

    def test_interim_then_final(self, engine: LocalModelEngine, chunk_factory, sample_audio_with_speech):
        """Test interim hypotheses during speech and a final one after silence."""
        speech = [chunk_factory(sample_audio_with_speech, i) for i in range(2)]
        silence = chunk_factory(np.zeros(16000, dtype=np.float32), 2)

        with patch.object(engine, "transcribe_samples", return_value="sore throat") as transcribe:
            callbacks = run_with(engine, speech + [silence])

        callbacks.on_start.assert_called_once()
        callbacks.on_interim.assert_called_once_with("sore throat", None)
        callbacks.on_final.assert_called_once_with("sore throat", None)
        callbacks.on_end.assert_called_once()
        # Final pass covers both speech chunks
        assert len(transcribe.call_args[0][0]) == 32000

    def test_open_utterance_discarded_at_stop(self, engine: LocalModelEngine, chunk_factory, sample_audio_with_speech):
        """Test that speech without trailing silence never becomes final."""
        with patch.object(engine, "transcribe_samples", return_value="fever"):
            callbacks = run_with(engine, [chunk_factory(sample_audio_with_speech)])

        callbacks.on_final.assert_not_called()
        callbacks.on_end.assert_called_once()

    def test_no_speech_timeout(self, engine: LocalModelEngine, chunk_factory):
        """Test the no-speech error after a stretch of silence."""
        silence = [chunk_factory(np.zeros(16000, dtype=np.float32), i) for i in range(3)]

        callbacks = run_with(engine, silence)

        callbacks.on_error.assert_called_once_with("no-speech", None)
        callbacks.on_final.assert_not_called()

    def test_empty_text_not_reported(self, engine: LocalModelEngine, chunk_factory, sample_audio_with_speech):
        speech = [chunk_factory(sample_audio_with_speech, i) for i in range(2)]
        silence = chunk_factory(np.zeros(16000, dtype=np.float32), 2)

        with patch.object(engine, "transcribe_samples", return_value=""):
            callbacks = run_with(engine, speech + [silence])

        callbacks.on_interim.assert_not_called()
        callbacks.on_final.assert_not_called()

    def test_transcription_error_reported(self, engine: LocalModelEngine, chunk_factory, sample_audio_with_speech):
        speech = [chunk_factory(sample_audio_with_speech, i) for i in range(2)]

        with patch.object(engine, "transcribe_samples", side_effect=RuntimeError("oom")):
            callbacks = run_with(engine, speech)

        callbacks.on_error.assert_called_once_with("engine-error", "oom")

    def test_model_load_failure_is_reported(self, chunk_factory):
        """Test that a model that cannot load reports a non-fatal engine error."""
        engine = LocalModelEngine()

        with patch.object(engine, "_load_model", side_effect=OSError("missing weights")):
            callbacks = run_with(engine, [])

        code, detail = callbacks.on_error.call_args[0]
        assert code == "engine-error"
        assert "missing weights" in detail
        callbacks.on_start.assert_not_called()
        callbacks.on_end.assert_called_once()

    def test_feed_drops_other_sample_rates(self, engine: LocalModelEngine, chunk_factory):
        engine.feed(chunk_factory(np.zeros(8000, dtype=np.float32), sample_rate=8000))

        assert engine._queue.empty()

    def test_start_and_stop_worker(self, engine: LocalModelEngine):
        """Test the worker thread lifecycle."""
        callbacks = MagicMock()

        engine.start(callbacks)
        engine.stop()

        assert not engine._worker.is_alive()
        callbacks.on_start.assert_called_once()
        callbacks.on_end.assert_called_once()
