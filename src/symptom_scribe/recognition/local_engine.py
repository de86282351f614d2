"""
Local Model Engine

On-device speech engine for desktop and edge hosts. Captured chunks are
segmented into utterances with VAD and transcribed with a local
speech-to-text model.
"""

from dataclasses import dataclass, field
from pathlib import Path
import logging
import queue
import threading

import numpy as np

from symptom_scribe.capture.audio_utils import AudioChunk
from symptom_scribe.capture.vad import VADConfig, VoiceActivityDetector
from symptom_scribe.recognition.engine import EngineCallbacks, SpeechEngine

logger = logging.getLogger(__name__)

MODEL_SAMPLE_RATE = 16000


@dataclass
class LocalEngineConfig:
    """Configuration for local model inference."""

    model_path: str | Path = "openai/whisper-tiny.en"
    device: str = "cpu"  # cuda, cpu
    precision: str = "fp32"  # fp32, fp16
    interim_interval_ms: float = 1500
    min_speech_duration_ms: float = 250
    min_silence_duration_ms: float = 700
    no_speech_timeout_ms: float = 8000
    vad: VADConfig = field(default_factory=VADConfig)


class LocalModelEngine(SpeechEngine):
    """Speech engine backed by a local transformers model."""

    consumes_audio = True

    def __init__(self, config: LocalEngineConfig | None = None):
        self.config = config or LocalEngineConfig()
        self._vad = VoiceActivityDetector(self.config.vad)
        self._model = None
        self._processor = None
        self._initialized = False
        self._queue: queue.Queue[AudioChunk | None] = queue.Queue()
        self._stop_event = threading.Event()
        self._worker: threading.Thread | None = None

    def _ensure_initialized(self) -> None:
        """Lazy initialization of model."""
        if self._initialized:
            return

        self._load_model()
        self._initialized = True

    def _load_model(self) -> None:
        from transformers import AutoModelForSpeechSeq2Seq, AutoProcessor
        import torch

        if self.config.device == "cuda" and torch.cuda.is_available():
            device = "cuda"
            dtype = torch.float16 if self.config.precision == "fp16" else torch.float32
        else:
            device = "cpu"
            dtype = torch.float32

        self._processor = AutoProcessor.from_pretrained(self.config.model_path)
        self._model = AutoModelForSpeechSeq2Seq.from_pretrained(
            self.config.model_path,
            torch_dtype=dtype,
        ).to(device)
        self._device = device

    def transcribe_samples(self, samples: np.ndarray) -> str:
        """Transcribe 16 kHz mono samples to text."""
        import torch

        self._ensure_initialized()

        inputs = self._processor(
            samples,
            sampling_rate=MODEL_SAMPLE_RATE,
            return_tensors="pt",
        )
        inputs = {k: v.to(self._device) for k, v in inputs.items()}

        with torch.no_grad():
            generated_ids = self._model.generate(**inputs)

        return self._processor.batch_decode(generated_ids, skip_special_tokens=True)[0].strip()

    def start(self, callbacks: EngineCallbacks) -> None:
        if self._worker is not None and self._worker.is_alive():
            return

        self._stop_event.clear()
        self._queue = queue.Queue()
        self._worker = threading.Thread(
            target=self._run, args=(callbacks,), name="local-speech-engine", daemon=True
        )
        self._worker.start()

    def stop(self) -> None:
        self._stop_event.set()
        self._queue.put(None)
        worker = self._worker
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=5.0)

    def feed(self, chunk: AudioChunk) -> None:
        if chunk.sample_rate != MODEL_SAMPLE_RATE:
            logger.debug("Dropping chunk at %d Hz; engine expects 16 kHz", chunk.sample_rate)
            return
        self._queue.put(chunk)

    def _transcribe_utterance(self, utterance: list[AudioChunk], callbacks: EngineCallbacks) -> str:
        try:
            return self.transcribe_samples(np.concatenate([c.data for c in utterance]))
        except Exception as e:
            logger.warning("Local transcription error: %s", e)
            callbacks.on_error("engine-error", str(e))
            return ""

    def _run(self, callbacks: EngineCallbacks) -> None:
        try:
            self._ensure_initialized()
        except Exception as e:
            logger.error("Could not load speech model %s: %s", self.config.model_path, e)
            callbacks.on_error("engine-error", f"Could not load speech model: {e}")
            callbacks.on_end()
            return

        callbacks.on_start()

        utterance: list[AudioChunk] = []
        speech_ms = 0.0
        silence_ms = 0.0
        since_interim_ms = 0.0
        idle_ms = 0.0

        while not self._stop_event.is_set():
            try:
                chunk = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            if chunk is None or self._stop_event.is_set():
                break

            if self._vad.is_speech(chunk):
                utterance.append(chunk)
                speech_ms += chunk.duration_ms
                since_interim_ms += chunk.duration_ms
                silence_ms = 0.0
                idle_ms = 0.0

                if since_interim_ms >= self.config.interim_interval_ms:
                    since_interim_ms = 0.0
                    text = self._transcribe_utterance(utterance, callbacks)
                    if text and not self._stop_event.is_set():
                        callbacks.on_interim(text, None)
                continue

            if utterance:
                silence_ms += chunk.duration_ms
                if silence_ms < self.config.min_silence_duration_ms:
                    continue

                if speech_ms >= self.config.min_speech_duration_ms:
                    text = self._transcribe_utterance(utterance, callbacks)
                    if text and not self._stop_event.is_set():
                        callbacks.on_final(text, None)

                utterance = []
                speech_ms = 0.0
                silence_ms = 0.0
                since_interim_ms = 0.0
                continue

            idle_ms += chunk.duration_ms
            if idle_ms >= self.config.no_speech_timeout_ms:
                idle_ms = 0.0
                callbacks.on_error("no-speech", None)

        # An utterance still open at stop time never becomes final
        callbacks.on_end()
