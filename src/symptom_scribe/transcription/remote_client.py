"""
Remote Transcription Client

HTTP client for the enhanced (higher-accuracy) transcription service.

Endpoints:
- medical: medical-optimized transcription with term detection
- generic: plain speech-to-text

Failures are reported as errors and never retried here.
"""

from dataclasses import dataclass
import logging
import os
import threading
import time
from typing import Any

import requests

from symptom_scribe.capture.audio_utils import AudioArtifact
from symptom_scribe.errors import (
    NetworkFailure,
    ServerProcessingFailure,
    TranscriptionCancelled,
    TranscriptionFailed,
    TranscriptionTimeout,
)
from symptom_scribe.transcription.options import TranscriptionOptions
from symptom_scribe.transcription.transcript_types import (
    Quality,
    ResultSource,
    TranscriptionMode,
    TranscriptionResult,
    TranscriptSegment,
    TranscriptWord,
)

logger = logging.getLogger(__name__)

_SOURCE_NAMES = {
    "realtime": ResultSource.LOCAL,
    "local": ResultSource.LOCAL,
    "remote": ResultSource.REMOTE,
    "elevenlabs": ResultSource.REMOTE,
    "hybrid": ResultSource.HYBRID,
}


@dataclass
class RemoteClientConfig:
    """Configuration for the remote transcription client."""

    base_url: str = "http://localhost:5000"
    medical_path: str = "/api/voice/medical-transcription"
    generic_path: str = "/api/voice/speech-to-text"
    health_path: str = "/api/health"
    api_key: str | None = None
    timeout: float = 120.0

    @classmethod
    def from_env(cls) -> "RemoteClientConfig":
        """Create configuration from environment variables."""
        return cls(
            base_url=os.environ.get("SYMPTOM_SCRIBE_API_URL", "http://localhost:5000"),
            api_key=os.environ.get("SYMPTOM_SCRIBE_API_KEY"),
            timeout=float(os.environ.get("SYMPTOM_SCRIBE_TIMEOUT", "120.0")),
        )


class CancellationToken:
    """Marks an in-flight request as no longer wanted."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise TranscriptionCancelled()


class RemoteTranscriptionClient:
    """Client for the enhanced transcription service."""

    def __init__(
        self,
        config: RemoteClientConfig | None = None,
        http: requests.Session | None = None,
    ):
        self.config = config or RemoteClientConfig()
        self.http = http or requests.Session()

    @property
    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def endpoint_for(self, options: TranscriptionOptions) -> str:
        path = (
            self.config.medical_path
            if options.use_medical_optimization
            else self.config.generic_path
        )
        return f"{self.config.base_url.rstrip('/')}{path}"

    def health_check(self) -> bool:
        """Check if the service is reachable."""
        url = f"{self.config.base_url.rstrip('/')}{self.config.health_path}"
        try:
            response = self.http.get(url, headers=self._headers, timeout=10.0)
        except requests.RequestException:
            return False
        return 200 <= response.status_code < 300

    def transcribe(
        self,
        artifact: AudioArtifact,
        options: TranscriptionOptions,
        local_text: str = "",
        cancel_token: CancellationToken | None = None,
    ) -> TranscriptionResult:
        """Produce a transcript for the artifact according to the mode.

        local-only returns the local transcript without a network call.
        Otherwise one request is made; any failure raises.
        """
        options.validate()
        mode = options.transcription_mode

        if mode is TranscriptionMode.LOCAL_ONLY:
            text = local_text.strip()
            if not text:
                raise TranscriptionFailed("No local transcript available")
            return TranscriptionResult(
                text=text,
                quality=Quality.FINAL,
                source=ResultSource.LOCAL,
                session_id=artifact.session_id,
            )

        realtime_transcript = local_text.strip() if mode is TranscriptionMode.HYBRID else None
        if cancel_token:
            cancel_token.raise_if_cancelled()

        url = self.endpoint_for(options)
        logger.info("Requesting %s transcription from %s", mode.value, url)
        started = time.monotonic()

        try:
            response = self.http.post(
                url,
                headers=self._headers,
                files={"audio": (artifact.filename, artifact.data, artifact.mime_type)},
                data=options.to_form_fields(realtime_transcript),
                timeout=self.config.timeout,
            )
        except requests.Timeout as e:
            raise TranscriptionTimeout(
                f"Transcription service timed out after {self.config.timeout:.0f}s"
            ) from e
        except requests.RequestException as e:
            raise NetworkFailure(f"Could not reach the transcription service: {e}") from e

        elapsed_ms = (time.monotonic() - started) * 1000

        if not 200 <= response.status_code < 300:
            raise ServerProcessingFailure(
                f"Transcription failed: {response.status_code} - {response.text[:500]}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ServerProcessingFailure("Transcription service returned invalid JSON") from e

        if cancel_token:
            cancel_token.raise_if_cancelled()

        result = parse_response(payload, mode)
        result.session_id = artifact.session_id
        if result.processing_time_ms is None:
            result.processing_time_ms = elapsed_ms
        return result


def parse_response(payload: Any, mode: TranscriptionMode) -> TranscriptionResult:
    """Build a TranscriptionResult from a service response body."""
    if not isinstance(payload, dict):
        raise ServerProcessingFailure("Unexpected response from transcription service")
    if payload.get("success") is False:
        raise ServerProcessingFailure(
            payload.get("error") or payload.get("message") or "Transcription service reported failure"
        )

    transcript = payload.get("transcript")
    if not isinstance(transcript, str):
        raise ServerProcessingFailure("Response is missing the transcript")

    try:
        quality = Quality(payload.get("quality") or Quality.FINAL.value)
    except ValueError as e:
        raise ServerProcessingFailure(f"Unknown quality: {payload.get('quality')!r}") from e

    source = _SOURCE_NAMES.get(str(payload.get("source") or "").lower(), ResultSource.REMOTE)

    terms = [t for t in payload.get("medicalTermsDetected") or [] if isinstance(t, str)]
    speakers = [TranscriptSegment.from_speaker_turn(s) for s in payload.get("speakers") or []]
    words = [TranscriptWord.from_dict(w) for w in payload.get("words") or []]

    warning = None
    if quality is Quality.DRAFT:
        warning = "Transcription service returned a draft transcript"
        logger.warning("%s (source=%s, mode=%s)", warning, source.value, mode.value)

    return TranscriptionResult(
        text=transcript,
        quality=quality,
        source=source,
        medical_terms=terms,
        speakers=speakers,
        words=words,
        confidence=payload.get("confidence"),
        processing_time_ms=payload.get("processingTime"),
        warning=warning,
    )
