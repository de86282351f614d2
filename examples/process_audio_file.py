#!/usr/bin/env python3
"""
Process Audio File Example

Sends an existing recording to the enhanced transcription service.

Usage:
    python examples/process_audio_file.py <audio_file> [--output result.json]

Requirements:
    - Transcription service reachable (SYMPTOM_SCRIBE_API_URL)
    - Audio file in WAV, FLAC or OGG format
"""

import argparse
import json
import sys
from pathlib import Path

from symptom_scribe import TranscriptionError, TranscriptionMode, TranscriptionOptions
from symptom_scribe.capture import AudioArtifact
from symptom_scribe.transcription import RemoteClientConfig, RemoteTranscriptionClient


def main():
    parser = argparse.ArgumentParser(description="Transcribe an audio file")
    parser.add_argument("audio_file", type=Path, help="Audio file to transcribe")
    parser.add_argument("--output", "-o", type=Path, help="Output JSON file")
    parser.add_argument("--speakers", "-s", type=int, help="Enable diarization with N speakers")
    args = parser.parse_args()

    if not args.audio_file.exists():
        print(f"Error: File not found: {args.audio_file}")
        sys.exit(1)

    options = TranscriptionOptions(
        transcription_mode=TranscriptionMode.REMOTE_ONLY,
        enable_speaker_diarization=args.speakers is not None,
        expected_speakers=args.speakers or 2,
    )
    client = RemoteTranscriptionClient(RemoteClientConfig.from_env())
    artifact = AudioArtifact.from_file(args.audio_file, session_id=args.audio_file.stem)

    print(f"Processing: {args.audio_file} ({artifact.duration_ms / 1000:.1f}s)")

    try:
        result = client.transcribe(artifact, options)
    except TranscriptionError as e:
        print(e.user_message)
        sys.exit(1)

    json_output = json.dumps(result.to_dict(), indent=2)

    if args.output:
        args.output.write_text(json_output)
        print(f"Output saved to: {args.output}")
    else:
        print(json_output)

    print(f"\n--- {result.word_count} words, {len(result.medical_terms)} medical terms ---")
    for speaker in result.speakers:
        print(f"  {speaker.speaker}: {speaker.text}")


if __name__ == "__main__":
    main()
