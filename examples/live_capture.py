#!/usr/bin/env python3
"""
Live Capture Example

Records a symptom description from the microphone, shows the live local
transcript, then requests the enhanced medical transcription.

Usage:
    python examples/live_capture.py [--duration 15] [--mode hybrid]

Requirements:
    - Microphone connected
    - Transcription service reachable (SYMPTOM_SCRIBE_API_URL)
    - pip install symptom-scribe[local]
"""

import argparse
import time

from symptom_scribe import AppConfig, SessionState, TranscriptionCoordinator, TranscriptionError
from symptom_scribe.capture import AudioCapture
from symptom_scribe.transcription import RemoteClientConfig


def list_devices():
    """List available audio input devices."""
    devices = AudioCapture.list_devices()

    if not devices:
        print("No audio input devices found")
        return

    print("Available audio input devices:")
    print("-" * 50)
    for device in devices:
        print(f"  [{device['index']}] {device['name']}")
        print(f"      Channels: {device['channels']}, Sample Rate: {device['sample_rate']} Hz")
    print()


def print_notification(note):
    if note.kind == "warning":
        print(f"\n[warning] {note.message}")
    elif note.kind == "error":
        print(f"\n[error] {note.message}")


def main():
    parser = argparse.ArgumentParser(description="Live symptom capture")
    parser.add_argument("--duration", "-d", type=float, default=15.0,
                        help="Recording duration in seconds")
    parser.add_argument("--mode", "-m", default="hybrid",
                        help="hybrid, local-only or remote-only")
    parser.add_argument("--list-devices", action="store_true",
                        help="List audio devices and exit")
    args = parser.parse_args()

    if args.list_devices:
        list_devices()
        return

    config = AppConfig(remote=RemoteClientConfig.from_env())
    coordinator = TranscriptionCoordinator.from_app_config(config)
    coordinator.add_listener(print_notification)
    coordinator.set_mode(args.mode)

    print("=" * 60)
    print("Symptom Scribe Live Capture")
    print("=" * 60)
    print(f"Mode: {coordinator.options.transcription_mode.value}")
    print(f"Duration: {args.duration}s")
    print("Describe your symptoms now. Press Ctrl+C to stop early.")
    print("-" * 60)

    try:
        coordinator.start()
        deadline = time.monotonic() + args.duration
        while time.monotonic() < deadline:
            snap = coordinator.snapshot()
            if not snap.is_recording:
                break
            print(f"\r{snap.local_transcript} {snap.interim_text}", end="", flush=True)
            time.sleep(0.25)
    except KeyboardInterrupt:
        pass

    try:
        if coordinator.state is SessionState.RECORDING:
            coordinator.stop()
        print("\n" + "-" * 60)
        print("Transcribing...")
        result = coordinator.transcribe(timeout=180)
    except TranscriptionError as e:
        print(f"\n{e.user_message}")
        return
    finally:
        coordinator.close()

    print(f"Quality: {result.quality.value}  Source: {result.source.value}")
    print()
    print(result.text)
    if result.medical_terms:
        print(f"\nMedical terms: {', '.join(result.medical_terms)}")


if __name__ == "__main__":
    main()
