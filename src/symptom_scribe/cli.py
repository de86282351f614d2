"""
Command Line Interface

CLI for symptom-scribe hybrid transcription.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.text import Text

from symptom_scribe.capture.audio_utils import AudioArtifact
from symptom_scribe.capture.playback import play_artifact
from symptom_scribe.coordinator import AppConfig, TranscriptionCoordinator, load_config
from symptom_scribe.errors import TranscriptionError
from symptom_scribe.transcription import (
    RemoteClientConfig,
    RemoteTranscriptionClient,
    TranscriptionMode,
    TranscriptionOptions,
    TranscriptionResult,
)

app = typer.Typer(
    name="symptom-scribe",
    help="Hybrid voice transcription for symptom reporting",
    add_completion=False,
)
console = Console()


@app.callback()
def main_options(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def _load_app_config(config: Optional[Path]) -> AppConfig:
    if config:
        return load_config(config)
    return AppConfig(remote=RemoteClientConfig.from_env())


def _build_options(
    base: TranscriptionOptions,
    mode: Optional[str],
    diarize: bool,
    speakers: Optional[int],
    no_medical: bool,
    no_fallback: bool,
) -> TranscriptionOptions:
    data = base.to_dict()
    if mode:
        data["transcription_mode"] = mode
    if diarize:
        data["enable_speaker_diarization"] = True
    if speakers is not None:
        data["expected_speakers"] = speakers
    if no_medical:
        data["use_medical_optimization"] = False
    if no_fallback:
        data["fallback_to_realtime"] = False
    return TranscriptionOptions.from_dict(data)


def _print_result(result: TranscriptionResult, output: Optional[Path]) -> None:
    if output:
        output.write_text(json.dumps(result.to_dict(), indent=2))
        console.print(f"[green]Output saved to: {output}[/green]")
        return

    console.print(f"\n[bold]Transcript[/bold] ({result.quality.value}, {result.source.value})")
    console.print(result.text)

    if result.medical_terms:
        console.print(f"\n[bold]Medical terms:[/bold] {', '.join(result.medical_terms)}")
    for speaker in result.speakers:
        console.print(f"  [cyan]{speaker.speaker}[/cyan]: {speaker.text}")
    if result.warning:
        console.print(f"\n[yellow]{result.warning}[/yellow]")


def _wait_for_enter(stop_requested: threading.Event) -> None:
    try:
        input()
    except EOFError:
        pass
    stop_requested.set()


@app.command()
def record(
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output JSON file"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
    mode: Optional[str] = typer.Option(
        None, "--mode", "-m", help="hybrid, local-only or remote-only"
    ),
    diarize: bool = typer.Option(False, "--diarize", help="Enable speaker diarization"),
    speakers: Optional[int] = typer.Option(None, "--speakers", "-s", help="Expected speakers (2-6)"),
    no_medical: bool = typer.Option(False, "--no-medical", help="Use generic speech-to-text"),
    no_fallback: bool = typer.Option(False, "--no-fallback", help="Never fall back to the local transcript"),
    play: bool = typer.Option(False, "--play", help="Play the recording back before transcribing"),
) -> None:
    """Record from the microphone, then transcribe with enhancement."""
    try:
        app_config = _load_app_config(config)
        options = _build_options(
            app_config.transcription, mode, diarize, speakers, no_medical, no_fallback
        )
    except (TranscriptionError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    coordinator = TranscriptionCoordinator.from_app_config(app_config)

    try:
        coordinator.start(options)
    except TranscriptionError as e:
        console.print(f"[red]{e.user_message}[/red]")
        coordinator.close()
        raise typer.Exit(1)

    console.print("[bold]Recording...[/bold] [dim]Press Enter to stop.[/dim]")
    stop_requested = threading.Event()
    threading.Thread(target=_wait_for_enter, args=(stop_requested,), daemon=True).start()

    try:
        with Live(Text(""), console=console, refresh_per_second=4, transient=True) as live:
            while not stop_requested.wait(0.25):
                snap = coordinator.snapshot()
                if not snap.is_recording:
                    break
                line = Text(snap.local_transcript)
                if snap.interim_text:
                    line.append(f" {snap.interim_text}", style="dim italic")
                live.update(line)

        snap = coordinator.snapshot()
        if snap.is_recording:
            coordinator.stop()
        elif snap.error_message:
            console.print(f"[red]Recording problem: {snap.error_message}[/red]")

        if play and coordinator.session and coordinator.session.artifact:
            play_artifact(coordinator.open_playback(), app_config.playback)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task("Transcribing...", total=None)
            result = coordinator.transcribe()
    except KeyboardInterrupt:
        console.print("\n[yellow]Recording cancelled[/yellow]")
        coordinator.close(wait=False)
        raise typer.Exit(0)
    except TranscriptionError as e:
        console.print(f"[red]{e.user_message}[/red]")
        coordinator.close()
        raise typer.Exit(1)

    _print_result(result, output)
    coordinator.close()


@app.command()
def transcribe(
    input_file: Path = typer.Argument(..., help="Audio file to transcribe"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output JSON file"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
    diarize: bool = typer.Option(False, "--diarize", help="Enable speaker diarization"),
    speakers: Optional[int] = typer.Option(None, "--speakers", "-s", help="Expected speakers (2-6)"),
    no_medical: bool = typer.Option(False, "--no-medical", help="Use generic speech-to-text"),
) -> None:
    """Transcribe an existing audio file with the enhanced service."""
    if not input_file.exists():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)

    try:
        app_config = _load_app_config(config)
        options = _build_options(
            app_config.transcription,
            TranscriptionMode.REMOTE_ONLY.value,
            diarize,
            speakers,
            no_medical,
            no_fallback=True,
        )
    except (TranscriptionError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    artifact = AudioArtifact.from_file(input_file, session_id=input_file.stem)
    client = RemoteTranscriptionClient(app_config.remote)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task(f"Transcribing {input_file.name}...", total=None)
            result = client.transcribe(artifact, options)
    except TranscriptionError as e:
        console.print(f"[red]{e.user_message}[/red]")
        raise typer.Exit(1)

    _print_result(result, output)


@app.command()
def health(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Check that the enhanced transcription service is reachable."""
    app_config = _load_app_config(config)
    client = RemoteTranscriptionClient(app_config.remote)

    if client.health_check():
        console.print(f"[green]Service reachable at {app_config.remote.base_url}[/green]")
    else:
        console.print(f"[red]Service unreachable at {app_config.remote.base_url}[/red]")
        raise typer.Exit(1)


@app.command()
def devices() -> None:
    """List available audio input devices."""
    from symptom_scribe.capture import AudioCapture

    devices = AudioCapture.list_devices()

    if not devices:
        console.print("[yellow]No audio input devices found[/yellow]")
        raise typer.Exit(0)

    console.print("[bold]Available audio input devices:[/bold]\n")
    for device in devices:
        console.print(
            f"  [{device['index']}] {device['name']}"
            f"\n      Channels: {device['channels']}, "
            f"Sample Rate: {device['sample_rate']} Hz"
        )


@app.command()
def version() -> None:
    """Show version information."""
    from symptom_scribe import __version__

    console.print(f"symptom-scribe version {__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
