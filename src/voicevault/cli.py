"""Typer CLI definition for voicevault."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import typer

from .commands import dispatch
from .config import generate_config, get_config_path, load_config
from .service import AudioService

app = typer.Typer(help="Manage ElevenLabs voices and a local cache of generated audio")

_state: dict[str, Any] = {"debug": False}


@app.callback()
def main(
    debug: bool = typer.Option(
        False, "--debug", help="Show verbose log output and full error details"
    ),
) -> None:
    """Manage ElevenLabs voices and a local cache of generated audio."""
    _state["debug"] = debug
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


def parse_labels(labels: list[str] | None) -> dict[str, str] | None:
    """Parse repeated key=value options into a dict.

    Raises:
        ValueError: If an entry has no "="
    """
    if not labels:
        return None
    parsed = {}
    for label in labels:
        key, sep, value = label.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid label '{label}', expected key=value")
        parsed[key.strip()] = value.strip()
    return parsed


def _run(method: str, params: dict[str, Any] | None = None) -> None:
    try:
        service = AudioService(config=load_config())
        response = asyncio.run(dispatch(service, method, params))
    except Exception as e:
        if _state["debug"]:
            typer.echo(f"Debug - Startup failed: {e!r}", err=True)
        else:
            typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    if response["status"] != "success":
        typer.echo(f"Error: {response['error']}", err=True)
        raise typer.Exit(1)

    if response["result"] is not None:
        typer.echo(json.dumps(response["result"], indent=2))


@app.command("init-config")
def init_config(
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config file"),
) -> None:
    """Write the default config file."""
    path = get_config_path()
    if path.exists() and not force:
        typer.echo(f"Config already exists at {path} (use --force to overwrite)")
        raise typer.Exit(0)
    typer.echo(f"Wrote {generate_config(path)}")


@app.command("set-key")
def set_key(
    api_key: str = typer.Option(
        ..., "--api-key", prompt=True, hide_input=True, help="ElevenLabs API key"
    ),
) -> None:
    """Validate and store the ElevenLabs API key."""
    _run("set_api_key", {"api_key": api_key})


@app.command("has-key")
def has_key() -> None:
    """Report whether an API key is stored."""
    _run("has_api_key")


@app.command("remove-key")
def remove_key() -> None:
    """Delete the stored API key."""
    _run("remove_api_key")


@app.command("voices")
def voices() -> None:
    """List remote voices and mirror them locally."""
    _run("list_voices")


@app.command("voice")
def voice(voice_id: str = typer.Argument(..., help="Voice ID")) -> None:
    """Fetch one remote voice and mirror it locally."""
    _run("get_voice", {"voice_id": voice_id})


@app.command("cached-voices")
def cached_voices() -> None:
    """List locally mirrored voices without contacting the API."""
    _run("list_cached_voices")


@app.command("clone")
def clone(
    name: str = typer.Argument(..., help="Name of the new voice"),
    files: list[Path] = typer.Argument(..., help="Audio samples to upload"),
    description: str | None = typer.Option(None, "-d", "--description"),
    label: list[str] | None = typer.Option(
        None, "-l", "--label", help="Label as key=value, repeatable"
    ),
) -> None:
    """Clone a voice from audio samples."""
    try:
        labels = parse_labels(label)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    _run(
        "clone_voice",
        {
            "name": name,
            "files": [str(f) for f in files],
            "description": description,
            "labels": labels,
        },
    )


@app.command("delete-voice")
def delete_voice(voice_id: str = typer.Argument(..., help="Voice ID")) -> None:
    """Delete a remote voice and its local mirror."""
    _run("delete_voice", {"voice_id": voice_id})


@app.command("speak")
def speak(
    text: str = typer.Argument(..., help="Text to synthesize"),
    voice_id: str = typer.Option(..., "-v", "--voice", help="Voice ID"),
    model: str | None = typer.Option(None, "-m", "--model", help="Model ID"),
    stability: float | None = typer.Option(None, "--stability"),
    similarity_boost: float | None = typer.Option(None, "--similarity-boost"),
    style: float | None = typer.Option(None, "--style"),
) -> None:
    """Synthesize speech and cache the audio."""
    params: dict[str, Any] = {"text": text, "voice_id": voice_id, "model_id": model}
    overrides = {
        key: value
        for key, value in (
            ("stability", stability),
            ("similarity_boost", similarity_boost),
            ("style", style),
        )
        if value is not None
    }
    if overrides:
        params["voice_settings"] = overrides
    _run("tts", params)


@app.command("sfx")
def sfx(
    text: str = typer.Argument(..., help="Description of the sound"),
    duration: float | None = typer.Option(None, "--duration", help="Length in seconds"),
    prompt_influence: float | None = typer.Option(None, "--prompt-influence"),
) -> None:
    """Generate a sound effect and cache the audio."""
    _run(
        "generate_sfx",
        {"text": text, "duration_seconds": duration, "prompt_influence": prompt_influence},
    )


@app.command("usage")
def usage() -> None:
    """Show subscription and character usage."""
    _run("get_usage")


@app.command("assign")
def assign(
    character_name: str = typer.Argument(..., help="Character name"),
    voice_id: str = typer.Argument(..., help="Voice ID"),
    voice_name: str = typer.Option("", "--voice-name", help="Display name of the voice"),
    project: str | None = typer.Option(None, "-p", "--project", help="Project scope"),
) -> None:
    """Assign a voice to a character."""
    _run(
        "assign_character_voice",
        {
            "character_name": character_name,
            "voice_id": voice_id,
            "voice_name": voice_name,
            "project_id": project,
        },
    )


@app.command("characters")
def characters(
    project: str | None = typer.Option(None, "-p", "--project", help="Project scope"),
) -> None:
    """List character voice assignments."""
    _run("list_character_voices", {"project_id": project})


@app.command("unassign")
def unassign(mapping_id: str = typer.Argument(..., help="Assignment ID")) -> None:
    """Remove a character voice assignment."""
    _run("remove_character_voice", {"id": mapping_id})


@app.command("cached")
def cached(audio_type: str = typer.Argument("tts", help="tts, sfx or music")) -> None:
    """List cached audio of one type, newest first."""
    _run("get_cached_audio", {"audio_type": audio_type})


@app.command("delete-cached")
def delete_cached(audio_id: str = typer.Argument(..., help="Audio record ID")) -> None:
    """Delete a cached audio file and its record."""
    _run("delete_cached_audio", {"audio_id": audio_id})


@app.command("clear-cache")
def clear_cache(audio_type: str = typer.Argument(..., help="tts, sfx or music")) -> None:
    """Delete all cached audio of one type."""
    _run("clear_cached_audio", {"audio_type": audio_type})


@app.command("cache-size")
def cache_size() -> None:
    """Show total size of cached audio in bytes."""
    _run("cache_size")


@app.command("sweep")
def sweep(
    grace: float | None = typer.Option(
        None, "--grace", help="Skip files modified within this many seconds (default 600)"
    ),
) -> None:
    """Delete cached files that no record references."""
    _run("sweep_orphans", {"grace_seconds": grace})
