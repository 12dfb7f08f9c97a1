"""Configuration management for voicevault.

Loads configuration from $XDG_CONFIG_HOME/voicevault/config.toml.
Priority chain: env vars > config file > built-in defaults.
The API key is never read from this file; it lives in the metadata store.
"""

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path

from .paths import get_config_dir, get_database_path
from .tts.models import (
    DEFAULT_MODEL_ID,
    DEFAULT_OUTPUT_FORMAT,
    DEFAULT_PROMPT_INFLUENCE,
    DEFAULT_SFX_DURATION,
)

CONFIG_FILENAME = "config.toml"

DEFAULT_CONFIG = f"""\
# voicevault configuration

[tts]
# ElevenLabs model used for speech synthesis
model_id = "{DEFAULT_MODEL_ID}"

# Encoded output format requested from the API (codec_samplerate_bitrate)
output_format = "{DEFAULT_OUTPUT_FORMAT}"

[sound_effects]
# Defaults for sound effect generation
duration_seconds = {DEFAULT_SFX_DURATION}
prompt_influence = {DEFAULT_PROMPT_INFLUENCE}

[storage]
# Audio cache root; empty = platform cache dir (~/.cache/voicevault/audio)
cache_dir = ""

# Metadata database; empty = platform data dir (~/.local/share/voicevault/voicevault.db)
database = ""

# The ElevenLabs API key is stored with `voicevault set-key`, not in this file.
"""


@dataclass(frozen=True)
class TTSConfig:
    """Speech synthesis defaults."""

    model_id: str
    output_format: str


@dataclass(frozen=True)
class SoundEffectsConfig:
    """Sound effect generation defaults."""

    duration_seconds: float
    prompt_influence: float


@dataclass(frozen=True)
class StorageConfig:
    """Locations of the audio cache and metadata database.

    None means the platform default, resolved at use time.
    """

    cache_dir: Path | None
    database: Path | None

    def resolve_database(self) -> Path:
        return self.database or get_database_path()


@dataclass(frozen=True)
class VoiceVaultConfig:
    """Top-level voicevault configuration."""

    tts: TTSConfig
    sound_effects: SoundEffectsConfig
    storage: StorageConfig


_cached_config: VoiceVaultConfig | None = None


def get_config_path() -> Path:
    return get_config_dir() / CONFIG_FILENAME


def generate_config(path: Path | None = None) -> Path:
    """Write the default config file, returning its path."""
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG)
    return path


def load_config(path: Path | None = None) -> VoiceVaultConfig:
    """Load configuration from config file with env var overrides.

    A missing file is not an error: built-in defaults apply. The result
    for the default location is cached for the process lifetime.

    Args:
        path: Explicit config file; bypasses the process-wide cache

    Returns:
        Loaded and validated VoiceVaultConfig.

    Raises:
        ValueError: If a config value is invalid.
    """
    global _cached_config
    if path is None and _cached_config is not None:
        return _cached_config

    config_path = path or get_config_path()
    data: dict = {}
    if config_path.exists():
        with open(config_path, "rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ValueError(f"Invalid config file {config_path}: {e}") from e

    tts = data.get("tts", {})
    sfx = data.get("sound_effects", {})
    storage = data.get("storage", {})

    config = VoiceVaultConfig(
        tts=TTSConfig(
            model_id=os.getenv("VOICEVAULT_MODEL_ID", tts.get("model_id", DEFAULT_MODEL_ID)),
            output_format=os.getenv(
                "VOICEVAULT_OUTPUT_FORMAT",
                tts.get("output_format", DEFAULT_OUTPUT_FORMAT),
            ),
        ),
        sound_effects=SoundEffectsConfig(
            duration_seconds=float(sfx.get("duration_seconds", DEFAULT_SFX_DURATION)),
            prompt_influence=float(sfx.get("prompt_influence", DEFAULT_PROMPT_INFLUENCE)),
        ),
        storage=StorageConfig(
            cache_dir=_optional_path(
                os.getenv("VOICEVAULT_CACHE_DIR", storage.get("cache_dir", ""))
            ),
            database=_optional_path(
                os.getenv("VOICEVAULT_DATABASE", storage.get("database", ""))
            ),
        ),
    )

    _validate(config, config_path)

    if path is None:
        _cached_config = config
    return config


def _optional_path(value: str) -> Path | None:
    return Path(value).expanduser() if value else None


def _validate(config: VoiceVaultConfig, config_path: Path) -> None:
    problems = []
    if not config.tts.model_id:
        problems.append("tts.model_id must not be empty")
    if not config.tts.output_format:
        problems.append("tts.output_format must not be empty")
    if config.sound_effects.duration_seconds <= 0:
        problems.append("sound_effects.duration_seconds must be positive")
    if not 0.0 <= config.sound_effects.prompt_influence <= 1.0:
        problems.append("sound_effects.prompt_influence must be between 0.0 and 1.0")

    if problems:
        raise ValueError(
            f"Invalid configuration in {config_path}: {'; '.join(problems)}"
        )
