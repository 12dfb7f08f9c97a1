"""Local audio cache and metadata store for voicevault."""

from pathlib import Path

from ..paths import get_cache_home
from .files import AudioFileCache
from .models import AudioRecord, AudioType, CharacterVoice
from .storage import MetadataStore

__all__ = [
    "AudioFileCache",
    "AudioRecord",
    "AudioType",
    "CharacterVoice",
    "MetadataStore",
    "get_cache_dir",
]


def get_cache_dir() -> Path:
    """Get or create the audio cache directory.

    Creates <cache home>/voicevault/audio/ if it doesn't exist. The
    category subdirectories (tts, sfx, music) are created on first write.

    Returns:
        Path to the audio cache directory
    """
    audio_dir = get_cache_home() / "audio"
    audio_dir.mkdir(parents=True, exist_ok=True)
    return audio_dir
