"""Data models for cached audio and character voice assignments."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any


class AudioType(str, Enum):
    """Category of generated audio.

    Values double as the cache subdirectory names and must never change,
    otherwise previously stored local paths stop resolving.
    """

    SPEECH = "tts"
    SOUND_EFFECT = "sfx"
    MUSIC = "music"

    @property
    def subdir(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: "str | AudioType") -> "AudioType":
        """Parse a category name such as "tts", "speech" or "sound-effect".

        Raises:
            ValueError: If value names no known category
        """
        if isinstance(value, AudioType):
            return value
        normalized = str(value).strip().lower()
        aliases = {
            "speech": cls.SPEECH,
            "sound-effect": cls.SOUND_EFFECT,
            "sound_effect": cls.SOUND_EFFECT,
        }
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Invalid audio type: {value}") from None


@dataclass
class AudioRecord:
    """Metadata for one generated audio file.

    Attributes:
        id: Unique record identifier
        audio_type: Category of the audio
        prompt: Source text used for generation
        duration_seconds: Estimated or requested length, see
            metadata["duration_source"]
        local_path: Path of the file inside the audio cache
        remote_url: Location in remote storage, if synced
        metadata: Free-form side data such as the voice used
        created_at: When the record was created (UTC)
    """

    id: str
    audio_type: AudioType
    prompt: str
    duration_seconds: float
    local_path: Path
    remote_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "audio_type": self.audio_type.value,
            "prompt": self.prompt,
            "duration_seconds": self.duration_seconds,
            "local_path": str(self.local_path),
            "remote_url": self.remote_url,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class CharacterVoice:
    """Assignment of a voice to a character, optionally scoped to a project.

    voice_name is a copy taken at assignment time and is not kept in sync
    with the voice profile.
    """

    id: str
    character_name: str
    voice_id: str
    voice_name: str
    project_id: str | None
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "character_name": self.character_name,
            "voice_id": self.voice_id,
            "voice_name": self.voice_name,
            "project_id": self.project_id,
            "created_at": self.created_at.isoformat(),
        }
