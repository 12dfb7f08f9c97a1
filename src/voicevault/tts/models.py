"""Request and response models for the ElevenLabs API."""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_MODEL_ID = "eleven_monolingual_v1"
DEFAULT_OUTPUT_FORMAT = "mp3_44100_128"
DEFAULT_SFX_DURATION = 3.0
DEFAULT_PROMPT_INFLUENCE = 0.5
DEFAULT_CATEGORY = "premade"


@dataclass
class VoiceSettings:
    """Voice generation settings.

    Args:
        stability: Voice stability (0.0-1.0)
        similarity_boost: Voice similarity boost (0.0-1.0)
        style: Voice style exaggeration (0.0-1.0)
        use_speaker_boost: Whether to use speaker boost
    """

    stability: float = 0.5
    similarity_boost: float = 0.75
    style: float = 0.0
    use_speaker_boost: bool = True

    def __post_init__(self) -> None:
        """Validate voice settings."""
        if not 0.0 <= self.stability <= 1.0:
            raise ValueError("stability must be between 0.0 and 1.0")
        if not 0.0 <= self.similarity_boost <= 1.0:
            raise ValueError("similarity_boost must be between 0.0 and 1.0")
        if not 0.0 <= self.style <= 1.0:
            raise ValueError("style must be between 0.0 and 1.0")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_api(cls, settings: Any) -> "VoiceSettings":
        """Build settings from an SDK settings object, filling gaps with defaults."""
        if settings is None:
            return cls()

        def _value(name: str, default: Any) -> Any:
            value = getattr(settings, name, None)
            return default if value is None else value

        return cls(
            stability=_value("stability", 0.5),
            similarity_boost=_value("similarity_boost", 0.75),
            style=_value("style", 0.0),
            use_speaker_boost=bool(_value("use_speaker_boost", True)),
        )


@dataclass
class VoiceProfile:
    """Local mirror of a remote voice definition.

    Args:
        voice_id: Remote-assigned voice identifier
        name: Human-readable name of the voice
        description: Optional voice description
        category: Voice category (e.g., "premade", "cloned")
        labels: Optional free-form tags
        preview_url: Optional URL of a preview sample
        settings: Voice generation settings
    """

    voice_id: str
    name: str
    description: str | None = None
    category: str = DEFAULT_CATEGORY
    labels: dict[str, Any] | None = None
    preview_url: str | None = None
    settings: VoiceSettings = field(default_factory=VoiceSettings)

    def __post_init__(self) -> None:
        """Validate voice information."""
        if not self.voice_id or not self.voice_id.strip():
            raise ValueError("voice_id cannot be empty")
        if not self.name or not self.name.strip():
            raise ValueError("name cannot be empty")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_api(cls, voice: Any) -> "VoiceProfile":
        """Convert an SDK voice object into a profile."""
        labels = getattr(voice, "labels", None)
        return cls(
            voice_id=voice.voice_id,
            name=voice.name,
            description=getattr(voice, "description", None),
            category=getattr(voice, "category", None) or DEFAULT_CATEGORY,
            labels=dict(labels) if labels else None,
            preview_url=getattr(voice, "preview_url", None),
            settings=VoiceSettings.from_api(getattr(voice, "settings", None)),
        )


@dataclass
class TTSRequest:
    """Parameters for a text-to-speech call."""

    text: str
    voice_id: str
    model_id: str = DEFAULT_MODEL_ID
    voice_settings: VoiceSettings | None = None
    output_format: str = DEFAULT_OUTPUT_FORMAT

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise ValueError("Text cannot be empty")
        if not self.voice_id or not self.voice_id.strip():
            raise ValueError("voice_id cannot be empty")


@dataclass
class SFXRequest:
    """Parameters for a sound effect generation call."""

    text: str
    duration_seconds: float = DEFAULT_SFX_DURATION
    prompt_influence: float = DEFAULT_PROMPT_INFLUENCE

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise ValueError("Text cannot be empty")
        if self.duration_seconds <= 0:
            raise ValueError("duration_seconds must be positive")
        if not 0.0 <= self.prompt_influence <= 1.0:
            raise ValueError("prompt_influence must be between 0.0 and 1.0")


@dataclass
class VoiceCloneRequest:
    """Parameters for an instant voice clone.

    Args:
        name: Name for the new voice
        files: Audio samples to upload
        description: Optional voice description
        labels: Optional free-form tags, sent JSON-encoded
    """

    name: str
    files: list[Path]
    description: str | None = None
    labels: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("name cannot be empty")
        if not self.files:
            raise ValueError("At least one audio file is required")
        self.files = [Path(f) for f in self.files]


@dataclass
class UsageInfo:
    """Subscription and quota information for the account."""

    character_count: int
    character_limit: int
    can_extend_character_limit: bool
    allowed_to_extend_character_limit: bool
    next_character_count_reset_unix: int
    voice_limit: int
    professional_voice_limit: int
    can_extend_voice_limit: bool
    can_use_instant_voice_cloning: bool
    can_use_professional_voice_cloning: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_api(cls, subscription: Any) -> "UsageInfo":
        return cls(
            character_count=subscription.character_count,
            character_limit=subscription.character_limit,
            can_extend_character_limit=subscription.can_extend_character_limit,
            allowed_to_extend_character_limit=subscription.allowed_to_extend_character_limit,
            next_character_count_reset_unix=subscription.next_character_count_reset_unix or 0,
            voice_limit=subscription.voice_limit,
            professional_voice_limit=subscription.professional_voice_limit,
            can_extend_voice_limit=subscription.can_extend_voice_limit,
            can_use_instant_voice_cloning=subscription.can_use_instant_voice_cloning,
            can_use_professional_voice_cloning=subscription.can_use_professional_voice_cloning,
        )
