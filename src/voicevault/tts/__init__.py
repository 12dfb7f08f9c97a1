"""ElevenLabs API package for voicevault.

This package provides voice management, text-to-speech and sound effect
generation using the ElevenLabs API.
"""

from .client import ElevenLabsClient
from .errors import TTSAPIError, TTSAuthError, TTSError
from .models import (
    SFXRequest,
    TTSRequest,
    UsageInfo,
    VoiceCloneRequest,
    VoiceProfile,
    VoiceSettings,
)

__all__ = [
    "ElevenLabsClient",
    "SFXRequest",
    "TTSAPIError",
    "TTSAuthError",
    "TTSError",
    "TTSRequest",
    "UsageInfo",
    "VoiceCloneRequest",
    "VoiceProfile",
    "VoiceSettings",
]
