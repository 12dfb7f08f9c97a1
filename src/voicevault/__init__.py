"""voicevault - ElevenLabs voices, speech and sound effects with a local audio cache."""

__version__ = "0.1.0"
__all__ = ["AudioService", "dispatch"]


def __getattr__(name: str):  # type: ignore[no-untyped-def]
    if name == "AudioService":
        from .service import AudioService

        return AudioService
    if name == "dispatch":
        from .commands import dispatch

        return dispatch
    raise AttributeError(f"module 'voicevault' has no attribute {name!r}")
