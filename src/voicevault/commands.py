"""Command dispatch for host applications.

Every command returns a JSON-compatible response dict, either
{"status": "success", "result": ...} or {"status": "error", "error": "<message>"}.
No structured error codes cross this boundary.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from .service import AudioService
from .tts.models import VoiceSettings

logger = logging.getLogger(__name__)

Handler = Callable[[AudioService, dict[str, Any]], Awaitable[Any]]


class MissingParameterError(KeyError):
    """A required command parameter was not supplied."""


class Params(dict):
    """Command parameters; a missing key raises MissingParameterError."""

    def __missing__(self, key: str) -> Any:
        raise MissingParameterError(key)


def to_jsonable(value: Any) -> Any:
    """Convert models, paths and datetimes into JSON-compatible values."""
    if hasattr(value, "to_dict"):
        return to_jsonable(value.to_dict())
    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


async def _set_api_key(service: AudioService, params: dict[str, Any]) -> Any:
    return await service.set_api_key(params["api_key"])


async def _has_api_key(service: AudioService, params: dict[str, Any]) -> Any:
    return await service.has_api_key()


async def _remove_api_key(service: AudioService, params: dict[str, Any]) -> Any:
    await service.remove_api_key()
    return None


async def _list_voices(service: AudioService, params: dict[str, Any]) -> Any:
    return await service.list_voices()


async def _get_voice(service: AudioService, params: dict[str, Any]) -> Any:
    return await service.get_voice(params["voice_id"])


async def _list_cached_voices(service: AudioService, params: dict[str, Any]) -> Any:
    return await service.list_cached_voices()


async def _clone_voice(service: AudioService, params: dict[str, Any]) -> Any:
    return await service.clone_voice(
        name=params["name"],
        files=params.get("files", []),
        description=params.get("description"),
        labels=params.get("labels"),
    )


async def _delete_voice(service: AudioService, params: dict[str, Any]) -> Any:
    await service.delete_voice(params["voice_id"])
    return None


async def _tts(service: AudioService, params: dict[str, Any]) -> Any:
    settings = params.get("voice_settings")
    return await service.synthesize_speech(
        text=params["text"],
        voice_id=params["voice_id"],
        model_id=params.get("model_id"),
        voice_settings=VoiceSettings(**settings) if settings else None,
    )


async def _generate_sfx(service: AudioService, params: dict[str, Any]) -> Any:
    return await service.generate_sound_effect(
        text=params["text"],
        duration_seconds=params.get("duration_seconds"),
        prompt_influence=params.get("prompt_influence"),
    )


async def _get_usage(service: AudioService, params: dict[str, Any]) -> Any:
    return await service.get_usage()


async def _assign_character_voice(service: AudioService, params: dict[str, Any]) -> Any:
    return await service.assign_character_voice(
        character_name=params["character_name"],
        voice_id=params["voice_id"],
        voice_name=params.get("voice_name", ""),
        project_id=params.get("project_id"),
    )


async def _list_character_voices(service: AudioService, params: dict[str, Any]) -> Any:
    return await service.list_character_voices(params.get("project_id"))


async def _remove_character_voice(service: AudioService, params: dict[str, Any]) -> Any:
    await service.remove_character_voice(params["id"])
    return None


async def _get_cached_audio(service: AudioService, params: dict[str, Any]) -> Any:
    return await service.list_cached_audio(params["audio_type"])


async def _delete_cached_audio(service: AudioService, params: dict[str, Any]) -> Any:
    await service.delete_cached_audio(params["audio_id"])
    return None


async def _clear_cached_audio(service: AudioService, params: dict[str, Any]) -> Any:
    return await service.clear_cached_audio(params["audio_type"])


async def _cache_size(service: AudioService, params: dict[str, Any]) -> Any:
    return await service.cache_size()


async def _sweep_orphans(service: AudioService, params: dict[str, Any]) -> Any:
    grace = params.get("grace_seconds")
    if grace is None:
        return await service.sweep_orphans()
    return await service.sweep_orphans(float(grace))


COMMANDS: dict[str, Handler] = {
    "set_api_key": _set_api_key,
    "has_api_key": _has_api_key,
    "remove_api_key": _remove_api_key,
    "list_voices": _list_voices,
    "get_voice": _get_voice,
    "list_cached_voices": _list_cached_voices,
    "clone_voice": _clone_voice,
    "delete_voice": _delete_voice,
    "tts": _tts,
    "generate_sfx": _generate_sfx,
    "get_usage": _get_usage,
    "assign_character_voice": _assign_character_voice,
    "list_character_voices": _list_character_voices,
    "remove_character_voice": _remove_character_voice,
    "get_cached_audio": _get_cached_audio,
    "delete_cached_audio": _delete_cached_audio,
    "clear_cached_audio": _clear_cached_audio,
    "cache_size": _cache_size,
    "sweep_orphans": _sweep_orphans,
}


async def dispatch(
    service: AudioService, method: str, params: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Run a named command and wrap its outcome in a response dict."""
    handler = COMMANDS.get(method)
    if handler is None:
        return {"status": "error", "error": f"Unknown method: {method}"}

    logger.debug(f"Dispatching {method}")
    try:
        result = await handler(service, Params(params or {}))
    except MissingParameterError as e:
        logger.error(f"{method} failed: missing parameter {e}")
        return {"status": "error", "error": f"Missing parameter: {e.args[0]}"}
    except Exception as e:
        logger.error(f"{method} failed: {e}")
        return {"status": "error", "error": str(e) or type(e).__name__}

    return {"status": "success", "result": to_jsonable(result)}
