"""Async client for the ElevenLabs voice, speech and sound effect API."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from elevenlabs.client import ElevenLabs

from .errors import TTSAPIError, TTSAuthError
from .models import SFXRequest, TTSRequest, UsageInfo, VoiceCloneRequest, VoiceProfile

logger = logging.getLogger(__name__)


class ElevenLabsClient:
    """Client for the ElevenLabs REST API.

    Wraps the synchronous ElevenLabs SDK, running every call in a worker
    thread so the event loop is never blocked. Any non-success response is
    raised as TTSAPIError (or TTSAuthError for 401) carrying the status code
    and response body. Nothing is retried.
    """

    def __init__(self, api_key: str) -> None:
        """Initialize client.

        Args:
            api_key: ElevenLabs API key, sent in the xi-api-key header.

        Raises:
            TTSAuthError: If API key is empty or the SDK rejects it.
        """
        if not api_key or not api_key.strip():
            raise TTSAuthError("ElevenLabs API key cannot be empty")

        self._api_key = api_key

        try:
            self._client = ElevenLabs(api_key=self._api_key)
        except Exception as e:
            raise TTSAuthError(f"Failed to initialize ElevenLabs client: {e}") from e

    @property
    def api_key(self) -> str:
        return self._api_key

    async def list_voices(self) -> list[VoiceProfile]:
        """Get all voices available to the account.

        A voice the API returns in an unusable shape is logged and skipped.

        Returns:
            List of VoiceProfile objects

        Raises:
            TTSAPIError: If API call fails
            TTSAuthError: If authentication fails
        """

        def _sync_get_voices() -> list[VoiceProfile]:
            response = self._client.voices.get_all()
            voices = []
            for voice in response.voices:
                try:
                    voices.append(VoiceProfile.from_api(voice))
                except (ValueError, TypeError, AttributeError) as e:
                    logger.warning(f"Skipping malformed voice from API: {e}")
            return voices

        return await self._call("List voices", _sync_get_voices)

    async def get_voice(self, voice_id: str) -> VoiceProfile:
        """Get a single voice by ID."""
        if not voice_id:
            raise ValueError("voice_id cannot be empty")

        def _sync_get_voice() -> VoiceProfile:
            return VoiceProfile.from_api(self._client.voices.get(voice_id=voice_id))

        return await self._call("Get voice", _sync_get_voice)

    async def clone_voice(self, request: VoiceCloneRequest) -> VoiceProfile:
        """Create an instant voice clone from audio samples.

        Sample files are read up front, so a missing file fails before any
        upload. The full profile of the new voice is fetched afterwards.

        Args:
            request: Clone parameters

        Returns:
            Profile of the newly created voice

        Raises:
            OSError: If a sample file cannot be read
            TTSAPIError: If API call fails
        """
        files = await asyncio.to_thread(_read_samples, request.files)
        labels = json.dumps(request.labels) if request.labels else None

        def _sync_clone() -> str:
            response = self._client.voices.ivc.create(
                name=request.name,
                files=files,
                description=request.description,
                labels=labels,
            )
            return response.voice_id

        voice_id = await self._call("Clone voice", _sync_clone)
        logger.info(f"Cloned voice '{request.name}' as {voice_id}")
        return await self.get_voice(voice_id)

    async def delete_voice(self, voice_id: str) -> None:
        """Delete a voice from the account."""
        if not voice_id:
            raise ValueError("voice_id cannot be empty")

        def _sync_delete() -> None:
            self._client.voices.delete(voice_id=voice_id)

        await self._call("Delete voice", _sync_delete)

    async def text_to_speech(self, request: TTSRequest) -> bytes:
        """Convert text to speech audio bytes.

        Args:
            request: Text, voice, model and output format

        Returns:
            Encoded audio in the requested output format

        Raises:
            TTSAPIError: If API call fails or returns no audio
            TTSAuthError: If authentication fails
        """

        def _sync_convert() -> bytes:
            kwargs: dict[str, Any] = {
                "voice_id": request.voice_id,
                "text": request.text,
                "model_id": request.model_id,
                "output_format": request.output_format,
            }
            if request.voice_settings is not None:
                kwargs["voice_settings"] = request.voice_settings.to_dict()
            # Collect all audio chunks
            return b"".join(self._client.text_to_speech.convert(**kwargs))

        audio_bytes = await self._call("Text to speech", _sync_convert)
        if not audio_bytes:
            raise TTSAPIError("No audio data received from API")
        return audio_bytes

    async def generate_sound_effect(self, request: SFXRequest) -> bytes:
        """Generate a sound effect from a text prompt."""

        def _sync_generate() -> bytes:
            audio = self._client.text_to_sound_effects.convert(
                text=request.text,
                duration_seconds=request.duration_seconds,
                prompt_influence=request.prompt_influence,
            )
            return b"".join(audio)

        audio_bytes = await self._call("Sound generation", _sync_generate)
        if not audio_bytes:
            raise TTSAPIError("No audio data received from API")
        return audio_bytes

    async def get_usage(self) -> UsageInfo:
        """Fetch subscription and character usage for the account."""

        def _sync_usage() -> UsageInfo:
            return UsageInfo.from_api(self._client.user.subscription.get())

        return await self._call("Fetch usage", _sync_usage)

    async def validate_api_key(self) -> bool:
        """Check the key by fetching usage.

        Returns:
            False if the service answers with an authorization failure,
            True if the usage fetch succeeds.

        Raises:
            TTSAPIError: For any failure other than authorization
        """
        try:
            await self.get_usage()
        except TTSAuthError:
            return False
        return True

    async def _call(self, action: str, func: Any) -> Any:
        logger.debug(f"{action}: calling ElevenLabs API")
        try:
            return await asyncio.to_thread(func)
        except TTSAPIError:
            raise
        except Exception as e:
            raise _translate_error(action, e) from e


def _read_samples(paths: list[Path]) -> list[tuple[str, bytes, str]]:
    return [(path.name, path.read_bytes(), "audio/mpeg") for path in paths]


def _translate_error(action: str, error: Exception) -> TTSAPIError:
    """Map an SDK or transport exception to a TTS error.

    SDK API errors expose status_code and body; anything else is treated
    as a transport failure and inspected by message.
    """
    status_code = getattr(error, "status_code", None)
    body = getattr(error, "body", None)
    if body is not None and not isinstance(body, str):
        try:
            body = json.dumps(body)
        except (TypeError, ValueError):
            body = str(body)

    if status_code is not None:
        message = f"{action} failed: API error {status_code}: {body or ''}".rstrip()
        if status_code == 401:
            return TTSAuthError(message, status_code, body, error)
        return TTSAPIError(message, status_code, body, error)

    text = str(error)
    if "unauthorized" in text.lower() or "401" in text:
        return TTSAuthError(f"{action} failed: Authentication failed: {text}", 401, None, error)
    return TTSAPIError(f"{action} failed: {text}", None, None, error)
