"""Orchestration of remote ElevenLabs calls, the audio cache and the metadata store.

Each generating operation runs the same sequence: make sure a client
exists, call the API, write the audio into the file cache, then record
its metadata. A later step failing does not undo an earlier one.
"""

import asyncio
import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .cache import get_cache_dir
from .cache.files import STALE_TEMP_SECONDS, AudioFileCache
from .cache.models import AudioRecord, AudioType, CharacterVoice
from .cache.storage import MetadataStore
from .config import VoiceVaultConfig, load_config
from .tts.client import ElevenLabsClient
from .tts.errors import TTSAuthError
from .tts.models import (
    SFXRequest,
    TTSRequest,
    UsageInfo,
    VoiceCloneRequest,
    VoiceProfile,
    VoiceSettings,
)

logger = logging.getLogger(__name__)

# Approximation for 128 kbps MP3 output; not a measured duration
ASSUMED_BYTES_PER_SECOND = 16_000

# Unreferenced files younger than this may still be awaiting their record
ORPHAN_GRACE_SECONDS = 600


def estimate_duration(audio_bytes: bytes) -> float:
    """Estimate playback length from encoded size at an assumed 128 kbps."""
    return len(audio_bytes) / ASSUMED_BYTES_PER_SECOND


def extension_for_format(output_format: str) -> str:
    """File extension for an API output format such as "mp3_44100_128"."""
    return output_format.split("_", 1)[0] or "mp3"


class AudioService:
    """Owns the metadata store plus lazily created API client and file cache.

    The client is built from the stored API key on first use; the file
    cache is rooted at the configured (or platform) cache directory on
    first use. Each lazy handle has its own lock, taken only while the
    handle is being created, so concurrent operations run in parallel
    once initialized.

    Example:
        service = AudioService()
        await service.set_api_key("sk_...")
        record = await service.synthesize_speech("Hello world", voice_id="v1")
        print(record.local_path)
    """

    def __init__(
        self,
        config: VoiceVaultConfig | None = None,
        store: MetadataStore | None = None,
        cache_dir: Path | None = None,
        client_factory: Callable[[str], ElevenLabsClient] = ElevenLabsClient,
    ) -> None:
        """Initialize service.

        Args:
            config: Configuration (loaded from disk if omitted)
            store: Metadata store (opened at the configured database if omitted)
            cache_dir: Audio cache root overriding the configured one
            client_factory: Builds a client from an API key
        """
        self.config = config or load_config()
        self.store = store or MetadataStore(self.config.storage.resolve_database())
        self._cache_dir = cache_dir or self.config.storage.cache_dir
        self._client_factory = client_factory

        self._client: ElevenLabsClient | None = None
        self._cache: AudioFileCache | None = None
        self._client_lock = asyncio.Lock()
        self._cache_lock = asyncio.Lock()

    async def _ensure_client(self) -> ElevenLabsClient | None:
        if self._client is not None:
            return self._client
        async with self._client_lock:
            if self._client is None:
                api_key = self.store.get_credential()
                if api_key:
                    self._client = self._client_factory(api_key)
                    logger.debug("Initialized ElevenLabs client from stored API key")
            return self._client

    async def _require_client(self) -> ElevenLabsClient:
        client = await self._ensure_client()
        if client is None:
            raise TTSAuthError("API key not configured")
        return client

    async def _ensure_cache(self) -> AudioFileCache:
        if self._cache is not None:
            return self._cache
        async with self._cache_lock:
            if self._cache is None:
                root = self._cache_dir or get_cache_dir()
                self._cache = AudioFileCache(root)
                logger.debug(f"Initialized audio cache at {root}")
            return self._cache

    # Credential

    async def set_api_key(self, api_key: str) -> bool:
        """Validate a key against the API, then store it.

        Raises:
            TTSAuthError: If the key is empty or rejected
            TTSAPIError: If validation fails for another reason
        """
        client = self._client_factory(api_key.strip() if api_key else "")
        if not await client.validate_api_key():
            raise TTSAuthError("Invalid API key")

        self.store.put_credential(client.api_key)
        async with self._client_lock:
            self._client = client
        logger.info("Stored validated ElevenLabs API key")
        return True

    async def has_api_key(self) -> bool:
        return await self._ensure_client() is not None

    async def remove_api_key(self) -> None:
        self.store.remove_credential()
        async with self._client_lock:
            self._client = None
        logger.info("Removed stored ElevenLabs API key")

    # Voices

    async def list_voices(self) -> list[VoiceProfile]:
        """Fetch all remote voices and mirror them locally."""
        client = await self._require_client()
        voices = await client.list_voices()
        for voice in voices:
            self.store.put_voice_profile(voice)
        logger.info(f"Synced {len(voices)} voice profiles")
        return voices

    async def get_voice(self, voice_id: str) -> VoiceProfile:
        client = await self._require_client()
        voice = await client.get_voice(voice_id)
        self.store.put_voice_profile(voice)
        return voice

    async def list_cached_voices(self) -> list[VoiceProfile]:
        """Voice profiles mirrored by earlier calls; no network access."""
        return self.store.get_voice_profiles()

    async def clone_voice(
        self,
        name: str,
        files: list[str | Path],
        description: str | None = None,
        labels: dict[str, Any] | None = None,
    ) -> VoiceProfile:
        request = VoiceCloneRequest(
            name=name,
            files=[Path(f) for f in files],
            description=description,
            labels=labels,
        )
        client = await self._require_client()
        voice = await client.clone_voice(request)
        self.store.put_voice_profile(voice)
        return voice

    async def delete_voice(self, voice_id: str) -> None:
        client = await self._require_client()
        await client.delete_voice(voice_id)
        self.store.delete_voice_profile(voice_id)
        logger.info(f"Deleted voice {voice_id}")

    # Generation

    async def synthesize_speech(
        self,
        text: str,
        voice_id: str,
        model_id: str | None = None,
        voice_settings: VoiceSettings | None = None,
    ) -> AudioRecord:
        """Synthesize speech, cache the audio and record it.

        duration_seconds on the result is estimated from the encoded size,
        see metadata["duration_source"].
        """
        request = TTSRequest(
            text=text,
            voice_id=voice_id,
            model_id=model_id or self.config.tts.model_id,
            voice_settings=voice_settings,
            output_format=self.config.tts.output_format,
        )
        client = await self._require_client()
        audio = await client.text_to_speech(request)

        return await self._persist(
            AudioType.SPEECH,
            audio,
            extension=extension_for_format(request.output_format),
            prompt=text,
            duration_seconds=estimate_duration(audio),
            metadata={
                "voice_id": voice_id,
                "model_id": request.model_id,
                "output_format": request.output_format,
                "duration_source": "estimated",
            },
        )

    async def generate_sound_effect(
        self,
        text: str,
        duration_seconds: float | None = None,
        prompt_influence: float | None = None,
    ) -> AudioRecord:
        defaults = self.config.sound_effects
        request = SFXRequest(
            text=text,
            duration_seconds=(
                duration_seconds if duration_seconds is not None else defaults.duration_seconds
            ),
            prompt_influence=(
                prompt_influence if prompt_influence is not None else defaults.prompt_influence
            ),
        )
        client = await self._require_client()
        audio = await client.generate_sound_effect(request)

        return await self._persist(
            AudioType.SOUND_EFFECT,
            audio,
            extension="mp3",
            prompt=text,
            duration_seconds=request.duration_seconds,
            metadata={
                "prompt_influence": request.prompt_influence,
                "duration_source": "requested",
            },
        )

    async def _persist(
        self,
        audio_type: AudioType,
        audio: bytes,
        extension: str,
        prompt: str,
        duration_seconds: float,
        metadata: dict[str, Any],
    ) -> AudioRecord:
        cache = await self._ensure_cache()
        path = await cache.save(audio_type, audio, extension)

        # Recorded only after the file write succeeded
        record = AudioRecord(
            id=str(uuid.uuid4()),
            audio_type=audio_type,
            prompt=prompt,
            duration_seconds=duration_seconds,
            local_path=path,
            metadata=metadata,
            created_at=datetime.now(timezone.utc),
        )
        self.store.put_audio_record(record)
        logger.info(f"Cached {audio_type.value} audio {record.id} at {path}")
        return record

    async def get_usage(self) -> UsageInfo:
        client = await self._require_client()
        return await client.get_usage()

    # Character voices

    async def assign_character_voice(
        self,
        character_name: str,
        voice_id: str,
        voice_name: str,
        project_id: str | None = None,
    ) -> CharacterVoice:
        """Assign a voice to a character.

        Re-assigning a character adds another mapping rather than replacing
        the existing one.
        """
        if not character_name or not character_name.strip():
            raise ValueError("character_name cannot be empty")
        if not voice_id or not voice_id.strip():
            raise ValueError("voice_id cannot be empty")
        return self.store.assign_character_voice(
            character_name, voice_id, voice_name, project_id
        )

    async def list_character_voices(
        self, project_id: str | None = None
    ) -> list[CharacterVoice]:
        return self.store.get_character_voices(project_id)

    async def remove_character_voice(self, mapping_id: str) -> None:
        self.store.remove_character_voice(mapping_id)

    # Cached audio

    async def list_cached_audio(self, audio_type: AudioType | str) -> list[AudioRecord]:
        return self.store.get_audio_records(AudioType.parse(audio_type))

    async def delete_cached_audio(self, audio_id: str) -> None:
        """Delete a record and its file. Missing file or record is not an error."""
        record = self.store.get_audio_record(audio_id)
        if record is not None and record.local_path != Path():
            cache = await self._ensure_cache()
            await cache.delete(record.local_path)
        self.store.delete_audio_record(audio_id)

    async def clear_cached_audio(self, audio_type: AudioType | str) -> int:
        """Remove every cached file and record of one type.

        Returns:
            Number of files that were present before clearing
        """
        audio_type = AudioType.parse(audio_type)
        cache = await self._ensure_cache()
        count = await cache.clear(audio_type)
        removed = self.store.delete_audio_records(audio_type)
        logger.info(f"Removed {removed} {audio_type.value} records")
        return count

    async def cache_size(self) -> int:
        cache = await self._ensure_cache()
        return await cache.total_size()

    async def sweep_orphans(self, grace_seconds: float = ORPHAN_GRACE_SECONDS) -> int:
        """Delete cached files that no audio record references.

        Such files are left behind when recording metadata fails after
        the audio was written. Files modified within grace_seconds are
        skipped, since their record may still be on its way from another
        operation or process. Stale temp files from interrupted writes
        are removed as well.

        Returns:
            Number of files deleted
        """
        cache = await self._ensure_cache()
        candidates = []
        for audio_type in AudioType:
            candidates.extend(await cache.list_files(audio_type, grace_seconds))

        # Snapshot after listing so records written meanwhile are seen
        referenced = {path.resolve() for path in self.store.get_all_audio_paths()}
        removed = 0
        for path in candidates:
            if path not in referenced:
                await cache.delete(path)
                removed += 1
        for audio_type in AudioType:
            removed += await cache.remove_stale_temp_files(
                audio_type, max(grace_seconds, STALE_TEMP_SECONDS)
            )
        if removed:
            logger.info(f"Swept {removed} orphaned audio files")
        return removed
