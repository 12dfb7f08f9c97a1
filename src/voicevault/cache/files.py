"""Category-partitioned file storage for generated audio."""

import asyncio
import logging
import os
import time
import uuid
from pathlib import Path

from .models import AudioType

logger = logging.getLogger(__name__)

# In-progress writes are hidden files: ".<uuid>.<ext>.tmp"
TEMP_PREFIX = "."
TEMP_SUFFIX = ".tmp"

# Temp files younger than this may belong to a write still in flight
STALE_TEMP_SECONDS = 600


class AudioFileCache:
    """Stores opaque audio blobs under root/<category>/<uuid>.<ext>.

    Files are written to a hidden temporary file and renamed into place,
    so a crash mid-write never leaves a truncated file under its final
    name. Finished files never start with a dot, so listings skip
    temporary files by prefix alone. Blocking file system calls run in
    worker threads.
    """

    def __init__(self, root: Path):
        """Initialize the cache, creating the root directory if needed.

        Args:
            root: Directory holding the category subdirectories
        """
        self.root = Path(root).expanduser().resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def category_dir(self, audio_type: AudioType) -> Path:
        return self.root / audio_type.subdir

    async def save(self, audio_type: AudioType, data: bytes, extension: str) -> Path:
        """Write audio bytes under a new unique filename.

        Args:
            audio_type: Category subdirectory to write into
            data: Encoded audio
            extension: File extension, with or without leading dot

        Returns:
            Absolute path of the written file
        """
        extension = extension.lstrip(".")
        if not extension:
            raise ValueError("extension cannot be empty")

        directory = self.category_dir(audio_type)
        path = directory / f"{uuid.uuid4()}.{extension}"
        await asyncio.to_thread(_write_atomic, directory, path, data)
        logger.debug(f"Saved {len(data)} bytes to {path}")
        return path

    async def delete(self, path: Path) -> None:
        """Remove a cached file; a missing file is not an error."""
        await asyncio.to_thread(Path(path).unlink, missing_ok=True)
        logger.debug(f"Deleted cached file {path}")

    async def list_files(
        self, audio_type: AudioType, min_age_seconds: float = 0
    ) -> list[Path]:
        """List finished regular files directly under a category directory.

        Args:
            audio_type: Category to list
            min_age_seconds: Only include files last modified at least
                this long ago
        """
        return await asyncio.to_thread(
            self._list_sync, audio_type, False, min_age_seconds
        )

    async def list_temp_files(
        self, audio_type: AudioType, min_age_seconds: float = STALE_TEMP_SECONDS
    ) -> list[Path]:
        """List temporary files left in a category by interrupted writes."""
        return await asyncio.to_thread(
            self._list_sync, audio_type, True, min_age_seconds
        )

    def _list_sync(
        self, audio_type: AudioType, temp: bool, min_age_seconds: float
    ) -> list[Path]:
        directory = self.category_dir(audio_type)
        if not directory.is_dir():
            return []
        cutoff = time.time() - min_age_seconds
        paths = []
        for entry in directory.iterdir():
            if temp and not _is_temp(entry):
                continue
            if not temp and entry.name.startswith(TEMP_PREFIX):
                continue
            try:
                if not entry.is_file():
                    continue
                if min_age_seconds > 0 and entry.stat().st_mtime > cutoff:
                    continue
            except FileNotFoundError:
                continue
            paths.append(entry)
        return sorted(paths)

    async def remove_stale_temp_files(
        self, audio_type: AudioType, min_age_seconds: float = STALE_TEMP_SECONDS
    ) -> int:
        """Delete temporary files old enough that no write still owns them.

        Returns:
            Number of files deleted
        """
        stale = await self.list_temp_files(audio_type, min_age_seconds)
        for path in stale:
            await self.delete(path)
        if stale:
            logger.info(f"Removed {len(stale)} stale temp files from {audio_type.value}")
        return len(stale)

    async def clear(self, audio_type: AudioType) -> int:
        """Delete every file in a category, including stale temp files.

        Best effort: a file that cannot be removed is logged and skipped.

        Returns:
            Number of finished files present before clearing
        """
        files = await self.list_files(audio_type)
        for path in files:
            try:
                await self.delete(path)
            except OSError as e:
                logger.warning(f"Failed to delete cached file {path}: {e}")
        try:
            await self.remove_stale_temp_files(audio_type)
        except OSError as e:
            logger.warning(f"Failed to remove temp files from {audio_type.value}: {e}")
        logger.info(f"Cleared {len(files)} {audio_type.value} files from cache")
        return len(files)

    async def total_size(self) -> int:
        """Sum of file sizes across all categories, in bytes."""
        total = 0
        for audio_type in AudioType:
            for path in await self.list_files(audio_type):
                try:
                    total += (await asyncio.to_thread(path.stat)).st_size
                except FileNotFoundError:
                    # Removed between listing and stat
                    continue
        return total


def _is_temp(path: Path) -> bool:
    return path.name.startswith(TEMP_PREFIX) and path.name.endswith(TEMP_SUFFIX)


def _write_atomic(directory: Path, path: Path, data: bytes) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    partial = path.with_name(f"{TEMP_PREFIX}{path.name}{TEMP_SUFFIX}")
    try:
        partial.write_bytes(data)
        os.replace(partial, path)
    except BaseException:
        partial.unlink(missing_ok=True)
        raise
