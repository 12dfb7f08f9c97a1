"""Pytest configuration and fixtures for voicevault tests."""

import sys
from collections.abc import Generator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


@pytest.fixture(autouse=True)
def isolate_platform_dirs(tmp_path: Path, monkeypatch) -> Generator[Path, None, None]:
    """Point every XDG directory at a per-test location and drop cached config."""
    home = tmp_path / "xdg"
    monkeypatch.setenv("XDG_CACHE_HOME", str(home / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(home / "data"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / "config"))
    for var in (
        "VOICEVAULT_MODEL_ID",
        "VOICEVAULT_OUTPUT_FORMAT",
        "VOICEVAULT_CACHE_DIR",
        "VOICEVAULT_DATABASE",
    ):
        monkeypatch.delenv(var, raising=False)

    import voicevault.config

    monkeypatch.setattr(voicevault.config, "_cached_config", None)
    yield home


@pytest.fixture
def store(tmp_path: Path):
    """Metadata store backed by a fresh database file."""
    from voicevault.cache.storage import MetadataStore

    return MetadataStore(tmp_path / "db" / "voicevault.db")


@pytest.fixture
def file_cache(tmp_path: Path):
    """Audio file cache rooted in a temporary directory."""
    from voicevault.cache.files import AudioFileCache

    return AudioFileCache(tmp_path / "audio")


@pytest.fixture
def fake_client() -> MagicMock:
    """Stand-in for ElevenLabsClient with async methods."""
    client = MagicMock()
    client.api_key = "test_key"
    client.validate_api_key = AsyncMock(return_value=True)
    client.list_voices = AsyncMock(return_value=[])
    client.get_voice = AsyncMock()
    client.clone_voice = AsyncMock()
    client.delete_voice = AsyncMock(return_value=None)
    client.text_to_speech = AsyncMock(return_value=b"\xff\xfb" * 8000)
    client.generate_sound_effect = AsyncMock(return_value=b"sfx-bytes")
    client.get_usage = AsyncMock()
    return client


@pytest.fixture
def service(tmp_path: Path, store, fake_client: MagicMock):
    """AudioService wired to a temporary store, cache and fake client."""
    from voicevault.config import load_config
    from voicevault.service import AudioService

    return AudioService(
        config=load_config(),
        store=store,
        cache_dir=tmp_path / "audio",
        client_factory=lambda api_key: fake_client,
    )
