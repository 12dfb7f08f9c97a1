"""Unit tests for MetadataStore against a real SQLite database."""

import logging
import sqlite3
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from voicevault.cache.models import AudioRecord, AudioType
from voicevault.cache.storage import MetadataStore
from voicevault.tts.models import VoiceProfile, VoiceSettings

BASE_TIME = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_record(
    record_id: str,
    audio_type: AudioType = AudioType.SPEECH,
    minutes: int = 0,
    prompt: str = "Hello world",
) -> AudioRecord:
    return AudioRecord(
        id=record_id,
        audio_type=audio_type,
        prompt=prompt,
        duration_seconds=2.5,
        local_path=Path(f"/cache/{audio_type.subdir}/{record_id}.mp3"),
        metadata={"voice_id": "v1"},
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


class TestAudioRecords:
    """Test audio record persistence."""

    def test_put_and_get_roundtrip(self, store: MetadataStore) -> None:
        record = make_record("a1")
        store.put_audio_record(record)

        loaded = store.get_audio_record("a1")

        assert loaded == record

    def test_get_missing_record_returns_none(self, store: MetadataStore) -> None:
        assert store.get_audio_record("nope") is None

    def test_replace_keeps_single_row_with_latest_values(
        self, store: MetadataStore
    ) -> None:
        """Test insert-or-replace by id never duplicates rows."""
        store.put_audio_record(make_record("a1", prompt="first"))
        store.put_audio_record(make_record("a1", prompt="second"))

        records = store.get_audio_records(AudioType.SPEECH)

        assert len(records) == 1
        assert records[0].prompt == "second"

    def test_records_filtered_by_type_newest_first(self, store: MetadataStore) -> None:
        store.put_audio_record(make_record("old", minutes=0))
        store.put_audio_record(make_record("new", minutes=10))
        store.put_audio_record(make_record("mid", minutes=5))
        store.put_audio_record(make_record("boom", AudioType.SOUND_EFFECT, minutes=20))

        speech = store.get_audio_records(AudioType.SPEECH)
        sfx = store.get_audio_records(AudioType.SOUND_EFFECT)

        assert [r.id for r in speech] == ["new", "mid", "old"]
        assert [r.id for r in sfx] == ["boom"]
        assert store.get_audio_records(AudioType.MUSIC) == []

    def test_delete_record_is_idempotent(self, store: MetadataStore) -> None:
        store.put_audio_record(make_record("a1"))

        store.delete_audio_record("a1")
        store.delete_audio_record("a1")

        assert store.get_audio_record("a1") is None

    def test_delete_records_by_type(self, store: MetadataStore) -> None:
        store.put_audio_record(make_record("s1"))
        store.put_audio_record(make_record("s2", minutes=1))
        store.put_audio_record(make_record("x1", AudioType.SOUND_EFFECT))

        removed = store.delete_audio_records(AudioType.SPEECH)

        assert removed == 2
        assert store.get_audio_records(AudioType.SPEECH) == []
        assert len(store.get_audio_records(AudioType.SOUND_EFFECT)) == 1

    def test_all_audio_paths(self, store: MetadataStore) -> None:
        store.put_audio_record(make_record("s1"))
        store.put_audio_record(make_record("x1", AudioType.SOUND_EFFECT))

        assert store.get_all_audio_paths() == {
            Path("/cache/tts/s1.mp3"),
            Path("/cache/sfx/x1.mp3"),
        }


class TestMalformedJsonFallback:
    """Test rows with corrupt JSON columns are still readable."""

    def _corrupt(self, store: MetadataStore, column: str, value: str) -> None:
        conn = sqlite3.connect(store.db_path)
        try:
            conn.execute(f"UPDATE audio_cache SET {column} = ?", (value,))
            conn.commit()
        finally:
            conn.close()

    def test_malformed_metadata_becomes_empty_object(
        self, store: MetadataStore, caplog
    ) -> None:
        store.put_audio_record(make_record("a1"))
        self._corrupt(store, "metadata", "{not json")

        with caplog.at_level(logging.WARNING, logger="voicevault.cache.storage"):
            record = store.get_audio_record("a1")

        assert record is not None
        assert record.metadata == {}
        assert record.prompt == "Hello world"
        assert "Malformed JSON" in caplog.text

    def test_unknown_audio_type_defaults_to_speech(
        self, store: MetadataStore, caplog
    ) -> None:
        store.put_audio_record(make_record("a1", AudioType.MUSIC))
        self._corrupt(store, "audio_type", "garbage")

        with caplog.at_level(logging.WARNING, logger="voicevault.cache.storage"):
            record = store.get_audio_record("a1")

        assert record is not None
        assert record.audio_type is AudioType.SPEECH
        assert "Malformed audio_type" in caplog.text

    def test_malformed_voice_labels_become_empty_object(self, store: MetadataStore) -> None:
        store.put_voice_profile(
            VoiceProfile(voice_id="v1", name="Rachel", labels={"accent": "american"})
        )
        conn = sqlite3.connect(store.db_path)
        try:
            conn.execute("UPDATE voice_profiles SET labels = '[oops'")
            conn.commit()
        finally:
            conn.close()

        profile = store.get_voice_profile("v1")

        assert profile is not None
        assert profile.labels == {}


class TestVoiceProfiles:
    """Test voice profile mirroring."""

    def test_put_and_list_ordered_by_name(self, store: MetadataStore) -> None:
        store.put_voice_profile(VoiceProfile(voice_id="v2", name="Zoe"))
        store.put_voice_profile(
            VoiceProfile(
                voice_id="v1",
                name="Adam",
                description="Deep",
                category="cloned",
                labels={"accent": "british"},
                preview_url="https://example.com/adam.mp3",
                settings=VoiceSettings(
                    stability=0.3, similarity_boost=0.9, style=0.2, use_speaker_boost=False
                ),
            )
        )

        profiles = store.get_voice_profiles()

        assert [p.name for p in profiles] == ["Adam", "Zoe"]
        adam = profiles[0]
        assert adam.category == "cloned"
        assert adam.labels == {"accent": "british"}
        assert adam.settings.use_speaker_boost is False
        assert adam.settings.stability == 0.3
        assert profiles[1].labels is None
        assert profiles[1].category == "premade"

    def test_replace_overwrites_whole_profile(self, store: MetadataStore) -> None:
        store.put_voice_profile(
            VoiceProfile(voice_id="v1", name="Old", description="before")
        )
        store.put_voice_profile(VoiceProfile(voice_id="v1", name="New"))

        profiles = store.get_voice_profiles()

        assert len(profiles) == 1
        assert profiles[0].name == "New"
        assert profiles[0].description is None

    def test_delete_voice_profile(self, store: MetadataStore) -> None:
        store.put_voice_profile(VoiceProfile(voice_id="v1", name="Rachel"))

        store.delete_voice_profile("v1")
        store.delete_voice_profile("v1")

        assert store.get_voice_profile("v1") is None


class TestCharacterVoices:
    """Test character voice assignment."""

    def test_assign_returns_mapping(self, store: MetadataStore) -> None:
        mapping = store.assign_character_voice("Narrator", "v1", "Rachel", "proj-1")

        assert mapping.id
        assert mapping.character_name == "Narrator"
        assert mapping.project_id == "proj-1"
        assert store.get_character_voices() == [mapping]

    def test_reassigning_same_character_creates_second_row(
        self, store: MetadataStore
    ) -> None:
        """Re-assignment inserts a new row instead of replacing the old one.

        Current behavior, pinned so a change to upsert semantics is deliberate.
        """
        first = store.assign_character_voice("Hero", "v1", "Rachel", "proj-1")
        second = store.assign_character_voice("Hero", "v2", "Adam", "proj-1")

        mappings = store.get_character_voices("proj-1")

        assert first.id != second.id
        assert len(mappings) == 2
        assert {m.voice_id for m in mappings} == {"v1", "v2"}

    def test_filter_by_project_and_order_by_name(self, store: MetadataStore) -> None:
        store.assign_character_voice("Villain", "v1", "Rachel", "proj-1")
        store.assign_character_voice("Hero", "v2", "Adam", "proj-1")
        store.assign_character_voice("Sidekick", "v3", "Bella", "proj-2")
        store.assign_character_voice("Narrator", "v4", "Josh")

        in_project = store.get_character_voices("proj-1")
        everything = store.get_character_voices()

        assert [m.character_name for m in in_project] == ["Hero", "Villain"]
        assert [m.character_name for m in everything] == [
            "Hero",
            "Narrator",
            "Sidekick",
            "Villain",
        ]

    def test_remove_character_voice(self, store: MetadataStore) -> None:
        mapping = store.assign_character_voice("Hero", "v1", "Rachel")

        store.remove_character_voice(mapping.id)
        store.remove_character_voice(mapping.id)

        assert store.get_character_voices() == []


class TestCredential:
    """Test API key storage."""

    def test_absent_until_first_set(self, store: MetadataStore) -> None:
        assert store.get_credential() is None

    def test_put_get_roundtrip_and_overwrite(self, store: MetadataStore) -> None:
        store.put_credential("key-1")
        assert store.get_credential() == "key-1"

        store.put_credential("key-2")
        assert store.get_credential() == "key-2"

    def test_remove_credential(self, store: MetadataStore) -> None:
        store.put_credential("key-1")

        store.remove_credential()

        assert store.get_credential() is None


def test_store_persists_across_instances(tmp_path: Path) -> None:
    """Test a second store on the same file sees earlier writes."""
    db_path = tmp_path / "nested" / "meta.db"
    MetadataStore(db_path).put_credential("persisted")

    assert MetadataStore(db_path).get_credential() == "persisted"
