"""SQLite metadata store for cached audio, voices and settings."""

import json
import logging
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..tts.models import DEFAULT_CATEGORY, VoiceProfile, VoiceSettings
from .models import AudioRecord, AudioType, CharacterVoice

logger = logging.getLogger(__name__)

API_KEY_SETTING = "api_key"

_AUDIO_COLUMNS = (
    "id, audio_type, prompt, duration_seconds, local_path, remote_url, metadata, created_at"
)
_VOICE_COLUMNS = (
    "voice_id, name, description, category, labels, preview_url, "
    "settings_stability, settings_similarity_boost, settings_style, "
    "settings_use_speaker_boost"
)
_CHARACTER_COLUMNS = "id, character_name, voice_id, voice_name, project_id, created_at"


class MetadataStore:
    """SQLite-based store for audio records, voice profiles, character
    voice assignments and the API credential.

    Audio bytes live in the file cache; this store only keeps their paths.
    Every operation opens its own connection and runs a single statement,
    so nothing spans a transaction across calls.
    """

    def __init__(self, db_path: Path):
        """Initialize store, creating the database and schema if needed.

        Args:
            db_path: Location of the SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connection() as conn:
            self._init_db(conn)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a new database connection with WAL mode for concurrency."""
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=30.0,  # 30 second timeout if locked
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=30000")
        conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_db(self, conn: sqlite3.Connection) -> None:
        """Initialize database schema with tables and indexes."""
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS audio_cache (
                id TEXT PRIMARY KEY,
                audio_type TEXT NOT NULL,
                prompt TEXT NOT NULL,
                duration_seconds REAL NOT NULL,
                local_path TEXT NOT NULL,
                remote_url TEXT,
                metadata TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_audio_type_created
            ON audio_cache(audio_type, created_at);

            CREATE TABLE IF NOT EXISTS voice_profiles (
                voice_id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT,
                category TEXT NOT NULL,
                labels TEXT,
                preview_url TEXT,
                settings_stability REAL NOT NULL,
                settings_similarity_boost REAL NOT NULL,
                settings_style REAL NOT NULL,
                settings_use_speaker_boost INTEGER NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS character_voices (
                id TEXT PRIMARY KEY,
                character_name TEXT NOT NULL,
                voice_id TEXT NOT NULL,
                voice_name TEXT NOT NULL,
                project_id TEXT,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
        """)

    # Audio records

    def put_audio_record(self, record: AudioRecord) -> None:
        """Insert or replace an audio record keyed by its id."""
        with self._connection() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO audio_cache ({_AUDIO_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.id,
                    json.dumps(record.audio_type.value),
                    record.prompt,
                    record.duration_seconds,
                    str(record.local_path),
                    record.remote_url,
                    json.dumps(record.metadata),
                    record.created_at.isoformat(),
                ),
            )

    def get_audio_records(self, audio_type: AudioType) -> list[AudioRecord]:
        """Get records of one type, most recent first."""
        with self._connection() as conn:
            rows = conn.execute(
                f"SELECT {_AUDIO_COLUMNS} FROM audio_cache "
                "WHERE audio_type = ? ORDER BY created_at DESC",
                (json.dumps(audio_type.value),),
            ).fetchall()
        return [self._row_to_audio_record(row) for row in rows]

    def get_audio_record(self, record_id: str) -> AudioRecord | None:
        with self._connection() as conn:
            row = conn.execute(
                f"SELECT {_AUDIO_COLUMNS} FROM audio_cache WHERE id = ?",
                (record_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_audio_record(row)

    def get_all_audio_paths(self) -> set[Path]:
        """Local paths referenced by any audio record."""
        with self._connection() as conn:
            rows = conn.execute("SELECT local_path FROM audio_cache").fetchall()
        return {Path(row["local_path"]) for row in rows if row["local_path"]}

    def delete_audio_record(self, record_id: str) -> None:
        """Delete a record; deleting a missing id is not an error."""
        with self._connection() as conn:
            conn.execute("DELETE FROM audio_cache WHERE id = ?", (record_id,))

    def delete_audio_records(self, audio_type: AudioType) -> int:
        """Delete every record of one type, returning how many were removed."""
        with self._connection() as conn:
            cursor = conn.execute(
                "DELETE FROM audio_cache WHERE audio_type = ?",
                (json.dumps(audio_type.value),),
            )
            return cursor.rowcount

    def _row_to_audio_record(self, row: sqlite3.Row) -> AudioRecord:
        # Malformed JSON falls back to defaults so the rest of the row stays readable
        try:
            audio_type = AudioType(json.loads(row["audio_type"]))
        except (ValueError, TypeError):
            logger.warning(
                f"Malformed audio_type {row['audio_type']!r} on record {row['id']}, "
                f"defaulting to {AudioType.SPEECH.value}"
            )
            audio_type = AudioType.SPEECH

        metadata = _load_json_object(row["metadata"], f"metadata of record {row['id']}")

        return AudioRecord(
            id=row["id"],
            audio_type=audio_type,
            prompt=row["prompt"],
            duration_seconds=row["duration_seconds"],
            local_path=Path(row["local_path"]),
            remote_url=row["remote_url"],
            metadata=metadata if metadata is not None else {},
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # Voice profiles

    def put_voice_profile(self, profile: VoiceProfile) -> None:
        """Insert or replace a voice profile keyed by voice_id."""
        settings = profile.settings
        with self._connection() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO voice_profiles ({_VOICE_COLUMNS}, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    profile.voice_id,
                    profile.name,
                    profile.description,
                    profile.category,
                    json.dumps(profile.labels) if profile.labels is not None else None,
                    profile.preview_url,
                    settings.stability,
                    settings.similarity_boost,
                    settings.style,
                    int(settings.use_speaker_boost),
                    _now(),
                ),
            )

    def get_voice_profiles(self) -> list[VoiceProfile]:
        """Get all voice profiles ordered by name."""
        with self._connection() as conn:
            rows = conn.execute(
                f"SELECT {_VOICE_COLUMNS} FROM voice_profiles ORDER BY name ASC"
            ).fetchall()
        return [self._row_to_voice_profile(row) for row in rows]

    def get_voice_profile(self, voice_id: str) -> VoiceProfile | None:
        with self._connection() as conn:
            row = conn.execute(
                f"SELECT {_VOICE_COLUMNS} FROM voice_profiles WHERE voice_id = ?",
                (voice_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_voice_profile(row)

    def delete_voice_profile(self, voice_id: str) -> None:
        with self._connection() as conn:
            conn.execute("DELETE FROM voice_profiles WHERE voice_id = ?", (voice_id,))

    def _row_to_voice_profile(self, row: sqlite3.Row) -> VoiceProfile:
        labels = None
        if row["labels"] is not None:
            labels = _load_json_object(row["labels"], f"labels of voice {row['voice_id']}")

        return VoiceProfile(
            voice_id=row["voice_id"],
            name=row["name"],
            description=row["description"],
            category=row["category"] or DEFAULT_CATEGORY,
            labels=labels,
            preview_url=row["preview_url"],
            settings=VoiceSettings(
                stability=row["settings_stability"],
                similarity_boost=row["settings_similarity_boost"],
                style=row["settings_style"],
                use_speaker_boost=bool(row["settings_use_speaker_boost"]),
            ),
        )

    # Character voices

    def assign_character_voice(
        self,
        character_name: str,
        voice_id: str,
        voice_name: str,
        project_id: str | None = None,
    ) -> CharacterVoice:
        """Record a voice assignment for a character.

        Always inserts a new row with a fresh id. Assigning the same
        character twice leaves both rows in place.
        """
        mapping = CharacterVoice(
            id=str(uuid.uuid4()),
            character_name=character_name,
            voice_id=voice_id,
            voice_name=voice_name,
            project_id=project_id,
            created_at=datetime.now(timezone.utc),
        )
        with self._connection() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO character_voices ({_CHARACTER_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    mapping.id,
                    mapping.character_name,
                    mapping.voice_id,
                    mapping.voice_name,
                    mapping.project_id,
                    mapping.created_at.isoformat(),
                ),
            )
        return mapping

    def get_character_voices(self, project_id: str | None = None) -> list[CharacterVoice]:
        """Get assignments for one project, or all of them, ordered by character name."""
        query = f"SELECT {_CHARACTER_COLUMNS} FROM character_voices"
        params: tuple[Any, ...] = ()
        if project_id is not None:
            query += " WHERE project_id = ?"
            params = (project_id,)
        query += " ORDER BY character_name ASC"

        with self._connection() as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            CharacterVoice(
                id=row["id"],
                character_name=row["character_name"],
                voice_id=row["voice_id"],
                voice_name=row["voice_name"],
                project_id=row["project_id"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]

    def remove_character_voice(self, mapping_id: str) -> None:
        with self._connection() as conn:
            conn.execute("DELETE FROM character_voices WHERE id = ?", (mapping_id,))

    # Credential

    def get_credential(self) -> str | None:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT value FROM settings WHERE key = ?", (API_KEY_SETTING,)
            ).fetchone()
        return row["value"] if row is not None else None

    def put_credential(self, value: str) -> None:
        # TODO: encrypt the stored key once a platform keyring backend is chosen
        with self._connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO settings (key, value, updated_at) VALUES (?, ?, ?)",
                (API_KEY_SETTING, value, _now()),
            )

    def remove_credential(self) -> None:
        with self._connection() as conn:
            conn.execute("DELETE FROM settings WHERE key = ?", (API_KEY_SETTING,))


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _load_json_object(raw: str, what: str) -> dict[str, Any] | None:
    """Decode a stored JSON object, returning {} and logging if it is malformed."""
    try:
        value = json.loads(raw)
    except (ValueError, TypeError):
        logger.warning(f"Malformed JSON in {what}, using empty object")
        return {}
    if value is None:
        return None
    if not isinstance(value, dict):
        logger.warning(f"Expected JSON object in {what}, using empty object")
        return {}
    return value
