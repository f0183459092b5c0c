"""
Generation storage.

Uses SQLite for generation records and key/value settings.
"""

import logging
import os
import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

from memegen.config import Settings, get_settings
from memegen.schemas.meme import CaptionPair, GenerationRecord, GenerationStatus

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_KEY = "system_prompt"
DEFAULT_SYSTEM_PROMPT = (
    "You are a creative meme generator. "
    "Generate images based on the following description:"
)


class GenerationStore:
    """SQLite-backed store for generations and settings."""

    def __init__(self, db_path: Optional[str] = None, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.db_path = db_path or settings.DB_PATH
        self.init_db()

    def _connect(self) -> sqlite3.Connection:
        """Get database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Initialize database schema and seed the default settings."""
        directory = os.path.dirname(os.path.abspath(self.db_path))
        os.makedirs(directory, exist_ok=True)

        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS generations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    prompt TEXT NOT NULL,
                    image_path TEXT NOT NULL DEFAULT '',
                    top_text TEXT NOT NULL DEFAULT '',
                    bottom_text TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL,
                    error_message TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            cursor.execute(
                "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?)",
                (SYSTEM_PROMPT_KEY, DEFAULT_SYSTEM_PROMPT),
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> GenerationRecord:
        return GenerationRecord(
            id=row["id"],
            prompt=row["prompt"],
            image_path=row["image_path"],
            top_text=row["top_text"],
            bottom_text=row["bottom_text"],
            status=GenerationStatus(row["status"]),
            error_message=row["error_message"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def insert(self, prompt: str) -> int:
        """Create a generation in the processing state and return its id."""
        conn = self._connect()
        try:
            cursor = conn.execute(
                """
                INSERT INTO generations (prompt, status, created_at)
                VALUES (?, ?, ?)
                """,
                (prompt, GenerationStatus.PROCESSING.value, datetime.now(timezone.utc).isoformat(timespec="microseconds")),
            )
            conn.commit()
            return cursor.lastrowid
        finally:
            conn.close()

    def update_status(
        self,
        generation_id: int,
        status: GenerationStatus,
        image_path: str = "",
        error_message: Optional[str] = None,
    ) -> None:
        conn = self._connect()
        try:
            conn.execute(
                """
                UPDATE generations
                SET status = ?, image_path = ?, error_message = ?
                WHERE id = ?
                """,
                (status.value, image_path, error_message, generation_id),
            )
            conn.commit()
        finally:
            conn.close()

    def update_captions(self, generation_id: int, captions: CaptionPair) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "UPDATE generations SET top_text = ?, bottom_text = ? WHERE id = ?",
                (captions.top, captions.bottom, generation_id),
            )
            conn.commit()
        finally:
            conn.close()

    def get(self, generation_id: int) -> Optional[GenerationRecord]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT * FROM generations WHERE id = ?", (generation_id,)
            ).fetchone()
        finally:
            conn.close()
        return self._row_to_record(row) if row else None

    def list(self, limit: int = 10) -> List[GenerationRecord]:
        """Most recent generations first."""
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT * FROM generations ORDER BY created_at DESC, id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_record(row) for row in rows]

    def get_setting(self, key: str) -> Optional[str]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        return row["value"] if row else None

    def set_setting(self, key: str, value: str) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                (key, value),
            )
            conn.commit()
        finally:
            conn.close()


_store: Optional[GenerationStore] = None


# Dependency injection support
def get_store() -> GenerationStore:
    global _store
    if _store is None:
        _store = GenerationStore()
    return _store
