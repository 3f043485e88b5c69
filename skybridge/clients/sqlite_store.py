"""SQLite-backed storage for provider sessions keyed by subject id."""

from __future__ import annotations

import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from skybridge.models import SessionRecord


def _ensure_directory(db_path: Path) -> None:
    if db_path.parent and not db_path.parent.exists():
        db_path.parent.mkdir(parents=True, exist_ok=True)


class SQLiteSessionStore:
    """One row per DID holding the most recent serialized provider session."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        _ensure_directory(self._db_path)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS session_records (
                    subject_id TEXT PRIMARY KEY,
                    serialized_session TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    def get(self, subject_id: str) -> Optional[SessionRecord]:
        with closing(self._connect()) as conn, conn:
            row = conn.execute(
                "SELECT subject_id, serialized_session, updated_at "
                "FROM session_records WHERE subject_id = ?",
                (subject_id,),
            ).fetchone()
        if not row:
            return None
        return SessionRecord(
            subject_id=row["subject_id"],
            serialized_session=row["serialized_session"],
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def upsert(self, subject_id: str, serialized_session: str) -> None:
        if not subject_id:
            raise ValueError("Session records require a subject id")

        updated_at = datetime.now(timezone.utc).isoformat()
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                INSERT INTO session_records (subject_id, serialized_session, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(subject_id) DO UPDATE SET
                    serialized_session = excluded.serialized_session,
                    updated_at = excluded.updated_at
                """,
                (subject_id, serialized_session, updated_at),
            )


__all__ = ["SQLiteSessionStore"]
