"""SQLite-backed counters for failed authentication attempts per client IP."""

from __future__ import annotations

import sqlite3
from contextlib import closing
from datetime import datetime
from pathlib import Path
from typing import Optional

from skybridge.models import RateLimitRecord


class SQLiteRateLimitStore:
    """Every mutation is a single statement so concurrent requests stay consistent."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS auth_rate_limits (
                    ip_address TEXT PRIMARY KEY,
                    attempts INTEGER NOT NULL DEFAULT 0,
                    last_attempt_at TEXT
                )
                """
            )

    def get(self, ip_address: str) -> Optional[RateLimitRecord]:
        with closing(self._connect()) as conn, conn:
            row = conn.execute(
                "SELECT ip_address, attempts, last_attempt_at "
                "FROM auth_rate_limits WHERE ip_address = ?",
                (ip_address,),
            ).fetchone()
        if not row:
            return None
        last_attempt_raw = row["last_attempt_at"]
        return RateLimitRecord(
            ip_address=row["ip_address"],
            attempts=row["attempts"],
            last_attempt_at=datetime.fromisoformat(last_attempt_raw)
            if last_attempt_raw
            else None,
        )

    def increment(self, ip_address: str) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                INSERT INTO auth_rate_limits (ip_address, attempts, last_attempt_at)
                VALUES (?, 1, NULL)
                ON CONFLICT(ip_address) DO UPDATE SET attempts = attempts + 1
                """,
                (ip_address,),
            )

    def mark_window_start(self, ip_address: str, when: datetime) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                "UPDATE auth_rate_limits SET last_attempt_at = ? WHERE ip_address = ?",
                (when.isoformat(), ip_address),
            )

    def restart_window(self, ip_address: str, when: datetime) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                "UPDATE auth_rate_limits SET attempts = 1, last_attempt_at = ? "
                "WHERE ip_address = ?",
                (when.isoformat(), ip_address),
            )

    def delete(self, ip_address: str) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                "DELETE FROM auth_rate_limits WHERE ip_address = ?",
                (ip_address,),
            )


__all__ = ["SQLiteRateLimitStore"]
