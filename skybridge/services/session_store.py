"""
Durable provider sessions with an optional process-local shadow.

SQLite is the source of truth. The in-memory shadow only holds sessions whose
access token is still valid, so anything that needs refreshing is always read
back from storage first.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

import jwt
from pydantic import ValidationError

from skybridge.clients import SQLiteSessionStore
from skybridge.models import ProviderSession, SessionClaims, SessionRecord


class SessionStorageError(Exception):
    """Raised when session storage is unreachable or returns unusable data."""


class CorruptSessionRecordError(SessionStorageError):
    """Raised when a stored session cannot be parsed or lacks expiry claims."""


def _expiry_from_jwt(token: str, label: str) -> datetime:
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError as exc:
        raise CorruptSessionRecordError(f"Stored {label} JWT is malformed") from exc

    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise CorruptSessionRecordError(f"Stored {label} JWT has no numeric exp claim")
    try:
        return datetime.fromtimestamp(exp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise CorruptSessionRecordError(f"Stored {label} JWT exp is out of range") from exc


def parse_session(serialized_session: str) -> ProviderSession:
    try:
        return ProviderSession.model_validate(json.loads(serialized_session))
    except (ValueError, ValidationError) as exc:
        raise CorruptSessionRecordError("Stored session payload is not a provider session") from exc


def extract_session_claims(session: ProviderSession) -> SessionClaims:
    """Read the access and refresh expiry instants out of a session."""
    return SessionClaims(
        access_expires_at=_expiry_from_jwt(session.access_jwt, "access"),
        refresh_expires_at=_expiry_from_jwt(session.refresh_jwt, "refresh"),
    )


class SessionCache:
    """Thread-safe map of subject id to a record and the instant it goes stale."""

    def __init__(self, ttl_seconds: int) -> None:
        self._ttl = timedelta(seconds=max(0, ttl_seconds))
        self._entries: Dict[str, Tuple[SessionRecord, datetime]] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._ttl > timedelta(0)

    def get(self, subject_id: str) -> Optional[SessionRecord]:
        now = datetime.now(timezone.utc)
        with self._lock:
            entry = self._entries.get(subject_id)
            if entry is None:
                return None
            record, stale_at = entry
            if now >= stale_at:
                self._entries.pop(subject_id, None)
                return None
            return record

    def set(self, record: SessionRecord, valid_until: datetime) -> None:
        """Shadow ``record``; a live entry keeps its original deadline."""
        if not self.enabled:
            return
        now = datetime.now(timezone.utc)
        stale_at = min(now + self._ttl, valid_until)
        with self._lock:
            existing = self._entries.get(record.subject_id)
            if existing is not None and now < existing[1]:
                stale_at = min(stale_at, existing[1])
            self._entries[record.subject_id] = (record, stale_at)

    def invalidate(self, subject_id: str) -> None:
        with self._lock:
            self._entries.pop(subject_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class SessionStore:
    """Async facade over the session table used by the resolver."""

    def __init__(self, store: SQLiteSessionStore, cache: SessionCache | None = None) -> None:
        self._store = store
        self._cache = cache if cache is not None else SessionCache(ttl_seconds=0)

    async def get(self, subject_id: str) -> Optional[SessionRecord]:
        cached = self._cache.get(subject_id)
        if cached is not None:
            return cached
        try:
            return await asyncio.to_thread(self._store.get, subject_id)
        except (sqlite3.Error, ValueError) as exc:
            raise SessionStorageError(f"Failed to read session for {subject_id}") from exc

    async def put(self, subject_id: str, serialized_session: str) -> None:
        self._cache.invalidate(subject_id)
        try:
            await asyncio.to_thread(self._store.upsert, subject_id, serialized_session)
        except (sqlite3.Error, ValueError) as exc:
            raise SessionStorageError(f"Failed to write session for {subject_id}") from exc

    def remember(self, record: SessionRecord, valid_until: datetime) -> None:
        """Shadow ``record`` in memory until ``valid_until`` at the latest.

        Remembering a record that is already shadowed never extends its
        deadline, so storage is re-read at least once per cache TTL.
        """
        self._cache.set(record, valid_until)

    def invalidate(self, subject_id: str) -> None:
        self._cache.invalidate(subject_id)


__all__ = [
    "CorruptSessionRecordError",
    "SessionCache",
    "SessionStorageError",
    "SessionStore",
    "extract_session_claims",
    "parse_session",
]
