"""Pytest configuration shared across the suite."""

from __future__ import annotations

import sqlite3
from contextlib import closing
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt
import pytest

from skybridge.models import ProviderSession, RateLimitRecord


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


def _signed(did: str, expires_at: datetime, scope: str) -> str:
    claims = {"sub": did, "scope": scope, "exp": int(expires_at.timestamp())}
    return jwt.encode(claims, "provider-signing-key-for-tests-only-0123456789", algorithm="HS256")


@pytest.fixture
def make_session() -> Callable[..., ProviderSession]:
    """Build provider sessions whose JWTs expire relative to now."""

    def _factory(
        did: str = "did:plc:alice",
        *,
        handle: str = "alice.test",
        access_expires_in: timedelta = timedelta(hours=2),
        refresh_expires_in: timedelta = timedelta(days=60),
        label: str = "initial",
    ) -> ProviderSession:
        now = datetime.now(timezone.utc)
        return ProviderSession(
            did=did,
            handle=handle,
            accessJwt=_signed(did, now + access_expires_in, f"access:{label}"),
            refreshJwt=_signed(did, now + refresh_expires_in, f"refresh:{label}"),
        )

    return _factory


@pytest.fixture
def seed_rate_limit() -> Callable[[str, RateLimitRecord], None]:
    """Write a rate limit row directly, replacing any existing one for the IP."""

    def _seed(db_path: str, record: RateLimitRecord) -> None:
        last_attempt = record.last_attempt_at.isoformat() if record.last_attempt_at else None
        with closing(sqlite3.connect(db_path)) as conn, conn:
            conn.execute(
                "INSERT OR REPLACE INTO auth_rate_limits (ip_address, attempts, last_attempt_at) "
                "VALUES (?, ?, ?)",
                (record.ip_address, record.attempts, last_attempt),
            )

    return _seed


@pytest.fixture
def count_sessions() -> Callable[[str], int]:
    def _count(db_path: str) -> int:
        with closing(sqlite3.connect(db_path)) as conn:
            (total,) = conn.execute("SELECT COUNT(*) FROM session_records").fetchone()
        return int(total)

    return _count
