from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from skybridge.clients import (
    ProviderAuthError,
    ProviderUnavailableError,
    SQLiteRateLimitStore,
    SQLiteSessionStore,
)
from skybridge.models import CredentialRecord, ProviderSession, RateLimitRecord
from skybridge.services import (
    BearerTokenCodec,
    CorruptSessionRecordError,
    RateLimiter,
    SessionCache,
    SessionResolver,
    SessionStore,
    TokenCipherService,
)

IP = "203.0.113.7"
DID = "did:plc:alice"


class FakeProviderClient:
    def __init__(self) -> None:
        self.created: list[ProviderSession] = []
        self.refreshed: list[ProviderSession] = []
        self.create_error: Exception | None = None
        self.refresh_error: Exception | None = None
        self.create_calls: list[tuple[str, str]] = []
        self.refresh_calls: list[str] = []

    async def create_session(self, *, identifier: str, password: str) -> ProviderSession:
        self.create_calls.append((identifier, password))
        if self.create_error is not None:
            raise self.create_error
        return self.created.pop(0)

    async def refresh_session(self, refresh_jwt: str) -> ProviderSession:
        self.refresh_calls.append(refresh_jwt)
        if self.refresh_error is not None:
            raise self.refresh_error
        return self.refreshed.pop(0)


class Harness:
    def __init__(self, tmp_path, seed_rate_limit, cache_ttl: int = 0) -> None:
        db_path = str(tmp_path / "skybridge.db")
        self.db_path = db_path
        self.codec = BearerTokenCodec(TokenCipherService(secret="resolver-secret"))
        self.sessions_table = SQLiteSessionStore(db_path)
        self.limits_table = SQLiteRateLimitStore(db_path)
        self.provider = FakeProviderClient()
        self._seed_rate_limit = seed_rate_limit
        self.resolver = SessionResolver(
            codec=self.codec,
            session_store=SessionStore(
                self.sessions_table, cache=SessionCache(ttl_seconds=cache_ttl)
            ),
            rate_limiter=RateLimiter(self.limits_table),
            provider_client=self.provider,
        )

    def header(self, subject_id: str | None = DID) -> str:
        credential = CredentialRecord(
            identifier="alice.test", secret="app-password", subject_id=subject_id
        )
        return f"Bearer {self.codec.encode(credential)}"

    def seed_limit(self, record: RateLimitRecord) -> None:
        self._seed_rate_limit(self.db_path, record)

    def stored(self, subject_id: str = DID) -> str | None:
        record = self.sessions_table.get(subject_id)
        return record.serialized_session if record else None


@pytest.fixture()
def harness(tmp_path, seed_rate_limit) -> Harness:
    return Harness(tmp_path, seed_rate_limit)


@pytest.mark.asyncio
async def test_missing_header_is_unauthenticated(harness: Harness) -> None:
    assert await harness.resolver.resolve_session(None, IP) is None
    assert harness.provider.create_calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "header", ["Token abc", "Bearer tampered", "Bearer ", "bearer x"]
)
async def test_malformed_headers_mutate_nothing(
    harness: Harness, header: str, count_sessions
) -> None:
    assert await harness.resolver.resolve_session(header, IP) is None

    assert harness.provider.create_calls == []
    assert count_sessions(harness.db_path) == 0
    assert harness.limits_table.get(IP) is None


@pytest.mark.asyncio
async def test_first_login_creates_record_and_clears_limit(harness: Harness, make_session) -> None:
    session = make_session()
    harness.provider.created.append(session)
    harness.seed_limit(RateLimitRecord(ip_address=IP, attempts=3))

    result = await harness.resolver.resolve_session(harness.header(subject_id=None), IP)

    assert result == session
    assert harness.provider.create_calls == [("alice.test", "app-password")]
    assert harness.stored(DID) == session.serialize()
    assert harness.limits_table.get(IP) is None


@pytest.mark.asyncio
async def test_valid_cached_session_is_reused_without_provider_call(
    harness: Harness, make_session
) -> None:
    harness.provider.created.append(make_session())
    first = await harness.resolver.resolve_session(harness.header(), IP)
    stored_after_create = harness.stored()

    second = await harness.resolver.resolve_session(harness.header(), IP)

    assert second == first
    assert harness.stored() == stored_after_create
    assert second.serialize() == stored_after_create
    assert len(harness.provider.create_calls) == 1
    assert harness.provider.refresh_calls == []


@pytest.mark.asyncio
async def test_expired_access_token_is_refreshed_once(harness: Harness, make_session) -> None:
    cached = make_session(access_expires_in=timedelta(minutes=-5))
    refreshed = make_session(label="refreshed")
    harness.sessions_table.upsert(DID, cached.serialize())
    harness.provider.refreshed.append(refreshed)

    result = await harness.resolver.resolve_session(harness.header(), IP)

    assert result == refreshed
    assert harness.provider.refresh_calls == [cached.refresh_jwt]
    assert harness.provider.create_calls == []
    assert harness.stored() == refreshed.serialize()
    assert harness.limits_table.get(IP) is None


@pytest.mark.asyncio
async def test_refresh_failure_fails_request_without_touching_limiter(
    harness: Harness, make_session
) -> None:
    cached = make_session(access_expires_in=timedelta(minutes=-5))
    harness.sessions_table.upsert(DID, cached.serialize())
    harness.provider.refresh_error = ProviderAuthError("ExpiredToken")

    assert await harness.resolver.resolve_session(harness.header(), IP) is None

    assert harness.provider.create_calls == []
    assert harness.limits_table.get(IP) is None
    assert harness.stored() == cached.serialize()


@pytest.mark.asyncio
async def test_five_bad_attempts_lock_out_the_sixth(harness: Harness) -> None:
    harness.provider.create_error = ProviderAuthError("AuthenticationRequired")

    for _ in range(5):
        assert await harness.resolver.resolve_session(harness.header(), IP) is None
    assert len(harness.provider.create_calls) == 5
    assert harness.limits_table.get(IP).attempts == 5

    assert await harness.resolver.resolve_session(harness.header(), IP) is None
    assert len(harness.provider.create_calls) == 5


@pytest.mark.asyncio
async def test_locked_ip_is_rejected_even_with_good_credentials(
    harness: Harness, make_session
) -> None:
    harness.provider.created.append(make_session())
    harness.seed_limit(
        RateLimitRecord(
            ip_address=IP,
            attempts=5,
            last_attempt_at=datetime.now(timezone.utc) - timedelta(minutes=10),
        )
    )

    assert await harness.resolver.resolve_session(harness.header(), IP) is None
    assert harness.provider.create_calls == []
    assert harness.limits_table.get(IP).attempts == 5


@pytest.mark.asyncio
async def test_unavailable_provider_still_counts_as_failed_attempt(harness: Harness) -> None:
    harness.provider.create_error = ProviderUnavailableError("timeout")

    assert await harness.resolver.resolve_session(harness.header(), IP) is None
    assert harness.limits_table.get(IP).attempts == 1


@pytest.mark.asyncio
async def test_expired_refresh_token_reauthenticates(harness: Harness, make_session) -> None:
    cached = make_session(
        access_expires_in=timedelta(days=-2), refresh_expires_in=timedelta(days=-1)
    )
    fresh = make_session(label="brand-new")
    harness.sessions_table.upsert(DID, cached.serialize())
    harness.seed_limit(RateLimitRecord(ip_address=IP, attempts=2))
    harness.provider.created.append(fresh)

    result = await harness.resolver.resolve_session(harness.header(), IP)

    assert result == fresh
    assert harness.provider.refresh_calls == []
    assert harness.provider.create_calls == [("alice.test", "app-password")]
    assert harness.limits_table.get(IP) is None
    assert harness.stored() == fresh.serialize()


@pytest.mark.asyncio
async def test_corrupt_record_is_a_storage_failure(harness: Harness) -> None:
    harness.sessions_table.upsert(DID, '{"did": "did:plc:alice", "handle": "alice.test"}')

    with pytest.raises(CorruptSessionRecordError):
        await harness.resolver.resolve_session(harness.header(), IP)
    assert harness.provider.create_calls == []


@pytest.mark.asyncio
async def test_cached_shadow_serves_valid_sessions_until_ttl(
    tmp_path, seed_rate_limit, make_session
) -> None:
    harness = Harness(tmp_path, seed_rate_limit, cache_ttl=1)
    session = make_session()
    harness.sessions_table.upsert(DID, session.serialize())

    assert await harness.resolver.resolve_session(harness.header(), IP) == session
    harness.sessions_table.upsert(DID, "{broken")

    assert await harness.resolver.resolve_session(harness.header(), IP) == session

    await asyncio.sleep(1.1)
    with pytest.raises(CorruptSessionRecordError):
        await harness.resolver.resolve_session(harness.header(), IP)


@pytest.mark.asyncio
async def test_repeated_cache_hits_do_not_extend_the_ttl(
    tmp_path, seed_rate_limit, make_session
) -> None:
    harness = Harness(tmp_path, seed_rate_limit, cache_ttl=2)
    session = make_session()
    harness.sessions_table.upsert(DID, session.serialize())

    assert await harness.resolver.resolve_session(harness.header(), IP) == session
    harness.sessions_table.upsert(DID, "{broken")

    for _ in range(6):
        await asyncio.sleep(0.2)
        assert await harness.resolver.resolve_session(harness.header(), IP) == session

    await asyncio.sleep(1.0)
    with pytest.raises(CorruptSessionRecordError):
        await harness.resolver.resolve_session(harness.header(), IP)
    assert harness.provider.create_calls == []


@pytest.mark.asyncio
async def test_authenticate_persists_session_under_returned_did(
    harness: Harness, make_session
) -> None:
    session = make_session("did:plc:carol", handle="carol.test")
    harness.provider.created.append(session)

    result = await harness.resolver.authenticate(
        identifier="carol.test", secret="pw", client_ip=IP
    )

    assert result == session
    assert harness.stored("did:plc:carol") == session.serialize()
