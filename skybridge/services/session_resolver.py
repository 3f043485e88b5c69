"""
Resolve a request's bearer token into a live provider session.

Each request walks the same state machine:

* the bearer token is opened into credentials (failure: unauthenticated);
* a stored session whose access token is still valid is reused as-is;
* a stored session whose refresh token is still valid is refreshed and
  written back;
* otherwise the credentials are re-checked against the provider, guarded by
  the per-IP rate limiter.

Only credential checks touch the rate limiter. A failed refresh fails the
request without falling back to a credential check; once the refresh token
itself expires the next request takes the credential path naturally.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from skybridge.clients import ProviderClient, ProviderError
from skybridge.models import ProviderSession, SessionRecord
from skybridge.services.bearer_token import BearerTokenCodec
from skybridge.services.rate_limiter import RateLimiter
from skybridge.services.session_store import (
    CorruptSessionRecordError,
    SessionStore,
    extract_session_claims,
    parse_session,
)

logger = logging.getLogger(__name__)


class SessionResolver:
    """Orchestrates token decoding, session storage, refresh and re-authentication."""

    def __init__(
        self,
        *,
        codec: BearerTokenCodec,
        session_store: SessionStore,
        rate_limiter: RateLimiter,
        provider_client: ProviderClient,
    ) -> None:
        self._codec = codec
        self._sessions = session_store
        self._limiter = rate_limiter
        self._provider = provider_client

    async def resolve_session(
        self, authorization: Optional[str], client_ip: str
    ) -> Optional[ProviderSession]:
        """Return a usable provider session, or ``None`` to answer unauthenticated.

        Storage failures, including stored sessions with unreadable claims,
        propagate as ``SessionStorageError``.
        """
        credential = self._codec.decode(authorization)
        if credential is None:
            return None

        record: SessionRecord | None = None
        if credential.subject_id:
            record = await self._sessions.get(credential.subject_id)

        if record is not None:
            try:
                session = parse_session(record.serialized_session)
                claims = extract_session_claims(session)
            except CorruptSessionRecordError:
                self._sessions.invalidate(record.subject_id)
                raise

            now = datetime.now(timezone.utc)
            if now <= claims.access_expires_at:
                self._sessions.remember(record, claims.access_expires_at)
                return session
            if now <= claims.refresh_expires_at:
                return await self._refresh(session)
            logger.info("Refresh token expired for %s; re-authenticating", record.subject_id)

        return await self.authenticate(
            identifier=credential.identifier,
            secret=credential.secret,
            client_ip=client_ip,
        )

    async def authenticate(
        self, *, identifier: str, secret: str, client_ip: str
    ) -> Optional[ProviderSession]:
        """Check raw credentials with the provider and persist the new session."""
        if await self._limiter.is_locked(client_ip):
            logger.warning("Rejecting credential check from rate limited address %s", client_ip)
            return None

        try:
            session = await self._provider.create_session(identifier=identifier, password=secret)
        except ProviderError as exc:
            logger.info(
                "Provider rejected session creation from %s: %s",
                client_ip,
                exc.__class__.__name__,
            )
            await self._limiter.record_failure(client_ip)
            return None

        await self._limiter.reset(client_ip)
        await self._sessions.put(session.did, session.serialize())
        logger.info("New session created for %s", session.did)
        return session

    async def _refresh(self, session: ProviderSession) -> Optional[ProviderSession]:
        try:
            refreshed = await self._provider.refresh_session(session.refresh_jwt)
        except ProviderError as exc:
            logger.warning(
                "Session refresh failed for %s: %s", session.did, exc.__class__.__name__
            )
            self._sessions.invalidate(session.did)
            return None

        await self._sessions.put(refreshed.did, refreshed.serialize())
        logger.info("Session refreshed for %s", refreshed.did)
        return refreshed


__all__ = ["SessionResolver"]
