"""
Per-IP brute-force protection for credential checks.

The provider rate limits session creation aggressively, so the bridge refuses
further credential checks from an IP once it accumulates failures, instead of
passing them through and tripping the provider's own lockout.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from skybridge.clients import SQLiteRateLimitStore

logger = logging.getLogger(__name__)


class RateLimiter:
    """Failed-attempt counter with a lockout window per client IP."""

    def __init__(
        self,
        store: SQLiteRateLimitStore,
        *,
        max_attempts: int = 5,
        lockout_window: timedelta = timedelta(minutes=30),
    ) -> None:
        self._store = store
        self._max_attempts = max_attempts
        self._lockout_window = lockout_window

    async def record_failure(self, ip_address: str) -> None:
        """Count one failed credential check; the increment is atomic in storage."""
        await asyncio.to_thread(self._store.increment, ip_address)
        logger.info("Failed authentication attempt recorded for %s", ip_address)

    async def is_locked(self, ip_address: str) -> bool:
        """Report whether credential checks from ``ip_address`` must be refused.

        Crossing the threshold stamps the start of the lockout window. Once
        the window has elapsed the counter restarts at a single failure. The
        result follows the presence of that stamp, so the check that restarts
        an expired window still reports the IP as locked.
        """
        record = await asyncio.to_thread(self._store.get, ip_address)
        if record is None or record.attempts < self._max_attempts:
            return False

        now = datetime.now(timezone.utc)
        last_attempt_at = record.last_attempt_at
        if last_attempt_at is None:
            await asyncio.to_thread(self._store.mark_window_start, ip_address, now)
            last_attempt_at = now
        elif last_attempt_at.tzinfo is None:
            last_attempt_at = last_attempt_at.replace(tzinfo=timezone.utc)

        if now - last_attempt_at > self._lockout_window:
            await asyncio.to_thread(self._store.restart_window, ip_address, now)
            logger.info("Lockout window expired for %s", ip_address)

        return last_attempt_at is not None

    async def reset(self, ip_address: str) -> None:
        await asyncio.to_thread(self._store.delete, ip_address)


__all__ = ["RateLimiter"]
