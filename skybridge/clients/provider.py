"""
Identity provider session client.

Talks to the provider's XRPC session endpoints. Only session creation and
refresh are needed to back the bearer-token bridge.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

import httpx
from pydantic import ValidationError

from skybridge.core.config import ProviderSettings
from skybridge.models import ProviderSession
from skybridge.utils.http import RetryConfig, request_with_retry

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Raised when the provider does not return a usable session."""


class ProviderAuthError(ProviderError):
    """The provider rejected the presented credentials or refresh token."""


class ProviderUnavailableError(ProviderError):
    """The provider could not be reached or answered with a server error."""


class ProviderClient:
    """Create and refresh provider sessions over HTTP."""

    CREATE_SESSION_PATH = "/xrpc/com.atproto.server.createSession"
    REFRESH_SESSION_PATH = "/xrpc/com.atproto.server.refreshSession"

    def __init__(
        self,
        settings: ProviderSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_config: RetryConfig | None = None,
    ) -> None:
        self._base_url = str(settings.service_url).rstrip("/")
        self._timeout = settings.timeout_seconds
        self._transport = transport
        self._retry = retry_config or RetryConfig(attempts=settings.retries + 1)

    async def create_session(self, *, identifier: str, password: str) -> ProviderSession:
        """Authenticate with an identifier and app password."""
        payload = {"identifier": identifier, "password": password}
        return await self._session_call(self.CREATE_SESSION_PATH, json=payload)

    async def refresh_session(self, refresh_jwt: str) -> ProviderSession:
        """Exchange a refresh JWT for a new access/refresh pair."""
        headers = {"Authorization": f"Bearer {refresh_jwt}"}
        return await self._session_call(self.REFRESH_SESSION_PATH, headers=headers)

    async def _session_call(self, path: str, **kwargs: Any) -> ProviderSession:
        url = f"{self._base_url}{path}"
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await request_with_retry(
                    client.post, url, retry_config=self._retry, **kwargs
                )
            except httpx.TransportError as exc:
                logger.warning("Provider call to %s failed: %s", path, exc.__class__.__name__)
                raise ProviderUnavailableError(f"Provider unreachable: {exc}") from exc

        if response.status_code in (400, 401, 403):
            raise ProviderAuthError(self._error_name(response))
        if response.status_code != 200:
            raise ProviderUnavailableError(
                f"Provider returned HTTP {response.status_code} for {path}"
            )

        try:
            return ProviderSession.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ProviderUnavailableError("Incomplete session payload returned from provider.") from exc

    @staticmethod
    def _error_name(response: httpx.Response) -> str:
        try:
            body: Dict[str, Any] = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        return str(body.get("error") or f"HTTP {response.status_code}")


__all__ = [
    "ProviderAuthError",
    "ProviderClient",
    "ProviderError",
    "ProviderUnavailableError",
]
