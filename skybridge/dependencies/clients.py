"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from datetime import timedelta
from functools import lru_cache

from skybridge.clients import ProviderClient, SQLiteRateLimitStore, SQLiteSessionStore
from skybridge.core.config import get_settings
from skybridge.services import (
    BearerTokenCodec,
    RateLimiter,
    SessionCache,
    SessionResolver,
    SessionStore,
    TokenCipherService,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide the symmetric cipher sealing bearer tokens."""
    return TokenCipherService(secret=_settings().security.token_secret)


@lru_cache()
def get_bearer_token_codec() -> BearerTokenCodec:
    return BearerTokenCodec(get_token_cipher_service())


@lru_cache()
def get_provider_client() -> ProviderClient:
    """Create a singleton provider session client."""
    return ProviderClient(_settings().provider)


@lru_cache()
def get_session_store() -> SessionStore:
    """Provide the session store with its process-local shadow."""
    settings = _settings()
    return SessionStore(
        SQLiteSessionStore(settings.database_path),
        cache=SessionCache(ttl_seconds=settings.session_cache_ttl_seconds),
    )


@lru_cache()
def get_rate_limiter() -> RateLimiter:
    """Provide the per-IP authentication rate limiter."""
    settings = _settings()
    return RateLimiter(
        SQLiteRateLimitStore(settings.database_path),
        max_attempts=settings.rate_limit.max_attempts,
        lockout_window=timedelta(minutes=settings.rate_limit.lockout_minutes),
    )


@lru_cache()
def get_session_resolver() -> SessionResolver:
    """Build the session resolver from the shared clients."""
    return SessionResolver(
        codec=get_bearer_token_codec(),
        session_store=get_session_store(),
        rate_limiter=get_rate_limiter(),
        provider_client=get_provider_client(),
    )


__all__ = [
    "get_bearer_token_codec",
    "get_provider_client",
    "get_rate_limiter",
    "get_session_resolver",
    "get_session_store",
    "get_token_cipher_service",
]
