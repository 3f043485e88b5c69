"""Expose dependency helpers for FastAPI routers."""

from .auth import (
    AUTH_ERROR_MESSAGE,
    AuthenticationFailed,
    client_ip_from_request,
    require_session,
)
from .clients import (
    get_bearer_token_codec,
    get_provider_client,
    get_rate_limiter,
    get_session_resolver,
    get_session_store,
    get_token_cipher_service,
)

__all__ = [
    "AUTH_ERROR_MESSAGE",
    "AuthenticationFailed",
    "client_ip_from_request",
    "get_bearer_token_codec",
    "get_provider_client",
    "get_rate_limiter",
    "get_session_resolver",
    "get_session_store",
    "get_token_cipher_service",
    "require_session",
]
