"""Service layer exports."""

from .bearer_token import BEARER_PREFIX, BearerTokenCodec
from .rate_limiter import RateLimiter
from .session_resolver import SessionResolver
from .session_store import (
    CorruptSessionRecordError,
    SessionCache,
    SessionStorageError,
    SessionStore,
    extract_session_claims,
)
from .token_cipher import TokenCipherService

__all__ = [
    "BEARER_PREFIX",
    "BearerTokenCodec",
    "CorruptSessionRecordError",
    "RateLimiter",
    "SessionCache",
    "SessionResolver",
    "SessionStorageError",
    "SessionStore",
    "TokenCipherService",
    "extract_session_claims",
]
