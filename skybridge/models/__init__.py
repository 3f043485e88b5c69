"""Domain model exports."""

from .session import (
    CredentialRecord,
    ProviderSession,
    RateLimitRecord,
    SessionClaims,
    SessionRecord,
)

__all__ = [
    "CredentialRecord",
    "ProviderSession",
    "RateLimitRecord",
    "SessionClaims",
    "SessionRecord",
]
