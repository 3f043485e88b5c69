"""Public schema exports."""

from .auth import AccountResponse, AuthErrorResponse, TokenRequest, TokenResponse

__all__ = [
    "AccountResponse",
    "AuthErrorResponse",
    "TokenRequest",
    "TokenResponse",
]
