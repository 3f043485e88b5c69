"""Schemas related to bearer token issuance and account lookups."""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field


class TokenRequest(BaseModel):
    """Credentials exchanged for a long-lived bearer token."""

    identifier: str = Field(..., min_length=1, description="Provider handle or email.")
    password: str = Field(..., min_length=1, description="Provider app password.")
    preferences: Dict[str, Any] = Field(
        default_factory=dict,
        description="Client preferences sealed into the token and passed through unchanged.",
    )


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    did: str
    handle: str


class AccountResponse(BaseModel):
    did: str
    handle: str


class AuthErrorResponse(BaseModel):
    error: str


__all__ = ["AccountResponse", "AuthErrorResponse", "TokenRequest", "TokenResponse"]
