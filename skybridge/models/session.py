"""
Domain models for bridged provider sessions and their persistence.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class CredentialRecord(BaseModel):
    """Credentials sealed inside a locally-issued bearer token."""

    model_config = ConfigDict(frozen=True)

    identifier: str = Field(..., min_length=1, description="Provider login handle or email.")
    secret: str = Field(..., min_length=1, description="Provider app password.")
    preferences: Dict[str, Any] = Field(default_factory=dict)
    subject_id: Optional[str] = Field(
        None, description="Provider DID, unknown until the first session is created."
    )


class ProviderSession(BaseModel):
    """Session payload issued by the identity provider.

    Unknown provider fields are kept so a stored session serializes back to
    what the provider returned.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    did: str
    handle: str
    access_jwt: str = Field(..., alias="accessJwt")
    refresh_jwt: str = Field(..., alias="refreshJwt")
    email: Optional[str] = None

    def serialize(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class SessionRecord(BaseModel):
    """Persisted session row keyed by subject id."""

    subject_id: str
    serialized_session: str
    updated_at: Optional[datetime] = None


class RateLimitRecord(BaseModel):
    """Persisted failed-authentication counter keyed by client IP."""

    ip_address: str
    attempts: int = Field(0, ge=0)
    last_attempt_at: Optional[datetime] = None


class SessionClaims(BaseModel):
    """Expiry instants extracted from a session's access and refresh JWTs."""

    model_config = ConfigDict(frozen=True)

    access_expires_at: datetime
    refresh_expires_at: datetime


__all__ = [
    "CredentialRecord",
    "ProviderSession",
    "RateLimitRecord",
    "SessionClaims",
    "SessionRecord",
]
