"""Bearer token decoding into bridged provider credentials."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import ValidationError

from skybridge.models import CredentialRecord
from skybridge.services.token_cipher import TokenCipherService

BEARER_PREFIX = "Bearer "


class BearerTokenCodec:
    """Translate between Authorization header values and credential records."""

    def __init__(self, cipher: TokenCipherService) -> None:
        self._cipher = cipher

    def decode(self, header_value: Optional[str]) -> Optional[CredentialRecord]:
        """Return the sealed credentials, or ``None`` for anything unusable."""
        if header_value is None or not header_value.startswith(BEARER_PREFIX):
            return None
        try:
            payload = self._cipher.unpack(header_value[len(BEARER_PREFIX):])
            return CredentialRecord.model_validate(payload)
        except (ValueError, ValidationError):
            return None

    def encode(self, credential: CredentialRecord) -> str:
        """Seal credentials into an opaque token (without the scheme prefix)."""
        return self._cipher.pack(credential.model_dump())

    def preferences(self, header_value: Optional[str]) -> Dict[str, Any]:
        credential = self.decode(header_value)
        if credential is None:
            return {}
        return dict(credential.preferences)


__all__ = ["BEARER_PREFIX", "BearerTokenCodec"]
