"""Symmetric sealing of bearer token payloads."""

from __future__ import annotations

import base64
import hashlib
import json
from typing import Any, Dict

from cryptography.fernet import Fernet, InvalidToken


class TokenCipherService:
    """Pack and unpack JSON objects as opaque, tamper-evident strings.

    The Fernet key is derived from the configured secret, so every process
    sharing that secret can open tokens issued by any other.
    """

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        key = base64.urlsafe_b64encode(digest)
        self._fernet = Fernet(key)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a plaintext string and return the ciphertext."""
        token = self._fernet.encrypt(plaintext.encode("utf-8"))
        return token.decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a ciphertext string and return the plaintext."""
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except (InvalidToken, UnicodeEncodeError) as exc:
            raise ValueError(
                "Failed to decrypt token; invalid ciphertext provided."
            ) from exc
        return plaintext.decode("utf-8")

    def pack(self, payload: Dict[str, Any]) -> str:
        """Seal a JSON-serializable mapping."""
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        return self.encrypt(serialized)

    def unpack(self, token: str) -> Dict[str, Any]:
        """Open a sealed mapping, raising ``ValueError`` on tampered or foreign input."""
        payload = json.loads(self.decrypt(token))
        if not isinstance(payload, dict):
            raise ValueError("Sealed token does not contain an object.")
        return payload


__all__ = ["TokenCipherService"]
