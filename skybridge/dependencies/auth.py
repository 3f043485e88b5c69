"""
Request authentication dependencies.

Every failure, whatever its cause, is reported to the client with the same
401 body so responses reveal nothing about why authentication failed.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Annotated, Any

from fastapi import Depends, Request

from skybridge.dependencies.clients import get_session_resolver
from skybridge.models import ProviderSession
from skybridge.services import SessionStorageError

logger = logging.getLogger(__name__)

AUTH_ERROR_MESSAGE = "The access token is invalid"


class AuthenticationFailed(Exception):
    """Raised by dependencies when a request cannot be authenticated."""


def client_ip_from_request(request: Request) -> str:
    """Prefer the proxy-supplied address over the transport peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client is not None:
        return request.client.host
    return "unknown"


async def require_session(
    request: Request,
    resolver: Annotated[Any, Depends(get_session_resolver)],
) -> ProviderSession:
    """FastAPI dependency returning the caller's provider session."""
    try:
        session = await resolver.resolve_session(
            request.headers.get("authorization"),
            client_ip_from_request(request),
        )
    except (SessionStorageError, sqlite3.Error) as exc:
        logger.exception("Session storage failure while authenticating request")
        raise AuthenticationFailed() from exc

    if session is None:
        raise AuthenticationFailed()
    return session


__all__ = [
    "AUTH_ERROR_MESSAGE",
    "AuthenticationFailed",
    "client_ip_from_request",
    "require_session",
]
