"""
FastAPI routes for the bearer token bridge.
"""

from __future__ import annotations

import logging
import sqlite3
from http import HTTPStatus
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, Request

from skybridge.dependencies import (
    AuthenticationFailed,
    client_ip_from_request,
    get_bearer_token_codec,
    get_session_resolver,
    require_session,
)
from skybridge.models import CredentialRecord, ProviderSession
from skybridge.schemas import AccountResponse, AuthErrorResponse, TokenRequest, TokenResponse
from skybridge.services import SessionStorageError

router = APIRouter()
logger = logging.getLogger(__name__)

_UNAUTHORIZED = {HTTPStatus.UNAUTHORIZED.value: {"model": AuthErrorResponse}}


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.post(
    "/oauth/token",
    response_model=TokenResponse,
    status_code=HTTPStatus.OK,
    responses=_UNAUTHORIZED,
)
async def issue_token(
    payload: TokenRequest,
    request: Request,
    resolver: Annotated[Any, Depends(get_session_resolver)],
    codec: Annotated[Any, Depends(get_bearer_token_codec)],
) -> TokenResponse:
    """Check credentials with the provider and seal them into a bearer token."""
    try:
        session = await resolver.authenticate(
            identifier=payload.identifier,
            secret=payload.password,
            client_ip=client_ip_from_request(request),
        )
    except (SessionStorageError, sqlite3.Error) as exc:
        logger.exception("Session storage failure while issuing token")
        raise AuthenticationFailed() from exc

    if session is None:
        raise AuthenticationFailed()

    credential = CredentialRecord(
        identifier=payload.identifier,
        secret=payload.password,
        preferences=payload.preferences,
        subject_id=session.did,
    )
    return TokenResponse(
        access_token=codec.encode(credential),
        did=session.did,
        handle=session.handle,
    )


@router.get(
    "/v1/accounts/verify_credentials",
    response_model=AccountResponse,
    responses=_UNAUTHORIZED,
)
async def verify_credentials(
    session: Annotated[ProviderSession, Depends(require_session)],
) -> AccountResponse:
    return AccountResponse(did=session.did, handle=session.handle)


@router.get(
    "/v1/preferences",
    responses=_UNAUTHORIZED,
    dependencies=[Depends(require_session)],
)
async def get_preferences(
    request: Request,
    codec: Annotated[Any, Depends(get_bearer_token_codec)],
) -> Dict[str, Any]:
    """Return the client preferences sealed into the caller's token."""
    return codec.preferences(request.headers.get("authorization"))


__all__ = ["router"]
