"""
FastAPI application entrypoint for the bearer token bridge.
"""

from __future__ import annotations

from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from skybridge.api.routes import router as api_router
from skybridge.core.config import get_settings
from skybridge.core.logging import configure_logging
from skybridge.dependencies import AUTH_ERROR_MESSAGE, AuthenticationFailed


async def _authentication_failed_handler(
    request: Request, exc: AuthenticationFailed
) -> JSONResponse:
    return JSONResponse(
        status_code=HTTPStatus.UNAUTHORIZED,
        content={"error": AUTH_ERROR_MESSAGE},
    )


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Skybridge Auth",
        version="0.1.0",
        description="Long-lived bearer tokens bridged onto identity provider sessions.",
    )
    app.add_exception_handler(AuthenticationFailed, _authentication_failed_handler)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
