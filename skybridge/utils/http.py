"""HTTP utilities providing retry/backoff semantics."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import httpx


class RetryConfig:
    def __init__(self, *, attempts: int = 3, backoff_seconds: float = 0.5) -> None:
        self.attempts = max(1, attempts)
        self.backoff_seconds = backoff_seconds


def is_transient(response: httpx.Response) -> bool:
    """Server-side failures are worth retrying; client errors never are."""
    return response.status_code >= 500


async def request_with_retry(
    func: Callable[..., Awaitable[httpx.Response]],
    *args,
    retry_config: RetryConfig | None = None,
    **kwargs,
) -> httpx.Response:
    """Call ``func`` until it returns a non-transient response.

    Transport errors and 5xx responses are retried with linear backoff. A 4xx
    response is returned immediately so credential rejections reach the
    caller on the first attempt. The last 5xx response is returned once
    attempts are exhausted; the last transport error is re-raised.
    """
    config = retry_config or RetryConfig()
    attempt = 0
    last_exception: Exception | None = None
    response: httpx.Response | None = None

    while attempt < config.attempts:
        try:
            response = await func(*args, **kwargs)
            last_exception = None
            if not is_transient(response):
                return response
        except httpx.TransportError as exc:
            last_exception = exc
            response = None
        attempt += 1
        if attempt >= config.attempts:
            break
        await asyncio.sleep(config.backoff_seconds * attempt)

    if last_exception is not None:
        raise last_exception
    if response is not None:
        return response
    raise RuntimeError("Request failed without raising an exception")


__all__ = ["RetryConfig", "is_transient", "request_with_retry"]
