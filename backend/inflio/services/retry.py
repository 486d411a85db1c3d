"""
Generic retry helpers for outbound HTTP calls.

``with_retry`` retries an async callable with capped exponential backoff;
``request_with_retry`` wraps a single httpx request, turning 5xx and 429
responses into retryable errors.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from inflio.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RetryableHTTPError(Exception):
    """Raised for responses that should be retried (5xx, 429)."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"Server error: {response.status_code}")
        self.response = response
        self.status = response.status_code


def default_should_retry(error: BaseException) -> bool:
    """Network errors and 5xx statuses are worth another attempt."""
    if isinstance(error, httpx.TransportError):
        return True
    status = getattr(error, "status", None)
    if isinstance(status, int) and status >= 500:
        return True
    return "network" in str(error).lower()


def retry_delay(
    attempt: int,
    initial_delay: float,
    max_delay: float,
    backoff_multiplier: float,
) -> float:
    """Delay after the failure of 1-based ``attempt``."""
    return min(initial_delay * backoff_multiplier ** (attempt - 1), max_delay)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_multiplier: float = 2.0,
    should_retry: Callable[[BaseException], bool] = default_should_retry,
    on_retry: Optional[Callable[[BaseException, int], Any]] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Call ``fn`` until it succeeds, raising the last error once attempts run out."""
    for attempt in range(1, max_attempts + 1):
        try:
            return await fn()
        except Exception as e:
            if attempt == max_attempts or not should_retry(e):
                raise

            delay = retry_delay(attempt, initial_delay, max_delay, backoff_multiplier)
            if on_retry:
                on_retry(e, attempt)
            else:
                logger.info("Retry attempt", attempt=attempt, delay=delay, error=str(e))
            await sleep(delay)

    raise RuntimeError("with_retry called with max_attempts < 1")


def _should_retry_request(error: BaseException) -> bool:
    if isinstance(error, RetryableHTTPError):
        return error.status == 429 or error.status >= 500
    return isinstance(error, httpx.TransportError)


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    **kwargs: Any,
) -> httpx.Response:
    """
    Send one request with retries on transport errors, 5xx and 429.

    The final response is returned as-is, so callers still see 4xx bodies.
    """

    async def _send() -> httpx.Response:
        response = await client.request(method, url, **kwargs)
        if response.status_code >= 500 or response.status_code == 429:
            raise RetryableHTTPError(response)
        return response

    try:
        return await with_retry(
            _send,
            max_attempts=max_attempts,
            initial_delay=initial_delay,
            should_retry=_should_retry_request,
            sleep=sleep,
        )
    except RetryableHTTPError as e:
        return e.response


async def upload_with_retry(
    fn: Callable[[], Awaitable[T]],
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Retry an upload more patiently; client errors (4xx) are final."""

    def _should_retry(error: BaseException) -> bool:
        status = getattr(error, "status", None) or getattr(error, "status_code", None)
        if isinstance(status, int) and 400 <= status < 500:
            return False
        return True

    return await with_retry(
        fn, max_attempts=5, initial_delay=2.0, should_retry=_should_retry, sleep=sleep
    )
