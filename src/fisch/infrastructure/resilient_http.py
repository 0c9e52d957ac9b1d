import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, TypeVar

import httpx


_RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _is_retryable_exception(exc: Exception) -> bool:
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _RETRYABLE_STATUS_CODES
    return False


def get_json_with_retry(
    client: httpx.Client,
    path: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    retries: int = 0,
    backoff_seconds: float = 0.2,
) -> Any:
    attempts = max(0, int(retries)) + 1

    for attempt_index in range(attempts):
        try:
            response = client.get(path, params=params, headers=headers)
            if response.status_code in _RETRYABLE_STATUS_CODES:
                raise httpx.HTTPStatusError(
                    f"Retryable HTTP status: {response.status_code}",
                    request=response.request,
                    response=response,
                )
            response.raise_for_status()
            return response.json()
        except Exception as exc:
            is_last_attempt = attempt_index >= attempts - 1
            if not _is_retryable_exception(exc) or is_last_attempt:
                raise
            delay = max(0.0, backoff_seconds) * (2 ** attempt_index)
            if delay > 0:
                time.sleep(delay)

    return None


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    base_delay_seconds: float = 1.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    label: str = "operation",
) -> T:
    """Await ``operation`` up to ``attempts`` times, doubling the delay between tries.

    The error from the final attempt propagates to the caller.
    """
    total = max(1, int(attempts))
    delay = max(0.0, float(base_delay_seconds))

    for attempt_index in range(total):
        try:
            return await operation()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if attempt_index >= total - 1:
                raise
            logger.warning(
                "%s attempt %d failed, retrying in %.2fs",
                label,
                attempt_index + 1,
                delay,
                extra={"label": label, "attempt": attempt_index + 1, "error": str(exc)},
            )
            if delay > 0:
                await sleep(delay)
            delay *= 2

    raise RuntimeError(f"{label} failed after {total} attempts")
