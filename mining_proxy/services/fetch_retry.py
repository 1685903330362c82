# mining_proxy/services/fetch_retry.py

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional

import httpx

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    """Per-call retry configuration: additional attempts after the first, and the backoff base."""
    retries: int = 2
    base_delay_ms: int = 500


class RetryPhase(str, Enum):
    ATTEMPTING = "attempting"
    WAITING = "waiting"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


def is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None) -> Optional[float]:
    """
    Parse a Retry-After header into seconds.
    Accepts delay-seconds ("2", "1.5") or an HTTP-date; dates in the past give 0.
    Returns None when the header is absent or unusable.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if when is None:
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        seconds = (when - (now or datetime.now(timezone.utc))).total_seconds()
    if not math.isfinite(seconds):
        return None
    return max(0.0, seconds)


def backoff_delay(attempt: int, policy: RetryPolicy, retry_after: Optional[float] = None) -> float:
    """
    Seconds to wait after the failed attempt with index `attempt` (0-based).
    A server hint wins; otherwise base * 2^attempt.
    """
    if retry_after is not None:
        return retry_after
    return policy.base_delay_ms / 1000.0 * (2 ** attempt)


async def fetch_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, str]] = None,
    policy: RetryPolicy = RetryPolicy(),
    sleep: Sleep = asyncio.sleep,
) -> httpx.Response:
    """
    GET `url`, retrying transient failures.

    Transient: a network-level error (httpx.RequestError) or a 429/5xx response.
    Any other response, 4xx included, is returned immediately for the caller to inspect.

    Phases: attempting -> (succeeded | waiting -> attempting ... | exhausted).
    When the retry budget is exhausted the last received response is returned;
    if no response was ever received the last network error is raised.
    """
    last_response: Optional[httpx.Response] = None
    attempt = 0

    while True:
        retry_after = None
        try:
            response = await client.get(url, params=params, headers=headers)
        except httpx.RequestError as ex:
            logger.warning("fetch %s: attempt %d failed: %s", url, attempt, ex)
            if attempt >= policy.retries and last_response is None:
                logger.warning("fetch %s: %s after %d attempts", url, RetryPhase.EXHAUSTED.value, attempt + 1)
                raise
        else:
            if not is_retryable_status(response.status_code):
                logger.debug("fetch %s: %s with %d on attempt %d",
                             url, RetryPhase.SUCCEEDED.value, response.status_code, attempt)
                return response
            last_response = response
            retry_after = parse_retry_after(response.headers.get("retry-after"))
            logger.warning("fetch %s: attempt %d got %d", url, attempt, response.status_code)

        if attempt >= policy.retries:
            break

        delay = backoff_delay(attempt, policy, retry_after)
        logger.info("fetch %s: %s %.3fs before retry %d/%d",
                    url, RetryPhase.WAITING.value, delay, attempt + 1, policy.retries)
        await sleep(delay)
        attempt += 1

    logger.warning("fetch %s: %s after %d attempts", url, RetryPhase.EXHAUSTED.value, attempt + 1)
    # always set here: exhaustion without any response raised above
    return last_response
