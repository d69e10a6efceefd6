"""Retry policy for outbound LLM requests.

A request is retried on HTTP 429, HTTP 5xx and transport failures
(connection errors, timeouts). Attempt n that fails waits 2**(n-1) seconds
before attempt n+1; there is no wait after the last attempt. Any other 4xx
fails immediately with the response body as detail.

`sleep` is injectable so tests can run the policy on a fake clock.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from twenty_questions.errors import UpstreamError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def is_retryable_status(status: int) -> bool:
    return status == 429 or status >= 500


class RetryPolicy:
    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Backoff after the given (1-based) failed attempt."""
        return self.base_delay * 2 ** (attempt - 1)

    async def run(
        self,
        provider: str,
        send: Callable[[], Awaitable[httpx.Response]],
    ) -> httpx.Response:
        """Call `send` until it yields a 2xx/3xx response or attempts run out."""
        last_error = ""
        for attempt in range(1, self.max_attempts + 1):
            try:
                resp = await send()
            except httpx.TransportError as e:
                last_error = f"{type(e).__name__}: {e}"
            else:
                if resp.status_code < 400:
                    return resp
                detail = f"HTTP {resp.status_code}: {resp.text}"
                if not is_retryable_status(resp.status_code):
                    raise UpstreamError(f"{provider} API request failed: {detail}")
                last_error = detail

            if attempt < self.max_attempts:
                delay = self.delay_for(attempt)
                logger.warning(
                    "%s request attempt %d/%d failed (%s); retrying in %.1fs",
                    provider, attempt, self.max_attempts, last_error, delay,
                )
                await self._sleep(delay)

        raise UpstreamError(
            f"{provider} API request failed after {self.max_attempts} attempts: {last_error}"
        )
