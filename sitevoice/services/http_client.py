"""Outbound HTTP with bounded retry on transient failures.

Every call to a transcription/LLM vendor (and the audio download) goes through
:class:`RetryingHttpClient`. The retry policy lives here and nowhere else:

- 2xx responses are returned immediately.
- 429, 5xx and transport failures (timeouts, connection errors) are retried
  with linear backoff (``attempt * backoff_seconds``).
- Other 4xx responses are returned untouched for the caller to interpret.
- The first attempt uses a short timeout to fail fast; retries use a longer one.
"""

import asyncio
import logging
from typing import Any

import httpx

from sitevoice.config import Settings
from sitevoice.errors import RetryExhaustedError

logger = logging.getLogger("sitevoice.http")


def is_retryable_status(status_code: int) -> bool:
    """Return True for rate-limit and server-error responses."""
    return status_code == 429 or 500 <= status_code < 600


class RetryingHttpClient:
    """Thin retry layer over a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        first_timeout: float = 15.0,
        retry_timeout: float = 60.0,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
    ) -> None:
        self._client = client
        self.first_timeout = first_timeout
        self.retry_timeout = retry_timeout
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, settings: Settings) -> "RetryingHttpClient":
        return cls(
            client,
            first_timeout=settings.HTTP_FIRST_TIMEOUT_SECONDS,
            retry_timeout=settings.HTTP_RETRY_TIMEOUT_SECONDS,
            max_attempts=settings.HTTP_MAX_ATTEMPTS,
            backoff_seconds=settings.HTTP_BACKOFF_SECONDS,
        )

    async def execute(self, method: str, url: str, max_attempts: int | None = None, **kwargs: Any) -> httpx.Response:
        """Send a request, retrying transient failures.

        ``kwargs`` are passed to ``httpx.AsyncClient.request`` (``json``, ``data``,
        ``files``, ``headers``, ``params``...). Raises RetryExhaustedError when every
        attempt failed transiently.
        """
        attempts = max_attempts or self.max_attempts
        last_status: int | None = None
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            timeout = self.first_timeout if attempt == 1 else self.retry_timeout
            try:
                response = await self._client.request(method, url, timeout=timeout, **kwargs)
            except httpx.TransportError as exc:
                last_error, last_status = exc, None
                logger.warning(
                    "%s %s transport error (attempt %d/%d): %r", method, _redact(url), attempt, attempts, exc
                )
            else:
                if not is_retryable_status(response.status_code):
                    return response
                last_error, last_status = None, response.status_code
                logger.warning(
                    "%s %s returned %d (attempt %d/%d)",
                    method,
                    _redact(url),
                    response.status_code,
                    attempt,
                    attempts,
                )

            if attempt < attempts:
                await asyncio.sleep(attempt * self.backoff_seconds)

        raise RetryExhaustedError(_redact(url), attempts, last_status=last_status, last_error=last_error)


def _redact(url: str) -> str:
    """Drop the query string so API keys passed as ``?key=`` never reach the logs."""
    return url.split("?", 1)[0]
