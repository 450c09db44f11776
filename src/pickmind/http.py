from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Optional

import httpx

from .exceptions import (
    DataSourceAuthError,
    DataSourceClientError,
    DataSourceRateLimitError,
    DataSourceServerError,
)

log = logging.getLogger(__name__)


class RateLimiter:
    """Minimum-interval limiter shared by the worker threads of one client."""

    def __init__(self, rps: float) -> None:
        self.min_interval = 0.0 if rps <= 0 else (1.0 / rps)
        self._last = 0.0
        self._lock = threading.Lock()

    def wait(self) -> None:
        if self.min_interval <= 0:
            return
        with self._lock:
            now = time.time()
            elapsed = now - self._last
            if elapsed < self.min_interval:
                time.sleep(self.min_interval - elapsed)
            self._last = time.time()


def request_json(
    *,
    client: httpx.Client,
    method: str,
    url: str,
    params: Optional[Dict[str, Any]],
    timeout: float,
    max_retries: int,
    backoff_base: float,
    rate_limiter: RateLimiter,
    headers: Optional[Dict[str, str]] = None,
) -> Any:
    """
    Provider request with:
      - shared rate limiting
      - exponential backoff on 429 / 5xx / network trouble
      - typed DataSourceError classification
    """
    attempt = 0
    last_exc: Exception | None = None

    while attempt <= max_retries:
        attempt += 1
        rate_limiter.wait()
        try:
            resp = client.request(method, url, headers=headers, params=params, timeout=timeout)
            status = resp.status_code

            if status in (401, 403):
                raise DataSourceAuthError(f"Auth failed (HTTP {status}). Check the API key.")

            if status == 429:
                raise DataSourceRateLimitError("Rate limited (HTTP 429). Reduce RPS or back off.")

            if 500 <= status <= 599:
                raise DataSourceServerError(f"Server error (HTTP {status}).")

            if 400 <= status <= 499:
                raise DataSourceClientError(f"Client error (HTTP {status}): {resp.text[:200]}")

            try:
                return resp.json()
            except ValueError as e:
                raise DataSourceClientError(f"Malformed JSON from {url}: {e}") from e

        except (
            DataSourceRateLimitError,
            DataSourceServerError,
            httpx.TimeoutException,
            httpx.TransportError,
        ) as e:
            last_exc = e
            if attempt > max_retries:
                break
            sleep_s = min(backoff_base * (2 ** (attempt - 1)), 15.0)
            log.warning(
                "Request failed (%s). Retry %s/%s in %.2fs",
                type(e).__name__,
                attempt,
                max_retries,
                sleep_s,
            )
            time.sleep(sleep_s)

    if isinstance(last_exc, (DataSourceRateLimitError, DataSourceServerError)):
        raise type(last_exc)(f"{last_exc} Gave up after {max_retries} retries.") from last_exc
    raise DataSourceServerError(
        f"{url} unreachable after {max_retries} retries: {last_exc}"
    ) from last_exc
