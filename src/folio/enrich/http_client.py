"""HTTP client with retry logic and rate limiting."""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from folio.api.exceptions import FolioAPIError

LOGGER = logging.getLogger("folio.enrich.http")

RETRYABLE_STATUS = (429, 500, 502, 503, 504)
MAX_BACKOFF_SECONDS = 8.0


class RetryableHTTPClient:
    """HTTP client with exponential backoff retry logic and rate limiting.

    Throttling and server errors (429, 500, 502, 503, 504) and network errors
    are retried with exponential backoff. ``Retry-After`` headers are honoured.
    Requests are spaced at least ``1 / rps`` seconds apart.

    Args:
        rps: Maximum requests per second.
        max_retries: Maximum number of attempts per request.
        timeout: Request timeout in seconds.
        session: Optional pre-built ``requests.Session``.
        sleep: Sleep function, replaceable in tests.
    """

    def __init__(
        self,
        rps: float = 1.0,
        max_retries: int = 3,
        timeout: int = 15,
        session: requests.Session | None = None,
        sleep=time.sleep,
    ):
        self.session = session or requests.Session()
        self.rps = rps
        self.max_retries = max(1, max_retries)
        self.timeout = timeout
        self.min_interval = 1.0 / max(rps, 0.01)
        self.last_request_time = 0.0
        self._sleep = sleep

    def _rate_limit(self) -> None:
        now = time.monotonic()
        elapsed = now - self.last_request_time
        if elapsed < self.min_interval:
            self._sleep(self.min_interval - elapsed)
        self.last_request_time = time.monotonic()

    def _calculate_backoff_time(self, response: requests.Response, attempt: int) -> float:
        """Calculate backoff time, respecting Retry-After header if present."""
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return max(float(retry_after), 1.0)
            except (TypeError, ValueError):
                pass
        return min(MAX_BACKOFF_SECONDS, 2.0**attempt)

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        auth: tuple[str, str] | None = None,
    ) -> requests.Response:
        last_status: int | None = None
        for attempt in range(self.max_retries):
            try:
                self._rate_limit()
                response = self.session.request(
                    method,
                    url,
                    headers=headers,
                    params=params,
                    data=data,
                    auth=auth,
                    timeout=self.timeout,
                )
            except requests.RequestException as exc:
                if attempt < self.max_retries - 1:
                    wait = min(MAX_BACKOFF_SECONDS, 2.0**attempt)
                    LOGGER.warning("request error on %s, retrying in %.1fs: %s", url, wait, exc)
                    self._sleep(wait)
                    continue
                raise FolioAPIError(
                    f"{method} {url} failed after {self.max_retries} attempt(s): {exc}",
                    url=url,
                ) from exc

            if response.status_code in RETRYABLE_STATUS:
                last_status = response.status_code
                if attempt < self.max_retries - 1:
                    wait = self._calculate_backoff_time(response, attempt)
                    LOGGER.warning(
                        "HTTP %s on %s, retrying in %.1fs", response.status_code, url, wait
                    )
                    self._sleep(wait)
                continue

            if response.status_code >= 400:
                raise FolioAPIError(
                    f"{method} {url} returned HTTP {response.status_code}",
                    status_code=response.status_code,
                    url=url,
                )
            return response

        raise FolioAPIError(
            f"{method} {url} still failing after {self.max_retries} attempt(s) "
            f"(last status {last_status})",
            status_code=last_status,
            url=url,
        )

    def get_json(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        response = self.request("GET", url, headers=headers, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise FolioAPIError(f"GET {url} returned invalid JSON", url=url) from exc

    def post_form(
        self,
        url: str,
        data: dict[str, Any],
        *,
        auth: tuple[str, str] | None = None,
    ) -> Any:
        response = self.request("POST", url, data=data, auth=auth)
        try:
            return response.json()
        except ValueError as exc:
            raise FolioAPIError(f"POST {url} returned invalid JSON", url=url) from exc

    def close(self) -> None:
        """Close the underlying session."""
        self.session.close()

    def __enter__(self) -> "RetryableHTTPClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
