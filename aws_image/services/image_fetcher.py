"""HTTP byte fetcher with a bounded, fixed-delay retry loop.

Only failures that can plausibly succeed on a second try are retried:
timeouts and connection-level errors.  A server that answered with a
non-2xx status has made up its mind, so those surface immediately.

The fetcher is a leaf component; it knows nothing about caches, presigning
or decoding.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import timedelta
from typing import Any

import httpx

from aws_image.models.image import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY
from aws_image.utils.callbacks import invoke_callback
from aws_image.utils.errors import TerminalNetworkError, TransientNetworkError
from aws_image.utils.logging import get_logger

_PROVIDER_NAME = "http_fetcher"

# Timeouts (connect/read/write/pool) and connection failures.
_RETRYABLE = (httpx.TimeoutException, httpx.NetworkError)

ProgressCallback = Callable[[int, int], Any]


class RetryingImageFetcher:
    """Fetch raw bytes over HTTP, retrying transient failures.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient``; timeouts are configured on it.
    default_headers:
        Sent with every request; per-call headers take precedence.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        self._http = http_client
        self._default_headers = dict(default_headers or {})
        self._logger = get_logger(__name__)

    async def fetch(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        query_parameters: dict[str, str] | None = None,
        on_progress: ProgressCallback | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: timedelta = DEFAULT_RETRY_DELAY,
    ) -> bytes:
        """Download *url* and return the body.

        ``max_retries`` is the total number of attempts, not the number of
        retries after the first.

        Raises
        ------
        TerminalNetworkError
            Non-2xx status or a non-retryable transport error.
        TransientNetworkError
            Every attempt failed with a retryable error.
        """
        merged_headers = {**self._default_headers, **(headers or {})}
        attempts = 0
        last_error: Exception | None = None

        while attempts < max(1, max_retries):
            attempts += 1
            try:
                return await self._fetch_once(url, merged_headers, query_parameters, on_progress)
            except _RETRYABLE as exc:
                last_error = exc
                if attempts >= max_retries:
                    break
                self._logger.warning(
                    "fetch_retry",
                    url=url,
                    attempt=attempts,
                    error_type=type(exc).__name__,
                )
                await asyncio.sleep(retry_delay.total_seconds())
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                self._logger.error("fetch_failed", url=url, error=str(exc))
                raise TerminalNetworkError(
                    f"Request failed: {exc}", provider_name=_PROVIDER_NAME
                ) from exc

        self._logger.error("fetch_retries_exhausted", url=url, attempts=attempts)
        raise TransientNetworkError(
            f"Failed to fetch image after {attempts} attempts: {last_error}",
            provider_name=_PROVIDER_NAME,
            attempts=attempts,
        ) from last_error

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _fetch_once(
        self,
        url: str,
        headers: dict[str, str],
        query_parameters: dict[str, str] | None,
        on_progress: ProgressCallback | None,
    ) -> bytes:
        async with self._http.stream(
            "GET",
            url,
            params=query_parameters or None,
            headers=headers,
            follow_redirects=True,
        ) as response:
            if not response.is_success:
                self._logger.error("fetch_bad_status", url=url, status=response.status_code)
                raise TerminalNetworkError(
                    f"HTTP {response.status_code} {response.reason_phrase}",
                    provider_name=_PROVIDER_NAME,
                    status_code=response.status_code,
                )

            total = _content_length(response)
            body = bytearray()
            async for chunk in response.aiter_bytes():
                body.extend(chunk)
                if on_progress is not None and total is not None:
                    # Compare wire bytes with Content-Length, not decoded bytes.
                    await invoke_callback(
                        on_progress,
                        response.num_bytes_downloaded,
                        total,
                        logger=self._logger,
                        event="fetch_progress_callback_error",
                    )
            return bytes(body)


def _content_length(response: httpx.Response) -> int | None:
    raw = response.headers.get("Content-Length")
    if raw is None:
        return None
    try:
        length = int(raw)
    except ValueError:
        return None
    return length if length > 0 else None
