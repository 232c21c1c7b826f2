"""Custom exception hierarchy for aws_image.

All package exceptions inherit from :class:`AwsImageError`, which carries an
optional ``provider_name`` so handlers can tell which collaborator (e.g.
"rest_presign", "graphql_presign", "http_fetcher", "pillow") produced the
failure.

The hierarchy follows the acquisition pipeline:

    AwsImageError  (base -- catch-all for any aws_image error)
    +-- ResolutionError        (no usable URL could be obtained)
    +-- TransientNetworkError  (timeouts / connection failures, retries exhausted)
    +-- TerminalNetworkError   (non-2xx status or non-retryable transport error)
    +-- DecodeError            (bytes fetched but not a valid image)
    +-- CacheCorruptionError   (unparseable cache metadata -- absorbed by the store)
    +-- UploadError            (presigned PUT failed; keeps the original cause)
    +-- ConfigurationError     (invalid backend / query / missing collaborator)

The display layer only ever sees these classes: the orchestrator classifies
raw transport exceptions before they leave the pipeline.
"""

from __future__ import annotations

import traceback


class AwsImageError(Exception):
    """Base exception for all aws_image errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name``.  ``__str__`` prefixes the provider in brackets for
    log scanning, e.g. ``[http_fetcher] Request timed out``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# URL resolution
# ---------------------------------------------------------------------------

class ResolutionError(AwsImageError):
    """Raised when no fetchable URL can be produced for a source key.

    Covers both a presign exchange that returned no preview URL and an
    exchange that failed outright (transport error, malformed payload).
    Never retried automatically.
    """

    def __init__(
        self,
        message: str = "No fetchable URL could be resolved",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Network fetch
# ---------------------------------------------------------------------------

class TransientNetworkError(AwsImageError):
    """Raised once a retryable failure has exhausted the retry budget.

    Individual transient failures are retried silently by the fetcher;
    only the final one surfaces, chained from the last underlying error.
    """

    def __init__(
        self,
        message: str = "Network request failed after retries",
        provider_name: str | None = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._attempts = attempts

    @property
    def attempts(self) -> int:
        return self._attempts


class TerminalNetworkError(AwsImageError):
    """Raised for failures that must not be retried (e.g. HTTP 403/404)."""

    def __init__(
        self,
        message: str = "Network request failed",
        provider_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._status_code = status_code

    @property
    def status_code(self) -> int | None:
        return self._status_code


# ---------------------------------------------------------------------------
# Decode / cache
# ---------------------------------------------------------------------------

class DecodeError(AwsImageError):
    """Raised when fetched or cached bytes cannot be decoded as an image."""

    def __init__(
        self,
        message: str = "Image data could not be decoded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CacheCorruptionError(AwsImageError):
    """Raised when a cache metadata record cannot be parsed.

    The disk store catches this itself and deletes the entry; it is never
    surfaced to callers of the pipeline.
    """

    def __init__(
        self,
        message: str = "Cache metadata is corrupted",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------

class UploadError(AwsImageError):
    """Raised when uploading a file to a presigned URL fails.

    Keeps the original exception and a formatted stack so callers get more
    than a bare success flag.
    """

    def __init__(
        self,
        message: str = "File upload failed",
        provider_name: str | None = None,
        original_error: BaseException | None = None,
        stack_context: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._original_error = original_error
        if stack_context is None and original_error is not None:
            stack_context = "".join(
                traceback.format_exception(
                    type(original_error), original_error, original_error.__traceback__
                )
            )
        self._stack_context = stack_context

    @property
    def original_error(self) -> BaseException | None:
        return self._original_error

    @property
    def stack_context(self) -> str | None:
        return self._stack_context


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigurationError(AwsImageError):
    """Raised when configuration is invalid or a required collaborator is missing."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
