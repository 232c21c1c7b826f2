"""Turn a source key into a URL that can be fetched right now.

A source is either a full URL or a bare bucket key.  Full URLs that are
still valid are used as-is; everything else goes through the presign
provider, which returns a fresh preview URL for the object.

Presign results are never cached here: they are time-limited, and the
freshness check on the source URL is what decides whether a new exchange
is needed.
"""

from __future__ import annotations

import mimetypes

from aws_image.interfaces.presign_provider import IPresignProvider
from aws_image.models.image import UrlType
from aws_image.utils.errors import ConfigurationError, ResolutionError
from aws_image.utils.logging import get_logger
from aws_image.utils.url_utils import is_url_expired, is_valid_url, parse_bucket_key


class UrlResolver:
    """Resolve source keys to fetchable URLs.

    Parameters
    ----------
    presign_provider:
        Backend used for bare keys and expired URLs.  Optional when every
        source is a long-lived, unsigned URL.
    """

    def __init__(self, presign_provider: IPresignProvider | None = None) -> None:
        self._presign = presign_provider
        self._logger = get_logger(__name__)

    async def resolve(self, source: str) -> str | None:
        """Return a fetchable URL for *source*, or ``None`` if the backend had none.

        Raises
        ------
        ConfigurationError
            If *source* needs presigning but no provider is configured.
        ResolutionError
            If *source* has no usable key or the presign exchange fails.
        """
        is_url = is_valid_url(source)
        if is_url and not is_url_expired(source):
            self._logger.debug("url_resolved_direct", source=source)
            return source

        if self._presign is None:
            if is_url:
                raise ResolutionError(f"URL has expired and cannot be re-signed: {source}")
            raise ConfigurationError(
                f"No presign provider configured to resolve bucket key {source!r}"
            )

        try:
            bucket_key = parse_bucket_key(source)
        except ValueError as exc:
            raise ResolutionError(str(exc), self._presign.get_provider_name()) from exc

        content_type, _ = mimetypes.guess_type(bucket_key)
        self._logger.info(
            "url_presign_requested",
            bucket_key=bucket_key,
            expired=is_url,
            provider=self._presign.get_provider_name(),
        )
        result = await self._presign.request(bucket_key, content_type, UrlType.GET)

        if result is None or not result.preview_url:
            self._logger.warning("url_presign_empty", bucket_key=bucket_key)
            return None
        return result.preview_url
