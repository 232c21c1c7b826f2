"""Request body builders for presign exchanges.

A transformer turns ``(bucket_key, content_type, url_type)`` into the JSON
body the backend expects.  Swap one in when a backend wants a different
shape; the providers only call :meth:`transform`.
"""

from __future__ import annotations

from typing import Any

from aws_image.models.image import UrlType
from aws_image.utils.url_utils import parse_bucket_key


class RequestTransformer:
    """Default REST body: ``{"key", "contentType", "method"}``."""

    def transform(
        self,
        bucket_key: str,
        content_type: str | None = None,
        url_type: UrlType = UrlType.GET,
    ) -> dict[str, Any]:
        return {
            "key": parse_bucket_key(bucket_key),
            "contentType": content_type,
            "method": url_type.value,
        }


class GraphQLRequestTransformer(RequestTransformer):
    """GraphQL variables: the REST body wrapped as ``{"input": {...}}``."""

    def transform(
        self,
        bucket_key: str,
        content_type: str | None = None,
        url_type: UrlType = UrlType.GET,
    ) -> dict[str, Any]:
        return {"input": super().transform(bucket_key, content_type, url_type)}
