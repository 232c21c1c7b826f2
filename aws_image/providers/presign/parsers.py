"""Response parsers for presign exchanges.

Backends answer in one of two shapes under a configurable key:

* a bare URL string (``{"url": "https://..."}``), which becomes the
  preview URL for GET requests and the upload URL for PUT requests;
* a full object (``{"key": ..., "uploadUrl": ..., "previewUrl": ...}``).

Parsers return ``None`` when the payload has neither shape.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from aws_image.models.image import PresignedUrl, UrlType
from aws_image.utils.logging import get_logger
from aws_image.utils.url_utils import parse_bucket_key, parse_query_name

_logger = get_logger(__name__)


def _from_payload(
    payload: dict[str, Any],
    response_key: str,
    url_type: UrlType,
) -> PresignedUrl | None:
    value = payload.get(response_key)
    if isinstance(value, str):
        try:
            key = parse_bucket_key(value)
        except ValueError:
            key = value
        if url_type is UrlType.PUT:
            return PresignedUrl(key=key, upload_url=value)
        return PresignedUrl(key=key, preview_url=value)

    try:
        return PresignedUrl.from_mapping(payload)
    except (KeyError, TypeError, ValidationError) as exc:
        _logger.warning("presign_payload_unrecognised", error=str(exc))
        return None


class RestResponseParser:
    """Parse a REST response body (already-decoded JSON or raw text)."""

    def __init__(self, response_key: str = "url") -> None:
        self.response_key = response_key

    def parse(self, body: Any, url_type: UrlType = UrlType.GET) -> PresignedUrl | None:
        if isinstance(body, str):
            if not body:
                return None
            try:
                body = json.loads(body)
            except json.JSONDecodeError as exc:
                _logger.error("presign_response_not_json", error=str(exc))
                return None

        if isinstance(body, dict):
            return _from_payload(body, self.response_key, url_type)
        return None


class GraphQLResponseParser:
    """Parse ``data.<root field>`` of a GraphQL response.

    The root field is read from the query document, e.g.
    ``mutation GetUrl(...) { getPresignedUrl(...) { url } }`` -> ``getPresignedUrl``.
    """

    def __init__(self, query: str, response_key: str = "url") -> None:
        self.query_name = parse_query_name(query)
        self.response_key = response_key

    def parse(self, body: dict[str, Any], url_type: UrlType = UrlType.GET) -> PresignedUrl | None:
        data = body.get("data")
        if not isinstance(data, dict) or self.query_name is None:
            return None
        field = data.get(self.query_name)
        if not isinstance(field, dict):
            return None
        return _from_payload(field, self.response_key, url_type)
