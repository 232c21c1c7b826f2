"""Presigned URL exchange over GraphQL.

Always POSTs ``{"query", "variables", "operationName"}``.  The query must be
a ``query`` or ``mutation`` document; it is checked once at construction
so a typo fails at startup instead of on the first image load.

A response counts as successful only when it is a JSON object with an
object ``data`` member and no ``errors`` member.
"""

from __future__ import annotations

from typing import Any

import httpx

from aws_image.interfaces.presign_provider import IPresignProvider
from aws_image.models.image import PresignedUrl, UrlType
from aws_image.providers.presign.parsers import GraphQLResponseParser
from aws_image.providers.presign.transformers import GraphQLRequestTransformer, RequestTransformer
from aws_image.utils.errors import ConfigurationError, ResolutionError
from aws_image.utils.logging import get_logger
from aws_image.utils.url_utils import is_valid_query, parse_operation_name

_PROVIDER_NAME = "graphql_presign"


class GraphQLPresignProvider(IPresignProvider):
    """Presign provider for GraphQL backends.

    Parameters
    ----------
    base_url:
        GraphQL endpoint.
    query:
        Query or mutation document taking an ``$input`` variable.
    http_client:
        Injected ``httpx.AsyncClient``.
    operation_name:
        Sent as ``operationName``; parsed from *query* when omitted.
    response_key:
        Field under the root selection holding the URL.
    """

    def __init__(
        self,
        base_url: str,
        query: str,
        http_client: httpx.AsyncClient,
        operation_name: str | None = None,
        headers: dict[str, str] | None = None,
        response_key: str = "url",
        request_transformer: RequestTransformer | None = None,
        response_parser: GraphQLResponseParser | None = None,
        log_bodies: bool = False,
    ) -> None:
        if not query or not query.strip():
            raise ConfigurationError("GraphQL query cannot be empty", _PROVIDER_NAME)
        if not is_valid_query(query):
            raise ConfigurationError("GraphQL query is not valid", _PROVIDER_NAME)

        self._base_url = base_url
        self._query = query
        self._http = http_client
        self._operation_name = operation_name or parse_operation_name(query)
        self._headers = dict(headers or {})
        self._transformer = request_transformer or GraphQLRequestTransformer()
        self._parser = response_parser or GraphQLResponseParser(query, response_key)
        self._log_bodies = log_bodies
        self._logger = get_logger(__name__)

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME

    async def request(
        self,
        bucket_key: str,
        content_type: str | None = None,
        url_type: UrlType = UrlType.GET,
    ) -> PresignedUrl | None:
        try:
            variables = self._transformer.transform(bucket_key, content_type, url_type)
        except ValueError as exc:
            raise ResolutionError(
                message=f"Invalid bucket key {bucket_key!r}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        payload: dict[str, Any] = {"query": self._query, "variables": variables}
        if self._operation_name:
            payload["operationName"] = self._operation_name

        if self._log_bodies:
            self._logger.debug("presign_request", body=payload)

        try:
            response = await self._http.post(
                self._base_url,
                json=payload,
                headers={**self._headers, "Accept": "application/json"},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            self._logger.error("presign_request_failed", key=bucket_key, error=str(exc))
            raise ResolutionError(
                message=f"Failed to get presigned URL: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            self._logger.error(
                "presign_response_not_json", key=bucket_key, status=response.status_code
            )
            raise ResolutionError(
                message="Failed to get presigned URL: Invalid response format",
                provider_name=_PROVIDER_NAME,
            ) from exc

        if self._log_bodies:
            self._logger.debug("presign_response", body=data)

        if (
            not isinstance(data, dict)
            or data.get("errors") is not None
            or not isinstance(data.get("data"), dict)
        ):
            errors = data.get("errors") if isinstance(data, dict) else None
            self._logger.warning(
                "presign_graphql_errors",
                key=bucket_key,
                status=response.status_code,
                errors=errors[:3] if isinstance(errors, list) else errors,
            )
            raise ResolutionError(
                message="Failed to get presigned URL: Invalid response format",
                provider_name=_PROVIDER_NAME,
            )

        return self._parser.parse(data, url_type)
