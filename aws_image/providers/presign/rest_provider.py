"""Presigned URL exchange over a plain REST endpoint.

Sends ``{"key", "contentType", "method"}`` as JSON to ``base_url`` using
the configured HTTP verb and reads the URL back from the response.  Any
transport failure, non-200 status or unreadable payload surfaces as
:class:`~aws_image.utils.errors.ResolutionError`; a well-formed payload
without a URL yields ``None``.
"""

from __future__ import annotations

from typing import Any

import httpx

from aws_image.interfaces.presign_provider import IPresignProvider
from aws_image.models.image import HttpMethod, PresignedUrl, UrlType
from aws_image.providers.presign.parsers import RestResponseParser
from aws_image.providers.presign.transformers import RequestTransformer
from aws_image.utils.errors import ResolutionError
from aws_image.utils.logging import get_logger

_PROVIDER_NAME = "rest_presign"


class RestPresignProvider(IPresignProvider):
    """Presign provider for REST backends.

    Parameters
    ----------
    base_url:
        Endpoint that issues presigned URLs.
    http_client:
        Injected ``httpx.AsyncClient`` for testability and connection pooling.
    method:
        HTTP verb for the exchange (default ``GET``).
    headers / query_parameters:
        Sent with every exchange.
    request_transformer / response_parser:
        Override the request body or response handling.
    log_bodies:
        Log request and response bodies at debug level.
    """

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient,
        method: HttpMethod = HttpMethod.GET,
        headers: dict[str, str] | None = None,
        query_parameters: dict[str, str] | None = None,
        request_transformer: RequestTransformer | None = None,
        response_parser: RestResponseParser | None = None,
        log_bodies: bool = False,
    ) -> None:
        self._base_url = base_url
        self._http = http_client
        self._method = HttpMethod(method)
        self._headers = dict(headers or {})
        self._query_parameters = dict(query_parameters or {})
        self._transformer = request_transformer or RequestTransformer()
        self._parser = response_parser or RestResponseParser()
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
            body = self._transformer.transform(bucket_key, content_type, url_type)
        except ValueError as exc:
            raise ResolutionError(
                message=f"Invalid bucket key {bucket_key!r}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        if self._log_bodies:
            self._logger.debug("presign_request", method=self._method.value, body=body)

        try:
            response = await self._http.request(
                self._method.value,
                self._base_url,
                params=self._query_parameters,
                json=body,
                headers={"Accept": "application/json", **self._headers},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            self._logger.error("presign_request_failed", key=bucket_key, error=str(exc))
            raise ResolutionError(
                message=f"Failed to get presigned URL: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        if response.status_code != 200:
            self._logger.error(
                "presign_request_failed", key=bucket_key, status=response.status_code
            )
            raise ResolutionError(
                message=(
                    f"Failed to get presigned URL: {response.status_code} "
                    f"{response.reason_phrase}"
                ),
                provider_name=_PROVIDER_NAME,
            )

        payload: Any
        try:
            payload = response.json()
        except ValueError:
            payload = response.text

        if self._log_bodies:
            self._logger.debug("presign_response", body=payload)

        return self._parser.parse(payload, url_type)
