"""Unit tests for the REST and GraphQL presign providers.

HTTP exchanges are scripted with ``httpx.MockTransport``; no network
access happens.
"""

from __future__ import annotations

import json

import httpx
import pytest

from aws_image.models.image import HttpMethod, UrlType
from aws_image.providers.presign.graphql_provider import GraphQLPresignProvider
from aws_image.providers.presign.parsers import GraphQLResponseParser, RestResponseParser
from aws_image.providers.presign.rest_provider import RestPresignProvider
from aws_image.providers.presign.transformers import (
    GraphQLRequestTransformer,
    RequestTransformer,
)
from aws_image.utils.errors import ConfigurationError, ResolutionError

_PRESIGN_URL = "https://api.example.com/presign"
_SIGNED = "https://bucket.s3.amazonaws.com/photos/cat.jpg?X-Amz-Signature=abc"

_MUTATION = """
mutation GetPresignedUrl($input: PresignInput!) {
  getPresignedUrl(input: $input) {
    key
    uploadUrl
    previewUrl
  }
}
"""


# ======================================================================
# Transformers / parsers
# ======================================================================


class TestTransformers:
    def test_rest_body_uses_bucket_key(self) -> None:
        body = RequestTransformer().transform(_SIGNED, "image/jpeg", UrlType.PUT)
        assert body == {"key": "photos/cat.jpg", "contentType": "image/jpeg", "method": "PUT"}

    def test_graphql_body_wraps_input(self) -> None:
        body = GraphQLRequestTransformer().transform("photos/cat.jpg")
        assert body == {
            "input": {"key": "photos/cat.jpg", "contentType": None, "method": "GET"}
        }


class TestParsers:
    def test_rest_string_url_becomes_preview(self) -> None:
        result = RestResponseParser().parse({"url": _SIGNED}, UrlType.GET)
        assert result is not None
        assert result.key == "photos/cat.jpg"
        assert result.preview_url == _SIGNED
        assert result.upload_url is None

    def test_rest_string_url_becomes_upload_for_put(self) -> None:
        result = RestResponseParser().parse({"url": _SIGNED}, UrlType.PUT)
        assert result is not None
        assert result.upload_url == _SIGNED
        assert result.preview_url is None

    def test_rest_decodes_text_body(self) -> None:
        result = RestResponseParser().parse(json.dumps({"url": _SIGNED}))
        assert result is not None
        assert result.preview_url == _SIGNED

    def test_rest_unparseable_text_returns_none(self) -> None:
        assert RestResponseParser().parse("<html>oops</html>") is None

    def test_rest_object_payload(self) -> None:
        payload = {"key": "photos/cat.jpg", "previewUrl": _SIGNED, "uploadUrl": None}
        result = RestResponseParser().parse(payload)
        assert result is not None
        assert result.preview_url == _SIGNED

    def test_rest_unrecognised_payload_returns_none(self) -> None:
        assert RestResponseParser().parse({"something": "else"}) is None

    def test_graphql_reads_root_field(self) -> None:
        parser = GraphQLResponseParser(_MUTATION)
        body = {"data": {"getPresignedUrl": {"key": "photos/cat.jpg", "previewUrl": _SIGNED}}}
        result = parser.parse(body)
        assert result is not None
        assert result.preview_url == _SIGNED

    def test_graphql_missing_field_returns_none(self) -> None:
        parser = GraphQLResponseParser(_MUTATION)
        assert parser.parse({"data": {"other": {}}}) is None


# ======================================================================
# RestPresignProvider
# ======================================================================


class TestRestPresignProvider:
    @pytest.mark.asyncio
    async def test_returns_preview_url(self, mock_client_factory) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"url": _SIGNED})

        async with mock_client_factory(handler) as client:
            provider = RestPresignProvider(
                _PRESIGN_URL,
                client,
                method=HttpMethod.POST,
                headers={"Authorization": "Bearer t"},
                query_parameters={"tenant": "acme"},
            )
            result = await provider.request("photos/cat.jpg", "image/jpeg")

        assert result is not None
        assert result.preview_url == _SIGNED
        request = seen[0]
        assert request.method == "POST"
        assert request.url.params["tenant"] == "acme"
        assert request.headers["Authorization"] == "Bearer t"
        assert request.headers["Accept"] == "application/json"
        assert json.loads(request.content) == {
            "key": "photos/cat.jpg",
            "contentType": "image/jpeg",
            "method": "GET",
        }

    @pytest.mark.asyncio
    async def test_put_returns_upload_url(self, mock_client_factory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"url": _SIGNED})

        async with mock_client_factory(handler) as client:
            provider = RestPresignProvider(_PRESIGN_URL, client, method=HttpMethod.POST)
            result = await provider.request("photos/cat.jpg", "image/jpeg", UrlType.PUT)

        assert result is not None
        assert result.upload_url == _SIGNED

    @pytest.mark.asyncio
    async def test_non_200_raises_resolution_error(self, mock_client_factory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        async with mock_client_factory(handler) as client:
            provider = RestPresignProvider(_PRESIGN_URL, client)
            with pytest.raises(ResolutionError) as exc_info:
                await provider.request("photos/cat.jpg")

        assert exc_info.value.provider_name == "rest_presign"
        assert "500" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_error_raises_resolution_error(self, mock_client_factory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with mock_client_factory(handler) as client:
            provider = RestPresignProvider(_PRESIGN_URL, client)
            with pytest.raises(ResolutionError):
                await provider.request("photos/cat.jpg")

    @pytest.mark.asyncio
    async def test_payload_without_url_returns_none(self, mock_client_factory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": "ok"})

        async with mock_client_factory(handler) as client:
            provider = RestPresignProvider(_PRESIGN_URL, client)
            assert await provider.request("photos/cat.jpg") is None

    @pytest.mark.asyncio
    async def test_keyless_url_raises_resolution_error(self, mock_client_factory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        async with mock_client_factory(handler) as client:
            provider = RestPresignProvider(_PRESIGN_URL, client)
            with pytest.raises(ResolutionError):
                await provider.request("https://bucket.s3.amazonaws.com/")

    def test_provider_name(self) -> None:
        provider = RestPresignProvider(_PRESIGN_URL, httpx.AsyncClient())
        assert provider.get_provider_name() == "rest_presign"


# ======================================================================
# GraphQLPresignProvider
# ======================================================================


class TestGraphQLPresignProvider:
    @pytest.mark.asyncio
    async def test_posts_query_and_parses_data(self, mock_client_factory) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            seen.append(json.loads(request.content))
            return httpx.Response(
                200,
                json={
                    "data": {
                        "getPresignedUrl": {
                            "key": "photos/cat.jpg",
                            "uploadUrl": None,
                            "previewUrl": _SIGNED,
                        }
                    }
                },
            )

        async with mock_client_factory(handler) as client:
            provider = GraphQLPresignProvider(_PRESIGN_URL, _MUTATION, client)
            result = await provider.request("photos/cat.jpg", "image/jpeg")

        assert result is not None
        assert result.preview_url == _SIGNED
        body = seen[0]
        assert body["operationName"] == "GetPresignedUrl"
        assert body["query"] == _MUTATION
        assert body["variables"]["input"]["key"] == "photos/cat.jpg"

    @pytest.mark.asyncio
    async def test_explicit_operation_name_wins(self, mock_client_factory) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"data": {"getPresignedUrl": None}})

        async with mock_client_factory(handler) as client:
            provider = GraphQLPresignProvider(
                _PRESIGN_URL, _MUTATION, client, operation_name="Custom"
            )
            assert await provider.request("photos/cat.jpg") is None

        assert seen[0]["operationName"] == "Custom"

    @pytest.mark.asyncio
    async def test_errors_payload_raises(self, mock_client_factory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": None, "errors": [{"message": "denied"}]})

        async with mock_client_factory(handler) as client:
            provider = GraphQLPresignProvider(_PRESIGN_URL, _MUTATION, client)
            with pytest.raises(ResolutionError):
                await provider.request("photos/cat.jpg")

    @pytest.mark.asyncio
    async def test_non_json_response_raises(self, mock_client_factory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="not json")

        async with mock_client_factory(handler) as client:
            provider = GraphQLPresignProvider(_PRESIGN_URL, _MUTATION, client)
            with pytest.raises(ResolutionError):
                await provider.request("photos/cat.jpg")

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, mock_client_factory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        async with mock_client_factory(handler) as client:
            provider = GraphQLPresignProvider(_PRESIGN_URL, _MUTATION, client)
            with pytest.raises(ResolutionError):
                await provider.request("photos/cat.jpg")

    @pytest.mark.parametrize(
        "query", ["", "   ", "{ getPresignedUrl { url } }", "subscription X { a }"]
    )
    def test_invalid_query_rejected_at_construction(self, query: str) -> None:
        with pytest.raises(ConfigurationError):
            GraphQLPresignProvider(_PRESIGN_URL, query, httpx.AsyncClient())
