"""Unit tests for factory functions in aws_image/main.py.

Covers presign backend selection and full component assembly.  Nothing
here touches the network: clients are built but never used.
"""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import patch

import httpx
import pytest

from aws_image.config.settings import Settings
from aws_image.main import (
    _build_all,
    build_http_client,
    build_image_pipeline,
    build_presign_provider,
)
from aws_image.pipeline.orchestrator import ImageAcquisitionPipeline
from aws_image.providers.cache.disk_image_store import DiskImageStore
from aws_image.providers.presign.graphql_provider import GraphQLPresignProvider
from aws_image.providers.presign.rest_provider import RestPresignProvider
from aws_image.services.upload_service import ImageUploader
from aws_image.utils.errors import ConfigurationError

_QUERY = "mutation GetUrl($input: UrlInput!) { getUrl(input: $input) { url } }"


# ======================================================================
# build_presign_provider
# ======================================================================


class TestBuildPresignProvider:
    """Backend selection from ``presign_backend``."""

    def test_no_base_url_returns_none(self, settings_factory: Callable[..., Settings]) -> None:
        settings = settings_factory(presign_base_url="")
        assert build_presign_provider(settings, httpx.AsyncClient()) is None

    def test_rest_backend(self, settings_factory: Callable[..., Settings]) -> None:
        settings = settings_factory(
            presign_base_url="https://api.example.com/presign", presign_http_method="post"
        )
        provider = build_presign_provider(settings, httpx.AsyncClient())
        assert isinstance(provider, RestPresignProvider)
        assert provider.get_provider_name() == "rest_presign"

    def test_graphql_backend(self, settings_factory: Callable[..., Settings]) -> None:
        settings = settings_factory(
            presign_backend="GraphQL",
            presign_base_url="https://api.example.com/graphql",
            presign_graphql_query=_QUERY,
        )
        provider = build_presign_provider(settings, httpx.AsyncClient())
        assert isinstance(provider, GraphQLPresignProvider)

    def test_graphql_without_query_fails(self, settings_factory: Callable[..., Settings]) -> None:
        settings = settings_factory(
            presign_backend="graphql", presign_base_url="https://api.example.com/graphql"
        )
        with pytest.raises(ConfigurationError):
            build_presign_provider(settings, httpx.AsyncClient())

    def test_unknown_backend_fails(self, settings_factory: Callable[..., Settings]) -> None:
        settings = settings_factory(
            presign_backend="soap", presign_base_url="https://api.example.com"
        )
        with pytest.raises(ConfigurationError, match="soap"):
            build_presign_provider(settings, httpx.AsyncClient())

    def test_bad_http_method_fails(self, settings_factory: Callable[..., Settings]) -> None:
        settings = settings_factory(
            presign_base_url="https://api.example.com/presign", presign_http_method="DELETE"
        )
        with pytest.raises(ConfigurationError):
            build_presign_provider(settings, httpx.AsyncClient())


# ======================================================================
# Assembly
# ======================================================================


class TestBuildAll:
    @pytest.mark.asyncio
    async def test_builds_every_component(self, settings_factory: Callable[..., Settings]) -> None:
        settings = settings_factory(stream_cache_size=5)
        components = _build_all(settings)
        try:
            assert components["settings"] is settings
            assert components["presign_provider"] is None
            assert isinstance(components["pipeline"], ImageAcquisitionPipeline)
            assert isinstance(components["uploader"], ImageUploader)
            assert isinstance(components["image_store"], DiskImageStore)
            assert components["image_store"].cache_directory == settings.cache_dir
        finally:
            await components["http_client"].aclose()

    @pytest.mark.asyncio
    async def test_http_client_uses_configured_timeouts(
        self, settings_factory: Callable[..., Settings]
    ) -> None:
        settings = settings_factory(connect_timeout_seconds=2.0, receive_timeout_seconds=7.0)
        client = build_http_client(settings)
        try:
            assert client.timeout.connect == 2.0
            assert client.timeout.read == 7.0
            assert client.follow_redirects is True
        finally:
            await client.aclose()

    @pytest.mark.asyncio
    async def test_build_image_pipeline_loads_config_when_no_settings(
        self, settings_factory: Callable[..., Settings]
    ) -> None:
        settings = settings_factory()
        with patch("aws_image.main.load_config", return_value=settings) as loader:
            components = build_image_pipeline()
        try:
            loader.assert_called_once_with()
            assert components["settings"] is settings
        finally:
            await components["http_client"].aclose()
