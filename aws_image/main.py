"""Application factory for aws_image.

Wires settings, the shared HTTP client, the presign backend, the disk
store and the pipeline together.  Library users who already hold their
own collaborators can construct :class:`ImageAcquisitionPipeline`
directly; these helpers cover the configured, batteries-included case
(and back the CLI).
"""

from __future__ import annotations

from typing import Any

import httpx

from aws_image.config.loader import load_config
from aws_image.config.settings import Settings
from aws_image.interfaces.presign_provider import IPresignProvider
from aws_image.models.image import HttpMethod
from aws_image.pipeline.orchestrator import ImageAcquisitionPipeline
from aws_image.providers.cache.disk_image_store import DiskImageStore
from aws_image.providers.cache.memory_cache import MemoryStreamCache
from aws_image.providers.decoder.pillow_decoder import PillowImageDecoder
from aws_image.providers.presign.graphql_provider import GraphQLPresignProvider
from aws_image.providers.presign.parsers import RestResponseParser
from aws_image.providers.presign.rest_provider import RestPresignProvider
from aws_image.services.image_fetcher import RetryingImageFetcher
from aws_image.services.upload_service import ImageUploader
from aws_image.services.url_resolver import UrlResolver
from aws_image.utils.errors import ConfigurationError
from aws_image.utils.logging import get_logger

_logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Shared resources
# ---------------------------------------------------------------------------


def build_http_client(app_settings: Settings) -> httpx.AsyncClient:
    """Create the ``httpx.AsyncClient`` shared by presign, fetch and upload."""
    timeout = httpx.Timeout(
        app_settings.receive_timeout_seconds,
        connect=app_settings.connect_timeout_seconds,
    )
    return httpx.AsyncClient(timeout=timeout, follow_redirects=True)


# ---------------------------------------------------------------------------
# Presign backend selection
# ---------------------------------------------------------------------------


def build_presign_provider(
    app_settings: Settings,
    http_client: httpx.AsyncClient,
) -> IPresignProvider | None:
    """Select the presign backend from ``presign_backend``.

    Returns ``None`` when no ``presign_base_url`` is configured; the
    pipeline then only loads full, unexpired URLs.
    """
    if not app_settings.presign_base_url:
        return None

    backend = app_settings.presign_backend.strip().lower()
    if backend == "rest":
        try:
            method = HttpMethod(app_settings.presign_http_method.upper())
        except ValueError as exc:
            raise ConfigurationError(
                f"Unsupported presign HTTP method: {app_settings.presign_http_method}"
            ) from exc
        return RestPresignProvider(
            base_url=app_settings.presign_base_url,
            http_client=http_client,
            method=method,
            headers=app_settings.presign_headers,
            query_parameters=app_settings.presign_query_parameters,
            response_parser=RestResponseParser(app_settings.presign_response_key),
            log_bodies=app_settings.presign_request_logging,
        )
    if backend == "graphql":
        return GraphQLPresignProvider(
            base_url=app_settings.presign_base_url,
            query=app_settings.presign_graphql_query,
            http_client=http_client,
            operation_name=app_settings.presign_graphql_operation_name or None,
            headers=app_settings.presign_headers,
            response_key=app_settings.presign_response_key,
            log_bodies=app_settings.presign_request_logging,
        )
    raise ConfigurationError(f"Unknown presign backend: {app_settings.presign_backend!r}")


# ---------------------------------------------------------------------------
# Full assembly
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every component.  Returns a flat dict of named components."""
    http_client = build_http_client(app_settings)
    presign_provider = build_presign_provider(app_settings, http_client)

    image_store = DiskImageStore(app_settings.cache_dir)
    stream_cache = MemoryStreamCache(
        max_size=app_settings.stream_cache_size,
        ttl_seconds=app_settings.stream_cache_ttl_seconds,
    )
    pipeline = ImageAcquisitionPipeline(
        image_store=image_store,
        url_resolver=UrlResolver(presign_provider),
        fetcher=RetryingImageFetcher(http_client),
        decoder=PillowImageDecoder(),
        stream_cache=stream_cache,
    )
    uploader = ImageUploader(http_client, presign_provider)

    _logger.info(
        "components_built",
        presign_backend=presign_provider.get_provider_name() if presign_provider else None,
        cache_dir=str(app_settings.cache_dir),
    )
    return {
        "settings": app_settings,
        "http_client": http_client,
        "presign_provider": presign_provider,
        "image_store": image_store,
        "stream_cache": stream_cache,
        "pipeline": pipeline,
        "uploader": uploader,
    }


def build_image_pipeline(custom_settings: Settings | None = None) -> dict[str, Any]:
    """Build all components from *custom_settings* or the layered config.

    The caller owns ``components["http_client"]`` and should ``aclose()``
    it when done.
    """
    app_settings = custom_settings if custom_settings is not None else load_config()
    return _build_all(app_settings)
