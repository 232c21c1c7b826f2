"""Unit tests for ImageAcquisitionPipeline.

Every collaborator is an ``AsyncMock`` so each stage can be checked in
isolation.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from aws_image.interfaces.image_decoder import IImageDecoder
from aws_image.interfaces.image_store import IImageStore
from aws_image.models.image import DecodedImage, ImageChunkEvent, ImageRequestDescriptor
from aws_image.pipeline.image_stream import ImageStreamListener
from aws_image.pipeline.orchestrator import ImageAcquisitionPipeline
from aws_image.providers.cache.memory_cache import MemoryStreamCache
from aws_image.services.image_fetcher import RetryingImageFetcher
from aws_image.services.url_resolver import UrlResolver
from aws_image.utils.errors import AwsImageError, ResolutionError, TerminalNetworkError

_URL = "https://cdn.example.com/photos/cat.jpg"
_IMAGE = DecodedImage(width=8, height=6, format="JPEG", data=b"jpeg")


@pytest.fixture
def store() -> AsyncMock:
    mock = AsyncMock(spec=IImageStore)
    mock.is_valid.return_value = False
    mock.get.return_value = None
    return mock


@pytest.fixture
def resolver() -> AsyncMock:
    mock = AsyncMock(spec=UrlResolver)
    mock.resolve.return_value = _URL
    return mock


@pytest.fixture
def fetcher() -> AsyncMock:
    mock = AsyncMock(spec=RetryingImageFetcher)
    mock.fetch.return_value = b"jpeg"
    return mock


@pytest.fixture
def decoder() -> AsyncMock:
    mock = AsyncMock(spec=IImageDecoder)
    mock.decode.return_value = _IMAGE
    return mock


@pytest.fixture
def stream_cache() -> MemoryStreamCache:
    return MemoryStreamCache(max_size=10, ttl_seconds=60)


@pytest.fixture
def pipeline(store, resolver, fetcher, decoder, stream_cache) -> ImageAcquisitionPipeline:
    return ImageAcquisitionPipeline(store, resolver, fetcher, decoder, stream_cache)


def _descriptor(**overrides) -> ImageRequestDescriptor:
    return ImageRequestDescriptor(source_key=_URL, **overrides)


# ======================================================================
# load_image
# ======================================================================


class TestLoadImage:
    @pytest.mark.asyncio
    async def test_cache_hit_skips_network(
        self, pipeline, store, resolver, fetcher, decoder
    ) -> None:
        store.is_valid.return_value = True
        store.get.return_value = b"cached"
        descriptor = _descriptor(scale=2.0)

        image = await pipeline.load_image(descriptor)

        assert image == _IMAGE
        store.is_valid.assert_awaited_once_with(descriptor.cache_key, descriptor.cache_duration)
        decoder.decode.assert_awaited_once_with(b"cached", 2.0)
        resolver.resolve.assert_not_called()
        fetcher.fetch.assert_not_called()

    @pytest.mark.asyncio
    async def test_miss_fetches_and_stores(self, pipeline, store, fetcher, decoder) -> None:
        descriptor = _descriptor(
            headers={"Authorization": "t"},
            query_parameters={"w": "100"},
            max_retries=5,
            retry_delay=timedelta(milliseconds=10),
        )

        await pipeline.load_image(descriptor)

        store.invalidate.assert_awaited_once_with(descriptor.cache_key)
        fetcher.fetch.assert_awaited_once()
        args, kwargs = fetcher.fetch.call_args
        assert args == (_URL,)
        assert kwargs["headers"] == {"Authorization": "t"}
        assert kwargs["query_parameters"] == {"w": "100"}
        assert kwargs["max_retries"] == 5
        assert kwargs["retry_delay"] == timedelta(milliseconds=10)
        store.put.assert_awaited_once_with(descriptor.cache_key, b"jpeg")
        decoder.decode.assert_awaited_once_with(b"jpeg", 1.0)

    @pytest.mark.asyncio
    async def test_valid_entry_without_bytes_refetches(self, pipeline, store, fetcher) -> None:
        store.is_valid.return_value = True
        store.get.return_value = None

        await pipeline.load_image(_descriptor())

        fetcher.fetch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_force_refresh_bypasses_cache(self, pipeline, store, fetcher) -> None:
        store.is_valid.return_value = True
        store.get.return_value = b"cached"

        await pipeline.load_image(_descriptor(force_refresh=True))

        store.is_valid.assert_not_called()
        fetcher.fetch.assert_awaited_once()
        store.put.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_url_raises_resolution_error(self, pipeline, store, resolver, fetcher) -> None:
        resolver.resolve.return_value = None
        descriptor = _descriptor()

        with pytest.raises(ResolutionError):
            await pipeline.load_image(descriptor)

        fetcher.fetch.assert_not_called()
        store.invalidate.assert_awaited_with(descriptor.cache_key)

    @pytest.mark.asyncio
    async def test_package_errors_propagate_unchanged(self, pipeline, fetcher) -> None:
        error = TerminalNetworkError("HTTP 404", status_code=404)
        fetcher.fetch.side_effect = error

        with pytest.raises(TerminalNetworkError) as exc_info:
            await pipeline.load_image(_descriptor())

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_unexpected_errors_are_wrapped(self, pipeline, decoder) -> None:
        decoder.decode.side_effect = KeyError("boom")

        with pytest.raises(AwsImageError) as exc_info:
            await pipeline.load_image(_descriptor())

        assert isinstance(exc_info.value.__cause__, KeyError)

    @pytest.mark.asyncio
    async def test_progress_callback_forwarded(self, pipeline, fetcher) -> None:
        def on_progress(loaded: int, total: int) -> None:
            pass

        await pipeline.load_image(_descriptor(), on_progress=on_progress)

        assert fetcher.fetch.call_args.kwargs["on_progress"] is on_progress

    @pytest.mark.asyncio
    async def test_unwritable_store_still_returns_image(
        self, pipeline, store, fetcher, decoder
    ) -> None:
        store.put.side_effect = NotADirectoryError("cache root is a file")

        image = await pipeline.load_image(_descriptor())

        assert image == _IMAGE
        fetcher.fetch.assert_awaited_once()
        decoder.decode.assert_awaited_once_with(b"jpeg", 1.0)

    @pytest.mark.asyncio
    async def test_cleanup_failure_keeps_original_error(
        self, pipeline, store, fetcher, stream_cache
    ) -> None:
        error = TerminalNetworkError("HTTP 404", status_code=404)
        fetcher.fetch.side_effect = error
        store.invalidate.side_effect = PermissionError("read-only cache")
        descriptor = _descriptor(force_refresh=True)
        completer = await pipeline.resolve(descriptor)

        with pytest.raises(TerminalNetworkError) as exc_info:
            await completer.wait()
        await pipeline.drain_pending_evictions()

        assert exc_info.value is error
        assert await stream_cache.get(descriptor.identity) is None


# ======================================================================
# resolve / evict
# ======================================================================


class TestSharedStreams:
    @pytest.mark.asyncio
    async def test_equal_descriptors_share_one_load(self, pipeline, fetcher) -> None:
        first = await pipeline.resolve(_descriptor(headers={"A": "1"}))
        second = await pipeline.resolve(_descriptor(headers={"B": "2"}))

        assert first is second
        assert await first.wait() == _IMAGE
        fetcher.fetch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_different_scale_is_a_separate_stream(self, pipeline) -> None:
        first = await pipeline.resolve(_descriptor(scale=1.0))
        second = await pipeline.resolve(_descriptor(scale=2.0))

        assert first is not second
        await first.wait()
        await second.wait()

    @pytest.mark.asyncio
    async def test_progress_reaches_listeners(self, pipeline, fetcher) -> None:
        async def fake_fetch(url: str, **kwargs) -> bytes:
            await kwargs["on_progress"](50, 100)
            return b"jpeg"

        fetcher.fetch.side_effect = fake_fetch
        chunks: list[ImageChunkEvent] = []
        completer = await pipeline.resolve(_descriptor())
        await completer.add_listener(
            ImageStreamListener(on_image=lambda image, sync: None, on_chunk=chunks.append)
        )

        await completer.wait()

        assert chunks == [ImageChunkEvent(cumulative_bytes_loaded=50, expected_total_bytes=100)]

    @pytest.mark.asyncio
    async def test_failed_stream_is_evicted(self, pipeline, fetcher, stream_cache) -> None:
        fetcher.fetch.side_effect = TerminalNetworkError("HTTP 500", status_code=500)
        descriptor = _descriptor()
        completer = await pipeline.resolve(descriptor)

        with pytest.raises(TerminalNetworkError):
            await completer.wait()
        await pipeline.drain_pending_evictions()

        assert await stream_cache.get(descriptor.identity) is None
        assert await pipeline.resolve(descriptor) is not completer

    @pytest.mark.asyncio
    async def test_abandoned_stream_is_evicted(self, pipeline, fetcher, stream_cache) -> None:
        release = asyncio.Event()

        async def slow_fetch(url: str, **kwargs) -> bytes:
            await release.wait()
            return b"jpeg"

        fetcher.fetch.side_effect = slow_fetch
        descriptor = _descriptor()
        completer = await pipeline.resolve(descriptor)
        listener = ImageStreamListener(on_image=lambda image, sync: None)
        await completer.add_listener(listener)

        completer.remove_listener(listener)
        await pipeline.drain_pending_evictions()

        assert await stream_cache.get(descriptor.identity) is None
        release.set()
        await completer.wait()

    @pytest.mark.asyncio
    async def test_abandonment_leaves_replacement_stream(self, pipeline, stream_cache) -> None:
        descriptor = _descriptor()
        stale = await pipeline.resolve(descriptor)
        await stale.wait()
        await stream_cache.remove(descriptor.identity)
        fresh = await pipeline.resolve(descriptor)

        await pipeline._evict_stream(descriptor.identity, only=stale)

        assert await stream_cache.get(descriptor.identity) is fresh
        await fresh.wait()

    @pytest.mark.asyncio
    async def test_evict_clears_disk_and_stream(self, pipeline, store, stream_cache) -> None:
        descriptor = _descriptor()
        completer = await pipeline.resolve(descriptor)
        await completer.wait()

        await pipeline.evict(descriptor)

        store.invalidate.assert_awaited_with(descriptor.cache_key)
        assert await stream_cache.get(descriptor.identity) is None
