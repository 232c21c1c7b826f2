"""Central orchestrator for image acquisition.

Combines the disk store, URL resolver, retrying fetcher and decoder into
one operation, :meth:`ImageAcquisitionPipeline.load_image`::

    cache check ──hit──> decode
         │
        miss / stale / force_refresh
         │
    resolve URL ──> fetch bytes ──> write cache ──> decode

Each stage is injected, so tests can swap any of them for a mock.

On top of that sits a keyed stream cache: :meth:`resolve` hands out one
:class:`ImageStreamCompleter` per descriptor identity, so surfaces that
ask for the same image concurrently share a single load.

Failure handling:
    Any failure invalidates the disk entry and schedules eviction of the
    identity from the stream cache (not awaited; the caller sees the error
    first).  Exceptions outside the :class:`AwsImageError` hierarchy are
    wrapped so callers only ever see package errors.

    A disk store that cannot be read or written never fails a load on its
    own: the image is fetched and decoded without it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any

import structlog

from aws_image.interfaces.image_decoder import IImageDecoder
from aws_image.interfaces.image_store import IImageStore
from aws_image.interfaces.stream_cache import IStreamCache
from aws_image.models.image import DecodedImage, ImageChunkEvent, ImageRequestDescriptor
from aws_image.pipeline.image_stream import ImageStreamCompleter
from aws_image.providers.cache.memory_cache import MemoryStreamCache
from aws_image.services.image_fetcher import RetryingImageFetcher
from aws_image.services.url_resolver import UrlResolver
from aws_image.utils.errors import AwsImageError, ResolutionError
from aws_image.utils.logging import get_logger

ProgressCallback = Callable[[int, int], Any]


class ImageAcquisitionPipeline:
    """Load images through cache, presign, fetch and decode.

    All collaborators are injected at construction time; the pipeline
    never creates them.  ``stream_cache`` defaults to a fresh
    :class:`MemoryStreamCache`.
    """

    def __init__(
        self,
        image_store: IImageStore,
        url_resolver: UrlResolver,
        fetcher: RetryingImageFetcher,
        decoder: IImageDecoder,
        stream_cache: IStreamCache | None = None,
    ) -> None:
        self._store = image_store
        self._resolver = url_resolver
        self._fetcher = fetcher
        self._decoder = decoder
        self._stream_cache = stream_cache if stream_cache is not None else MemoryStreamCache()
        # Strong references to scheduled evictions until they finish.
        self._pending: set[asyncio.Task[Any]] = set()
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # One-shot load
    # ------------------------------------------------------------------

    async def load_image(
        self,
        descriptor: ImageRequestDescriptor,
        on_progress: ProgressCallback | None = None,
    ) -> DecodedImage:
        """Return the decoded image for *descriptor*.

        Parameters
        ----------
        descriptor:
            What to load and how (cache duration, retries, force refresh).
        on_progress:
            ``(bytes_loaded, total_bytes)`` callback, sync or async.  Only
            called for network loads with a known size.

        Raises
        ------
        AwsImageError
            A subclass describing the failing stage.
        """
        try:
            return await self._load(descriptor, on_progress)
        except Exception as exc:
            self._logger.error(
                "image_load_failed",
                source=descriptor.source_key,
                cache_key=descriptor.cache_key,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            try:
                await self._store.invalidate(descriptor.cache_key)
            except OSError as cleanup_exc:
                self._logger.warning(
                    "image_cache_invalidate_failed",
                    cache_key=descriptor.cache_key,
                    error=str(cleanup_exc),
                )
            self._schedule(self._evict_stream(descriptor.identity))
            if isinstance(exc, AwsImageError):
                raise
            raise AwsImageError(
                f"Unexpected failure loading {descriptor.source_key}: {exc}"
            ) from exc

    async def _load(
        self,
        descriptor: ImageRequestDescriptor,
        on_progress: ProgressCallback | None,
    ) -> DecodedImage:
        cache_key = descriptor.cache_key

        if not descriptor.force_refresh:
            if await self._store.is_valid(cache_key, descriptor.cache_duration):
                data = await self._store.get(cache_key)
                if data:
                    self._logger.debug("cache_hit", cache_key=cache_key)
                    return await self._decoder.decode(data, descriptor.scale)
            else:
                await self._store.invalidate(cache_key)
            self._logger.debug("cache_miss", cache_key=cache_key)

        url = await self._resolver.resolve(descriptor.source_key)
        if not url:
            raise ResolutionError(f"No fetchable URL for {descriptor.source_key}")

        data = await self._fetcher.fetch(
            url,
            headers=descriptor.headers,
            query_parameters=descriptor.query_parameters,
            on_progress=on_progress,
            max_retries=descriptor.max_retries,
            retry_delay=descriptor.retry_delay,
        )
        try:
            await self._store.put(cache_key, data)
        except OSError as exc:
            self._logger.warning("image_cache_write_failed", cache_key=cache_key, error=str(exc))
        self._logger.info("image_fetched", cache_key=cache_key, size=len(data))
        return await self._decoder.decode(data, descriptor.scale)

    # ------------------------------------------------------------------
    # Shared streams
    # ------------------------------------------------------------------

    async def resolve(self, descriptor: ImageRequestDescriptor) -> ImageStreamCompleter:
        """Return the live stream for *descriptor*, starting a load if needed."""
        identity = descriptor.identity
        existing = await self._stream_cache.get(identity)
        if existing is not None:
            return existing

        completer = ImageStreamCompleter(
            debug_label=descriptor.source_key,
            on_abandoned=lambda abandoned: self._schedule(
                self._evict_stream(identity, only=abandoned)
            ),
        )
        await self._stream_cache.put(identity, completer)

        async def report_progress(loaded: int, total: int) -> None:
            await completer.report_chunk(
                ImageChunkEvent(cumulative_bytes_loaded=loaded, expected_total_bytes=total)
            )

        completer.start(self.load_image(descriptor, on_progress=report_progress))
        return completer

    async def evict(self, descriptor: ImageRequestDescriptor) -> None:
        """Drop *descriptor* from both the disk store and the stream cache."""
        await self._store.invalidate(descriptor.cache_key)
        await self._stream_cache.remove(descriptor.identity)
        self._logger.debug("image_evicted", cache_key=descriptor.cache_key)

    async def drain_pending_evictions(self) -> None:
        """Wait for every scheduled eviction to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _evict_stream(
        self,
        identity: str,
        only: ImageStreamCompleter | None = None,
    ) -> None:
        try:
            if only is not None:
                await self._stream_cache.remove_if(identity, only)
            else:
                await self._stream_cache.remove(identity)
        except Exception as exc:
            self._logger.warning("stream_eviction_failed", identity=identity, error=str(exc))
