"""In-process stream cache backed by ``cachetools.TTLCache``.

Holds the live :class:`ImageStreamCompleter` for each descriptor identity.
A completer ages out after ``ttl_seconds`` and the least recently used one
goes first once ``max_size`` is reached; dropping one only costs a new
load, since the disk store still has the bytes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from cachetools import TTLCache

from aws_image.interfaces.stream_cache import IStreamCache

if TYPE_CHECKING:
    from aws_image.pipeline.image_stream import ImageStreamCompleter

logger = structlog.get_logger(logger_name=__name__)


class MemoryStreamCache(IStreamCache):
    """Bounded, time-limited identity -> completer map."""

    def __init__(self, max_size: int = 100, ttl_seconds: float = 3600) -> None:
        self._streams: TTLCache[str, ImageStreamCompleter] = TTLCache(
            maxsize=max_size, ttl=ttl_seconds
        )

    async def get(self, identity: str) -> ImageStreamCompleter | None:
        completer = self._streams.get(identity)
        if completer is None:
            logger.debug("stream_cache_miss", identity=identity)
        return completer

    async def put(self, identity: str, completer: ImageStreamCompleter) -> None:
        self._streams[identity] = completer
        logger.debug("stream_cache_put", identity=identity, live=len(self._streams))

    async def remove(self, identity: str) -> None:
        if self._streams.pop(identity, None) is not None:
            logger.debug("stream_cache_removed", identity=identity)

    async def remove_if(self, identity: str, completer: ImageStreamCompleter) -> bool:
        current = self._streams.pop(identity, None)
        if current is None:
            return False
        if current is not completer:
            # A newer load owns the slot; put it back.
            self._streams[identity] = current
            return False
        logger.debug("stream_cache_removed", identity=identity)
        return True

    def __len__(self) -> int:
        return len(self._streams)
