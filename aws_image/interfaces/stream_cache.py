"""Abstract base class for the keyed stream cache.

The acquisition pipeline keeps one :class:`ImageStreamCompleter` per
descriptor identity so that two surfaces asking for the same image share a
single load.  Entries are live objects, never serialised.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aws_image.pipeline.image_stream import ImageStreamCompleter


# Concrete implementation: MemoryStreamCache
# Located in: aws_image/providers/cache/memory_cache.py
class IStreamCache(ABC):
    """Contract for identity -> completer lookups."""

    @abstractmethod
    async def get(self, identity: str) -> ImageStreamCompleter | None:
        """Return the live completer for *identity*, or ``None``."""

    @abstractmethod
    async def put(self, identity: str, completer: ImageStreamCompleter) -> None:
        """Register *completer* as the stream for *identity*."""

    @abstractmethod
    async def remove(self, identity: str) -> None:
        """Forget *identity*; a no-op if it is not cached."""

    @abstractmethod
    async def remove_if(self, identity: str, completer: ImageStreamCompleter) -> bool:
        """Forget *identity* only while it still maps to *completer*.

        Returns ``True`` if an entry was removed.  A completer that was
        already replaced by a newer load leaves the newer one in place.
        """
