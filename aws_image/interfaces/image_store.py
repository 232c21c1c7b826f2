"""Abstract base class for durable image byte stores.

A store maps a cache key to ``(bytes, cached_at)``.  The pipeline only needs
the operations below; implementations decide how the pair is persisted as
long as a half-written entry is never reported as valid.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta


class IImageStore(ABC):
    """Contract for the disk-backed image cache."""

    @abstractmethod
    async def put(self, key: str, data: bytes) -> None:
        """Store *data* under *key*, stamped with the current time.

        Raises ``OSError`` when the store cannot be written.
        """

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the bytes stored under *key*, or ``None`` if absent or unreadable."""

    @abstractmethod
    async def is_valid(self, key: str, duration: timedelta) -> bool:
        """Return ``True`` if *key* was cached less than *duration* ago.

        An entry whose timestamp cannot be parsed is removed and reported
        invalid.  A store that cannot be read at all reports every key
        invalid.
        """

    @abstractmethod
    async def cache_age(self, key: str) -> timedelta | None:
        """Return how long ago *key* was cached, or ``None``."""

    @abstractmethod
    async def invalidate(self, key: str) -> None:
        """Delete *key*'s data and timestamp.  Never raises."""

    @abstractmethod
    async def clear_expired(self, max_age: timedelta) -> int:
        """Delete entries older than *max_age* (or unreadable); return the count."""

    @abstractmethod
    async def clear_all(self) -> None:
        """Delete every entry."""

    @abstractmethod
    async def size(self) -> int:
        """Return the total number of bytes used by the store."""

    @abstractmethod
    async def count(self) -> int:
        """Return the number of cached entries."""
