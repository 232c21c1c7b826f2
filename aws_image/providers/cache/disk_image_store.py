"""Disk-backed image byte cache with per-entry timestamps.

Layout under the cache root::

    <root>/<sanitized key>        raw image bytes
    <root>/<sanitized key>.meta   epoch milliseconds of the write, as text

Writes go through a temporary sibling and ``os.replace`` so readers only
ever see complete files.  ``put`` drops the old ``.meta`` first and writes
the new one last: an interrupted write leaves data without metadata, which
every reader treats as "not cached".

All filesystem work runs in ``asyncio.to_thread`` so cache lookups never
block the event loop.
"""

from __future__ import annotations

import asyncio
import os
import re
import shutil
import time
from collections.abc import Callable
from datetime import timedelta
from pathlib import Path
from uuid import uuid4

import structlog

from aws_image.interfaces.image_store import IImageStore
from aws_image.utils.errors import CacheCorruptionError

logger = structlog.get_logger(logger_name=__name__)

METADATA_SUFFIX = ".meta"
_TMP_SUFFIX = ".tmp"
_UNSAFE_CHARS = re.compile(r"[^\w\-.]", re.ASCII)


def sanitize_key(key: str) -> str:
    """Map *key* onto a filesystem-safe file name."""
    sanitized = _UNSAFE_CHARS.sub("_", key)
    if sanitized in (".", ".."):
        sanitized = sanitized.replace(".", "_")
    return sanitized


class DiskImageStore(IImageStore):
    """Filesystem implementation of :class:`IImageStore`.

    Parameters
    ----------
    cache_dir:
        Root directory.  Created on first use, not at construction.
    clock:
        Returns the current time in epoch seconds; injectable for tests.
    """

    def __init__(
        self,
        cache_dir: str | Path,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._configured_dir = Path(cache_dir)
        self._cache_directory: Path | None = None
        self._clock = clock

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def cache_directory(self) -> Path:
        """The cache root, created once and then reused."""
        if self._cache_directory is None:
            self._configured_dir.mkdir(parents=True, exist_ok=True)
            self._cache_directory = self._configured_dir
        return self._cache_directory

    def _data_path(self, key: str) -> Path:
        name = sanitize_key(key)
        if not name:
            raise ValueError("Cache key must not be empty")
        return self.cache_directory / name

    def _meta_path(self, key: str) -> Path:
        data_path = self._data_path(key)
        return data_path.with_name(data_path.name + METADATA_SUFFIX)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # ------------------------------------------------------------------
    # IImageStore implementation
    # ------------------------------------------------------------------

    async def put(self, key: str, data: bytes) -> None:
        await asyncio.to_thread(self._put_sync, key, data)
        logger.debug("image_cache_put", key=key, size=len(data))

    async def get(self, key: str) -> bytes | None:
        try:
            return await asyncio.to_thread(self._get_sync, key)
        except OSError as exc:
            logger.warning("image_cache_read_failed", key=key, error=str(exc))
            return None

    async def is_valid(self, key: str, duration: timedelta) -> bool:
        try:
            cached_at = await asyncio.to_thread(self._read_timestamp_sync, key)
        except CacheCorruptionError as exc:
            logger.warning("image_cache_metadata_corrupted", key=key, error=str(exc))
            await self.invalidate(key)
            return False
        except OSError as exc:
            logger.warning("image_cache_read_failed", key=key, error=str(exc))
            return False

        if cached_at is None:
            return False
        age_ms = self._now_ms() - cached_at
        return age_ms < duration.total_seconds() * 1000

    async def cache_age(self, key: str) -> timedelta | None:
        try:
            cached_at = await asyncio.to_thread(self._read_timestamp_sync, key)
        except (CacheCorruptionError, OSError):
            return None
        if cached_at is None:
            return None
        return timedelta(milliseconds=self._now_ms() - cached_at)

    async def invalidate(self, key: str) -> None:
        await asyncio.to_thread(self._invalidate_sync, key)
        logger.debug("image_cache_invalidated", key=key)

    async def clear_expired(self, max_age: timedelta) -> int:
        cleared = await asyncio.to_thread(self._clear_expired_sync, max_age)
        logger.info("image_cache_expired_cleared", cleared=cleared)
        return cleared

    async def clear_all(self) -> None:
        await asyncio.to_thread(self._clear_all_sync)
        logger.info("image_cache_cleared")

    async def size(self) -> int:
        return await asyncio.to_thread(self._size_sync)

    async def count(self) -> int:
        return await asyncio.to_thread(self._count_sync)

    # ------------------------------------------------------------------
    # Sync helpers (executed via asyncio.to_thread)
    # ------------------------------------------------------------------

    def _put_sync(self, key: str, data: bytes) -> None:
        data_path = self._data_path(key)
        meta_path = self._meta_path(key)
        # The directory may have been wiped by clear_all() in the meantime.
        data_path.parent.mkdir(parents=True, exist_ok=True)

        meta_path.unlink(missing_ok=True)
        _atomic_write(data_path, data)
        _atomic_write(meta_path, str(self._now_ms()).encode("ascii"))

    def _get_sync(self, key: str) -> bytes | None:
        try:
            return self._data_path(key).read_bytes()
        except FileNotFoundError:
            return None

    def _read_timestamp_sync(self, key: str) -> int | None:
        """Return the stored timestamp, ``None`` if absent.

        Raises CacheCorruptionError when the record exists but is unreadable.
        """
        try:
            raw = self._meta_path(key).read_bytes()
        except FileNotFoundError:
            return None
        return _parse_timestamp(raw)

    def _invalidate_sync(self, key: str) -> None:
        try:
            data_path = self._data_path(key)
        except OSError as exc:
            # No usable cache root means there is nothing to delete.
            logger.debug("image_cache_unavailable", key=key, error=str(exc))
            return
        _delete_quietly(data_path)
        _delete_quietly(data_path.with_name(data_path.name + METADATA_SUFFIX))

    def _clear_expired_sync(self, max_age: timedelta) -> int:
        root = self.cache_directory
        if not root.exists():
            return 0

        now_ms = self._now_ms()
        max_age_ms = max_age.total_seconds() * 1000
        cleared = 0

        for entry in root.iterdir():
            if not entry.is_file() or _is_bookkeeping_file(entry):
                continue

            meta_path = entry.with_name(entry.name + METADATA_SUFFIX)
            try:
                raw = meta_path.read_bytes()
            except FileNotFoundError:
                _delete_quietly(entry)
                cleared += 1
                continue

            try:
                cached_at = _parse_timestamp(raw)
            except CacheCorruptionError:
                stale = True
            else:
                stale = now_ms - cached_at >= max_age_ms

            if stale:
                _delete_quietly(entry)
                _delete_quietly(meta_path)
                cleared += 1

        return cleared

    def _clear_all_sync(self) -> None:
        root = self.cache_directory
        if root.exists():
            shutil.rmtree(root)
        root.mkdir(parents=True, exist_ok=True)
        self._cache_directory = None

    def _size_sync(self) -> int:
        root = self.cache_directory
        if not root.exists():
            return 0
        return sum(path.stat().st_size for path in root.rglob("*") if path.is_file())

    def _count_sync(self) -> int:
        root = self.cache_directory
        if not root.exists():
            return 0
        return sum(
            1 for path in root.iterdir() if path.is_file() and not _is_bookkeeping_file(path)
        )


# ---------------------------------------------------------------------------
# Module helpers
# ---------------------------------------------------------------------------

def _parse_timestamp(raw: bytes) -> int:
    try:
        return int(raw.decode("ascii").strip())
    except (UnicodeDecodeError, ValueError) as exc:
        raise CacheCorruptionError(f"Unreadable cache timestamp: {raw[:32]!r}") from exc


def _is_bookkeeping_file(path: Path) -> bool:
    return path.name.endswith(METADATA_SUFFIX) or path.name.endswith(_TMP_SUFFIX)


def _atomic_write(target: Path, payload: bytes) -> None:
    tmp_path = target.with_name(f"{target.name}.{uuid4().hex}{_TMP_SUFFIX}")
    try:
        tmp_path.write_bytes(payload)
        os.replace(tmp_path, target)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def _delete_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.debug("image_cache_delete_failed", path=str(path), error=str(exc))


# ---------------------------------------------------------------------------
# Process-wide default
# ---------------------------------------------------------------------------

_default_store: DiskImageStore | None = None


def get_default_image_store(cache_dir: str | Path | None = None) -> DiskImageStore:
    """Return the process-wide store, creating it on first call.

    Later calls ignore *cache_dir*.  Code that needs isolation (tests,
    multiple roots) should construct :class:`DiskImageStore` directly.
    """
    global _default_store
    if _default_store is None:
        if cache_dir is None:
            from aws_image.config.settings import Settings

            cache_dir = Settings().cache_dir
        _default_store = DiskImageStore(cache_dir)
    return _default_store
