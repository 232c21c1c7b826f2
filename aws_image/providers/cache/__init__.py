"""Cache providers: the disk image store and the in-memory stream cache."""

from aws_image.providers.cache.disk_image_store import DiskImageStore, get_default_image_store
from aws_image.providers.cache.memory_cache import MemoryStreamCache

__all__ = ["DiskImageStore", "MemoryStreamCache", "get_default_image_store"]
