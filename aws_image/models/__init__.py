"""aws_image domain models: re-exports all public model classes.

    - image.py      : request descriptor, presign result, progress, decoded image
    - load_state.py : load lifecycle observed by display surfaces
"""

from __future__ import annotations

from aws_image.models.image import (
    DEFAULT_CACHE_DURATION,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    DEFAULT_SCALE,
    DecodedImage,
    HttpMethod,
    ImageChunkEvent,
    ImageRequestDescriptor,
    PresignedUrl,
    UrlType,
)
from aws_image.models.load_state import LoadPhase, LoadState

__all__ = [
    "DEFAULT_CACHE_DURATION",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETRY_DELAY",
    "DEFAULT_SCALE",
    "DecodedImage",
    "HttpMethod",
    "ImageChunkEvent",
    "ImageRequestDescriptor",
    "LoadPhase",
    "LoadState",
    "PresignedUrl",
    "UrlType",
]
