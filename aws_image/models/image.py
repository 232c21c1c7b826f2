"""Image request, presign, and decoded-image models.

Defines Pydantic v2 models for everything that flows through the
acquisition pipeline.  All models are frozen; nothing in the pipeline
mutates a descriptor or a presign result after it is built.

Flow:
    ImageRequestDescriptor  -> what the display layer asks for
    PresignedUrl            -> what the presign backend hands back
    ImageChunkEvent         -> progress while bytes stream in
    DecodedImage            -> what the decoder produces from the bytes
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from aws_image.utils.url_utils import parse_bucket_key, parse_cache_key

DEFAULT_CACHE_DURATION = timedelta(days=3)
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = timedelta(seconds=1)
DEFAULT_SCALE = 1.0


class UrlType(str, Enum):  # noqa: UP042
    """Intent of a presigned URL request."""

    GET = "GET"
    PUT = "PUT"


class HttpMethod(str, Enum):  # noqa: UP042
    """HTTP verb used for the REST presign call (GraphQL always POSTs)."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"


# ---------------------------------------------------------------------------
# PresignedUrl: result of one presign exchange.
# ---------------------------------------------------------------------------
class PresignedUrl(BaseModel):
    """A presigned URL pair for one storage object.

    Consumed once per resolution and never cached: presigned URLs are
    time-limited, so freshness is re-checked on every load.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    upload_url: str | None = None
    preview_url: str | None = None

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> PresignedUrl:
        """Build from a backend payload shaped ``{key, uploadUrl, previewUrl}``."""
        return cls(
            key=str(data["key"]),
            upload_url=data.get("uploadUrl"),
            preview_url=data.get("previewUrl"),
        )


# ---------------------------------------------------------------------------
# Progress / decoded output
# ---------------------------------------------------------------------------
class ImageChunkEvent(BaseModel):
    """Cumulative download progress for one load."""

    model_config = ConfigDict(frozen=True)

    cumulative_bytes_loaded: int = Field(ge=0)
    expected_total_bytes: int = Field(ge=0)

    @property
    def fraction(self) -> float:
        if self.expected_total_bytes == 0:
            return 0.0
        return min(1.0, self.cumulative_bytes_loaded / self.expected_total_bytes)


class DecodedImage(BaseModel):
    """An image decoded by the codec collaborator.

    ``data`` keeps the encoded bytes so a display surface can hand them to
    its own renderer; it is excluded from ``repr``.
    """

    model_config = ConfigDict(frozen=True)

    width: int = Field(ge=0)
    height: int = Field(ge=0)
    format: str | None = None
    frame_count: int = Field(default=1, ge=1)
    scale: float = DEFAULT_SCALE
    data: bytes = Field(default=b"", repr=False)


# ---------------------------------------------------------------------------
# ImageRequestDescriptor: identity of one image load.
# ---------------------------------------------------------------------------
class ImageRequestDescriptor(BaseModel):
    """Everything needed to load one image.

    ``cache_key`` is derived from ``source_key`` when not supplied.
    Equality and hashing deliberately consider only ``cache_key``,
    ``scale`` and ``force_refresh``: two descriptors that differ only in
    headers, query parameters or retry policy share an in-flight load.
    """

    model_config = ConfigDict(frozen=True)

    source_key: str = Field(min_length=1)
    cache_key: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    query_parameters: dict[str, str] = Field(default_factory=dict)
    cache_duration: timedelta = DEFAULT_CACHE_DURATION
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=1)
    retry_delay: timedelta = DEFAULT_RETRY_DELAY
    force_refresh: bool = False
    scale: float = Field(default=DEFAULT_SCALE, gt=0)

    @model_validator(mode="before")
    @classmethod
    def _derive_cache_key(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("cache_key") and data.get("source_key"):
            data = {**data, "cache_key": parse_cache_key(data["source_key"])}
        return data

    @property
    def bucket_key(self) -> str:
        """The normalised object key behind ``source_key``."""
        try:
            return parse_bucket_key(self.source_key)
        except ValueError:
            return self.source_key

    @property
    def identity(self) -> str:
        """String form of the equality triple, used as a keyed-cache key."""
        return f"{self.cache_key}:{self.scale}:{int(self.force_refresh)}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ImageRequestDescriptor):
            return NotImplemented
        return (
            self.cache_key == other.cache_key
            and self.scale == other.scale
            and self.force_refresh == other.force_refresh
        )

    def __hash__(self) -> int:
        return hash((self.cache_key, self.scale, self.force_refresh))
