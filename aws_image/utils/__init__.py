"""Utility modules for aws_image.

- **errors** -- exception hierarchy rooted at AwsImageError; each pipeline
  stage raises its own subclass so callers can react precisely.
- **logging** -- structlog setup: coloured console output in development,
  JSON in production.
- **url_utils** -- cache-key hashing, bucket-key normalisation, presigned
  URL expiry parsing, and GraphQL query introspection.
- **callbacks** -- invoke sync or async user callbacks, logging failures.
"""

from aws_image.utils.errors import (
    AwsImageError,
    CacheCorruptionError,
    ConfigurationError,
    DecodeError,
    ResolutionError,
    TerminalNetworkError,
    TransientNetworkError,
    UploadError,
)
from aws_image.utils.logging import configure_logging, get_logger
from aws_image.utils.url_utils import (
    hash_key,
    is_url_expired,
    is_valid_url,
    parse_bucket_key,
    parse_cache_key,
)

__all__ = [
    "AwsImageError",
    "CacheCorruptionError",
    "ConfigurationError",
    "DecodeError",
    "ResolutionError",
    "TerminalNetworkError",
    "TransientNetworkError",
    "UploadError",
    "configure_logging",
    "get_logger",
    "hash_key",
    "is_url_expired",
    "is_valid_url",
    "parse_bucket_key",
    "parse_cache_key",
]
