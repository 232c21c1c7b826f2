"""Package settings loaded from environment variables via pydantic-settings.

Sources, highest priority first:

  1. Environment variables -- e.g. ``PRESIGN_BASE_URL=https://api.example.com/presign``
  2. ``.env`` file in the working directory
  3. The defaults below

Field names map to upper-cased variable names.  Dict fields
(``presign_headers``, ``presign_query_parameters``) are read as JSON.
"""

from __future__ import annotations

import tempfile
from datetime import timedelta
from pathlib import Path
from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict

from aws_image.models.image import ImageRequestDescriptor

_CACHE_DIR_NAME = "aws_image_cache"


class Settings(BaseSettings):
    """aws_image settings.

    Environment variables override defaults.  Loaded from .env when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Presign backend ===
    # "rest" or "graphql"; an empty base URL disables presigning, so only
    # full, unexpired URLs can be loaded.
    presign_backend: str = "rest"
    presign_base_url: str = ""
    presign_http_method: str = "GET"  # REST only; GraphQL always POSTs
    presign_response_key: str = "url"
    presign_graphql_query: str = ""
    presign_graphql_operation_name: str = ""
    presign_headers: dict[str, str] = {}
    presign_query_parameters: dict[str, str] = {}
    presign_request_logging: bool = False

    # === Disk cache ===
    image_cache_dir: str = ""  # empty -> <tempdir>/aws_image_cache
    cache_duration_seconds: int = 3 * 24 * 60 * 60

    # === Fetch ===
    max_retries: int = 3
    retry_delay_seconds: float = 1.0
    connect_timeout_seconds: float = 10.0
    receive_timeout_seconds: float = 30.0

    # === Descriptor defaults ===
    force_refresh: bool = False
    scale: float = 1.0

    # === In-memory stream cache ===
    stream_cache_size: int = 100
    stream_cache_ttl_seconds: int = 3600

    # === App ===
    app_env: str = "development"
    log_level: str = "INFO"

    @property
    def cache_dir(self) -> Path:
        """Resolved cache root (not created here)."""
        if self.image_cache_dir:
            return Path(self.image_cache_dir).expanduser()
        return Path(tempfile.gettempdir()) / _CACHE_DIR_NAME

    @property
    def cache_duration(self) -> timedelta:
        return timedelta(seconds=self.cache_duration_seconds)

    @property
    def retry_delay(self) -> timedelta:
        return timedelta(seconds=self.retry_delay_seconds)

    def default_descriptor(self, source_key: str, **overrides: Any) -> ImageRequestDescriptor:
        """Build a descriptor for *source_key* from the configured defaults."""
        fields: dict[str, Any] = {
            "source_key": source_key,
            "cache_duration": self.cache_duration,
            "max_retries": self.max_retries,
            "retry_delay": self.retry_delay,
            "force_refresh": self.force_refresh,
            "scale": self.scale,
        }
        fields.update(overrides)
        return ImageRequestDescriptor(**fields)
