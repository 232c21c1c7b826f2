"""Shared pytest fixtures for the aws_image test suite."""

from __future__ import annotations

import io
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest
from PIL import Image

from aws_image.config.settings import Settings
from aws_image.providers.cache.disk_image_store import DiskImageStore

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_image_bytes(fmt: str = "JPEG", size: tuple[int, int] = (8, 6)) -> bytes:
    img = Image.new("RGB", size, (200, 30, 30))
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def mock_http_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """Build an ``httpx.AsyncClient`` whose requests are answered by *handler*."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A small, valid JPEG (starts with FF D8)."""
    return make_image_bytes("JPEG")


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG", (4, 4))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def image_store(tmp_path: Path, clock: FakeClock) -> DiskImageStore:
    """A disk store rooted in a per-test temporary directory."""
    return DiskImageStore(tmp_path / "image_cache", clock=clock)


@pytest.fixture
def mock_client_factory() -> Callable[..., httpx.AsyncClient]:
    """Return :func:`mock_http_client` for tests that script HTTP exchanges."""
    return mock_http_client


@pytest.fixture
def settings_factory(tmp_path: Path) -> Callable[..., Settings]:
    """Build Settings with test defaults; keyword overrides win."""

    def _factory(**overrides: Any) -> Settings:
        defaults: dict[str, Any] = {
            "image_cache_dir": str(tmp_path / "settings_cache"),
            "presign_base_url": "",
            "retry_delay_seconds": 0.0,
            "app_env": "test",
        }
        defaults.update(overrides)
        return Settings(**defaults)

    return _factory
