"""Pytest fixtures and configuration for rescale-proxy tests.

This module provides shared fixtures for testing the content store, caches,
magic resolver, dispatcher and HTTP server.
"""

import tempfile
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from rescale_proxy.config import Settings
from rescale_proxy.images import ContentStore, Fetcher, Image, ImageCache, MagicTarget, RescaleType
from rescale_proxy.magic import MagicResolver

THUMBNAIL_BASE = "https://rescale.example.com/thumb"
LARGE_BASE = "https://rescale.example.com/large"

# PNG signature followed by opaque payload bytes
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(32))


class FakeClock:
    """Manually advanced clock for backoff and TTL tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# --- Temporary Directory Fixtures ---


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def cache_dir(temp_dir: Path) -> Path:
    """Directory used as the content store root."""
    return temp_dir / "cache"


# --- Sample Data Fixtures ---


@pytest.fixture
def sample_image() -> Image:
    """A small PNG image."""
    return Image(content_type="image/png", body=PNG_BYTES)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# --- Component Fixtures ---


@pytest.fixture
def store(cache_dir: Path) -> ContentStore:
    return ContentStore(cache_dir)


@pytest.fixture
def mock_fetcher(sample_image: Image) -> Fetcher:
    """Create a mock fetcher that succeeds by default."""
    fetcher = MagicMock(spec=Fetcher)
    fetcher.fetch_image = AsyncMock(return_value=sample_image)
    fetcher.fetch_magic = AsyncMock(
        return_value=MagicTarget(url="https://cdn.example.com/real.png", status_code=200)
    )
    fetcher.aclose = AsyncMock()
    return fetcher


@pytest.fixture
def image_cache(mock_fetcher: Fetcher, store: ContentStore, clock: FakeClock) -> ImageCache:
    return ImageCache(
        fetcher=mock_fetcher,
        store=store,
        base_urls={RescaleType.THUMBNAIL: THUMBNAIL_BASE, RescaleType.LARGE: LARGE_BASE},
        max_backoff=60,
        clock=clock,
    )


@pytest.fixture
def magic_resolver(mock_fetcher: Fetcher, clock: FakeClock) -> MagicResolver:
    return MagicResolver(fetcher=mock_fetcher, ttl=300, max_backoff=60, clock=clock)


# --- Settings Override Fixtures ---


@pytest.fixture
def test_settings(cache_dir: Path) -> Settings:
    """Settings with every required value set."""
    return Settings(
        image_rescale_url_thumbnail=THUMBNAIL_BASE,
        image_rescale_url_large=LARGE_BASE + "/",
        referer="https://referer.example.com/",
        cache_dir=str(cache_dir),
        magic_ttl=120,
    )
