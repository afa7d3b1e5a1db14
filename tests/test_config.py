"""
Tests for configuration module.

Tests Settings class, environment variable loading, and helper methods.
"""

from pathlib import Path

from rescale_proxy.config import Settings
from rescale_proxy.images import RescaleType


class TestSettings:
    """Test Settings class."""

    def test_default_values(self, monkeypatch):
        """Test that default values are set correctly."""
        for name in ("HOST", "PORT", "CACHE_DIR", "MAGIC_TTL", "LOG_LEVEL", "LOG_FILE"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.host == "127.0.0.1"
        assert settings.port == 3030
        assert settings.cache_dir == "cache"
        assert settings.cache_max_age == 2592000
        assert settings.magic_ttl == 300
        assert settings.max_backoff == 3600
        assert settings.log_level == "INFO"
        assert settings.log_json is False
        assert settings.log_file is None

    def test_cache_path_property(self):
        settings = Settings(cache_dir="./data/cache")

        assert isinstance(settings.cache_path, Path)
        assert str(settings.cache_path) == "data/cache"

    def test_rescale_url_strips_trailing_slash(self, test_settings):
        assert test_settings.rescale_url(RescaleType.LARGE) == "https://rescale.example.com/large"
        assert test_settings.base_urls == {
            RescaleType.THUMBNAIL: "https://rescale.example.com/thumb",
            RescaleType.LARGE: "https://rescale.example.com/large",
        }

    def test_missing_required(self):
        settings = Settings(
            image_rescale_url_thumbnail="",
            image_rescale_url_large="",
            referer="",
        )

        assert settings.missing_required() == [
            "IMAGE_RESCALE_URL_Thumbnail",
            "IMAGE_RESCALE_URL_Large",
            "REFERER",
        ]

    def test_nothing_missing(self, test_settings):
        assert test_settings.missing_required() == []


class TestSettingsFromEnv:
    """Test Settings loading from environment variables."""

    def test_load_from_env(self, monkeypatch):
        monkeypatch.setenv("IMAGE_RESCALE_URL_THUMBNAIL", "https://t.example.com")
        monkeypatch.setenv("REFERER", "https://r.example.com")
        monkeypatch.setenv("PORT", "9000")
        monkeypatch.setenv("MAGIC_TTL", "60")

        settings = Settings()

        assert settings.image_rescale_url_thumbnail == "https://t.example.com"
        assert settings.referer == "https://r.example.com"
        assert settings.port == 9000
        assert settings.magic_ttl == 60

    def test_env_names_are_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("IMAGE_RESCALE_URL_Large", "https://l.example.com/")

        settings = Settings()

        assert settings.rescale_url(RescaleType.LARGE) == "https://l.example.com"
