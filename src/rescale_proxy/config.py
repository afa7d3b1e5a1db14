"""Configuration management using pydantic-settings.

Loads from environment variables and .env file.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .images.base import RescaleType


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Attributes:
        image_rescale_url_thumbnail: Upstream base URL for thumbnails.
        image_rescale_url_large: Upstream base URL for large images.
        referer: Referer header sent with every outbound request.
        host: Server bind address.
        port: Server bind port.
        cache_dir: Root directory of the content-addressed image store.
        cache_max_age: Client cache duration for regular images in seconds.
        magic_ttl: Freshness of magic URL resolutions in seconds.
        max_backoff: Upper bound of the failure backoff window in seconds.
        fetch_timeout: HTTP timeout for outbound requests in seconds.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_json: Output logs in JSON format for production.
        log_file: Optional path of a rotating log file.

    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Upstream rescaling service
    image_rescale_url_thumbnail: str = ""
    image_rescale_url_large: str = ""
    referer: str = ""
    fetch_timeout: float = 30.0

    # Caching
    cache_dir: str = "cache"
    cache_max_age: int = 2592000  # 30 days
    magic_ttl: int = 300
    max_backoff: float = 3600

    # Server
    host: str = "127.0.0.1"
    port: int = 3030

    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    log_file: str | None = None

    @property
    def cache_path(self) -> Path:
        """Return the cache directory as a Path object.

        Returns:
            Path: Resolved path to the cache directory.

        """
        return Path(self.cache_dir)

    def rescale_url(self, rescale_type: RescaleType) -> str:
        """Return the upstream base URL for a rescale type, without trailing slash."""
        return getattr(self, f"image_rescale_url_{rescale_type.value}").rstrip("/")

    @property
    def base_urls(self) -> dict[RescaleType, str]:
        return {t: self.rescale_url(t) for t in RescaleType}

    def missing_required(self) -> list[str]:
        """List the environment variables that must be set but are empty."""
        missing = [
            f"IMAGE_RESCALE_URL_{t.label}" for t in RescaleType if not self.rescale_url(t)
        ]
        if not self.referer:
            missing.append("REFERER")
        return missing


# Global settings instance
settings = Settings()
