"""
Data models for rescaled images.

Provides Pydantic models for cache keys, images and the on-disk envelope.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ..errors import FetchError, FetchErrorKind


class RescaleType(str, Enum):
    """Rescaled variants offered by the upstream service."""

    THUMBNAIL = "thumbnail"
    LARGE = "large"

    @property
    def label(self) -> str:
        """Return the capitalised name used as the on-disk shard segment."""
        return self.value.capitalize()

    @classmethod
    def parse(cls, token: str) -> "RescaleType":
        """Parse a request token, raising INVALID_RESCALE_TYPE if unknown."""
        try:
            return cls(token)
        except ValueError:
            raise FetchError(FetchErrorKind.INVALID_RESCALE_TYPE) from None


class ImageKey(BaseModel):
    """Cache key: a source URL under one rescale type."""

    model_config = ConfigDict(frozen=True)

    rescale_type: RescaleType = Field(description="Requested rescale variant")
    url: str = Field(description="Source image URL")


class Image(BaseModel):
    """An image payload with its content type."""

    model_config = ConfigDict(frozen=True, ser_json_bytes="base64", val_json_bytes="base64")

    content_type: str = Field(description="MIME type reported by upstream")
    body: bytes = Field(description="Raw image bytes")


class SavedImage(BaseModel):
    """Envelope persisted by the content store."""

    model_config = ConfigDict(frozen=True, ser_json_bytes="base64", val_json_bytes="base64")

    key: ImageKey
    image: Image
    time_nanos: int = Field(description="Capture time in nanoseconds since the epoch")
