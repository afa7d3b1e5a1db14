"""
Image caching package.

Provides the data model, content-addressed disk store, upstream fetcher,
memory cache and data URL decoding.
"""

from .base import Image, ImageKey, RescaleType, SavedImage
from .cache import ImageCache
from .data_uri import decode_data_uri, is_data_uri
from .fetch import Fetcher, MagicTarget
from .store import ContentStore

__all__ = [
    "ContentStore",
    "Fetcher",
    "Image",
    "ImageCache",
    "ImageKey",
    "MagicTarget",
    "RescaleType",
    "SavedImage",
    "decode_data_uri",
    "is_data_uri",
]
