"""Magic URL resolution package."""

from .resolver import MagicResolution, MagicResolver

__all__ = [
    "MagicResolution",
    "MagicResolver",
]
