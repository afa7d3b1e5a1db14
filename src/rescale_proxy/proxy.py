"""
Request dispatching.

Turns the first path segment and the remaining path of a request into an
image: magic URLs are resolved first, data URLs are decoded inline and
everything else goes through the image cache.
"""

from loguru import logger
from pydantic import BaseModel, Field

from .errors import FetchError, FetchErrorKind
from .images import Image, ImageCache, ImageKey, RescaleType, decode_data_uri, is_data_uri
from .magic import MagicResolver

MAGIC_MARKER = "magic"
PURGE_MARKER = "purge"


class ProxiedImage(BaseModel):
    """An image ready to be served with its client cache duration."""

    image: Image
    max_age: int = Field(description="Cache-Control max-age in seconds")


class Purged:
    """Acknowledgement that a magic URL was purged."""

    def __repr__(self) -> str:
        return "PURGED"


PURGED = Purged()


class ImageProxy:
    """Dispatches requests to the magic resolver and the image cache."""

    def __init__(
        self,
        image_cache: ImageCache,
        magic_resolver: MagicResolver,
        cache_max_age: int = 2592000,
    ):
        self.image_cache = image_cache
        self.magic_resolver = magic_resolver
        self.cache_max_age = cache_max_age

    async def handle(self, head: str, tail: str) -> ProxiedImage | Purged:
        """
        Handle a request of the form {head}/{tail}.

        Args:
            head: Rescale type, the magic marker or the purge marker
            tail: Rest of the path, including ?query when present

        Returns:
            The image to serve, or PURGED

        Raises:
            FetchError: On malformed requests or upstream failures
        """
        is_magic = head == MAGIC_MARKER
        if is_magic:
            head, sep, tail = tail.partition("/")
            if not sep:
                raise FetchError(FetchErrorKind.INVALID_RESCALE_TYPE)

        if head == PURGE_MARKER:
            self.magic_resolver.purge(tail)
            return PURGED

        rescale_type = RescaleType.parse(head)
        url = tail
        max_age = self.cache_max_age
        if is_magic:
            resolution = await self.magic_resolver.resolve(tail)
            url = resolution.url
            max_age = resolution.max_age

        if is_data_uri(url):
            logger.debug("Decoding data url ({} chars)", len(url))
            return ProxiedImage(image=decode_data_uri(url), max_age=max_age)

        image = await self.image_cache.get(ImageKey(rescale_type=rescale_type, url=url))
        return ProxiedImage(image=image, max_age=max_age)
