"""
Image caching.

Keeps the last outcome for every (rescale type, URL) in memory, falls back
to the content store on a memory miss, and only contacts the upstream
rescaling service when neither has the image and no recent failure is
being backed off.
"""

from collections.abc import Mapping
from datetime import datetime, timezone

from loguru import logger

from ..errors import FetchError
from ..outcomes import Clock, Failed, LockedMap, Success, in_backoff, utcnow
from .base import Image, ImageKey, RescaleType, SavedImage
from .fetch import Fetcher
from .store import ContentStore

ImageCacheEntry = Success | Failed


class ImageCache:
    """Memory and disk cache in front of the upstream rescaling service."""

    def __init__(
        self,
        fetcher: Fetcher,
        store: ContentStore,
        base_urls: Mapping[RescaleType, str],
        max_backoff: float = 3600,
        clock: Clock = utcnow,
    ):
        """
        Initialize the image cache.

        Args:
            fetcher: Fetcher used for upstream requests
            store: Content store used as the durable warm cache
            base_urls: Upstream base URL for each rescale type
            max_backoff: Maximum backoff window in seconds after failures
            clock: Source of the current time
        """
        self.fetcher = fetcher
        self.store = store
        self.base_urls = {t: url.rstrip("/") for t, url in base_urls.items()}
        self.max_backoff = max_backoff
        self.clock = clock
        self.entries: LockedMap[ImageKey, ImageCacheEntry] = LockedMap()

    def upstream_url(self, key: ImageKey) -> str:
        """Build the upstream URL for a key."""
        return f"{self.base_urls[key.rescale_type]}/{key.url}"

    async def get(self, key: ImageKey) -> Image:
        """
        Return the image for a key.

        Args:
            key: Rescale type and source URL

        Returns:
            The cached or freshly fetched image

        Raises:
            FetchError: The fresh or memoized upstream error
            OSError: If a fetched image cannot be persisted
        """
        entry = self.entries.get(key)
        attempts: tuple[datetime, ...] = ()

        if isinstance(entry, Success):
            logger.debug("Retrieving from cache {} {}", key.rescale_type.label, key.url)
            return entry.value
        elif isinstance(entry, Failed):
            logger.warning(
                "Failed attempts {} for {} {}", len(entry.attempts), key.rescale_type.label, key.url
            )
            if in_backoff(entry, self.clock(), self.max_backoff):
                raise FetchError(entry.error.kind, entry.error.status_code)
            attempts = entry.attempts
        else:
            saved = self.store.load(key)
            if saved is not None:
                logger.debug("Retrieving from disk {} {}", key.rescale_type.label, key.url)
                return self._install(saved)

        try:
            image = await self.fetcher.fetch_image(self.upstream_url(key))
        except FetchError as e:
            self.entries.replace(key, Failed(error=e, attempts=(*attempts, self.clock())))
            raise

        logger.info("Caching {} {}", key.rescale_type.label, key.url)
        return self._install(self.store.store(key, image))

    def _install(self, saved: SavedImage) -> Image:
        observed_at = datetime.fromtimestamp(saved.time_nanos / 1_000_000_000, tz=timezone.utc)
        self.entries.replace(saved.key, Success(value=saved.image, observed_at=observed_at))
        return saved.image
