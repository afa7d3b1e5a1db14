"""
Magic URL resolution.

A magic URL points at a small text/plain document naming the real image URL.
Resolutions are cached in memory: successes are served stale past the TTL
while a background task refreshes them, failures are backed off the same
way as image fetches.
"""

import asyncio
from datetime import datetime, timedelta

from loguru import logger
from pydantic import BaseModel, Field

from ..errors import FetchError
from ..images.fetch import Fetcher, MagicTarget
from ..outcomes import Clock, Failed, LockedMap, Success, in_backoff, utcnow

MagicCacheEntry = Success | Failed


class MagicResolution(BaseModel):
    """A resolved magic URL and the client cache duration it allows."""

    url: str = Field(description="Resolved target URL")
    status_code: int = Field(description="Status of the magic URL response")
    max_age: int = Field(description="Cache-Control max-age in seconds")


class MagicResolver:
    """Resolves and caches magic URLs."""

    def __init__(
        self,
        fetcher: Fetcher,
        ttl: int = 300,
        max_backoff: float = 3600,
        clock: Clock = utcnow,
    ):
        """
        Initialize the resolver.

        Args:
            fetcher: Fetcher used to download magic URL documents
            ttl: Freshness of a successful resolution in seconds, also the
                client cache duration for status 200 resolutions
            max_backoff: Maximum backoff window in seconds after failures
            clock: Source of the current time
        """
        self.fetcher = fetcher
        self.ttl = ttl
        self.max_backoff = max_backoff
        self.clock = clock
        self.entries: LockedMap[str, MagicCacheEntry] = LockedMap()
        self._refreshing: set[str] = set()
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending_refreshes(self) -> set[asyncio.Task]:
        """Background refresh tasks that have not finished yet."""
        return set(self._tasks)

    def _resolution(self, target: MagicTarget) -> MagicResolution:
        max_age = self.ttl if target.status_code == 200 else 0
        return MagicResolution(url=target.url, status_code=target.status_code, max_age=max_age)

    async def resolve(self, magic_url: str) -> MagicResolution:
        """
        Resolve a magic URL.

        Args:
            magic_url: URL of the magic document

        Returns:
            MagicResolution with the target URL, status and max-age

        Raises:
            FetchError: The fresh or memoized upstream error
        """
        entry = self.entries.get(magic_url)
        attempts: tuple[datetime, ...] = ()

        if isinstance(entry, Success):
            logger.debug("Retrieving from magic cache {}", magic_url)
            if self.clock() - entry.observed_at > timedelta(seconds=self.ttl):
                self._schedule_refresh(magic_url)
            return self._resolution(entry.value)
        elif isinstance(entry, Failed):
            logger.warning("Failed magic attempts {} for {}", len(entry.attempts), magic_url)
            if in_backoff(entry, self.clock(), self.max_backoff):
                raise FetchError(entry.error.kind, entry.error.status_code)
            attempts = entry.attempts

        target = await self._fetch_and_record(magic_url, attempts)
        return self._resolution(target)

    def purge(self, magic_url: str) -> None:
        """Drop any cached state for a magic URL."""
        removed = self.entries.remove(magic_url)
        logger.info("Purged magic url {} (cached: {})", magic_url, removed is not None)

    async def _fetch_and_record(
        self, magic_url: str, attempts: tuple[datetime, ...]
    ) -> MagicTarget:
        try:
            target = await self.fetcher.fetch_magic(magic_url)
        except FetchError as e:
            self.entries.replace(magic_url, Failed(error=e, attempts=(*attempts, self.clock())))
            raise

        logger.info("Caching magic {} -> {} ({})", magic_url, target.url, target.status_code)
        self.entries.replace(magic_url, Success(value=target, observed_at=self.clock()))
        return target

    def _schedule_refresh(self, magic_url: str) -> None:
        if magic_url in self._refreshing:
            return
        self._refreshing.add(magic_url)
        logger.debug("Refreshing stale magic url {}", magic_url)
        task = asyncio.create_task(self._refresh(magic_url))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _refresh(self, magic_url: str) -> None:
        try:
            await self._fetch_and_record(magic_url, ())
        except FetchError as e:
            logger.warning("Background refresh of {} failed: {}", magic_url, e)
        finally:
            self._refreshing.discard(magic_url)
