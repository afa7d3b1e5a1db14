"""Cache outcomes shared by the image cache and the magic resolver.

An entry is either the last successful value with the time it was observed,
or the last error together with the timestamps of every consecutive failed
attempt. Entries live in a LockedMap and are only ever replaced whole.
"""

import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

from .errors import FetchError

K = TypeVar("K")
T = TypeVar("T")

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class Success(BaseModel, Generic[T]):
    """The last value retrieved for a key."""

    model_config = ConfigDict(frozen=True)

    value: T
    observed_at: datetime


class Failed(BaseModel):
    """The last error for a key and the history of failed attempts."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    error: FetchError
    attempts: tuple[datetime, ...]

    @property
    def last_attempt(self) -> datetime:
        return self.attempts[-1]


def backoff_window(attempts: tuple[datetime, ...], max_backoff: float) -> timedelta:
    """Return how long a failed key is shielded from new attempts.

    The window doubles with every consecutive failure (1s, 2s, 4s, ...) and is
    capped at max_backoff seconds.

    Args:
        attempts: Timestamps of consecutive failed attempts
        max_backoff: Upper bound of the window in seconds

    Returns:
        The window measured from the most recent attempt

    Raises:
        ValueError: If attempts is empty

    """
    if not attempts:
        raise ValueError("backoff window requires at least one failed attempt")
    # Exponent is capped so huge failure counts cannot overflow a float.
    exponent = min(len(attempts) - 1, 62)
    return timedelta(seconds=min(max_backoff, float(2**exponent)))


def in_backoff(entry: Failed, now: datetime, max_backoff: float) -> bool:
    """Return True while a failed entry is still inside its backoff window."""
    return now - entry.last_attempt < backoff_window(entry.attempts, max_backoff)


class LockedMap(Generic[K, T]):
    """A dict behind a mutex exposing only whole-entry operations.

    The lock is held for a single lookup, replacement or removal and never
    across an await.
    """

    def __init__(self):
        self._entries: dict[K, T] = {}
        self._lock = threading.Lock()

    def get(self, key: K) -> T | None:
        with self._lock:
            return self._entries.get(key)

    def replace(self, key: K, entry: T) -> None:
        with self._lock:
            self._entries[key] = entry

    def remove(self, key: K) -> T | None:
        with self._lock:
            return self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
