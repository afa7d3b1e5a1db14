"""
Content-addressed disk store for fetched images.

Each (rescale type, URL) key maps to a fixed path derived from the SHA-256
of the URL, sharded by rescale type and two 3-character hex prefixes.
"""

import hashlib
import os
import tempfile
import time
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from .base import Image, ImageKey, RescaleType, SavedImage


class ContentStore:
    """Persists SavedImage envelopes under a cache root."""

    def __init__(self, root: Path | str):
        """
        Initialize the content store.

        Args:
            root: Directory under which all shards are created
        """
        self.root = Path(root)
        logger.debug("ContentStore initialized: root={}", self.root)

    def path(self, key: ImageKey) -> tuple[Path, Path]:
        """
        Compute the shard directory and file path for a key.

        Args:
            key: Cache key

        Returns:
            Tuple of (directory, filepath)
        """
        digest = hashlib.sha256(key.url.encode()).hexdigest()
        directory = self.root / key.rescale_type.label / digest[:3] / digest[3:6]
        return directory, directory / digest[6:]

    def load(self, key: ImageKey) -> SavedImage | None:
        """
        Read the envelope stored for a key.

        Returns:
            The SavedImage, or None if it is missing, unreadable or malformed
        """
        _, path = self.path(key)
        try:
            data = path.read_bytes()
        except OSError:
            return None

        try:
            saved = SavedImage.model_validate_json(data)
        except ValidationError as e:
            logger.warning("Discarding unreadable envelope {}: {}", path, e.error_count())
            return None

        if saved.key != key:
            logger.warning("Envelope {} belongs to a different key", path)
            return None
        return saved

    def store(self, key: ImageKey, image: Image) -> SavedImage:
        """
        Write the envelope for a key, replacing any previous one.

        Args:
            key: Cache key
            image: Image fetched from upstream

        Returns:
            The envelope that was written

        Raises:
            OSError: If the shard directory or file cannot be written
        """
        directory, path = self.path(key)
        saved = SavedImage(key=key, image=image, time_nanos=time.time_ns())

        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(saved.model_dump_json().encode())
            os.replace(tmp_name, path)
        except OSError:
            logger.error("Failed to write envelope {}", path)
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug("Saved {} bytes to {}", len(image.body), path)
        return saved

    def stats(self) -> dict[RescaleType, int]:
        """Count stored envelopes per rescale type."""
        counts = {}
        for rescale_type in RescaleType:
            type_dir = self.root / rescale_type.label
            if not type_dir.exists():
                counts[rescale_type] = 0
                continue
            counts[rescale_type] = sum(
                1 for p in type_dir.glob("*/*/*") if p.is_file() and not p.name.startswith(".")
            )
        return counts
