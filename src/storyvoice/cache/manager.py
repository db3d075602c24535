"""Content-addressed generation cache.

Remembers which artifact an expensive producer (voice cloning, speech
synthesis) returned for a given key so the producer is only called again
for inputs it has never seen.
"""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from datetime import timedelta
from pathlib import Path
from typing import Any

from ..errors import CorruptStoreError, PersistenceError, ProducerError
from . import get_cache_dir
from .keys import narration_key, voice_sample_key
from .models import CacheEntry, now_ms
from .storage import CacheStorage

logger = logging.getLogger(__name__)

CORRUPT_POLICIES = ("reset", "raise")

VOICE_CACHE_FILE = "voice-cache.json"
NARRATION_CACHE_FILE = "narration-cache.json"

Producer = Callable[[], Awaitable[str]]


class GenerationCache:
    """Single-file, in-memory generation cache with flush-on-write.

    The whole store is loaded when the cache is constructed, mutated in
    place on each miss and written back to disk right after every
    mutation. Concurrent misses for the same key inside one event loop are
    collapsed into a single producer call.

    Example:
        cache = GenerationCache(path, "voiceId", voice_sample_key)

        key = cache.compute_key(sample_bytes)
        voice_id = await cache.get_or_create(
            key, lambda: provider.clone_voice("Narrator", sample_bytes)
        )
        # A second call with the same bytes returns voice_id without cloning
    """

    def __init__(
        self,
        path: Path,
        value_field: str,
        key_func: Callable[..., str],
        corrupt_policy: str = "reset",
        max_age: timedelta | None = None,
    ):
        """Initialize the cache and load its document from disk.

        Args:
            path: JSON document backing this cache
            value_field: Name of the artifact field in each persisted entry
            key_func: Function deriving a key from the cache's input
            corrupt_policy: "reset" to log and start empty when the document
                is unreadable, "raise" to propagate CorruptStoreError
            max_age: Drop entries older than this when loading (None keeps
                entries forever)

        Raises:
            ValueError: If corrupt_policy is unknown
            CorruptStoreError: If the document is corrupt and policy is "raise"
        """
        if corrupt_policy not in CORRUPT_POLICIES:
            raise ValueError(
                f"corrupt_policy must be one of {', '.join(CORRUPT_POLICIES)}, "
                f"got {corrupt_policy!r}"
            )

        self.path = path
        self.value_field = value_field
        self.corrupt_policy = corrupt_policy
        self.max_age = max_age
        self.storage = CacheStorage(path, value_field)
        self.load_error: CorruptStoreError | None = None

        self._key_func = key_func
        self._entries: dict[str, CacheEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        # Callers holding or waiting on each lock
        self._lock_users: dict[str, int] = {}

        self.load()

    def compute_key(self, *args: Any) -> str:
        """Derive the cache key for this cache's input.

        Raises:
            InvalidInputError: If the input is missing or malformed
        """
        return self._key_func(*args)

    def load(self) -> dict[str, CacheEntry]:
        """(Re)load the store from disk, replacing in-memory state.

        A missing document yields an empty store. A corrupt document is
        handled according to corrupt_policy; under "reset" the unreadable
        file is moved aside and the error is kept in load_error.

        Returns:
            The loaded entries

        Raises:
            CorruptStoreError: If the document is corrupt and policy is "raise"
            PersistenceError: If the document exists but cannot be read
        """
        self.load_error = None
        try:
            self._entries = self.storage.load()
        except CorruptStoreError as e:
            if self.corrupt_policy == "raise":
                raise
            self.load_error = e
            self._entries = {}
            backup = self._quarantine()
            logger.error(
                f"Discarding corrupt cache {self.path}: {e}"
                + (f" (moved to {backup})" if backup else "")
            )

        if self.max_age is not None:
            removed = self._remove_older_than(self.max_age)
            if removed:
                logger.info(f"Expired {removed} entries older than {self.max_age}")
                self._persist_quietly()

        logger.debug(f"Cache {self.path.name} ready with {len(self._entries)} entries")
        return self._entries

    def _quarantine(self) -> Path | None:
        # Keep the unreadable document around instead of overwriting it
        # on the next persist
        backup = self.path.with_name(f"{self.path.name}.corrupt-{now_ms()}")
        try:
            os.replace(self.path, backup)
        except OSError as e:
            logger.warning(f"Could not move corrupt cache {self.path} aside: {e}")
            return None
        return backup

    def lookup(self, key: str) -> CacheEntry | None:
        """Return the stored entry for key, or None if never stored."""
        return self._entries.get(key)

    async def get_or_create(self, key: str, producer: Producer) -> str:
        """Return the cached artifact for key, producing it on a miss.

        Args:
            key: Cache key from compute_key()
            producer: Zero-argument coroutine function doing the expensive
                external call and returning the artifact reference

        Returns:
            Artifact reference (stored value on a hit, new value on a miss)

        Raises:
            ProducerError: If the producer fails; the store is left unchanged
        """
        entry = self.lookup(key)
        if entry is not None:
            logger.debug(f"Cache hit for {key[:16]} in {self.path.name}")
            return entry.value

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                # Another caller may have produced it while we waited
                entry = self.lookup(key)
                if entry is not None:
                    logger.debug(f"Cache hit for {key[:16]} after waiting on producer")
                    return entry.value

                logger.info(
                    f"Cache miss for {key[:16]} in {self.path.name}, calling producer"
                )
                try:
                    value = await producer()
                except ProducerError:
                    raise
                except Exception as e:
                    raise ProducerError(f"Producer failed for {key}: {e}", e) from e

                if not value:
                    raise ProducerError(f"Producer returned no artifact for {key}")

                self._entries[key] = CacheEntry(key=key, value=value)
                self._persist_quietly()
                return value
        finally:
            # Drop the lock once nobody holds or waits on it, success or not
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    def persist(self) -> None:
        """Write the whole in-memory store to disk.

        Raises:
            PersistenceError: If the write fails; in-memory state is kept
        """
        self.storage.save(self._entries)

    def _persist_quietly(self) -> None:
        try:
            self.persist()
        except PersistenceError as e:
            logger.error(f"Cache update kept in memory only: {e}")

    def invalidate(self, key: str) -> bool:
        """Remove a single entry and persist.

        Returns:
            True if the key was present

        Raises:
            PersistenceError: If the updated store cannot be written
        """
        if self._entries.pop(key, None) is None:
            return False
        self.persist()
        return True

    def prune(self, max_age: timedelta) -> int:
        """Remove entries older than max_age and persist if any were removed.

        Returns:
            Number of entries removed

        Raises:
            PersistenceError: If the updated store cannot be written
        """
        removed = self._remove_older_than(max_age)
        if removed:
            self.persist()
        return removed

    def _remove_older_than(self, max_age: timedelta) -> int:
        cutoff = now_ms() - int(max_age.total_seconds() * 1000)
        stale = [k for k, e in self._entries.items() if e.created_at < cutoff]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def entries(self) -> list[CacheEntry]:
        """All entries, oldest first."""
        return sorted(self._entries.values(), key=lambda e: e.created_at)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


def voice_clone_cache(cache_dir: Path | None = None, **kwargs: Any) -> GenerationCache:
    """Cache of cloned voice IDs keyed by SHA-256 of the voice sample."""
    cache_dir = cache_dir or get_cache_dir()
    return GenerationCache(
        cache_dir / VOICE_CACHE_FILE, "voiceId", voice_sample_key, **kwargs
    )


def narration_cache(cache_dir: Path | None = None, **kwargs: Any) -> GenerationCache:
    """Cache of narration audio URLs keyed by story, narrator and page."""
    cache_dir = cache_dir or get_cache_dir()
    return GenerationCache(
        cache_dir / NARRATION_CACHE_FILE, "narrationUrl", narration_key, **kwargs
    )
