"""
Content-addressed cache for page processing results.

Two tiers: an in-process dict consulted first, then an optional durable store.
Entries expire after a TTL; the in-process tier is capped and evicts the
least recently accessed entries first.
"""

import time
from typing import Any, Callable, Dict, Iterable, Optional

from gradescan.config import logger
from gradescan.models import CacheEntry, CacheStats, TopFile
from gradescan.services.capabilities import PersistentCacheStore
from gradescan.utils.hashing import get_file_hash

DEFAULT_TTL_HOURS = 24
DEFAULT_MAX_ENTRIES = 1000
TOP_FILES_LIMIT = 10


class ContentAddressedCache:

    def __init__(
        self,
        store: Optional[PersistentCacheStore] = None,
        ttl_hours: float = DEFAULT_TTL_HOURS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.ttl_seconds = ttl_hours * 3600
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lookups = 0
        self._hits = 0

    @staticmethod
    def generate_file_hash(content: bytes) -> str:
        return get_file_hash(content)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, file_hash: str) -> bool:
        return file_hash in self._entries

    def peek(self, file_hash: str) -> Optional[CacheEntry]:
        """In-process entry without counting an access."""
        return self._entries.get(file_hash)

    async def get(self, file_hash: str) -> Optional[Dict[str, Any]]:
        """Return the cached result for file_hash, or None on a miss."""
        self._lookups += 1
        now = self._clock()

        entry = self._entries.get(file_hash)
        if entry is not None:
            if entry.is_expired(now):
                del self._entries[file_hash]
                await self._delete_durable(file_hash)
            else:
                self._record_hit(entry, now)
                logger.info(f"Cache hit (memory) for file {file_hash[:16]}")
                await self._touch_durable(entry)
                return entry.result

        entry = await self._get_durable(file_hash)
        if entry is None:
            return None
        if entry.is_expired(now):
            await self._delete_durable(file_hash)
            return None

        self._record_hit(entry, now)
        self._entries[file_hash] = entry
        self._evict_if_needed()
        logger.info(f"Cache hit (db) for file {file_hash[:16]}")
        await self._touch_durable(entry)
        return entry.result

    async def put(
        self,
        file_hash: str,
        file_name: str,
        file_size: int,
        result: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> CacheEntry:
        now = self._clock()
        entry = CacheEntry(
            file_hash=file_hash,
            file_name=file_name,
            file_size=file_size,
            result=result,
            metadata=metadata or {},
            created_at=now,
            expires_at=now + self.ttl_seconds,
            access_count=1,
            last_accessed_at=now,
        )
        self._entries[file_hash] = entry

        if self.store is not None:
            try:
                await self.store.put(file_hash, entry)
            except Exception as e:
                logger.error(f"Error saving processing cache: {e}")

        logger.info(f"Result cached: {file_hash[:16]} ({file_name})")
        self._evict_if_needed()
        return entry

    async def cleanup_expired(self) -> int:
        """Remove expired entries from both tiers. Returns the number removed in memory."""
        now = self._clock()
        expired = [h for h, e in self._entries.items() if e.is_expired(now)]
        for file_hash in expired:
            del self._entries[file_hash]

        if self.store is not None:
            try:
                removed = await self.store.delete_expired(now)
                logger.info(f"Deleted {removed} expired processing_cache records")
            except Exception as e:
                logger.error(f"Error cleaning up processing cache: {e}")

        self._evict_if_needed()
        return len(expired)

    def get_stats(self) -> CacheStats:
        now = self._clock()
        valid = [e for e in self._entries.values() if not e.is_expired(now)]
        top = sorted(valid, key=lambda e: (-e.access_count, e.file_name))[:TOP_FILES_LIMIT]
        return CacheStats(
            total_entries=len(valid),
            hit_rate=(self._hits / self._lookups) if self._lookups else 0.0,
            total_size=sum(e.file_size for e in valid),
            oldest_entry=min((e.created_at for e in valid), default=None),
            newest_entry=max((e.created_at for e in valid), default=None),
            top_files=[TopFile(file_name=e.file_name, access_count=e.access_count) for e in top],
        )

    def clear(self):
        self._entries.clear()
        self._lookups = 0
        self._hits = 0
        logger.info("🧹 Processing cache cleared")

    async def warmup(self, file_hashes: Iterable[str]) -> int:
        """Pull durable entries into memory. Returns how many were found."""
        hashes = list(file_hashes)
        logger.info(f"Warming up cache for {len(hashes)} files")
        found = 0
        for file_hash in hashes:
            if await self.get(file_hash) is not None:
                found += 1
        return found

    # ============== INTERNALS ==============

    def _record_hit(self, entry: CacheEntry, now: float):
        entry.access_count += 1
        entry.last_accessed_at = now
        self._hits += 1

    def _evict_if_needed(self):
        if len(self._entries) <= self.max_entries:
            return
        now = self._clock()
        for file_hash in [h for h, e in self._entries.items() if e.is_expired(now)]:
            del self._entries[file_hash]
        overflow = len(self._entries) - self.max_entries
        if overflow <= 0:
            return
        oldest = sorted(self._entries.values(), key=lambda e: e.last_accessed_at)[:overflow]
        for entry in oldest:
            del self._entries[entry.file_hash]
        logger.info(f"Evicted {len(oldest)} least recently used cache entries")

    async def _get_durable(self, file_hash: str) -> Optional[CacheEntry]:
        if self.store is None:
            return None
        try:
            return await self.store.get(file_hash)
        except Exception as e:
            logger.error(f"Error checking processing cache: {e}")
            return None

    async def _touch_durable(self, entry: CacheEntry):
        if self.store is None:
            return
        try:
            await self.store.touch(entry.file_hash, entry.access_count, entry.last_accessed_at)
        except Exception as e:
            logger.error(f"Error updating processing cache access: {e}")

    async def _delete_durable(self, file_hash: str):
        if self.store is None:
            return
        try:
            await self.store.delete(file_hash)
        except Exception as e:
            logger.error(f"Error deleting expired processing cache entry: {e}")
