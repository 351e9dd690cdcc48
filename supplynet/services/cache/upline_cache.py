"""
Upline cache.

Bounded in-process key/value cache used to avoid re-walking the member
tree. Storage and victim selection come from cachetools (TLRUCache for
LRU, LFUCache for LFU, a soonest-expiry TLRUCache for TTL); this module
adds the count bound, per-entry TTL, locking, a background expiry sweep
and hit/miss statistics on top.
"""

import inspect
import json
import threading
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import asdict, dataclass, field, is_dataclass
from enum import StrEnum
from typing import Any, Generic, TypeVar

from cachetools import Cache, LFUCache, TLRUCache
from loguru import logger

from supplynet.config.constants import (
    CACHE_CLEANUP_BATCH_SIZE,
    CACHE_CLEANUP_INTERVAL,
    CACHE_DEFAULT_MAX_MEMORY,
    CACHE_DEFAULT_MAX_SIZE,
    CACHE_DEFAULT_TTL,
    CACHE_HEALTH_MIN_LOOKUPS,
    CACHE_MEMORY_WARNING_RATIO,
    CACHE_MIN_HIT_RATE,
)

V = TypeVar("V")

# Fallback size when a value cannot be serialized for estimation
DEFAULT_ENTRY_SIZE = 1024


class EvictionPolicy(StrEnum):
    """Which entry to drop when the cache is full."""

    LRU = "LRU"  # least recently touched
    LFU = "LFU"  # least frequently touched
    TTL = "TTL"  # nearest to expiry


@dataclass
class CacheConfig:
    """Configuration of a single cache instance."""

    max_size: int = CACHE_DEFAULT_MAX_SIZE
    max_memory: int = CACHE_DEFAULT_MAX_MEMORY
    default_ttl: float = CACHE_DEFAULT_TTL
    eviction_policy: EvictionPolicy = EvictionPolicy.LRU
    background_cleanup: bool = True
    cleanup_interval: float = CACHE_CLEANUP_INTERVAL
    cleanup_batch_size: int = CACHE_CLEANUP_BATCH_SIZE
    health_min_lookups: int = CACHE_HEALTH_MIN_LOOKUPS

    def __post_init__(self) -> None:
        """Validate limits."""
        self.eviction_policy = EvictionPolicy(self.eviction_policy)
        if self.max_size < 1:
            raise ValueError("max_size must be positive")
        if self.max_memory < 1:
            raise ValueError("max_memory must be positive")
        if self.default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        if self.cleanup_interval <= 0:
            raise ValueError("cleanup_interval must be positive")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """Stored value plus the bookkeeping used for expiry and sizing."""

    key: str
    value: V
    created_at: float
    ttl: float
    size: int

    @property
    def expires_at(self) -> float:
        """Clock time at which the entry stops being served."""
        return self.created_at + self.ttl

    def is_expired(self, now: float) -> bool:
        """Entry is expired once elapsed time reaches its TTL."""
        return now >= self.expires_at


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time statistics snapshot."""

    entries: int
    memory_usage: int
    max_size: int
    max_memory: int
    hits: int
    misses: int
    sets: int
    evictions: int
    expirations: int

    @property
    def lookups(self) -> int:
        """Total get() calls that reached the store."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Hits over lookups, 0.0 before the first lookup."""
        return self.hits / self.lookups if self.lookups else 0.0

    @property
    def memory_usage_ratio(self) -> float:
        """Estimated memory use over the configured budget."""
        return self.memory_usage / self.max_memory if self.max_memory else 0.0


@dataclass(frozen=True)
class CacheHealth:
    """Health check result."""

    healthy: bool
    issues: list[str] = field(default_factory=list)
    stats: CacheStats | None = None


def _json_default(value: Any) -> Any:
    """Make dataclasses and enums serializable for size estimation."""
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def estimate_size(value: Any) -> int:
    """
    Estimate memory footprint of a value in bytes.

    Rough figure: two bytes per character of the JSON form.

    Args:
        value: Value to measure

    Returns:
        Estimated size in bytes
    """
    try:
        return len(json.dumps(value, default=_json_default)) * 2
    except (TypeError, ValueError):
        return DEFAULT_ENTRY_SIZE


def _entry_size(entry: CacheEntry) -> int:
    return entry.size


def _entry_expiry(_key: str, entry: CacheEntry, _now: float) -> float:
    return entry.expires_at


class _EntryStore:
    """
    Helpers shared by the policy stores.

    Values are CacheEntry instances. Reads through these helpers go to the
    underlying mapping directly, so they never count as a use for LRU or
    LFU ordering.
    """

    expirations = 0

    def peek(self, key: str) -> CacheEntry | None:
        """Entry for key, expired or not."""
        if Cache.__contains__(self, key):
            return Cache.__getitem__(self, key)
        return None

    def entries(self) -> list[tuple[str, CacheEntry]]:
        """Snapshot of stored (key, entry) pairs in insertion order."""
        return [
            (key, Cache.__getitem__(self, key)) for key in Cache.__iter__(self)
        ]


class _RecencyStore(_EntryStore, TLRUCache):
    """LRU eviction; per-entry expiry is tracked by TLRUCache itself."""

    def __init__(self, maxsize: int, clock: Callable[[], float]) -> None:
        TLRUCache.__init__(
            self, maxsize, ttu=_entry_expiry, timer=clock, getsizeof=_entry_size
        )

    def expire(self, time=None, limit: int | None = None):
        """Drop every expired entry; the heap makes this cheap, so limit is unused."""
        expired = TLRUCache.expire(self, time)
        self.expirations += len(expired)
        return expired

    def expire_key(self, key: str, now: float) -> bool:
        return any(expired_key == key for expired_key, _ in self.expire(now))


class _SoonestExpiryStore(_RecencyStore):
    """Evicts the live entry closest to its expiry."""

    def popitem(self):
        with self.timer as now:
            self.expire(now)
            # Iteration walks the expiry heap, so once expired items are
            # gone the first key is the one expiring soonest
            for key in self:
                return key, self.pop(key)
        raise KeyError(f"{type(self).__name__} is empty")


class _FrequencyStore(_EntryStore, LFUCache):
    """LFU eviction; expired entries are dropped when read or swept."""

    def __init__(self, maxsize: int, clock: Callable[[], float]) -> None:
        LFUCache.__init__(self, maxsize, getsizeof=_entry_size)
        self._clock = clock

    def expire(self, time=None, limit: int | None = None):
        """Drop expired entries among the first `limit` stored keys."""
        now = self._clock() if time is None else time
        candidates = self.entries()
        if limit is not None:
            candidates = candidates[:limit]

        expired = [
            (key, self.pop(key))
            for key, entry in candidates
            if entry.is_expired(now)
        ]
        self.expirations += len(expired)
        return expired

    def expire_key(self, key: str, now: float) -> bool:
        entry = self.peek(key)
        if entry is None or not entry.is_expired(now):
            return False
        self.pop(key)
        self.expirations += 1
        return True


_STORES = {
    EvictionPolicy.LRU: _RecencyStore,
    EvictionPolicy.LFU: _FrequencyStore,
    EvictionPolicy.TTL: _SoonestExpiryStore,
}


class UplineCache(Generic[V]):
    """
    Bounded, thread-safe key/value cache.

    All reads and writes take the same re-entrant lock, so the background
    sweep thread and request handlers never see a half-updated store.
    Stats and export work on snapshots taken under that lock.

    A stored value of None is indistinguishable from a miss.

    Example:
        cache = UplineCache[int]("scores", CacheConfig(max_size=2))
        cache.set("a", 1)
        cache.get("a")  # 1
        cache.close()
    """

    def __init__(
        self,
        name: str = "default",
        config: CacheConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize cache and start the expiry sweep if enabled.

        Args:
            name: Instance name used in logs
            config: Limits and policy
            clock: Monotonic time source in seconds
        """
        self.name = name
        self.config = config or CacheConfig()
        self._clock = clock
        self._lock = threading.RLock()
        # Sized in estimated bytes; the entry count bound is enforced here
        self._store = _STORES[self.config.eviction_policy](
            self.config.max_memory, clock
        )

        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._evictions = 0

        self._stop_event = threading.Event()
        self._cleanup_thread: threading.Thread | None = None
        if self.config.background_cleanup:
            self._start_background_cleanup()

    # ------------------------------------------------------------------
    # Basic operations
    # ------------------------------------------------------------------

    def get(self, key: str) -> V | None:
        """
        Get a live value.

        Args:
            key: Cache key

        Returns:
            Stored value, or None if missing or expired
        """
        with self._lock:
            if self._store.expire_key(key, self._clock()):
                self._misses += 1
                return None

            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None

            self._hits += 1
            return entry.value

    def set(self, key: str, value: V, ttl: float | None = None) -> None:
        """
        Store a value, evicting per policy when a bound would be exceeded.

        Replacing an existing key never evicts for the count bound.

        Args:
            key: Cache key
            value: Value to store
            ttl: Seconds to live, defaults to config.default_ttl
        """
        ttl = ttl if ttl is not None else self.config.default_ttl
        if ttl <= 0:
            raise ValueError("ttl must be positive")

        size = estimate_size(value)
        if size > self.config.max_memory:
            logger.warning(
                "Value larger than cache memory budget, not cached",
                extra={"cache": self.name, "key": key, "size": size},
            )
            return

        with self._lock:
            self._store.pop(key, None)

            while len(self._store) >= self.config.max_size:
                self._evict_one()
            while self._store.currsize + size > self.config.max_memory:
                self._evict_one()

            self._store[key] = CacheEntry(
                key=key,
                value=value,
                created_at=self._clock(),
                ttl=ttl,
                size=size,
            )
            self._sets += 1

    def has(self, key: str) -> bool:
        """Check for a live entry without touching stats or recency."""
        with self._lock:
            if self._store.expire_key(key, self._clock()):
                return False
            return self._store.peek(key) is not None

    def delete(self, key: str) -> bool:
        """
        Remove an entry.

        Returns:
            True if a live entry was removed
        """
        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self) -> None:
        """Drop every entry. Counters are kept."""
        with self._lock:
            cleared = len(self._store)
            self._store.clear()

        logger.info(
            "Cache cleared",
            extra={"cache": self.name, "cleared_count": cleared},
        )

    def delete_where(self, predicate: Callable[[str, V], bool]) -> int:
        """
        Remove every entry for which predicate(key, value) is true.

        Args:
            predicate: Called under the cache lock; must not use the cache

        Returns:
            Number of entries removed
        """
        with self._lock:
            doomed = [
                key for key, entry in self._store.entries()
                if predicate(key, entry.value)
            ]
            return sum(
                1 for key in doomed if self._store.pop(key, None) is not None
            )

    def keys(self) -> list[str]:
        """Snapshot of stored keys (may include not yet swept expired ones)."""
        with self._lock:
            return [key for key, _ in self._store.entries()]

    def size(self) -> int:
        """Number of stored entries."""
        with self._lock:
            return len(self._store)

    def __len__(self) -> int:
        return self.size()

    def memory_usage(self) -> int:
        """Estimated bytes used by stored entries."""
        with self._lock:
            return self._store.currsize

    # ------------------------------------------------------------------
    # Bulk and convenience operations
    # ------------------------------------------------------------------

    def mget(self, keys: Iterable[str]) -> dict[str, V | None]:
        """Get several keys; missing or expired keys map to None."""
        return {key: self.get(key) for key in keys}

    def mset(self, entries: Mapping[str, V], ttl: float | None = None) -> None:
        """Store several values with a shared TTL."""
        for key, value in entries.items():
            self.set(key, value, ttl)

    async def get_or_set(
        self,
        key: str,
        value_factory: Callable[[], V | Awaitable[V]],
        ttl: float | None = None,
    ) -> V:
        """
        Return the cached value, computing and storing it on a miss.

        Always awaited. The factory may return the value, a coroutine or a
        future; awaitable results are awaited before being stored.

        Args:
            key: Cache key
            value_factory: Computes the value on a miss
            ttl: Optional TTL override

        Returns:
            Cached or freshly computed value
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        value = value_factory()
        if inspect.isawaitable(value):
            value = await value

        self.set(key, value, ttl)
        return value

    async def warmup(
        self,
        items: Iterable[tuple[str, Callable[[], V | Awaitable[V]]]],
        ttl: float | None = None,
    ) -> int:
        """
        Pre-populate the cache.

        A failing factory is logged and skipped; the rest still load.

        Args:
            items: (key, value_factory) pairs
            ttl: Optional TTL override

        Returns:
            Number of entries loaded
        """
        started = time.perf_counter()
        loaded = 0

        for key, value_factory in items:
            try:
                value = value_factory()
                if inspect.isawaitable(value):
                    value = await value
            except Exception as e:
                logger.error(
                    "Cache warmup failed",
                    extra={"cache": self.name, "key": key, "error": str(e)},
                )
                continue
            self.set(key, value, ttl)
            loaded += 1

        logger.info(
            "Cache warmup finished",
            extra={
                "cache": self.name,
                "loaded": loaded,
                "elapsed_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return loaded

    def export_entries(self) -> list[dict[str, Any]]:
        """
        Export live entries for a warm start.

        Returns:
            List of dicts with key, value, ttl and remaining_ttl
        """
        with self._lock:
            now = self._clock()
            return [
                {
                    "key": key,
                    "value": entry.value,
                    "ttl": entry.ttl,
                    "remaining_ttl": entry.expires_at - now,
                }
                for key, entry in self._store.entries()
                if not entry.is_expired(now)
            ]

    def import_entries(
        self, data: Iterable[Mapping[str, Any]], replace: bool = True
    ) -> int:
        """
        Load exported entries.

        Uses remaining_ttl when present so imported entries do not outlive
        their original expiry.

        Args:
            data: Output of export_entries (or compatible dicts)
            replace: Clear the cache first

        Returns:
            Number of entries imported
        """
        if replace:
            self.clear()

        imported = 0
        for item in data:
            ttl = item.get("remaining_ttl", item.get("ttl"))
            if ttl is not None and ttl <= 0:
                continue
            self.set(item["key"], item["value"], ttl)
            imported += 1

        logger.info(
            "Cache entries imported",
            extra={"cache": self.name, "imported_count": imported},
        )
        return imported

    # ------------------------------------------------------------------
    # Stats and health
    # ------------------------------------------------------------------

    def get_stats(self) -> CacheStats:
        """Consistent snapshot of counters and usage."""
        with self._lock:
            entries = len(self._store)
            return CacheStats(
                entries=entries,
                memory_usage=self._store.currsize,
                max_size=self.config.max_size,
                max_memory=self.config.max_memory,
                hits=self._hits,
                misses=self._misses,
                sets=self._sets,
                evictions=self._evictions,
                expirations=self._store.expirations,
            )

    def health_check(self) -> CacheHealth:
        """
        Flag degraded state.

        Degraded when memory use exceeds 90% of budget, or when the hit
        rate is below 50% once enough lookups were made to judge.
        """
        stats = self.get_stats()
        issues: list[str] = []

        if stats.memory_usage_ratio > CACHE_MEMORY_WARNING_RATIO:
            issues.append(
                f"memory usage {stats.memory_usage_ratio:.0%} exceeds "
                f"{CACHE_MEMORY_WARNING_RATIO:.0%} of budget"
            )

        if (
            stats.lookups >= self.config.health_min_lookups
            and stats.hit_rate < CACHE_MIN_HIT_RATE
        ):
            issues.append(
                f"hit rate {stats.hit_rate:.0%} below {CACHE_MIN_HIT_RATE:.0%}"
            )

        if issues:
            logger.warning(
                "Cache degraded",
                extra={"cache": self.name, "issues": issues},
            )

        return CacheHealth(healthy=not issues, issues=issues, stats=stats)

    # ------------------------------------------------------------------
    # Expiry sweep
    # ------------------------------------------------------------------

    def cleanup_expired(self, batch_size: int | None = None) -> int:
        """
        Remove expired entries.

        Args:
            batch_size: Max entries to inspect for stores that scan, None
                for all

        Returns:
            Number of entries removed
        """
        with self._lock:
            removed = len(self._store.expire(self._clock(), limit=batch_size))

        if removed:
            logger.debug(
                "Expired cache entries removed",
                extra={"cache": self.name, "removed": removed},
            )
        return removed

    def close(self) -> None:
        """Stop the background sweep thread."""
        self._stop_event.set()
        thread = self._cleanup_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.config.cleanup_interval + 1)
        self._cleanup_thread = None

    def _start_background_cleanup(self) -> None:
        self._cleanup_thread = threading.Thread(
            target=self._cleanup_loop,
            name=f"upline-cache-cleanup-{self.name}",
            daemon=True,
        )
        self._cleanup_thread.start()

    def _cleanup_loop(self) -> None:
        while not self._stop_event.wait(self.config.cleanup_interval):
            try:
                self.cleanup_expired(self.config.cleanup_batch_size)
            except Exception:
                logger.exception(
                    "Background cache cleanup failed",
                    extra={"cache": self.name},
                )

    def _evict_one(self) -> None:
        # Caller holds the lock; the store picks the victim for its policy
        try:
            key, _ = self._store.popitem()
        except KeyError:
            # Everything left expired between the bound check and here
            return
        self._evictions += 1
        logger.debug(
            "Cache entry evicted",
            extra={
                "cache": self.name,
                "key": key,
                "policy": self.config.eviction_policy.value,
            },
        )
