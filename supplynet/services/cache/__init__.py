"""
Cache services package.

- upline_cache: bounded TTL cache with LRU/LFU/TTL eviction
- manager: named cache instances with explicit lifecycle
"""

from supplynet.services.cache.manager import CacheManager
from supplynet.services.cache.upline_cache import (
    CacheConfig,
    CacheEntry,
    CacheHealth,
    CacheStats,
    EvictionPolicy,
    UplineCache,
    estimate_size,
)


__all__ = [
    "CacheConfig",
    "CacheEntry",
    "CacheHealth",
    "CacheManager",
    "CacheStats",
    "EvictionPolicy",
    "UplineCache",
    "estimate_size",
]
