"""
Cache manager.

Owns independently configured named UplineCache instances and their
lifecycle. Constructed explicitly and passed to the components that need
it; there is no process-wide instance.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from loguru import logger

from supplynet.services.cache.upline_cache import (
    CacheConfig,
    CacheHealth,
    CacheStats,
    EvictionPolicy,
    UplineCache,
)


class CacheManager:
    """
    Registry of named caches.

    Usage:
        async with CacheManager(CacheConfig(background_cleanup=False)) as caches:
            members = caches.get_cache("members")
            ...
        # every cache is cleared and its sweep thread stopped here
    """

    def __init__(
        self,
        default_config: CacheConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize cache manager.

        Args:
            default_config: Config used for caches created without one
            clock: Time source shared by all caches
        """
        self.default_config = default_config or CacheConfig()
        self._clock = clock
        self._caches: dict[str, UplineCache[Any]] = {}
        self._lock = threading.Lock()
        self._closed = False

    @classmethod
    def from_settings(cls) -> "CacheManager":
        """Build a manager whose default config comes from settings."""
        from supplynet.config.settings import settings

        config = CacheConfig(
            max_size=settings.cache_max_size,
            max_memory=settings.cache_max_memory_bytes,
            default_ttl=settings.cache_default_ttl_seconds,
            eviction_policy=EvictionPolicy(settings.cache_eviction_policy),
            background_cleanup=settings.cache_background_cleanup,
            cleanup_interval=settings.cache_cleanup_interval_seconds,
        )
        return cls(config)

    def get_cache(
        self, name: str, config: CacheConfig | None = None, **overrides: Any
    ) -> UplineCache[Any]:
        """
        Get a cache by name, creating it on first use.

        Config and overrides only apply when the cache is created.

        Args:
            name: Cache name
            config: Full config for a new cache
            **overrides: Field overrides on top of the default config

        Returns:
            The named cache

        Raises:
            RuntimeError: If the manager was closed
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("CacheManager is closed")

            cache = self._caches.get(name)
            if cache is None:
                cache_config = config or replace(
                    self.default_config, **overrides
                )
                cache = UplineCache(name, cache_config, clock=self._clock)
                self._caches[name] = cache
                logger.debug(
                    "Cache created",
                    extra={
                        "cache": name,
                        "max_size": cache_config.max_size,
                        "policy": cache_config.eviction_policy.value,
                    },
                )
            return cache

    def names(self) -> list[str]:
        """Names of existing caches."""
        with self._lock:
            return list(self._caches.keys())

    def delete_cache(self, name: str) -> bool:
        """
        Clear, stop and forget a cache.

        Returns:
            True if the cache existed
        """
        with self._lock:
            cache = self._caches.pop(name, None)
        if cache is None:
            return False
        cache.clear()
        cache.close()
        return True

    def clear_all(self) -> None:
        """Clear every cache."""
        for cache in self._snapshot():
            cache.clear()

    def get_all_stats(self) -> dict[str, CacheStats]:
        """Stats snapshot per cache."""
        return {cache.name: cache.get_stats() for cache in self._snapshot()}

    def health_check_all(self) -> dict[str, CacheHealth]:
        """Health check per cache."""
        return {cache.name: cache.health_check() for cache in self._snapshot()}

    def is_healthy(self) -> bool:
        """True when no cache reports degraded state."""
        return all(health.healthy for health in self.health_check_all().values())

    def close(self) -> None:
        """Clear and stop every cache; the manager cannot be reused."""
        with self._lock:
            caches = list(self._caches.values())
            self._caches.clear()
            self._closed = True

        for cache in caches:
            cache.clear()
            cache.close()

        logger.info(
            "Cache manager closed", extra={"caches_closed": len(caches)}
        )

    def _snapshot(self) -> list[UplineCache[Any]]:
        with self._lock:
            return list(self._caches.values())

    def __enter__(self) -> "CacheManager":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    async def __aenter__(self) -> "CacheManager":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()
