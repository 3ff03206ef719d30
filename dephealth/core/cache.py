"""
Per-run package metadata cache

Keeps registry responses for the lifetime of one analysis run so that
scanners asking about the same package share a single lookup. Nothing is
shared across runs: each DependencyAnalyzer.analyze call builds a new cache.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from dephealth.core.metrics import cache_hits_total, cache_misses_total

logger = logging.getLogger(__name__)

_MISSING = object()


class PackageMetadataCache:
    """In-memory cache keyed by package name, guarded by an asyncio.Lock."""

    def __init__(self):
        self._data: Dict[str, Optional[Dict[str, Any]]] = {}
        self._pending: Dict[str, asyncio.Future] = {}
        self._lock: asyncio.Lock = asyncio.Lock()
        self.hits: int = 0
        self.misses: int = 0

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, package_name: str) -> bool:
        return package_name in self._data

    async def get(self, package_name: str) -> Optional[Dict[str, Any]]:
        async with self._lock:
            value = self._data.get(package_name, _MISSING)
        if value is _MISSING:
            self.misses += 1
            cache_misses_total.inc()
            return None
        self.hits += 1
        cache_hits_total.inc()
        return value

    async def set(self, package_name: str, value: Optional[Dict[str, Any]]) -> None:
        """Store a value. None is a valid entry meaning "lookup failed"."""
        async with self._lock:
            self._data[package_name] = value

    async def get_or_fetch(
        self,
        package_name: str,
        fetch_fn: Callable[[], Awaitable[Optional[Dict[str, Any]]]],
    ) -> Optional[Dict[str, Any]]:
        """
        Return the cached value or fetch it once.

        Concurrent callers for the same package wait on the first fetch
        instead of issuing their own request.
        """
        async with self._lock:
            if package_name in self._data:
                self.hits += 1
                cache_hits_total.inc()
                return self._data[package_name]

            pending = self._pending.get(package_name)
            if pending is None:
                self.misses += 1
                cache_misses_total.inc()
                pending = asyncio.get_running_loop().create_future()
                self._pending[package_name] = pending
                owner = True
            else:
                self.hits += 1
                cache_hits_total.inc()
                owner = False

        if not owner:
            return await pending

        value: Optional[Dict[str, Any]] = None
        completed = False
        try:
            value = await fetch_fn()
            completed = True
        except Exception as e:
            logger.debug(f"Metadata fetch for {package_name} failed: {e}")
            completed = True
        finally:
            # No await below, so these updates cannot interleave with other callers.
            # A cancelled fetch is not cached; waiters see None and a later call fetches again.
            if completed:
                self._data[package_name] = value
            self._pending.pop(package_name, None)
            if not pending.done():
                pending.set_result(value)
        return value

    def clear(self) -> None:
        self._data.clear()
        self.hits = 0
        self.misses = 0
