"""Result cache with provenance-dependent TTLs and in-flight request de-duplication."""

import asyncio
import re
from typing import Awaitable, Dict, Optional, Protocol, Union

from parts_finder.models.clock import Clock, WallClock
from parts_finder.models.data_models import CacheEntry, PartSearchResult
from parts_finder.pipeline.resolver import rebind_result


def cache_key(year: Union[str, int], make: str, model: str, part_name: str) -> str:
    """
    Case-insensitive, whitespace-normalized key for a (vehicle, part) pair.

    Examples:
        >>> cache_key(2018, "Honda", "Accord", "Front  Bumper")
        'parts:2018:honda:accord:front_bumper'
    """
    fields = (str(year), make, model, part_name)
    raw = "parts:" + ":".join(field.strip() for field in fields)
    return re.sub(r"\s+", "_", raw.lower())


class CacheStore(Protocol):
    """Key-value store for cache entries."""

    def get(self, key: str) -> Optional[CacheEntry]:
        ...

    def set(self, key: str, entry: CacheEntry) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryCacheStore:
    """Process-local cache store."""

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def set(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries


class InFlightRegistry:
    """Tracks the single running fetch task per cache key."""

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}

    def get(self, key: str) -> Optional[asyncio.Task]:
        return self._tasks.get(key)

    def register(self, key: str, coro: Awaitable[PartSearchResult]) -> asyncio.Task:
        """Start ``coro`` as a task owned by the registry; the key is released when it settles."""
        task = asyncio.ensure_future(coro)
        self._tasks[key] = task
        task.add_done_callback(lambda done, key=key: self._release(key, done))
        return task

    def _release(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        # Retrieve the exception so an abandoned failing task is not reported as unhandled
        if not task.cancelled():
            task.exception()

    def __contains__(self, key: str) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)


class PartsCacheCoordinator:
    """
    Decides, per (vehicle, part) key, between serving from cache, joining an
    in-flight fetch, and starting a fresh one.

    State per key:
    - fresh entry   -> per-caller copy with ``cached=True``, no I/O
    - expired entry -> evicted, then treated as a miss
    - in flight     -> await the same task (shielded, so a caller that stops
                       waiting never cancels it for the others)
    - miss          -> start one resolver task, cache its result with the
                       resolver's TTL

    At most one resolver invocation per key runs at a time: the lookup and the
    task registration happen without an intervening await.
    """

    def __init__(
        self,
        resolver,
        store: Optional[CacheStore] = None,
        in_flight: Optional[InFlightRegistry] = None,
        clock: Optional[Clock] = None,
        logger=None,
    ):
        """
        Args:
            resolver: PartPriceResolver (or any object with ``resolve`` and ``ttl_for``)
            store: Cache store; a fresh MemoryCacheStore by default
            in_flight: In-flight registry; a fresh one by default
            clock: Clock returning epoch seconds; WallClock by default
            logger: Optional structured logger
        """
        self.resolver = resolver
        self.store = store if store is not None else MemoryCacheStore()
        self.in_flight = in_flight if in_flight is not None else InFlightRegistry()
        self.clock = clock or WallClock()
        self.logger = logger

    async def find_parts(
        self,
        part_name: str,
        year: Union[str, int],
        make: str,
        model: str,
        damage_id: str,
    ) -> PartSearchResult:
        """
        Return priced results for a part, from cache when fresh.

        Returns:
            PartSearchResult; ``cached`` is True only when served from the store
        """
        key = cache_key(year, make, model, part_name)

        entry = self._lookup(key)
        if entry is not None:
            self._log("cache_hit", key)
            return rebind_result(entry.result, damage_id, cached=True)

        task = self.in_flight.get(key)
        if task is None:
            self._log("cache_miss", key)
            task = self.in_flight.register(
                key, self._fetch(key, part_name, year, make, model, damage_id)
            )
        else:
            self._log("inflight_join", key)

        result = await asyncio.shield(task)
        return rebind_result(result, damage_id, cached=False)

    async def _fetch(
        self,
        key: str,
        part_name: str,
        year: Union[str, int],
        make: str,
        model: str,
        damage_id: str,
    ) -> PartSearchResult:
        result = await self.resolver.resolve(part_name, year, make, model, damage_id)
        expires_at = self.clock.now() + self.resolver.ttl_for(result)
        try:
            self.store.set(key, CacheEntry(result=result, expires_at=expires_at))
        except Exception as e:
            self._store_error("set", key, e)
        return result

    def _lookup(self, key: str) -> Optional[CacheEntry]:
        """Fresh entry for key, evicting it first if it has expired."""
        try:
            entry = self.store.get(key)
        except Exception as e:
            self._store_error("get", key, e)
            return None

        if entry is None:
            return None

        if self.clock.now() >= entry.expires_at:
            self._log("cache_expired", key)
            try:
                self.store.delete(key)
            except Exception as e:
                self._store_error("delete", key, e)
            return None

        return entry

    def _log(self, event: str, key: str) -> None:
        if self.logger:
            self.logger.cache_event(event, key=key)

    def _store_error(self, operation: str, key: str, error: Exception) -> None:
        if self.logger:
            self.logger.log("cache_store_error", operation=operation, key=key, error=repr(error))
