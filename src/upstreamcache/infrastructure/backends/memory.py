"""In-memory hot store implementation."""

import math
import random
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from cachetools import TLRUCache  # type: ignore[import-untyped]

from upstreamcache.core.interfaces.hot_store import TTL_MISSING, TTL_NO_EXPIRY


@dataclass
class _Slot:
    value: Any
    deadline: float


def _slot_deadline(_key: str, slot: _Slot, _now: float) -> float:
    return slot.deadline


class InMemoryHotStore:
    """In-memory hot store using a time-aware LRU cache.

    Suitable for single-process deployments and tests. Values written with
    ``set`` (cache entries, pool blobs) live in cachetools' ``TLRUCache``:
    every key carries its own deadline and the least recently used ones
    are evicted once ``maxsize`` is reached. Guards, counters, lists and
    sets are kept in a separate table that only expires, never evicts, so
    queued jobs and rate-limit state survive cache pressure.
    """

    def __init__(
        self,
        maxsize: int = 10_000,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the in-memory hot store.

        Args:
            maxsize: Maximum number of evictable values.
            timer: Monotonic clock in seconds, injectable for tests.
        """
        self._maxsize = maxsize
        self._timer = timer
        self._cache: TLRUCache[str, _Slot] = TLRUCache(
            maxsize=maxsize,
            ttu=_slot_deadline,
            timer=timer,
        )
        self._pinned: dict[str, _Slot] = {}
        self._next_sweep = maxsize

    def _deadline(self, ttl_s: int | None) -> float:
        if ttl_s is None or ttl_s <= 0:
            return math.inf
        return self._timer() + ttl_s

    def _slot(self, key: str) -> _Slot | None:
        slot = self._pinned.get(key)
        if slot is not None:
            if slot.deadline > self._timer():
                return slot
            del self._pinned[key]
            return None
        slot = self._cache.get(key)
        return slot if isinstance(slot, _Slot) else None

    def _pin(self, key: str, slot: _Slot) -> None:
        self._cache.pop(key, None)
        self._pinned[key] = slot
        if len(self._pinned) >= self._next_sweep:
            self._sweep()

    def _sweep(self) -> None:
        now = self._timer()
        for key in [k for k, s in self._pinned.items() if s.deadline <= now]:
            del self._pinned[key]
        self._next_sweep = max(self._maxsize, 2 * len(self._pinned))

    def _discard(self, key: str) -> bool:
        if self._pinned.pop(key, None) is not None:
            return True
        try:
            del self._cache[key]
        except KeyError:
            return False
        return True

    async def get(self, key: str) -> bytes | None:
        slot = self._slot(key)
        if slot is None:
            return None
        if isinstance(slot.value, bytes):
            return slot.value
        if isinstance(slot.value, int):
            return str(slot.value).encode()
        raise TypeError(f"Key {key!r} does not hold a plain value")

    async def set(self, key: str, value: bytes, ttl_s: int | None = None) -> None:
        self._pinned.pop(key, None)
        self._cache[key] = _Slot(value, self._deadline(ttl_s))

    async def set_if_absent(
        self, key: str, value: bytes, ttl_s: int | None = None
    ) -> bool:
        if self._slot(key) is not None:
            return False
        self._pin(key, _Slot(value, self._deadline(ttl_s)))
        return True

    async def delete(self, *keys: str) -> int:
        count = 0
        for key in keys:
            if self._slot(key) is not None and self._discard(key):
                count += 1
        return count

    async def incr(self, key: str) -> int:
        slot = self._slot(key)
        if slot is None:
            self._pin(key, _Slot(1, math.inf))
            return 1
        if isinstance(slot.value, bytes):
            slot.value = int(slot.value)
        if not isinstance(slot.value, int):
            raise TypeError(f"Key {key!r} does not hold a counter")
        if key not in self._pinned:
            self._pin(key, slot)
        slot.value += 1
        return slot.value

    async def expire(self, key: str, ttl_s: int) -> bool:
        slot = self._slot(key)
        if slot is None:
            return False
        if ttl_s <= 0:
            return self._discard(key)
        if key in self._pinned:
            slot.deadline = self._deadline(ttl_s)
            return True
        # TLRUCache computes deadlines on insertion, so re-insert.
        self._cache[key] = _Slot(slot.value, self._deadline(ttl_s))
        return True

    async def ttl(self, key: str) -> int:
        slot = self._slot(key)
        if slot is None:
            return TTL_MISSING
        if slot.deadline == math.inf:
            return TTL_NO_EXPIRY
        return max(0, math.ceil(slot.deadline - self._timer()))

    async def push_back(self, key: str, value: bytes) -> int:
        slot = self._slot(key)
        if slot is None:
            slot = _Slot(deque(), math.inf)
            self._pin(key, slot)
        if not isinstance(slot.value, deque):
            raise TypeError(f"Key {key!r} does not hold a list")
        slot.value.append(value)
        return len(slot.value)

    async def pop_front(self, key: str) -> bytes | None:
        slot = self._slot(key)
        if slot is None:
            return None
        if not isinstance(slot.value, deque):
            raise TypeError(f"Key {key!r} does not hold a list")
        value = slot.value.popleft() if slot.value else None
        if not slot.value:
            self._discard(key)
        return value

    async def add_member(self, key: str, member: str) -> int:
        slot = self._slot(key)
        if slot is None:
            slot = _Slot(set(), math.inf)
            self._pin(key, slot)
        if not isinstance(slot.value, set):
            raise TypeError(f"Key {key!r} does not hold a set")
        if member in slot.value:
            return 0
        slot.value.add(member)
        return 1

    async def random_member(self, key: str) -> str | None:
        slot = self._slot(key)
        if slot is None or not slot.value:
            return None
        if not isinstance(slot.value, set):
            raise TypeError(f"Key {key!r} does not hold a set")
        return random.choice(tuple(slot.value))

    async def clear(self) -> None:
        """Clear all keys."""
        self._cache.clear()
        self._pinned.clear()
        self._next_sweep = self._maxsize

    def __len__(self) -> int:
        """Return the number of keys in the store."""
        return len(self._cache) + len(self._pinned)

    @property
    def maxsize(self) -> int:
        """Return the maximum number of evictable values."""
        return self._maxsize
