"""Hot-tier store interface."""

from typing import Protocol

# ``ttl`` results, mirroring Redis TTL semantics.
TTL_NO_EXPIRY = -1
TTL_MISSING = -2


class IHotStore(Protocol):
    """Contract for the low-latency, TTL-bearing key/value tier.

    Every operation must be atomic at the storage layer; the queue, the
    dedupe guards and the counters rely on that instead of process locks.
    A ``ttl_s`` of None or ``<= 0`` means the key does not expire.
    """

    async def get(self, key: str) -> bytes | None:
        """Retrieve a value, or None if missing or expired."""
        ...

    async def set(self, key: str, value: bytes, ttl_s: int | None = None) -> None:
        """Store a value, replacing any previous one and its TTL."""
        ...

    async def set_if_absent(self, key: str, value: bytes, ttl_s: int | None = None) -> bool:
        """Store a value only if the key does not exist.

        Returns:
            True if this call created the key.
        """
        ...

    async def delete(self, *keys: str) -> int:
        """Delete keys.

        Returns:
            Number of keys that existed and were deleted.
        """
        ...

    async def incr(self, key: str) -> int:
        """Increment an integer counter, creating it at 1."""
        ...

    async def expire(self, key: str, ttl_s: int) -> bool:
        """Set a key's TTL.

        Returns:
            True if the key exists.
        """
        ...

    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds, ``TTL_NO_EXPIRY`` or ``TTL_MISSING``."""
        ...

    async def push_back(self, key: str, value: bytes) -> int:
        """Append to the tail of a list.

        Returns:
            The list length after the push.
        """
        ...

    async def pop_front(self, key: str) -> bytes | None:
        """Remove and return the head of a list, or None if empty."""
        ...

    async def add_member(self, key: str, member: str) -> int:
        """Add a member to a set.

        Returns:
            1 if the member was new, 0 otherwise.
        """
        ...

    async def random_member(self, key: str) -> str | None:
        """Return a random set member without removing it, or None."""
        ...

    async def clear(self) -> None:
        """Remove every key owned by this store."""
        ...
