"""Redis hot store implementation."""

import redis.asyncio as redis


class RedisHotStore:
    """Redis hot store for distributed deployments.

    Every primitive maps onto a single Redis command, which gives the
    atomicity the queue, dedupe guards and counters depend on.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        key_prefix: str = "uc",
        client: redis.Redis | None = None,
    ) -> None:
        """Initialize the Redis hot store.

        Args:
            redis_url: Redis connection URL.
            key_prefix: Prefix for all keys; ``clear`` only touches it.
            client: Optional preconfigured client, used instead of
                ``redis_url``.
        """
        self._redis: redis.Redis = client or redis.from_url(redis_url)  # type: ignore
        self._key_prefix = key_prefix

    async def get(self, key: str) -> bytes | None:
        return await self._redis.get(self._prefixed_key(key))

    async def set(self, key: str, value: bytes, ttl_s: int | None = None) -> None:
        prefixed_key = self._prefixed_key(key)
        if ttl_s is not None and ttl_s > 0:
            await self._redis.set(prefixed_key, value, ex=ttl_s)
        else:
            await self._redis.set(prefixed_key, value)

    async def set_if_absent(
        self, key: str, value: bytes, ttl_s: int | None = None
    ) -> bool:
        ex = ttl_s if ttl_s is not None and ttl_s > 0 else None
        result = await self._redis.set(self._prefixed_key(key), value, nx=True, ex=ex)
        return bool(result)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._redis.delete(*(self._prefixed_key(k) for k in keys)))

    async def incr(self, key: str) -> int:
        return int(await self._redis.incr(self._prefixed_key(key)))

    async def expire(self, key: str, ttl_s: int) -> bool:
        return bool(await self._redis.expire(self._prefixed_key(key), ttl_s))

    async def ttl(self, key: str) -> int:
        return int(await self._redis.ttl(self._prefixed_key(key)))

    async def push_back(self, key: str, value: bytes) -> int:
        return int(await self._redis.rpush(self._prefixed_key(key), value))

    async def pop_front(self, key: str) -> bytes | None:
        return await self._redis.lpop(self._prefixed_key(key))

    async def add_member(self, key: str, member: str) -> int:
        return int(await self._redis.sadd(self._prefixed_key(key), member))

    async def random_member(self, key: str) -> str | None:
        member = await self._redis.srandmember(self._prefixed_key(key))
        if member is None:
            return None
        return member.decode() if isinstance(member, bytes) else str(member)

    async def clear(self) -> None:
        """Clear all keys with our prefix.

        Note: This only clears keys with our prefix, not the entire Redis DB.
        """
        await self._delete_by_pattern(f"{self._key_prefix}:*")

    async def _delete_by_pattern(self, pattern: str) -> int:
        """Delete keys matching a pattern using SCAN.

        Uses SCAN instead of KEYS for production safety.

        Args:
            pattern: Redis glob pattern.

        Returns:
            Number of keys deleted.
        """
        count = 0
        cursor = 0

        while True:
            cursor, keys = await self._redis.scan(cursor, match=pattern, count=100)

            if keys:
                deleted = await self._redis.delete(*keys)
                count += deleted

            if cursor == 0:
                break

        return count

    def _prefixed_key(self, key: str) -> str:
        """Add prefix to key if not already present."""
        if key.startswith(f"{self._key_prefix}:"):
            return key
        return f"{self._key_prefix}:{key}"

    async def close(self) -> None:
        """Close the Redis connection."""
        await self._redis.aclose()

    async def __aenter__(self) -> "RedisHotStore":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Async context manager exit."""
        await self.close()
