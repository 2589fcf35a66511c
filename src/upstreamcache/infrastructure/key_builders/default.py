"""Default hot-tier key layout."""


class DefaultKeyBuilder:
    """Builds every hot-tier key used by the refresh pipeline.

    Keys are ``{prefix}:{kind}:{source_id}:...``; logical cache keys only
    appear as their hash.
    """

    def __init__(self, prefix: str = "uc") -> None:
        """Initialize the key builder.

        Args:
            prefix: Prefix for all hot-tier keys.
        """
        self._prefix = prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    def _join(self, *parts: str) -> str:
        return ":".join([self._prefix, *parts])

    def entry(self, source_id: str, key_hash: str) -> str:
        """Key of a cached entry."""
        return self._join("cache", source_id, key_hash)

    def hit_counter(self, source_id: str, key_hash: str) -> str:
        """Key of the TTL-bump hit counter of an entry."""
        return self._join("hits", source_id, key_hash)

    def bump_cooldown(self, source_id: str, key_hash: str) -> str:
        """Key of the TTL-bump cooldown marker of an entry."""
        return self._join("bumpcd", source_id, key_hash)

    def rate_limit(self, source_id: str, window: int) -> str:
        """Key of a source's admission counter for one window."""
        return self._join("rl", source_id, str(window))

    def queue(self, source_id: str) -> str:
        """Key of a source's job list."""
        return self._join("queue", source_id)

    def dedupe(self, source_id: str, key_hash: str) -> str:
        """Key of the enqueue dedupe guard of a cache key."""
        return self._join("dedupe", source_id, key_hash)

    def idempotency(
        self,
        source_id: str,
        operation: str,
        key_hash: str,
        idempotency_key: str,
    ) -> str:
        """Key of a caller-supplied idempotency guard."""
        return self._join("idem", source_id, operation, key_hash, idempotency_key)

    def pool_ids(self, source_id: str, key_hash: str) -> str:
        """Key of the id set of a pool."""
        return self._join("pool", source_id, key_hash, "ids")

    def pool_item(self, source_id: str, key_hash: str, item_id: str) -> str:
        """Key of one pool item blob."""
        return self._join("pool", source_id, key_hash, "item", item_id)
