"""Hashing utilities for storage addressing and pool item identity."""

import hashlib
import json
from typing import Any


def hash_key(normalized_key: str) -> str:
    """Create the storage-address digest of a normalized key.

    The digest is one-way and only used to address storage; collisions
    are not defended against.

    Args:
        normalized_key: A key already passed through ``normalize_key``.

    Returns:
        A hexadecimal SHA-256 digest.
    """
    return hashlib.sha256(normalized_key.encode("utf-8")).hexdigest()


def serialize_item_data(encoding: str, data: Any) -> str:
    """Serialize pool item data the way its identity is computed.

    JSON data is dumped compactly and in its own key order, so two payloads
    that only differ in key order produce different identities.

    Args:
        encoding: The item encoding (``json``, ``text`` or ``base64``).
        data: The item payload.

    Returns:
        The serialized payload.
    """
    if encoding == "json":
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    if isinstance(data, str):
        return data
    return str(data)


def content_hash(encoding: str, data: Any) -> str:
    """Compute the content-addressed id of a pool item.

    Args:
        encoding: The item encoding.
        data: The item payload.

    Returns:
        A hexadecimal SHA-1 digest of ``"{encoding}:{serialized data}"``.
    """
    serialized = serialize_item_data(encoding, data)
    return hashlib.sha1(f"{encoding}:{serialized}".encode("utf-8")).hexdigest()
