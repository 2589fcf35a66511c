"""Logical key normalization for cache and pool addressing.

Keys are request paths (optionally with a query string) relative to a
source's base URL. Every storage address is derived from the normalized
form, so equivalent spellings of a key share one cache slot.

Pool collection jobs carry their pool key behind a marker and with a
nonce query parameter so that each collection attempt passes the
enqueue dedupe window. The nonce is stripped again before the pool key
is used to address storage.
"""

import re
import uuid
from urllib.parse import parse_qsl, unquote, urlencode, urlsplit

POOL_JOB_MARKER = "/pool:"
POOL_NONCE_PARAM = "i"

_REPEATED_SLASHES = re.compile(r"/{2,}")


def _url_decode(key: str) -> str:
    # Decode until stable so that normalization is idempotent.
    current = key
    while True:
        try:
            decoded = unquote(current, errors="strict")
        except UnicodeDecodeError:
            return current
        if decoded == current:
            return current
        current = decoded


def normalize_key(key: str) -> str:
    """Normalize a logical cache key.

    URL-decodes the key (undecodable input is kept as is), forces a
    leading slash, collapses repeated slashes and strips a trailing slash
    unless the key is the root. Never raises, and
    ``normalize_key(normalize_key(k)) == normalize_key(k)``.

    Args:
        key: The raw key.

    Returns:
        The normalized key.
    """
    decoded = _url_decode(key or "")
    if not decoded.startswith("/"):
        decoded = "/" + decoded
    collapsed = _REPEATED_SLASHES.sub("/", decoded)
    if len(collapsed) > 1 and collapsed.endswith("/"):
        collapsed = collapsed[:-1]
    return collapsed


def sanitize_pool_key(raw: str) -> str:
    """Derive the stable pool key from a raw key.

    Removes the nonce parameter while preserving every other query
    parameter in order, and drops any fragment.

    Args:
        raw: A raw pool key, possibly carrying a nonce.

    Returns:
        The sanitized pool key.
    """
    parts = urlsplit(normalize_key(raw))
    params = [
        (name, value)
        for name, value in parse_qsl(parts.query, keep_blank_values=True)
        if name != POOL_NONCE_PARAM
    ]
    path = parts.path or "/"
    if not params:
        return path
    return f"{path}?{urlencode(params)}"


def is_pool_job_key(key: str) -> bool:
    """Check whether a queued key addresses a pool collection job."""
    return key.startswith(POOL_JOB_MARKER)


def make_pool_job_key(pool_key: str, nonce: str | None = None) -> str:
    """Build the queue key for a pool collection job.

    Args:
        pool_key: The pool key to collect into.
        nonce: Optional nonce; a random one is generated when omitted.

    Returns:
        The marker-prefixed key with the nonce query parameter.
    """
    sanitized = sanitize_pool_key(pool_key)
    separator = "&" if "?" in sanitized else "?"
    token = nonce or uuid.uuid4().hex
    return f"{POOL_JOB_MARKER}{sanitized}{separator}{POOL_NONCE_PARAM}={token}"


def pool_key_from_job_key(job_key: str) -> str:
    """Extract the sanitized pool key from a pool job key."""
    if is_pool_job_key(job_key):
        job_key = job_key[len(POOL_JOB_MARKER):]
    return sanitize_pool_key(job_key)
