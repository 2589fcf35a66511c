"""Serializer implementations."""

from upstreamcache.infrastructure.serializers.json import JsonSerializer

__all__ = ["JsonSerializer"]
