"""JSON record codec for hot-tier values."""

import json
from collections.abc import Mapping
from typing import Any

from upstreamcache.core.exceptions import SerializationError


class JsonSerializer:
    """Encodes entry, pool item and job records as compact UTF-8 JSON.

    Records are the ``to_dict()`` forms of the entities; decoding anything
    other than a JSON object is an error.
    """

    def serialize(self, record: Mapping[str, Any]) -> bytes:
        """Encode a record.

        Raises:
            SerializationError: If the record holds non-JSON values.
        """
        try:
            return json.dumps(record, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Failed to serialize record: {e}") from e

    def deserialize(self, data: bytes) -> dict[str, Any]:
        """Decode a record.

        Raises:
            SerializationError: If the data is not a UTF-8 JSON object.
        """
        try:
            record = json.loads(data.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SerializationError(f"Failed to deserialize record: {e}") from e
        if not isinstance(record, dict):
            raise SerializationError(f"Expected a JSON object, got {type(record).__name__}")
        return record
