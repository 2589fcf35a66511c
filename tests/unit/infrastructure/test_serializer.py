"""Tests for JsonSerializer."""

import pytest

from upstreamcache.core.entities.refresh_job import RefreshJob
from upstreamcache.core.exceptions import SerializationError
from upstreamcache.infrastructure.serializers.json import JsonSerializer


class TestJsonSerializer:
    """Tests for JsonSerializer."""

    @pytest.fixture
    def serializer(self) -> JsonSerializer:
        """Create a serializer for testing."""
        return JsonSerializer()

    def test_job_record(self, serializer: JsonSerializer, clock) -> None:
        """Test a job record survives encoding."""
        job = RefreshJob.create("weather", "/today", priority=2, now=clock())

        raw = serializer.serialize(job.to_dict())

        assert RefreshJob.from_dict(serializer.deserialize(raw)) == job

    def test_compact_output(self, serializer: JsonSerializer) -> None:
        """Test records are written without whitespace."""
        assert serializer.serialize({"a": 1, "b": [1, 2]}) == b'{"a":1,"b":[1,2]}'

    def test_deserialize_invalid_json(self, serializer: JsonSerializer) -> None:
        """Test deserializing invalid JSON raises error."""
        with pytest.raises(SerializationError):
            serializer.deserialize(b"not valid json")

    def test_deserialize_invalid_encoding(self, serializer: JsonSerializer) -> None:
        """Test deserializing invalid encoding raises error."""
        with pytest.raises(SerializationError):
            serializer.deserialize(b"\xff\xfe")

    @pytest.mark.parametrize("raw", [b"[1, 2]", b'"text"', b"null"])
    def test_non_object_is_rejected(self, serializer: JsonSerializer, raw: bytes) -> None:
        """Test only JSON objects decode as records."""
        with pytest.raises(SerializationError):
            serializer.deserialize(raw)

    def test_serialize_non_serializable(self, serializer: JsonSerializer) -> None:
        """Test serializing unsupported objects raises error."""
        with pytest.raises(SerializationError):
            serializer.serialize({"value": object()})
