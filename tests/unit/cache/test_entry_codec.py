"""
TierCache - Cache Entry and Codec Tests

Covers entry bookkeeping and the remote envelope format, including the
compressed data field and malformed payloads.
"""

import base64
import gzip
import json
from typing import Any

import pytest

from tiercache.cache.codec import EntryCodec
from tiercache.cache.entry import DEFAULT_VERSION, CacheEntry, EntryMetadata
from tiercache.errors import SerializationError


class TestCacheEntry:
    """Test suite for CacheEntry."""

    def test_create_defaults(self) -> None:
        """A new entry starts unaccessed at the default version."""
        entry = CacheEntry.create({"name": "Ann"})

        assert entry.data == {"name": "Ann"}
        assert entry.version == DEFAULT_VERSION == "1.0"
        assert entry.metadata.access_count == 0
        assert entry.metadata.compressed is None
        assert entry.metadata.created_at == entry.metadata.last_accessed

    def test_create_with_version(self) -> None:
        """The caller-supplied version is stored."""
        assert CacheEntry.create("x", version="2.0").version == "2.0"

    def test_touch_updates_access_stats(self) -> None:
        """touch() bumps the access count and never moves last_accessed backwards."""
        entry = CacheEntry.create("x")
        before = entry.metadata.last_accessed

        entry.touch()
        entry.touch()

        assert entry.metadata.access_count == 2
        assert entry.metadata.last_accessed >= before
        assert entry.metadata.created_at <= entry.metadata.last_accessed

    def test_metadata_wire_names(self) -> None:
        """Metadata serializes with the camelCase envelope names."""
        metadata = EntryMetadata(created_at=1, access_count=2, last_accessed=3, version="1.0")

        assert metadata.to_wire() == {
            "createdAt": 1,
            "accessCount": 2,
            "lastAccessed": 3,
            "version": "1.0",
        }

    def test_metadata_rejects_negative_access_count(self) -> None:
        """access_count is a non-negative integer."""
        with pytest.raises(ValueError):
            EntryMetadata(access_count=-1)


class TestEntryCodec:
    """Test suite for EntryCodec."""

    @pytest.fixture
    def codec(self) -> EntryCodec:
        return EntryCodec()

    def test_encode_uncompressed_envelope(self, codec: EntryCodec) -> None:
        """Uncompressed envelopes carry the value as plain JSON."""
        entry = CacheEntry.create({"name": "Ann"}, version="3.1")

        envelope = json.loads(codec.encode(entry, compress=False))

        assert envelope["data"] == {"name": "Ann"}
        assert envelope["metadata"]["version"] == "3.1"
        assert envelope["metadata"]["accessCount"] == 0
        assert "createdAt" in envelope["metadata"]
        assert "lastAccessed" in envelope["metadata"]
        assert "compressed" not in envelope["metadata"]

    def test_encode_compresses_only_data_field(self, codec: EntryCodec) -> None:
        """With compression the data field is base64(gzip(json)) and metadata stays readable."""
        entry = CacheEntry.create({"name": "Ann"}, version="2.0")

        envelope = json.loads(codec.encode(entry, compress=True))

        assert envelope["metadata"]["compressed"] is True
        assert envelope["metadata"]["version"] == "2.0"
        assert isinstance(envelope["data"], str)
        inflated = gzip.decompress(base64.b64decode(envelope["data"])).decode("utf-8")
        assert json.loads(inflated) == {"name": "Ann"}

    def test_decode_compressed(self, codec: EntryCodec) -> None:
        """Compressed envelopes decode back to the original value."""
        entry = CacheEntry.create([1, 2, {"x": "y"}], version="2.0")

        decoded = codec.decode(codec.encode(entry, compress=True))

        assert decoded.data == [1, 2, {"x": "y"}]
        assert decoded.version == "2.0"
        assert decoded.metadata.compressed is True
        assert decoded.metadata.created_at == entry.metadata.created_at

    def test_decode_bytes(self, codec: EntryCodec) -> None:
        """Raw bytes from a non-decoding client are accepted."""
        raw = codec.encode(CacheEntry.create("v"), compress=False).encode("utf-8")
        assert codec.decode(raw).data == "v"

    def test_decode_envelope_written_elsewhere(self, codec: EntryCodec) -> None:
        """Envelopes produced by another service with the same format decode."""
        raw = json.dumps(
            {
                "data": {"plan": "pro"},
                "metadata": {"createdAt": 1700000000000, "accessCount": 0, "lastAccessed": 1700000000000, "version": "1.0"},
            }
        )

        entry = codec.decode(raw)

        assert entry.data == {"plan": "pro"}
        assert entry.metadata.created_at == 1700000000000

    def test_decode_missing_metadata_uses_defaults(self, codec: EntryCodec) -> None:
        """A bare {"data": ...} envelope gets default metadata."""
        entry = codec.decode('{"data": 5}')
        assert entry.data == 5
        assert entry.version == DEFAULT_VERSION

    @pytest.mark.parametrize(
        "raw",
        [
            "not json at all",
            "[1, 2, 3]",
            '{"metadata": {"version": "1.0"}}',
            '{"data": "%%%not-base64%%%", "metadata": {"compressed": true}}',
            '{"data": "aGVsbG8=", "metadata": {"compressed": true}}',
            '{"data": 42, "metadata": {"compressed": true}}',
            '{"data": 1, "metadata": {"accessCount": -5}}',
        ],
    )
    def test_decode_malformed_raises(self, codec: EntryCodec, raw: str) -> None:
        """Malformed envelopes raise SerializationError, never something else."""
        with pytest.raises(SerializationError):
            codec.decode(raw)

    def test_encode_unserializable_raises(self, codec: EntryCodec) -> None:
        """Values JSON cannot represent raise SerializationError."""
        entry = CacheEntry.create({"when": object()})
        with pytest.raises(SerializationError) as exc_info:
            codec.encode(entry)
        assert exc_info.value.details["value_type"] == "dict"

    def test_custom_serializer(self) -> None:
        """The value serializer is pluggable."""
        calls: list[Any] = []

        def dumps(value: Any) -> str:
            calls.append(value)
            return json.dumps(value, sort_keys=True)

        codec = EntryCodec(dumps=dumps)
        decoded = codec.decode(codec.encode(CacheEntry.create({"b": 1, "a": 2}), compress=True))

        assert decoded.data == {"a": 2, "b": 1}
        assert len(calls) == 2  # the data field, then the envelope

    def test_invalid_compress_level(self) -> None:
        """compress_level follows gzip's 0-9 range."""
        with pytest.raises(ValueError):
            EntryCodec(compress_level=10)
