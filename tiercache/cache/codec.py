"""
TierCache - Entry Codec

Serializes cache entries into the text envelope stored by the remote tier.

Envelope:
    {"data": <value>, "metadata": {...}}

When compression is enabled only the ``data`` field is compressed:
``data = base64(gzip(json(value)))`` and ``metadata.compressed = true``.
The metadata stays readable so other services can inspect versions without
decompressing payloads.
"""

from __future__ import annotations

import base64
import binascii
import gzip
import json
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from ..errors import SerializationError
from .entry import CacheEntry, EntryMetadata


def _json_dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


class EntryCodec:
    """
    Encode and decode CacheEntry envelopes.

    The value serializer is pluggable; the default is compact JSON. Whatever
    ``dumps`` produces must be accepted by ``loads``.
    """

    def __init__(
        self,
        dumps: Callable[[Any], str] = _json_dumps,
        loads: Callable[[str | bytes], Any] = json.loads,
        compress_level: int = 6,
    ) -> None:
        if not 0 <= compress_level <= 9:
            raise ValueError("compress_level must be between 0 and 9")
        self._dumps = dumps
        self._loads = loads
        self.compress_level = compress_level

    def compress(self, data: Any) -> str:
        """Serialize, gzip and base64-encode a value."""
        raw = self._dumps(data).encode("utf-8")
        return base64.b64encode(gzip.compress(raw, compresslevel=self.compress_level)).decode("ascii")

    def decompress(self, payload: str) -> Any:
        """Reverse compress(): base64-decode, gunzip and deserialize."""
        return self._loads(gzip.decompress(base64.b64decode(payload, validate=True)).decode("utf-8"))

    def encode(self, entry: CacheEntry[Any], compress: bool = False) -> str:
        """
        Encode an entry into its envelope string.

        Raises:
            SerializationError: If the value cannot be serialized
        """
        try:
            metadata = entry.metadata.to_wire()
            if compress:
                data: Any = self.compress(entry.data)
                metadata["compressed"] = True
            else:
                data = entry.data
                metadata.pop("compressed", None)
            return self._dumps({"data": data, "metadata": metadata})
        except (TypeError, ValueError) as e:
            raise SerializationError(
                f"Failed to encode cache entry: {e}",
                details={"value_type": type(entry.data).__name__, "error": str(e)},
            ) from e

    def decode(self, raw: str | bytes) -> CacheEntry[Any]:
        """
        Decode an envelope string back into an entry.

        Compressed payloads are always inflated; the returned entry keeps
        ``metadata.compressed`` so callers can tell how it was stored.

        Raises:
            SerializationError: If the envelope is malformed
        """
        try:
            envelope = self._loads(raw)
            if not isinstance(envelope, dict) or "data" not in envelope:
                raise ValueError("envelope must be an object with a 'data' field")

            metadata = EntryMetadata.model_validate(envelope.get("metadata") or {})
            data = envelope["data"]
            if metadata.compressed:
                if not isinstance(data, str):
                    raise ValueError("compressed payload must be a base64 string")
                data = self.decompress(data)

            return CacheEntry(data=data, metadata=metadata)
        except (ValueError, TypeError, OSError, EOFError, binascii.Error, ValidationError) as e:
            preview = raw[:100] if isinstance(raw, (str, bytes)) else repr(raw)[:100]
            raise SerializationError(
                f"Failed to decode cache entry: {e}",
                details={"data_preview": str(preview), "error": str(e)},
            ) from e
