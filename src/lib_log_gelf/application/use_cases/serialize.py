"""Serialization and compression of GELF documents.

Purpose
-------
Turn a document into the byte payload carried by UDP: JSON encoding through
the configured encoder, then optional gzip/zlib compression.

Contents
--------
* :func:`encode_document` – encoder call with error wrapping.
* :func:`compress_payload` / :func:`decompress_payload` – codec helpers.
* :func:`sniff_compression` – detects the codec of a received payload.
"""

from __future__ import annotations

import gzip
import json
import zlib
from collections.abc import Mapping
from typing import Any

from lib_log_gelf.application.ports.encoder import JsonEncoderPort
from lib_log_gelf.domain.config import Compression
from lib_log_gelf.domain.errors import EncodingError

_GZIP_MAGIC = b"\x1f\x8b"
_ZLIB_SECOND_BYTES = frozenset({0x01, 0x5E, 0x9C, 0xDA})


def encode_document(document: Mapping[str, Any], encoder: JsonEncoderPort | None = None) -> bytes:
    """Serialize ``document`` to bytes.

    Raises
    ------
    EncodingError
        When the encoder fails or returns something other than ``bytes``/``str``.

    Examples
    --------
    >>> encode_document({"version": "1.1"})
    b'{"version":"1.1"}'
    """

    try:
        if encoder is None:
            data: Any = json.dumps(document, ensure_ascii=False, separators=(",", ":"))
        else:
            data = encoder.encode(document)
    except Exception as exc:
        raise EncodingError(f"could not encode GELF document: {exc}") from exc
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise EncodingError(f"encoder returned {type(data).__name__}, expected bytes or str")


def compress_payload(data: bytes, compression: Compression) -> bytes:
    """Compress ``data`` with the selected codec; ``NONE`` passes through."""
    if compression is Compression.GZIP:
        return gzip.compress(data)
    if compression is Compression.ZLIB:
        return zlib.compress(data)
    return data


def decompress_payload(data: bytes, compression: Compression) -> bytes:
    """Invert :func:`compress_payload`.

    Examples
    --------
    >>> all(decompress_payload(compress_payload(b"gelf", mode), mode) == b"gelf" for mode in Compression)
    True
    """
    if compression is Compression.GZIP:
        return gzip.decompress(data)
    if compression is Compression.ZLIB:
        return zlib.decompress(data)
    return data


def sniff_compression(data: bytes) -> Compression:
    """Guess the codec of a received payload from its leading bytes."""
    if data[:2] == _GZIP_MAGIC:
        return Compression.GZIP
    if len(data) >= 2 and data[0] == 0x78 and data[1] in _ZLIB_SECOND_BYTES:
        return Compression.ZLIB
    return Compression.NONE


__all__ = ["compress_payload", "decompress_payload", "encode_document", "sniff_compression"]
