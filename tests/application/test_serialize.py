from __future__ import annotations

import gzip
import json
import zlib

import pytest

from lib_log_gelf.application.use_cases.serialize import (
    compress_payload,
    decompress_payload,
    encode_document,
    sniff_compression,
)
from lib_log_gelf.domain.config import Compression
from lib_log_gelf.domain.errors import EncodingError
from tests.os_markers import OS_AGNOSTIC

pytestmark = [OS_AGNOSTIC]

DOCUMENT = {"version": "1.1", "short_message": "héllo", "_list": "['a']"}


def test_default_encoding_is_compact_utf8_json() -> None:
    payload = encode_document(DOCUMENT)

    assert payload == '{"version":"1.1","short_message":"héllo","_list":"[\'a\']"}'.encode("utf-8")
    assert json.loads(payload) == DOCUMENT


def test_custom_encoder_returning_text_is_utf8_encoded() -> None:
    class TextEncoder:
        def encode(self, document: dict) -> str:
            return "ü"

    assert encode_document(DOCUMENT, TextEncoder()) == "ü".encode("utf-8")


def test_encoder_failures_are_wrapped() -> None:
    class BrokenEncoder:
        def encode(self, document: dict) -> bytes:
            raise TypeError("cannot serialize")

    with pytest.raises(EncodingError, match="cannot serialize") as excinfo:
        encode_document(DOCUMENT, BrokenEncoder())

    assert isinstance(excinfo.value.__cause__, TypeError)


def test_encoder_returning_other_types_is_rejected() -> None:
    class NumberEncoder:
        def encode(self, document: dict) -> int:
            return 42

    with pytest.raises(EncodingError, match="int"):
        encode_document(DOCUMENT, NumberEncoder())  # type: ignore[arg-type]


def test_unserializable_values_raise_encoding_error() -> None:
    with pytest.raises(EncodingError):
        encode_document({"value": object()})


@pytest.mark.parametrize("mode", list(Compression))
@pytest.mark.parametrize("data", [b"", b"gelf", bytes(range(256)) * 64])
def test_decompress_inverts_compress(mode: Compression, data: bytes) -> None:
    assert decompress_payload(compress_payload(data, mode), mode) == data


def test_gzip_and_zlib_use_standard_containers() -> None:
    assert gzip.decompress(compress_payload(b"abc", Compression.GZIP)) == b"abc"
    assert zlib.decompress(compress_payload(b"abc", Compression.ZLIB)) == b"abc"
    assert compress_payload(b"abc", Compression.NONE) == b"abc"


@pytest.mark.parametrize("mode", list(Compression))
def test_sniff_compression_detects_the_codec(mode: Compression) -> None:
    assert sniff_compression(compress_payload(b'{"version":"1.1"}', mode)) is mode


def test_sniff_compression_handles_short_payloads() -> None:
    assert sniff_compression(b"") is Compression.NONE
    assert sniff_compression(b"x") is Compression.NONE
