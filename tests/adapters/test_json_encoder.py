from __future__ import annotations

import json

import pytest

from lib_log_gelf.adapters.json_encoder import JsonEncoder, coerce_encoder
from lib_log_gelf.application.ports.encoder import JsonEncoderPort
from tests.os_markers import OS_AGNOSTIC

pytestmark = [OS_AGNOSTIC]

DOCUMENT = {"short_message": "ü", "level": 6}


def test_default_encoder_writes_compact_utf8() -> None:
    assert JsonEncoder().encode(DOCUMENT) == '{"short_message":"ü","level":6}'.encode("utf-8")


def test_custom_dumps_options_are_forwarded() -> None:
    encoder = JsonEncoder(json.dumps, sort_keys=True)

    assert encoder.encode({"b": 1, "a": 2}) == b'{"a": 2, "b": 1}'


def test_dumps_returning_bytes_is_passed_through() -> None:
    encoder = JsonEncoder(lambda document: b"raw")

    assert encoder.encode(DOCUMENT) == b"raw"


def test_json_encoder_satisfies_the_port() -> None:
    assert isinstance(JsonEncoder(), JsonEncoderPort)


def test_coerce_none_keeps_builtin_encoding() -> None:
    assert coerce_encoder(None) is None


def test_coerce_module_name() -> None:
    encoder = coerce_encoder("json")

    assert isinstance(encoder, JsonEncoder)
    assert encoder.encode(DOCUMENT) == JsonEncoder().encode(DOCUMENT)


def test_coerce_module_object() -> None:
    encoder = coerce_encoder(json)

    assert isinstance(encoder, JsonEncoder)
    assert encoder.encode({"a": 1}) == b'{"a":1}'


def test_coerce_object_with_encode_is_used_as_is() -> None:
    class Custom:
        def encode(self, document: dict) -> bytes:
            return b"{}"

    custom = Custom()

    assert coerce_encoder(custom) is custom


def test_coerce_plain_callable_is_treated_as_dumps() -> None:
    encoder = coerce_encoder(lambda document: "x")

    assert encoder is not None
    assert encoder.encode(DOCUMENT) == b"x"


def test_coerce_unknown_module_raises() -> None:
    with pytest.raises(ValueError, match="cannot be imported"):
        coerce_encoder("no_such_json_library_here")


def test_coerce_unsupported_value_raises() -> None:
    with pytest.raises(ValueError, match="Unsupported JSON encoder"):
        coerce_encoder(42)
