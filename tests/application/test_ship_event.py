from __future__ import annotations

import gzip
import json
import os
from typing import Any

import pytest

from lib_log_gelf.adapters.formatting import TemplateFormatter
from lib_log_gelf.application.use_cases.ship_event import ShipOutcome, emit_diagnostic, ship_event
from lib_log_gelf.domain.config import Compression, GelfConfig, OversizePolicy
from lib_log_gelf.domain.errors import EncodingError, OversizedMessageError, TransportError
from lib_log_gelf.domain.events import LogEvent
from lib_log_gelf.domain.levels import Severity
from lib_log_gelf.domain.stats import DeliveryStats
from tests.os_markers import OS_AGNOSTIC

pytestmark = [OS_AGNOSTIC]


class RecordingTransport:
    def __init__(self, datagrams_per_send: int = 1) -> None:
        self.payloads: list[bytes] = []
        self.datagrams_per_send = datagrams_per_send

    def send(self, payload: bytes) -> int:
        self.payloads.append(payload)
        return self.datagrams_per_send

    def close(self) -> None:
        return None


class FailingTransport(RecordingTransport):
    def send(self, payload: bytes) -> int:
        raise TransportError("network unreachable")


def make_config(**changes: Any) -> GelfConfig:
    return GelfConfig(**{"application": "myapp", "hostname": "box", **changes})


def test_ships_a_gzip_payload_by_default() -> None:
    transport = RecordingTransport()
    stats = DeliveryStats()

    outcome = ship_event(LogEvent.create(Severity.INFO, "test"), make_config(), transport, stats=stats)

    assert outcome is ShipOutcome.SENT
    document = json.loads(gzip.decompress(transport.payloads[0]))
    assert document["short_message"] == "test"
    assert document["_application"] == "myapp"
    assert stats.snapshot().sent == 1


def test_uncompressed_payload_is_plain_json() -> None:
    transport = RecordingTransport()

    ship_event(LogEvent.create(Severity.INFO, "test"), make_config(compression=Compression.NONE), transport)

    assert json.loads(transport.payloads[0])["version"] == "1.1"


def test_empty_message_is_skipped_without_io() -> None:
    transport = RecordingTransport()
    stats = DeliveryStats()
    config = make_config(formatter=TemplateFormatter("$metadata"))

    outcome = ship_event(LogEvent.create(Severity.INFO, "test"), config, transport, stats=stats)

    assert outcome is ShipOutcome.SKIPPED_EMPTY
    assert transport.payloads == []
    assert stats.snapshot().skipped_empty == 1


def test_chunked_sends_are_counted() -> None:
    transport = RecordingTransport(datagrams_per_send=3)
    stats = DeliveryStats()

    outcome = ship_event(LogEvent.create(Severity.INFO, "test"), make_config(), transport, stats=stats)

    assert outcome is ShipOutcome.CHUNKED
    assert stats.snapshot().chunked == 1
    assert stats.snapshot().sent == 1


def _oversized_event() -> LogEvent:
    return LogEvent.create(Severity.INFO, os.urandom(600_000).hex())


def test_oversized_payload_is_dropped_by_default() -> None:
    transport = RecordingTransport()
    stats = DeliveryStats()
    diagnostics: list[tuple[str, dict[str, Any]]] = []

    outcome = ship_event(
        _oversized_event(),
        make_config(compression=Compression.NONE),
        transport,
        stats=stats,
        diagnostic=lambda name, payload: diagnostics.append((name, payload)),
    )

    assert outcome is ShipOutcome.DROPPED_OVERSIZE
    assert transport.payloads == []
    assert stats.snapshot().dropped_oversize == 1
    assert diagnostics[0][0] == "payload_oversized"
    assert diagnostics[0][1]["policy"] == "drop"


def test_oversized_payload_raises_under_raise_policy() -> None:
    transport = RecordingTransport()
    config = make_config(compression=Compression.NONE, oversize_policy=OversizePolicy.RAISE)

    with pytest.raises(OversizedMessageError) as excinfo:
        ship_event(_oversized_event(), config, transport)

    assert excinfo.value.size > excinfo.value.limit
    assert transport.payloads == []


def test_size_limit_applies_after_compression() -> None:
    transport = RecordingTransport()

    outcome = ship_event(LogEvent.create(Severity.INFO, "a" * 2_000_000), make_config(), transport)

    assert outcome is ShipOutcome.SENT
    assert len(transport.payloads[0]) < 1_047_040


def test_encoding_errors_propagate_and_are_counted() -> None:
    class BrokenEncoder:
        def encode(self, document: dict) -> bytes:
            raise ValueError("boom")

    stats = DeliveryStats()
    diagnostics: list[str] = []
    transport = RecordingTransport()

    with pytest.raises(EncodingError):
        ship_event(
            LogEvent.create(Severity.INFO, "test"),
            make_config(encoder=BrokenEncoder()),
            transport,
            stats=stats,
            diagnostic=lambda name, payload: diagnostics.append(name),
        )

    assert transport.payloads == []
    assert stats.snapshot().encode_failed == 1
    assert diagnostics == ["event_encode_failed"]


def test_transport_errors_propagate_and_are_counted() -> None:
    stats = DeliveryStats()

    with pytest.raises(TransportError):
        ship_event(LogEvent.create(Severity.INFO, "test"), make_config(), FailingTransport(), stats=stats)

    assert stats.snapshot().transport_failed == 1
    assert stats.snapshot().sent == 0


def test_failing_diagnostic_hook_is_swallowed(caplog: pytest.LogCaptureFixture) -> None:
    def hook(name: str, payload: dict[str, Any]) -> None:
        raise RuntimeError("hook broke")

    emit_diagnostic(hook, "worker_started", {})

    assert "worker_started" in caplog.text
