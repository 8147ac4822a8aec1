from __future__ import annotations

import json
from typing import Any

import pytest

from lib_log_gelf.adapters.sinks import GelfAsyncSink, GelfSink
from lib_log_gelf.application.ports.sink import LogSink
from lib_log_gelf.application.use_cases.ship_event import ShipOutcome
from lib_log_gelf.domain.config import Compression, GelfConfig, OversizePolicy
from lib_log_gelf.domain.errors import TransportError
from lib_log_gelf.domain.events import LogEvent
from lib_log_gelf.domain.levels import Severity
from tests.os_markers import OS_AGNOSTIC

pytestmark = [OS_AGNOSTIC]


class ListTransport:
    def __init__(self, config: GelfConfig, *, failures: int = 0) -> None:
        self.config = config
        self.payloads: list[bytes] = []
        self.closed = False
        self._failures = failures

    def send(self, payload: bytes) -> int:
        if self._failures:
            self._failures -= 1
            raise TransportError("socket closed")
        self.payloads.append(payload)
        return 1

    def close(self) -> None:
        self.closed = True


class Factory:
    def __init__(self, failures: int = 0) -> None:
        self.created: list[ListTransport] = []
        self._failures = failures

    def __call__(self, config: GelfConfig) -> ListTransport:
        transport = ListTransport(config, failures=self._failures if not self.created else 0)
        self.created.append(transport)
        return transport

    def messages(self) -> list[str]:
        return [json.loads(payload)["short_message"] for transport in self.created for payload in transport.payloads]


def make_config(**changes: Any) -> GelfConfig:
    return GelfConfig(**{"application": "sink", "hostname": "box", "compression": Compression.NONE, **changes})


def test_sinks_implement_the_protocol() -> None:
    sync_sink = GelfSink(make_config(), transport_factory=Factory())
    async_sink = GelfAsyncSink(make_config(), 1, transport_factory=Factory())
    try:
        assert isinstance(sync_sink, LogSink)
        assert isinstance(async_sink, LogSink)
    finally:
        sync_sink.close()
        async_sink.close()


def test_sync_sink_ships_on_the_calling_thread() -> None:
    factory = Factory()
    sink = GelfSink(make_config(), transport_factory=factory)

    outcome = sink.deliver(LogEvent.create(Severity.INFO, "now"))

    assert outcome is ShipOutcome.SENT
    assert factory.messages() == ["now"]


def test_sync_sink_applies_the_minimum_level() -> None:
    factory = Factory()
    sink = GelfSink(make_config(min_level=Severity.WARNING), transport_factory=factory)

    sink.submit(LogEvent.create(Severity.DEBUG, "noise"))
    sink.submit(LogEvent.create(Severity.INFO, "noise"))
    sink.submit(LogEvent.create(Severity.ERROR, "signal"))

    assert factory.messages() == ["signal"]
    snapshot = sink.stats.snapshot()
    assert snapshot.skipped_level == 2
    assert snapshot.submitted == 1


def test_sync_sink_reopens_the_transport_after_failure(caplog: pytest.LogCaptureFixture) -> None:
    factory = Factory(failures=1)
    sink = GelfSink(make_config(), transport_factory=factory)

    sink.submit(LogEvent.create(Severity.INFO, "lost"))
    sink.submit(LogEvent.create(Severity.INFO, "kept"))

    assert len(factory.created) == 2
    assert factory.created[0].closed is True
    assert factory.messages() == ["kept"]
    assert sink.stats.snapshot().transport_failed == 1
    assert "reopening" in caplog.text


def test_sync_sink_swallows_oversize_errors() -> None:
    factory = Factory()
    sink = GelfSink(make_config(oversize_policy=OversizePolicy.RAISE), transport_factory=factory)

    assert sink.deliver(LogEvent.create(Severity.INFO, "x" * 1_100_000)) is None
    assert sink.stats.snapshot().dropped_oversize == 1


def test_sync_sink_reconfigure_replaces_the_transport() -> None:
    factory = Factory()
    sink = GelfSink(make_config(), transport_factory=factory)
    sink.submit(LogEvent.create(Severity.INFO, "before"))

    sink.reconfigure(make_config(port=12400))
    sink.submit(LogEvent.create(Severity.INFO, "after"))

    assert factory.created[0].closed is True
    assert factory.created[1].config.port == 12400
    assert sink.config.port == 12400


def test_sync_sink_ignores_events_after_close() -> None:
    factory = Factory()
    sink = GelfSink(make_config(), transport_factory=factory)
    sink.close()

    assert sink.deliver(LogEvent.create(Severity.INFO, "late")) is None
    assert factory.created == []


def test_async_sink_delivers_through_the_pool() -> None:
    factory = Factory()
    with GelfAsyncSink(make_config(), 2, transport_factory=factory) as sink:
        for index in range(4):
            sink.submit(LogEvent.create(Severity.INFO, f"m{index}"))
        assert sink.flush(timeout=5.0)

    assert sorted(factory.messages()) == ["m0", "m1", "m2", "m3"]
    assert sink.stats.snapshot().submitted == 4


def test_async_sink_applies_the_minimum_level() -> None:
    factory = Factory()
    with GelfAsyncSink(make_config(min_level="error"), 1, transport_factory=factory) as sink:
        sink.submit(LogEvent.create(Severity.WARNING, "skip"))
        sink.submit(LogEvent.create(Severity.CRITICAL, "keep"))
        assert sink.flush(timeout=5.0)

    assert factory.messages() == ["keep"]
    assert sink.stats.snapshot().skipped_level == 1


def test_async_sink_reconfigure_changes_the_level_filter() -> None:
    factory = Factory()
    with GelfAsyncSink(make_config(), 1, transport_factory=factory) as sink:
        sink.reconfigure(make_config(min_level=Severity.ERROR))
        sink.submit(LogEvent.create(Severity.INFO, "skip"))
        assert sink.config.min_level is Severity.ERROR

    assert factory.messages() == []


def test_async_sink_drops_events_after_close(caplog: pytest.LogCaptureFixture) -> None:
    sink = GelfAsyncSink(make_config(), 1, transport_factory=Factory())
    sink.close()

    sink.submit(LogEvent.create(Severity.INFO, "late"))

    assert "not running" in caplog.text


def test_async_sink_rejects_invalid_pool_size() -> None:
    with pytest.raises(ValueError, match="pool_size"):
        GelfAsyncSink(make_config(), 0)
