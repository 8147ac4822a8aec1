from __future__ import annotations

import math
import socket
from typing import Any

import pytest

from lib_log_gelf.adapters.udp import UdpTransport
from lib_log_gelf.domain.chunking import MAX_PACKET_SIZE, MAX_PAYLOAD_SIZE, MAX_SIZE, Chunk, ChunkAssembler
from lib_log_gelf.domain.errors import OversizedMessageError, TransportError
from tests.os_markers import NETWORK, OS_AGNOSTIC

pytestmark = [OS_AGNOSTIC]

ADDRESS = ("192.0.2.10", 12201)


class DummySocket:
    def __init__(self, *_args: Any, **_kwargs: Any) -> None:
        self.sent: list[tuple[bytes, Any]] = []
        self.closed = False

    def sendto(self, data: bytes, address: Any) -> int:
        self.sent.append((data, address))
        return len(data)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def dummy_socket(monkeypatch: pytest.MonkeyPatch) -> DummySocket:
    created = DummySocket()

    def fake_getaddrinfo(host: str, port: int, *args: Any, **kwargs: Any) -> list[tuple[Any, ...]]:
        return [(socket.AF_INET, socket.SOCK_DGRAM, 17, "", (host, port))]

    monkeypatch.setattr(socket, "getaddrinfo", fake_getaddrinfo)
    monkeypatch.setattr(socket, "socket", lambda *_args, **_kwargs: created)
    return created


def test_empty_payload_is_a_noop(dummy_socket: DummySocket) -> None:
    transport = UdpTransport(*ADDRESS)

    assert transport.send(b"") == 0
    assert dummy_socket.sent == []
    assert not transport.is_open


def test_small_payload_is_one_datagram(dummy_socket: DummySocket) -> None:
    transport = UdpTransport(*ADDRESS)

    assert transport.send(b"{}") == 1
    assert dummy_socket.sent == [(b"{}", ADDRESS)]


def test_payload_of_exactly_one_packet_is_not_chunked(dummy_socket: DummySocket) -> None:
    transport = UdpTransport(*ADDRESS)
    payload = b"x" * MAX_PACKET_SIZE

    assert transport.send(payload) == 1
    assert dummy_socket.sent[0][0] == payload


@pytest.mark.parametrize("size", [MAX_PACKET_SIZE + 1, 50_000, MAX_SIZE])
def test_large_payloads_are_chunked(dummy_socket: DummySocket, size: int) -> None:
    transport = UdpTransport(*ADDRESS, id_factory=lambda n: b"M" * n)
    payload = bytes(index % 251 for index in range(size))

    count = transport.send(payload)

    assert count == math.ceil(size / MAX_PAYLOAD_SIZE) == len(dummy_socket.sent)
    chunks = [Chunk.from_bytes(data) for data, _ in dummy_socket.sent]
    assert [chunk.sequence for chunk in chunks] == list(range(count))
    assert {chunk.message_id for chunk in chunks} == {b"MMMMMMMM"}
    assert b"".join(chunk.payload for chunk in chunks) == payload
    assert all(len(data) <= MAX_PACKET_SIZE for data, _ in dummy_socket.sent)


def test_each_chunked_message_gets_a_fresh_id(dummy_socket: DummySocket) -> None:
    transport = UdpTransport(*ADDRESS)
    payload = b"y" * 10_000

    transport.send(payload)
    transport.send(payload)

    ids = {Chunk.from_bytes(data).message_id for data, _ in dummy_socket.sent}
    assert len(ids) == 2


def test_payload_beyond_max_size_is_rejected(dummy_socket: DummySocket) -> None:
    transport = UdpTransport(*ADDRESS)

    with pytest.raises(OversizedMessageError):
        transport.send(b"z" * (MAX_SIZE + 1))

    assert dummy_socket.sent == []


def test_socket_is_opened_once_and_reused(monkeypatch: pytest.MonkeyPatch) -> None:
    created: list[DummySocket] = []

    def factory(*_args: Any, **_kwargs: Any) -> DummySocket:
        sock = DummySocket()
        created.append(sock)
        return sock

    monkeypatch.setattr(socket, "getaddrinfo", lambda host, port, **_: [(socket.AF_INET, socket.SOCK_DGRAM, 17, "", (host, port))])
    monkeypatch.setattr(socket, "socket", factory)

    transport = UdpTransport(*ADDRESS)
    assert transport.open() is transport.open()
    transport.send(b"a")
    transport.send(b"b")
    transport.close()

    assert len(created) == 1
    assert created[0].closed is True
    assert not transport.is_open


def test_send_failures_become_transport_errors(dummy_socket: DummySocket, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_sendto(data: bytes, address: Any) -> int:
        raise OSError("network is unreachable")

    monkeypatch.setattr(dummy_socket, "sendto", broken_sendto)
    transport = UdpTransport(*ADDRESS)

    with pytest.raises(TransportError, match="unreachable") as excinfo:
        transport.send(b"{}")

    assert isinstance(excinfo.value.__cause__, OSError)


def test_resolution_failures_become_transport_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def fail(*_args: Any, **_kwargs: Any) -> Any:
        raise socket.gaierror("name resolution failed")

    monkeypatch.setattr(socket, "getaddrinfo", fail)

    with pytest.raises(TransportError, match="cannot open UDP socket"):
        UdpTransport("no.such.host.invalid", 12201).send(b"{}")


@NETWORK
def test_loopback_delivery_of_single_and_chunked_payloads() -> None:
    receiver = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    receiver.bind(("127.0.0.1", 0))
    receiver.settimeout(2.0)
    port = receiver.getsockname()[1]
    assembler = ChunkAssembler()
    payload = bytes(index % 256 for index in range(30_000))

    try:
        with UdpTransport("127.0.0.1", port) as transport:
            assert transport.send(b'{"version":"1.1"}') == 1
            assert receiver.recvfrom(65535)[0] == b'{"version":"1.1"}'

            count = transport.send(payload)
            rebuilt = None
            for _ in range(count):
                rebuilt = assembler.add(Chunk.from_bytes(receiver.recvfrom(65535)[0])) or rebuilt
    finally:
        receiver.close()

    assert rebuilt == payload
