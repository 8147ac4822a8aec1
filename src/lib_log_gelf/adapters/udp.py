"""UDP transport implementing the GELF chunking protocol.

Purpose
-------
Own one UDP socket and write encoded GELF payloads to the collector, either
as a single datagram or as a sequence of chunk datagrams.

Contents
--------
* :class:`UdpTransport` – concrete :class:`DatagramTransportPort`.

System Role
-----------
Each pool worker owns exactly one transport; the synchronous sink owns one as
well. Socket errors surface as :class:`TransportError` and are never retried.
"""

from __future__ import annotations

import logging
import os
import socket
from collections.abc import Callable
from typing import Any

from lib_log_gelf.application.ports.transport import DatagramTransportPort
from lib_log_gelf.domain.chunking import MAX_PACKET_SIZE, MAX_SIZE, MESSAGE_ID_SIZE, split_chunks
from lib_log_gelf.domain.errors import OversizedMessageError, TransportError

logger = logging.getLogger(__name__)


class UdpTransport(DatagramTransportPort):
    """Send GELF payloads to ``host:port`` over a private UDP socket.

    Parameters
    ----------
    host / port:
        Collector address, resolved once when the socket is opened.
    id_factory:
        Returns ``n`` random bytes for chunk message ids; defaults to
        :func:`os.urandom`.

    Examples
    --------
    >>> transport = UdpTransport("127.0.0.1", 9)
    >>> transport.send(b"")
    0
    >>> transport.is_open
    False
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        id_factory: Callable[[int], bytes] = os.urandom,
    ) -> None:
        self._host = host
        self._port = port
        self._id_factory = id_factory
        self._socket: socket.socket | None = None
        self._address: Any = None

    @property
    def address(self) -> tuple[str, int]:
        return self._host, self._port

    @property
    def is_open(self) -> bool:
        return self._socket is not None

    def open(self) -> socket.socket:
        """Resolve the collector address and create the socket if needed."""
        if self._socket is not None:
            return self._socket
        try:
            family, socktype, proto, _, sockaddr = socket.getaddrinfo(self._host, self._port, type=socket.SOCK_DGRAM)[0]
            sock = socket.socket(family, socktype, proto)
        except OSError as exc:
            raise TransportError(f"cannot open UDP socket for {self._host}:{self._port}: {exc}") from exc
        self._socket = sock
        self._address = sockaddr
        logger.debug("Opened GELF UDP socket for %s:%s", self._host, self._port)
        return sock

    def send(self, payload: bytes) -> int:
        """Send ``payload`` and return how many datagrams were written.

        Empty payloads are a no-op. Payloads up to ``MAX_PACKET_SIZE`` go out
        as one datagram; larger ones are chunked with a fresh message id and
        sent in ascending sequence order.

        Raises
        ------
        OversizedMessageError
            ``payload`` exceeds ``MAX_SIZE``.
        TransportError
            The socket could not be opened or written.
        """

        size = len(payload)
        if size == 0:
            return 0
        if size > MAX_SIZE:
            raise OversizedMessageError(size, MAX_SIZE)
        sock = self.open()
        if size <= MAX_PACKET_SIZE:
            self._sendto(sock, payload)
            return 1
        message_id = self._id_factory(MESSAGE_ID_SIZE)
        sent = 0
        for chunk in split_chunks(payload, message_id):
            self._sendto(sock, chunk.to_bytes())
            sent += 1
        return sent

    def close(self) -> None:
        sock, self._socket = self._socket, None
        if sock is None:
            return
        try:
            sock.close()
        except OSError as exc:
            logger.debug("Ignoring error while closing GELF socket", exc_info=exc)

    def _sendto(self, sock: socket.socket, datagram: bytes) -> None:
        try:
            sock.sendto(datagram, self._address)
        except OSError as exc:
            raise TransportError(f"UDP send to {self._host}:{self._port} failed: {exc}") from exc

    def __enter__(self) -> "UdpTransport":
        self.open()
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"UdpTransport({self._host!r}, {self._port})"


__all__ = ["UdpTransport"]
