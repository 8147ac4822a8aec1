"""Minimal GELF UDP collector for debugging and tests.

Purpose
-------
Receive GELF datagrams on a local port, reassemble chunked messages,
decompress them, and hand each decoded document to a callback. Backs the
``listen`` CLI command and the end-to-end tests.

Contents
--------
* :func:`decode_payload` – decompress and parse one complete payload.
* :class:`GelfCollector` – background receiver thread.

System Role
-----------
Adapter on the receiving side of the wire format. Not meant as a production
collector: no authentication, no persistence, and incomplete chunk sequences
are discarded after ``expiry`` seconds.
"""

from __future__ import annotations

import json
import logging
import socket
import threading
import time
import zlib
from collections.abc import Callable
from typing import Any

from lib_log_gelf.application.use_cases.serialize import decompress_payload, sniff_compression
from lib_log_gelf.domain.chunking import Chunk, ChunkAssembler, is_chunk

logger = logging.getLogger(__name__)

DocumentCallback = Callable[[dict[str, Any]], None]


def decode_payload(payload: bytes) -> dict[str, Any]:
    """Return the GELF document carried by a complete ``payload``.

    Raises
    ------
    ValueError
        When the payload cannot be decompressed or is not a JSON object.

    Examples
    --------
    >>> import gzip
    >>> decode_payload(gzip.compress(b'{"version":"1.1"}'))
    {'version': '1.1'}
    """

    try:
        raw = decompress_payload(payload, sniff_compression(payload))
        document = json.loads(raw.decode("utf-8"))
    except (OSError, EOFError, ValueError, zlib.error) as exc:
        raise ValueError(f"undecodable GELF payload: {exc}") from exc
    if not isinstance(document, dict):
        raise ValueError("GELF payload is not a JSON object")
    return document


class GelfCollector:
    """Listen for GELF datagrams and collect decoded documents.

    Parameters
    ----------
    host / port:
        Bind address; port ``0`` picks a free port (see :attr:`address`).
    on_document:
        Optional callback invoked on the receiver thread for each document.
    expiry:
        Seconds an incomplete chunk sequence is kept.
    poll_interval:
        Socket timeout used to notice :meth:`stop` requests.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 0,
        *,
        on_document: DocumentCallback | None = None,
        expiry: float = 5.0,
        buffer_size: int = 65535,
        poll_interval: float = 0.2,
    ) -> None:
        self._host = host
        self._port = port
        self._on_document = on_document
        self._buffer_size = buffer_size
        self._poll_interval = poll_interval
        self._assembler = ChunkAssembler(expiry=expiry)
        self._documents: list[dict[str, Any]] = []
        self._condition = threading.Condition()
        self._shutdown = threading.Event()
        self._socket: socket.socket | None = None
        self._thread: threading.Thread | None = None
        self.address: tuple[str, int] | None = None
        self.invalid = 0

    @property
    def documents(self) -> list[dict[str, Any]]:
        with self._condition:
            return list(self._documents)

    @property
    def pending_chunks(self) -> int:
        return self._assembler.pending

    def start(self) -> tuple[str, int]:
        """Bind the socket, start the receiver thread, and return the bound address."""
        if self._thread is not None and self.address is not None:
            return self.address
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.settimeout(self._poll_interval)
        sock.bind((self._host, self._port))
        self._socket = sock
        self.address = sock.getsockname()[:2]
        self._thread = threading.Thread(target=self._serve, args=(sock,), name="gelf-collector", daemon=True)
        self._thread.start()
        logger.info("GELF collector listening on %s:%d", *self.address)
        return self.address

    def process_datagram(self, datagram: bytes) -> dict[str, Any] | None:
        """Feed one datagram; return the document once a message is complete."""
        try:
            if is_chunk(datagram):
                payload = self._assembler.add(Chunk.from_bytes(datagram))
                if payload is None:
                    return None
            else:
                payload = datagram
            document = decode_payload(payload)
        except ValueError as exc:
            self.invalid += 1
            logger.warning("Discarding invalid GELF datagram: %s", exc)
            return None
        with self._condition:
            self._documents.append(document)
            self._condition.notify_all()
        if self._on_document is not None:
            try:
                self._on_document(document)
            except Exception as exc:  # noqa: BLE001
                logger.error("GELF collector callback failed", exc_info=exc)
        return document

    def wait_for(self, count: int, timeout: float | None = None) -> list[dict[str, Any]]:
        """Block until ``count`` documents arrived or ``timeout`` elapsed."""
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._condition:
            while len(self._documents) < count:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    break
                self._condition.wait(remaining)
            return list(self._documents)

    def stop(self, timeout: float | None = 2.0) -> None:
        self._shutdown.set()
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout)
        sock, self._socket = self._socket, None
        if sock is not None:
            sock.close()

    def _serve(self, sock: socket.socket) -> None:
        while not self._shutdown.is_set():
            try:
                datagram, _ = sock.recvfrom(self._buffer_size)
            except socket.timeout:
                self._assembler.expire()
                continue
            except OSError as exc:
                if not self._shutdown.is_set():
                    logger.error("GELF collector socket failed", exc_info=exc)
                break
            self.process_datagram(datagram)

    def __enter__(self) -> "GelfCollector":
        self.start()
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.stop()


__all__ = ["DocumentCallback", "GelfCollector", "decode_payload"]
