"""GELF UDP chunk codec.

Purpose
-------
Describe how oversized GELF payloads are split into datagrams and how a
receiver stitches them back together.

Contents
--------
* Size constants (``MAX_SIZE``, ``MAX_PACKET_SIZE``, ``MAX_PAYLOAD_SIZE``).
* :class:`Chunk` value object with wire encoding helpers.
* :func:`chunk_count` / :func:`split_chunks` for the sending side.
* :class:`ChunkAssembler` for the receiving side.

System Role
-----------
Pure domain logic; the UDP adapter performs the actual socket writes and the
debug collector feeds received datagrams into the assembler.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

CHUNK_MAGIC = b"\x1e\x0f"
HEADER_SIZE = 12
MAX_PACKET_SIZE = 8192
MAX_PAYLOAD_SIZE = MAX_PACKET_SIZE - HEADER_SIZE
MAX_CHUNKS = 128
MAX_SIZE = MAX_CHUNKS * MAX_PAYLOAD_SIZE
MESSAGE_ID_SIZE = 8


@dataclass(slots=True, frozen=True)
class Chunk:
    """One datagram of a chunked GELF message."""

    message_id: bytes
    sequence: int
    total: int
    payload: bytes

    def __post_init__(self) -> None:
        if len(self.message_id) != MESSAGE_ID_SIZE:
            raise ValueError("message_id must be exactly 8 bytes")
        if not 0 < self.total <= MAX_CHUNKS:
            raise ValueError(f"total must be within 1..{MAX_CHUNKS}")
        if not 0 <= self.sequence < self.total:
            raise ValueError("sequence must be within 0..total-1")
        if len(self.payload) > MAX_PAYLOAD_SIZE:
            raise ValueError(f"chunk payload exceeds {MAX_PAYLOAD_SIZE} bytes")

    def to_bytes(self) -> bytes:
        """Return the datagram: magic, id, sequence, total, payload.

        Examples
        --------
        >>> Chunk(b"abcdefgh", 1, 2, b"xy").to_bytes()
        b'\\x1e\\x0fabcdefgh\\x01\\x02xy'
        """

        return CHUNK_MAGIC + self.message_id + bytes((self.sequence, self.total)) + self.payload

    @classmethod
    def from_bytes(cls, datagram: bytes) -> "Chunk":
        """Parse a chunk datagram; raise ``ValueError`` when it is not one."""
        if not is_chunk(datagram):
            raise ValueError("datagram does not carry the GELF chunk magic")
        if len(datagram) < HEADER_SIZE:
            raise ValueError("datagram shorter than the chunk header")
        return cls(
            message_id=bytes(datagram[2:10]),
            sequence=datagram[10],
            total=datagram[11],
            payload=bytes(datagram[HEADER_SIZE:]),
        )


def is_chunk(datagram: bytes) -> bool:
    """Return ``True`` when ``datagram`` starts with the chunk magic bytes."""

    return datagram[:2] == CHUNK_MAGIC


def chunk_count(size: int) -> int:
    """Return how many chunks a payload of ``size`` bytes needs.

    Examples
    --------
    >>> chunk_count(8180), chunk_count(8181), chunk_count(MAX_SIZE)
    (1, 2, 128)
    """

    return math.ceil(size / MAX_PAYLOAD_SIZE)


def split_chunks(payload: bytes, message_id: bytes) -> Iterator[Chunk]:
    """Yield the chunks of ``payload`` in ascending sequence order."""

    total = chunk_count(len(payload))
    if total > MAX_CHUNKS:
        raise ValueError(f"payload of {len(payload)} bytes needs more than {MAX_CHUNKS} chunks")
    view = memoryview(payload)
    for sequence in range(total):
        start = sequence * MAX_PAYLOAD_SIZE
        yield Chunk(message_id, sequence, total, bytes(view[start : start + MAX_PAYLOAD_SIZE]))


@dataclass(slots=True)
class _PendingMessage:
    total: int
    first_seen: float
    parts: dict[int, bytes] = field(default_factory=dict)


class ChunkAssembler:
    """Reassemble chunked GELF messages on the receiving side.

    Chunks are grouped by message id and ordered by sequence. Incomplete
    messages older than ``expiry`` seconds are discarded on the next call to
    :meth:`add` or :meth:`expire`.

    Examples
    --------
    >>> assembler = ChunkAssembler()
    >>> chunks = list(split_chunks(b"a" * 9000, b"12345678"))
    >>> assembler.add(chunks[1]) is None
    True
    >>> len(assembler.add(chunks[0]))
    9000
    """

    def __init__(self, *, expiry: float = 5.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._expiry = expiry
        self._clock = clock
        self._pending: dict[bytes, _PendingMessage] = {}
        self.expired = 0

    def add(self, chunk: Chunk) -> bytes | None:
        """Record ``chunk`` and return the full payload once all parts arrived."""
        now = self._clock()
        self.expire(now)
        pending = self._pending.get(chunk.message_id)
        if pending is None:
            pending = _PendingMessage(total=chunk.total, first_seen=now)
            self._pending[chunk.message_id] = pending
        elif pending.total != chunk.total:
            raise ValueError("chunk total does not match earlier chunks of the same message")
        pending.parts.setdefault(chunk.sequence, chunk.payload)
        if len(pending.parts) < pending.total:
            return None
        del self._pending[chunk.message_id]
        return b"".join(pending.parts[index] for index in range(pending.total))

    def expire(self, now: float | None = None) -> int:
        """Drop incomplete messages older than the expiry window."""
        current = self._clock() if now is None else now
        stale = [key for key, value in self._pending.items() if current - value.first_seen > self._expiry]
        for key in stale:
            del self._pending[key]
        self.expired += len(stale)
        return len(stale)

    @property
    def pending(self) -> int:
        """Number of messages still waiting for chunks."""
        return len(self._pending)


__all__ = [
    "CHUNK_MAGIC",
    "Chunk",
    "ChunkAssembler",
    "HEADER_SIZE",
    "MAX_CHUNKS",
    "MAX_PACKET_SIZE",
    "MAX_PAYLOAD_SIZE",
    "MAX_SIZE",
    "MESSAGE_ID_SIZE",
    "chunk_count",
    "is_chunk",
    "split_chunks",
]
