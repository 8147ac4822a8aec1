"""Port for datagram transports carrying encoded GELF payloads."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class DatagramTransportPort(Protocol):
    """Deliver one encoded payload as one datagram or a chunk sequence."""

    def send(self, payload: bytes) -> int:
        """Send ``payload`` and return the number of datagrams written."""

    def close(self) -> None:
        """Close the underlying socket if it is open."""


__all__ = ["DatagramTransportPort"]
