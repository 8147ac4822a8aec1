"""Delivery counters shared by sinks, workers, and the pool.

Purpose
-------
Make silently dropped events observable: oversized payloads, empty messages,
encoder failures, and socket failures never raise to the caller, so they are
counted here instead.

Contents
--------
* :class:`DeliveryStats` – thread-safe counter set.
* :class:`DeliverySnapshot` – immutable view returned by
  :meth:`DeliveryStats.snapshot`.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, fields


@dataclass(slots=True, frozen=True)
class DeliverySnapshot:
    """Point-in-time copy of :class:`DeliveryStats` counters."""

    submitted: int = 0
    sent: int = 0
    chunked: int = 0
    skipped_empty: int = 0
    skipped_level: int = 0
    dropped_oversize: int = 0
    encode_failed: int = 0
    transport_failed: int = 0
    worker_restarts: int = 0

    def as_dict(self) -> dict[str, int]:
        return {item.name: getattr(self, item.name) for item in fields(self)}


_COUNTERS = tuple(item.name for item in fields(DeliverySnapshot))


class DeliveryStats:
    """Thread-safe counters updated from producer and worker threads.

    Examples
    --------
    >>> stats = DeliveryStats()
    >>> stats.increment("sent")
    >>> stats.increment("chunked", 2)
    >>> stats.snapshot().sent, stats.snapshot().chunked
    (1, 2)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values = dict.fromkeys(_COUNTERS, 0)

    def increment(self, name: str, amount: int = 1) -> None:
        if name not in self._values:
            raise KeyError(f"Unknown delivery counter: {name!r}")
        with self._lock:
            self._values[name] += amount

    def snapshot(self) -> DeliverySnapshot:
        with self._lock:
            return DeliverySnapshot(**self._values)

    def reset(self) -> None:
        with self._lock:
            for name in self._values:
                self._values[name] = 0


__all__ = ["DeliverySnapshot", "DeliveryStats"]
