"""Sinks handed to the host logging pipeline.

Purpose
-------
Offer two :class:`LogSink` implementations: one that ships on the calling
thread and one that hands events to a :class:`WorkerPool`.

Contents
--------
* :class:`GelfSink` – synchronous delivery through a single transport.
* :class:`GelfAsyncSink` – non-blocking delivery through a worker pool.

System Role
-----------
Outermost adapters. Both apply the ``min_level`` filter before any work is
done and keep :class:`DeliveryStats` current. Delivery failures are logged and
counted; only configuration errors reach the caller.
"""

from __future__ import annotations

import logging
import threading

from lib_log_gelf.application.ports.sink import LogSink
from lib_log_gelf.application.ports.transport import DatagramTransportPort
from lib_log_gelf.application.use_cases.ship_event import DiagnosticHook, ShipOutcome, ship_event
from lib_log_gelf.domain.config import GelfConfig
from lib_log_gelf.domain.errors import EncodingError, OversizedMessageError, TransportError
from lib_log_gelf.domain.events import LogEvent
from lib_log_gelf.domain.stats import DeliveryStats

from .pool import TransportFactory, WorkerPool, default_transport_factory

logger = logging.getLogger(__name__)


class GelfSink(LogSink):
    """Ship each event on the caller's thread.

    A failed transport is closed and replaced by a fresh one on the next
    event; the failing event is lost.

    Examples
    --------
    >>> payloads = []
    >>> class ListTransport:
    ...     def send(self, payload):
    ...         payloads.append(payload)
    ...         return 1
    ...     def close(self):
    ...         pass
    >>> from lib_log_gelf.domain import Severity
    >>> config = GelfConfig(application="doc", min_level=Severity.WARNING)
    >>> sink = GelfSink(config, transport_factory=lambda _cfg: ListTransport())
    >>> sink.submit(LogEvent.create(Severity.INFO, "quiet"))
    >>> sink.submit(LogEvent.create(Severity.ERROR, "loud"))
    >>> len(payloads), sink.stats.snapshot().skipped_level
    (1, 1)
    """

    def __init__(
        self,
        config: GelfConfig,
        *,
        transport_factory: TransportFactory = default_transport_factory,
        stats: DeliveryStats | None = None,
        diagnostic: DiagnosticHook | None = None,
    ) -> None:
        self._config = config
        self._transport_factory = transport_factory
        self._stats = stats if stats is not None else DeliveryStats()
        self._diagnostic = diagnostic
        self._transport: DatagramTransportPort | None = None
        self._lock = threading.Lock()
        self._closed = False

    @property
    def config(self) -> GelfConfig:
        return self._config

    @property
    def stats(self) -> DeliveryStats:
        return self._stats

    def submit(self, event: LogEvent) -> None:
        self.deliver(event)

    def deliver(self, event: LogEvent) -> ShipOutcome | None:
        """Ship ``event`` and report the outcome; ``None`` when it was not shipped."""

        with self._lock:
            if self._closed:
                logger.debug("GelfSink is closed; ignoring %s event", event.level.value)
                return None
            config = self._config
            if not config.accepts(event.level):
                self._stats.increment("skipped_level")
                return None
            self._stats.increment("submitted")
            if self._transport is None:
                self._transport = self._transport_factory(config)
            try:
                return ship_event(event, config, self._transport, stats=self._stats, diagnostic=self._diagnostic)
            except TransportError as exc:
                logger.error("GELF transport failed; reopening on next event", exc_info=exc)
                self._drop_transport()
            except (EncodingError, OversizedMessageError) as exc:
                logger.error("GELF event dropped", exc_info=exc)
            return None

    def reconfigure(self, config: GelfConfig) -> None:
        with self._lock:
            self._config = config
            self._drop_transport()

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._drop_transport()

    def _drop_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is not None:
            transport.close()

    def __enter__(self) -> "GelfSink":
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()


class GelfAsyncSink(LogSink):
    """Hand events to a :class:`WorkerPool`; :meth:`submit` never blocks on I/O.

    Parameters
    ----------
    config:
        Initial configuration snapshot.
    pool_size:
        Number of pool workers.
    drain_on_close:
        Ship queued events before :meth:`close` returns.
    close_timeout:
        Upper bound in seconds for :meth:`close`.
    """

    def __init__(
        self,
        config: GelfConfig,
        pool_size: int,
        *,
        transport_factory: TransportFactory = default_transport_factory,
        stats: DeliveryStats | None = None,
        diagnostic: DiagnosticHook | None = None,
        drain_on_close: bool = True,
        close_timeout: float | None = 5.0,
    ) -> None:
        self._pool = WorkerPool(
            config,
            pool_size,
            transport_factory=transport_factory,
            stats=stats,
            diagnostic=diagnostic,
        )
        self._drain_on_close = drain_on_close
        self._close_timeout = close_timeout

    @property
    def pool(self) -> WorkerPool:
        return self._pool

    @property
    def config(self) -> GelfConfig:
        return self._pool.config

    @property
    def stats(self) -> DeliveryStats:
        return self._pool.stats

    def submit(self, event: LogEvent) -> None:
        if not self._pool.config.accepts(event.level):
            self._pool.stats.increment("skipped_level")
            return
        try:
            self._pool.submit(event)
        except RuntimeError as exc:
            logger.warning("GELF pool is not running; event dropped", exc_info=exc)

    def reconfigure(self, config: GelfConfig) -> None:
        self._pool.reconfigure(config)

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until queued events have been handled."""
        return self._pool.wait_until_idle(timeout)

    def close(self) -> None:
        self._pool.stop(drain=self._drain_on_close, timeout=self._close_timeout)

    def __enter__(self) -> "GelfAsyncSink":
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()


__all__ = ["GelfAsyncSink", "GelfSink"]
