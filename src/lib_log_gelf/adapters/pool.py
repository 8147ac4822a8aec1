"""Fixed-size pool of GELF transport workers with round-robin dispatch.

Purpose
-------
Keep producers off the network path: events are handed to worker threads
through private inboxes, each worker owns one UDP socket, and a supervisor
replaces workers whose send path failed so the pool stays at ``N`` workers.

Contents
--------
* :class:`GelfWorker` – background thread draining one inbox.
* :class:`WorkerPool` – balancer, supervisor, and lifecycle owner.

System Role
-----------
Backs :class:`~lib_log_gelf.adapters.sinks.GelfAsyncSink`. Workers share only
the immutable :class:`GelfConfig` snapshot; sockets are never shared, so no
locking happens on the send path.

Alignment Notes
---------------
Failure handling follows the queue worker conventions used throughout the
package: errors are logged with ``exc_info`` and reported through the optional
diagnostic hook, never raised to producers.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from lib_log_gelf.application.ports.transport import DatagramTransportPort
from lib_log_gelf.application.use_cases.ship_event import DiagnosticHook, emit_diagnostic, ship_event
from lib_log_gelf.domain.config import GelfConfig
from lib_log_gelf.domain.errors import EncodingError, OversizedMessageError, TransportError
from lib_log_gelf.domain.events import LogEvent
from lib_log_gelf.domain.stats import DeliveryStats

from .udp import UdpTransport

LOGGER = logging.getLogger(__name__)

TransportFactory = Callable[[GelfConfig], DatagramTransportPort]


def default_transport_factory(config: GelfConfig) -> DatagramTransportPort:
    """Create a :class:`UdpTransport` addressed at ``config``'s collector."""

    return UdpTransport(config.host, config.port)


class WorkerTerminated(RuntimeError):
    """Raised inside a worker thread asked to terminate abnormally."""


@dataclass(slots=True, frozen=True)
class _Reconfigure:
    config: GelfConfig


_STOP = object()
_TERMINATE = object()


def _wait_for_inbox(inbox: queue.Queue[Any], deadline: float | None) -> bool:
    with inbox.all_tasks_done:
        while inbox.unfinished_tasks:
            if deadline is None:
                inbox.all_tasks_done.wait()
                continue
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            inbox.all_tasks_done.wait(remaining)
    return True


class GelfWorker:
    """Ship events from a private inbox through a private transport.

    A :class:`TransportError`, or any unexpected exception escaping the send
    path, ends the thread; ``on_exit`` is then called with the failure so the
    pool can replace the worker. Per-event failures (encoding, oversized
    payloads under the ``raise`` policy) are logged and the worker continues.
    """

    def __init__(
        self,
        slot: int,
        config: GelfConfig,
        *,
        transport_factory: TransportFactory = default_transport_factory,
        stats: DeliveryStats | None = None,
        diagnostic: DiagnosticHook | None = None,
        on_exit: Callable[["GelfWorker", BaseException | None], None] | None = None,
        inbox: queue.Queue[Any] | None = None,
    ) -> None:
        self.slot = slot
        self.inbox: queue.Queue[Any] = inbox if inbox is not None else queue.Queue()
        self.handled = 0
        self.failure: BaseException | None = None
        self._config = config
        self._transport_factory = transport_factory
        self._stats = stats
        self._diagnostic = diagnostic
        self._on_exit = on_exit
        self._transport: DatagramTransportPort | None = None
        self._exited = False
        self._thread = threading.Thread(target=self._run, name=f"gelf-worker-{slot}", daemon=True)

    @property
    def config(self) -> GelfConfig:
        return self._config

    @property
    def alive(self) -> bool:
        """``True`` while the thread runs and has not started exiting."""
        return not self._exited and self._thread.is_alive()

    def start(self) -> None:
        self._thread.start()

    def submit(self, event: LogEvent) -> None:
        self.inbox.put(event)

    def reconfigure(self, config: GelfConfig) -> None:
        self.inbox.put(_Reconfigure(config))

    def terminate(self) -> None:
        """Make the worker exit as if its send path had failed."""
        self.inbox.put(_TERMINATE)

    def stop(self, *, drain: bool = True) -> None:
        """Ask the worker to exit after queued jobs (``drain``) or right away."""
        if not drain:
            self._discard_pending()
        self.inbox.put(_STOP)

    def join(self, timeout: float | None = None) -> bool:
        if self._thread.ident is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        deadline = None if timeout is None else time.monotonic() + timeout
        return _wait_for_inbox(self.inbox, deadline)

    def _run(self) -> None:
        failure: BaseException | None = None
        try:
            self._transport = self._transport_factory(self._config)
            while True:
                item = self.inbox.get()
                try:
                    if item is _STOP:
                        break
                    if item is _TERMINATE:
                        raise WorkerTerminated(f"gelf-worker-{self.slot} terminated")
                    if isinstance(item, _Reconfigure):
                        self._apply_config(item.config)
                        continue
                    self._ship(item)
                finally:
                    self.inbox.task_done()
        except Exception as exc:  # noqa: BLE001
            failure = exc
            LOGGER.error("GELF worker %d failed; it will be replaced", self.slot, exc_info=exc)
        finally:
            self._exited = True
            self.failure = failure
            self._close_transport()
            if self._on_exit is not None:
                self._on_exit(self, failure)

    def _ship(self, event: LogEvent) -> None:
        transport = self._transport
        if transport is None:
            raise TransportError(f"gelf-worker-{self.slot} has no open transport")
        try:
            ship_event(event, self._config, transport, stats=self._stats, diagnostic=self._diagnostic)
        except (EncodingError, OversizedMessageError) as exc:
            LOGGER.error("GELF worker %d dropped an event", self.slot, exc_info=exc)
        self.handled += 1

    def _apply_config(self, config: GelfConfig) -> None:
        self._close_transport()
        self._config = config
        self._transport = self._transport_factory(config)

    def _close_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is not None:
            transport.close()

    def _discard_pending(self) -> None:
        while True:
            try:
                item = self.inbox.get_nowait()
            except queue.Empty:
                break
            else:
                if isinstance(item, _Reconfigure):
                    self._config = item.config
                self.inbox.task_done()

    def __repr__(self) -> str:
        return f"GelfWorker(slot={self.slot}, alive={self.alive})"


class WorkerPool:
    """Round-robin balancer over ``pool_size`` supervised workers.

    Parameters
    ----------
    config:
        Initial configuration snapshot handed to every worker.
    pool_size:
        Number of workers; must be a positive integer.
    transport_factory:
        Builds a transport for a snapshot; defaults to :class:`UdpTransport`.
    stats:
        Shared :class:`DeliveryStats`; a private instance is created if omitted.
    diagnostic:
        Optional hook receiving ``worker_started``, ``worker_failed``,
        ``worker_replaced``, ``pool_reconfigured`` and ``pool_stopped`` plus
        the per-event milestones of :func:`ship_event`.
    start:
        Start the workers immediately (default).
    restart_backoff / max_restart_backoff:
        Delay before replacing a worker that died without shipping a single
        event; it doubles per consecutive failure of the same slot up to
        the maximum and resets once a worker ships again.

    Examples
    --------
    >>> sent = []
    >>> class ListTransport:
    ...     def send(self, payload):
    ...         sent.append(payload)
    ...         return 1
    ...     def close(self):
    ...         pass
    >>> from lib_log_gelf.domain import Compression, Severity
    >>> config = GelfConfig(application="doc", hostname="box", compression=Compression.NONE)
    >>> with WorkerPool(config, 2, transport_factory=lambda _cfg: ListTransport()) as pool:
    ...     pool.submit(LogEvent.create(Severity.INFO, "hello"))
    ...     pool.wait_until_idle(timeout=2.0)
    True
    >>> len(sent)
    1
    """

    def __init__(
        self,
        config: GelfConfig,
        pool_size: int,
        *,
        transport_factory: TransportFactory = default_transport_factory,
        stats: DeliveryStats | None = None,
        diagnostic: DiagnosticHook | None = None,
        start: bool = True,
        restart_backoff: float = 0.05,
        max_restart_backoff: float = 5.0,
    ) -> None:
        if isinstance(pool_size, bool) or not isinstance(pool_size, int) or pool_size < 1:
            raise ValueError(f"pool_size must be a positive integer, got {pool_size!r}")
        self._config = config
        self._size = pool_size
        self._transport_factory = transport_factory
        self._stats = stats if stats is not None else DeliveryStats()
        self._diagnostic = diagnostic
        self._lock = threading.RLock()
        self._workers: list[GelfWorker] = []
        self._cursor = 0
        self._started = False
        self._closed = False
        self._deaths: queue.Queue[GelfWorker | None] = queue.Queue()
        self._stopping = threading.Event()
        self._restart_backoff = restart_backoff
        self._max_restart_backoff = max_restart_backoff
        self._slot_failures: dict[int, int] = {}
        self._supervisor = threading.Thread(target=self._supervise, name="gelf-supervisor", daemon=True)
        if start:
            self.start()

    @property
    def size(self) -> int:
        return self._size

    @property
    def config(self) -> GelfConfig:
        return self._config

    @property
    def stats(self) -> DeliveryStats:
        return self._stats

    @property
    def workers(self) -> tuple[GelfWorker, ...]:
        with self._lock:
            return tuple(self._workers)

    @property
    def alive_count(self) -> int:
        return sum(1 for worker in self.workers if worker.alive)

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Spawn the workers and the supervisor; calling twice is a no-op."""
        with self._lock:
            if self._started:
                return
            if self._closed:
                raise RuntimeError("a stopped WorkerPool cannot be restarted")
            self._workers = [self._spawn(slot) for slot in range(self._size)]
            self._started = True
        self._supervisor.start()

    def submit(self, event: LogEvent) -> None:
        """Hand ``event`` to the next worker in rotation without blocking.

        Raises
        ------
        RuntimeError
            When the pool is not running.
        """

        with self._lock:
            if not self._started or self._closed:
                raise RuntimeError("WorkerPool is not running")
            slot = self._cursor
            self._cursor = (slot + 1) % self._size
            worker = self._workers[slot]
            if not worker.alive:
                worker = self._replace_locked(worker)
            self._stats.increment("submitted")
            worker.submit(event)

    def reconfigure(self, config: GelfConfig) -> None:
        """Broadcast a new snapshot; every worker reopens its socket."""
        with self._lock:
            self._config = config
            for worker in self._workers:
                worker.reconfigure(config)
        emit_diagnostic(self._diagnostic, "pool_reconfigured", {"host": config.host, "port": config.port})

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until every inbox is drained or ``timeout`` elapses."""
        deadline = None if timeout is None else time.monotonic() + timeout
        return all(_wait_for_inbox(worker.inbox, deadline) for worker in self.workers)

    def stop(self, *, drain: bool = True, timeout: float | None = 5.0) -> None:
        """Stop all workers and the supervisor.

        With ``drain`` queued events are shipped first; otherwise they are
        discarded. Sockets are closed by the exiting workers.
        """

        with self._lock:
            if self._closed:
                return
            self._closed = True
            workers = list(self._workers)
        deadline = None if timeout is None else time.monotonic() + timeout

        def remaining() -> float | None:
            return None if deadline is None else max(0.0, deadline - time.monotonic())

        for worker in workers:
            worker.stop(drain=drain)
        stuck = [worker.slot for worker in workers if not worker.join(remaining())]
        self._stopping.set()
        self._deaths.put(None)
        if self._supervisor.ident is not None:
            self._supervisor.join(remaining())
        emit_diagnostic(self._diagnostic, "pool_stopped", {"drain": drain, "stuck_workers": stuck})
        if stuck:
            LOGGER.warning("GELF workers %s did not stop within %s seconds", stuck, timeout)

    def _spawn(self, slot: int, inbox: queue.Queue[Any] | None = None) -> GelfWorker:
        worker = GelfWorker(
            slot,
            self._config,
            transport_factory=self._transport_factory,
            stats=self._stats,
            diagnostic=self._diagnostic,
            on_exit=self._on_worker_exit,
            inbox=inbox,
        )
        worker.start()
        emit_diagnostic(self._diagnostic, "worker_started", {"slot": slot})
        return worker

    def _on_worker_exit(self, worker: GelfWorker, failure: BaseException | None) -> None:
        if failure is None:
            return
        emit_diagnostic(self._diagnostic, "worker_failed", {"slot": worker.slot, "exception": repr(failure)})
        self._deaths.put(worker)

    def _supervise(self) -> None:
        while True:
            dead = self._deaths.get()
            if dead is None:
                break
            delay = self._restart_delay(dead)
            if delay and self._stopping.wait(delay):
                break
            with self._lock:
                if self._closed or self._workers[dead.slot] is not dead:
                    continue
                self._replace_locked(dead)

    def _restart_delay(self, dead: GelfWorker) -> float:
        if dead.handled:
            self._slot_failures[dead.slot] = 0
            return 0.0
        failures = self._slot_failures.get(dead.slot, 0)
        self._slot_failures[dead.slot] = failures + 1
        delay = min(self._restart_backoff * 2**failures, self._max_restart_backoff)
        LOGGER.warning("GELF worker %d failed before shipping; replacing it in %.2f seconds", dead.slot, delay)
        return delay

    def _replace_locked(self, dead: GelfWorker) -> GelfWorker:
        # Queued jobs of the dead worker move to its replacement.
        replacement = self._spawn(dead.slot, inbox=dead.inbox)
        self._workers[dead.slot] = replacement
        self._stats.increment("worker_restarts")
        emit_diagnostic(self._diagnostic, "worker_replaced", {"slot": dead.slot})
        LOGGER.info("Replaced GELF worker %d", dead.slot)
        return replacement

    def __enter__(self) -> "WorkerPool":
        self.start()
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.stop()

    def __repr__(self) -> str:
        return f"WorkerPool(size={self._size}, alive={self.alive_count}, closed={self._closed})"


__all__ = ["GelfWorker", "TransportFactory", "WorkerPool", "WorkerTerminated", "default_transport_factory"]
