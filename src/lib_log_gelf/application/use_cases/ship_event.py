"""Use case shipping one log event: build, encode, compress, transport.

Purpose
-------
Chain the document builder, the serializer, and a datagram transport, and
apply the delivery policies that sit between them (empty-message skip and the
oversize policy).

Contents
--------
* :class:`ShipOutcome` – what happened to an event.
* :func:`ship_event` – the use case entry point shared by the synchronous sink
  and the pool workers.

System Role
-----------
Application-layer orchestrator. Errors that are fatal for the event
(:class:`EncodingError`, :class:`OversizedMessageError`) and for the socket
(:class:`TransportError`) propagate; callers decide whether they are fatal for
a worker.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from lib_log_gelf.application.ports.transport import DatagramTransportPort
from lib_log_gelf.domain.chunking import MAX_SIZE
from lib_log_gelf.domain.config import GelfConfig, OversizePolicy
from lib_log_gelf.domain.errors import EncodingError, OversizedMessageError, TransportError
from lib_log_gelf.domain.events import LogEvent
from lib_log_gelf.domain.stats import DeliveryStats

from .build_document import build_document
from .serialize import compress_payload, encode_document

logger = logging.getLogger(__name__)

DiagnosticHook = Callable[[str, dict[str, Any]], None]


class ShipOutcome(Enum):
    """Result of :func:`ship_event` for a single event."""

    SKIPPED_EMPTY = "skipped_empty"
    DROPPED_OVERSIZE = "dropped_oversize"
    SENT = "sent"
    CHUNKED = "chunked"


def emit_diagnostic(diagnostic: DiagnosticHook | None, name: str, payload: dict[str, Any]) -> None:
    """Invoke ``diagnostic`` while guarding against hook failures."""

    if diagnostic is None:
        return
    try:
        diagnostic(name, payload)
    except Exception as exc:  # noqa: BLE001
        logger.error("GELF diagnostic hook raised while reporting %s", name, exc_info=exc)


def ship_event(
    event: LogEvent,
    config: GelfConfig,
    transport: DatagramTransportPort,
    *,
    stats: DeliveryStats | None = None,
    diagnostic: DiagnosticHook | None = None,
) -> ShipOutcome:
    """Deliver ``event`` through ``transport`` according to ``config``.

    Parameters
    ----------
    event:
        Event to ship.
    config:
        Snapshot used for building and compressing the document.
    transport:
        Open :class:`DatagramTransportPort` addressed at ``config``'s collector.
    stats:
        Optional counters updated with the outcome.
    diagnostic:
        Optional hook notified when a payload is oversized or cannot be encoded.

    Returns
    -------
    ShipOutcome
        What happened to the event.

    Raises
    ------
    EncodingError
        The encoder could not serialize the document.
    OversizedMessageError
        The payload exceeds ``MAX_SIZE`` and the policy is ``raise``.
    TransportError
        The socket failed; the event is lost.
    """

    document = build_document(event, config)
    if document is None:
        _count(stats, "skipped_empty")
        return ShipOutcome.SKIPPED_EMPTY

    try:
        payload = compress_payload(encode_document(document, config.encoder), config.compression)
    except EncodingError as exc:
        _count(stats, "encode_failed")
        emit_diagnostic(diagnostic, "event_encode_failed", {"level": event.level.value, "exception": repr(exc)})
        raise

    size = len(payload)
    if size > MAX_SIZE:
        _count(stats, "dropped_oversize")
        emit_diagnostic(diagnostic, "payload_oversized", {"size": size, "limit": MAX_SIZE, "policy": config.oversize_policy.value})
        if config.oversize_policy is OversizePolicy.RAISE:
            raise OversizedMessageError(size, MAX_SIZE)
        logger.warning("Dropping GELF payload of %d bytes (limit %d)", size, MAX_SIZE)
        return ShipOutcome.DROPPED_OVERSIZE

    try:
        datagrams = transport.send(payload)
    except TransportError:
        _count(stats, "transport_failed")
        raise

    if datagrams > 1:
        _count(stats, "chunked")
        outcome = ShipOutcome.CHUNKED
    else:
        outcome = ShipOutcome.SENT
    _count(stats, "sent")
    return outcome


def _count(stats: DeliveryStats | None, name: str) -> None:
    if stats is not None:
        stats.increment(name)


__all__ = ["DiagnosticHook", "ShipOutcome", "emit_diagnostic", "ship_event"]
