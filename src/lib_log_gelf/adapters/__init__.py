"""Concrete adapters: encoders, formatters, UDP transport, pool, sinks, collector."""

from __future__ import annotations

from .collector import GelfCollector, decode_payload
from .formatting import CallbackFormatter, TemplateFormatter, resolve_formatter
from .json_encoder import JsonEncoder, coerce_encoder
from .pool import GelfWorker, WorkerPool, default_transport_factory
from .sinks import GelfAsyncSink, GelfSink
from .udp import UdpTransport

__all__ = [
    "CallbackFormatter",
    "GelfAsyncSink",
    "GelfCollector",
    "GelfSink",
    "GelfWorker",
    "JsonEncoder",
    "TemplateFormatter",
    "UdpTransport",
    "WorkerPool",
    "coerce_encoder",
    "decode_payload",
    "default_transport_factory",
    "resolve_formatter",
]
