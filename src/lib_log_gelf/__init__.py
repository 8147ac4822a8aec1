"""Public package surface for shipping log events as GELF over UDP.

``import lib_log_gelf`` exposes the event and configuration types, the two
sinks, and the composition helpers; deeper modules stay importable for
callers that wire components by hand.
"""

from __future__ import annotations

from .adapters import GelfAsyncSink, GelfCollector, GelfSink, UdpTransport, WorkerPool
from .application.ports import LogSink
from .config import build_config, build_settings, config_from_env
from .domain import (
    ALL_METADATA,
    Compression,
    DeliveryStats,
    EncodingError,
    GelfConfig,
    GelfError,
    LogEvent,
    OversizedMessageError,
    OversizePolicy,
    Severity,
    TransportError,
)
from .lib_log_gelf import create_sink, create_sink_from_env, summary_info

__all__ = [
    "ALL_METADATA",
    "Compression",
    "DeliveryStats",
    "EncodingError",
    "GelfAsyncSink",
    "GelfCollector",
    "GelfConfig",
    "GelfError",
    "GelfSink",
    "LogEvent",
    "LogSink",
    "OversizePolicy",
    "OversizedMessageError",
    "Severity",
    "TransportError",
    "UdpTransport",
    "WorkerPool",
    "build_config",
    "build_settings",
    "config_from_env",
    "create_sink",
    "create_sink_from_env",
    "summary_info",
]
