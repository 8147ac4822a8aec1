"""Protocols separating the application layer from concrete adapters."""

from __future__ import annotations

from .encoder import JsonEncoderPort
from .formatter import FormattedEvent, FormatterPort, MessageTemplatePort
from .sink import LogSink
from .transport import DatagramTransportPort

__all__ = [
    "DatagramTransportPort",
    "FormattedEvent",
    "FormatterPort",
    "JsonEncoderPort",
    "LogSink",
    "MessageTemplatePort",
]
