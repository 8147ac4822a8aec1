"""Domain entities and value objects used by the GELF shipping pipeline."""

from __future__ import annotations

from .chunking import Chunk, ChunkAssembler
from .config import ALL_METADATA, Compression, GelfConfig, OversizePolicy
from .errors import EncodingError, GelfError, OversizedMessageError, TransportError
from .events import LogEvent
from .levels import Severity
from .stats import DeliverySnapshot, DeliveryStats

__all__ = [
    "ALL_METADATA",
    "Chunk",
    "ChunkAssembler",
    "Compression",
    "DeliverySnapshot",
    "DeliveryStats",
    "EncodingError",
    "GelfConfig",
    "GelfError",
    "LogEvent",
    "OversizePolicy",
    "OversizedMessageError",
    "Severity",
    "TransportError",
]
