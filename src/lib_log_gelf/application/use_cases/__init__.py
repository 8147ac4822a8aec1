"""Application use cases composing the GELF shipping pipeline."""

from __future__ import annotations

from .build_document import build_document
from .serialize import compress_payload, decompress_payload, encode_document
from .ship_event import ShipOutcome, ship_event

__all__ = [
    "ShipOutcome",
    "build_document",
    "compress_payload",
    "decompress_payload",
    "encode_document",
    "ship_event",
]
