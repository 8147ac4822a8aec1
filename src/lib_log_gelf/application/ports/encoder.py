"""Port for pluggable JSON encoders."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class JsonEncoderPort(Protocol):
    """Render a GELF document as UTF-8 JSON bytes."""

    def encode(self, document: Mapping[str, Any]) -> bytes:
        """Return the serialized ``document``; raise when it cannot be represented."""


__all__ = ["JsonEncoderPort"]
