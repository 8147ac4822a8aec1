"""Port describing the entry point handed to the host logging pipeline.

Purpose
-------
Replace framework-specific handler registration with an explicit protocol the
owner of the logging pipeline calls once per event.

Contents
--------
* :class:`LogSink` – runtime-checkable protocol implemented by the synchronous
  and pooled GELF sinks.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from lib_log_gelf.domain.config import GelfConfig
from lib_log_gelf.domain.events import LogEvent


@runtime_checkable
class LogSink(Protocol):
    """Accept log events for delivery to a GELF collector."""

    def submit(self, event: LogEvent) -> None:
        """Hand ``event`` over for delivery; never raises for delivery problems."""

    def reconfigure(self, config: GelfConfig) -> None:
        """Replace the active configuration snapshot."""

    def close(self) -> None:
        """Release sockets and background workers."""


__all__ = ["LogSink"]
