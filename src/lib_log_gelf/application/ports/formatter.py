"""Ports for message formatting.

Purpose
-------
Describe the two formatting capabilities a configuration can carry: the
four-argument callback contract, and template rendering of the final message
text.

Contents
--------
* :class:`FormatterPort` – ``(level, message, timestamp, metadata)`` transform.
* :class:`MessageTemplatePort` – renders the message text from the
  (possibly transformed) event fields.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from lib_log_gelf.domain.levels import Severity

FormattedEvent = tuple[Severity, Any, datetime, Mapping[str, Any]]


@runtime_checkable
class FormatterPort(Protocol):
    """Transform event fields before the GELF document is built."""

    def format(
        self,
        level: Severity,
        message: Any,
        timestamp: datetime,
        metadata: Mapping[str, Any],
    ) -> FormattedEvent:
        """Return the ``(level, message, timestamp, metadata)`` to ship."""


@runtime_checkable
class MessageTemplatePort(Protocol):
    """Render the message text of an event from a template."""

    def render(
        self,
        level: Severity,
        message: Any,
        timestamp: datetime,
        metadata: Mapping[str, Any],
        *,
        hostname: str,
    ) -> str:
        """Return the rendered text; an empty string skips the event."""


__all__ = ["FormattedEvent", "FormatterPort", "MessageTemplatePort"]
