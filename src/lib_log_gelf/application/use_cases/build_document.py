"""Use case mapping a :class:`LogEvent` onto a GELF 1.1 document.

Purpose
-------
Apply the configured formatter, select metadata, merge tags, and render the
canonical GELF fields for one event.

Contents
--------
* :func:`build_document` – the use case entry point.
* :func:`select_metadata`, :func:`render_field_value`,
  :func:`to_gelf_timestamp` – the field-level rules, exported for reuse by
  the template formatter and tests.

System Role
-----------
First stage of the shipping pipeline (:mod:`.ship_event`). Pure: performs no
I/O and never raises for formatter problems.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from lib_log_gelf.application.ports.formatter import MessageTemplatePort
from lib_log_gelf.domain.config import ALL_METADATA, RESERVED_METADATA_KEYS, GelfConfig, MetadataSelection
from lib_log_gelf.domain.events import LogEvent
from lib_log_gelf.domain.levels import Severity

logger = logging.getLogger(__name__)

GELF_VERSION = "1.1"
SHORT_MESSAGE_LENGTH = 80
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_DEBUG_RENDERED = (list, tuple, dict, set, frozenset, bytes, bytearray)

GelfDocument = dict[str, Any]


def select_metadata(
    metadata: Mapping[str, Any] | Iterable[tuple[str, Any]],
    keys: MetadataSelection,
) -> dict[str, Any]:
    """Return the metadata entries that should become GELF fields.

    Later duplicates override earlier ones.

    Examples
    --------
    >>> select_metadata([("this", "that"), ("something", "else")], frozenset({"this"}))
    {'this': 'that'}
    >>> select_metadata({"a": 1, "callers": []}, "all")
    {'a': 1}
    """

    items = metadata.items() if isinstance(metadata, Mapping) else metadata
    if keys == ALL_METADATA:
        return {key: value for key, value in items if key not in RESERVED_METADATA_KEYS}
    return {key: value for key, value in items if key in keys}


def render_field_value(value: Any) -> str:
    """Render a GELF additional field value as text.

    Containers, bytes, and ``None`` use their debug representation so the
    encoder only ever sees strings.

    Examples
    --------
    >>> render_field_value(42), render_field_value(["elixir"]), render_field_value(None)
    ('42', "['elixir']", 'None')
    >>> render_field_value(True)
    'true'
    """

    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None or isinstance(value, _DEBUG_RENDERED):
        return repr(value)
    return str(value)


def to_gelf_timestamp(timestamp: datetime) -> float:
    """Return Unix seconds with millisecond precision.

    Naive values are read as UTC.

    Examples
    --------
    >>> to_gelf_timestamp(datetime(2024, 1, 2, 3, 4, 5, 678000))
    1704164645.678
    """

    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    epoch_millis = (timestamp - _EPOCH) // timedelta(milliseconds=1)
    return round(epoch_millis / 1000, 3)


def _default_format(event: LogEvent) -> tuple[Severity, Any, datetime, dict[str, Any]]:
    return event.level, event.message, event.timestamp, event.metadata_dict()


def _apply_formatter(event: LogEvent, config: GelfConfig) -> tuple[Severity, Any, datetime, dict[str, Any]]:
    formatter = config.formatter
    if formatter is None:
        return _default_format(event)
    try:
        result = formatter.format(event.level, event.message, event.timestamp, event.metadata_dict())
        level, message, timestamp, metadata = result
        if not isinstance(level, Severity):
            level = Severity.from_name(str(level))
        if not isinstance(timestamp, datetime):
            raise TypeError(f"formatter returned a non-datetime timestamp: {timestamp!r}")
        items = metadata.items() if isinstance(metadata, Mapping) else metadata
        return level, message, timestamp, {str(key): value for key, value in items}
    except Exception as exc:  # noqa: BLE001
        logger.warning("GELF formatter %r failed; using the default format", formatter, exc_info=exc)
        return _default_format(event)


def _render_text(
    config: GelfConfig,
    level: Severity,
    message: Any,
    timestamp: datetime,
    selected: Mapping[str, Any],
) -> str:
    formatter = config.formatter
    if not isinstance(formatter, MessageTemplatePort):
        return "" if message is None else str(message)
    try:
        return formatter.render(level, message, timestamp, selected, hostname=config.hostname)
    except Exception as exc:  # noqa: BLE001
        logger.warning("GELF template %r failed to render; using the message text", formatter, exc_info=exc)
        return "" if message is None else str(message)


def build_document(event: LogEvent, config: GelfConfig) -> GelfDocument | None:
    """Build the GELF document for ``event`` or ``None`` when it must be skipped.

    Parameters
    ----------
    event:
        The event handed to the sink.
    config:
        Snapshot providing formatter, metadata selection, tags, host, and
        application name.

    Returns
    -------
    dict | None
        The document, or ``None`` when the formatted message is empty.

    Examples
    --------
    >>> event = LogEvent(Severity.INFO, "test", datetime(2024, 1, 1, tzinfo=timezone.utc))
    >>> doc = build_document(event, GelfConfig(application="myapp", hostname="box"))
    >>> doc["short_message"], doc["full_message"], doc["version"], doc["level"]
    ('test', 'test', '1.1', 6)
    """

    level, message, timestamp, metadata = _apply_formatter(event, config)
    selected = select_metadata(metadata, config.metadata_keys)
    text = _render_text(config, level, message, timestamp, selected)
    if text == "":
        return None

    fields = dict(selected)
    fields.update(config.tags)

    document: GelfDocument = {
        "short_message": text[:SHORT_MESSAGE_LENGTH],
        "full_message": text,
        "version": GELF_VERSION,
        "host": config.hostname,
        "level": level.syslog,
        "timestamp": to_gelf_timestamp(timestamp),
        "_application": config.application,
    }
    document.update({f"_{key}": render_field_value(value) for key, value in fields.items()})
    return document


__all__ = [
    "GELF_VERSION",
    "GelfDocument",
    "SHORT_MESSAGE_LENGTH",
    "build_document",
    "render_field_value",
    "select_metadata",
    "to_gelf_timestamp",
]
