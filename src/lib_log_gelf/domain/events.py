"""Domain event describing a structured log message.

Purpose
-------
Provide an immutable representation of the log events handed to a sink by the
host logging pipeline.

Contents
--------
* :class:`LogEvent` dataclass with helper methods.
* Utility functions ``_as_utc`` and ``_as_pairs`` for input normalisation.

System Role
-----------
Sits in the domain layer; the document builder is the only consumer that
turns it into wire data.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Union

from .levels import Severity

MetadataInput = Union[Mapping[str, Any], Iterable[tuple[str, Any]]]


def _as_utc(ts: datetime) -> datetime:
    """Return ``ts`` in UTC truncated to millisecond precision.

    Naive values are taken as UTC civil time; no local timezone is assumed.
    """
    if ts.tzinfo is None or ts.tzinfo.utcoffset(ts) is None:
        ts = ts.replace(tzinfo=timezone.utc)
    else:
        ts = ts.astimezone(timezone.utc)
    return ts.replace(microsecond=(ts.microsecond // 1000) * 1000)


def _as_pairs(metadata: MetadataInput | None) -> tuple[tuple[str, Any], ...]:
    if metadata is None:
        return ()
    items = metadata.items() if isinstance(metadata, Mapping) else metadata
    return tuple((str(key), value) for key, value in items)


@dataclass(slots=True, frozen=True)
class LogEvent:
    """Immutable log event consumed once by a sink.

    Attributes
    ----------
    level:
        :class:`Severity` associated with the event.
    message:
        Message text as passed by the caller.
    timestamp:
        Time of the event in UTC with millisecond precision.
    metadata:
        Ordered key/value pairs. Duplicate keys are kept; the last one wins
        when the document builder selects fields.
    """

    level: Severity
    message: str
    timestamp: datetime
    metadata: tuple[tuple[str, Any], ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.level, Severity):
            object.__setattr__(self, "level", Severity.from_name(str(self.level)))
        object.__setattr__(self, "timestamp", _as_utc(self.timestamp))
        object.__setattr__(self, "metadata", _as_pairs(self.metadata))

    @classmethod
    def create(
        cls,
        level: Severity | str,
        message: str,
        *,
        timestamp: datetime | None = None,
        metadata: MetadataInput | None = None,
    ) -> "LogEvent":
        """Build an event, defaulting the timestamp to the current UTC time.

        Examples
        --------
        >>> event = LogEvent.create("info", "hello", metadata={"request_id": "r-1"})
        >>> event.level, event.metadata
        (<Severity.INFO: 'info'>, (('request_id', 'r-1'),))
        """

        resolved = level if isinstance(level, Severity) else Severity.from_name(level)
        return cls(
            level=resolved,
            message=message,
            timestamp=timestamp if timestamp is not None else datetime.now(timezone.utc),
            metadata=_as_pairs(metadata),
        )

    def metadata_dict(self) -> dict[str, Any]:
        """Return metadata as a dict where later duplicates override earlier ones."""

        return dict(self.metadata)

    def replace(self, **changes: Any) -> "LogEvent":
        """Return a copied event with ``changes`` applied."""

        return replace(self, **changes)


__all__ = ["LogEvent", "MetadataInput"]
