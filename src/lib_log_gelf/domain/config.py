"""Immutable configuration snapshot shared by sinks and pool workers.

Purpose
-------
Capture every setting the shipping pipeline needs in a single frozen value.
Reconfiguration never mutates a snapshot; it builds a new one via
:meth:`GelfConfig.with_changes` and broadcasts it.

Contents
--------
* :class:`Compression` – payload compression modes.
* :class:`OversizePolicy` – what to do with payloads beyond ``MAX_SIZE``.
* :data:`ALL_METADATA` – selector including every metadata entry.
* :class:`GelfConfig` – the snapshot itself.

System Role
-----------
Domain value object. Coercion from loose option mappings lives in
:mod:`lib_log_gelf.config`; this module only validates.
"""

from __future__ import annotations

import socket
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal, Union

from .levels import Severity

if TYPE_CHECKING:  # pragma: no cover - typing only
    from lib_log_gelf.application.ports.encoder import JsonEncoderPort
    from lib_log_gelf.application.ports.formatter import FormatterPort

ALL_METADATA: Literal["all"] = "all"
MetadataSelection = Union[Literal["all"], frozenset[str]]
RESERVED_METADATA_KEYS = frozenset({"crash_reason", "ancestors", "callers"})
DEFAULT_PORT = 12201


class Compression(Enum):
    """Compression applied to the encoded document before transport."""

    GZIP = "gzip"
    ZLIB = "zlib"
    NONE = "none"

    @classmethod
    def coerce(cls, value: "Compression | str | None") -> "Compression":
        """Map user input onto a mode; anything unrecognised disables compression.

        Examples
        --------
        >>> Compression.coerce("ZLIB"), Compression.coerce("raw")
        (<Compression.ZLIB: 'zlib'>, <Compression.NONE: 'none'>)
        """

        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        normalized = str(value).strip().lower().lstrip(":")
        for member in cls:
            if member.value == normalized:
                return member
        return cls.NONE


class OversizePolicy(Enum):
    """Handling of payloads larger than the chunking protocol can carry."""

    DROP = "drop"
    RAISE = "raise"


def _default_hostname() -> str:
    return socket.gethostname()


def _freeze_tags(tags: Mapping[str, Any] | Iterable[tuple[str, Any]] | None) -> tuple[tuple[str, Any], ...]:
    if not tags:
        return ()
    items = tags.items() if isinstance(tags, Mapping) else tags
    return tuple((str(key), value) for key, value in items)


def _freeze_selection(keys: MetadataSelection | Iterable[str] | str | None) -> MetadataSelection:
    if keys is None:
        return frozenset()
    if isinstance(keys, str):
        if keys.strip().lower().lstrip(":") == ALL_METADATA:
            return ALL_METADATA
        return frozenset({keys})
    return frozenset(str(key) for key in keys)


@dataclass(slots=True, frozen=True)
class GelfConfig:
    """Configuration snapshot for one GELF destination.

    Attributes
    ----------
    host / port:
        Collector address; ``port`` must be within ``0..65535``.
    application:
        Written to the ``_application`` field of every document.
    hostname:
        Value of the GELF ``host`` field; defaults to the local host name.
    compression:
        :class:`Compression` mode applied after encoding.
    metadata_keys:
        :data:`ALL_METADATA` or the set of metadata keys to forward.
    tags:
        Static key/value pairs merged into every document, overriding metadata.
    encoder:
        Optional :class:`JsonEncoderPort`; ``None`` uses the built-in
        :mod:`json` encoding.
    formatter:
        Optional :class:`FormatterPort`; ``None`` ships the message verbatim.
    min_level:
        Events less severe than this are ignored by the sinks.
    oversize_policy:
        :class:`OversizePolicy` for payloads beyond ``MAX_SIZE``.
    """

    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    application: str | None = None
    hostname: str = field(default_factory=_default_hostname)
    compression: Compression = Compression.GZIP
    metadata_keys: MetadataSelection = frozenset()
    tags: tuple[tuple[str, Any], ...] = ()
    encoder: "JsonEncoderPort | None" = None
    formatter: "FormatterPort | None" = None
    min_level: Severity | None = None
    oversize_policy: OversizePolicy = OversizePolicy.DROP

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("host must not be empty")
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ValueError(f"port must be an integer, got {self.port!r}")
        if not 0 <= self.port <= 65535:
            raise ValueError(f"port must be within 0..65535, got {self.port}")
        object.__setattr__(self, "compression", Compression.coerce(self.compression))
        object.__setattr__(self, "metadata_keys", _freeze_selection(self.metadata_keys))
        object.__setattr__(self, "tags", _freeze_tags(self.tags))
        if self.min_level is not None and not isinstance(self.min_level, Severity):
            object.__setattr__(self, "min_level", Severity.from_name(str(self.min_level)))
        if not isinstance(self.oversize_policy, OversizePolicy):
            object.__setattr__(self, "oversize_policy", OversizePolicy(str(self.oversize_policy).lower()))

    @property
    def address(self) -> tuple[str, int]:
        return self.host, self.port

    @property
    def includes_all_metadata(self) -> bool:
        return self.metadata_keys == ALL_METADATA

    def accepts(self, level: Severity) -> bool:
        """Return ``True`` when ``level`` passes the minimum level filter."""

        return self.min_level is None or level.is_at_least(self.min_level)

    def with_changes(self, **changes: Any) -> "GelfConfig":
        """Return a new snapshot with ``changes`` applied."""

        return replace(self, **changes)


__all__ = [
    "ALL_METADATA",
    "Compression",
    "DEFAULT_PORT",
    "GelfConfig",
    "MetadataSelection",
    "OversizePolicy",
    "RESERVED_METADATA_KEYS",
]
