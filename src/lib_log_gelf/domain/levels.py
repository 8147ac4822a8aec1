"""Severity abstraction mapping log levels onto the syslog scale.

Purpose
-------
Offer a domain-specific representation of log severities that carries the
exact syslog code GELF expects in its ``level`` field.

Contents
--------
* :class:`Severity` enum with conversion helpers.
* ``_SYSLOG_TABLE`` constant mapping severities to syslog codes.

System Role
-----------
Used by the document builder to fill the ``level`` field and by the sinks to
apply minimum-level filtering.
"""

from __future__ import annotations

import logging
from enum import Enum


class Severity(Enum):
    """Enumerated severities ordered from least to most severe."""

    DEBUG = "debug"
    INFO = "info"
    NOTICE = "notice"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"
    ALERT = "alert"
    EMERGENCY = "emergency"

    @property
    def syslog(self) -> int:
        """Return the syslog numeric code (``0`` is the most severe)."""

        return _SYSLOG_TABLE[self]

    def is_at_least(self, other: "Severity") -> bool:
        """Return ``True`` when ``self`` is as severe as ``other`` or more.

        Examples
        --------
        >>> Severity.ERROR.is_at_least(Severity.WARNING)
        True
        >>> Severity.DEBUG.is_at_least(Severity.INFO)
        False
        """

        return self.syslog <= other.syslog

    @classmethod
    def from_name(cls, name: str) -> "Severity":
        normalized = name.strip().lower()
        normalized = _ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValueError(f"Unknown severity: {name!r}") from exc

    @classmethod
    def from_syslog(cls, code: int) -> "Severity":
        """Return the :class:`Severity` carrying the syslog ``code``."""
        for member, value in _SYSLOG_TABLE.items():
            if value == code:
                return member
        raise ValueError(f"Unsupported syslog code: {code}")

    @classmethod
    def from_python_level(cls, level: int) -> "Severity":
        """Translate a stdlib logging level integer into :class:`Severity`."""
        try:
            return _PYTHON_TABLE[level]
        except KeyError as exc:
            raise ValueError(f"Unsupported python log level: {level}") from exc


# Fixed syslog codes written into the GELF ``level`` field.
_SYSLOG_TABLE = {
    Severity.DEBUG: 7,
    Severity.INFO: 6,
    Severity.NOTICE: 5,
    Severity.WARNING: 4,
    Severity.ERROR: 3,
    Severity.CRITICAL: 2,
    Severity.ALERT: 1,
    Severity.EMERGENCY: 0,
}

_ALIASES = {"warn": "warning", "crit": "critical", "err": "error", "emerg": "emergency"}

_PYTHON_TABLE = {
    logging.DEBUG: Severity.DEBUG,
    logging.INFO: Severity.INFO,
    logging.WARNING: Severity.WARNING,
    logging.ERROR: Severity.ERROR,
    logging.CRITICAL: Severity.CRITICAL,
}


__all__ = ["Severity"]
