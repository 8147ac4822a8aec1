"""Exception hierarchy for the GELF shipping pipeline."""

from __future__ import annotations


class GelfError(Exception):
    """Base class for all errors raised by :mod:`lib_log_gelf`."""


class EncodingError(GelfError):
    """The JSON encoder could not represent a document.

    Fatal for the single event being shipped; nothing is written.
    """


class OversizedMessageError(GelfError):
    """A payload exceeded the largest size the chunking protocol can carry.

    Raised only when the oversize policy is ``"raise"``.
    """

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"GELF payload of {size} bytes exceeds the {limit} byte limit")
        self.size = size
        self.limit = limit


class TransportError(GelfError):
    """Opening or writing the UDP socket failed; fatal for the owning worker."""


__all__ = ["EncodingError", "GelfError", "OversizedMessageError", "TransportError"]
