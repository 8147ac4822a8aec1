"""JSON encoder adapters implementing :class:`JsonEncoderPort`.

Purpose
-------
Let callers swap the JSON library used for GELF documents. Anything exposing
``dumps`` (the :mod:`json` module or a compatible library), an object with
``encode``, or a plain callable can be configured.

Contents
--------
* :class:`JsonEncoder` – wraps a ``dumps``-style function.
* :func:`coerce_encoder` – lenient resolution from configuration values.
"""

from __future__ import annotations

import importlib
import json
from collections.abc import Callable, Mapping
from types import ModuleType
from typing import Any

from lib_log_gelf.application.ports.encoder import JsonEncoderPort


class JsonEncoder(JsonEncoderPort):
    """Encode documents with a ``dumps``-style callable.

    Examples
    --------
    >>> JsonEncoder().encode({"short_message": "héllo"})
    b'{"short_message":"h\\xc3\\xa9llo"}'
    """

    def __init__(self, dumps: Callable[..., Any] | None = None, **options: Any) -> None:
        if dumps is None:
            dumps = json.dumps
            options = {"ensure_ascii": False, "separators": (",", ":"), **options}
        self._dumps = dumps
        self._options = options

    def encode(self, document: Mapping[str, Any]) -> bytes:
        data = self._dumps(document, **self._options)
        if isinstance(data, str):
            return data.encode("utf-8")
        return bytes(data)

    def __repr__(self) -> str:
        name = getattr(self._dumps, "__module__", None) or repr(self._dumps)
        return f"JsonEncoder({name})"


def coerce_encoder(value: Any) -> JsonEncoderPort | None:
    """Turn a configuration value into an encoder.

    ``None`` keeps the built-in encoding. Strings are imported as module names
    (``"json"``, ``"orjson"``). Modules and objects exposing ``dumps`` are
    wrapped; objects exposing ``encode`` are used as-is; plain callables are
    treated as ``dumps`` functions.

    Raises
    ------
    ValueError
        When the value cannot be interpreted as an encoder.
    """

    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = importlib.import_module(value)
        except ImportError as exc:
            raise ValueError(f"JSON encoder module {value!r} cannot be imported") from exc
    if isinstance(value, ModuleType) or (hasattr(value, "dumps") and not hasattr(value, "encode")):
        dumps = getattr(value, "dumps", None)
        if not callable(dumps):
            raise ValueError(f"JSON encoder {value!r} has no callable dumps()")
        return JsonEncoder(dumps) if dumps is not json.dumps else JsonEncoder()
    if callable(getattr(value, "encode", None)):
        return value
    if callable(value):
        return JsonEncoder(value)
    raise ValueError(f"Unsupported JSON encoder: {value!r}")


__all__ = ["JsonEncoder", "coerce_encoder"]
