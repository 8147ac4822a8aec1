"""Message formatters: ``$``-templates and user callbacks.

Purpose
-------
Provide the two :class:`FormatterPort` implementations a configuration can
carry, and resolve loose user input (template strings, callables, or
``"module:function"`` references) into one of them.

Contents
--------
* :func:`build_template_payload` – placeholder values for one event.
* :class:`TemplateFormatter` – renders ``$message``-style templates.
* :class:`CallbackFormatter` – wraps a four-argument user callback.
* :func:`resolve_formatter` – lenient resolution with fallback to the default
  template.

System Role
-----------
Adapters consumed by the document builder through
:class:`~lib_log_gelf.application.ports.formatter.FormatterPort` and
:class:`~lib_log_gelf.application.ports.formatter.MessageTemplatePort`.
"""

from __future__ import annotations

import importlib
import inspect
import logging
import re
from collections.abc import Callable, Mapping
from datetime import datetime
from string import Template
from typing import Any

from lib_log_gelf.application.ports.formatter import FormattedEvent, FormatterPort
from lib_log_gelf.domain.levels import Severity

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "$message"
SUPPORTED_PLACEHOLDERS = frozenset({"message", "level", "levelpad", "date", "time", "datetime", "metadata", "node"})
_LEVEL_WIDTH = max(len(level.value) for level in Severity)
_REFERENCE_RE = re.compile(r"^[A-Za-z_][\w.]*:[A-Za-z_]\w*$")


def build_template_payload(
    level: Severity,
    message: Any,
    timestamp: datetime,
    metadata: Mapping[str, Any],
    *,
    hostname: str,
) -> dict[str, str]:
    """Return the mapping of placeholders exposed to message templates.

    Examples
    --------
    >>> payload = build_template_payload(Severity.INFO, "hi", datetime(2024, 5, 6, 7, 8, 9, 10000), {"a": 1}, hostname="box")
    >>> payload["date"], payload["time"], payload["metadata"], payload["levelpad"]
    ('2024-05-06', '07:08:09.010', 'a=1 ', '     ')
    """

    date_text = f"{timestamp.year:04d}-{timestamp.month:02d}-{timestamp.day:02d}"
    time_text = f"{timestamp.hour:02d}:{timestamp.minute:02d}:{timestamp.second:02d}.{timestamp.microsecond // 1000:03d}"
    return {
        "message": "" if message is None else str(message),
        "level": level.value,
        "levelpad": " " * (_LEVEL_WIDTH - len(level.value)),
        "date": date_text,
        "time": time_text,
        "datetime": f"{date_text} {time_text}",
        "metadata": "".join(f"{key}={value} " for key, value in metadata.items()),
        "node": hostname,
    }


class TemplateFormatter:
    """Render the message text from a ``$``-template.

    The transform step is the identity; only :meth:`render` changes the text.

    Examples
    --------
    >>> formatter = TemplateFormatter("[$level] $message")
    >>> formatter.render(Severity.INFO, "test", datetime(2024, 1, 1), {}, hostname="box")
    '[info] test'
    >>> TemplateFormatter("$bogus")
    Traceback (most recent call last):
    ...
    ValueError: Unsupported template placeholders: bogus
    """

    def __init__(self, template: str = DEFAULT_TEMPLATE) -> None:
        compiled = Template(template)
        if not compiled.is_valid():
            raise ValueError(f"Invalid message template: {template!r}")
        unknown = sorted(set(compiled.get_identifiers()) - SUPPORTED_PLACEHOLDERS)
        if unknown:
            raise ValueError(f"Unsupported template placeholders: {', '.join(unknown)}")
        self._template = compiled

    @property
    def template(self) -> str:
        return self._template.template

    def format(
        self,
        level: Severity,
        message: Any,
        timestamp: datetime,
        metadata: Mapping[str, Any],
    ) -> FormattedEvent:
        return level, message, timestamp, metadata

    def render(
        self,
        level: Severity,
        message: Any,
        timestamp: datetime,
        metadata: Mapping[str, Any],
        *,
        hostname: str,
    ) -> str:
        payload = build_template_payload(level, message, timestamp, metadata, hostname=hostname)
        return self._template.substitute(payload)

    def __repr__(self) -> str:
        return f"TemplateFormatter({self.template!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, TemplateFormatter) and other.template == self.template

    def __hash__(self) -> int:
        return hash((TemplateFormatter, self.template))


class CallbackFormatter:
    """Adapt a ``(level, message, timestamp, metadata)`` callback to :class:`FormatterPort`."""

    def __init__(self, callback: Callable[..., Any], *, name: str | None = None) -> None:
        self._callback = callback
        self._name = name or getattr(callback, "__qualname__", repr(callback))

    @property
    def callback(self) -> Callable[..., Any]:
        return self._callback

    def format(
        self,
        level: Severity,
        message: Any,
        timestamp: datetime,
        metadata: Mapping[str, Any],
    ) -> FormattedEvent:
        result = self._callback(level, message, timestamp, dict(metadata))
        if not isinstance(result, tuple) or len(result) != 4:
            raise TypeError(f"formatter {self._name} must return a 4-tuple, got {result!r}")
        return result  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"CallbackFormatter({self._name})"


def _accepts_four_positionals(callback: Callable[..., Any]) -> bool:
    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        return True
    try:
        signature.bind(None, None, None, None)
    except TypeError:
        return False
    return True


def _import_callback(module_name: str, attribute: str) -> Callable[..., Any] | None:
    try:
        module = importlib.import_module(module_name)
    except ImportError:
        return None
    target = getattr(module, attribute, None)
    return target if callable(target) else None


def _callback_formatter(callback: Callable[..., Any] | None, name: str) -> FormatterPort | None:
    if callback is None or not _accepts_four_positionals(callback):
        return None
    return CallbackFormatter(callback, name=name)


def resolve_formatter(value: Any) -> FormatterPort:
    """Resolve user input into a formatter, falling back to ``"$message"``.

    Accepted forms: ``None`` (default template), a template string, a
    ``"module:function"`` string, a ``(module, function)`` pair, a callable
    taking four positional arguments, or an object already implementing
    :class:`FormatterPort`. References that cannot be imported or whose
    signature does not accept four arguments fall back to the default
    template.

    Examples
    --------
    >>> resolve_formatter("$level: $message").template
    '$level: $message'
    >>> resolve_formatter(("no_such_module_here", "fmt")).template
    '$message'
    >>> resolve_formatter(lambda level, message, ts, md: (level, message, ts, md))
    CallbackFormatter(<lambda>)
    """

    if value is None:
        return TemplateFormatter()
    if isinstance(value, (TemplateFormatter, CallbackFormatter)):
        return value

    resolved: FormatterPort | None
    if isinstance(value, str) and _REFERENCE_RE.match(value):
        module_name, _, attribute = value.partition(":")
        resolved = _callback_formatter(_import_callback(module_name, attribute), value)
    elif isinstance(value, str):
        try:
            return TemplateFormatter(value)
        except ValueError as exc:
            logger.warning("Invalid GELF message template %r; using %r", value, DEFAULT_TEMPLATE, exc_info=exc)
            return TemplateFormatter()
    elif isinstance(value, tuple) and len(value) == 2 and all(isinstance(part, str) for part in value):
        module_name, attribute = value
        resolved = _callback_formatter(_import_callback(module_name, attribute), f"{module_name}:{attribute}")
    elif callable(value):
        resolved = _callback_formatter(value, getattr(value, "__qualname__", repr(value)))
    elif callable(getattr(value, "format", None)):
        resolved = value
    else:
        resolved = None

    if resolved is None:
        logger.warning("GELF formatter %r cannot be resolved; using %r", value, DEFAULT_TEMPLATE)
        return TemplateFormatter()
    return resolved


__all__ = [
    "CallbackFormatter",
    "DEFAULT_TEMPLATE",
    "SUPPORTED_PLACEHOLDERS",
    "TemplateFormatter",
    "build_template_payload",
    "resolve_formatter",
]
